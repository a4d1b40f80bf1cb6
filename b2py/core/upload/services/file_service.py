"""
File validation and reading services.

Single Responsibility: Each class handles one specific task.
"""
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Tuple, Union

import aiofiles

from ...exceptions import DirectoryNotAllowed, NotAFile
from ...logging import get_logger
from ..hashing import DEFAULT_READ_STEP


class FileValidator:
    """
    Validates local sources before upload.

    Runs before any network call, so a bad path never leases a URL.
    """

    def validate(self, file_path: Union[str, Path]) -> Tuple[Path, int]:
        """
        Validate a file for upload.

        Args:
            file_path: Path to the file

        Returns:
            Tuple of (validated Path, file size in bytes)

        Raises:
            FileNotFoundError: If the path doesn't exist
            DirectoryNotAllowed: If the path is a directory
            NotAFile: If the path is anything else but a regular file
        """
        path = Path(file_path) if isinstance(file_path, str) else file_path

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        if path.is_dir():
            raise DirectoryNotAllowed(path)

        if not path.is_file():
            raise NotAFile(path)

        return path, path.stat().st_size


class AsyncFileReader:
    """
    Asynchronous positional reader for part uploads.

    Uses aiofiles for non-blocking I/O and keeps one handle open for
    the whole upload.
    """

    def __init__(self):
        self._logger = get_logger('b2py.upload.file')
        self._file_handle = None
        self._current_file_path: Optional[Path] = None

    async def open_file(self, file_path: Path) -> None:
        """
        Open file for reading. Call this before reading parts.

        Args:
            file_path: Path to the file to open
        """
        if self._file_handle is not None and self._current_file_path == file_path:
            return

        if self._file_handle is not None:
            await self.close_file()

        self._file_handle = await aiofiles.open(file_path, 'rb')
        self._current_file_path = file_path

    async def close_file(self) -> None:
        """Close the currently open file."""
        if self._file_handle is not None:
            await self._file_handle.close()
            self._file_handle = None
            self._current_file_path = None

    async def read_at(self, offset: int, size: int) -> bytes:
        """
        Read up to `size` bytes at `offset` from the open file.

        Raises:
            RuntimeError: If no file is open
        """
        if self._file_handle is None:
            raise RuntimeError("No file open; call open_file() first")

        await self._file_handle.seek(offset)
        data = await self._file_handle.read(size)
        self._logger.debug(f"Read {len(data)} bytes at {offset}")
        return data


async def stream_file(
    handle,
    step: int = DEFAULT_READ_STEP,
    on_block: Optional[Callable[[int], None]] = None
) -> AsyncIterator[bytes]:
    """
    Yield an async file object's content in `step`-sized blocks.

    Args:
        handle: aiofiles handle positioned where streaming should start
        step: Bytes per block
        on_block: Called with the size of every block sent
    """
    while True:
        block = await handle.read(step)
        if not block:
            return
        if on_block:
            on_block(len(block))
        yield block
