"""
Protocol definitions for upload module.

Defines the interfaces the upload coordinator depends on, so that
chunking and file access can be swapped in tests.
"""
from pathlib import Path
from typing import Callable, List, Protocol, Tuple

from .models import UploadProgress
from .strategies import UploadPlan

ProgressCallback = Callable[[UploadProgress], None]


class ChunkingStrategy(Protocol):
    """
    Protocol for file chunking strategies.

    Allows different chunking algorithms to be plugged in.
    """

    def plan(self, total_length: int, recommended_part_size: int) -> UploadPlan:
        """
        Derive chunk size and count for a file.

        Args:
            total_length: Total file size in bytes
            recommended_part_size: Server-advised part size
        """
        ...

    def calculate_chunks(self, file_size: int, recommended_part_size: int = 0) -> List[Tuple[int, int]]:
        """Returns (start, end) tuples covering the file."""
        ...


class FileReaderProtocol(Protocol):
    """Protocol for positional file reads."""

    async def open_file(self, file_path: Path) -> None:
        ...

    async def close_file(self) -> None:
        ...

    async def read_at(self, offset: int, size: int) -> bytes:
        """
        Read up to `size` bytes starting at `offset`.

        Returns fewer bytes only at end of file.
        """
        ...
