"""
B2Client - High-level async client for Backblaze B2.

Example:
    >>> async with B2Client("config", base_path=default_config_dir()) as b2:
    ...     for bucket in await b2.list_buckets():
    ...         print(bucket.bucket_name)
"""
import os
from pathlib import Path, PurePosixPath
from typing import AsyncIterator, Callable, List, Optional, Union

import aiofiles

from .core.api import (
    APIConfig,
    AsyncAPIClient,
    AuthResult,
    CredentialsProvider,
    StaticCredentials
)
from .core.buckets import BucketService
from .core.logging import get_logger
from .core.models import B2File, Bucket
from .core.session import MemorySession, SessionData, SessionStorage, SQLiteSession
from .core.upload import (
    FileValidator,
    UploadConfig,
    UploadCoordinator,
    UploadProgress,
    UploadResult
)

CONFIG_DIR_ENV = 'B2_CONFIG_DIR'
DEFAULT_SESSION_NAME = 'config'


def default_config_dir() -> Path:
    """Directory holding the session file (B2_CONFIG_DIR or ~/.config/b2)."""
    configured = os.environ.get(CONFIG_DIR_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / '.config' / 'b2'


class B2Client:
    """
    High-level async client for B2 with session support.

    Supports two modes:

    1. Session mode:
        >>> client = B2Client("config", base_path=Path("~/.config/b2").expanduser())
        >>> await client.start()
        >>> # Authorization and bucket ids saved to config.session

    2. Ephemeral mode (nothing persisted):
        >>> async with B2Client(key_id="...", key="...") as b2:
        ...     files = await b2.ls("my-bucket")
    """

    def __init__(
        self,
        session: Optional[Union[str, Path, SessionStorage]] = None,
        *,
        config: Optional[APIConfig] = None,
        base_path: Optional[Path] = None,
        credentials: Optional[CredentialsProvider] = None,
        key_id: Optional[str] = None,
        key: Optional[str] = None
    ):
        """
        Initialize B2 client.

        Args:
            session: Session name or path (SQLite file), a SessionStorage,
                or None for an in-memory session
            config: Optional API configuration
            base_path: Base directory for session files
            credentials: Where to get a key when none is stored
            key_id: Application key ID (replaces any stored key)
            key: Application key
        """
        self._config = config or APIConfig.default()
        self._logger = get_logger('b2py.client')

        if session is None:
            self._storage: SessionStorage = MemorySession()
        elif isinstance(session, (str, Path)):
            self._storage = SQLiteSession(session, base_path)
        else:
            self._storage = session

        self._key = (key_id, key) if key_id and key else None
        if self._key:
            credentials = StaticCredentials(key_id, key)
        self._credentials = credentials

        self._api: Optional[AsyncAPIClient] = None
        self._buckets: Optional[BucketService] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> 'B2Client':
        """
        Load the stored session and open the HTTP client.

        Does not contact the service; authorization happens lazily on
        the first operation that needs it.
        """
        session_data = self._storage.load() or SessionData()
        if self._key:
            # an explicit key replaces the stored one and its token
            session_data.set_credentials(*self._key)
        self._logger.debug(f"Loaded session: {session_data!r}")

        self._api = AsyncAPIClient(self._config, session_data, self._credentials)
        await self._api.__aenter__()
        self._buckets = BucketService(self._api)
        return self

    async def __aenter__(self) -> 'B2Client':
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Persist the session, then release resources."""
        if self._api:
            self.save()
            await self._api.close()
            self._api = None
            self._buckets = None

        self._storage.close()

    def save(self) -> None:
        """Write the current session to storage."""
        if self._api is None:
            return
        data = self._api.session
        data.update_timestamp()
        self._storage.save(data)

    @property
    def session(self) -> SessionData:
        return self._require_api().session

    @property
    def api(self) -> AsyncAPIClient:
        """Low-level API client."""
        return self._require_api()

    @property
    def session_file(self) -> Optional[Path]:
        """Get session file path if using SQLite session."""
        if isinstance(self._storage, SQLiteSession):
            return self._storage.path
        return None

    def _require_api(self) -> AsyncAPIClient:
        if self._api is None:
            raise RuntimeError("Client not started; use 'async with' or call start()")
        return self._api

    # =========================================================================
    # Authorization
    # =========================================================================

    async def authorize(self, key_id: Optional[str] = None, key: Optional[str] = None) -> AuthResult:
        """
        Authorize an application key, prompting for it when not given.

        Returns:
            AuthResult of the exchange
        """
        api = self._require_api()
        if key_id and key:
            return await api.auth.authorize(key_id, key)
        return await api.auth.authorize_interactive()

    async def ensure_authorized(self) -> None:
        await self._require_api().auth.ensure_authorized()

    # =========================================================================
    # Buckets and listings
    # =========================================================================

    async def list_buckets(self) -> List[Bucket]:
        """List buckets, refreshing the cached name -> id map."""
        await self.ensure_authorized()
        return await self._buckets.refresh()

    async def bucket_id(self, bucket_name: str) -> str:
        """Resolve a bucket name (raises BucketNotFound)."""
        await self.ensure_authorized()
        return await self._buckets.resolve(bucket_name)

    async def ls(self, bucket: str, prefix: Optional[str] = None) -> List[B2File]:
        """List every file in a bucket, optionally under a prefix."""
        bucket_id = await self.bucket_id(bucket)
        return await self._api.list_file_names(bucket_id, prefix=prefix)

    # =========================================================================
    # Uploads
    # =========================================================================

    async def upload(
        self,
        file_path: Union[str, Path],
        bucket: str,
        dest: Optional[str] = None,
        *,
        parts: bool = False,
        content_type: Optional[str] = None,
        progress_callback: Optional[Callable[[UploadProgress], None]] = None,
        cancel_on_failure: bool = False
    ) -> UploadResult:
        """
        Upload a file to a bucket.

        Args:
            file_path: Local file path
            bucket: Bucket name
            dest: Destination name (defaults to the file's name)
            parts: Use the large-file API regardless of size
            content_type: MIME type (guessed from the destination when None)
            progress_callback: Optional callback for progress updates
            cancel_on_failure: Cancel a failed large-file upload on the server

        Returns:
            UploadResult with the stored file

        Example:
            >>> await b2.upload("notes.txt", "my-bucket")
            >>> await b2.upload("disk.img", "backups", "2024/disk.img", parts=True)
        """
        path = Path(file_path)
        # local checks come before bucket resolution
        FileValidator().validate(path)

        bucket_id = await self.bucket_id(bucket)
        config = UploadConfig(
            file_path=path,
            bucket_id=bucket_id,
            file_name=dest,
            content_type=content_type,
            force_parts=parts,
            cancel_on_failure=cancel_on_failure
        )

        coordinator = UploadCoordinator(self._api, progress_callback=progress_callback)
        result = await coordinator.upload(config)
        self._logger.info(f"Uploaded {path} to {bucket}/{result.file_name}")
        return result

    async def upload_directory(
        self,
        dir_path: Union[str, Path],
        bucket: str,
        dest: Optional[str] = None,
        *,
        parts: bool = False,
        content_type: Optional[str] = None,
        progress_callback: Optional[Callable[[UploadProgress], None]] = None
    ) -> AsyncIterator[UploadResult]:
        """
        Upload every file under a directory, one at a time.

        Destination names keep the directory's own name:
        uploading `photos/` with dest `backup` stores `photos/a.jpg`
        as `backup/photos/a.jpg`.

        Yields:
            UploadResult per file, in sorted path order
        """
        root = Path(dir_path)
        for file_path in iter_files(root):
            yield await self.upload(
                file_path,
                bucket,
                remote_name_for(root, file_path, dest),
                parts=parts,
                content_type=content_type,
                progress_callback=progress_callback
            )

    # =========================================================================
    # Downloads
    # =========================================================================

    async def download(
        self,
        bucket: str,
        remote_name: str,
        output: Optional[Union[str, Path]] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> Path:
        """
        Download a file by name.

        Args:
            bucket: Bucket name
            remote_name: Name of the file in the bucket
            output: Local destination (defaults to the last path segment)
            progress_callback: Optional callback(downloaded_bytes, total_bytes)

        Returns:
            Path of the written file
        """
        await self.ensure_authorized()

        dest = Path(output) if output else Path(PurePosixPath(remote_name).name)
        if dest.is_dir():
            dest = dest / PurePosixPath(remote_name).name

        try:
            async with aiofiles.open(dest, 'wb') as f:
                written = await self._api.download_file_by_name(
                    bucket, remote_name, f.write, progress_callback
                )
        except Exception:
            dest.unlink(missing_ok=True)
            raise

        self._logger.info(f"Downloaded {bucket}/{remote_name} to {dest} ({written} bytes)")
        return dest

    async def read(self, bucket: str, remote_name: str) -> bytes:
        """Return a file's content."""
        await self.ensure_authorized()

        blocks: List[bytes] = []

        async def collect(block: bytes) -> None:
            blocks.append(block)

        await self._api.download_file_by_name(bucket, remote_name, collect)
        return b''.join(blocks)


def iter_files(root: Path) -> List[Path]:
    """Regular files under root, recursively, in sorted order."""
    return sorted(p for p in root.rglob('*') if p.is_file())


def remote_name_for(root: Path, file_path: Path, dest: Optional[str] = None) -> str:
    """Destination name of a file found under root during a recursive upload."""
    parts = [root.name, *file_path.relative_to(root).parts]
    if dest:
        parts = [*PurePosixPath(dest).parts, *parts]
    return str(PurePosixPath(*parts))
