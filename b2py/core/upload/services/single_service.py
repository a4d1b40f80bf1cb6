"""
Single-shot upload service.

Sends a whole file in one b2_upload_file request.
"""
from pathlib import Path
from typing import Optional

import aiofiles

from ...api.executor import ApiResponse
from ...logging import get_logger
from ...models import B2File, UploadTarget
from ...session import SessionData
from ..hashing import DEFAULT_READ_STEP, hash_stream
from ..models import UploadProgress, UploadResult
from ..protocols import ProgressCallback
from .file_service import stream_file

logger = get_logger('b2py.upload')


class SingleUploadOperation:
    """
    One b2_upload_file request, safe to attempt more than once.

    Every attempt leases a fresh upload URL (its token is single-use
    once it has been rejected) and rewinds the file to offset 0.
    """

    def __init__(
        self,
        api_client,
        handle,
        bucket_id: str,
        file_name: str,
        content_type: str,
        content_length: int,
        sha1: str,
        progress: Optional[UploadProgress] = None,
        progress_callback: Optional[ProgressCallback] = None,
        step: int = DEFAULT_READ_STEP
    ):
        self._api = api_client
        self._handle = handle
        self.bucket_id = bucket_id
        self.file_name = file_name
        self.content_type = content_type
        self.content_length = content_length
        self.sha1 = sha1
        self._progress = progress
        self._progress_callback = progress_callback
        self._step = step
        self.attempts = 0
        self.target: Optional[UploadTarget] = None

    async def attempt(self, session: SessionData) -> ApiResponse:
        self.attempts += 1
        self.target = await self._api.get_upload_url(self.bucket_id)
        await self._handle.seek(0)

        if self._progress:
            self._progress.uploaded_bytes = 0

        logger.debug(
            f"Uploading {self.file_name} to {self.target.upload_url} (attempt {self.attempts})"
        )
        return await self._api.upload_file(
            self.target,
            file_name=self.file_name,
            content_type=self.content_type,
            content_length=self.content_length,
            sha1=self.sha1,
            body=stream_file(self._handle, self._step, self._on_block)
        )

    def _on_block(self, size: int) -> None:
        if not self._progress:
            return
        self._progress.uploaded_bytes += size
        if self._progress_callback:
            self._progress_callback(self._progress)

    def __repr__(self) -> str:
        return f"SingleUploadOperation({self.file_name})"


class SingleUploadService:
    """Uploads a file with one request, hashing it first."""

    def __init__(self, api_client, step: int = DEFAULT_READ_STEP):
        self._api = api_client
        self._step = step

    async def upload(
        self,
        path: Path,
        file_size: int,
        bucket_id: str,
        file_name: str,
        content_type: str,
        progress_callback: Optional[ProgressCallback] = None
    ) -> UploadResult:
        """
        Hash and upload a file.

        Args:
            path: Validated local file
            file_size: Size of the file in bytes
            bucket_id: Target bucket
            file_name: Destination name
            content_type: MIME type sent with the file
            progress_callback: Optional callback for progress updates

        Returns:
            UploadResult with the stored file record
        """
        progress = UploadProgress(total_bytes=file_size, total_parts=1)

        async with aiofiles.open(path, 'rb') as handle:
            hasher = await hash_stream(handle, self._step)
            logger.debug(f"SHA-1 of {path.name}: {hasher.hexdigest()}")

            operation = SingleUploadOperation(
                self._api,
                handle,
                bucket_id=bucket_id,
                file_name=file_name,
                content_type=content_type,
                content_length=hasher.length,
                sha1=hasher.hexdigest(),
                progress=progress,
                progress_callback=progress_callback,
                step=self._step
            )
            response = await self._api.executor.execute(operation)

        progress.uploaded_parts = 1
        if progress_callback:
            progress_callback(progress)

        stored = B2File.from_dict(response.json())
        logger.info(f"Uploaded {file_name} ({hasher.length} bytes) as {stored.file_id}")
        return UploadResult(file=stored, file_size=hasher.length, sha1=hasher.hexdigest())
