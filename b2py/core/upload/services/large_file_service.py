"""
Large-file upload engine.

Drives a file through b2_start_large_file, b2_get_upload_part_url,
b2_upload_part (once per part, in order) and b2_finish_large_file.
"""
from pathlib import Path
from typing import Optional

from ...logging import get_logger
from ..models import (
    LargeUploadState,
    PendingUploadSession,
    UploadProgress,
    UploadResult
)
from ..protocols import ChunkingStrategy, FileReaderProtocol, ProgressCallback
from ..strategies import LargeFileChunkingStrategy
from .file_service import AsyncFileReader
from .part_service import PartUploader

logger = get_logger('b2py.upload.large')


class LargeFileUploader:
    """
    Uploads one file in parts, one request at a time.

    State moves STARTED -> PART_URL_LEASED -> UPLOADING_PARTS ->
    FINALIZING -> DONE, or to FAILED from any of them. Parts already
    sent are left on the server when an upload fails, unless
    `cancel_on_failure` is set.
    """

    def __init__(
        self,
        api_client,
        chunking_strategy: Optional[ChunkingStrategy] = None,
        file_reader: Optional[FileReaderProtocol] = None
    ):
        """
        Initialize the uploader.

        Args:
            api_client: AsyncAPIClient
            chunking_strategy: Plan derivation (built from the session's minimum
                part size when not given)
            file_reader: Positional reader
        """
        self._api = api_client
        self._chunking = chunking_strategy
        self._file_reader = file_reader or AsyncFileReader()
        self.pending: Optional[PendingUploadSession] = None

    async def upload(
        self,
        path: Path,
        file_size: int,
        bucket_id: str,
        file_name: str,
        content_type: str,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_on_failure: bool = False
    ) -> UploadResult:
        """
        Upload a file in parts.

        The plan is derived before anything is sent, so a file too small
        to split raises InsufficientData without opening a session.

        Returns:
            UploadResult with the finished file and its parts

        Raises:
            InsufficientData: File cannot hold one minimum-size part
            ApiError / AuthExhausted: A request failed for good
        """
        session = self._api.session
        plan = self._strategy().plan(file_size, session.recommended_part_size)
        logger.info(
            f"Uploading {file_name} in {plan.part_count} parts "
            f"of {plan.chunk_size} bytes ({file_size} bytes total)"
        )

        started = await self._api.start_large_file(bucket_id, file_name, content_type)
        self.pending = pending = PendingUploadSession(file_id=started['fileId'], file_name=file_name)
        logger.debug(f"Large file started: {pending.file_id}")

        progress = UploadProgress(total_bytes=file_size, total_parts=plan.part_count)

        try:
            pending.target = await self._api.get_upload_part_url(pending.file_id)
            pending.state = LargeUploadState.PART_URL_LEASED

            await self._file_reader.open_file(path)
            try:
                pending.state = LargeUploadState.UPLOADING_PARTS
                uploader = PartUploader(self._api, pending)

                for part_range in plan.part_ranges():
                    data = await self._file_reader.read_at(part_range.offset, part_range.length)
                    if not data:
                        raise ValueError(f"Failed to read part {part_range.part_number}")

                    part = await uploader.upload_part(part_range.part_number, part_range.offset, data)
                    del data

                    progress.uploaded_parts += 1
                    progress.uploaded_bytes += part.length
                    if progress_callback:
                        progress_callback(progress)
            finally:
                await self._file_reader.close_file()

            pending.state = LargeUploadState.FINALIZING
            finished = await self._api.finish_large_file(pending.file_id, pending.part_sha1_array())
        except Exception:
            pending.state = LargeUploadState.FAILED
            logger.error(f"Large file upload failed after {len(pending.parts)} parts: {file_name}")
            if cancel_on_failure:
                await self._cancel(pending)
            raise

        pending.state = LargeUploadState.DONE
        logger.info(f"Finished large file {file_name} ({len(pending.parts)} parts)")
        return UploadResult(file=finished, file_size=pending.uploaded_bytes, parts=list(pending.parts))

    async def _cancel(self, pending: PendingUploadSession) -> None:
        """Cancel the server-side session; failures here are only logged."""
        try:
            await self._api.cancel_large_file(pending.file_id)
            logger.info(f"Cancelled large file {pending.file_id}")
        except Exception as e:
            logger.warning(f"Could not cancel large file {pending.file_id}: {e}")

    def _strategy(self) -> ChunkingStrategy:
        if self._chunking is not None:
            return self._chunking
        limits = self._api.config.limits
        return LargeFileChunkingStrategy(
            self._api.session.absolute_minimum_part_size or limits.absolute_minimum_part_size,
            limits.split_padding
        )
