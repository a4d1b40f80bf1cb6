"""
Upload coordinator.

Orchestrates the upload process using injected dependencies.
Chooses between a single b2_upload_file request and the large-file
API depending on size and the caller's request.
"""
from typing import Optional

from .models import UploadConfig, UploadResult
from .protocols import ChunkingStrategy, FileReaderProtocol, ProgressCallback
from .services import FileValidator, LargeFileUploader, SingleUploadService
from ..logging import get_logger

logger = get_logger('b2py.upload')


class UploadCoordinator:
    """
    Coordinates the file upload process.

    Uses dependency injection for all components, making it:
    - Testable (mock dependencies)
    - Extensible (swap strategies)
    """

    def __init__(
        self,
        api_client,
        chunking_strategy: Optional[ChunkingStrategy] = None,
        file_reader: Optional[FileReaderProtocol] = None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        """
        Initialize upload coordinator.

        Args:
            api_client: AsyncAPIClient
            chunking_strategy: Strategy for splitting large files
            file_reader: File reader used for parts
            progress_callback: Optional callback for progress updates
        """
        self._api = api_client
        self._limits = api_client.config.limits
        self._chunking = chunking_strategy
        self._file_reader = file_reader
        self._validator = FileValidator()
        self._progress_callback = progress_callback

    def uses_parts(self, config: UploadConfig, file_size: int) -> bool:
        """True when the file goes through the large-file API."""
        return config.force_parts or file_size >= self._limits.large_file_threshold

    async def upload(self, config: UploadConfig) -> UploadResult:
        """
        Execute the complete upload process.

        Args:
            config: Upload configuration

        Returns:
            Upload result with the stored file

        Raises:
            FileNotFoundError: If file doesn't exist
            NotAFile / DirectoryNotAllowed: If the path is not a regular file
        """
        path, file_size = self._validator.validate(config.file_path)
        content_type = config.resolved_content_type
        file_size_mb = file_size / (1024 * 1024)
        logger.info(f"Starting upload: {path.name} -> {config.file_name} ({file_size_mb:.2f} MB, {content_type})")

        if self.uses_parts(config, file_size):
            uploader = LargeFileUploader(self._api, self._chunking, self._file_reader)
            return await uploader.upload(
                path,
                file_size,
                config.bucket_id,
                config.file_name,
                content_type,
                progress_callback=self._progress_callback,
                cancel_on_failure=config.cancel_on_failure
            )

        service = SingleUploadService(self._api, self._limits.read_step)
        return await service.upload(
            path,
            file_size,
            config.bucket_id,
            config.file_name,
            content_type,
            progress_callback=self._progress_callback
        )
