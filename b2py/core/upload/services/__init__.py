"""Upload services module."""
from .file_service import AsyncFileReader, FileValidator, stream_file
from .large_file_service import LargeFileUploader
from .part_service import PartUploader, PartUploadOperation
from .single_service import SingleUploadOperation, SingleUploadService

__all__ = [
    'AsyncFileReader',
    'FileValidator',
    'LargeFileUploader',
    'PartUploader',
    'PartUploadOperation',
    'SingleUploadOperation',
    'SingleUploadService',
    'stream_file',
]
