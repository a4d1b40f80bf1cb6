"""Upload models."""
from .upload_models import (
    DEFAULT_CONTENT_TYPE,
    LargeUploadState,
    PartDescriptor,
    PendingUploadSession,
    UploadConfig,
    UploadProgress,
    UploadResult,
    guess_content_type
)

__all__ = [
    'DEFAULT_CONTENT_TYPE',
    'LargeUploadState',
    'PartDescriptor',
    'PendingUploadSession',
    'UploadConfig',
    'UploadProgress',
    'UploadResult',
    'guess_content_type',
]
