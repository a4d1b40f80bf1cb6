"""
Upload module.

Single-shot and large-file uploads to B2.

Example:
    >>> coordinator = UploadCoordinator(api_client)
    >>> result = await coordinator.upload(UploadConfig('video.mp4', bucket_id))
"""
from .coordinator import UploadCoordinator
from .hashing import ContentHasher, hash_bytes, hash_stream
from .models import (
    LargeUploadState,
    PartDescriptor,
    PendingUploadSession,
    UploadConfig,
    UploadProgress,
    UploadResult,
    guess_content_type
)
from .strategies import LargeFileChunkingStrategy, PartRange, UploadPlan
from .services import AsyncFileReader, FileValidator, LargeFileUploader, SingleUploadService

__all__ = [
    'UploadCoordinator',
    'ContentHasher',
    'hash_bytes',
    'hash_stream',
    'LargeUploadState',
    'PartDescriptor',
    'PendingUploadSession',
    'UploadConfig',
    'UploadProgress',
    'UploadResult',
    'guess_content_type',
    'LargeFileChunkingStrategy',
    'PartRange',
    'UploadPlan',
    'AsyncFileReader',
    'FileValidator',
    'LargeFileUploader',
    'SingleUploadService',
]
