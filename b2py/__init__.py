"""
b2py - Async Python client for Backblaze B2 cloud storage.

Usage:
    >>> from b2py import B2Client
    >>>
    >>> async with B2Client("config", base_path=default_config_dir()) as b2:
    ...     result = await b2.upload("notes.txt", "my-bucket")
    ...     print(result.file.file_id)
"""
import logging
from .client import B2Client, default_config_dir

# Configuration
from .core.api import (
    APIConfig,
    TimeoutConfig,
    RetryConfig,
    UploadLimits,
    AsyncAPIClient,
    AsyncAuthService,
    RequestExecutor
)

# Session management
from .core.session import (
    SessionStorage,
    SessionData,
    SQLiteSession,
    MemorySession
)

from .core.exceptions import (
    B2Exception,
    AuthError,
    ApiError,
    AuthExhausted,
    InsufficientData,
    NotAFile,
    DirectoryNotAllowed,
    BucketNotFound
)

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for b2py modules.

    This ensures that all b2py loggers are properly configured
    to show log messages at the specified level.

    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'b2py',
        'b2py.api',
        'b2py.auth',
        'b2py.executor',
        'b2py.buckets',
        'b2py.client',
        'b2py.upload',
        'b2py.upload.large',
        'b2py.upload.part',
        'b2py.upload.file',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'B2Client',
    'default_config_dir',
    'SessionStorage',
    'SessionData',
    'SQLiteSession',
    'MemorySession',
    'APIConfig',
    'TimeoutConfig',
    'RetryConfig',
    'UploadLimits',
    'AsyncAPIClient',
    'AsyncAuthService',
    'RequestExecutor',
    'B2Exception',
    'AuthError',
    'ApiError',
    'AuthExhausted',
    'InsufficientData',
    'NotAFile',
    'DirectoryNotAllowed',
    'BucketNotFound',
    'setup_logging',
]
