"""B2 API module."""
from .errors import APIErrorCodes, ErrorResponse
from .config import APIConfig, TimeoutConfig, RetryConfig, UploadLimits
from .executor import ApiResponse, ApiOperation, FunctionOperation, RequestExecutor
from .async_client import AsyncAPIClient
from .async_auth import (
    AsyncAuthService,
    AuthResult,
    CredentialsProvider,
    InteractiveCredentials,
    StaticCredentials
)

__all__ = [
    # Client
    'AsyncAPIClient',

    # Auth
    'AsyncAuthService',
    'AuthResult',
    'CredentialsProvider',
    'InteractiveCredentials',
    'StaticCredentials',

    # Executor
    'ApiResponse',
    'ApiOperation',
    'FunctionOperation',
    'RequestExecutor',

    # Configuration
    'APIConfig',
    'TimeoutConfig',
    'RetryConfig',
    'UploadLimits',

    # Errors
    'APIErrorCodes',
    'ErrorResponse',
]
