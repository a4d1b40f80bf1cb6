"""B2 API error codes and error bodies."""
from .api_errors import APIErrorCodes, ErrorResponse

__all__ = [
    'APIErrorCodes',
    'ErrorResponse',
]
