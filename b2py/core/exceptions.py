"""
Custom exceptions for B2 storage operations.

This module defines exception classes raised by the client, the request
executor and the upload engine.
"""
from typing import Optional


class B2Exception(Exception):
    """Base exception for all B2-related errors."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            code: Service error code (if available)
        """
        self.code = code
        self.message = message
        super().__init__(message)


class AuthError(B2Exception):
    """Exception raised when the authorization endpoint rejects the credentials."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status: Optional[int] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message returned by the service
            code: Error code returned by the service
            status: HTTP status of the authorization response
        """
        self.status = status
        super().__init__(message, code)

    def __str__(self) -> str:
        if self.code:
            return f"Authorization failed ({self.code}): {self.message}"
        return f"Authorization failed: {self.message}"


class ApiError(B2Exception):
    """Exception raised for API rejections that are not retried."""

    def __init__(
        self,
        code: str,
        message: str,
        url: str,
        status: Optional[int] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            code: Error code from the response body
            message: Error message from the response body
            url: URL of the rejected request
            status: HTTP status of the response
        """
        self.url = url
        self.status = status
        super().__init__(message, code)

    def __str__(self) -> str:
        return f"{self.code}: {self.message} ({self.url})"


class AuthExhausted(B2Exception):
    """Exception raised when the token kept expiring after every reauthorization."""

    def __init__(self, attempts: int, url: Optional[str] = None) -> None:
        self.attempts = attempts
        self.url = url
        super().__init__(
            f"Authorization token still expired after {attempts} attempts",
            "expired_auth_token"
        )


class InsufficientData(B2Exception):
    """Exception raised when a file is too small to upload in parts."""

    def __init__(self, total_length: int, minimum_part_size: int) -> None:
        self.total_length = total_length
        self.minimum_part_size = minimum_part_size
        super().__init__(
            f"Not enough data to upload by parts: {total_length} bytes "
            f"(minimum part size is {minimum_part_size} bytes)"
        )


class NotAFile(B2Exception):
    """Exception raised when a local upload source is not a regular file."""

    def __init__(self, path) -> None:
        self.path = path
        super().__init__(f"{path} is not a file.")


class DirectoryNotAllowed(B2Exception):
    """Exception raised when a directory is uploaded without recursion."""

    def __init__(self, path) -> None:
        self.path = path
        super().__init__(f"-r not specified, omitting directory {path}")


class BucketNotFound(B2Exception):
    """Exception raised when a bucket name cannot be resolved to an id."""

    def __init__(self, bucket_name: str) -> None:
        self.bucket_name = bucket_name
        super().__init__(f"Bucket `{bucket_name}` does not exist")
