"""Retry strategies using Strategy Pattern."""
from abc import ABC, abstractmethod
from typing import Iterable


class RetryStrategy(ABC):
    """Abstract retry strategy."""

    @abstractmethod
    def should_retry(self, error_code: str, attempt: int, max_attempts: int) -> bool:
        """Determines if a failed request should be replayed."""
        pass

    @abstractmethod
    def is_retryable(self, error_code: str) -> bool:
        """Determines if an error code is recoverable at all."""
        pass


class ReauthorizeOnExpiryStrategy(RetryStrategy):
    """Replays a request after reauthorizing when the token has expired."""

    def __init__(self, retry_on_codes: Iterable[str] = ('expired_auth_token',)):
        self._codes = frozenset(retry_on_codes)

    def is_retryable(self, error_code: str) -> bool:
        """Only token expiry is recovered locally."""
        return error_code in self._codes

    def should_retry(self, error_code: str, attempt: int, max_attempts: int) -> bool:
        """
        Retries expired-token errors while attempts remain.

        Args:
            error_code: Code from the error body
            attempt: 1-based number of the attempt that just failed
            max_attempts: Total attempts allowed
        """
        return self.is_retryable(error_code) and attempt < max_attempts
