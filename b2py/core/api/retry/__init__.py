"""Retry strategies using Strategy Pattern."""
from .retry_strategy import RetryStrategy, ReauthorizeOnExpiryStrategy

__all__ = [
    'RetryStrategy',
    'ReauthorizeOnExpiryStrategy',
]
