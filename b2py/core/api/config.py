"""
API configuration module.

Provides configuration for the B2 API client, the request executor
and the upload engine.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple


@dataclass
class TimeoutConfig:
    """
    Timeout configuration.

    None leaves the corresponding aiohttp timeout unset.
    """
    total: Optional[float] = None
    connect: Optional[float] = 30.0
    sock_read: Optional[float] = None
    sock_connect: Optional[float] = 30.0

    def to_aiohttp_timeout(self):
        """Convert to aiohttp ClientTimeout."""
        import aiohttp
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_read=self.sock_read,
            sock_connect=self.sock_connect
        )


@dataclass
class RetryConfig:
    """
    Retry configuration.

    Controls how often a request is replayed after the service reports
    that the authorization token has expired.
    """
    max_auth_attempts: int = 5
    retry_on_codes: Tuple[str, ...] = ('expired_auth_token',)


@dataclass
class UploadLimits:
    """
    Upload size limits.

    Attributes:
        large_file_threshold: Files at or above this size use the large-file API
        absolute_minimum_part_size: Smallest part the service accepts
            (replaced by the value returned at authorization time)
        split_padding: Bytes added to half the file when splitting in two
        read_step: Size of each read when hashing or streaming a file
    """
    large_file_threshold: int = 1024 * 1024 * 1024
    absolute_minimum_part_size: int = 5_000_000
    split_padding: int = 100
    read_step: int = 64 * 1024


@dataclass
class APIConfig:
    """
    Complete API configuration.

    Centralizes all configuration options for the B2 API client.
    """
    auth_url: str = 'https://api.backblazeb2.com'
    api_version: str = 'v3'

    user_agent: str = 'b2py/1.0.0'

    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    limits: UploadLimits = field(default_factory=UploadLimits)

    extra_headers: Dict[str, str] = field(default_factory=dict)

    log_level: int = 20  # logging.INFO

    @classmethod
    def default(cls) -> 'APIConfig':
        """Create default configuration."""
        return cls()

    @property
    def authorize_url(self) -> str:
        """URL of the account authorization endpoint."""
        return f"{self.auth_url.rstrip('/')}/b2api/{self.api_version}/b2_authorize_account"

    def api_path(self, api_name: str) -> str:
        """Path of an API endpoint relative to the account's API URL."""
        return f"/b2api/{self.api_version}/{api_name}"

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp ClientSession."""
        headers = {
            'User-Agent': self.user_agent,
            **self.extra_headers
        }

        return {
            'headers': headers,
            'timeout': self.timeout.to_aiohttp_timeout(),
        }
