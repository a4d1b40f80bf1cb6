"""
Session data models.

Contains data classes for the persisted account state.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional
import json


@dataclass
class SessionData:
    """
    Account state for B2 API access.

    Holds the application key, the authorization returned for it and
    the cached bucket-name to bucket-id map. Every successful
    (re)authorization overwrites the token, URLs and part sizes in place,
    so callers must read them from here on every request.

    Attributes:
        key_id: Application key ID
        key: Application key
        api_url: Base URL for API calls
        download_url: Base URL for downloads
        auth_token: Current account authorization token
        account_id: Account identifier
        recommended_part_size: Server-advised part size in bytes
        absolute_minimum_part_size: Smallest part size the server accepts
        buckets: Bucket name -> bucket id
        created_at: Session creation timestamp
        updated_at: Last update timestamp
    """
    key_id: str = ''
    key: str = ''
    api_url: str = ''
    download_url: str = ''
    auth_token: str = ''
    account_id: str = ''
    recommended_part_size: int = 100_000_000
    absolute_minimum_part_size: int = 5_000_000
    buckets: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """
        Convert to dictionary for serialization.

        Returns:
            Dictionary representation
        """
        return {
            'key_id': self.key_id,
            'key': self.key,
            'api_url': self.api_url,
            'download_url': self.download_url,
            'auth_token': self.auth_token,
            'account_id': self.account_id,
            'recommended_part_size': self.recommended_part_size,
            'absolute_minimum_part_size': self.absolute_minimum_part_size,
            'buckets': dict(self.buckets),
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionData':
        """
        Create from dictionary.

        Missing keys fall back to defaults so that partially written
        stores still load.

        Args:
            data: Dictionary with session data

        Returns:
            SessionData instance
        """
        defaults = cls()
        return cls(
            key_id=data.get('key_id', ''),
            key=data.get('key', ''),
            api_url=data.get('api_url', ''),
            download_url=data.get('download_url', ''),
            auth_token=data.get('auth_token', ''),
            account_id=data.get('account_id', ''),
            recommended_part_size=int(data.get('recommended_part_size') or defaults.recommended_part_size),
            absolute_minimum_part_size=int(
                data.get('absolute_minimum_part_size') or defaults.absolute_minimum_part_size
            ),
            buckets=dict(data.get('buckets') or {}),
            created_at=datetime.fromisoformat(data['created_at']) if data.get('created_at') else datetime.now(),
            updated_at=datetime.fromisoformat(data['updated_at']) if data.get('updated_at') else datetime.now(),
        )

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> 'SessionData':
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))

    def has_credentials(self) -> bool:
        """True if both the key ID and the key are known."""
        return bool(self.key_id and self.key)

    def is_authorized(self) -> bool:
        """True if a token and API URL from a previous authorization are stored."""
        return bool(self.auth_token and self.api_url)

    def set_credentials(self, key_id: str, key: str) -> None:
        """Store a new application key, dropping the authorization of the old one."""
        if (key_id, key) != (self.key_id, self.key):
            self.clear_authorization()
            self.buckets.clear()
        self.key_id = key_id
        self.key = key

    def apply_authorization(self, result) -> None:
        """
        Overwrite the authorization fields from an AuthResult.

        Args:
            result: AuthResult returned by the authorization service
        """
        self.api_url = result.api_url
        self.download_url = result.download_url
        self.auth_token = result.authorization_token
        self.account_id = result.account_id
        self.recommended_part_size = result.recommended_part_size
        self.absolute_minimum_part_size = result.absolute_minimum_part_size
        self.update_timestamp()

    def clear_authorization(self) -> None:
        """Forget the token and URLs, keeping the credentials."""
        self.api_url = ''
        self.download_url = ''
        self.auth_token = ''
        self.account_id = ''

    def api_endpoint(self, api_path: str) -> str:
        """Absolute URL for an API path such as '/b2api/v3/b2_list_buckets'."""
        return f"{self.api_url.rstrip('/')}{api_path}"

    def update_timestamp(self) -> None:
        """Update the updated_at timestamp to now."""
        self.updated_at = datetime.now()

    def __repr__(self) -> str:
        # keep secrets out of logs and tracebacks
        return (
            f"SessionData(key_id={self.key_id!r}, account_id={self.account_id!r}, "
            f"api_url={self.api_url!r}, authorized={self.is_authorized()}, "
            f"buckets={len(self.buckets)})"
        )
