"""
Records returned by the B2 API.

Only the fields the client uses are modelled; the raw dict is kept
on every record.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def _timestamp(value: Optional[int]) -> Optional[datetime]:
    """Milliseconds since epoch -> aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class B2File:
    """
    A file version stored in a bucket.

    Attributes:
        file_id: Server-assigned file id
        file_name: Full name (path) inside the bucket
        bucket_id: Owning bucket
        content_length: Size in bytes
        content_sha1: Hex SHA-1, or 'none' for large files
        content_type: MIME type
        action: upload, start, hide or folder
        upload_timestamp: Upload time (UTC)
    """
    file_id: str
    file_name: str
    bucket_id: str = ''
    account_id: str = ''
    content_length: int = 0
    content_sha1: Optional[str] = None
    content_md5: Optional[str] = None
    content_type: str = ''
    action: str = 'upload'
    file_info: Dict[str, Any] = field(default_factory=dict)
    upload_timestamp: Optional[datetime] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'B2File':
        """Create from an API file object."""
        return cls(
            file_id=data.get('fileId') or '',
            file_name=data.get('fileName', ''),
            bucket_id=data.get('bucketId', ''),
            account_id=data.get('accountId', ''),
            content_length=int(data.get('contentLength') or 0),
            content_sha1=data.get('contentSha1'),
            content_md5=data.get('contentMd5'),
            content_type=data.get('contentType', ''),
            action=data.get('action', 'upload'),
            file_info=dict(data.get('fileInfo') or {}),
            upload_timestamp=_timestamp(data.get('uploadTimestamp')),
            raw=data,
        )


@dataclass(frozen=True)
class UploadTarget:
    """
    An upload URL lease from b2_get_upload_url or b2_get_upload_part_url.

    The authorization token is scoped to the URL, not to the account.
    """
    upload_url: str
    authorization_token: str
    bucket_id: Optional[str] = None
    file_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UploadTarget':
        return cls(
            upload_url=data['uploadUrl'],
            authorization_token=data['authorizationToken'],
            bucket_id=data.get('bucketId'),
            file_id=data.get('fileId'),
        )


@dataclass(frozen=True)
class Bucket:
    """A bucket owned by the account."""
    bucket_id: str
    bucket_name: str
    bucket_type: str = ''
    account_id: str = ''
    revision: int = 0
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Bucket':
        """Create from an API bucket object."""
        return cls(
            bucket_id=data['bucketId'],
            bucket_name=data['bucketName'],
            bucket_type=data.get('bucketType', ''),
            account_id=data.get('accountId', ''),
            revision=int(data.get('revision') or 0),
            raw=data,
        )
