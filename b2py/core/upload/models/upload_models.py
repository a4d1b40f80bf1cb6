"""
Data models for upload module.

Uses dataclasses for type-safe data structures.
"""
import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ...models import B2File, UploadTarget

DEFAULT_CONTENT_TYPE = 'text/plain'


def guess_content_type(file_name: str) -> str:
    """Guess a MIME type from a file name's extension."""
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or DEFAULT_CONTENT_TYPE


@dataclass
class UploadConfig:
    """
    Configuration for one file upload.

    Attributes:
        file_path: Local file to upload
        bucket_id: Target bucket id
        file_name: Destination name in the bucket (defaults to the file's name)
        content_type: Explicit MIME type (guessed from file_name if None)
        force_parts: Use the large-file API regardless of size
        cancel_on_failure: Cancel the large-file session if an upload fails
    """
    file_path: Path
    bucket_id: str
    file_name: Optional[str] = None
    content_type: Optional[str] = None
    force_parts: bool = False
    cancel_on_failure: bool = False

    def __post_init__(self):
        if isinstance(self.file_path, str):
            self.file_path = Path(self.file_path)

        if not self.file_name:
            self.file_name = self.file_path.name

    @property
    def resolved_content_type(self) -> str:
        return self.content_type or guess_content_type(self.file_name)


@dataclass(frozen=True)
class PartDescriptor:
    """
    One uploaded part of a large file.

    Attributes:
        part_number: 1-based part number
        offset: Start of the byte range in the file
        length: Bytes consumed
        sha1: Lowercase hex SHA-1 of those bytes
    """
    part_number: int
    offset: int
    length: int
    sha1: str


class LargeUploadState(Enum):
    """Lifecycle of a large-file upload."""
    STARTED = 'started'
    PART_URL_LEASED = 'part_url_leased'
    UPLOADING_PARTS = 'uploading_parts'
    FINALIZING = 'finalizing'
    DONE = 'done'
    FAILED = 'failed'


@dataclass
class PendingUploadSession:
    """
    Server-side large-file session owned by one upload.

    Attributes:
        file_id: Id assigned by b2_start_large_file
        file_name: Destination name
        target: Current part upload URL lease
        parts: Uploaded parts in submission order
        state: Where the upload is in its lifecycle
    """
    file_id: str
    file_name: str
    target: Optional[UploadTarget] = None
    parts: List[PartDescriptor] = field(default_factory=list)
    state: LargeUploadState = LargeUploadState.STARTED

    def record(self, part: PartDescriptor) -> None:
        """Append a part; part numbers must strictly increase from 1."""
        expected = self.parts[-1].part_number + 1 if self.parts else 1
        if part.part_number != expected:
            raise ValueError(
                f"Part {part.part_number} recorded out of order (expected {expected})"
            )
        self.parts.append(part)

    def part_sha1_array(self) -> List[str]:
        """Hashes ordered by part number, as b2_finish_large_file expects."""
        return [p.sha1 for p in sorted(self.parts, key=lambda p: p.part_number)]

    @property
    def uploaded_bytes(self) -> int:
        return sum(p.length for p in self.parts)


@dataclass
class UploadProgress:
    """
    Upload progress information.

    Attributes:
        total_bytes: Total file size
        uploaded_bytes: Bytes sent so far
        total_parts: Number of parts (1 for single-shot uploads)
        uploaded_parts: Parts accepted so far
    """
    total_bytes: int
    uploaded_bytes: int = 0
    total_parts: int = 1
    uploaded_parts: int = 0

    @property
    def percentage(self) -> float:
        """Returns upload progress as percentage."""
        if self.total_bytes == 0:
            return 100.0 if self.uploaded_parts >= self.total_parts else 0.0
        return (self.uploaded_bytes / self.total_bytes) * 100

    @property
    def is_complete(self) -> bool:
        return self.uploaded_parts >= self.total_parts


@dataclass(frozen=True)
class UploadResult:
    """
    Result of a successful upload.

    Attributes:
        file: Record of the stored file
        file_size: Bytes uploaded
        sha1: Whole-file hash (single-shot) or None (large files)
        parts: Parts of a large-file upload, empty for single-shot
    """
    file: B2File
    file_size: int
    sha1: Optional[str] = None
    parts: List[PartDescriptor] = field(default_factory=list)

    @property
    def is_large_file(self) -> bool:
        return bool(self.parts)

    @property
    def file_name(self) -> str:
        return self.file.file_name
