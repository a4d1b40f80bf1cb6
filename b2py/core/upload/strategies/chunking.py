"""
Chunking strategies for large-file uploads.

Derives how a file is split into parts for b2_upload_part.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from ...exceptions import InsufficientData


@dataclass(frozen=True)
class PartRange:
    """Byte range of one part; part numbers start at 1."""
    part_number: int
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True)
class UploadPlan:
    """
    How a large file is split.

    Attributes:
        total_length: File size in bytes
        chunk_size: Size of every part but the last
        chunk_count: Number of full parts (total_length // chunk_size)
    """
    total_length: int
    chunk_size: int
    chunk_count: int

    @property
    def remainder(self) -> int:
        return self.total_length - self.chunk_count * self.chunk_size

    @property
    def part_count(self) -> int:
        """Full parts plus one for a non-empty remainder."""
        return self.chunk_count + (1 if self.remainder else 0)

    def part_ranges(self) -> Iterator[PartRange]:
        """Yield part ranges covering [0, total_length) in order."""
        for index in range(self.part_count):
            offset = index * self.chunk_size
            length = min(self.chunk_size, self.total_length - offset)
            yield PartRange(part_number=index + 1, offset=offset, length=length)


class BaseChunkingStrategy(ABC):
    """Abstract base class for chunking strategies."""

    @abstractmethod
    def plan(self, total_length: int, recommended_part_size: int) -> UploadPlan:
        """Derive the upload plan for a file."""
        pass


class LargeFileChunkingStrategy(BaseChunkingStrategy):
    """
    B2 large-file chunking.

    Starts from the recommended part size returned at authorization.
    When that would produce at most one full part, the file is split
    in two instead (half plus a small padding), never below the
    absolute minimum part size.

    Example:
        >>> strategy = LargeFileChunkingStrategy(5_000_000)
        >>> strategy.plan(10_000_000, 6_000_000)
        UploadPlan(total_length=10000000, chunk_size=5000100, chunk_count=1)
    """

    DEFAULT_MINIMUM_PART_SIZE = 5_000_000
    DEFAULT_SPLIT_PADDING = 100

    def __init__(
        self,
        absolute_minimum_part_size: int = DEFAULT_MINIMUM_PART_SIZE,
        split_padding: int = DEFAULT_SPLIT_PADDING
    ):
        """
        Initialize with the service's limits.

        Args:
            absolute_minimum_part_size: Smallest part the service accepts
            split_padding: Bytes added to half the file when splitting in two
        """
        if absolute_minimum_part_size <= 0:
            raise ValueError("Minimum part size must be positive")
        self.absolute_minimum_part_size = absolute_minimum_part_size
        self.split_padding = split_padding

    def plan(self, total_length: int, recommended_part_size: int) -> UploadPlan:
        """
        Derive chunk size and count.

        Args:
            total_length: File size in bytes
            recommended_part_size: Server-advised part size

        Returns:
            UploadPlan with at least two parts

        Raises:
            InsufficientData: If the file does not split into at least two parts
        """
        minimum = self.absolute_minimum_part_size
        chunk_size = max(recommended_part_size, minimum)

        chunks = total_length // chunk_size
        if chunks <= 1:
            # split it into two chunks, or minimum-size chunks if that's bigger
            chunk_size = max(total_length // 2 + self.split_padding, minimum)

        chunks = total_length // chunk_size
        plan = UploadPlan(total_length=total_length, chunk_size=chunk_size, chunk_count=chunks)
        if plan.part_count < 2:
            raise InsufficientData(total_length, minimum)

        return plan

    def calculate_chunks(self, file_size: int, recommended_part_size: int = 0) -> List[Tuple[int, int]]:
        """
        Calculate (start, end) boundaries for a file.

        Args:
            file_size: Total file size in bytes
            recommended_part_size: Server-advised part size
        """
        plan = self.plan(file_size, recommended_part_size)
        return [(r.offset, r.end) for r in plan.part_ranges()]
