"""Upload strategies module."""
from .chunking import (
    BaseChunkingStrategy,
    LargeFileChunkingStrategy,
    PartRange,
    UploadPlan
)

__all__ = [
    'BaseChunkingStrategy',
    'LargeFileChunkingStrategy',
    'PartRange',
    'UploadPlan',
]
