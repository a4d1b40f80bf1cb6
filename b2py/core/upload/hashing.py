"""
Content hashing.

B2 verifies every upload against a SHA-1 of its bytes, sent as a
lowercase hex string in X-Bz-Content-Sha1.
"""
import hashlib
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]

DEFAULT_READ_STEP = 64 * 1024


class ContentHasher:
    """
    Incremental 160-bit digest.

    Example:
        >>> hasher = ContentHasher(b"hello ").update(b"world")
        >>> hasher.hexdigest()
        '2aae6c35c94fcfb415dbe95f408b9ce91ee846ed'
    """

    digest_size = 20

    def __init__(self, data: BytesLike = b''):
        self._sha1 = hashlib.sha1()
        self.length = 0
        if data:
            self.update(data)

    def update(self, data: BytesLike) -> 'ContentHasher':
        """Feed more bytes; returns self for chaining."""
        self._sha1.update(data)
        self.length += len(data)
        return self

    def digest(self) -> bytes:
        return self._sha1.digest()

    def hexdigest(self) -> str:
        return self._sha1.hexdigest()


def hash_bytes(data: BytesLike) -> str:
    """Hex SHA-1 of an in-memory buffer."""
    return ContentHasher(data).hexdigest()


async def hash_stream(reader, step: int = DEFAULT_READ_STEP) -> ContentHasher:
    """
    Hash an async file object from its current position to EOF.

    Reads `step` bytes at a time and rewinds the reader to offset 0
    afterwards, so the same handle can then stream the body.

    Args:
        reader: aiofiles handle (anything with async read/seek)
        step: Bytes per read

    Returns:
        The hasher, with `length` set to the number of bytes hashed
    """
    hasher = ContentHasher()
    while True:
        block = await reader.read(step)
        if not block:
            break
        hasher.update(block)

    await reader.seek(0)
    return hasher
