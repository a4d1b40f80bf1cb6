"""
In-memory session storage.

Used for ephemeral clients (keys passed on the command line or in
code) and in tests, where nothing should touch ~/.config/b2.
"""
from typing import Optional

from .protocols import SessionStorage
from .models import SessionData


class MemorySession(SessionStorage):
    """
    Session store backed by a single attribute.

    The stored SessionData is the same object the client mutates, so a
    token refreshed during a run is visible through load() right away.

    Example:
        >>> store = MemorySession(SessionData(key_id="...", key="..."))
        >>> async with B2Client(store) as b2:
        ...     await b2.list_buckets()
        >>> store.load().buckets
    """

    def __init__(self, data: Optional[SessionData] = None):
        """
        Args:
            data: Session to start from (e.g. a stored key), or None
        """
        self._data: Optional[SessionData] = data

    def load(self) -> Optional[SessionData]:
        return self._data

    def save(self, data: SessionData) -> None:
        data.update_timestamp()
        self._data = data

    def delete(self) -> None:
        self._data = None

    def exists(self) -> bool:
        return self._data is not None

    def close(self) -> None:
        pass
