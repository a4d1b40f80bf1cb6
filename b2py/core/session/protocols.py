"""
Session storage protocols.

The configuration store the client reads at start-up and writes back
on close: the application key, the last authorization and the
bucket-name cache.
"""
from typing import Protocol, Optional, runtime_checkable
from .models import SessionData


@runtime_checkable
class SessionStorage(Protocol):
    """
    Where a B2 session lives between runs.

    A store holds at most one account. The bucket name -> id map is
    part of SessionData and is saved and loaded with it.
    """

    def load(self) -> Optional[SessionData]:
        """
        Read the stored account state.

        Returns:
            SessionData, or None when nothing was ever saved
        """
        ...

    def save(self, data: SessionData) -> None:
        """
        Replace the stored account state and bucket cache.

        Args:
            data: Current session, including its token and buckets
        """
        ...

    def delete(self) -> None:
        """Forget the stored key, authorization and buckets."""
        ...

    def exists(self) -> bool:
        """True when a session has been saved."""
        ...

    def close(self) -> None:
        """Release the backend (file handles, connections)."""
        ...
