"""Session store abstraction."""

from __future__ import annotations

from typing import Optional, Protocol

from .models import Session


class SessionStore(Protocol):
    """Keyed store of conversation sessions.

    Writes replace the whole record under a key; concurrent writers to the
    same key are last-write-wins.
    """

    async def get(self, key: str) -> Optional[Session]:
        """Return the session stored under ``key``, if any."""

    async def set(self, key: str, session: Session) -> None:
        """Replace the session stored under ``key``."""

    async def delete(self, key: str) -> None:
        """Drop the session stored under ``key``."""
