"""In-memory implementation of the session store."""

from __future__ import annotations

from typing import Dict, Optional

from .models import Session
from .store import SessionStore


class InMemorySessionStore(SessionStore):
    """Keep sessions in local memory for the life of the process.

    Nothing is evicted; use the Redis store where growth must be bounded.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}

    async def get(self, key: str) -> Optional[Session]:
        session = self._sessions.get(key)
        return session.model_copy(deep=True) if session else None

    async def set(self, key: str, session: Session) -> None:
        self._sessions[key] = session.model_copy(deep=True)

    async def delete(self, key: str) -> None:
        self._sessions.pop(key, None)

    def __len__(self) -> int:
        return len(self._sessions)
