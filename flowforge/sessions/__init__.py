"""Session storage for the orchestration service."""

from __future__ import annotations

import os
from typing import Optional

from ..config import FlowForgeConfig, load_config
from .inmemory import InMemorySessionStore
from .models import Channel, Session, session_key
from .store import SessionStore


def get_session_store(
    backend: Optional[str] = None, config: Optional[FlowForgeConfig] = None
) -> SessionStore:
    """Factory function to get the configured session store."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("FLOWFORGE_SESSION_BACKEND")
        or config.sessions.backend
    ).lower()

    if backend == "inmemory":
        return InMemorySessionStore()
    elif backend == "redis":
        from .redis import RedisSessionStore

        redis_conf = config.sessions.redis
        return RedisSessionStore(
            host=redis_conf.host,
            port=redis_conf.port,
            db=redis_conf.db,
            password=redis_conf.password,
            ttl_seconds=config.sessions.ttl_seconds,
        )
    else:
        raise ValueError(f"Unsupported session backend: {backend}")


__all__ = [
    "Channel",
    "InMemorySessionStore",
    "Session",
    "SessionStore",
    "get_session_store",
    "session_key",
]
