"""Redis-backed session store shared across processes."""

from __future__ import annotations

from typing import Any, Optional

try:
    import redis.asyncio as redis
except ImportError:
    redis = None

from .models import Session
from .store import SessionStore

KEY_PREFIX = "flowforge:session:"


class RedisSessionStore(SessionStore):
    """Store sessions as JSON strings that expire after ``ttl_seconds``."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        client: Optional[Any] = None,
    ) -> None:
        if client is None and redis is None:
            raise ImportError("redis package is required for RedisSessionStore")

        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self.ttl_seconds = ttl_seconds
        self._redis: Optional[Any] = client

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        await self._redis.ping()

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def _client(self) -> Any:
        if not self._redis:
            await self.connect()
        return self._redis

    async def get(self, key: str) -> Optional[Session]:
        client = await self._client()
        raw = await client.get(f"{KEY_PREFIX}{key}")
        if raw is None:
            return None
        return Session.model_validate_json(raw)

    async def set(self, key: str, session: Session) -> None:
        client = await self._client()
        await client.set(
            f"{KEY_PREFIX}{key}",
            session.model_dump_json(by_alias=True, exclude_none=True),
            ex=self.ttl_seconds,
        )

    async def delete(self, key: str) -> None:
        client = await self._client()
        await client.delete(f"{KEY_PREFIX}{key}")
