"""Redis connection management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import redis.asyncio as redis


class DatabaseClient:
    """Pooled Redis client shared by every repository.

    The pool is created on first use; ``close`` releases it and a later call
    reconnects.
    """

    def __init__(self, database_url: str, max_connections: Optional[int] = None):
        # Expecting URL like: redis://host:port/0
        self.database_url = database_url
        self.max_connections = max_connections
        self._redis: Optional[redis.Redis] = None

    def _connect(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(
                self.database_url,
                decode_responses=True,
                max_connections=self.max_connections,
            )
        return self._redis

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[redis.Redis, None]:
        yield self._connect()

    async def ping(self) -> bool:
        async with self.get_connection() as conn:
            return bool(await conn.ping())

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
