"""In-process cache backend with TTL and glob-pattern invalidation.

Single-process deployments and tests use this instead of Redis. Values
are JSON round-tripped on set so callers see the same shapes the Redis
backend returns (tuples become lists, sets are rejected).
"""

from __future__ import annotations

import asyncio
import fnmatch
import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class InMemoryCacheService:
    """Dict-backed cache; expired entries are dropped lazily on access and by purge_expired()."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[float, str]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def is_available(self) -> bool:
        return True

    async def connect(self) -> None:
        """No-op; present so lifespan wiring treats both backends alike."""

    async def disconnect(self) -> None:
        async with self._lock:
            self._entries.clear()

    def _live_value(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return payload

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            payload = self._live_value(key)
        if payload is None:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError):
            logger.exception("Cache set error for key %s (value not JSON-serializable)", key)
            return False
        async with self._lock:
            self._entries[key] = (self._clock() + ttl, payload)
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            self._entries.pop(key, None)
        logger.debug("Cache DELETE: %s", key)
        return True

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return self._live_value(key) is not None

    async def get_or_set(
        self, key: str, factory: Callable[[], Awaitable[Any]], ttl: int = 300
    ) -> Any:
        cached_value = await self.get(key)
        if cached_value is not None:
            return cached_value
        value = await factory()
        if value is not None:
            await self.set(key, value, ttl=ttl)
        return value

    async def delete_pattern(self, pattern: str) -> int:
        async with self._lock:
            matched = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
            for key in matched:
                del self._entries[key]
        if matched:
            logger.info("Cache INVALIDATE: %s (%s keys)", pattern, len(matched))
        return len(matched)

    async def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        async with self._lock:
            expired = [k for k, (exp, _) in self._entries.items() if exp <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)
