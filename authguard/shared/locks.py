"""Keyed asyncio locks for per-collection and per-user write serialization.

Each key ("role", "user_session:<user_id>", ...) maps to its own
asyncio.Lock. Locks are created on demand and dropped once no task holds
or waits on them.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLock:
    """Registry of asyncio locks addressed by string key.

    Holding key K serializes every coroutine that also holds K; different
    keys never block each other. Registry bookkeeping is lock-protected.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}
        self._guard = asyncio.Lock()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Acquire the lock for key for the duration of the block."""
        async with self._guard:
            lock = self._locks.setdefault(key, asyncio.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            async with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def held_keys(self) -> list[str]:
        """Keys currently held or awaited (diagnostics)."""
        return list(self._locks)


# Process-wide registry shared by services that do not receive one explicitly.
write_locks = KeyedLock()
