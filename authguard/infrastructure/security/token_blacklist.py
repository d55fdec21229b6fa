"""In-process token blacklist (implements ITokenBlacklist).

Revoked ids are kept until their natural expiry; sweep_expired() drops
the ones whose expiry has passed. An instance is created once per
process by the lifespan and swept by the MaintenanceScheduler.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from authguard.shared.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class TokenBlacklist:
    """Revoked token ids with their expiry, guarded by an asyncio.Lock."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._revoked: dict[str, datetime] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def revoke(self, token_id: str, expires_at: datetime) -> None:
        """Blacklist token_id until expires_at (the later expiry wins on repeats)."""
        expires_at = ensure_utc(expires_at)
        async with self._lock:
            current = self._revoked.get(token_id)
            if current is None or expires_at > current:
                self._revoked[token_id] = expires_at

    async def is_revoked(self, token_id: str) -> bool:
        async with self._lock:
            expires_at = self._revoked.get(token_id)
        return expires_at is not None and expires_at > self._clock()

    async def sweep_expired(self) -> int:
        """Drop entries whose expiry has passed. Returns how many were removed."""
        now = self._clock()
        async with self._lock:
            expired = [tid for tid, exp in self._revoked.items() if exp <= now]
            for token_id in expired:
                del self._revoked[token_id]
        if expired:
            logger.info("Token blacklist sweep removed %s entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._revoked)
