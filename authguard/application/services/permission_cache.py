"""Cached effective-permission sets and their invalidation.

Entries are written read-through by AuthorizationService and dropped by
every mutation that can change a user's effective permissions: one key
for user-role changes, the whole prefix for role, permission, and grant
changes. Invalidation runs after the mutating transaction commits.

Every invalidation bumps a generation counter. A load that started
before an invalidation returns its result but does not cache it, so a
set read before a revoke is never written back after it.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from authguard.application.interfaces.services import ICacheService
from authguard.core.cache_keys import all_permissions_pattern, permission_key

logger = logging.getLogger(__name__)


class PermissionCache:
    """Thin wrapper over ICacheService for permission:{user_id} entries."""

    def __init__(self, cache: ICacheService | None, ttl: int = 300) -> None:
        self.cache = cache
        self.ttl = ttl
        self._generation = 0

    def _usable(self) -> bool:
        return self.cache is not None and self.cache.is_available()

    async def get_or_load(
        self, user_id: str, loader: Callable[[], Awaitable[set[str]]]
    ) -> set[str]:
        """Read-through: cached set, or loader() stored under permission:{user_id}."""
        if not self._usable():
            return await loader()
        key = permission_key(user_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return set(cached)
        started = self._generation
        permissions = await loader()
        if started == self._generation:
            await self.cache.set(key, sorted(permissions), ttl=self.ttl)
        else:
            logger.debug("Permissions for %s changed during load; not caching", user_id)
        return permissions

    async def invalidate_user(self, user_id: str) -> None:
        """Invalidate cached permissions for one user."""
        self._generation += 1
        if self._usable():
            await self.cache.delete(permission_key(user_id))

    async def invalidate_users(self, user_ids: set[str] | list[str]) -> None:
        for user_id in user_ids:
            await self.invalidate_user(user_id)

    async def invalidate_all(self) -> None:
        """Invalidate every cached permission set (role/permission/grant changed)."""
        self._generation += 1
        if self._usable():
            deleted = await self.cache.delete_pattern(all_permissions_pattern())
            logger.debug("Invalidated %s cached permission sets", deleted)
