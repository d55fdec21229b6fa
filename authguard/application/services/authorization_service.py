"""Authorization service: permission checks with optional caching (IPermissionResolver + cache)."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from authguard.application.dtos.authorization import (
    PermissionCheckResult,
    UserPermissionSummary,
)
from authguard.application.interfaces.repositories import IUnitOfWork
from authguard.application.interfaces.services import IPermissionResolver
from authguard.application.services.permission_cache import PermissionCache
from authguard.domain.exceptions import PermissionDeniedException
from authguard.shared.telemetry import add_span_attributes, traced
from authguard.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


def _normalize(permission: str) -> str:
    return permission.strip().lower()


class AuthorizationService:
    """Centralized permission checking; uses cache when available (5 min TTL typical).

    Names compare case-insensitively. Cached sets are invalidated by the
    role, permission and user-role services after every relevant write.
    """

    def __init__(
        self,
        permission_resolver: IPermissionResolver,
        permission_cache: PermissionCache | None = None,
        uow: IUnitOfWork | None = None,
    ) -> None:
        self.permission_resolver = permission_resolver
        self.permission_cache = permission_cache or PermissionCache(None)
        self._uow = uow

    async def get_user_permissions(self, user_id: str) -> set[str]:
        """Return the user's effective permission names. Uses cache if available."""
        return await self.permission_cache.get_or_load(
            user_id, lambda: self.permission_resolver.get_user_permissions(user_id)
        )

    async def check_permission(self, user_id: str, permission: str) -> bool:
        """True iff an effective role grants permission."""
        return _normalize(permission) in await self.get_user_permissions(user_id)

    async def check_any_permission(self, user_id: str, permissions: Iterable[str]) -> bool:
        """True if at least one of permissions is granted (False for an empty list)."""
        wanted = {_normalize(p) for p in permissions}
        return bool(wanted & await self.get_user_permissions(user_id))

    async def check_all_permissions(self, user_id: str, permissions: Iterable[str]) -> bool:
        """True if every one of permissions is granted (True for an empty list)."""
        wanted = {_normalize(p) for p in permissions}
        return wanted <= await self.get_user_permissions(user_id)

    @traced("authorization.check_permission_detailed")
    async def check_permission_detailed(
        self, user_id: str, permission: str
    ) -> PermissionCheckResult:
        """Per-role verdicts for permission, read from the store (never the cache)."""
        name = _normalize(permission)
        add_span_attributes(user_id=user_id, permission=name)
        verdicts = await self.permission_resolver.get_role_grants(user_id, name)
        granted_by = tuple(v.role_name for v in verdicts if v.granted)
        reasons: list[str] = []
        if not verdicts:
            reasons.append("User has no active roles")
        elif not granted_by:
            reasons.append(f"No active role grants '{name}'")
        return PermissionCheckResult(
            user_id=user_id,
            permission=name,
            granted=bool(granted_by),
            granted_by=granted_by,
            verdicts=tuple(verdicts),
            denial_reasons=tuple(reasons),
        )

    async def get_user_permission_summary(self, user_id: str) -> UserPermissionSummary:
        """Effective roles and permissions, with permission names grouped by category."""
        roles = ()
        if self._uow is not None:
            async with self._uow() as repos:
                roles = tuple(await repos.user_roles.get_user_roles(user_id, now=utc_now()))
        permissions = await self.permission_resolver.get_effective_permissions(user_id)
        by_category: dict[str, list[str]] = {}
        for p in permissions:
            by_category.setdefault(p.category, []).append(p.name)
        return UserPermissionSummary(
            user_id=user_id,
            roles=roles,
            permissions=tuple(sorted({p.name for p in permissions})),
            permissions_by_category={k: sorted(v) for k, v in sorted(by_category.items())},
        )

    async def require_permission(self, user_id: str, permission: str) -> None:
        """Raise PermissionDeniedException if user lacks permission."""
        if not await self.check_permission(user_id, permission):
            logger.info("Permission denied: user=%s permission=%s", user_id, permission)
            raise PermissionDeniedException(user_id, _normalize(permission))

    async def invalidate_user_cache(self, user_id: str) -> None:
        """Invalidate cached permissions for one user."""
        await self.permission_cache.invalidate_user(user_id)

    async def invalidate_all(self) -> None:
        """Invalidate all cached permissions."""
        await self.permission_cache.invalidate_all()
