"""User-role assignment: which users hold which roles, and for how long."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from authguard.application.dtos.role import UserRoleResult, UserRoleStats
from authguard.application.interfaces.repositories import IUnitOfWork
from authguard.application.services.permission_cache import PermissionCache
from authguard.domain.exceptions import ResourceNotFoundException, ValidationException
from authguard.shared.context import get_current_actor_id
from authguard.shared.locks import KeyedLock, write_locks
from authguard.shared.telemetry import add_span_attributes, traced
from authguard.shared.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

_ROLE_LOCK = "role"


def _user_lock(user_id: str) -> str:
    return f"user_role:{user_id}"


class UserRoleService:
    """Assign, remove and query user roles.

    Rows are never deleted: replacing or removing an assignment deactivates
    it. At most one active assignment per user is primary.
    """

    def __init__(
        self,
        uow: IUnitOfWork,
        permission_cache: PermissionCache | None = None,
        locks: KeyedLock | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._uow = uow
        self._permission_cache = permission_cache or PermissionCache(None)
        self._locks = locks or write_locks
        self._clock = clock

    @traced("user_role.assign_roles")
    async def assign_roles(
        self,
        user_id: str,
        role_ids: list[str],
        primary_role_id: str | None = None,
        valid_from: datetime | None = None,
        valid_to: datetime | None = None,
        assignment_reason: str | None = None,
    ) -> list[UserRoleResult]:
        """Replace the user's active assignments with one per role in role_ids.

        The assignment for primary_role_id is marked primary; with no
        primary_role_id none is.

        Raises:
            ValidationException: Invalid date range, primary not among
                role_ids, or an unknown/inactive role.
        """
        wanted = list(dict.fromkeys(role_ids))
        valid_from = ensure_utc(valid_from)
        valid_to = ensure_utc(valid_to)
        if valid_from and valid_to and valid_from > valid_to:
            raise ValidationException("valid_from must not be after valid_to", field="valid_to")
        if primary_role_id is not None and primary_role_id not in wanted:
            raise ValidationException(
                "primary_role_id must be one of role_ids", field="primary_role_id"
            )
        add_span_attributes(user_id=user_id, count=len(wanted))
        actor = get_current_actor_id()
        async with self._locks.hold(_ROLE_LOCK), self._locks.hold(_user_lock(user_id)):
            async with self._uow() as repos:
                roles = {r.id: r for r in await repos.roles.get_entities_by_ids(wanted)}
                unusable = [rid for rid in wanted if rid not in roles or not roles[rid].is_active]
                if unusable:
                    raise ValidationException(
                        f"Unknown or inactive roles: {', '.join(unusable)}", field="role_ids"
                    )
                replaced = await repos.user_roles.deactivate(user_id, updated_by=actor)
                for role_id in wanted:
                    await repos.user_roles.add_assignment(
                        user_id=user_id,
                        role_id=role_id,
                        is_primary=role_id == primary_role_id,
                        valid_from=valid_from,
                        valid_to=valid_to,
                        assigned_by=actor,
                        assignment_reason=assignment_reason,
                    )
                result = await repos.user_roles.get_user_roles(user_id)
            await self._permission_cache.invalidate_user(user_id)
        logger.info(
            "Assigned %s roles to user %s (replaced %s)", len(wanted), user_id, replaced
        )
        return result

    async def remove_role(self, user_id: str, role_id: str) -> bool:
        """Deactivate the user's assignment of role_id. Returns False if none was active."""
        async with self._locks.hold(_user_lock(user_id)):
            async with self._uow() as repos:
                count = await repos.user_roles.deactivate(
                    user_id, role_id=role_id, updated_by=get_current_actor_id()
                )
            if count:
                await self._permission_cache.invalidate_user(user_id)
        return count > 0

    async def remove_all_roles(self, user_id: str) -> int:
        """Deactivate every active assignment of the user."""
        async with self._locks.hold(_user_lock(user_id)):
            async with self._uow() as repos:
                count = await repos.user_roles.deactivate(
                    user_id, updated_by=get_current_actor_id()
                )
            if count:
                await self._permission_cache.invalidate_user(user_id)
        return count

    async def set_primary_role(self, user_id: str, role_id: str) -> UserRoleResult:
        """Make role_id the user's primary role.

        Raises:
            ResourceNotFoundException: The user has no active assignment for role_id.
        """
        actor = get_current_actor_id()
        async with self._locks.hold(_user_lock(user_id)):
            async with self._uow() as repos:
                assignments = await repos.user_roles.get_active_entities(user_id)
                target = next((a for a in assignments if a.role_id == role_id), None)
                if target is None:
                    raise ResourceNotFoundException("user_role", f"{user_id}:{role_id}")
                for assignment in assignments:
                    should_be_primary = assignment is target
                    if assignment.is_primary != should_be_primary:
                        assignment.is_primary = should_be_primary
                        assignment.updated_by = actor
                        await repos.user_roles.update(assignment)
                roles = await repos.user_roles.get_user_roles(user_id)
        return next(r for r in roles if r.id == target.id)

    async def get_user_roles(
        self, user_id: str, *, include_inactive: bool = False
    ) -> list[UserRoleResult]:
        """Effective assignments (primary first, then role priority), or full history."""
        async with self._uow() as repos:
            return await repos.user_roles.get_user_roles(
                user_id,
                now=None if include_inactive else self._clock(),
                include_inactive=include_inactive,
            )

    async def get_primary_role(self, user_id: str) -> UserRoleResult | None:
        """Primary effective assignment, falling back to the first one."""
        roles = await self.get_user_roles(user_id)
        if not roles:
            return None
        return next((r for r in roles if r.is_primary), roles[0])

    async def get_role_users(self, role_id: str) -> list[str]:
        """User ids holding role_id right now."""
        async with self._uow() as repos:
            if await repos.roles.get_entity_by_id(role_id) is None:
                raise ResourceNotFoundException("role", role_id)
            return await repos.user_roles.get_role_user_ids(role_id, self._clock())

    async def cleanup_expired_user_roles(self) -> int:
        """Deactivate assignments whose valid_to has passed. Safe to run concurrently."""
        now = self._clock()
        async with self._uow() as repos:
            candidates = await repos.user_roles.find_expired(now)
            expired = await repos.user_roles.expire([c[0] for c in candidates], now)
        if expired:
            await self._permission_cache.invalidate_users({c[1] for c in candidates})
            logger.info("Expired %s user role assignments", expired)
        return expired

    async def get_user_role_stats(self) -> UserRoleStats:
        async with self._uow() as repos:
            return await repos.user_roles.get_stats()
