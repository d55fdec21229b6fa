"""Resolves user permissions from DB (implements IPermissionResolver).

Effective permissions come from the user's active assignments whose
validity window contains now, through active grants, to active
permissions. Roles must be active and not deleted. Role.priority plays
no part: there is no inheritance between roles.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authguard.application.dtos.authorization import RoleGrantVerdict
from authguard.application.dtos.permission import PermissionResult
from authguard.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
)
from authguard.infrastructure.persistence.models.role import Role
from authguard.infrastructure.persistence.models.user_role import UserRole
from authguard.infrastructure.persistence.repositories.permission_repo import (
    _permission_to_result,
)
from authguard.infrastructure.persistence.repositories.user_role_repo import (
    effective_assignment,
)
from authguard.shared.telemetry import traced
from authguard.shared.utils.datetime import utc_now


def _live_role():
    return and_(Role.is_active.is_(True), Role.deleted_at.is_(None))


def _live_permission():
    return and_(Permission.is_active.is_(True), Permission.deleted_at.is_(None))


class PermissionResolver:
    """Resolves user permissions by querying user roles, grants and permissions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def _effective_permissions_query(self, user_id: str, *columns):
        return (
            select(*(columns or (Permission,)))
            .select_from(UserRole)
            .join(Role, Role.id == UserRole.role_id)
            .join(
                RolePermission,
                and_(
                    RolePermission.role_id == UserRole.role_id,
                    RolePermission.is_active.is_(True),
                ),
            )
            .join(Permission, Permission.id == RolePermission.permission_id)
            .where(
                UserRole.user_id == user_id,
                effective_assignment(self._clock()),
                _live_role(),
                _live_permission(),
            )
            .distinct()
        )

    @traced("permission_resolver.get_user_permissions")
    async def get_user_permissions(self, user_id: str) -> set[str]:
        """Return lower-cased permission names granted by the user's effective roles."""
        async with self._session_factory() as db:
            result = await db.execute(
                self._effective_permissions_query(user_id, Permission.name)
            )
            return {row[0].lower() for row in result.fetchall()}

    async def get_effective_permissions(self, user_id: str) -> list[PermissionResult]:
        async with self._session_factory() as db:
            result = await db.execute(
                self._effective_permissions_query(user_id).order_by(Permission.name)
            )
            return [_permission_to_result(p) for p in result.scalars().all()]

    async def get_role_grants(
        self, user_id: str, permission_name: str
    ) -> list[RoleGrantVerdict]:
        """One verdict per effective role of the user, ordered by role priority."""
        target = permission_name.strip().lower()
        async with self._session_factory() as db:
            roles = await db.execute(
                select(Role.id, Role.name)
                .join(UserRole, UserRole.role_id == Role.id)
                .where(
                    UserRole.user_id == user_id,
                    effective_assignment(self._clock()),
                    _live_role(),
                )
                .distinct()
                .order_by(Role.priority, Role.name)
            )
            role_rows = roles.fetchall()
            if not role_rows:
                return []
            granting = await db.execute(
                select(RolePermission.role_id)
                .join(Permission, Permission.id == RolePermission.permission_id)
                .where(
                    RolePermission.role_id.in_([row[0] for row in role_rows]),
                    RolePermission.is_active.is_(True),
                    _live_permission(),
                    Permission.name == target,
                )
            )
            granting_ids = {row[0] for row in granting.fetchall()}
        return [
            RoleGrantVerdict(role_id=role_id, role_name=name, granted=role_id in granting_ids)
            for role_id, name in role_rows
        ]
