"""UserRole repository: user-role assignments and their history."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from authguard.application.dtos.role import UserRoleResult, UserRoleStats
from authguard.infrastructure.persistence.models.role import Role
from authguard.infrastructure.persistence.models.user_role import UserRole
from authguard.infrastructure.persistence.repositories.base import BaseRepository
from authguard.shared.utils.datetime import ensure_utc


def _user_role_to_result(ur: UserRole, role: Role) -> UserRoleResult:
    """Map ORM UserRole (with its Role) to application UserRoleResult."""
    return UserRoleResult(
        id=ur.id,
        user_id=ur.user_id,
        role_id=ur.role_id,
        role_name=role.name,
        role_priority=role.priority,
        is_primary=ur.is_primary,
        is_active=ur.is_active,
        valid_from=ensure_utc(ur.valid_from),
        valid_to=ensure_utc(ur.valid_to),
        assigned_by=ur.assigned_by,
        assignment_reason=ur.assignment_reason,
        created_at=ensure_utc(ur.created_at),
    )


def effective_assignment(now: datetime):
    """SQL condition: assignment active and now inside [valid_from, valid_to]."""
    return and_(
        UserRole.is_active.is_(True),
        or_(UserRole.valid_from.is_(None), UserRole.valid_from <= now),
        or_(UserRole.valid_to.is_(None), UserRole.valid_to >= now),
    )


class UserRoleRepository(BaseRepository[UserRole]):
    """User-role link table. Deactivation only; rows are the audit trail."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, UserRole)

    async def get_active_entities(self, user_id: str) -> list[UserRole]:
        result = await self.db.execute(
            select(UserRole).where(
                UserRole.user_id == user_id, UserRole.is_active.is_(True)
            )
        )
        return list(result.scalars().all())

    async def get_user_roles(
        self,
        user_id: str,
        *,
        now: datetime | None = None,
        include_inactive: bool = False,
    ) -> list[UserRoleResult]:
        """Return assignments joined with roles, primary first then by role priority.

        With now, only assignments effective at that instant (and live roles)
        are returned; include_inactive returns the full history instead.
        """
        query = (
            select(UserRole, Role)
            .join(Role, Role.id == UserRole.role_id)
            .where(UserRole.user_id == user_id)
        )
        if not include_inactive:
            query = query.where(UserRole.is_active.is_(True))
            if now is not None:
                query = query.where(
                    effective_assignment(now),
                    Role.is_active.is_(True),
                    Role.deleted_at.is_(None),
                )
        result = await self.db.execute(
            query.order_by(
                UserRole.is_active.desc(),
                UserRole.is_primary.desc(),
                Role.priority,
                UserRole.created_at,
            )
        )
        return [_user_role_to_result(ur, role) for ur, role in result.all()]

    async def add_assignment(
        self,
        *,
        user_id: str,
        role_id: str,
        is_primary: bool,
        valid_from: datetime | None,
        valid_to: datetime | None,
        assigned_by: str | None,
        assignment_reason: str | None,
    ) -> UserRole:
        return await self.create(
            UserRole(
                user_id=user_id,
                role_id=role_id,
                is_primary=is_primary,
                is_active=True,
                valid_from=valid_from,
                valid_to=valid_to,
                assigned_by=assigned_by,
                assignment_reason=assignment_reason,
            )
        )

    async def deactivate(
        self,
        user_id: str,
        *,
        role_id: str | None = None,
        updated_by: str | None = None,
    ) -> int:
        """Deactivate the user's active assignments (optionally for one role)."""
        stmt = update(UserRole).where(
            UserRole.user_id == user_id, UserRole.is_active.is_(True)
        )
        if role_id is not None:
            stmt = stmt.where(UserRole.role_id == role_id)
        result = await self.db.execute(
            stmt.values(
                is_active=False,
                is_primary=False,
                updated_by=updated_by,
                version=UserRole.version + 1,
            ).execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def count_active_for_role(self, role_id: str) -> int:
        return (
            await self.db.scalar(
                select(func.count(UserRole.id)).where(
                    UserRole.role_id == role_id, UserRole.is_active.is_(True)
                )
            )
            or 0
        )

    async def get_role_user_ids(self, role_id: str, now: datetime) -> list[str]:
        result = await self.db.execute(
            select(UserRole.user_id)
            .where(UserRole.role_id == role_id, effective_assignment(now))
            .distinct()
            .order_by(UserRole.user_id)
        )
        return [row[0] for row in result.fetchall()]

    async def get_user_ids_for_roles(self, role_ids: list[str]) -> set[str]:
        if not role_ids:
            return set()
        result = await self.db.execute(
            select(UserRole.user_id).where(
                UserRole.role_id.in_(role_ids), UserRole.is_active.is_(True)
            )
        )
        return {row[0] for row in result.fetchall()}

    async def find_expired(self, now: datetime) -> list[tuple[str, str]]:
        """Return (id, user_id) of active assignments whose valid_to has passed."""
        result = await self.db.execute(
            select(UserRole.id, UserRole.user_id).where(
                UserRole.is_active.is_(True),
                UserRole.valid_to.is_not(None),
                UserRole.valid_to < now,
            )
        )
        return [(row[0], row[1]) for row in result.fetchall()]

    async def expire(self, assignment_ids: list[str], now: datetime) -> int:
        """Deactivate the given assignments, re-checking active and expired at write time."""
        if not assignment_ids:
            return 0
        result = await self.db.execute(
            update(UserRole)
            .where(
                UserRole.id.in_(assignment_ids),
                UserRole.is_active.is_(True),
                UserRole.valid_to.is_not(None),
                UserRole.valid_to < now,
            )
            .values(is_active=False, is_primary=False, version=UserRole.version + 1)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def count_users_per_role(self) -> dict[str, int]:
        result = await self.db.execute(
            select(Role.name, func.count(func.distinct(UserRole.user_id)))
            .select_from(Role)
            .outerjoin(
                UserRole, and_(UserRole.role_id == Role.id, UserRole.is_active.is_(True))
            )
            .where(Role.deleted_at.is_(None))
            .group_by(Role.name)
        )
        return {name: count for name, count in result.fetchall()}

    async def get_stats(self) -> UserRoleStats:
        total = await self.db.scalar(select(func.count(UserRole.id))) or 0
        active = (
            await self.db.scalar(
                select(func.count(UserRole.id)).where(UserRole.is_active.is_(True))
            )
            or 0
        )
        users = (
            await self.db.scalar(
                select(func.count(func.distinct(UserRole.user_id))).where(
                    UserRole.is_active.is_(True)
                )
            )
            or 0
        )
        primary = (
            await self.db.scalar(
                select(func.count(UserRole.id)).where(
                    UserRole.is_active.is_(True), UserRole.is_primary.is_(True)
                )
            )
            or 0
        )
        return UserRoleStats(
            total_assignments=total,
            active_assignments=active,
            users_with_active_roles=users,
            primary_assignments=primary,
        )
