"""RolePermission repository: role-permission grants (single entity responsibility)."""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from authguard.application.dtos.permission import PermissionResult
from authguard.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
)
from authguard.infrastructure.persistence.repositories.base import BaseRepository
from authguard.infrastructure.persistence.repositories.permission_repo import (
    _permission_to_result,
)
from authguard.shared.utils.datetime import utc_now


class RolePermissionRepository(BaseRepository[RolePermission]):
    """Grant edges between roles and permissions. Rows are toggled, never deleted."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, RolePermission)

    async def get_grant(self, role_id: str, permission_id: str) -> RolePermission | None:
        result = await self.db.execute(
            select(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_active_permission_ids(self, role_id: str) -> set[str]:
        result = await self.db.execute(
            select(RolePermission.permission_id).where(
                RolePermission.role_id == role_id,
                RolePermission.is_active.is_(True),
            )
        )
        return {row[0] for row in result.fetchall()}

    async def get_permissions_for_role(
        self, role_id: str, *, active_only: bool = True
    ) -> list[PermissionResult]:
        query = (
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(
                RolePermission.role_id == role_id,
                Permission.deleted_at.is_(None),
            )
        )
        if active_only:
            query = query.where(
                RolePermission.is_active.is_(True), Permission.is_active.is_(True)
            )
        result = await self.db.execute(query.order_by(Permission.name))
        return [_permission_to_result(p) for p in result.scalars().all()]

    async def grant(
        self, role_id: str, permission_id: str, granted_by: str | None = None
    ) -> bool:
        """Activate the (role, permission) edge. Returns True if anything changed.

        An existing inactive row is reactivated rather than duplicated.
        """
        existing = await self.get_grant(role_id, permission_id)
        if existing is None:
            await self.create(
                RolePermission(
                    role_id=role_id,
                    permission_id=permission_id,
                    is_active=True,
                    granted_by=granted_by,
                )
            )
            return True
        if existing.is_active:
            return False
        existing.is_active = True
        existing.granted_by = granted_by
        await self.update(existing)
        return True

    async def revoke(self, role_id: str, permission_id: str) -> bool:
        """Deactivate one edge. Returns True if it was active."""
        result = await self.db.execute(
            update(RolePermission)
            .where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
                RolePermission.is_active.is_(True),
            )
            .values(is_active=False, updated_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    async def revoke_all_for_role(
        self, role_id: str, *, keep: set[str] | None = None
    ) -> int:
        """Deactivate every active edge of role_id except permission ids in keep."""
        stmt = update(RolePermission).where(
            RolePermission.role_id == role_id,
            RolePermission.is_active.is_(True),
        )
        if keep:
            stmt = stmt.where(RolePermission.permission_id.not_in(keep))
        result = await self.db.execute(
            stmt.values(is_active=False, updated_at=utc_now()).execution_options(
                synchronize_session="fetch"
            )
        )
        return result.rowcount

    async def count_active_for_permission(self, permission_id: str) -> int:
        return (
            await self.db.scalar(
                select(func.count(RolePermission.id)).where(
                    RolePermission.permission_id == permission_id,
                    RolePermission.is_active.is_(True),
                )
            )
            or 0
        )
