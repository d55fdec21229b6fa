"""Permission repository. Read methods return PermissionResult (DTO); entity getters return ORM for writes."""

from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authguard.application.dtos.permission import PermissionResult, PermissionStats
from authguard.domain.exceptions import ValidationException
from authguard.infrastructure.persistence.models.permission import Permission
from authguard.infrastructure.persistence.repositories.base import BaseRepository
from authguard.shared.utils.datetime import ensure_utc, utc_now


def _permission_to_result(p: Permission) -> PermissionResult:
    """Map ORM Permission to application PermissionResult."""
    return PermissionResult(
        id=p.id,
        name=p.name,
        display_name=p.display_name,
        description=p.description,
        category=p.category,
        resource=p.resource,
        action=p.action,
        is_system=p.is_system,
        is_active=p.is_active,
        created_at=ensure_utc(p.created_at),
    )


class PermissionRepository(BaseRepository[Permission]):
    """Permission catalog. Soft-deleted rows are invisible to every read."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Permission)

    def _live(self):
        return select(Permission).where(Permission.deleted_at.is_(None))

    async def get_entity_by_id(self, permission_id: str) -> Permission | None:
        result = await self.db.execute(self._live().where(Permission.id == permission_id))
        return result.scalar_one_or_none()

    async def get_entities_by_ids(self, permission_ids: list[str]) -> list[Permission]:
        if not permission_ids:
            return []
        result = await self.db.execute(
            self._live().where(Permission.id.in_(permission_ids))
        )
        return list(result.scalars().all())

    async def get_by_id_result(self, permission_id: str) -> PermissionResult | None:
        entity = await self.get_entity_by_id(permission_id)
        return _permission_to_result(entity) if entity else None

    async def get_by_name(self, name: str) -> PermissionResult | None:
        """Case-insensitive lookup by resource.action name."""
        result = await self.db.execute(
            self._live().where(func.lower(Permission.name) == name.lower())
        )
        entity = result.scalar_one_or_none()
        return _permission_to_result(entity) if entity else None

    async def name_exists(self, name: str, exclude_id: str | None = None) -> bool:
        query = select(func.count(Permission.id)).where(
            Permission.deleted_at.is_(None),
            func.lower(Permission.name) == name.lower(),
        )
        if exclude_id:
            query = query.where(Permission.id != exclude_id)
        return (await self.db.scalar(query) or 0) > 0

    async def get_all_names(self) -> set[str]:
        result = await self.db.execute(
            select(Permission.name).where(Permission.deleted_at.is_(None))
        )
        return {row[0].lower() for row in result.fetchall()}

    async def list_permissions(
        self, *, active_only: bool = False, category: str | None = None
    ) -> list[PermissionResult]:
        query = self._live()
        if active_only:
            query = query.where(Permission.is_active.is_(True))
        if category:
            query = query.where(func.lower(Permission.category) == category.lower())
        result = await self.db.execute(
            query.order_by(Permission.category, Permission.resource, Permission.action)
        )
        return [_permission_to_result(p) for p in result.scalars().all()]

    async def search(self, term: str, limit: int = 50) -> list[PermissionResult]:
        """Match term against name, display name, and description (case-insensitive)."""
        pattern = f"%{term.lower()}%"
        result = await self.db.execute(
            self._live()
            .where(
                or_(
                    func.lower(Permission.name).like(pattern),
                    func.lower(Permission.display_name).like(pattern),
                    func.lower(func.coalesce(Permission.description, "")).like(pattern),
                )
            )
            .order_by(Permission.name)
            .limit(limit)
        )
        return [_permission_to_result(p) for p in result.scalars().all()]

    async def create_permission(
        self,
        *,
        name: str,
        display_name: str,
        description: str | None,
        category: str,
        resource: str,
        action: str,
        is_system: bool = False,
        created_by: str | None = None,
    ) -> PermissionResult:
        """Create a permission; a concurrent duplicate surfaces as ValidationException."""
        permission = Permission(
            name=name,
            display_name=display_name,
            description=description,
            category=category,
            resource=resource,
            action=action,
            is_system=is_system,
            is_active=True,
            created_by=created_by,
        )
        try:
            created = await self.create(permission)
        except IntegrityError:
            raise ValidationException(
                f"Permission '{name}' already exists", field="name"
            ) from None
        return _permission_to_result(created)

    async def soft_delete(self, entity: Permission, deleted_by: str | None = None) -> None:
        entity.is_active = False
        entity.deleted_at = utc_now()
        entity.updated_by = deleted_by
        await self.update(entity)

    async def get_stats(self) -> PermissionStats:
        live = Permission.deleted_at.is_(None)
        total = await self.db.scalar(select(func.count(Permission.id)).where(live)) or 0
        active = (
            await self.db.scalar(
                select(func.count(Permission.id)).where(live, Permission.is_active.is_(True))
            )
            or 0
        )
        system = (
            await self.db.scalar(
                select(func.count(Permission.id)).where(live, Permission.is_system.is_(True))
            )
            or 0
        )
        rows = await self.db.execute(
            select(Permission.category, func.count(Permission.id))
            .where(live)
            .group_by(Permission.category)
        )
        return PermissionStats(
            total=total,
            active=active,
            system=system,
            by_category={category: count for category, count in rows.fetchall()},
        )
