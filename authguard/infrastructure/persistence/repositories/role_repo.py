"""Role repository. Read methods return RoleResult (DTO); entity getters return ORM for writes."""

from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authguard.application.dtos.role import RoleResult
from authguard.domain.exceptions import ValidationException
from authguard.infrastructure.persistence.models.role import Role
from authguard.infrastructure.persistence.repositories.base import BaseRepository
from authguard.shared.utils.datetime import ensure_utc, utc_now


def _role_to_result(r: Role) -> RoleResult:
    """Map ORM Role to application RoleResult."""
    return RoleResult(
        id=r.id,
        name=r.name,
        display_name=r.display_name,
        description=r.description,
        priority=r.priority,
        is_system=r.is_system,
        is_active=r.is_active,
        created_at=ensure_utc(r.created_at),
    )


class RoleRepository(BaseRepository[Role]):
    """Role store. Soft-deleted rows are invisible to every read."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Role)

    def _live(self):
        return select(Role).where(Role.deleted_at.is_(None))

    async def get_entity_by_id(self, role_id: str) -> Role | None:
        result = await self.db.execute(self._live().where(Role.id == role_id))
        return result.scalar_one_or_none()

    async def get_entities_by_ids(self, role_ids: list[str]) -> list[Role]:
        if not role_ids:
            return []
        result = await self.db.execute(self._live().where(Role.id.in_(role_ids)))
        return list(result.scalars().all())

    async def get_by_id_result(self, role_id: str) -> RoleResult | None:
        entity = await self.get_entity_by_id(role_id)
        return _role_to_result(entity) if entity else None

    async def get_by_name(self, name: str) -> RoleResult | None:
        """Case-insensitive lookup by role name."""
        result = await self.db.execute(
            self._live().where(func.lower(Role.name) == name.lower())
        )
        entity = result.scalar_one_or_none()
        return _role_to_result(entity) if entity else None

    async def name_exists(self, name: str, exclude_id: str | None = None) -> bool:
        query = select(func.count(Role.id)).where(
            Role.deleted_at.is_(None), func.lower(Role.name) == name.lower()
        )
        if exclude_id:
            query = query.where(Role.id != exclude_id)
        return (await self.db.scalar(query) or 0) > 0

    async def list_roles(self, *, active_only: bool = False) -> list[RoleResult]:
        query = self._live()
        if active_only:
            query = query.where(Role.is_active.is_(True))
        result = await self.db.execute(query.order_by(Role.priority, Role.name))
        return [_role_to_result(r) for r in result.scalars().all()]

    async def search(self, term: str, limit: int = 50) -> list[RoleResult]:
        pattern = f"%{term.lower()}%"
        result = await self.db.execute(
            self._live()
            .where(
                or_(
                    func.lower(Role.name).like(pattern),
                    func.lower(Role.display_name).like(pattern),
                    func.lower(func.coalesce(Role.description, "")).like(pattern),
                )
            )
            .order_by(Role.priority, Role.name)
            .limit(limit)
        )
        return [_role_to_result(r) for r in result.scalars().all()]

    async def create_role(
        self,
        *,
        name: str,
        display_name: str,
        description: str | None,
        priority: int,
        is_system: bool = False,
        created_by: str | None = None,
    ) -> RoleResult:
        """Create a role; a concurrent duplicate surfaces as ValidationException."""
        role = Role(
            name=name,
            display_name=display_name,
            description=description,
            priority=priority,
            is_system=is_system,
            is_active=True,
            created_by=created_by,
        )
        try:
            created = await self.create(role)
        except IntegrityError:
            raise ValidationException(f"Role '{name}' already exists", field="name") from None
        return _role_to_result(created)

    async def soft_delete(self, entity: Role, deleted_by: str | None = None) -> None:
        entity.is_active = False
        entity.deleted_at = utc_now()
        entity.updated_by = deleted_by
        await self.update(entity)

    async def count_roles(self) -> dict[str, int]:
        live = Role.deleted_at.is_(None)
        total = await self.db.scalar(select(func.count(Role.id)).where(live)) or 0
        active = (
            await self.db.scalar(
                select(func.count(Role.id)).where(live, Role.is_active.is_(True))
            )
            or 0
        )
        system = (
            await self.db.scalar(
                select(func.count(Role.id)).where(live, Role.is_system.is_(True))
            )
            or 0
        )
        return {"total": total, "active": active, "system": system}
