"""Role application service: role store and the role-permission graph."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from authguard.application.dtos.permission import PermissionResult
from authguard.application.dtos.role import RoleCreate, RoleResult, RoleStats, RoleUpdate
from authguard.application.interfaces.repositories import IUnitOfWork
from authguard.application.services.permission_cache import PermissionCache
from authguard.domain.exceptions import (
    ResourceInUseException,
    ResourceNotFoundException,
    SystemEntityImmutableException,
    ValidationException,
)
from authguard.shared.context import get_current_actor_id
from authguard.shared.locks import KeyedLock, write_locks

logger = logging.getLogger(__name__)

_ROLE_LOCK = "role"
_PERMISSION_LOCK = "permission"


class RoleService:
    """Create, update, delete roles and manage which permissions they grant.

    Role mutations hold the "role" write lock; graph mutations also hold
    "permission" (always acquired first) so a permission cannot be deleted
    while a grant to it is being written.
    """

    def __init__(
        self,
        uow: IUnitOfWork,
        permission_cache: PermissionCache | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        self._uow = uow
        self._permission_cache = permission_cache or PermissionCache(None)
        self._locks = locks or write_locks

    @asynccontextmanager
    async def _graph_lock(self) -> AsyncIterator[None]:
        async with self._locks.hold(_PERMISSION_LOCK):
            async with self._locks.hold(_ROLE_LOCK):
                yield

    @staticmethod
    def _clean_name(name: str | None) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationException("Role name is required", field="name")
        return cleaned

    async def _get_mutable_role(self, repos, role_id: str):
        entity = await repos.roles.get_entity_by_id(role_id)
        if entity is None:
            raise ResourceNotFoundException("role", role_id)
        if entity.is_system:
            raise SystemEntityImmutableException("role", role_id)
        return entity

    # -- role store -------------------------------------------------------

    async def create_role(self, data: RoleCreate) -> RoleResult:
        """Create a role.

        Raises:
            ValidationException: Empty or duplicate (case-insensitive) name.
        """
        name = self._clean_name(data.name)
        async with self._locks.hold(_ROLE_LOCK):
            async with self._uow() as repos:
                if await repos.roles.name_exists(name):
                    raise ValidationException(f"Role '{name}' already exists", field="name")
                created = await repos.roles.create_role(
                    name=name,
                    display_name=data.display_name or name,
                    description=data.description,
                    priority=data.priority,
                    is_system=data.is_system,
                    created_by=get_current_actor_id(),
                )
        logger.info("Role created: %s", created.name)
        return created

    async def update_role(self, role_id: str, data: RoleUpdate) -> RoleResult:
        """Update a non-system role; a new name must stay unique."""
        async with self._locks.hold(_ROLE_LOCK):
            async with self._uow() as repos:
                entity = await self._get_mutable_role(repos, role_id)
                if data.name is not None:
                    name = self._clean_name(data.name)
                    if await repos.roles.name_exists(name, exclude_id=role_id):
                        raise ValidationException(
                            f"Role '{name}' already exists", field="name"
                        )
                    entity.name = name
                if data.display_name is not None:
                    entity.display_name = data.display_name
                if data.description is not None:
                    entity.description = data.description
                if data.priority is not None:
                    entity.priority = data.priority
                active_changed = (
                    data.is_active is not None and data.is_active != entity.is_active
                )
                if data.is_active is not None:
                    entity.is_active = data.is_active
                entity.updated_by = get_current_actor_id()
                await repos.roles.update(entity)
                result = await repos.roles.get_by_id_result(role_id)
            if active_changed:
                await self._permission_cache.invalidate_all()
        return result

    async def delete_role(self, role_id: str) -> None:
        """Soft-delete a role and deactivate its grants.

        Raises:
            ResourceNotFoundException: Unknown id.
            SystemEntityImmutableException: System role.
            ResourceInUseException: A user still holds the role.
        """
        async with self._graph_lock():
            async with self._uow() as repos:
                entity = await self._get_mutable_role(repos, role_id)
                holders = await repos.user_roles.count_active_for_role(role_id)
                if holders:
                    raise ResourceInUseException("role", role_id, holders)
                revoked = await repos.role_permissions.revoke_all_for_role(role_id)
                await repos.roles.soft_delete(entity, deleted_by=get_current_actor_id())
            await self._permission_cache.invalidate_all()
        logger.info("Role deleted: %s (%s grants deactivated)", role_id, revoked)

    async def get_role(self, role_id: str) -> RoleResult:
        async with self._uow() as repos:
            result = await repos.roles.get_by_id_result(role_id)
        if result is None:
            raise ResourceNotFoundException("role", role_id)
        return result

    async def get_role_by_name(self, name: str) -> RoleResult | None:
        async with self._uow() as repos:
            return await repos.roles.get_by_name(name.strip())

    async def list_roles(self, *, active_only: bool = False) -> list[RoleResult]:
        async with self._uow() as repos:
            return await repos.roles.list_roles(active_only=active_only)

    async def search_roles(self, term: str, limit: int = 50) -> list[RoleResult]:
        if not term.strip():
            return []
        async with self._uow() as repos:
            return await repos.roles.search(term.strip(), limit=limit)

    async def role_name_exists(self, name: str, exclude_id: str | None = None) -> bool:
        async with self._uow() as repos:
            return await repos.roles.name_exists(name.strip(), exclude_id=exclude_id)

    async def get_role_stats(self) -> RoleStats:
        async with self._uow() as repos:
            counts = await repos.roles.count_roles()
            users_per_role = await repos.user_roles.count_users_per_role()
        return RoleStats(
            total=counts["total"],
            active=counts["active"],
            system=counts["system"],
            custom=counts["total"] - counts["system"],
            users_per_role=users_per_role,
        )

    # -- role-permission graph -------------------------------------------

    async def _require_role(self, repos, role_id: str):
        entity = await repos.roles.get_entity_by_id(role_id)
        if entity is None:
            raise ResourceNotFoundException("role", role_id)
        return entity

    async def _require_permissions(self, repos, permission_ids: list[str]) -> None:
        found = {p.id for p in await repos.permissions.get_entities_by_ids(permission_ids)}
        missing = sorted(set(permission_ids) - found)
        if missing:
            raise ValidationException(
                f"Unknown permission ids: {', '.join(missing)}", field="permission_ids"
            )

    async def assign_permissions_to_role(
        self, role_id: str, permission_ids: list[str]
    ) -> list[PermissionResult]:
        """Replace the role's active grants with exactly permission_ids.

        Grants outside the new set are deactivated; existing inactive grants
        in the set are reactivated rather than duplicated.
        """
        wanted = list(dict.fromkeys(permission_ids))
        actor = get_current_actor_id()
        async with self._graph_lock():
            async with self._uow() as repos:
                await self._require_role(repos, role_id)
                await self._require_permissions(repos, wanted)
                await repos.role_permissions.revoke_all_for_role(role_id, keep=set(wanted))
                for permission_id in wanted:
                    await repos.role_permissions.grant(role_id, permission_id, granted_by=actor)
                result = await repos.role_permissions.get_permissions_for_role(role_id)
            await self._permission_cache.invalidate_all()
        logger.info("Role %s now grants %s permissions", role_id, len(wanted))
        return result

    async def grant_permission(self, role_id: str, permission_id: str) -> bool:
        """Grant one permission. Returns False if it was already granted."""
        async with self._graph_lock():
            async with self._uow() as repos:
                await self._require_role(repos, role_id)
                await self._require_permissions(repos, [permission_id])
                changed = await repos.role_permissions.grant(
                    role_id, permission_id, granted_by=get_current_actor_id()
                )
            if changed:
                await self._permission_cache.invalidate_all()
        return changed

    async def revoke_permission(self, role_id: str, permission_id: str) -> bool:
        """Revoke one permission. Returns False if it was not granted."""
        async with self._graph_lock():
            async with self._uow() as repos:
                await self._require_role(repos, role_id)
                changed = await repos.role_permissions.revoke(role_id, permission_id)
            if changed:
                await self._permission_cache.invalidate_all()
        return changed

    async def remove_all_permissions(self, role_id: str) -> int:
        """Deactivate every grant of the role. Returns the number deactivated."""
        async with self._graph_lock():
            async with self._uow() as repos:
                await self._require_role(repos, role_id)
                count = await repos.role_permissions.revoke_all_for_role(role_id)
            if count:
                await self._permission_cache.invalidate_all()
        return count

    async def get_role_permissions(
        self, role_id: str, *, active_only: bool = True
    ) -> list[PermissionResult]:
        async with self._uow() as repos:
            await self._require_role(repos, role_id)
            return await repos.role_permissions.get_permissions_for_role(
                role_id, active_only=active_only
            )
