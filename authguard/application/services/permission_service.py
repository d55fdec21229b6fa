"""Permission catalog service: resource.action permissions grouped by category.

Names are generated as ``resource.action`` in lower case and must match
``^[a-z]+\\.[a-z]+$``. System permissions are immutable; a permission
still granted to a role cannot be deleted.
"""

from __future__ import annotations

import logging
import re

from authguard.application.dtos.permission import (
    PermissionCreate,
    PermissionResult,
    PermissionStats,
    PermissionUpdate,
)
from authguard.application.interfaces.repositories import IUnitOfWork
from authguard.application.services.permission_cache import PermissionCache
from authguard.domain.enums import PermissionAction
from authguard.domain.exceptions import (
    ResourceInUseException,
    ResourceNotFoundException,
    SystemEntityImmutableException,
    ValidationException,
)
from authguard.shared.context import get_current_actor_id
from authguard.shared.locks import KeyedLock, write_locks

logger = logging.getLogger(__name__)

_PERMISSION_NAME_RE = re.compile(r"^[a-z]+\.[a-z]+$")

# Category for each seeded resource; unknown resources fall into "Other".
RESOURCE_CATEGORIES: dict[str, str] = {
    "users": "User Management",
    "roles": "User Management",
    "permissions": "User Management",
    "profiles": "Personal Profile",
    "educations": "Personal Profile",
    "workexperiences": "Personal Profile",
    "skills": "Personal Profile",
    "portfolios": "Personal Profile",
    "contactmethods": "Personal Profile",
    "calendarevents": "Task Management",
    "todoitems": "Task Management",
    "worktasks": "Task Management",
    "blogposts": "Content Management",
    "guestbook": "Content Management",
    "files": "File Management",
    "system": "System Management",
}
DEFAULT_CATEGORY = "Other"

_COLLECTION_LOCK = "permission"


def _action_value(action: str | PermissionAction) -> str:
    return action.value if isinstance(action, PermissionAction) else str(action)


def generate_permission_name(resource: str, action: str | PermissionAction) -> str:
    """Return the canonical ``resource.action`` name, lower-cased."""
    return f"{resource.strip().lower()}.{_action_value(action).strip().lower()}"


def is_valid_permission_name(name: str) -> bool:
    """True if name has the form resource.action using lower-case letters only."""
    return bool(_PERMISSION_NAME_RE.fullmatch(name))


def category_for_resource(resource: str) -> str:
    """Return the catalog category for a resource."""
    return RESOURCE_CATEGORIES.get(resource.lower(), DEFAULT_CATEGORY)


def default_display_name(resource: str, action: str | PermissionAction) -> str:
    """Human-readable name, e.g. ('blogposts', 'publish') -> 'Publish Blogposts'."""
    return f"{_action_value(action).capitalize()} {resource.capitalize()}"


class PermissionService:
    """Create, update, delete, and query the permission catalog."""

    def __init__(
        self,
        uow: IUnitOfWork,
        permission_cache: PermissionCache | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        self._uow = uow
        self._permission_cache = permission_cache or PermissionCache(None)
        self._locks = locks or write_locks

    async def create_permission(self, data: PermissionCreate) -> PermissionResult:
        """Create a permission.

        Raises:
            ValidationException: Malformed or duplicate name, unknown action.
        """
        resource = data.resource.strip().lower()
        action = data.action.strip().lower()
        if action not in PermissionAction.values():
            raise ValidationException(f"Unknown permission action: {data.action}", field="action")
        name = (data.name or generate_permission_name(resource, action)).strip().lower()
        if not is_valid_permission_name(name):
            raise ValidationException(
                f"Invalid permission name '{name}'; expected resource.action", field="name"
            )
        async with self._locks.hold(_COLLECTION_LOCK):
            async with self._uow() as repos:
                if await repos.permissions.name_exists(name):
                    raise ValidationException(f"Permission '{name}' already exists", field="name")
                created = await repos.permissions.create_permission(
                    name=name,
                    display_name=data.display_name or default_display_name(resource, action),
                    description=data.description,
                    category=data.category or category_for_resource(resource),
                    resource=resource,
                    action=action,
                    is_system=data.is_system,
                    created_by=get_current_actor_id(),
                )
        logger.info("Permission created: %s", created.name)
        return created

    async def update_permission(
        self, permission_id: str, data: PermissionUpdate
    ) -> PermissionResult:
        """Update display fields or the active flag of a non-system permission."""
        async with self._locks.hold(_COLLECTION_LOCK):
            async with self._uow() as repos:
                entity = await repos.permissions.get_entity_by_id(permission_id)
                if entity is None:
                    raise ResourceNotFoundException("permission", permission_id)
                if entity.is_system:
                    raise SystemEntityImmutableException("permission", permission_id)
                if data.display_name is not None:
                    entity.display_name = data.display_name
                if data.description is not None:
                    entity.description = data.description
                if data.category is not None:
                    entity.category = data.category
                active_changed = (
                    data.is_active is not None and data.is_active != entity.is_active
                )
                if data.is_active is not None:
                    entity.is_active = data.is_active
                entity.updated_by = get_current_actor_id()
                await repos.permissions.update(entity)
                result = await repos.permissions.get_by_id_result(permission_id)
            if active_changed:
                await self._permission_cache.invalidate_all()
        return result

    async def delete_permission(self, permission_id: str) -> None:
        """Soft-delete a permission.

        Raises:
            ResourceNotFoundException: Unknown id.
            SystemEntityImmutableException: System permission.
            ResourceInUseException: An active grant still references it.
        """
        async with self._locks.hold(_COLLECTION_LOCK):
            async with self._uow() as repos:
                entity = await repos.permissions.get_entity_by_id(permission_id)
                if entity is None:
                    raise ResourceNotFoundException("permission", permission_id)
                if entity.is_system:
                    raise SystemEntityImmutableException("permission", permission_id)
                in_use = await repos.role_permissions.count_active_for_permission(permission_id)
                if in_use:
                    raise ResourceInUseException("permission", permission_id, in_use)
                await repos.permissions.soft_delete(entity, deleted_by=get_current_actor_id())
            await self._permission_cache.invalidate_all()
        logger.info("Permission deleted: %s", permission_id)

    async def get_permission(self, permission_id: str) -> PermissionResult:
        async with self._uow() as repos:
            result = await repos.permissions.get_by_id_result(permission_id)
        if result is None:
            raise ResourceNotFoundException("permission", permission_id)
        return result

    async def get_permission_by_name(self, name: str) -> PermissionResult | None:
        async with self._uow() as repos:
            return await repos.permissions.get_by_name(name.strip())

    async def list_permissions(
        self, *, active_only: bool = False, category: str | None = None
    ) -> list[PermissionResult]:
        async with self._uow() as repos:
            return await repos.permissions.list_permissions(
                active_only=active_only, category=category
            )

    async def get_permissions_by_category(self) -> dict[str, list[PermissionResult]]:
        """Active permissions grouped by category (categories sorted)."""
        grouped: dict[str, list[PermissionResult]] = {}
        for permission in await self.list_permissions(active_only=True):
            grouped.setdefault(permission.category, []).append(permission)
        return dict(sorted(grouped.items()))

    async def search_permissions(self, term: str, limit: int = 50) -> list[PermissionResult]:
        if not term.strip():
            return []
        async with self._uow() as repos:
            return await repos.permissions.search(term.strip(), limit=limit)

    async def permission_name_exists(self, name: str, exclude_id: str | None = None) -> bool:
        async with self._uow() as repos:
            return await repos.permissions.name_exists(name.strip(), exclude_id=exclude_id)

    async def get_permission_stats(self) -> PermissionStats:
        async with self._uow() as repos:
            return await repos.permissions.get_stats()
