"""RBAC bootstrap: seed the permission catalog and the default roles.

Both steps are idempotent. seed_permissions() creates one system
permission per (resource, action) pair and skips names that already
exist; seed_default_roles() creates each missing default role with its
grants and leaves existing roles untouched.
"""

from __future__ import annotations

import logging
from typing import TypedDict

from authguard.application.interfaces.repositories import IUnitOfWork
from authguard.application.services.permission_cache import PermissionCache
from authguard.application.services.permission_service import (
    RESOURCE_CATEGORIES,
    category_for_resource,
    default_display_name,
    generate_permission_name,
)
from authguard.domain.enums import PermissionAction
from authguard.shared.locks import KeyedLock, write_locks

logger = logging.getLogger(__name__)

SEED_RESOURCES: tuple[str, ...] = tuple(RESOURCE_CATEGORIES)


class RoleData(TypedDict):
    """Role configuration for default roles."""

    display_name: str
    description: str
    priority: int
    permissions: list[str]


DEFAULT_ROLES: dict[str, RoleData] = {
    "SuperAdmin": {
        "display_name": "Super Administrator",
        "description": "Full system access with all permissions",
        "priority": 1,
        "permissions": ["*.*"],
    },
    "Admin": {
        "display_name": "Administrator",
        "description": "Manages users and content; no system management",
        "priority": 10,
        "permissions": [f"{r}.*" for r in SEED_RESOURCES if r != "system"],
    },
    "User": {
        "display_name": "User",
        "description": "Read access to every resource",
        "priority": 100,
        "permissions": ["*.read"],
    },
}


def resolve_permission_pattern(pattern: str, names: dict[str, str]) -> list[str]:
    """Permission ids matching pattern: exact name, 'resource.*', '*.action' or '*.*'."""
    resource, _, action = pattern.lower().partition(".")
    matched = []
    for name, permission_id in names.items():
        name_resource, _, name_action = name.partition(".")
        if resource in ("*", name_resource) and action in ("*", name_action):
            matched.append(permission_id)
    return sorted(matched)


class RbacBootstrapService:
    """Seeds permissions and default roles through the unit of work."""

    def __init__(
        self,
        uow: IUnitOfWork,
        permission_cache: PermissionCache | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        self._uow = uow
        self._permission_cache = permission_cache or PermissionCache(None)
        self._locks = locks or write_locks

    async def seed_permissions(self) -> int:
        """Create missing resource.action permissions. Returns how many were created."""
        created = 0
        async with self._locks.hold("permission"):
            async with self._uow() as repos:
                existing = await repos.permissions.get_all_names()
                for resource in SEED_RESOURCES:
                    for action in PermissionAction:
                        name = generate_permission_name(resource, action)
                        if name in existing:
                            continue
                        await repos.permissions.create_permission(
                            name=name,
                            display_name=default_display_name(resource, action),
                            description=f"{action.value.capitalize()} access to {resource}",
                            category=category_for_resource(resource),
                            resource=resource,
                            action=action.value,
                            is_system=True,
                        )
                        created += 1
        if created:
            logger.info("Seeded %s permissions", created)
        return created

    async def seed_default_roles(self) -> list[str]:
        """Create missing default roles with their grants. Returns the created role names."""
        created: list[str] = []
        async with self._locks.hold("permission"), self._locks.hold("role"):
            async with self._uow() as repos:
                names = {
                    p.name: p.id
                    for p in await repos.permissions.list_permissions(active_only=True)
                }
                for role_name, data in DEFAULT_ROLES.items():
                    if await repos.roles.name_exists(role_name):
                        continue
                    role = await repos.roles.create_role(
                        name=role_name,
                        display_name=data["display_name"],
                        description=data["description"],
                        priority=data["priority"],
                        is_system=True,
                    )
                    permission_ids = {
                        pid
                        for pattern in data["permissions"]
                        for pid in resolve_permission_pattern(pattern, names)
                    }
                    for permission_id in sorted(permission_ids):
                        await repos.role_permissions.grant(role.id, permission_id)
                    created.append(role_name)
        if created:
            await self._permission_cache.invalidate_all()
            logger.info("Seeded default roles: %s", ", ".join(created))
        return created

    async def seed(self) -> dict[str, int]:
        """Seed permissions, then default roles."""
        permissions = await self.seed_permissions()
        roles = await self.seed_default_roles()
        return {"permissions": permissions, "roles": len(roles)}
