"""Integration tests for seeding the permission catalog and default roles."""

import pytest

from authguard.application.dtos.role import RoleUpdate
from authguard.domain.exceptions import SystemEntityImmutableException


async def test_seed_creates_catalog_and_roles(services) -> None:
    counts = await services.bootstrap.seed()
    assert counts == {"permissions": 160, "roles": 3}

    stats = await services.permissions.get_permission_stats()
    assert stats.total == 160
    assert stats.system == 160
    assert stats.by_category["User Management"] == 30

    roles = await services.roles.list_roles()
    assert [(r.name, r.priority) for r in roles] == [
        ("SuperAdmin", 1),
        ("Admin", 10),
        ("User", 100),
    ]
    assert all(r.is_system for r in roles)


async def test_seed_is_idempotent(services) -> None:
    await services.bootstrap.seed()
    assert await services.bootstrap.seed() == {"permissions": 0, "roles": 0}
    assert (await services.permissions.get_permission_stats()).total == 160


async def test_default_role_grants(services) -> None:
    await services.bootstrap.seed()
    by_name = {r.name: r for r in await services.roles.list_roles()}

    superadmin = await services.roles.get_role_permissions(by_name["SuperAdmin"].id)
    admin = await services.roles.get_role_permissions(by_name["Admin"].id)
    user = await services.roles.get_role_permissions(by_name["User"].id)

    assert len(superadmin) == 160
    assert len(admin) == 150
    assert not any(p.resource == "system" for p in admin)
    assert len(user) == 16
    assert {p.action for p in user} == {"read"}


async def test_seeded_roles_drive_authorization(services) -> None:
    await services.bootstrap.seed()
    admin = await services.roles.get_role_by_name("Admin")
    await services.user_roles.assign_roles("user-1", [admin.id])
    auth = services.authorization
    assert await auth.check_permission("user-1", "users.delete")
    assert not await auth.check_permission("user-1", "system.manage")


async def test_seeded_roles_are_protected(services) -> None:
    await services.bootstrap.seed()
    admin = await services.roles.get_role_by_name("Admin")
    with pytest.raises(SystemEntityImmutableException):
        await services.roles.update_role(admin.id, RoleUpdate(priority=2))
