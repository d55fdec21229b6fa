"""Integration tests for user-role assignment."""

from datetime import timedelta

import pytest

from authguard.application.dtos.role import RoleCreate, RoleUpdate
from authguard.application.services.user_role_service import UserRoleService
from authguard.domain.exceptions import ResourceNotFoundException, ValidationException
from authguard.shared.utils.datetime import utc_now


async def _roles(services, *names: str):
    return [await services.roles.create_role(RoleCreate(name=n)) for n in names]


async def test_assign_roles_marks_primary(services) -> None:
    editor, viewer = await _roles(services, "Editor", "Viewer")
    assigned = await services.user_roles.assign_roles(
        "user-1", [viewer.id, editor.id], primary_role_id=editor.id, assignment_reason="onboarding"
    )
    assert [a.role_name for a in assigned] == ["Editor", "Viewer"]
    assert assigned[0].is_primary and not assigned[1].is_primary
    assert assigned[0].assignment_reason == "onboarding"
    assert (await services.user_roles.get_primary_role("user-1")).role_id == editor.id


async def test_assign_roles_replaces_previous_assignments(services) -> None:
    editor, viewer = await _roles(services, "Editor", "Viewer")
    await services.user_roles.assign_roles("user-1", [editor.id])
    await services.user_roles.assign_roles("user-1", [viewer.id])

    current = await services.user_roles.get_user_roles("user-1")
    assert [a.role_name for a in current] == ["Viewer"]
    history = await services.user_roles.get_user_roles("user-1", include_inactive=True)
    assert len(history) == 2
    assert [a.is_active for a in history] == [True, False]


async def test_assign_roles_validation(services) -> None:
    (editor,) = await _roles(services, "Editor")
    now = utc_now()
    with pytest.raises(ValidationException):
        await services.user_roles.assign_roles(
            "user-1", [editor.id], valid_from=now, valid_to=now - timedelta(days=1)
        )
    with pytest.raises(ValidationException):
        await services.user_roles.assign_roles("user-1", [editor.id], primary_role_id="other")
    with pytest.raises(ValidationException):
        await services.user_roles.assign_roles("user-1", ["missing-role"])


async def test_inactive_role_cannot_be_assigned(services) -> None:
    (editor,) = await _roles(services, "Editor")
    await services.roles.update_role(editor.id, RoleUpdate(is_active=False))
    with pytest.raises(ValidationException):
        await services.user_roles.assign_roles("user-1", [editor.id])


async def test_set_primary_role(services) -> None:
    editor, viewer = await _roles(services, "Editor", "Viewer")
    await services.user_roles.assign_roles("user-1", [editor.id, viewer.id], primary_role_id=editor.id)
    result = await services.user_roles.set_primary_role("user-1", viewer.id)
    assert result.is_primary
    roles = await services.user_roles.get_user_roles("user-1")
    assert [r.role_name for r in roles if r.is_primary] == ["Viewer"]

    with pytest.raises(ResourceNotFoundException):
        await services.user_roles.set_primary_role("user-2", viewer.id)


async def test_future_assignment_is_not_yet_effective(services) -> None:
    (editor,) = await _roles(services, "Editor")
    await services.user_roles.assign_roles(
        "user-1", [editor.id], valid_from=utc_now() + timedelta(days=1)
    )
    assert await services.user_roles.get_user_roles("user-1") == []
    assert await services.user_roles.get_primary_role("user-1") is None
    assert await services.user_roles.get_role_users(editor.id) == []


async def test_remove_role_and_remove_all(services) -> None:
    editor, viewer = await _roles(services, "Editor", "Viewer")
    await services.user_roles.assign_roles("user-1", [editor.id, viewer.id])
    assert await services.user_roles.remove_role("user-1", editor.id)
    assert not await services.user_roles.remove_role("user-1", editor.id)
    assert await services.user_roles.remove_all_roles("user-1") == 1
    assert await services.user_roles.get_user_roles("user-1") == []


async def test_get_role_users(services) -> None:
    (editor,) = await _roles(services, "Editor")
    await services.user_roles.assign_roles("user-b", [editor.id])
    await services.user_roles.assign_roles("user-a", [editor.id])
    assert await services.user_roles.get_role_users(editor.id) == ["user-a", "user-b"]
    with pytest.raises(ResourceNotFoundException):
        await services.user_roles.get_role_users("missing")


async def test_cleanup_expired_user_roles(services, uow, cache, later) -> None:
    editor, viewer = await _roles(services, "Editor", "Viewer")
    await services.user_roles.assign_roles(
        "user-1", [editor.id], valid_to=utc_now() + timedelta(hours=1)
    )
    await services.user_roles.assign_roles("user-2", [viewer.id])
    await cache.set("permission:user-1", ["stale"])

    assert await services.user_roles.cleanup_expired_user_roles() == 0

    sweeper = UserRoleService(uow, services.authorization.permission_cache, clock=later(hours=2))
    assert await sweeper.cleanup_expired_user_roles() == 1
    assert await sweeper.cleanup_expired_user_roles() == 0
    assert await cache.get("permission:user-1") is None

    stats = await services.user_roles.get_user_role_stats()
    assert stats.total_assignments == 2
    assert stats.active_assignments == 1
    assert stats.users_with_active_roles == 1
