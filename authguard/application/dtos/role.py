"""DTOs for the role store and user-role assignments (no dependency on ORM)."""

from dataclasses import dataclass, field
from datetime import datetime

from authguard.core.constants import DEFAULT_ROLE_PRIORITY


@dataclass(frozen=True)
class RoleResult:
    """Role read-model."""

    id: str
    name: str
    display_name: str
    description: str | None
    priority: int
    is_system: bool
    is_active: bool
    created_at: datetime | None = None


@dataclass(frozen=True)
class RoleCreate:
    """Input for creating a role."""

    name: str
    display_name: str | None = None
    description: str | None = None
    priority: int = DEFAULT_ROLE_PRIORITY
    is_system: bool = False


@dataclass(frozen=True)
class RoleUpdate:
    """Partial update; None leaves a field unchanged."""

    name: str | None = None
    display_name: str | None = None
    description: str | None = None
    priority: int | None = None
    is_active: bool | None = None


@dataclass(frozen=True)
class RoleStats:
    """Role store statistics. users_per_role is keyed by role name."""

    total: int
    active: int
    system: int
    custom: int
    users_per_role: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class UserRoleResult:
    """User-role assignment read-model (joined with its role)."""

    id: str
    user_id: str
    role_id: str
    role_name: str
    role_priority: int
    is_primary: bool
    is_active: bool
    valid_from: datetime | None
    valid_to: datetime | None
    assigned_by: str | None
    assignment_reason: str | None
    created_at: datetime | None = None


@dataclass(frozen=True)
class UserRoleStats:
    """User-role statistics."""

    total_assignments: int
    active_assignments: int
    users_with_active_roles: int
    primary_assignments: int
