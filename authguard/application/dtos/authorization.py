"""DTOs for permission checks and summaries."""

from dataclasses import dataclass, field

from authguard.application.dtos.role import UserRoleResult


@dataclass(frozen=True)
class RoleGrantVerdict:
    """Whether one of the user's effective roles grants the checked permission."""

    role_id: str
    role_name: str
    granted: bool


@dataclass(frozen=True)
class PermissionCheckResult:
    """Detailed answer to check_permission_detailed (audit/debugging)."""

    user_id: str
    permission: str
    granted: bool
    granted_by: tuple[str, ...] = ()
    verdicts: tuple[RoleGrantVerdict, ...] = ()
    denial_reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class UserPermissionSummary:
    """A user's effective roles and permissions, grouped by category."""

    user_id: str
    roles: tuple[UserRoleResult, ...]
    permissions: tuple[str, ...]
    permissions_by_category: dict[str, list[str]] = field(default_factory=dict)
