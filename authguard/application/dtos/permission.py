"""DTOs for the permission catalog (no dependency on ORM)."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class PermissionResult:
    """Permission read-model."""

    id: str
    name: str
    display_name: str
    description: str | None
    category: str
    resource: str
    action: str
    is_system: bool
    is_active: bool
    created_at: datetime | None = None


@dataclass(frozen=True)
class PermissionCreate:
    """Input for creating a permission. name defaults to resource.action."""

    resource: str
    action: str
    display_name: str | None = None
    description: str | None = None
    category: str | None = None
    name: str | None = None
    is_system: bool = False


@dataclass(frozen=True)
class PermissionUpdate:
    """Partial update; None leaves a field unchanged."""

    display_name: str | None = None
    description: str | None = None
    category: str | None = None
    is_active: bool | None = None


@dataclass(frozen=True)
class PermissionStats:
    """Catalog statistics."""

    total: int
    active: int
    system: int
    by_category: dict[str, int] = field(default_factory=dict)
