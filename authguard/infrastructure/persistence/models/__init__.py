"""ORM models. Import from here so every table is registered on Base.metadata."""

from authguard.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
)
from authguard.infrastructure.persistence.models.role import Role
from authguard.infrastructure.persistence.models.security_activity import (
    SecurityActivityLog,
)
from authguard.infrastructure.persistence.models.session import UserSession
from authguard.infrastructure.persistence.models.trusted_device import TrustedDevice
from authguard.infrastructure.persistence.models.user_role import UserRole

__all__ = [
    "Permission",
    "Role",
    "RolePermission",
    "SecurityActivityLog",
    "TrustedDevice",
    "UserRole",
    "UserSession",
]
