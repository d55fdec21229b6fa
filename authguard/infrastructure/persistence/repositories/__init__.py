"""Repositories (SQLAlchemy async). One repository per table."""

from authguard.infrastructure.persistence.repositories.base import BaseRepository
from authguard.infrastructure.persistence.repositories.permission_repo import (
    PermissionRepository,
)
from authguard.infrastructure.persistence.repositories.role_permission_repo import (
    RolePermissionRepository,
)
from authguard.infrastructure.persistence.repositories.role_repo import RoleRepository
from authguard.infrastructure.persistence.repositories.security_activity_repo import (
    SecurityActivityRepository,
)
from authguard.infrastructure.persistence.repositories.trusted_device_repo import (
    TrustedDeviceRepository,
)
from authguard.infrastructure.persistence.repositories.user_role_repo import (
    UserRoleRepository,
)
from authguard.infrastructure.persistence.repositories.user_session_repo import (
    UserSessionRepository,
)

__all__ = [
    "BaseRepository",
    "PermissionRepository",
    "RolePermissionRepository",
    "RoleRepository",
    "SecurityActivityRepository",
    "TrustedDeviceRepository",
    "UserRoleRepository",
    "UserSessionRepository",
]
