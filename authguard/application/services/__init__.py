"""Application services: RBAC, authorization, device trust, sessions, risk."""

from authguard.application.services.authorization_service import AuthorizationService
from authguard.application.services.device_fingerprint_service import (
    DeviceFingerprintService,
)
from authguard.application.services.device_trust_service import DeviceTrustService
from authguard.application.services.permission_cache import PermissionCache
from authguard.application.services.permission_service import PermissionService
from authguard.application.services.risk_engine import RiskEngine, RiskPolicy
from authguard.application.services.role_service import RoleService
from authguard.application.services.security_activity_service import (
    SecurityActivityService,
)
from authguard.application.services.session_service import SessionService
from authguard.application.services.user_role_service import UserRoleService

__all__ = [
    "AuthorizationService",
    "DeviceFingerprintService",
    "DeviceTrustService",
    "PermissionCache",
    "PermissionService",
    "RiskEngine",
    "RiskPolicy",
    "RoleService",
    "SecurityActivityService",
    "SessionService",
    "UserRoleService",
]
