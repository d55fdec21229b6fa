"""Infrastructure implementations of application service interfaces."""

from authguard.infrastructure.services.maintenance_scheduler import (
    MaintenanceJob,
    MaintenanceScheduler,
)
from authguard.infrastructure.services.permission_resolver import PermissionResolver
from authguard.infrastructure.services.rbac_bootstrap_service import (
    RbacBootstrapService,
)

__all__ = [
    "MaintenanceJob",
    "MaintenanceScheduler",
    "PermissionResolver",
    "RbacBootstrapService",
]
