"""Domain layer: exceptions and enums (no infrastructure imports)."""

from authguard.domain.enums import (
    DeviceType,
    FindingType,
    PermissionAction,
    RiskLevel,
    SecurityActivityType,
    SessionStatus,
)
from authguard.domain.exceptions import (
    AuthGuardException,
    ConcurrencyException,
    ConflictException,
    PermissionDeniedException,
    ResourceInUseException,
    ResourceNotFoundException,
    SecurityEvaluationException,
    SystemEntityImmutableException,
    ValidationException,
)

__all__ = [
    "AuthGuardException",
    "ConcurrencyException",
    "ConflictException",
    "DeviceType",
    "FindingType",
    "PermissionAction",
    "PermissionDeniedException",
    "ResourceInUseException",
    "ResourceNotFoundException",
    "RiskLevel",
    "SecurityActivityType",
    "SecurityEvaluationException",
    "SessionStatus",
    "SystemEntityImmutableException",
    "ValidationException",
]
