"""Domain exceptions for the authorization and session-security engine.

Defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns. The host
application maps them to HTTP responses in exception handlers.
"""

from typing import Any


class AuthGuardException(Exception):
    """Base exception for all authguard errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON error responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(AuthGuardException):
    """Raised when input validation fails (duplicate name, malformed name, bad date range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(AuthGuardException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'role', 'session').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictException(AuthGuardException):
    """Raised when an operation conflicts with the current state of a resource."""

    def __init__(
        self,
        message: str,
        error_code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class SystemEntityImmutableException(ConflictException):
    """Raised when updating or deleting a system-defined role or permission."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with the protected resource.

        Args:
            resource_type: 'role' or 'permission'.
            resource_id: ID of the system row.
        """
        super().__init__(
            f"System {resource_type} cannot be modified or deleted: {resource_id}",
            "SYSTEM_ENTITY_IMMUTABLE",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class ResourceInUseException(ConflictException):
    """Raised when deleting a role or permission still referenced by an active grant or assignment."""

    def __init__(self, resource_type: str, resource_id: str, reference_count: int) -> None:
        """Initialize with the referenced resource and how many active rows point at it.

        Args:
            resource_type: 'role' or 'permission'.
            resource_id: ID of the referenced row.
            reference_count: Number of active references.
        """
        super().__init__(
            f"{resource_type} is still in use ({reference_count} active references): {resource_id}",
            "RESOURCE_IN_USE",
            {
                "resource_type": resource_type,
                "resource_id": resource_id,
                "reference_count": reference_count,
            },
        )


class ConcurrencyException(AuthGuardException):
    """Raised when a concurrent request won the version update (optimistic lock)."""

    def __init__(self, resource_type: str, resource_id: str | None = None) -> None:
        super().__init__(
            f"{resource_type} was updated by another request; retry.",
            "CONCURRENCY_CONFLICT",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class SecurityEvaluationException(AuthGuardException):
    """Raised when a trust, risk, or termination path fails on a lower layer.

    Callers on security-critical paths must treat this as a deny.
    """

    def __init__(self, operation: str, reason: str | None = None) -> None:
        """Initialize with the failed operation and optional cause.

        Args:
            operation: Name of the security operation (e.g. 'trust_device').
            reason: Optional description of the underlying failure.
        """
        message = f"Security evaluation failed: {operation}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message,
            "SECURITY_ERROR",
            {"operation": operation},
        )


class PermissionDeniedException(AuthGuardException):
    """Raised when a user lacks a required permission."""

    def __init__(self, user_id: str, permission: str) -> None:
        super().__init__(
            f"Permission denied: {permission}",
            "PERMISSION_DENIED",
            {"user_id": user_id, "permission": permission},
        )
