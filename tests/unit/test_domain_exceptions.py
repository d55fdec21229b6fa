"""Tests for domain exceptions (error_code, message, details)."""

import pytest

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


def test_authguard_exception_default_error_code() -> None:
    """Base AuthGuardException uses class name as error_code when not provided."""
    exc = AuthGuardException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "AuthGuardException"
    assert exc.details == {}


def test_authguard_exception_to_dict() -> None:
    exc = AuthGuardException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.to_dict() == {
        "error": "CUSTOM",
        "message": "Oops",
        "details": {"key": "value"},
    }


def test_validation_exception() -> None:
    """ValidationException sets VALIDATION_ERROR and optional field in details."""
    exc = ValidationException("Invalid format", field="name")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "name"}


def test_validation_exception_without_field() -> None:
    exc = ValidationException("Invalid")
    assert exc.details == {}


def test_resource_not_found_exception() -> None:
    exc = ResourceNotFoundException("role", "r-1")
    assert exc.message == "role not found: r-1"
    assert exc.error_code == "RESOURCE_NOT_FOUND"
    assert exc.details == {"resource_type": "role", "resource_id": "r-1"}


def test_system_entity_immutable_is_conflict() -> None:
    exc = SystemEntityImmutableException("permission", "p-1")
    assert isinstance(exc, ConflictException)
    assert exc.error_code == "SYSTEM_ENTITY_IMMUTABLE"


def test_resource_in_use_reports_reference_count() -> None:
    exc = ResourceInUseException("role", "r-1", 3)
    assert isinstance(exc, ConflictException)
    assert exc.error_code == "RESOURCE_IN_USE"
    assert exc.details["reference_count"] == 3
    assert "3 active references" in exc.message


def test_concurrency_exception() -> None:
    exc = ConcurrencyException("user_role", "ur-1")
    assert exc.error_code == "CONCURRENCY_CONFLICT"
    assert exc.details == {"resource_type": "user_role", "resource_id": "ur-1"}


def test_security_evaluation_exception_includes_reason() -> None:
    exc = SecurityEvaluationException("trust_device", "OperationalError")
    assert exc.error_code == "SECURITY_ERROR"
    assert exc.message == "Security evaluation failed: trust_device (OperationalError)"
    assert exc.details == {"operation": "trust_device"}


def test_permission_denied_exception() -> None:
    exc = PermissionDeniedException("u-1", "users.delete")
    assert exc.error_code == "PERMISSION_DENIED"
    assert exc.details == {"user_id": "u-1", "permission": "users.delete"}


def test_exceptions_can_be_raised_and_caught_as_base() -> None:
    with pytest.raises(AuthGuardException) as exc_info:
        raise ResourceInUseException("permission", "p-1", 1)
    assert exc_info.value.error_code == "RESOURCE_IN_USE"
