"""Domain exceptions map to HTTP status codes and a JSON error body."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from authguard.core.exception_handlers import register_exception_handlers
from authguard.domain.exceptions import (
    AuthGuardException,
    ConcurrencyException,
    PermissionDeniedException,
    ResourceInUseException,
    ResourceNotFoundException,
    SecurityEvaluationException,
    ValidationException,
)

_RAISED: dict[str, AuthGuardException] = {
    "validation": ValidationException("bad name", field="name"),
    "denied": PermissionDeniedException("user-1", "users.delete"),
    "missing": ResourceNotFoundException("role", "r-1"),
    "in-use": ResourceInUseException("role", "r-1", 2),
    "stale": ConcurrencyException("user_role", "ur-1"),
    "security": SecurityEvaluationException("trust_device", "TimeoutError"),
}


@pytest.fixture
async def error_client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/raise/{kind}")
    async def raise_kind(kind: str) -> None:
        raise _RAISED[kind]

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.mark.parametrize(
    "kind,status",
    [
        ("validation", 400),
        ("denied", 403),
        ("missing", 404),
        ("in-use", 409),
        ("stale", 409),
        ("security", 503),
    ],
)
async def test_domain_exception_status(error_client, kind: str, status: int) -> None:
    response = await error_client.get(f"/raise/{kind}")
    assert response.status_code == status
    assert response.json() == _RAISED[kind].to_dict()


async def test_unknown_route_uses_http_error_body(error_client) -> None:
    response = await error_client.get("/nowhere")
    assert response.status_code == 404
    assert response.json()["error"] == "HTTP_ERROR"
