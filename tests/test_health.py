"""Tests for the health endpoints."""

from httpx import AsyncClient

from authguard.core.config import get_settings


async def test_health_returns_ok(client: AsyncClient) -> None:
    """GET /api/v1/health returns 200 and status ok."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == get_settings().app_version


async def test_readiness_reports_database_and_cache(client: AsyncClient) -> None:
    """GET /api/v1/health/ready answers 200 when the test database is reachable."""
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": True, "cache": True}
