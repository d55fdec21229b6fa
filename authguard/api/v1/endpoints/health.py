"""Health check endpoints for liveness and readiness probes."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from authguard.core.config import get_settings
from authguard.infrastructure.persistence.database import get_session_factory
from authguard.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse(version=get_settings().app_version)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database unreachable", "model": ReadinessErrorResponse}},
)
async def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 when the database answers; report cache availability alongside."""
    services = getattr(request.app.state, "services", None)
    cache_ok = bool(services and services.cache.is_available())
    try:
        factory = getattr(request.app.state, "session_factory", None) or get_session_factory()
        async with factory() as db:
            await db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Readiness check: database unreachable")
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(message="database unreachable").model_dump(),
        )
    return ReadinessResponse(database=True, cache=cache_ok)
