"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic (SRP). Used by main.py;
no business logic here, only wiring of infrastructure (cache, services,
maintenance scheduler, telemetry, DB engine dispose).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from authguard.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: telemetry (if enabled), cache connect, service wiring,
    maintenance scheduler (if enabled). Shutdown runs in reverse and ends
    with the SQL engine dispose. A session factory or cache preset on
    app.state (tests) is used instead of the configured ones.
    """
    settings = get_settings()

    # ---- Startup ----
    if settings.telemetry_enabled:
        from authguard.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            enabled=True,
            environment=settings.telemetry_environment,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        set_telemetry(telemetry)
        telemetry.instrument_fastapi(app)
        logger.info("Telemetry initialized")

    from authguard.api.v1.dependencies import build_services
    from authguard.infrastructure.cache import create_cache
    from authguard.infrastructure.persistence.database import get_session_factory

    cache = getattr(app.state, "cache", None) or create_cache(settings)
    await cache.connect()
    app.state.cache = cache

    session_factory = getattr(app.state, "session_factory", None) or get_session_factory()
    app.state.session_factory = session_factory
    services = build_services(settings, session_factory, cache)
    app.state.services = services

    scheduler = None
    if settings.sweep_enabled:
        scheduler = services.maintenance_scheduler()
        scheduler.start()
    app.state.maintenance_scheduler = scheduler

    yield

    # ---- Shutdown ----
    if scheduler is not None:
        await scheduler.stop()

    await cache.disconnect()
    logger.info("Cache disconnected")

    from authguard.shared.telemetry.telemetry import get_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()
        logger.info("Telemetry shutdown complete")

    from authguard.infrastructure.persistence.database import dispose_engine

    await dispose_engine()
