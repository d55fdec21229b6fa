"""Run every maintenance sweep once (expired sessions, expired role assignments).

Usage:
    uv run python -m scripts.run_maintenance [job_name ...]
For deployments that schedule sweeps externally (cron) with SWEEP_ENABLED=false.
"""

import asyncio
import logging
import sys

from authguard.api.v1.dependencies import build_services
from authguard.core.config import get_settings
from authguard.infrastructure.cache import create_cache
from authguard.infrastructure.persistence.database import (
    dispose_engine,
    get_session_factory,
)
from authguard.shared.telemetry import setup_logging


async def main() -> None:
    """Run the selected jobs (all by default) one time each."""
    setup_logging()
    settings = get_settings()
    cache = create_cache(settings)
    await cache.connect()
    try:
        services = build_services(settings, get_session_factory(), cache)
        scheduler = services.maintenance_scheduler()
        selected = set(sys.argv[1:])
        failed = False
        for job in scheduler.jobs:
            if selected and job.name not in selected:
                continue
            result = await scheduler.run_once(job)
            if result is None:
                failed = True
            else:
                print(f"{job.name}: {result}")
    finally:
        await cache.disconnect()
        await dispose_engine()
    if failed:
        logging.getLogger(__name__).error("One or more maintenance jobs failed")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
