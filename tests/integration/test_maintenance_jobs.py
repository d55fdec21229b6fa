"""The scheduler built from the service container runs the sweeps."""

from datetime import timedelta

from authguard.api.v1.dependencies import build_services
from authguard.application.dtos.session import SessionCreate
from authguard.infrastructure.cache import CacheService, InMemoryCacheService
from authguard.shared.utils.datetime import utc_now


async def test_container_registers_sweep_jobs(services) -> None:
    scheduler = services.maintenance_scheduler()
    assert [job.name for job in scheduler.jobs] == [
        "expired_sessions",
        "expired_user_roles",
        "token_blacklist",
        "cache_purge",
    ]
    assert scheduler.jobs[0].interval_seconds == services.settings.session_sweep_interval_seconds
    assert scheduler.jobs[3].interval_seconds == services.settings.cache_purge_interval_seconds


async def test_redis_backend_has_no_purge_job(settings, session_factory) -> None:
    services = build_services(settings, session_factory, CacheService())
    names = [job.name for job in services.maintenance_scheduler().jobs]
    assert "cache_purge" not in names
    assert len(names) == 3


async def test_jobs_run_once_against_the_store(services) -> None:
    scheduler = services.maintenance_scheduler()
    await services.sessions.create_session(SessionCreate(user_id="user-1"))
    await services.token_blacklist.revoke("old-token", utc_now() - timedelta(minutes=1))

    results = {job.name: await scheduler.run_once(job) for job in scheduler.jobs}
    assert results == {
        "expired_sessions": 0,
        "expired_user_roles": 0,
        "token_blacklist": 1,
        "cache_purge": 0,
    }


async def test_cache_purge_job_drops_expired_entries(settings, session_factory) -> None:
    now = [1000.0]
    cache = InMemoryCacheService(clock=lambda: now[0])
    services = build_services(settings, session_factory, cache)
    await cache.set("trusted_device:user-1:fp-once", True, ttl=60)
    await cache.set("permission:user-1", ["users.read"], ttl=600)
    now[0] += 120

    scheduler = services.maintenance_scheduler()
    purge = next(job for job in scheduler.jobs if job.name == "cache_purge")
    assert await scheduler.run_once(purge) == 1
    assert await cache.get("permission:user-1") == ["users.read"]
