"""Tests for the background maintenance scheduler."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from authguard.infrastructure.services.maintenance_scheduler import (
    MaintenanceJob,
    MaintenanceScheduler,
)


async def test_run_once_returns_job_result() -> None:
    scheduler = MaintenanceScheduler()
    job = MaintenanceJob("expired_sessions", 60, AsyncMock(return_value=3))
    assert await scheduler.run_once(job) == 3


async def test_run_once_swallows_job_failure() -> None:
    scheduler = MaintenanceScheduler()
    job = MaintenanceJob("broken", 60, AsyncMock(side_effect=RuntimeError("db down")))
    assert await scheduler.run_once(job) is None


async def test_loop_keeps_running_after_failure() -> None:
    run = AsyncMock(side_effect=[RuntimeError("db down"), 1, 0, 0, 0, 0, 0, 0, 0, 0])
    scheduler = MaintenanceScheduler([MaintenanceJob("flaky", 0.01, run)])
    scheduler.start()
    for _ in range(50):
        if run.await_count >= 2:
            break
        await asyncio.sleep(0.01)
    await scheduler.stop()
    assert run.await_count >= 2
    assert not scheduler.running


async def test_start_is_idempotent_and_stop_cancels() -> None:
    scheduler = MaintenanceScheduler([MaintenanceJob("slow", 3600, AsyncMock(return_value=0))])
    scheduler.start()
    scheduler.start()
    assert scheduler.running
    await scheduler.stop()
    assert not scheduler.running
    await scheduler.stop()


async def test_add_job_while_running_raises() -> None:
    scheduler = MaintenanceScheduler([MaintenanceJob("a", 3600, AsyncMock(return_value=0))])
    scheduler.start()
    try:
        with pytest.raises(RuntimeError):
            scheduler.add_job(MaintenanceJob("b", 3600, AsyncMock(return_value=0)))
    finally:
        await scheduler.stop()
    scheduler.add_job(MaintenanceJob("b", 3600, AsyncMock(return_value=0)))
    assert [job.name for job in scheduler.jobs] == ["a", "b"]
