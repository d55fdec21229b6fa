"""Periodic maintenance jobs with explicit start/stop.

Each job runs in its own asyncio task: sleep for its interval, run once,
repeat. A failing run is logged and retried on the next tick; it never
stops the loop or the host process. stop() cancels every task and waits
for them to finish.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaintenanceJob:
    """A named coroutine factory run every interval_seconds."""

    name: str
    interval_seconds: float
    run: Callable[[], Awaitable[int]]


class MaintenanceScheduler:
    """Owns one background task per registered job."""

    def __init__(self, jobs: list[MaintenanceJob] | None = None) -> None:
        self._jobs: list[MaintenanceJob] = list(jobs or [])
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def jobs(self) -> tuple[MaintenanceJob, ...]:
        return tuple(self._jobs)

    def add_job(self, job: MaintenanceJob) -> None:
        if self.running:
            raise RuntimeError("Cannot add jobs while the scheduler is running")
        self._jobs.append(job)

    async def run_once(self, job: MaintenanceJob) -> int | None:
        """Run a job a single time. Returns its result, or None if it failed."""
        try:
            result = await job.run()
        except Exception:
            logger.exception("Maintenance job %s failed; retrying next tick", job.name)
            return None
        if result:
            logger.info("Maintenance job %s processed %s items", job.name, result)
        return result

    async def _loop(self, job: MaintenanceJob) -> None:
        while True:
            await asyncio.sleep(job.interval_seconds)
            await self.run_once(job)

    def start(self) -> None:
        """Start one task per job. Calling start() twice is a no-op."""
        if self.running:
            return
        for job in self._jobs:
            self._tasks[job.name] = asyncio.create_task(
                self._loop(job), name=f"maintenance:{job.name}"
            )
        logger.info("Maintenance scheduler started (%s jobs)", len(self._tasks))

    async def stop(self) -> None:
        """Cancel every job task and wait for them to exit."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if tasks:
            logger.info("Maintenance scheduler stopped")
