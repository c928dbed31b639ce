"""Cancelable periodic background jobs."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger("airfieldwatch.scheduler")


class PeriodicTask:
    """Run an async job every ``interval`` seconds.

    A tick that arrives while the previous run is still in progress is
    skipped rather than queued. Job failures are logged and the timer keeps
    running until :meth:`stop` is awaited.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        job: Callable[[], Awaitable[Any]],
    ) -> None:
        self.name = name
        self.interval = interval
        self.job = job
        self.runs = 0
        self.failures = 0
        self.skipped = 0
        self._loop_task: Optional[asyncio.Task] = None
        self._job_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def busy(self) -> bool:
        return self._job_task is not None and not self._job_task.done()

    def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._loop(), name=f"periodic:{self.name}")
        logger.info("Started %s timer (every %.0f s)", self.name, self.interval)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.trigger()

    def trigger(self) -> bool:
        """Start a run now unless one is in progress; returns whether it started."""

        if self.busy:
            self.skipped += 1
            logger.debug("Skipping %s run; previous run still in progress", self.name)
            return False
        self._job_task = asyncio.create_task(self._run_job(), name=f"job:{self.name}")
        return True

    async def _run_job(self) -> None:
        try:
            await self.job()
            self.runs += 1
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.failures += 1
            logger.error("Error in %s job: %s", self.name, exc)

    async def wait_idle(self) -> None:
        if self._job_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._job_task

    async def stop(self) -> None:
        for task in (self._loop_task, self._job_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        if self._loop_task is not None:
            logger.info("Stopped %s timer", self.name)
        self._loop_task = None
        self._job_task = None


__all__ = ["PeriodicTask"]
