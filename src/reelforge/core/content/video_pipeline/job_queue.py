"""In-process work queue running one asyncio task per video job."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

JobRunner = Callable[[int], Awaitable[None]]


class JobQueue:
    """Runs jobs concurrently and re-enqueues retries after a delay.

    Retry bookkeeping (count, due time) lives on the job record; the queue
    only holds the timers and in-flight tasks.
    """

    def __init__(self, runner: JobRunner, default_delay: float = 5.0):
        self.runner = runner
        self.default_delay = default_delay
        self._tasks: set[asyncio.Task] = set()
        self._timers: dict[int, asyncio.TimerHandle] = {}

    @property
    def scheduled(self) -> list[int]:
        return sorted(self._timers)

    def submit(self, job_id: int) -> asyncio.Task:
        """Start processing a job now as its own task."""
        task = asyncio.get_running_loop().create_task(
            self._run(job_id), name=f"video-job-{job_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"Job {job_id} submitted")
        return task

    def schedule(self, job_id: int, delay: float | None = None) -> datetime:
        """Submit a job after a delay; returns when it is due."""
        delay = self.default_delay if delay is None else max(0.0, delay)

        existing = self._timers.pop(job_id, None)
        if existing is not None:
            existing.cancel()

        loop = asyncio.get_running_loop()
        self._timers[job_id] = loop.call_later(delay, self._fire, job_id)

        logger.info(f"Job {job_id} scheduled to run in {delay:.1f}s")
        return datetime.utcnow() + timedelta(seconds=delay)

    def _fire(self, job_id: int) -> None:
        self._timers.pop(job_id, None)
        self.submit(job_id)

    async def _run(self, job_id: int) -> None:
        try:
            await self.runner(job_id)
        except asyncio.CancelledError:
            logger.warning(f"Job {job_id} task cancelled")
            raise
        except Exception:
            logger.exception(f"Job {job_id} runner raised outside its failure handling")

    async def join(self, poll_interval: float = 0.01) -> None:
        """Wait until no job is running or scheduled."""
        while self._tasks or self._timers:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(poll_interval)

    async def shutdown(self) -> None:
        """Cancel timers and in-flight tasks; interrupted jobs resume on startup."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
