"""
Job Scheduler
Fires the notification sweep on a fixed interval inside the running event loop
"""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import settings


logger = logging.getLogger(__name__)


SWEEP_JOB_ID = "notification_sweep"


class JobScheduler:
    """
    Runs a job's `run()` every `interval_seconds`, starting immediately.

    The job guards against overlapping runs itself; the scheduler also keeps
    at most one instance in flight and drops missed ticks.
    """

    def __init__(self, job, interval_seconds: Optional[int] = None):
        self.job = job
        self.interval_seconds = interval_seconds or settings.SWEEP_INTERVAL_SECONDS
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def _tick(self):
        try:
            await self.job.run()
        except Exception as e:
            logger.error(f"Scheduled sweep raised: {e}")

    def start(self) -> None:
        """Start firing. Must be called from within the event loop."""
        if self.running:
            logger.warning("Job scheduler already started")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._tick,
            IntervalTrigger(seconds=self.interval_seconds),
            id=SWEEP_JOB_ID,
            next_run_time=datetime.now(),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Job scheduler started, sweeping every {self.interval_seconds}s")

    def stop(self) -> None:
        """Stop firing; an in-flight sweep is not awaited"""
        if not self.running:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Job scheduler stopped")
