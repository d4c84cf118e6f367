"""
Once-a-minute driver for the scan engine, on APScheduler
"""
import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger


logger = logging.getLogger(__name__)

TICK_JOB_ID = "pillminder:tick"


class MinuteTicker:
    """Fires ``callback`` at second 0 of every minute.

    ``max_instances=1`` with ``coalesce=True`` means ticks never overlap: if a
    tick is still running at the next minute boundary, that boundary is
    skipped rather than queued behind it.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        scheduler: Optional[BackgroundScheduler] = None,
        misfire_grace_seconds: int = 30,
    ):
        self.callback = callback
        self.misfire_grace_seconds = misfire_grace_seconds
        self._scheduler = scheduler or BackgroundScheduler()
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    def start(self) -> None:
        if self._started:
            return
        self._scheduler.add_job(
            func=self._run,
            trigger=CronTrigger(second=0),
            id=TICK_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.misfire_grace_seconds,
        )
        if not self._scheduler.running:
            self._scheduler.start()
        self._started = True
        logger.info("🚀 [Ticker] Minute ticker started")

    def stop(self) -> None:
        if not self._started:
            return
        self._scheduler.remove_all_jobs()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._started = False
        logger.info("[Ticker] Minute ticker stopped")

    def _run(self) -> None:
        try:
            self.callback()
        except Exception:
            logger.exception("❌ [Ticker] Tick callback failed")
