"""
Per-stage persistent timers: one daily APScheduler job per (owner, stage)
"""
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from pillminder.utils.timezone import day_key, now_local
from .metrics import active_stage_timers, scheduler_due_matches_total, scheduler_owner_errors_total
from .reminder_task import ReminderTask
from .types import MedicationPlan


logger = logging.getLogger(__name__)


class StageTimerRegistry:
    """Owns the timers for every owner; construct once, shut down once.

    Each timer fires daily at its stage's time of day and re-validates the
    stage against the owner's current plan before reminding. Callbacks run
    on the scheduler's thread pool, so one owner's failure or slow delivery
    never touches another owner's timers.
    """

    def __init__(
        self,
        reminder_task: ReminderTask,
        scheduler: Optional[BackgroundScheduler] = None,
        clock: Callable[[], datetime] = now_local,
        misfire_grace_seconds: int = 60,
    ):
        self.reminder_task = reminder_task
        self.clock = clock
        self.misfire_grace_seconds = misfire_grace_seconds
        self._scheduler = scheduler or BackgroundScheduler()
        self._jobs: Dict[str, List[str]] = {}
        self._lock = threading.RLock()
        self._stopping = threading.Event()

    def start(self) -> None:
        self._stopping.clear()
        if not self._scheduler.running:
            self._scheduler.start()
        logger.info("🚀 [Timers] Stage timer registry started")

    def set_schedule(self, owner: str, plan: Optional[MedicationPlan]) -> int:
        """Replace every timer for ``owner`` with one per stage of ``plan``."""
        with self._lock:
            self.clear_schedule(owner)
            if not plan:
                return 0
            job_ids: List[str] = []
            for stage in plan:
                job_id = f"stage:{owner}:{stage.id}"
                self._scheduler.add_job(
                    func=self._fire,
                    trigger=CronTrigger(hour=stage.hour, minute=stage.minute),
                    id=job_id,
                    kwargs={"owner": owner, "stage_name": stage.name},
                    replace_existing=True,
                    max_instances=1,
                    coalesce=True,
                    misfire_grace_time=self.misfire_grace_seconds,
                )
                job_ids.append(job_id)
                logger.info(f"[Timers] Scheduled owner={owner} stage={stage.name} at {stage.time} daily")
            self._jobs[owner] = job_ids
            self._update_gauge()
            logger.info(f"[Timers] owner={owner} now has {len(job_ids)} timer(s)")
            return len(job_ids)

    def clear_schedule(self, owner: str) -> None:
        """Cancel all timers for ``owner``; a no-op if there are none."""
        with self._lock:
            job_ids = self._jobs.pop(owner, None)
            if not job_ids:
                return
            for job_id in job_ids:
                self._remove_job(job_id)
            self._update_gauge()
            logger.info(f"[Timers] Cleared {len(job_ids)} timer(s) for owner={owner}")

    def stop_all(self) -> None:
        """Cancel every timer for every owner and stop the scheduler."""
        self._stopping.set()
        with self._lock:
            for owner, job_ids in list(self._jobs.items()):
                for job_id in job_ids:
                    self._remove_job(job_id)
                logger.info(f"[Timers] Stopped timers for owner={owner}")
            self._jobs.clear()
            self._update_gauge()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        logger.info("[Timers] All stage timers stopped")

    def timer_count(self, owner: str) -> int:
        with self._lock:
            return len(self._jobs.get(owner, ()))

    @property
    def total_timers(self) -> int:
        with self._lock:
            return sum(len(ids) for ids in self._jobs.values())

    def owners(self) -> List[str]:
        with self._lock:
            return list(self._jobs)

    def _remove_job(self, job_id: str) -> None:
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            logger.debug(f"[Timers] Job {job_id} already gone")

    def _update_gauge(self) -> None:
        active_stage_timers.set(sum(len(ids) for ids in self._jobs.values()))

    def _fire(self, owner: str, stage_name: str) -> None:
        if self._stopping.is_set():
            return
        day = day_key(self.clock())
        scheduler_due_matches_total.labels(driver="timers").inc()
        try:
            self.reminder_task.run_if_current(owner, stage_name, day, driver="timers")
        except Exception:
            logger.exception(f"❌ [Timers] Reminder failed | owner={owner} stage={stage_name}")
            scheduler_owner_errors_total.labels(driver="timers").inc()
