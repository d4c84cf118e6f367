"""
Per-minute scan over every owner with an active plan
"""
import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from pillminder.utils.timezone import day_key, minute_of_day, now_local
from .expander import first_due_stage
from .interfaces import PlanStore
from .metrics import scheduler_due_matches_total, scheduler_owner_errors_total, scheduler_ticks_total
from .reminder_task import ReminderOutcome, ReminderTask


logger = logging.getLogger(__name__)


class ScanEngine:
    """Stateless scan: each tick re-reads plans and the completion log.

    Owners are processed sequentially in the order the plan store lists
    them. A failure for one owner is logged and the scan moves on.
    """

    def __init__(
        self,
        plan_store: PlanStore,
        reminder_task: ReminderTask,
        clock: Callable[[], datetime] = now_local,
    ):
        self.plan_store = plan_store
        self.reminder_task = reminder_task
        self.clock = clock
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        """Stop dispatching; an in-flight tick finishes its current owner and exits."""
        self._closed.set()

    def on_tick(self) -> None:
        if self.closed:
            return
        now = self.clock()
        minute = minute_of_day(now)
        day = day_key(now)
        scheduler_ticks_total.inc()

        try:
            owners = self.plan_store.list_active_owners()
        except Exception:
            logger.exception(f"❌ [Scan] Failed to list active owners at minute {minute}, abandoning tick")
            scheduler_owner_errors_total.labels(driver="scan").inc()
            return

        dispatched = 0
        for owner in owners:
            if self.closed:
                logger.info("[Scan] Shutdown in progress, abandoning tick")
                break
            try:
                if self._scan_owner(owner, minute, day) is ReminderOutcome.DISPATCHED:
                    dispatched += 1
            except Exception:
                logger.exception(f"❌ [Scan] Failed to process owner={owner} at minute {minute}")
                scheduler_owner_errors_total.labels(driver="scan").inc()

        logger.debug(f"[Scan] Tick {day} minute={minute} owners={len(owners)} dispatched={dispatched}")

    def _scan_owner(self, owner: str, minute: int, day: str) -> Optional[ReminderOutcome]:
        plan = self.plan_store.get_active_plan(owner)
        if not plan:
            return None
        stage = first_due_stage(plan, minute)
        if stage is None:
            return None
        logger.info(f"⏰ [Scan] Due match | owner={owner} stage={stage.name} minute={minute}")
        scheduler_due_matches_total.labels(driver="scan").inc()
        return self.reminder_task.run(owner, stage, day, driver="scan")
