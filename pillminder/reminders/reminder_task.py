"""
Core "remind one stage" step shared by the scan engine and the stage timers
"""
import logging
from enum import Enum

from .interfaces import CompletionLog, Notifier, PlanStore
from .metrics import (
    reminders_dispatched_total,
    reminders_dispatch_failed_total,
    reminders_suppressed_total,
)
from .types import Stage


logger = logging.getLogger(__name__)


class ReminderOutcome(str, Enum):
    DISPATCHED = "dispatched"
    ALREADY_COMPLETED = "already_completed"
    STAGE_REMOVED = "stage_removed"
    DISPATCH_FAILED = "dispatch_failed"


class ReminderTask:
    """Check the completion log, record a pending entry and dispatch.

    Store and notifier exceptions propagate to the caller, which owns the
    per-owner fault isolation.
    """

    def __init__(self, plan_store: PlanStore, completion_log: CompletionLog, notifier: Notifier):
        self.plan_store = plan_store
        self.completion_log = completion_log
        self.notifier = notifier

    def run(self, owner: str, stage: Stage, day: str, driver: str = "scan") -> ReminderOutcome:
        if self.completion_log.is_completed_today(owner, stage.name, day=day):
            logger.info(f"[Reminder] owner={owner} stage={stage.name} already completed on {day}, skipping")
            reminders_suppressed_total.labels(driver=driver).inc()
            return ReminderOutcome.ALREADY_COMPLETED

        # Insert-if-absent; losing the race means another fire owns this dispatch
        if not self.completion_log.record_pending(owner, stage.name, stage_id=stage.id, day=day):
            logger.info(f"[Reminder] owner={owner} stage={stage.name} pending record already present, skipping")
            reminders_suppressed_total.labels(driver=driver).inc()
            return ReminderOutcome.ALREADY_COMPLETED

        delivered = self.notifier.dispatch(owner, stage.name)
        if not delivered:
            logger.warning(f"[Reminder] Notifier refused reminder | owner={owner} stage={stage.name}")
            reminders_dispatch_failed_total.labels(driver=driver).inc()
            return ReminderOutcome.DISPATCH_FAILED

        reminders_dispatched_total.labels(driver=driver).inc()
        logger.info(f"🔔 [Reminder] Sent reminder | owner={owner} stage={stage.name} ({stage.time}) day={day}")
        return ReminderOutcome.DISPATCHED

    def run_if_current(self, owner: str, stage_name: str, day: str, driver: str = "timers") -> ReminderOutcome:
        """Re-validate against the current active plan, then run.

        Timers are registered against a plan version that may have been
        replaced since; a stage that no longer exists is a silent no-op.
        Matching is by name, the identity that survives plan versions.
        """
        plan = self.plan_store.get_active_plan(owner)
        stage = plan.find_by_name(stage_name) if plan else None
        if stage is None:
            logger.info(f"[Reminder] owner={owner} stage={stage_name} no longer in active plan, aborting")
            return ReminderOutcome.STAGE_REMOVED
        return self.run(owner, stage, day, driver=driver)
