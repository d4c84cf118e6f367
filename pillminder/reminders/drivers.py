"""
ScheduleDriver strategies: a global minute scan or per-stage timers.

Both give the same external behaviour: at most one automatic reminder per
stage per day, suppressed once a completion record exists.
"""
import logging
from typing import Optional

from .interfaces import PlanStore
from .scan_engine import ScanEngine
from .ticker import MinuteTicker
from .timer_registry import StageTimerRegistry
from .types import MedicationPlan


logger = logging.getLogger(__name__)


class ScanScheduleDriver:
    """Plans are re-read on every tick, so edits need no bookkeeping."""

    name = "scan"

    def __init__(self, engine: ScanEngine, ticker: Optional[MinuteTicker] = None):
        self.engine = engine
        self.ticker = ticker or MinuteTicker(engine.on_tick)

    def start(self) -> None:
        self.ticker.start()

    def on_plan_changed(self, owner: str, plan: Optional[MedicationPlan]) -> None:
        logger.debug(f"[Scan] Plan changed for owner={owner}; picked up on next tick")

    def clear(self, owner: str) -> None:
        logger.debug(f"[Scan] Schedule cleared for owner={owner}; nothing to cancel")

    def shutdown(self) -> None:
        self.engine.close()
        self.ticker.stop()


class TimerScheduleDriver:
    name = "timers"

    def __init__(self, registry: StageTimerRegistry, plan_store: PlanStore):
        self.registry = registry
        self.plan_store = plan_store

    def start(self) -> None:
        """Start the registry and rebuild timers for every active plan."""
        self.registry.start()
        owners = self.plan_store.list_active_owners()
        for owner in owners:
            try:
                self.registry.set_schedule(owner, self.plan_store.get_active_plan(owner))
            except Exception:
                logger.exception(f"❌ [Timers] Failed to restore timers for owner={owner}")
        logger.info(f"[Timers] Restored timers for {len(owners)} owner(s)")

    def on_plan_changed(self, owner: str, plan: Optional[MedicationPlan]) -> None:
        if plan:
            self.registry.set_schedule(owner, plan)
        else:
            self.registry.clear_schedule(owner)

    def clear(self, owner: str) -> None:
        self.registry.clear_schedule(owner)

    def shutdown(self) -> None:
        self.registry.stop_all()
