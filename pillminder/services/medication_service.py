import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List

from sqlalchemy.exc import SQLAlchemyError

from pillminder.crud.completion_log import SqlCompletionLog
from pillminder.crud.plan_store import SqlPlanStore
from pillminder.reminders.metrics import medication_confirmations_total
from pillminder.reminders.types import CompletionEntry, CompletionStatus
from pillminder.utils.timezone import day_key, now_local


logger = logging.getLogger(__name__)

NO_PLAN_MESSAGE = "You have not configured a medication plan yet, so there is no history to show"


@dataclass
class ConfirmationResult:
    success: bool
    message: str
    is_duplicate: bool = False


@dataclass
class DailyStatus:
    day: str
    taken: List[str] = field(default_factory=list)
    reminded: List[str] = field(default_factory=list)
    outstanding: List[str] = field(default_factory=list)


class MedicationService:
    """Dose confirmation and per-day history"""

    def __init__(
        self,
        plan_store: SqlPlanStore,
        completion_log: SqlCompletionLog,
        clock: Callable[[], datetime] = now_local,
    ):
        self.plan_store = plan_store
        self.completion_log = completion_log
        self.clock = clock

    def confirm_medication(self, owner: str, stage_name: str) -> ConfirmationResult:
        try:
            plan = self.plan_store.get_active_plan(owner)
            stage = plan.find_by_name(stage_name) if plan else None
            if stage is None:
                return ConfirmationResult(
                    success=False,
                    message=f"Could not find a stage named '{stage_name}' in your plan, please check your configuration",
                )

            now = self.clock()
            day = day_key(now)
            if self.completion_log.status_today(owner, stage.name, day=day) is CompletionStatus.CONFIRMED:
                return ConfirmationResult(
                    success=False,
                    message=f"You have already recorded your {stage.name} dose today",
                    is_duplicate=True,
                )

            recorded = self.completion_log.record_confirmed(
                owner, stage.name, stage_id=stage.id, day=day, confirmed_at=now
            )
            if not recorded:
                return ConfirmationResult(
                    success=False,
                    message=f"You have already recorded your {stage.name} dose today",
                    is_duplicate=True,
                )

            medication_confirmations_total.inc()
            logger.info(f"✅ [Medication] owner={owner} confirmed {stage.name} on {day}")
            return ConfirmationResult(success=True, message=f"Recorded your {stage.name} dose")
        except SQLAlchemyError:
            logger.exception(f"❌ [Medication] Failed to record dose for owner={owner} stage={stage_name}")
            return ConfirmationResult(success=False, message="Failed to record your dose, please try again later")

    def today_status(self, owner: str) -> DailyStatus:
        """Stage names split by today's state, in configured order."""
        day = day_key(self.clock())
        status = DailyStatus(day=day)
        plan = self.plan_store.get_active_plan(owner)
        if not plan:
            return status
        states = self._states_by_stage(self.completion_log.records_for_day(owner, day))
        for stage in plan:
            state = states.get(stage.name)
            if state is CompletionStatus.CONFIRMED:
                status.taken.append(stage.name)
            elif state is CompletionStatus.PENDING:
                status.reminded.append(stage.name)
            else:
                status.outstanding.append(stage.name)
        return status

    def records_for_day(self, owner: str, day: str) -> List[CompletionEntry]:
        return self.completion_log.records_for_day(owner, day)

    def format_records(self, owner: str, day: str, label: str) -> str:
        plan = self.plan_store.get_active_plan(owner)
        if not plan:
            return NO_PLAN_MESSAGE

        records = self.completion_log.records_for_day(owner, day)
        if not records:
            return f"{label}\nNo medication records"

        states = self._states_by_stage(records)
        lines = [label]
        for stage in plan:
            state = states.get(stage.name)
            if state is CompletionStatus.CONFIRMED:
                text = "taken"
            elif state is CompletionStatus.PENDING:
                text = "reminded, not confirmed"
            else:
                text = "not taken"
            lines.append(f"- {stage.name}: {text}")
        return "\n".join(lines)

    @staticmethod
    def _states_by_stage(records: List[CompletionEntry]):
        states = {}
        for record in records:
            if states.get(record.stage_name) is not CompletionStatus.CONFIRMED:
                states[record.stage_name] = record.status
        return states
