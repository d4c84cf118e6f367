"""
Plan editing use-cases. Every edit saves a new plan version and then tells
the schedule driver, so timers follow the plan.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from pillminder.core.exceptions import DuplicateStageError, InvalidStageError, StageNotFoundError
from pillminder.crud.plan_store import SqlPlanStore
from pillminder.reminders.interfaces import ScheduleDriver
from pillminder.reminders.types import MedicationPlan, Stage
from pillminder.schemas.plan import StageConfig


logger = logging.getLogger(__name__)

StageInput = Union[StageConfig, Dict[str, Any]]


def _stage_config(data: Dict[str, Any]) -> StageConfig:
    # Card forms submit "HH:mm +zone"; only the clock part matters
    if isinstance(data.get("time"), str):
        data = {**data, "time": data["time"].strip().split(" ")[0]}
    try:
        return StageConfig.model_validate(data)
    except ValidationError as e:
        raise InvalidStageError(str(e)) from e


class PlanService:
    def __init__(self, plan_store: SqlPlanStore, driver: Optional[ScheduleDriver] = None):
        self.plan_store = plan_store
        self.driver = driver

    def get_active_plan(self, owner: str) -> Optional[MedicationPlan]:
        return self.plan_store.get_active_plan(owner)

    def ensure_user(self, owner: str) -> bool:
        """Give a brand-new user an empty active plan. Returns True if created."""
        if self.plan_store.has_configuration(owner):
            return False
        self.plan_store.save_plan(owner, [])
        logger.info(f"[Plans] Created empty plan for new user {owner}")
        return True

    def add_stage(self, owner: str, name: str, time: str, repeat_interval: int = 0) -> MedicationPlan:
        plan = self._current(owner)
        config = _stage_config({"name": name, "time": time, "repeatInterval": repeat_interval})
        if plan.find_by_name(config.name):
            raise DuplicateStageError(config.name)
        config.id = plan.next_stage_id()
        return self._save(owner, list(plan.stages) + [config.to_stage()])

    def update_stage(
        self,
        owner: str,
        name: str,
        new_name: Optional[str] = None,
        time: Optional[str] = None,
        repeat_interval: Optional[int] = None,
    ) -> MedicationPlan:
        """Edit one stage in place; it keeps its id and position."""
        plan = self._current(owner)
        stage = plan.find_by_name(name)
        if stage is None:
            raise StageNotFoundError(name)

        current = StageConfig.from_stage(stage)
        config = _stage_config({
            "id": stage.id,
            "name": new_name if new_name is not None else current.name,
            "time": time if time is not None else current.time,
            "repeatInterval": repeat_interval if repeat_interval is not None else current.repeat_interval,
        })
        if config.name != stage.name and plan.find_by_name(config.name):
            raise DuplicateStageError(config.name)

        updated = config.to_stage()
        return self._save(owner, [updated if s.id == stage.id else s for s in plan.stages])

    def remove_stage(self, owner: str, name: str) -> MedicationPlan:
        plan = self._current(owner)
        if plan.find_by_name(name) is None:
            raise StageNotFoundError(name)
        return self._save(owner, [s for s in plan.stages if s.name != name])

    def replace_plan(self, owner: str, stages: Sequence[StageInput]) -> MedicationPlan:
        """Replace the whole plan; entries without an id get the next free one."""
        configs: List[StageConfig] = [
            s.model_copy() if isinstance(s, StageConfig) else _stage_config(dict(s)) for s in stages
        ]
        names = set()
        for config in configs:
            if config.name in names:
                raise DuplicateStageError(config.name)
            names.add(config.name)

        ids = [c.id for c in configs if c.id is not None]
        if len(ids) != len(set(ids)):
            raise InvalidStageError("stage ids must be unique within a plan")
        next_id = max(ids, default=0) + 1
        for config in configs:
            if config.id is None:
                config.id = next_id
                next_id += 1
        return self._save(owner, [c.to_stage() for c in configs])

    def clear_plan(self, owner: str) -> bool:
        """Drop the active plan and every scheduled reminder for ``owner``."""
        cleared = self.plan_store.deactivate(owner)
        if self.driver is not None:
            self.driver.clear(owner)
        logger.info(f"[Plans] Cleared plan for owner={owner} (had_active={cleared})")
        return cleared

    def _current(self, owner: str) -> MedicationPlan:
        return self.plan_store.get_active_plan(owner) or MedicationPlan(owner=owner)

    def _save(self, owner: str, stages: List[Stage]) -> MedicationPlan:
        plan = self.plan_store.save_plan(owner, stages)
        if self.driver is not None:
            try:
                self.driver.on_plan_changed(owner, plan)
            except Exception:
                # The plan is saved; timers are rebuilt from it on next start
                logger.exception(f"❌ [Plans] Failed to update schedule for owner={owner}")
        return plan
