"""
Collaborator contracts consumed by the reminder engine
"""
from typing import List, Optional, Protocol, Set

from .types import CompletionStatus, MedicationPlan


class PlanStore(Protocol):
    def get_active_plan(self, owner: str) -> Optional[MedicationPlan]:
        ...

    def list_active_owners(self) -> List[str]:
        ...


class CompletionLog(Protocol):
    """Per-day completion state, keyed by stage name."""

    def is_completed_today(self, owner: str, stage_name: str, day: Optional[str] = None) -> bool:
        ...

    def status_today(self, owner: str, stage_name: str, day: Optional[str] = None) -> Optional[CompletionStatus]:
        ...

    def record_pending(
        self, owner: str, stage_name: str, stage_id: Optional[int] = None, day: Optional[str] = None
    ) -> bool:
        ...

    def record_confirmed(
        self, owner: str, stage_name: str, stage_id: Optional[int] = None, day: Optional[str] = None
    ) -> bool:
        ...

    def completed_stages_today(self, owner: str, day: Optional[str] = None) -> Set[str]:
        ...


class Notifier(Protocol):
    def dispatch(self, owner: str, stage_name: str) -> bool:
        """Deliver a reminder. Returns False when delivery was refused."""
        ...


class ScheduleDriver(Protocol):
    """Lifecycle strategy that decides when the engine looks at a plan."""

    def start(self) -> None:
        ...

    def on_plan_changed(self, owner: str, plan: Optional[MedicationPlan]) -> None:
        ...

    def clear(self, owner: str) -> None:
        ...

    def shutdown(self) -> None:
        ...
