"""
Plain data types shared by the reminder engine and its collaborators
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import re
from typing import Iterator, Optional, Tuple

from pillminder.utils.timezone import MINUTES_PER_DAY, format_minute_of_day


_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_time_of_day(value: str) -> int:
    """Parse "HH:mm" into a minute-of-day (0-1439). Raises ValueError."""
    match = _TIME_RE.match(str(value).strip())
    if not match:
        raise ValueError(f"Invalid time of day: {value!r} (expected HH:mm)")
    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time of day: {value!r}")
    return hour * 60 + minute


class CompletionStatus(str, Enum):
    """State of a completion record.

    PENDING means a reminder went out and the user has not confirmed yet.
    Either state counts as "completed for today" for dispatch purposes.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class Stage:
    """One dosing slot within a plan version"""
    id: int
    name: str
    time_of_day: int
    repeat_interval_minutes: int = 0

    def __post_init__(self):
        if not 0 <= self.time_of_day < MINUTES_PER_DAY:
            raise ValueError(f"time_of_day out of range: {self.time_of_day}")
        if self.repeat_interval_minutes < 0:
            raise ValueError("repeat_interval_minutes must be >= 0")

    @property
    def time(self) -> str:
        return format_minute_of_day(self.time_of_day)

    @property
    def hour(self) -> int:
        return self.time_of_day // 60

    @property
    def minute(self) -> int:
        return self.time_of_day % 60


@dataclass(frozen=True)
class MedicationPlan:
    """The active version of an owner's plan, in configured order."""
    owner: str
    stages: Tuple[Stage, ...] = ()
    version_id: Optional[int] = None

    def __len__(self) -> int:
        return len(self.stages)

    def __iter__(self) -> Iterator[Stage]:
        return iter(self.stages)

    def __bool__(self) -> bool:
        return bool(self.stages)

    def find_by_name(self, name: str) -> Optional[Stage]:
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def next_stage_id(self) -> int:
        return max((s.id for s in self.stages), default=0) + 1


@dataclass(frozen=True)
class DueTime:
    minute: int
    stage: Stage


@dataclass(frozen=True)
class CompletionEntry:
    owner: str
    stage_name: str
    day: str
    status: CompletionStatus
    stage_id: Optional[int] = None
    fired_at: Optional[datetime] = field(default=None, compare=False)
