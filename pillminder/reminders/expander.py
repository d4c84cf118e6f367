from typing import Iterable, List, Optional, Sequence, Union

from pillminder.utils.timezone import MINUTES_PER_DAY
from .types import DueTime, MedicationPlan, Stage


def expand_due_times(stages: Iterable[Stage]) -> List[DueTime]:
    """Expand a day's stages into every minute at which one is due.

    Stages are ordered by time of day (stable, so ties keep plan order).
    Each stage repeats every ``repeat_interval_minutes`` until the next
    stage's time; the last stage wraps around to the first stage's time on
    the following day. An interval of 0 produces a single daily occurrence.
    """
    ordered = sorted(stages, key=lambda s: s.time_of_day)
    due: List[DueTime] = []
    for index, stage in enumerate(ordered):
        if index + 1 < len(ordered):
            window_end = ordered[index + 1].time_of_day
        else:
            window_end = ordered[0].time_of_day + MINUTES_PER_DAY

        interval = stage.repeat_interval_minutes
        if interval <= 0:
            due.append(DueTime(minute=stage.time_of_day % MINUTES_PER_DAY, stage=stage))
            continue

        occurrence = stage.time_of_day
        while occurrence < window_end:
            due.append(DueTime(minute=occurrence % MINUTES_PER_DAY, stage=stage))
            occurrence += interval
    return due


def first_due_stage(stages: Iterable[Stage], minute: int) -> Optional[Stage]:
    """First stage (in generation order) due at ``minute``, if any."""
    for entry in expand_due_times(stages):
        if entry.minute == minute:
            return entry.stage
    return None


def evaluate_due(plan: Union[MedicationPlan, Sequence[Stage]], now_minute: int) -> List[int]:
    """Stage ids due at ``now_minute``, in generation order, without repeats."""
    if not 0 <= now_minute < MINUTES_PER_DAY:
        raise ValueError(f"now_minute out of range: {now_minute}")
    stage_ids: List[int] = []
    for entry in expand_due_times(plan):
        if entry.minute == now_minute and entry.stage.id not in stage_ids:
            stage_ids.append(entry.stage.id)
    return stage_ids
