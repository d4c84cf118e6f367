from datetime import datetime, date
from typing import Optional, Union


MINUTES_PER_DAY = 24 * 60


def now_local() -> datetime:
    """Current server-local wall clock time (naive).

    All scheduling runs on the server's local clock; no per-user zones.
    """
    return datetime.now()


def today_local() -> date:
    return now_local().date()


def day_key(value: Optional[Union[datetime, date]] = None) -> str:
    """Calendar day key (YYYY-MM-DD) used by the completion log."""
    if value is None:
        value = today_local()
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def minute_of_day(value: Optional[datetime] = None) -> int:
    if value is None:
        value = now_local()
    return value.hour * 60 + value.minute


def format_minute_of_day(minute: int) -> str:
    """Render a minute-of-day as HH:MM."""
    minute = minute % MINUTES_PER_DAY
    return f"{minute // 60:02d}:{minute % 60:02d}"
