from typing import Optional

from celery import shared_task

from pillminder.core.config import settings
from .bootstrap import build_reminder_task, build_scan_engine
from .scan_engine import ScanEngine


_engine: Optional[ScanEngine] = None


def get_scan_engine() -> ScanEngine:
    """Scan engine for this worker process, built on first use."""
    global _engine
    if _engine is None:
        from pillminder.db.session import SessionLocal

        _engine = build_scan_engine(build_reminder_task(SessionLocal, settings))
    return _engine


@shared_task(name="pillminder.tick", ignore_result=True)
def tick_task() -> None:
    """One scan pass; scheduled every minute by Celery beat."""
    get_scan_engine().on_tick()
