"""
Wiring helpers shared by the worker process and the Celery tick task
"""
from typing import Optional

from sqlalchemy.orm import sessionmaker

from pillminder.core.config import Settings
from pillminder.crud.completion_log import SqlCompletionLog
from pillminder.crud.plan_store import SqlPlanStore
from .drivers import ScanScheduleDriver, TimerScheduleDriver
from .interfaces import Notifier
from .notifier import build_notifier
from .reminder_task import ReminderTask
from .scan_engine import ScanEngine
from .ticker import MinuteTicker
from .timer_registry import StageTimerRegistry


def build_reminder_task(session_factory: sessionmaker, config: Settings, notifier: Optional[Notifier] = None) -> ReminderTask:
    return ReminderTask(
        plan_store=SqlPlanStore(session_factory),
        completion_log=SqlCompletionLog(session_factory),
        notifier=notifier or build_notifier(config),
    )


def build_scan_engine(reminder_task: ReminderTask) -> ScanEngine:
    return ScanEngine(plan_store=reminder_task.plan_store, reminder_task=reminder_task)


def build_schedule_driver(reminder_task: ReminderTask, config: Settings, driver: Optional[str] = None):
    driver = driver or config.SCHEDULE_DRIVER
    if driver == "timers":
        registry = StageTimerRegistry(
            reminder_task,
            misfire_grace_seconds=config.TIMER_MISFIRE_GRACE_SECONDS,
        )
        return TimerScheduleDriver(registry, reminder_task.plan_store)
    engine = build_scan_engine(reminder_task)
    ticker = MinuteTicker(engine.on_tick, misfire_grace_seconds=config.TICK_MISFIRE_GRACE_SECONDS)
    return ScanScheduleDriver(engine, ticker)
