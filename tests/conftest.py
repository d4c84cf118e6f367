import os
from datetime import datetime

# Keep the module-level engine off Postgres while tests import the package
os.environ.setdefault("PILLMINDER_SQLALCHEMY_DATABASE_URI", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from pillminder import models  # noqa: F401
from pillminder.crud.completion_log import SqlCompletionLog
from pillminder.crud.plan_store import SqlPlanStore
from pillminder.db.base import Base
from pillminder.db.session import build_session_factory
from pillminder.reminders.reminder_task import ReminderTask
from pillminder.reminders.types import Stage, parse_time_of_day


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, value: str) -> None:
        """Move to another time, "YYYY-MM-DD HH:MM"."""
        self.now = datetime.strptime(value, "%Y-%m-%d %H:%M")


class RecordingNotifier:
    def __init__(self, result: bool = True):
        self.result = result
        self.sent = []

    def dispatch(self, owner: str, stage_name: str) -> bool:
        self.sent.append((owner, stage_name))
        return self.result


def make_stage(stage_id: int, name: str, time: str, interval: int = 0) -> Stage:
    return Stage(id=stage_id, name=name, time_of_day=parse_time_of_day(time), repeat_interval_minutes=interval)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def plan_store(session_factory):
    return SqlPlanStore(session_factory)


@pytest.fixture
def completion_log(session_factory):
    return SqlCompletionLog(session_factory)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 1, 8, 0))


@pytest.fixture
def reminder_task(plan_store, completion_log, notifier):
    return ReminderTask(plan_store=plan_store, completion_log=completion_log, notifier=notifier)
