import logging
from datetime import datetime
from typing import List, Optional, Set

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from pillminder.models.medication import CompletionRecord
from pillminder.reminders.types import CompletionEntry, CompletionStatus
from pillminder.utils.timezone import day_key, now_local


logger = logging.getLogger(__name__)


class SqlCompletionLog:
    """Append-only completion log keyed by (owner, stage_name, day).

    Stage names are the durable identity; ids are reassigned across plan
    versions and are stored for reference only. Writes are insert-if-absent:
    the unique constraint on (owner, stage_name, day, status) turns a racing
    duplicate into a no-op.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def is_completed_today(self, owner: str, stage_name: str, day: Optional[str] = None) -> bool:
        return self.status_today(owner, stage_name, day=day) is not None

    def status_today(self, owner: str, stage_name: str, day: Optional[str] = None) -> Optional[CompletionStatus]:
        """CONFIRMED if confirmed today, PENDING if only reminded, else None."""
        day = day or day_key()
        db = self.session_factory()
        try:
            statuses = set(
                db.execute(
                    select(CompletionRecord.status).where(
                        CompletionRecord.owner == owner,
                        CompletionRecord.stage_name == stage_name,
                        CompletionRecord.day == day,
                    )
                ).scalars()
            )
        finally:
            db.close()
        if CompletionStatus.CONFIRMED.value in statuses:
            return CompletionStatus.CONFIRMED
        if statuses:
            return CompletionStatus.PENDING
        return None

    def record_pending(
        self, owner: str, stage_name: str, stage_id: Optional[int] = None, day: Optional[str] = None
    ) -> bool:
        """Record that a reminder went out. Returns False if already recorded."""
        return self._insert_if_absent(owner, stage_name, stage_id, day or day_key(), CompletionStatus.PENDING, None)

    def record_confirmed(
        self,
        owner: str,
        stage_name: str,
        stage_id: Optional[int] = None,
        day: Optional[str] = None,
        confirmed_at: Optional[datetime] = None,
    ) -> bool:
        """Record a user confirmation. Returns False if already confirmed."""
        confirmed_at = confirmed_at or now_local()
        return self._insert_if_absent(
            owner, stage_name, stage_id, day or day_key(confirmed_at), CompletionStatus.CONFIRMED, confirmed_at
        )

    def completed_stages_today(self, owner: str, day: Optional[str] = None) -> Set[str]:
        """Names of the stages with any record on ``day``."""
        day = day or day_key()
        db = self.session_factory()
        try:
            return set(
                db.execute(
                    select(CompletionRecord.stage_name).where(
                        CompletionRecord.owner == owner,
                        CompletionRecord.day == day,
                    )
                ).scalars()
            )
        finally:
            db.close()

    def records_for_day(self, owner: str, day: str) -> List[CompletionEntry]:
        db = self.session_factory()
        try:
            rows = (
                db.query(CompletionRecord)
                .filter(CompletionRecord.owner == owner, CompletionRecord.day == day)
                .order_by(CompletionRecord.id.asc())
                .all()
            )
            return [
                CompletionEntry(
                    owner=r.owner,
                    stage_id=r.stage_id,
                    day=r.day,
                    status=CompletionStatus(r.status),
                    stage_name=r.stage_name,
                    fired_at=r.fired_at,
                )
                for r in rows
            ]
        finally:
            db.close()

    def _insert_if_absent(
        self,
        owner: str,
        stage_name: str,
        stage_id: Optional[int],
        day: str,
        status: CompletionStatus,
        fired_at: Optional[datetime],
    ) -> bool:
        db = self.session_factory()
        try:
            existing = (
                db.query(CompletionRecord.id)
                .filter(
                    CompletionRecord.owner == owner,
                    CompletionRecord.stage_name == stage_name,
                    CompletionRecord.day == day,
                    CompletionRecord.status == status.value,
                )
                .first()
            )
            if existing:
                return False
            db.add(
                CompletionRecord(
                    owner=owner,
                    stage_id=stage_id,
                    stage_name=stage_name,
                    day=day,
                    status=status.value,
                    fired_at=fired_at,
                )
            )
            db.commit()
            logger.info(f"[CompletionLog] Recorded {status.value} owner={owner} stage={stage_name} day={day}")
            return True
        except IntegrityError:
            db.rollback()
            logger.info(f"[CompletionLog] Concurrent {status.value} insert for owner={owner} stage={stage_name} day={day}")
            return False
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
