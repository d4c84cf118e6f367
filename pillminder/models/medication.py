from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, UniqueConstraint

from pillminder.db.base import Base
from pillminder.reminders.types import CompletionStatus


class MedicationPlanVersion(Base):
    """One immutable version of an owner's plan; edits insert a new row"""
    __tablename__ = "medication_plans"

    id = Column(Integer, primary_key=True, index=True)
    owner = Column(String, nullable=False, index=True)
    stage_config = Column(Text, nullable=False)  # JSON list of stages
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    __table_args__ = (
        Index("ix_medication_plans_owner_active", "owner", "is_active"),
    )


# At most one active version per owner
Index(
    "uq_medication_plans_active_owner",
    MedicationPlanVersion.owner,
    unique=True,
    postgresql_where=MedicationPlanVersion.is_active.is_(True),
    sqlite_where=MedicationPlanVersion.is_active.is_(True),
)


class CompletionRecord(Base):
    """Append-only per-stage, per-day event (reminder sent or dose confirmed)"""
    __tablename__ = "medication_records"

    id = Column(Integer, primary_key=True, index=True)
    owner = Column(String, nullable=False, index=True)
    stage_name = Column(String, nullable=False)
    stage_id = Column(Integer, nullable=True)  # id within the plan version at the time; may be reused later
    day = Column(String(10), nullable=False)  # YYYY-MM-DD, server local date
    status = Column(String(16), nullable=False, default=CompletionStatus.PENDING.value)
    fired_at = Column(DateTime, nullable=True)  # confirmation time; NULL while pending
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    __table_args__ = (
        UniqueConstraint("owner", "stage_name", "day", "status", name="uq_medication_records_owner_stage_day_status"),
        Index("ix_medication_records_owner_day", "owner", "day"),
    )
