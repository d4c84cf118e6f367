import logging
from typing import List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import sessionmaker

from pillminder.models.medication import MedicationPlanVersion
from pillminder.reminders.types import MedicationPlan, Stage
from pillminder.schemas.plan import dump_stage_config, parse_stage_config


logger = logging.getLogger(__name__)


class SqlPlanStore:
    """Versioned plan storage: every save deactivates and inserts.

    Each call opens its own session so the store can be shared by the
    ticker thread and concurrent timer callbacks.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_active_plan(self, owner: str) -> Optional[MedicationPlan]:
        """Active plan for ``owner``; malformed stored data reads as no plan."""
        db = self.session_factory()
        try:
            row = (
                db.query(MedicationPlanVersion)
                .filter(MedicationPlanVersion.owner == owner, MedicationPlanVersion.is_active == True)  # noqa: E712
                .order_by(MedicationPlanVersion.id.desc())
                .first()
            )
            if row is None:
                return None
            try:
                stages = parse_stage_config(row.stage_config)
            except ValueError as e:
                logger.warning(f"⚠️  [PlanStore] Malformed plan version={row.id} owner={owner}: {e}")
                return None
            return MedicationPlan(owner=owner, stages=tuple(stages), version_id=row.id)
        finally:
            db.close()

    def list_active_owners(self) -> List[str]:
        db = self.session_factory()
        try:
            stmt = (
                select(MedicationPlanVersion.owner)
                .where(MedicationPlanVersion.is_active == True)  # noqa: E712
                .order_by(MedicationPlanVersion.id.asc())
            )
            owners: List[str] = []
            for owner in db.execute(stmt).scalars():
                if owner not in owners:
                    owners.append(owner)
            return owners
        finally:
            db.close()

    def save_plan(self, owner: str, stages: Sequence[Stage]) -> MedicationPlan:
        """Deactivate the current version and insert ``stages`` as the new one."""
        db = self.session_factory()
        try:
            db.execute(
                update(MedicationPlanVersion)
                .where(MedicationPlanVersion.owner == owner, MedicationPlanVersion.is_active == True)  # noqa: E712
                .values(is_active=False)
            )
            row = MedicationPlanVersion(owner=owner, stage_config=dump_stage_config(list(stages)), is_active=True)
            db.add(row)
            db.commit()
            db.refresh(row)
            logger.info(f"[PlanStore] Saved plan version={row.id} owner={owner} stages={len(stages)}")
            return MedicationPlan(owner=owner, stages=tuple(stages), version_id=row.id)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def deactivate(self, owner: str) -> bool:
        """Leave ``owner`` with no active plan. Returns False if none was active."""
        db = self.session_factory()
        try:
            result = db.execute(
                update(MedicationPlanVersion)
                .where(MedicationPlanVersion.owner == owner, MedicationPlanVersion.is_active == True)  # noqa: E712
                .values(is_active=False)
            )
            db.commit()
            return bool(result.rowcount)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def has_configuration(self, owner: str) -> bool:
        """True if ``owner`` ever saved a plan version, active or not."""
        db = self.session_factory()
        try:
            return (
                db.query(MedicationPlanVersion.id)
                .filter(MedicationPlanVersion.owner == owner)
                .first()
                is not None
            )
        finally:
            db.close()
