import pytest
from sqlalchemy.exc import IntegrityError

from pillminder.models.medication import MedicationPlanVersion

from .conftest import make_stage


def _insert_raw(session_factory, owner, stage_config, is_active=True):
    db = session_factory()
    try:
        db.add(MedicationPlanVersion(owner=owner, stage_config=stage_config, is_active=is_active))
        db.commit()
    finally:
        db.close()


def test_save_creates_new_active_version(plan_store, session_factory):
    first = plan_store.save_plan("U1", [make_stage(1, "morning", "08:00")])
    second = plan_store.save_plan("U1", [make_stage(1, "morning", "09:00"), make_stage(2, "night", "21:00")])

    plan = plan_store.get_active_plan("U1")
    assert plan.version_id == second.version_id != first.version_id
    assert [(s.name, s.time) for s in plan] == [("morning", "09:00"), ("night", "21:00")]

    db = session_factory()
    try:
        rows = db.query(MedicationPlanVersion).filter(MedicationPlanVersion.owner == "U1").all()
        assert len(rows) == 2
        assert sum(1 for r in rows if r.is_active) == 1
    finally:
        db.close()


def test_stage_order_and_interval_round_trip(plan_store):
    plan_store.save_plan("U1", [make_stage(3, "night", "20:00", interval=30), make_stage(1, "morning", "08:00")])

    plan = plan_store.get_active_plan("U1")

    assert [(s.id, s.repeat_interval_minutes) for s in plan] == [(3, 30), (1, 0)]


def test_missing_plan_is_none(plan_store):
    assert plan_store.get_active_plan("nobody") is None
    assert plan_store.has_configuration("nobody") is False


@pytest.mark.parametrize(
    "stage_config",
    [
        "{not json",
        '{"name": "morning"}',
        '[{"id": 1, "name": "morning"}]',
        '[{"id": 1, "name": "morning", "time": "25:00"}]',
        '[{"name": "morning", "time": "08:00"}]',
    ],
)
def test_malformed_plan_reads_as_none(plan_store, session_factory, stage_config):
    _insert_raw(session_factory, "U1", stage_config)

    assert plan_store.get_active_plan("U1") is None


def test_legacy_interval_key_is_accepted(plan_store, session_factory):
    _insert_raw(session_factory, "U1", '[{"id": 1, "name": "night", "time": "8:30", "interval": 15}]')

    stage = plan_store.get_active_plan("U1").stages[0]

    assert stage.time == "08:30"
    assert stage.repeat_interval_minutes == 15


def test_list_active_owners_is_distinct_and_skips_inactive(plan_store):
    plan_store.save_plan("U1", [make_stage(1, "morning", "08:00")])
    plan_store.save_plan("U2", [make_stage(1, "morning", "08:00")])
    plan_store.save_plan("U1", [make_stage(1, "morning", "09:00")])
    plan_store.save_plan("U3", [make_stage(1, "morning", "08:00")])
    plan_store.deactivate("U3")

    assert sorted(plan_store.list_active_owners()) == ["U1", "U2"]


def test_deactivate_reports_whether_plan_existed(plan_store):
    plan_store.save_plan("U1", [make_stage(1, "morning", "08:00")])

    assert plan_store.deactivate("U1") is True
    assert plan_store.deactivate("U1") is False
    assert plan_store.get_active_plan("U1") is None
    assert plan_store.has_configuration("U1") is True


def test_second_active_row_is_rejected(session_factory):
    _insert_raw(session_factory, "U1", "[]")

    with pytest.raises(IntegrityError):
        _insert_raw(session_factory, "U1", "[]")
