from unittest.mock import MagicMock

from pillminder.models.medication import MedicationPlanVersion
from pillminder.reminders.reminder_task import ReminderTask
from pillminder.reminders.scan_engine import ScanEngine
from pillminder.reminders.types import CompletionStatus
from pillminder.services.plan_service import PlanService

from .conftest import make_stage


def _engine(plan_store, reminder_task, clock):
    return ScanEngine(plan_store=plan_store, reminder_task=reminder_task, clock=clock)


def test_due_stage_dispatches_once_and_records_pending(plan_store, completion_log, reminder_task, notifier, clock):
    plan_store.save_plan("U1", [make_stage(1, "morning", "08:00")])
    engine = _engine(plan_store, reminder_task, clock)

    engine.on_tick()

    assert notifier.sent == [("U1", "morning")]
    records = completion_log.records_for_day("U1", "2024-03-01")
    assert [(r.stage_name, r.stage_id, r.status) for r in records] == [("morning", 1, CompletionStatus.PENDING)]

    clock.set("2024-03-01 08:01")
    engine.on_tick()

    assert len(notifier.sent) == 1
    assert len(completion_log.records_for_day("U1", "2024-03-01")) == 1


def test_repeat_occurrence_suppressed_after_first_reminder(plan_store, completion_log, reminder_task, notifier, clock):
    plan_store.save_plan("U1", [make_stage(1, "morning", "08:00"), make_stage(2, "night", "20:00", interval=30)])
    engine = _engine(plan_store, reminder_task, clock)

    clock.set("2024-03-01 20:00")
    engine.on_tick()
    clock.set("2024-03-01 20:30")
    engine.on_tick()

    assert notifier.sent == [("U1", "night")]
    assert len(completion_log.records_for_day("U1", "2024-03-01")) == 1


def test_confirmed_stage_is_not_reminded(plan_store, completion_log, reminder_task, notifier, clock):
    plan_store.save_plan("U1", [make_stage(1, "morning", "08:00")])
    completion_log.record_confirmed("U1", "morning", stage_id=1, day="2024-03-01")

    _engine(plan_store, reminder_task, clock).on_tick()

    assert notifier.sent == []


def test_no_due_stage_writes_nothing(plan_store, completion_log, reminder_task, notifier, clock):
    plan_store.save_plan("U1", [make_stage(1, "morning", "08:00")])
    clock.set("2024-03-01 09:17")

    _engine(plan_store, reminder_task, clock).on_tick()

    assert notifier.sent == []
    assert completion_log.records_for_day("U1", "2024-03-01") == []


def test_new_day_reminds_again(plan_store, reminder_task, notifier, clock):
    plan_store.save_plan("U1", [make_stage(1, "morning", "08:00")])
    engine = _engine(plan_store, reminder_task, clock)

    engine.on_tick()
    clock.set("2024-03-02 08:00")
    engine.on_tick()

    assert notifier.sent == [("U1", "morning"), ("U1", "morning")]


def test_only_first_tied_stage_is_dispatched(plan_store, reminder_task, notifier, clock):
    plan_store.save_plan("U1", [make_stage(1, "vitamins", "08:00"), make_stage(2, "aspirin", "08:00")])

    _engine(plan_store, reminder_task, clock).on_tick()

    assert notifier.sent == [("U1", "vitamins")]


def test_failing_owner_does_not_block_others(plan_store, completion_log, clock):
    plan_store.save_plan("A", [make_stage(1, "morning", "08:00")])
    plan_store.save_plan("B", [make_stage(1, "morning", "08:00")])

    notifier = MagicMock()
    notifier.dispatch.side_effect = lambda owner, stage_name: _raise_for("A", owner)
    task = ReminderTask(plan_store, completion_log, notifier)

    _engine(plan_store, task, clock).on_tick()

    assert [c.args for c in notifier.dispatch.call_args_list] == [("A", "morning"), ("B", "morning")]


def _raise_for(bad_owner, owner):
    if owner == bad_owner:
        raise RuntimeError("delivery exploded")
    return True


def test_malformed_plan_is_skipped(plan_store, session_factory, reminder_task, notifier, clock):
    db = session_factory()
    db.add(MedicationPlanVersion(owner="broken", stage_config="{not json", is_active=True))
    db.commit()
    db.close()
    plan_store.save_plan("U1", [make_stage(1, "morning", "08:00")])

    _engine(plan_store, reminder_task, clock).on_tick()

    assert notifier.sent == [("U1", "morning")]


def test_listing_failure_abandons_tick(reminder_task, notifier, clock):
    plan_store = MagicMock()
    plan_store.list_active_owners.side_effect = RuntimeError("db down")

    _engine(plan_store, reminder_task, clock).on_tick()

    assert notifier.sent == []
    plan_store.get_active_plan.assert_not_called()


def test_failed_dispatch_keeps_pending_record(plan_store, completion_log, reminder_task, notifier, clock):
    notifier.result = False
    plan_store.save_plan("U1", [make_stage(1, "night", "20:00", interval=30)])
    engine = _engine(plan_store, reminder_task, clock)

    clock.set("2024-03-01 20:00")
    engine.on_tick()
    clock.set("2024-03-01 20:30")
    engine.on_tick()

    assert len(notifier.sent) == 1
    assert completion_log.is_completed_today("U1", "night", day="2024-03-01")


def test_closed_engine_dispatches_nothing(plan_store, reminder_task, notifier, clock):
    plan_store.save_plan("U1", [make_stage(1, "morning", "08:00")])
    engine = _engine(plan_store, reminder_task, clock)

    engine.close()
    engine.on_tick()

    assert engine.closed
    assert notifier.sent == []


def test_stage_reusing_an_id_is_still_reminded(plan_store, completion_log, reminder_task, notifier, clock):
    service = PlanService(plan_store)
    service.add_stage("U1", "morning", "08:00")
    service.add_stage("U1", "noon", "12:00")
    engine = _engine(plan_store, reminder_task, clock)

    clock.set("2024-03-01 12:00")
    engine.on_tick()
    service.remove_stage("U1", "noon")
    plan = service.add_stage("U1", "evening", "20:00")
    assert plan.find_by_name("evening").id == 2

    clock.set("2024-03-01 20:00")
    engine.on_tick()

    assert notifier.sent == [("U1", "noon"), ("U1", "evening")]
    assert completion_log.completed_stages_today("U1", day="2024-03-01") == {"noon", "evening"}
