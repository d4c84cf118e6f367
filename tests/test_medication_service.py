import pytest

from pillminder.services.medication_service import NO_PLAN_MESSAGE, MedicationService

from .conftest import make_stage

DAY = "2024-03-01"


@pytest.fixture
def service(plan_store, completion_log, clock):
    return MedicationService(plan_store, completion_log, clock=clock)


@pytest.fixture
def plan(plan_store):
    return plan_store.save_plan(
        "U1",
        [make_stage(1, "morning", "08:00"), make_stage(2, "noon", "12:00"), make_stage(3, "night", "20:00")],
    )


def test_confirm_unknown_stage(service, plan):
    result = service.confirm_medication("U1", "lunch")

    assert result.success is False
    assert not result.is_duplicate


def test_confirm_after_reminder_then_duplicate(service, plan, completion_log):
    completion_log.record_pending("U1", "morning", stage_id=1, day=DAY)

    first = service.confirm_medication("U1", "morning")
    second = service.confirm_medication("U1", "morning")

    assert first.success is True
    assert second.success is False
    assert second.is_duplicate is True


def test_today_status_splits_stages(service, plan, completion_log):
    completion_log.record_pending("U1", "morning", day=DAY)
    completion_log.record_pending("U1", "noon", day=DAY)
    service.confirm_medication("U1", "noon")

    status = service.today_status("U1")

    assert status.day == DAY
    assert status.taken == ["noon"]
    assert status.reminded == ["morning"]
    assert status.outstanding == ["night"]


def test_format_records_without_plan(service):
    assert service.format_records("U1", DAY, "Today") == NO_PLAN_MESSAGE


def test_format_records_without_records(service, plan):
    assert service.format_records("U1", DAY, "Today") == "Today\nNo medication records"


def test_format_records_lists_stages_in_plan_order(service, plan, completion_log):
    completion_log.record_pending("U1", "night", day=DAY)
    service.confirm_medication("U1", "morning")

    text = service.format_records("U1", DAY, "Today")

    assert text.splitlines() == [
        "Today",
        "- morning: taken",
        "- noon: not taken",
        "- night: reminded, not confirmed",
    ]


def test_confirmation_not_shared_with_stage_reusing_an_id(service, plan_store, completion_log):
    plan_store.save_plan("U1", [make_stage(1, "morning", "08:00"), make_stage(2, "noon", "12:00")])
    service.confirm_medication("U1", "noon")
    plan_store.save_plan("U1", [make_stage(1, "morning", "08:00"), make_stage(2, "evening", "20:00")])

    result = service.confirm_medication("U1", "evening")
    status = service.today_status("U1")

    assert result.success is True
    assert status.taken == ["evening"]
    assert status.outstanding == ["morning"]
