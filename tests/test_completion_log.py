from datetime import datetime

from pillminder.reminders.types import CompletionStatus

DAY = "2024-03-01"


def test_pending_record_is_insert_if_absent(completion_log):
    assert completion_log.record_pending("U1", "morning", stage_id=1, day=DAY) is True
    assert completion_log.record_pending("U1", "morning", stage_id=1, day=DAY) is False

    assert len(completion_log.records_for_day("U1", DAY)) == 1
    assert completion_log.is_completed_today("U1", "morning", day=DAY)
    assert completion_log.status_today("U1", "morning", day=DAY) is CompletionStatus.PENDING


def test_confirmation_upgrades_pending(completion_log):
    completion_log.record_pending("U1", "morning", stage_id=1, day=DAY)
    confirmed_at = datetime(2024, 3, 1, 8, 12)

    assert completion_log.record_confirmed("U1", "morning", stage_id=1, confirmed_at=confirmed_at) is True
    assert completion_log.record_confirmed("U1", "morning", stage_id=1, day=DAY) is False

    assert completion_log.status_today("U1", "morning", day=DAY) is CompletionStatus.CONFIRMED
    records = completion_log.records_for_day("U1", DAY)
    assert [r.status for r in records] == [CompletionStatus.PENDING, CompletionStatus.CONFIRMED]
    assert records[0].fired_at is None
    assert records[1].fired_at == confirmed_at


def test_reused_stage_id_does_not_share_state(completion_log):
    completion_log.record_pending("U1", "noon", stage_id=2, day=DAY)

    assert not completion_log.is_completed_today("U1", "evening", day=DAY)
    assert completion_log.record_pending("U1", "evening", stage_id=2, day=DAY) is True
    assert completion_log.completed_stages_today("U1", day=DAY) == {"noon", "evening"}


def test_records_are_scoped_by_owner_stage_and_day(completion_log):
    completion_log.record_pending("U1", "morning", day=DAY)
    completion_log.record_pending("U1", "noon", day="2024-03-02")
    completion_log.record_pending("U2", "night", day=DAY)

    assert completion_log.completed_stages_today("U1", day=DAY) == {"morning"}
    assert not completion_log.is_completed_today("U1", "noon", day=DAY)
    assert completion_log.status_today("U1", "night", day=DAY) is None
    assert completion_log.records_for_day("U3", DAY) == []
