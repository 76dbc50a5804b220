"""
Tests for habit commands and the day-status log.
"""

from datetime import datetime, timezone

import pytest

from lifelog.core.clock import DeterministicClock
from lifelog.core.errors import NotFoundError, ValidationError
from lifelog.log.memory_store import InMemoryEventStore
from lifelog.projection import day_log, habits
from lifelog.commands import (
    archive_habit,
    clear_habit_status,
    create_habit,
    log_habit,
    pause_habit,
    relapse_habit,
    resolve_missed_habits,
    resume_habit,
    skip_habit,
    snooze_habit,
    update_habit,
)


def _ms(*args):
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


def _clock(day, hour=12):
    return DeterministicClock(_ms(2025, 3, day, hour))


def _status(store, habit_id, day_key):
    projector = day_log.build_projector()
    return day_log.DayLog.from_state(projector.fold(projector.scan(store)).state).status_for(habit_id, day_key)


@pytest.fixture
def store():
    return InMemoryEventStore()


@pytest.fixture
def habit_id(store):
    return create_habit(store, _clock(3), idempotency_key="create", name="Read", cadence="daily").entity_id


@pytest.mark.parametrize(
    "cadence,message",
    [
        ("hourly", "cadence must be daily, weekdays"),
        ({"customDays": []}, "customDays must not be empty"),
        ({"customDays": [1, 7]}, "customDays must use integers 0-6"),
        ({"customDays": ["mon"]}, "customDays must use integers 0-6"),
    ],
)
def test_create_rejects_bad_cadence(store, cadence, message):
    with pytest.raises(ValidationError, match=message):
        create_habit(store, _clock(3), idempotency_key="c", name="Read", cadence=cadence)
    assert len(store) == 0


def test_create_validation(store):
    with pytest.raises(ValidationError, match="Habit name cannot be empty"):
        create_habit(store, _clock(3), idempotency_key="c1", name=" ", cadence="daily")
    with pytest.raises(ValidationError, match="endDayKey must be on or after startDayKey"):
        create_habit(
            store, _clock(3), idempotency_key="c2", name="Run", cadence="daily",
            start_day_key="2025-03-10", end_day_key="2025-03-01",
        )
    with pytest.raises(ValidationError, match="unknown timezone"):
        create_habit(store, _clock(3), idempotency_key="c3", name="Run", cadence="daily", timezone="Mars/Olympus")
    with pytest.raises(ValidationError, match="targetValue must be greater than 0"):
        create_habit(store, _clock(3), idempotency_key="c4", name="Run", cadence="daily", target_value=0)
    with pytest.raises(ValidationError, match="startDayKey must be in YYYY-MM-DD format"):
        create_habit(store, _clock(3), idempotency_key="c5", name="Run", cadence="daily", start_day_key="2025-02-30")
    assert len(store) == 0


def test_create_writes_stored_cadence_shape(store):
    hid = create_habit(
        store, _clock(3), idempotency_key="c", name="Gym", cadence={"customDays": [5, 1, 3]}, kind="build",
    ).entity_id

    payload = store.find_by_idempotency_key("c").payload
    assert hid.startswith("habit_")
    assert payload["cadenceType"] == "custom"
    assert payload["customDays"] == [1, 3, 5]
    assert payload["effectiveDayKey"] == "2025-03-03"
    assert "startDayKey" not in payload


def test_log_and_clear_today(store, habit_id):
    log_habit(store, _clock(5), idempotency_key="l1", habit_id=habit_id)
    assert _status(store, habit_id, "2025-03-05") == day_log.COMPLETED

    clear_habit_status(store, _clock(5, 13), idempotency_key="l2", habit_id=habit_id)
    assert _status(store, habit_id, "2025-03-05") is None


def test_latest_status_for_a_day_wins(store, habit_id):
    skip_habit(store, _clock(5, 8), idempotency_key="l1", habit_id=habit_id)
    log_habit(store, _clock(5, 20), idempotency_key="l2", habit_id=habit_id)

    assert _status(store, habit_id, "2025-03-05") == day_log.COMPLETED


def test_backdated_log(store, habit_id):
    log_habit(store, _clock(9), idempotency_key="l1", habit_id=habit_id, day_key="2025-03-04")

    assert _status(store, habit_id, "2025-03-04") == day_log.COMPLETED
    assert _status(store, habit_id, "2025-03-09") is None


def test_value_below_target_counts_as_skipped(store):
    hid = create_habit(
        store, _clock(3), idempotency_key="c", name="Pushups", cadence="daily", target_value=20, target_unit="reps"
    ).entity_id

    log_habit(store, _clock(4), idempotency_key="l1", habit_id=hid, value=12)
    log_habit(store, _clock(5), idempotency_key="l2", habit_id=hid, value=25)

    assert _status(store, hid, "2025-03-04") == day_log.SKIPPED
    assert _status(store, hid, "2025-03-05") == day_log.COMPLETED
    with pytest.raises(ValidationError, match="value must be a number"):
        log_habit(store, _clock(6), idempotency_key="l3", habit_id=hid, value="lots")


def test_log_outside_range_is_rejected(store, habit_id):
    with pytest.raises(ValidationError, match="outside its active date range"):
        log_habit(store, _clock(5), idempotency_key="l1", habit_id=habit_id, day_key="2025-03-01")

    pause_habit(store, _clock(5), idempotency_key="p1", habit_id=habit_id, paused_until_day_key="2025-03-07")
    with pytest.raises(ValidationError, match="outside its active date range"):
        log_habit(store, _clock(6), idempotency_key="l2", habit_id=habit_id)


def test_snooze_needs_future_time(store, habit_id):
    clock = _clock(5)
    with pytest.raises(ValidationError, match="snoozedUntil must be in the future"):
        snooze_habit(store, clock, idempotency_key="s1", habit_id=habit_id, snoozed_until=clock.now())

    snooze_habit(store, clock, idempotency_key="s2", habit_id=habit_id, snoozed_until=clock.now() + 3_600_000)
    assert _status(store, habit_id, "2025-03-05") == day_log.SNOOZED


def test_relapse_only_for_break_habits(store, habit_id):
    with pytest.raises(ValidationError, match="break habits"):
        relapse_habit(store, _clock(5), idempotency_key="r1", habit_id=habit_id)

    quit_id = create_habit(
        store, _clock(3), idempotency_key="c2", name="No sugar", cadence="daily", kind="break"
    ).entity_id
    relapse_habit(store, _clock(5), idempotency_key="r2", habit_id=quit_id)
    assert _status(store, quit_id, "2025-03-05") == day_log.RELAPSED


def test_pause_and_resume_validation(store, habit_id):
    with pytest.raises(ValidationError, match="after the pause start"):
        pause_habit(store, _clock(5), idempotency_key="p1", habit_id=habit_id, paused_until_day_key="2025-03-05")
    with pytest.raises(ValidationError, match="Habit is not paused"):
        resume_habit(store, _clock(5), idempotency_key="r1", habit_id=habit_id)


def test_archived_habit_rejects_commands(store, habit_id):
    archive_habit(store, _clock(6), idempotency_key="a1", habit_id=habit_id)

    with pytest.raises(NotFoundError, match="already archived"):
        archive_habit(store, _clock(7), idempotency_key="a2", habit_id=habit_id)
    with pytest.raises(NotFoundError, match="not found or archived"):
        log_habit(store, _clock(7), idempotency_key="l1", habit_id=habit_id)
    with pytest.raises(NotFoundError, match="not found or archived"):
        update_habit(store, _clock(7), idempotency_key="u1", habit_id=habit_id, name="Again")
    with pytest.raises(NotFoundError, match="Habit not found"):
        archive_habit(store, _clock(7), idempotency_key="a3", habit_id="habit_nope")


def test_update_range_checked_against_current_rule(store):
    hid = create_habit(
        store, _clock(3), idempotency_key="c", name="Read", cadence="daily", end_day_key="2025-03-31"
    ).entity_id

    with pytest.raises(ValidationError, match="endDayKey must be on or after startDayKey"):
        update_habit(store, _clock(4), idempotency_key="u1", habit_id=hid, start_day_key="2025-04-02")

    update_habit(store, _clock(4), idempotency_key="u2", habit_id=hid, clear_end_day_key=True)
    habit = habits.build_projector().load(store, hid)
    assert habit.end_day_key is None


def test_resolve_missed_marks_unlogged_scheduled_days(store):
    hid = create_habit(store, _clock(5), idempotency_key="c", name="Read", cadence="daily").entity_id
    log_habit(store, _clock(6), idempotency_key="l1", habit_id=hid)

    result = resolve_missed_habits(store, _clock(10), idempotency_key="m1")

    assert result.created
    assert result.event_count == 4
    for day in ("2025-03-05", "2025-03-07", "2025-03-08", "2025-03-09"):
        assert _status(store, hid, day) == day_log.MISSED
    assert _status(store, hid, "2025-03-06") == day_log.COMPLETED
    assert _status(store, hid, "2025-03-10") is None

    again = resolve_missed_habits(store, _clock(10, 18), idempotency_key="m2")
    assert not again.created
    assert again.event_count == 0


def test_resolve_missed_respects_lookback(store):
    create_habit(store, _clock(1), idempotency_key="c", name="Read", cadence="daily")

    result = resolve_missed_habits(store, _clock(10), idempotency_key="m1", lookback_days=2)

    assert result.event_count == 2
    with pytest.raises(ValidationError, match="lookbackDays"):
        resolve_missed_habits(store, _clock(10), idempotency_key="m2", lookback_days=0)


def test_resolve_missed_retry_reports_the_first_reply(store):
    create_habit(store, _clock(3), idempotency_key="c", name="Read", cadence="daily")

    first = resolve_missed_habits(store, _clock(8), idempotency_key="m1")
    second = resolve_missed_habits(store, _clock(8), idempotency_key="m1")

    assert first.created and first.event_count == 5
    assert second.deduplicated
    assert second.entity_id == first.entity_id
    assert len(store) == 6


def test_log_retry_reports_the_habit_id(store, habit_id):
    first = log_habit(store, _clock(4), idempotency_key="l1", habit_id=habit_id)
    second = log_habit(store, _clock(4), idempotency_key="l1", habit_id=habit_id)

    assert second.deduplicated
    assert first.entity_id == second.entity_id == habit_id
