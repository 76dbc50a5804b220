"""
Tests for task completion rates, completion-day streaks and their queries.
"""

from datetime import datetime, timezone

import pytest

from lifelog.consistency import task_completion
from lifelog.core.clock import DeterministicClock
from lifelog.core.errors import ValidationError
from lifelog.log.memory_store import InMemoryEventStore
from lifelog.projection import tasks
from lifelog.commands import abandon_task, capture_task, complete_task
from lifelog.query import task_consistency, tasks_consistency


def _ms(*args):
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


def _clock(day, hour=12):
    return DeterministicClock(_ms(2025, 3, day, hour))


@pytest.fixture
def store():
    return InMemoryEventStore()


def _task(store, key, created_day, completed_day=None, title=None, **kwargs):
    task_id = capture_task(store, _clock(created_day), idempotency_key=key, title=title or key, **kwargs).entity_id
    if completed_day is not None:
        complete_task(store, _clock(completed_day, 18), idempotency_key=f"{key}-done", task_id=task_id)
    return task_id


def test_rate_streaks_and_trend(store):
    _task(store, "t1", 3, 8)
    _task(store, "t2", 4, 9)
    _task(store, "t3", 5, 10)
    _task(store, "t4", 6)
    abandoned = _task(store, "t5", 9)
    abandon_task(store, _clock(9, 13), idempotency_key="drop", task_id=abandoned)

    report = tasks_consistency(store, _clock(10), window_days=7, trend_days=7)

    assert report.as_of_day_key == "2025-03-10"
    assert report.created_in_window == 4
    assert report.completed_in_window == 3
    assert report.completion_rate_pct == 75
    assert report.current_streak == 3
    assert report.best_streak == 3
    assert [p.completed for p in report.trend] == [0, 0, 0, 0, 1, 1, 1]
    assert report.trend[0].day_key == "2025-03-04"


def test_today_without_completion_ends_the_current_streak(store):
    _task(store, "a", 1, 2)
    _task(store, "b", 1, 3)
    _task(store, "c", 1, 4)
    _task(store, "d", 1, 6)

    report = tasks_consistency(store, _clock(7), window_days=7)

    assert report.current_streak == 0
    assert report.best_streak == 3


def test_rate_is_capped_when_old_tasks_finish_in_window(store):
    _task(store, "old1", 1, 20)
    _task(store, "old2", 1, 20)
    _task(store, "new", 19)

    report = tasks_consistency(store, _clock(20), window_days=7)

    assert report.created_in_window == 1
    assert report.completed_in_window == 2
    assert report.completion_rate_pct == 100


def test_best_streak_reaches_before_the_window(store):
    for day in range(1, 6):
        _task(store, f"early{day}", day, day)
    _task(store, "late", 20, 20)

    report = tasks_consistency(store, _clock(20), window_days=7)

    assert report.completed_in_window == 1
    assert report.best_streak == 5
    assert report.current_streak == 1


def test_completion_days_follow_the_clock_timezone(store):
    task_id = capture_task(store, _clock(3), idempotency_key="k", title="Late night").entity_id
    complete_task(store, DeterministicClock(_ms(2025, 3, 3, 23, 30)), idempotency_key="done", task_id=task_id)
    items = tasks.build_projector().project(tasks.build_projector().scan(store))

    utc = task_completion(items, "2025-03-04", 7, 7)
    tokyo = task_completion(items, "2025-03-04", 7, 7, tz_name="Asia/Tokyo")

    assert [p.completed for p in utc.trend][-2:] == [1, 0]
    assert [p.completed for p in tokyo.trend][-2:] == [0, 1]


def test_no_tasks(store):
    report = tasks_consistency(store, _clock(10))

    assert report.window_days == 30
    assert report.completion_rate_pct == 0
    assert report.current_streak == report.best_streak == 0
    assert len(report.trend) == 14


def test_window_parameters_are_validated_and_clamped(store):
    with pytest.raises(ValidationError, match="windowDays"):
        tasks_consistency(store, _clock(10), window_days=0)
    with pytest.raises(ValidationError, match="dayKey"):
        tasks_consistency(store, _clock(10), day_key="2025-3-1")

    report = tasks_consistency(store, _clock(10), window_days=365, trend_days=3)
    assert report.window_days == 90
    assert len(report.trend) == 7


def test_single_task_report_covers_its_series(store):
    first = _task(store, "stretch", 1, 1, title="Stretch", recurrence="daily")
    for day in (2, 3):
        projector = tasks.build_projector()
        (current,) = projector.project(
            projector.scan(store), include=lambda t: not t.closed and t.series_key == first
        )
        complete_task(store, _clock(day, 18), idempotency_key=f"s{day}", task_id=current.task_id)
    _task(store, "again", 3, 3, title="  stretch ")
    _task(store, "other", 3, 3, title="Groceries")

    result = task_consistency(store, _clock(3), task_id=first, window_days=7)

    assert result.task.task_id == first
    assert result.task.status == tasks.DONE
    assert result.report.created_in_window == 5
    assert result.report.completed_in_window == 4
    assert result.report.completion_rate_pct == 80
    assert result.report.current_streak == 3
    assert [p.completed for p in result.report.trend][-3:] == [1, 1, 2]
    assert len(result.report.trend) == 7
    data = result.to_dict()
    assert data["taskId"] == first
    assert data["completionRatePct"] == 80


def test_unknown_task_returns_none(store):
    assert task_consistency(store, _clock(3), task_id="task_missing") is None
