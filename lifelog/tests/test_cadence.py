"""
Tests for the cadence evaluator.
"""

import pytest

from lifelog.cadence import (
    Cadence,
    Lifecycle,
    PauseWindow,
    RuleVersion,
    is_scheduled,
    rule_in_effect,
)
from lifelog.core.daykeys import iter_day_keys, weekday_of


def _rule(cadence, start=None, end=None, effective="2000-01-01"):
    return RuleVersion(effective_day_key=effective, cadence=cadence, start_day_key=start, end_day_key=end)


OPEN = Lifecycle()


def test_daily_is_scheduled_every_day():
    rule = _rule(Cadence.daily())

    assert all(is_scheduled(rule, d, OPEN) for d in iter_day_keys("2025-02-20", "2025-03-10"))


@pytest.mark.parametrize(
    "start,end",
    [
        ("2024-12-20", "2025-01-12"),  # year boundary
        ("2024-02-20", "2024-03-05"),  # leap February
        ("2025-03-25", "2025-04-08"),  # month boundary
    ],
)
def test_weekdays_monday_to_friday_only(start, end):
    rule = _rule(Cadence.weekdays())

    for day in iter_day_keys(start, end):
        expected = 1 <= weekday_of(day) <= 5
        assert is_scheduled(rule, day, OPEN) == expected, day


def test_custom_days():
    rule = _rule(Cadence.custom([0, 3]))  # Sunday, Wednesday

    assert is_scheduled(rule, "2025-03-02", OPEN)  # Sunday
    assert is_scheduled(rule, "2025-03-05", OPEN)  # Wednesday
    assert not is_scheduled(rule, "2025-03-03", OPEN)  # Monday


def test_range_bounds_are_inclusive():
    rule = _rule(Cadence.daily(), start="2025-03-03", end="2025-03-05")

    assert not is_scheduled(rule, "2025-03-02", OPEN)
    assert is_scheduled(rule, "2025-03-03", OPEN)
    assert is_scheduled(rule, "2025-03-05", OPEN)
    assert not is_scheduled(rule, "2025-03-06", OPEN)


def test_days_before_creation_are_unscheduled_without_start():
    rule = _rule(Cadence.daily())
    lifecycle = Lifecycle(created_day_key="2025-03-03")

    assert not is_scheduled(rule, "2025-03-02", lifecycle)
    assert is_scheduled(rule, "2025-03-03", lifecycle)


def test_pause_is_half_open():
    rule = _rule(Cadence.daily())
    lifecycle = Lifecycle(pauses=(PauseWindow("2025-03-04", "2025-03-06"),))

    assert is_scheduled(rule, "2025-03-03", lifecycle)
    assert not is_scheduled(rule, "2025-03-04", lifecycle)
    assert not is_scheduled(rule, "2025-03-05", lifecycle)
    assert is_scheduled(rule, "2025-03-06", lifecycle)


def test_never_scheduled_on_or_after_archive_day():
    rule = _rule(Cadence.daily())
    lifecycle = Lifecycle(archived_day_key="2025-03-05")

    assert is_scheduled(rule, "2025-03-04", lifecycle)
    assert not is_scheduled(rule, "2025-03-05", lifecycle)
    assert not is_scheduled(rule, "2026-01-01", lifecycle)


def test_rule_in_effect_uses_latest_version_on_or_before_day():
    genesis = _rule(Cadence.daily(), effective="2025-03-01")
    later = _rule(Cadence.weekdays(), effective="2025-03-10")
    rules = (genesis, later)

    assert rule_in_effect(rules, "2025-02-01") is genesis
    assert rule_in_effect(rules, "2025-03-09") is genesis
    assert rule_in_effect(rules, "2025-03-10") is later
    assert rule_in_effect(rules, "2025-04-01") is later


@pytest.mark.parametrize(
    "value,expected",
    [
        ("daily", Cadence.daily()),
        ("weekdays", Cadence.weekdays()),
        ({"customDays": [3, 1, 3]}, Cadence.custom([1, 3])),
        ({"customDays": []}, None),
        ({"customDays": [7]}, None),
        ("fortnightly", None),
        (None, None),
    ],
)
def test_cadence_parse(value, expected):
    assert Cadence.parse(value) == expected


def test_cadence_payload_forms():
    assert Cadence.from_payload({"cadence": "weekdays"}) == Cadence.weekdays()
    assert Cadence.from_payload({"cadenceType": "custom", "customDays": [6]}) == Cadence.custom([6])
    assert Cadence.from_payload(Cadence.custom([2, 4]).to_payload()) == Cadence.custom([2, 4])
    assert Cadence.from_payload({}) is None
