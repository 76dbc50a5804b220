"""
Habit commands: definition lifecycle and the per-day status log.

Day keys default to "today" in the habit's own timezone (falling back to the
clock's), so a late-evening log lands on the user's calendar day.
"""

from typing import Any, List, Optional

from ..cadence import Cadence, habit_is_active, habit_is_scheduled
from ..core.daykeys import add_days, day_key_from_ms, resolve_zone
from ..core.errors import NotFoundError, ValidationError
from ..core.events import Event
from ..core.ids import mint_entity_id
from ..idempotency import CommandResult, IdempotencyGuard, PendingCommand
from ..log.store import EventStore
from ..projection import day_log, habits
from .validation import (
    optional_choice,
    optional_day_key,
    optional_text,
    require_day_key,
    require_number,
    require_positive_int,
    require_text,
)

NAME_MESSAGE = "Habit name cannot be empty"
NOT_FOUND_MESSAGE = "Habit not found or archived"
OUT_OF_RANGE_MESSAGE = "Habit is outside its active date range"

MISSED_LOOKBACK_DEFAULT = 14
MISSED_LOOKBACK_MAX = 45


def parse_cadence(value: Any) -> Cadence:
    """Accept "daily", "weekdays", {"customDays": [...]} or a Cadence."""
    if isinstance(value, dict) and "customDays" in value:
        days = value["customDays"]
        if not isinstance(days, list) or not days:
            raise ValidationError("customDays must not be empty")
        for day in days:
            if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
                raise ValidationError("customDays must use integers 0-6")
    cadence = Cadence.parse(value)
    if cadence is None:
        raise ValidationError("cadence must be daily, weekdays or {customDays: [...]}")
    return cadence


def check_range(start_day_key: Optional[str], end_day_key: Optional[str]) -> None:
    if start_day_key and end_day_key and end_day_key < start_day_key:
        raise ValidationError("endDayKey must be on or after startDayKey")


def _tz(habit: Optional[habits.HabitState], clock) -> str:
    if habit is not None and habit.timezone:
        return habit.timezone
    return clock.tz_name


def load_live_habit(store: EventStore, clock, habit_id: Any) -> habits.HabitState:
    target = require_text(habit_id, "habitId is required")
    habit = habits.build_projector(clock.tz_name).load(store, target)
    if habit is None or habit.archived:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return habit


def _descriptive_fields(kind, anchor, difficulty, target_value, target_unit, timezone):
    optional_choice(kind, habits.KINDS, "kind")
    optional_choice(anchor, habits.ANCHORS, "anchor")
    optional_choice(difficulty, habits.DIFFICULTIES, "difficulty")
    if target_value is not None:
        require_number(target_value, "targetValue must be a number")
        if target_value <= 0:
            raise ValidationError("targetValue must be greater than 0")
    if timezone is not None:
        resolve_zone(timezone)
    return {
        "kind": kind,
        "anchor": anchor,
        "difficulty": difficulty,
        "targetValue": target_value,
        "targetUnit": optional_text(target_unit),
        "timezone": timezone,
    }


def create_habit(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    name: str,
    cadence: Any,
    kind: Optional[str] = None,
    anchor: Optional[str] = None,
    difficulty: Optional[str] = None,
    target_value=None,
    target_unit: Optional[str] = None,
    timezone: Optional[str] = None,
    start_day_key: Optional[str] = None,
    end_day_key: Optional[str] = None,
) -> CommandResult:
    def build() -> PendingCommand:
        clean_name = require_text(name, NAME_MESSAGE)
        rule = parse_cadence(cadence)
        optional_day_key(start_day_key, "startDayKey")
        optional_day_key(end_day_key, "endDayKey")
        check_range(start_day_key, end_day_key)
        fields = _descriptive_fields(kind, anchor, difficulty, target_value, target_unit, timezone)

        now = clock.now()
        habit_id = mint_entity_id("habit", idempotency_key, now)
        payload = {
            "habitId": habit_id,
            "name": clean_name,
            "effectiveDayKey": day_key_from_ms(now, timezone or clock.tz_name),
            "startDayKey": start_day_key,
            "endDayKey": end_day_key,
        }
        payload.update(rule.to_payload())
        payload.update(fields)
        payload["kind"] = kind or habits.DEFAULT_KIND
        payload = {k: v for k, v in payload.items() if v is not None}
        event = Event(type=habits.CREATED, payload=payload, occurred_at=now, aggregate_id=habit_id)
        return PendingCommand((event,), habit_id)

    return IdempotencyGuard(store, "createHabit").apply(idempotency_key, build)


def update_habit(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    habit_id: str,
    name: Optional[str] = None,
    cadence: Any = None,
    kind: Optional[str] = None,
    anchor: Optional[str] = None,
    difficulty: Optional[str] = None,
    target_value=None,
    target_unit: Optional[str] = None,
    timezone: Optional[str] = None,
    start_day_key: Optional[str] = None,
    clear_start_day_key: bool = False,
    end_day_key: Optional[str] = None,
    clear_end_day_key: bool = False,
) -> CommandResult:
    """
    Partial update. A cadence or range change takes effect from today (in
    the habit's timezone); earlier days keep the rule they had.
    """

    def build() -> PendingCommand:
        habit = load_live_habit(store, clock, habit_id)
        clean_name = require_text(name, NAME_MESSAGE) if name is not None else None
        rule = parse_cadence(cadence) if cadence is not None else None
        optional_day_key(start_day_key, "startDayKey")
        optional_day_key(end_day_key, "endDayKey")
        start = None if clear_start_day_key else (start_day_key or habit.start_day_key)
        end = None if clear_end_day_key else (end_day_key or habit.end_day_key)
        check_range(start, end)
        fields = _descriptive_fields(kind, anchor, difficulty, target_value, target_unit, timezone)

        now = clock.now()
        payload = {
            "habitId": habit.habit_id,
            "name": clean_name,
            "effectiveDayKey": day_key_from_ms(now, timezone or _tz(habit, clock)),
            "startDayKey": start_day_key,
            "endDayKey": end_day_key,
            "startDayKeyCleared": True if clear_start_day_key else None,
            "endDayKeyCleared": True if clear_end_day_key else None,
        }
        if rule is not None:
            payload.update(rule.to_payload())
        payload.update(fields)
        payload = {k: v for k, v in payload.items() if v is not None}
        event = Event(type=habits.UPDATED, payload=payload, occurred_at=now, aggregate_id=habit.habit_id)
        return PendingCommand((event,), habit.habit_id)

    return IdempotencyGuard(store, "updateHabit").apply(idempotency_key, build)


def pause_habit(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    habit_id: str,
    paused_until_day_key: str,
    paused_at_day_key: Optional[str] = None,
) -> CommandResult:
    """Pause for [paused_at_day_key, paused_until_day_key); the until day is scheduled again."""

    def build() -> PendingCommand:
        habit = load_live_habit(store, clock, habit_id)
        until = require_day_key(paused_until_day_key, "pausedUntilDayKey")
        now = clock.now()
        start = optional_day_key(paused_at_day_key, "pausedAtDayKey") or day_key_from_ms(now, _tz(habit, clock))
        if until <= start:
            raise ValidationError("pausedUntilDayKey must be after the pause start")
        event = Event(
            type=habits.PAUSED,
            payload={"habitId": habit.habit_id, "pausedAtDayKey": start, "pausedUntilDayKey": until},
            occurred_at=now,
            aggregate_id=habit.habit_id,
        )
        return PendingCommand((event,), habit.habit_id)

    return IdempotencyGuard(store, "pauseHabit").apply(idempotency_key, build)


def resume_habit(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    habit_id: str,
    day_key: Optional[str] = None,
) -> CommandResult:
    """End the pause covering day_key (default today); that day is scheduled again."""

    def build() -> PendingCommand:
        habit = load_live_habit(store, clock, habit_id)
        now = clock.now()
        day = optional_day_key(day_key, "dayKey") or day_key_from_ms(now, _tz(habit, clock))
        if habit.paused_until(day) is None:
            raise ValidationError("Habit is not paused")
        event = Event(
            type=habits.RESUMED,
            payload={"habitId": habit.habit_id, "dayKey": day},
            occurred_at=now,
            aggregate_id=habit.habit_id,
        )
        return PendingCommand((event,), habit.habit_id)

    return IdempotencyGuard(store, "resumePausedHabit").apply(idempotency_key, build)


def archive_habit(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    habit_id: str,
    day_key: Optional[str] = None,
) -> CommandResult:
    def build() -> PendingCommand:
        target = require_text(habit_id, "habitId is required")
        habit = habits.build_projector(clock.tz_name).load(store, target)
        if habit is None:
            raise NotFoundError("Habit not found")
        if habit.archived:
            raise NotFoundError("Habit already archived")
        now = clock.now()
        day = optional_day_key(day_key, "dayKey") or day_key_from_ms(now, _tz(habit, clock))
        event = Event(
            type=habits.ARCHIVED,
            payload={"habitId": target, "dayKey": day},
            occurred_at=now,
            aggregate_id=target,
        )
        return PendingCommand((event,), target)

    return IdempotencyGuard(store, "archiveHabit").apply(idempotency_key, build)


def _record_status(
    store: EventStore,
    clock,
    command_name: str,
    idempotency_key: str,
    habit_id: str,
    status,
    day_key: Optional[str],
    check=None,
    extra=None,
) -> CommandResult:
    """status is a day-log status, or a callable deriving it from the habit."""

    def build() -> PendingCommand:
        habit = load_live_habit(store, clock, habit_id)
        now = clock.now()
        day = optional_day_key(day_key, "dayKey") or day_key_from_ms(now, _tz(habit, clock))
        if check is not None:
            check(habit, now)
        if not habit_is_active(habit, day):
            raise ValidationError(OUT_OF_RANGE_MESSAGE)
        payload = {"habitId": habit.habit_id, "dayKey": day}
        payload.update({k: v for k, v in (extra or {}).items() if v is not None})
        event = Event(
            type=day_log.TYPE_BY_STATUS[status(habit) if callable(status) else status],
            payload=payload,
            occurred_at=now,
            aggregate_id=habit.habit_id,
        )
        return PendingCommand((event,), habit.habit_id)

    return IdempotencyGuard(store, command_name).apply(idempotency_key, build)


def log_habit(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    habit_id: str,
    day_key: Optional[str] = None,
    value=None,
) -> CommandResult:
    """
    Record the day as done.

    For a build habit with a target, a logged value below the target is
    recorded as skipped rather than completed.
    """
    def status_for(habit):
        if value is not None:
            require_number(value, "value must be a number")
        met = habit.kind != "build" or habit.target_value is None or value is None or value >= habit.target_value
        return day_log.COMPLETED if met else day_log.SKIPPED

    return _record_status(
        store,
        clock,
        "logHabit",
        idempotency_key,
        habit_id,
        status_for,
        day_key,
        extra={"value": value},
    )


def skip_habit(store: EventStore, clock, *, idempotency_key: str, habit_id: str, day_key: Optional[str] = None) -> CommandResult:
    return _record_status(store, clock, "skipHabit", idempotency_key, habit_id, day_log.SKIPPED, day_key)


def snooze_habit(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    habit_id: str,
    snoozed_until: int,
    day_key: Optional[str] = None,
) -> CommandResult:
    def check(habit, now):
        require_positive_int(snoozed_until, "snoozedUntil must be a valid timestamp")
        if snoozed_until <= now:
            raise ValidationError("snoozedUntil must be in the future")

    return _record_status(
        store,
        clock,
        "snoozeHabit",
        idempotency_key,
        habit_id,
        day_log.SNOOZED,
        day_key,
        check=check,
        extra={"snoozedUntil": snoozed_until},
    )


def relapse_habit(store: EventStore, clock, *, idempotency_key: str, habit_id: str, day_key: Optional[str] = None) -> CommandResult:
    def check(habit, now):
        if habit.kind != "break":
            raise ValidationError("Relapse can only be logged for break habits")

    return _record_status(
        store, clock, "relapseHabit", idempotency_key, habit_id, day_log.RELAPSED, day_key, check=check
    )


def clear_habit_status(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    habit_id: str,
    day_key: Optional[str] = None,
) -> CommandResult:
    """Drop the day's status; the day reads as scheduled-but-unlogged again."""

    def build() -> PendingCommand:
        habit = load_live_habit(store, clock, habit_id)
        now = clock.now()
        day = optional_day_key(day_key, "dayKey") or day_key_from_ms(now, _tz(habit, clock))
        event = Event(
            type=day_log.CLEARED,
            payload={"habitId": habit.habit_id, "dayKey": day},
            occurred_at=now,
            aggregate_id=habit.habit_id,
        )
        return PendingCommand((event,), habit.habit_id)

    return IdempotencyGuard(store, "clearHabitStatus").apply(idempotency_key, build)


def resolve_missed_habits(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    day_key: Optional[str] = None,
    lookback_days: Optional[int] = None,
) -> CommandResult:
    """
    Mark scheduled days with no status as missed.

    Looks at the lookback_days (clamped to [1, 45], default 14) days before
    day_key, which itself is never marked. Nothing to mark appends nothing.
    """

    def build() -> PendingCommand:
        as_of = optional_day_key(day_key, "dayKey") or clock.today()
        lookback = MISSED_LOOKBACK_DEFAULT
        if lookback_days is not None:
            require_positive_int(lookback_days, "lookbackDays must be a positive integer")
            lookback = min(lookback_days, MISSED_LOOKBACK_MAX)

        habit_projector = habits.build_projector(clock.tz_name)
        all_habits = habit_projector.project(habit_projector.scan(store))
        log = day_log.DayLog.from_state(
            day_log.build_projector(clock.tz_name, habits.timezones(all_habits))
            .fold(store.scan(types=day_log.EVENT_TYPES))
            .state
        )

        now = clock.now()
        events: List[Event] = []
        for offset in range(lookback, 0, -1):
            day = add_days(as_of, -offset)
            for habit in all_habits:
                if not habit_is_scheduled(habit, day) or log.has_entry(habit.habit_id, day):
                    continue
                events.append(
                    Event(
                        type=day_log.TYPE_BY_STATUS[day_log.MISSED],
                        payload={"habitId": habit.habit_id, "dayKey": day},
                        occurred_at=now,
                        aggregate_id=habit.habit_id,
                    )
                )
        return PendingCommand(tuple(events))

    return IdempotencyGuard(store, "resolveMissedHabits").apply(idempotency_key, build)
