"""
Habit definitions: decoded events, entity state and fold handlers.

A habit keeps every cadence/range rule it has had (RuleVersion history) so
that "was this day scheduled" is answered with the rule in effect that day.
"""

import logging
from dataclasses import dataclass, replace
from functools import partial
from typing import Dict, Iterable, Optional, Tuple

from ..cadence import Cadence, Lifecycle, PauseWindow, RuleVersion
from ..core.daykeys import day_key_from_ms
from ..core.errors import DecodeError
from ..core.events import Event
from ..core.reducer import Reducer
from .decoding import lenient, opt_bool, opt_choice, opt_day_key, opt_number, opt_str, require_id
from .projector import Projector

logger = logging.getLogger(__name__)

CREATED = "habit.created"
UPDATED = "habit.updated"
PAUSED = "habit.paused"
RESUMED = "habit.resumed"
ARCHIVED = "habit.archived"
EVENT_TYPES = (CREATED, UPDATED, PAUSED, RESUMED, ARCHIVED)

ANCHORS = ("morning", "afternoon", "evening", "anytime")
DIFFICULTIES = ("low", "medium", "high")
KINDS = ("build", "break")
DEFAULT_KIND = "build"


@dataclass(frozen=True)
class HabitCreated:
    habit_id: str
    occurred_at: int
    effective_day_key: str
    name: str
    cadence: Cadence
    kind: str = DEFAULT_KIND
    anchor: Optional[str] = None
    difficulty: Optional[str] = None
    target_value: Optional[float] = None
    target_unit: Optional[str] = None
    timezone: Optional[str] = None
    start_day_key: Optional[str] = None
    end_day_key: Optional[str] = None

    @property
    def entity_id(self) -> str:
        return self.habit_id


@dataclass(frozen=True)
class HabitUpdated:
    habit_id: str
    occurred_at: int
    effective_day_key: str
    name: Optional[str] = None
    cadence: Optional[Cadence] = None
    kind: Optional[str] = None
    anchor: Optional[str] = None
    difficulty: Optional[str] = None
    target_value: Optional[float] = None
    target_unit: Optional[str] = None
    timezone: Optional[str] = None
    start_day_key: Optional[str] = None
    start_cleared: bool = False
    end_day_key: Optional[str] = None
    end_cleared: bool = False

    @property
    def entity_id(self) -> str:
        return self.habit_id

    @property
    def changes_rule(self) -> bool:
        return (
            self.cadence is not None
            or self.start_day_key is not None
            or self.end_day_key is not None
            or self.start_cleared
            or self.end_cleared
        )


@dataclass(frozen=True)
class HabitPaused:
    habit_id: str
    occurred_at: int
    start_day_key: str
    until_day_key: str

    @property
    def entity_id(self) -> str:
        return self.habit_id


@dataclass(frozen=True)
class HabitResumed:
    habit_id: str
    occurred_at: int
    day_key: str

    @property
    def entity_id(self) -> str:
        return self.habit_id


@dataclass(frozen=True)
class HabitArchived:
    habit_id: str
    occurred_at: int
    day_key: str

    @property
    def entity_id(self) -> str:
        return self.habit_id


EVENT_CLASSES = (HabitCreated, HabitUpdated, HabitPaused, HabitResumed, HabitArchived)


@dataclass(frozen=True)
class HabitState:
    habit_id: str
    name: str
    kind: str
    created_at: int
    rules: Tuple[RuleVersion, ...]
    lifecycle: Lifecycle
    anchor: Optional[str] = None
    difficulty: Optional[str] = None
    target_value: Optional[float] = None
    target_unit: Optional[str] = None
    timezone: Optional[str] = None
    archived_at: Optional[int] = None

    @property
    def current_rule(self) -> RuleVersion:
        return self.rules[-1]

    @property
    def cadence(self) -> Cadence:
        return self.current_rule.cadence

    @property
    def start_day_key(self) -> Optional[str]:
        return self.current_rule.start_day_key

    @property
    def end_day_key(self) -> Optional[str]:
        return self.current_rule.end_day_key

    @property
    def archived(self) -> bool:
        return self.archived_at is not None

    @property
    def first_day_key(self) -> str:
        """Earliest day any rule could have scheduled the habit on."""
        candidates = [self.lifecycle.created_day_key]
        candidates.extend(r.start_day_key for r in self.rules if r.start_day_key)
        return min(c for c in candidates if c)

    def paused_until(self, day_key: str) -> Optional[str]:
        for window in self.lifecycle.pauses:
            if window.contains(day_key):
                return window.until_day_key
        return None

    def to_dict(self):
        rule = self.current_rule
        return {
            "habitId": self.habit_id,
            "name": self.name,
            "kind": self.kind,
            "cadence": rule.cadence.to_payload(),
            "startDayKey": rule.start_day_key,
            "endDayKey": rule.end_day_key,
            "anchor": self.anchor,
            "difficulty": self.difficulty,
            "targetValue": self.target_value,
            "targetUnit": self.target_unit,
            "timezone": self.timezone,
            "createdAt": self.created_at,
            "archivedAt": self.archived_at,
            "archivedDayKey": self.lifecycle.archived_day_key,
            "pauses": [[w.start_day_key, w.until_day_key] for w in self.lifecycle.pauses],
        }


def _event_day_key(p, key: str, event: Event, tz_name: str) -> str:
    return opt_day_key(p, key) or day_key_from_ms(event.occurred_at, opt_str(p, "timezone") or tz_name)


def decode_habit_event_strict(event: Event, tz_name: str = "UTC"):
    """
    Raw event -> typed habit definition event.

    Day keys missing from historical payloads fall back to the local day of
    occurred_at in the habit's (or the engine's) timezone.
    """
    p = event.payload or {}

    if event.type == CREATED:
        return HabitCreated(
            habit_id=opt_str(p, "habitId") or require_id({"id": event.id}, "id", event),
            occurred_at=event.occurred_at,
            effective_day_key=_event_day_key(p, "effectiveDayKey", event, tz_name),
            name=opt_str(p, "name") or "",
            cadence=Cadence.from_payload(p) or Cadence.daily(),
            kind=opt_choice(p, "kind", KINDS) or DEFAULT_KIND,
            anchor=opt_choice(p, "anchor", ANCHORS),
            difficulty=opt_choice(p, "difficulty", DIFFICULTIES),
            target_value=opt_number(p, "targetValue"),
            target_unit=opt_str(p, "targetUnit"),
            timezone=opt_str(p, "timezone"),
            start_day_key=opt_day_key(p, "startDayKey"),
            end_day_key=opt_day_key(p, "endDayKey"),
        )

    if event.type == UPDATED:
        return HabitUpdated(
            habit_id=require_id(p, "habitId", event),
            occurred_at=event.occurred_at,
            effective_day_key=_event_day_key(p, "effectiveDayKey", event, tz_name),
            name=opt_str(p, "name"),
            cadence=Cadence.from_payload(p),
            kind=opt_choice(p, "kind", KINDS),
            anchor=opt_choice(p, "anchor", ANCHORS),
            difficulty=opt_choice(p, "difficulty", DIFFICULTIES),
            target_value=opt_number(p, "targetValue"),
            target_unit=opt_str(p, "targetUnit"),
            timezone=opt_str(p, "timezone"),
            start_day_key=opt_day_key(p, "startDayKey"),
            start_cleared=bool(opt_bool(p, "startDayKeyCleared")),
            end_day_key=opt_day_key(p, "endDayKey"),
            end_cleared=bool(opt_bool(p, "endDayKeyCleared")),
        )

    if event.type == PAUSED:
        habit_id = require_id(p, "habitId", event)
        until = opt_day_key(p, "pausedUntilDayKey")
        if until is None:
            raise DecodeError(f"{event.type}: missing pausedUntilDayKey")
        start = _event_day_key(p, "pausedAtDayKey", event, tz_name)
        if until <= start:
            raise DecodeError(f"{event.type}: empty pause window [{start}, {until})")
        return HabitPaused(habit_id=habit_id, occurred_at=event.occurred_at, start_day_key=start, until_day_key=until)

    if event.type == RESUMED:
        return HabitResumed(
            habit_id=require_id(p, "habitId", event),
            occurred_at=event.occurred_at,
            day_key=_event_day_key(p, "dayKey", event, tz_name),
        )

    if event.type == ARCHIVED:
        return HabitArchived(
            habit_id=require_id(p, "habitId", event),
            occurred_at=event.occurred_at,
            day_key=_event_day_key(p, "dayKey", event, tz_name),
        )

    return None


def on_created(cur, ev: HabitCreated) -> HabitState:
    rule = RuleVersion(
        effective_day_key=ev.effective_day_key,
        cadence=ev.cadence,
        start_day_key=ev.start_day_key,
        end_day_key=ev.end_day_key,
    )
    return HabitState(
        habit_id=ev.habit_id,
        name=ev.name,
        kind=ev.kind,
        created_at=ev.occurred_at,
        rules=(rule,),
        lifecycle=Lifecycle(created_day_key=ev.effective_day_key),
        anchor=ev.anchor,
        difficulty=ev.difficulty,
        target_value=ev.target_value,
        target_unit=ev.target_unit,
        timezone=ev.timezone,
    )


def _next_rules(rules: Tuple[RuleVersion, ...], ev: HabitUpdated) -> Tuple[RuleVersion, ...]:
    last = rules[-1]
    effective = max(ev.effective_day_key, last.effective_day_key)
    start = None if ev.start_cleared else (ev.start_day_key or last.start_day_key)
    end = None if ev.end_cleared else (ev.end_day_key or last.end_day_key)
    rule = RuleVersion(
        effective_day_key=effective,
        cadence=ev.cadence or last.cadence,
        start_day_key=start,
        end_day_key=end,
    )
    # Several edits on one day collapse into the last one.
    if effective == last.effective_day_key:
        return rules[:-1] + (rule,)
    return rules + (rule,)


def on_updated(cur: Optional[HabitState], ev: HabitUpdated):
    if cur is None:
        logger.debug("update for unknown habit id %s ignored", ev.habit_id)
        return cur
    if cur.archived:
        return cur

    fields = {
        "name": ev.name,
        "kind": ev.kind,
        "anchor": ev.anchor,
        "difficulty": ev.difficulty,
        "target_value": ev.target_value,
        "target_unit": ev.target_unit,
        "timezone": ev.timezone,
    }
    changes = {k: v for k, v in fields.items() if v is not None}
    if ev.changes_rule:
        changes["rules"] = _next_rules(cur.rules, ev)
    return replace(cur, **changes)


def on_paused(cur: Optional[HabitState], ev: HabitPaused):
    if cur is None or cur.archived:
        return cur
    window = PauseWindow(ev.start_day_key, ev.until_day_key)
    pauses = tuple(sorted(cur.lifecycle.pauses + (window,), key=lambda w: (w.start_day_key, w.until_day_key)))
    return replace(cur, lifecycle=replace(cur.lifecycle, pauses=pauses))


def on_resumed(cur: Optional[HabitState], ev: HabitResumed):
    if cur is None or cur.archived:
        return cur
    pauses = []
    for window in cur.lifecycle.pauses:
        if not window.contains(ev.day_key):
            pauses.append(window)
        elif window.start_day_key < ev.day_key:
            pauses.append(PauseWindow(window.start_day_key, ev.day_key))
    if tuple(pauses) == cur.lifecycle.pauses:
        return cur
    return replace(cur, lifecycle=replace(cur.lifecycle, pauses=tuple(pauses)))


def on_archived(cur: Optional[HabitState], ev: HabitArchived):
    if cur is None or cur.archived:
        return cur
    return replace(
        cur,
        archived_at=ev.occurred_at,
        lifecycle=replace(cur.lifecycle, archived_day_key=ev.day_key),
    )


def register_handlers(reducer: Reducer) -> None:
    reducer.register(HabitCreated, on_created)
    reducer.register(HabitUpdated, on_updated)
    reducer.register(HabitPaused, on_paused)
    reducer.register(HabitResumed, on_resumed)
    reducer.register(HabitArchived, on_archived)


def build_projector(tz_name: str = "UTC") -> Projector:
    reducer = Reducer()
    register_handlers(reducer)
    decode = lenient(partial(decode_habit_event_strict, tz_name=tz_name))
    return Projector("habits", EVENT_TYPES, decode, reducer)


def timezones(items: Iterable[HabitState]) -> Dict[str, str]:
    """habit id -> zone name, for habits that set one."""
    return {h.habit_id: h.timezone for h in items if h.timezone}
