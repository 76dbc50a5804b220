"""
Habit day log: one authoritative status per (habit, day).

Entries are keyed "<habit_id>:<day_key>". The fold runs in (occurred_at, seq)
order, so the latest status for a day replaces earlier ones and a
habit.logCleared drops the entry.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Dict, Iterable, Mapping, Optional

from ..core.daykeys import day_key_from_ms
from ..core.events import Event
from ..core.reducer import Reducer
from ..core.state import State
from .decoding import lenient, opt_day_key, opt_number, require_id
from .projector import Projector

logger = logging.getLogger(__name__)

COMPLETED = "completed"
SKIPPED = "skipped"
SNOOZED = "snoozed"
MISSED = "missed"
RELAPSED = "relapsed"
STATUSES = (COMPLETED, SKIPPED, SNOOZED, MISSED, RELAPSED)

STATUS_BY_TYPE = {
    "habit.completed": COMPLETED,
    "habit.skipped": SKIPPED,
    "habit.snoozed": SNOOZED,
    "habit.missed": MISSED,
    "habit.relapsed": RELAPSED,
}
TYPE_BY_STATUS = {status: event_type for event_type, status in STATUS_BY_TYPE.items()}
CLEARED = "habit.logCleared"
EVENT_TYPES = tuple(STATUS_BY_TYPE) + (CLEARED,)


def entry_key(habit_id: str, day_key: str) -> str:
    return f"{habit_id}:{day_key}"


@dataclass(frozen=True)
class HabitDayStatus:
    habit_id: str
    day_key: str
    status: str
    occurred_at: int
    snoozed_until: Optional[int] = None
    value: Optional[float] = None

    @property
    def entity_id(self) -> str:
        return entry_key(self.habit_id, self.day_key)


@dataclass(frozen=True)
class HabitLogCleared:
    habit_id: str
    day_key: str
    occurred_at: int

    @property
    def entity_id(self) -> str:
        return entry_key(self.habit_id, self.day_key)


EVENT_CLASSES = (HabitDayStatus, HabitLogCleared)


@dataclass(frozen=True)
class DayLogEntry:
    habit_id: str
    day_key: str
    status: str
    occurred_at: int
    snoozed_until: Optional[int] = None
    value: Optional[float] = None

    def to_dict(self):
        return {
            "habitId": self.habit_id,
            "dayKey": self.day_key,
            "status": self.status,
            "occurredAt": self.occurred_at,
            "snoozedUntil": self.snoozed_until,
            "value": self.value,
        }


def decode_day_log_event_strict(event: Event, tz_name: str = "UTC", zones: Optional[Mapping[str, str]] = None):
    """
    Raw event -> HabitDayStatus / HabitLogCleared.

    Events without a dayKey (older clients) are filed under the local day of
    occurred_at in the habit's own timezone, taken from zones (habit id ->
    zone name), falling back to tz_name.
    """
    if event.type not in EVENT_TYPES:
        return None
    p = event.payload or {}
    habit_id = require_id(p, "habitId", event)
    day_key = opt_day_key(p, "dayKey")
    if day_key is None:
        day_key = day_key_from_ms(event.occurred_at, (zones or {}).get(habit_id) or tz_name)

    if event.type == CLEARED:
        return HabitLogCleared(habit_id=habit_id, day_key=day_key, occurred_at=event.occurred_at)

    return HabitDayStatus(
        habit_id=habit_id,
        day_key=day_key,
        status=STATUS_BY_TYPE[event.type],
        occurred_at=event.occurred_at,
        snoozed_until=opt_number(p, "snoozedUntil"),
        value=opt_number(p, "value"),
    )


def on_status(cur, ev: HabitDayStatus) -> DayLogEntry:
    return DayLogEntry(
        habit_id=ev.habit_id,
        day_key=ev.day_key,
        status=ev.status,
        occurred_at=ev.occurred_at,
        snoozed_until=ev.snoozed_until,
        value=ev.value,
    )


def on_cleared(cur, ev: HabitLogCleared):
    return None


def register_handlers(reducer: Reducer) -> None:
    reducer.register(HabitDayStatus, on_status)
    reducer.register(HabitLogCleared, on_cleared)


def build_projector(tz_name: str = "UTC", zones: Optional[Mapping[str, str]] = None) -> Projector:
    reducer = Reducer()
    register_handlers(reducer)
    decode = lenient(partial(decode_day_log_event_strict, tz_name=tz_name, zones=dict(zones or {})))
    return Projector("habitDayLog", EVENT_TYPES, decode, reducer)


class DayLog:
    """Read-only (habit_id, day_key) -> DayLogEntry lookup over a folded state."""

    def __init__(self, entries: Iterable[DayLogEntry] = ()) -> None:
        self._by_habit: Dict[str, Dict[str, DayLogEntry]] = {}
        for entry in entries:
            self._by_habit.setdefault(entry.habit_id, {})[entry.day_key] = entry

    @staticmethod
    def from_state(state: State) -> "DayLog":
        return DayLog(state.values())

    def entry(self, habit_id: str, day_key: str) -> Optional[DayLogEntry]:
        return self._by_habit.get(habit_id, {}).get(day_key)

    def status_for(self, habit_id: str, day_key: str) -> Optional[str]:
        entry = self.entry(habit_id, day_key)
        return entry.status if entry is not None else None

    def has_entry(self, habit_id: str, day_key: str) -> bool:
        return self.entry(habit_id, day_key) is not None

    def entries_for(self, habit_id: str) -> Dict[str, DayLogEntry]:
        return dict(self._by_habit.get(habit_id, {}))
