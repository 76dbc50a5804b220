"""
Cadence Evaluator.

Decides whether a habit is scheduled on a calendar day, given the cadence rule
in effect on that day and the habit's lifecycle (range bounds, pause windows,
archive day).
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from .core.daykeys import weekday_of

DAILY = "daily"
WEEKDAYS = "weekdays"
CUSTOM = "custom"


@dataclass(frozen=True)
class Cadence:
    """Which weekdays a habit is expected on (0=Sunday ... 6=Saturday)."""
    kind: str
    days: Tuple[int, ...] = ()

    @staticmethod
    def daily() -> "Cadence":
        return Cadence(DAILY)

    @staticmethod
    def weekdays() -> "Cadence":
        return Cadence(WEEKDAYS)

    @staticmethod
    def custom(days: Iterable[int]) -> "Cadence":
        return Cadence(CUSTOM, tuple(sorted(set(days))))

    def includes_weekday(self, weekday: int) -> bool:
        if self.kind == DAILY:
            return True
        if self.kind == WEEKDAYS:
            return 1 <= weekday <= 5
        return weekday in self.days

    def to_payload(self) -> Dict[str, Any]:
        if self.kind == CUSTOM:
            return {"cadenceType": CUSTOM, "customDays": list(self.days)}
        return {"cadenceType": self.kind}

    @staticmethod
    def parse(value: Any) -> Optional["Cadence"]:
        """
        Accepts "daily", "weekdays", {"customDays": [...]} or a Cadence.

        Returns None for anything else, including an empty custom day set.
        """
        if isinstance(value, Cadence):
            return value
        if value == DAILY:
            return Cadence.daily()
        if value == WEEKDAYS:
            return Cadence.weekdays()
        if isinstance(value, dict) and isinstance(value.get("customDays"), list):
            return _custom_or_none(value["customDays"])
        return None

    @staticmethod
    def from_payload(payload: Dict[str, Any]) -> Optional["Cadence"]:
        """Read either the direct `cadence` field or the stored cadenceType/customDays pair."""
        direct = Cadence.parse(payload.get("cadence"))
        if direct is not None:
            return direct
        cadence_type = payload.get("cadenceType")
        if cadence_type in (DAILY, WEEKDAYS):
            return Cadence.parse(cadence_type)
        if cadence_type == CUSTOM and isinstance(payload.get("customDays"), list):
            return _custom_or_none(payload["customDays"])
        return None


def _custom_or_none(raw: Sequence[Any]) -> Optional[Cadence]:
    days = [d for d in raw if isinstance(d, int) and not isinstance(d, bool) and 0 <= d <= 6]
    if not days:
        return None
    return Cadence.custom(days)


@dataclass(frozen=True)
class RuleVersion:
    """A cadence rule and range bounds, effective from effective_day_key onward."""
    effective_day_key: str
    cadence: Cadence
    start_day_key: Optional[str] = None
    end_day_key: Optional[str] = None


@dataclass(frozen=True)
class PauseWindow:
    """Half-open pause interval [start_day_key, until_day_key)."""
    start_day_key: str
    until_day_key: str

    def contains(self, day_key: str) -> bool:
        return self.start_day_key <= day_key < self.until_day_key


@dataclass(frozen=True)
class Lifecycle:
    created_day_key: Optional[str] = None
    pauses: Tuple[PauseWindow, ...] = ()
    archived_day_key: Optional[str] = None


def rule_in_effect(rules: Sequence[RuleVersion], day_key: str) -> RuleVersion:
    """
    The rule governing day_key: the latest version effective on or before it.

    Days before the first version use the genesis rule.
    """
    current = rules[0]
    for rule in rules[1:]:
        if rule.effective_day_key > day_key:
            break
        current = rule
    return current


def in_range(rule: RuleVersion, day_key: str, lifecycle: Lifecycle) -> bool:
    start = rule.start_day_key or lifecycle.created_day_key
    if start and day_key < start:
        return False
    if rule.end_day_key and day_key > rule.end_day_key:
        return False
    return True


def is_paused(lifecycle: Lifecycle, day_key: str) -> bool:
    return any(window.contains(day_key) for window in lifecycle.pauses)


def is_archived(lifecycle: Lifecycle, day_key: str) -> bool:
    return lifecycle.archived_day_key is not None and day_key >= lifecycle.archived_day_key


def is_active(rule: RuleVersion, day_key: str, lifecycle: Lifecycle) -> bool:
    """In range, not paused, not archived; the cadence itself is not consulted."""
    return (
        in_range(rule, day_key, lifecycle)
        and not is_paused(lifecycle, day_key)
        and not is_archived(lifecycle, day_key)
    )


def is_scheduled(rule: RuleVersion, day_key: str, lifecycle: Lifecycle) -> bool:
    if not is_active(rule, day_key, lifecycle):
        return False
    return rule.cadence.includes_weekday(weekday_of(day_key))


def habit_is_scheduled(habit, day_key: str) -> bool:
    """is_scheduled() against the rule the habit had on that day."""
    return is_scheduled(rule_in_effect(habit.rules, day_key), day_key, habit.lifecycle)


def habit_is_active(habit, day_key: str) -> bool:
    return is_active(rule_in_effect(habit.rules, day_key), day_key, habit.lifecycle)
