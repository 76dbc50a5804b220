"""
Query surface.

Stateless read functions over (store, clock, ...). Each call validates its
parameters, scans the log, folds the families it needs and returns an
immutable response. Nothing is cached between calls.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from .config import DEFAULT_CONFIG, EngineConfig
from .cadence import habit_is_scheduled
from .consistency import AggregateConsistencyReport, ConsistencyReport, TaskCompletionReport
from .consistency import consistency, task_completion
from .consistency import habits_consistency as score_habits
from .core.daykeys import is_valid_day_key
from .core.errors import ValidationError
from .log.store import EventStore
from .metrics import track_query_duration
from .projection import accounts, day_log, envelopes, habits, recurring, tasks

WINDOW_DEFAULT, WINDOW_MIN, WINDOW_MAX = 30, 7, 90
TREND_DEFAULT, TREND_MIN, TREND_MAX = 14, 7, 120
LIMIT_DEFAULT, LIMIT_MIN, LIMIT_MAX = 20, 1, 100


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def clamp_days(value: Optional[int], field: str, default: int, low: int, high: int) -> int:
    if value is None:
        return default
    if not _is_int(value) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return min(max(value, low), high)


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return LIMIT_DEFAULT
    if not _is_int(limit):
        raise ValidationError("limit must be an integer")
    return min(max(limit, LIMIT_MIN), LIMIT_MAX)


def resolve_day_key(day_key: Optional[str], clock) -> str:
    if day_key is None:
        return clock.today()
    if not is_valid_day_key(day_key):
        raise ValidationError("dayKey must be in YYYY-MM-DD format")
    return day_key


def _habits(store: EventStore, clock):
    projector = habits.build_projector(clock.tz_name)
    return projector.fold(projector.scan(store)).state


def _day_log(store: EventStore, clock) -> day_log.DayLog:
    zones = habits.timezones(_habits(store, clock).values())
    projector = day_log.build_projector(clock.tz_name, zones)
    return day_log.DayLog.from_state(projector.fold(projector.scan(store)).state)


@dataclass(frozen=True)
class RecurringTransactions:
    items: Tuple[recurring.RecurringScheduleState, ...]
    limit: int

    def to_dict(self) -> Dict[str, Any]:
        return {"limit": self.limit, "items": [i.to_dict() for i in self.items]}


def recurring_transactions(
    store: EventStore,
    *,
    limit: Optional[int] = None,
    include_canceled: bool = False,
) -> RecurringTransactions:
    """Schedules ordered soonest-due first; canceled ones only on request."""
    page = clamp_limit(limit)
    with track_query_duration("recurringTransactions"):
        projector = recurring.build_projector()
        items = projector.project(
            projector.scan(store),
            include=None if include_canceled else (lambda s: not s.canceled),
            sort_key=lambda s: (s.next_due_at, s.recurring_id),
            limit=page,
        )
    return RecurringTransactions(items=items, limit=page)


@dataclass(frozen=True)
class AccountSummary:
    accounts: Tuple[accounts.AccountState, ...]
    total_balance: float
    totals_by_type: Tuple[Tuple[str, float], ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accounts": [a.to_dict() for a in self.accounts],
            "totalBalance": self.total_balance,
            "totalsByType": dict(self.totals_by_type),
        }


def account_summary(
    store: EventStore,
    *,
    include_hidden: bool = False,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AccountSummary:
    with track_query_duration("accountSummary"):
        projector = accounts.build_projector()
        items = projector.project(
            projector.scan(store),
            include=None if include_hidden else (lambda a: not a.hidden),
            sort_key=lambda a: (a.name.lower(), a.account_id),
        )
    items = tuple(
        a if a.currency else _with_currency(a, config.default_currency) for a in items
    )
    totals: Dict[str, float] = {}
    for account in items:
        totals[account.account_type] = totals.get(account.account_type, 0) + account.balance
    return AccountSummary(
        accounts=items,
        total_balance=sum(a.balance for a in items),
        totals_by_type=tuple(sorted(totals.items())),
    )


def _with_currency(account: accounts.AccountState, currency: str) -> accounts.AccountState:
    return replace(account, currency=currency)


@dataclass(frozen=True)
class EnvelopeSummary:
    envelopes: Tuple[envelopes.EnvelopeState, ...]
    total_soft_ceiling: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "envelopes": [e.to_dict() for e in self.envelopes],
            "totalSoftCeiling": self.total_soft_ceiling,
        }


def envelope_summary(store: EventStore, *, include_deleted: bool = False) -> EnvelopeSummary:
    with track_query_duration("envelopeSummary"):
        projector = envelopes.build_projector()
        items = projector.project(
            projector.scan(store),
            include=None if include_deleted else (lambda e: not e.deleted),
            sort_key=lambda e: (e.name.lower(), e.envelope_id),
        )
    return EnvelopeSummary(
        envelopes=items,
        total_soft_ceiling=sum(e.soft_ceiling or 0 for e in items if not e.deleted),
    )


@dataclass(frozen=True)
class HabitListEntry:
    habit: habits.HabitState
    scheduled: bool
    status: Optional[str]
    paused_until_day_key: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        data = self.habit.to_dict()
        data.update(
            {"scheduled": self.scheduled, "status": self.status, "pausedUntilDayKey": self.paused_until_day_key}
        )
        return data


@dataclass(frozen=True)
class HabitList:
    day_key: str
    habits: Tuple[HabitListEntry, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"dayKey": self.day_key, "habits": [h.to_dict() for h in self.habits]}


def habit_list(
    store: EventStore,
    clock,
    *,
    day_key: Optional[str] = None,
    include_archived: bool = False,
) -> HabitList:
    """Habits with their schedule and status on day_key (default: today)."""
    day = resolve_day_key(day_key, clock)
    with track_query_duration("habitList"):
        state = _habits(store, clock)
        log = _day_log(store, clock)
    entries = []
    for habit in sorted(state.values(), key=lambda h: (h.name.lower(), h.habit_id)):
        if habit.archived and not include_archived:
            continue
        entries.append(
            HabitListEntry(
                habit=habit,
                scheduled=habit_is_scheduled(habit, day),
                status=log.status_for(habit.habit_id, day),
                paused_until_day_key=habit.paused_until(day),
            )
        )
    return HabitList(day_key=day, habits=tuple(entries))


def habit_consistency(
    store: EventStore,
    clock,
    *,
    habit_id: str,
    day_key: Optional[str] = None,
    window_days: Optional[int] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Optional[ConsistencyReport]:
    """Per-habit report, or None when the habit does not exist."""
    day = resolve_day_key(day_key, clock)
    window = clamp_days(window_days, "windowDays", WINDOW_DEFAULT, WINDOW_MIN, WINDOW_MAX)
    with track_query_duration("habitConsistency"):
        habit = _habits(store, clock).get_agg(habit_id)
        if habit is None:
            return None
        return consistency(
            habit,
            _day_log(store, clock),
            day,
            window,
            snoozed_credit=config.snoozed_credit,
            max_history_days=config.max_history_days,
        )


def habits_consistency(
    store: EventStore,
    clock,
    *,
    day_key: Optional[str] = None,
    window_days: Optional[int] = None,
    trend_days: Optional[int] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AggregateConsistencyReport:
    day = resolve_day_key(day_key, clock)
    window = clamp_days(window_days, "windowDays", WINDOW_DEFAULT, WINDOW_MIN, WINDOW_MAX)
    trend = clamp_days(trend_days, "trendDays", TREND_DEFAULT, TREND_MIN, TREND_MAX)
    with track_query_duration("habitsConsistency"):
        return score_habits(
            _habits(store, clock).values(),
            _day_log(store, clock),
            day,
            window,
            trend,
            max_history_days=config.max_history_days,
        )


@dataclass(frozen=True)
class DayDetails:
    day_key: str
    logs: Tuple[Tuple[habits.HabitState, day_log.DayLogEntry], ...]
    scheduled: Tuple[habits.HabitState, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dayKey": self.day_key,
            "logs": [dict(entry.to_dict(), name=habit.name) for habit, entry in self.logs],
            "scheduledHabits": [{"habitId": h.habit_id, "name": h.name} for h in self.scheduled],
        }


def habit_day_details(store: EventStore, clock, *, day_key: str) -> DayDetails:
    """What was logged on one day, and which habits were due."""
    if not is_valid_day_key(day_key):
        raise ValidationError("dayKey must be in YYYY-MM-DD format")
    with track_query_duration("habitDayDetails"):
        state = _habits(store, clock)
        log = _day_log(store, clock)
    ordered = sorted(state.values(), key=lambda h: (h.name.lower(), h.habit_id))
    logs = []
    for habit in ordered:
        entry = log.entry(habit.habit_id, day_key)
        if entry is not None:
            logs.append((habit, entry))
    return DayDetails(
        day_key=day_key,
        logs=tuple(logs),
        scheduled=tuple(h for h in ordered if habit_is_scheduled(h, day_key)),
    )


STATUS_ORDER = {tasks.FOCUS: 0, tasks.INBOX: 1, tasks.DEFERRED_STATUS: 2, tasks.DONE: 3, tasks.DROPPED: 4}


@dataclass(frozen=True)
class TaskList:
    items: Tuple[tasks.TaskState, ...]
    limit: int

    def to_dict(self) -> Dict[str, Any]:
        return {"limit": self.limit, "items": [t.to_dict() for t in self.items]}


def _task_order(task: tasks.TaskState):
    due = task.due_at if task.due_at is not None else float("inf")
    return (STATUS_ORDER[task.status], due, task.created_at, task.task_id)


def task_list(store: EventStore, *, limit: Optional[int] = None, include_closed: bool = False) -> TaskList:
    """Focus first, then inbox, then deferred; soonest due first within each."""
    page = clamp_limit(limit)
    with track_query_duration("taskList"):
        projector = tasks.build_projector()
        items = projector.project(
            projector.scan(store),
            include=None if include_closed else (lambda t: not t.closed),
            sort_key=_task_order,
            limit=page,
        )
    return TaskList(items=items, limit=page)


def _tasks(store: EventStore) -> Tuple[tasks.TaskState, ...]:
    projector = tasks.build_projector()
    return projector.project(projector.scan(store))


def tasks_consistency(
    store: EventStore,
    clock,
    *,
    day_key: Optional[str] = None,
    window_days: Optional[int] = None,
    trend_days: Optional[int] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> TaskCompletionReport:
    day = resolve_day_key(day_key, clock)
    window = clamp_days(window_days, "windowDays", WINDOW_DEFAULT, WINDOW_MIN, WINDOW_MAX)
    trend = clamp_days(trend_days, "trendDays", TREND_DEFAULT, TREND_MIN, TREND_MAX)
    with track_query_duration("tasksConsistency"):
        return task_completion(
            _tasks(store), day, window, trend, tz_name=clock.tz_name, max_history_days=config.max_history_days
        )


@dataclass(frozen=True)
class TaskConsistency:
    task: tasks.TaskState
    report: TaskCompletionReport

    def to_dict(self) -> Dict[str, Any]:
        data = self.task.to_dict()
        data.update(self.report.to_dict())
        return data


def _same_series(task: tasks.TaskState, other: tasks.TaskState) -> bool:
    if task.series_key == other.series_key:
        return True
    return task.title.strip().lower() == other.title.strip().lower()


def task_consistency(
    store: EventStore,
    clock,
    *,
    task_id: str,
    day_key: Optional[str] = None,
    window_days: Optional[int] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Optional[TaskConsistency]:
    """
    Completion report for one task and its repeats (same series or same
    title), or None when the task does not exist. The trend covers the window.
    """
    day = resolve_day_key(day_key, clock)
    window = clamp_days(window_days, "windowDays", WINDOW_DEFAULT, WINDOW_MIN, WINDOW_MAX)
    with track_query_duration("taskConsistency"):
        all_tasks = _tasks(store)
        task = next((t for t in all_tasks if t.task_id == task_id), None)
        if task is None:
            return None
        report = task_completion(
            [t for t in all_tasks if _same_series(task, t)],
            day,
            window,
            window,
            tz_name=clock.tz_name,
            max_history_days=config.max_history_days,
        )
    return TaskConsistency(task=task, report=report)
