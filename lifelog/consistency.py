"""
Consistency & Streak Calculator.

Combines the cadence evaluator with the habit day log:
- window-bounded ratios (consistency_pct and per-status day counts)
- streaks over the habit's history, bounded by max_history_days
- a day-by-day trend series for heatmaps
- task completion rates and completion-day streaks

Unscheduled days are invisible to both ratios and streaks: they neither count
nor break a run.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .cadence import habit_is_active, habit_is_scheduled
from .core.daykeys import add_days, day_key_from_ms, iter_day_keys, window_day_keys
from .projection.day_log import COMPLETED, MISSED, RELAPSED, SKIPPED, SNOOZED, DayLog

DEFAULT_SNOOZED_CREDIT = 0.5
DEFAULT_MAX_HISTORY_DAYS = 3660


def consistency_pct(completed: int, scheduled: int) -> int:
    """round(100 * completed / max(scheduled, 1)), halves rounded up."""
    if scheduled <= 0:
        return 0
    return int(100 * completed / scheduled + 0.5)


@dataclass(frozen=True)
class TrendPoint:
    """
    One heatmap cell.

    score is None for unscheduled days, 1.0 completed, the snoozed credit
    for snoozed and 0.0 for anything else.
    """
    day_key: str
    scheduled: bool
    status: Optional[str]
    score: Optional[float]

    def to_dict(self):
        return {
            "dayKey": self.day_key,
            "scheduled": self.scheduled,
            "status": self.status,
            "score": self.score,
        }


@dataclass(frozen=True)
class ConsistencyReport:
    habit_id: str
    as_of_day_key: str
    window_days: int
    consistency_pct: int
    scheduled_days: int
    completed_days: int
    skipped_days: int
    snoozed_days: int
    missed_days: int
    relapsed_days: int
    current_streak: int
    best_streak: int
    trend: Tuple[TrendPoint, ...]

    def to_dict(self):
        return {
            "habitId": self.habit_id,
            "asOfDayKey": self.as_of_day_key,
            "windowDays": self.window_days,
            "consistencyPct": self.consistency_pct,
            "scheduledDays": self.scheduled_days,
            "completedDays": self.completed_days,
            "skippedDays": self.skipped_days,
            "snoozedDays": self.snoozed_days,
            "missedDays": self.missed_days,
            "relapsedDays": self.relapsed_days,
            "currentStreak": self.current_streak,
            "bestStreak": self.best_streak,
            "trend": [p.to_dict() for p in self.trend],
        }


def streaks(outcomes: Sequence[Optional[bool]]) -> Tuple[int, int]:
    """
    (current, best) over per-day outcomes, oldest first.

    None marks an unscheduled day and is skipped; True is a completed
    scheduled day, False breaks the run.
    """
    best = 0
    running = 0
    for outcome in outcomes:
        if outcome is None:
            continue
        if outcome:
            running += 1
            best = max(best, running)
        else:
            running = 0

    current = 0
    for outcome in reversed(outcomes):
        if outcome is None:
            continue
        if not outcome:
            break
        current += 1
    return current, best


def history_day_keys(first_day_key: Optional[str], window_start: str, as_of: str, max_history_days: int) -> List[str]:
    """Days the streak walk covers: from the habit's first day (bounded) to as_of."""
    floor = add_days(as_of, -(max_history_days - 1))
    start = max(first_day_key or window_start, floor)
    start = min(start, window_start)
    return list(iter_day_keys(start, as_of))


def _score(status: Optional[str], snoozed_credit: float) -> float:
    if status == COMPLETED:
        return 1.0
    if status == SNOOZED:
        return snoozed_credit
    return 0.0


def consistency(
    habit,
    day_log: DayLog,
    as_of: str,
    window_days: int,
    *,
    snoozed_credit: float = DEFAULT_SNOOZED_CREDIT,
    max_history_days: int = DEFAULT_MAX_HISTORY_DAYS,
) -> ConsistencyReport:
    """
    Score one habit over the window ending at as_of (inclusive).

    Args:
        habit: HabitState (needs habit_id, rules, lifecycle, first_day_key)
        day_log: Folded day log
        as_of: Last day of the window
        window_days: Window length, already validated and clamped
        snoozed_credit: Trend score for a snoozed scheduled day
        max_history_days: How far back the streak walk may go
    """
    window = window_day_keys(as_of, window_days)
    counts = {COMPLETED: 0, SKIPPED: 0, SNOOZED: 0, MISSED: 0, RELAPSED: 0}
    scheduled_days = 0
    trend: List[TrendPoint] = []

    for day in window:
        status = day_log.status_for(habit.habit_id, day)
        if not habit_is_scheduled(habit, day):
            trend.append(TrendPoint(day, False, status, None))
            continue
        scheduled_days += 1
        if status in counts:
            counts[status] += 1
        trend.append(TrendPoint(day, True, status, _score(status, snoozed_credit)))

    outcomes: List[Optional[bool]] = []
    for day in history_day_keys(habit.first_day_key, window[0], as_of, max_history_days):
        if not habit_is_scheduled(habit, day):
            outcomes.append(None)
        else:
            outcomes.append(day_log.status_for(habit.habit_id, day) == COMPLETED)
    current, best = streaks(outcomes)

    return ConsistencyReport(
        habit_id=habit.habit_id,
        as_of_day_key=as_of,
        window_days=window_days,
        consistency_pct=consistency_pct(counts[COMPLETED], scheduled_days),
        scheduled_days=scheduled_days,
        completed_days=counts[COMPLETED],
        skipped_days=counts[SKIPPED],
        snoozed_days=counts[SNOOZED],
        missed_days=counts[MISSED],
        relapsed_days=counts[RELAPSED],
        current_streak=current,
        best_streak=best,
        trend=tuple(trend),
    )


@dataclass(frozen=True)
class DayBreakdown:
    day_key: str
    scheduled: int
    completed: int

    @property
    def score(self) -> Optional[float]:
        if self.scheduled == 0:
            return None
        return self.completed / self.scheduled

    def to_dict(self):
        return {
            "dayKey": self.day_key,
            "scheduled": self.scheduled,
            "completed": self.completed,
            "score": self.score,
        }


@dataclass(frozen=True)
class AggregateConsistencyReport:
    as_of_day_key: str
    window_days: int
    consistency_pct: int
    scheduled_days: int
    completed_scheduled_days: int
    current_streak: int
    best_streak: int
    missed_last_14: int
    active_habits: int
    trend: Tuple[DayBreakdown, ...]

    def to_dict(self):
        return {
            "asOfDayKey": self.as_of_day_key,
            "windowDays": self.window_days,
            "consistencyPct": self.consistency_pct,
            "scheduledDays": self.scheduled_days,
            "completedScheduledDays": self.completed_scheduled_days,
            "currentStreak": self.current_streak,
            "bestStreak": self.best_streak,
            "missedLast14": self.missed_last_14,
            "activeHabits": self.active_habits,
            "trend": [d.to_dict() for d in self.trend],
        }


def day_breakdown(habits: Sequence, day_log: DayLog, day: str) -> DayBreakdown:
    scheduled = 0
    completed = 0
    for habit in habits:
        if not habit_is_scheduled(habit, day):
            continue
        scheduled += 1
        if day_log.status_for(habit.habit_id, day) == COMPLETED:
            completed += 1
    return DayBreakdown(day, scheduled, completed)


def habits_consistency(
    habits: Iterable,
    day_log: DayLog,
    as_of: str,
    window_days: int,
    trend_days: int,
    *,
    max_history_days: int = DEFAULT_MAX_HISTORY_DAYS,
) -> AggregateConsistencyReport:
    """
    Score all habits together.

    A day with scheduled habits extends the streak only when every one of
    them was completed. Archived habits still count for the days before
    their archive day.
    """
    habits = list(habits)
    window = window_day_keys(as_of, window_days)
    by_day = {day: day_breakdown(habits, day_log, day) for day in window}

    scheduled_total = sum(d.scheduled for d in by_day.values())
    completed_total = sum(d.completed for d in by_day.values())

    first_days = [h.first_day_key for h in habits]
    first_day = min(first_days) if first_days else None
    outcomes: List[Optional[bool]] = []
    for day in history_day_keys(first_day, window[0], as_of, max_history_days):
        breakdown = by_day.get(day) or day_breakdown(habits, day_log, day)
        if breakdown.scheduled == 0:
            outcomes.append(None)
        else:
            outcomes.append(breakdown.completed == breakdown.scheduled)
    current, best = streaks(outcomes)

    missed_last_14 = sum(max(d.scheduled - d.completed, 0) for d in (by_day[k] for k in window[-14:]))

    trend = []
    for day in window_day_keys(as_of, trend_days):
        trend.append(by_day.get(day) or day_breakdown(habits, day_log, day))

    return AggregateConsistencyReport(
        as_of_day_key=as_of,
        window_days=window_days,
        consistency_pct=consistency_pct(completed_total, scheduled_total),
        scheduled_days=scheduled_total,
        completed_scheduled_days=completed_total,
        current_streak=current,
        best_streak=best,
        missed_last_14=missed_last_14,
        active_habits=sum(1 for h in habits if habit_is_active(h, as_of)),
        trend=tuple(trend),
    )


@dataclass(frozen=True)
class CompletionPoint:
    day_key: str
    completed: int

    def to_dict(self):
        return {"dayKey": self.day_key, "completed": self.completed}


@dataclass(frozen=True)
class TaskCompletionReport:
    """
    Tasks have no schedule, so every day counts: a day with at least one
    completion extends the streak and a day without one breaks it.
    """
    as_of_day_key: str
    window_days: int
    completion_rate_pct: int
    created_in_window: int
    completed_in_window: int
    current_streak: int
    best_streak: int
    trend: Tuple[CompletionPoint, ...]

    def to_dict(self):
        return {
            "asOfDayKey": self.as_of_day_key,
            "windowDays": self.window_days,
            "completionRatePct": self.completion_rate_pct,
            "createdInWindow": self.created_in_window,
            "completedInWindow": self.completed_in_window,
            "currentStreak": self.current_streak,
            "bestStreak": self.best_streak,
            "trend": [p.to_dict() for p in self.trend],
        }


def task_completion(
    tasks: Iterable,
    as_of: str,
    window_days: int,
    trend_days: int,
    *,
    tz_name: str = "UTC",
    max_history_days: int = DEFAULT_MAX_HISTORY_DAYS,
) -> TaskCompletionReport:
    """
    Completion rate, streaks and daily completion counts for a set of tasks.

    created/completed instants are bucketed by their local day in tz_name.
    The rate is completed / created within the window, capped at 100 since
    tasks created before the window may be completed inside it.
    """
    tasks = list(tasks)
    window = window_day_keys(as_of, window_days)
    start = window[0]

    created_days = [day_key_from_ms(t.created_at, tz_name) for t in tasks]
    completions: Dict[str, int] = {}
    for task in tasks:
        if task.completed_at is None:
            continue
        day = day_key_from_ms(task.completed_at, tz_name)
        if day <= as_of:
            completions[day] = completions.get(day, 0) + 1

    created_in_window = sum(1 for day in created_days if start <= day <= as_of)
    completed_in_window = sum(n for day, n in completions.items() if day >= start)

    first_day = min(created_days + list(completions)) if tasks else None
    history = history_day_keys(first_day, start, as_of, max_history_days)
    current, best = streaks([completions.get(day, 0) > 0 for day in history])

    return TaskCompletionReport(
        as_of_day_key=as_of,
        window_days=window_days,
        completion_rate_pct=min(consistency_pct(completed_in_window, created_in_window), 100),
        created_in_window=created_in_window,
        completed_in_window=completed_in_window,
        current_streak=current,
        best_streak=best,
        trend=tuple(CompletionPoint(day, completions.get(day, 0)) for day in window_day_keys(as_of, trend_days)),
    )
