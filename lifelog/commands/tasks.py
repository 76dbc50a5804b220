"""
Task commands.

capture mints the task id; the rest target an open (not completed, not
abandoned) task.
"""

from typing import Optional

from ..core.daykeys import add_months_ms
from ..core.errors import NotFoundError, ValidationError
from ..core.events import Event
from ..core.ids import mint_entity_id
from ..idempotency import CommandResult, IdempotencyGuard, PendingCommand
from ..log.store import EventStore
from ..projection import tasks
from .validation import optional_choice, optional_text, require_positive_int, require_text

TITLE_MESSAGE = "Task title cannot be empty"
MAX_FOCUS_ITEMS = 3
DAY_MS = 24 * 60 * 60 * 1000


def require_open_task(store: EventStore, task_id) -> tasks.TaskState:
    target = require_text(task_id, "taskId is required")
    task = tasks.build_projector().load(store, target)
    if task is None or task.closed:
        raise NotFoundError("Task not found or closed")
    return task


def next_due_at(current: int, recurrence: str, tz_name: str = "UTC") -> int:
    if recurrence == "daily":
        return current + DAY_MS
    if recurrence == "weekly":
        return current + 7 * DAY_MS
    return add_months_ms(current, 1, tz_name)


def _check_estimate(estimate_minutes) -> None:
    if estimate_minutes is not None:
        require_positive_int(estimate_minutes, "estimateMinutes must be a positive integer")


def capture_task(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    title: str,
    note: Optional[str] = None,
    estimate_minutes: Optional[int] = None,
    recurrence: Optional[str] = None,
    priority: Optional[str] = None,
    due_at: Optional[int] = None,
) -> CommandResult:
    def build() -> PendingCommand:
        clean_title = require_text(title, TITLE_MESSAGE)
        _check_estimate(estimate_minutes)
        optional_choice(recurrence, tasks.RECURRENCES, "recurrence")
        optional_choice(priority, tasks.PRIORITIES, "priority")
        if due_at is not None:
            require_positive_int(due_at, "dueAt must be a valid timestamp")

        now = clock.now()
        task_id = mint_entity_id("task", idempotency_key, now)
        payload = {"taskId": task_id, "title": clean_title, "status": tasks.INBOX}
        optional = {
            "note": optional_text(note),
            "estimateMinutes": estimate_minutes,
            "recurrence": recurrence,
            "priority": priority,
            "dueAt": due_at,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        event = Event(type=tasks.CREATED, payload=payload, occurred_at=now, aggregate_id=task_id)
        return PendingCommand((event,), task_id)

    return IdempotencyGuard(store, "captureTask").apply(idempotency_key, build)


def update_task(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    task_id: str,
    title: Optional[str] = None,
    note: Optional[str] = None,
    priority: Optional[str] = None,
    due_at: Optional[int] = None,
    clear_due_at: bool = False,
    estimate_minutes: Optional[int] = None,
) -> CommandResult:
    """Partial update of an open task."""

    def build() -> PendingCommand:
        if title is not None:
            require_text(title, TITLE_MESSAGE)
        optional_choice(priority, tasks.PRIORITIES, "priority")
        _check_estimate(estimate_minutes)
        if due_at is not None:
            require_positive_int(due_at, "dueAt must be a valid timestamp")
            if clear_due_at:
                raise ValidationError("dueAt and clearDueAt are mutually exclusive")
        task = require_open_task(store, task_id)

        payload = {"taskId": task.task_id}
        changes = {
            "title": title.strip() if title is not None else None,
            "note": optional_text(note),
            "priority": priority,
            "dueAt": due_at,
            "dueAtCleared": True if clear_due_at else None,
            "estimateMinutes": estimate_minutes,
        }
        payload.update({k: v for k, v in changes.items() if v is not None})
        if len(payload) == 1:
            raise ValidationError("no fields to update")

        event = Event(type=tasks.UPDATED, payload=payload, occurred_at=clock.now(), aggregate_id=task.task_id)
        return PendingCommand((event,), task.task_id)

    return IdempotencyGuard(store, "updateTask").apply(idempotency_key, build)


def focus_task(store: EventStore, clock, *, idempotency_key: str, task_id: str) -> CommandResult:
    """Move a task into the focus list (at most MAX_FOCUS_ITEMS tasks)."""

    def build() -> PendingCommand:
        task = require_open_task(store, task_id)
        if task.status == tasks.FOCUS:
            return PendingCommand((), task.task_id)
        projector = tasks.build_projector()
        focused = projector.project(projector.scan(store), include=lambda t: t.status == tasks.FOCUS)
        if len(focused) >= MAX_FOCUS_ITEMS:
            raise ValidationError(f"Focus list is full (max {MAX_FOCUS_ITEMS} items)")
        event = Event(
            type=tasks.FOCUSED,
            payload={"taskId": task.task_id},
            occurred_at=clock.now(),
            aggregate_id=task.task_id,
        )
        return PendingCommand((event,), task.task_id)

    return IdempotencyGuard(store, "focusTask").apply(idempotency_key, build)


def defer_task(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    task_id: str,
    defer_until: Optional[int] = None,
) -> CommandResult:
    def build() -> PendingCommand:
        task = require_open_task(store, task_id)
        now = clock.now()
        payload = {"taskId": task.task_id}
        if defer_until is not None:
            require_positive_int(defer_until, "deferUntil must be a valid timestamp")
            if defer_until <= now:
                raise ValidationError("deferUntil must be in the future")
            payload["deferUntil"] = defer_until
        event = Event(type=tasks.DEFERRED, payload=payload, occurred_at=now, aggregate_id=task.task_id)
        return PendingCommand((event,), task.task_id)

    return IdempotencyGuard(store, "deferTask").apply(idempotency_key, build)


def complete_task(store: EventStore, clock, *, idempotency_key: str, task_id: str) -> CommandResult:
    """
    Mark an open task completed.

    A recurring task gets its next occurrence in the same batch: a
    task.recurred genesis with a fresh id, the same series and the due date
    moved one recurrence step past the old one (or past now if it had none).
    """

    def build() -> PendingCommand:
        task = require_open_task(store, task_id)
        now = clock.now()
        events = [
            Event(type=tasks.COMPLETED, payload={"taskId": task.task_id}, occurred_at=now, aggregate_id=task.task_id)
        ]
        if task.recurrence:
            next_id = mint_entity_id("task", f"{idempotency_key}:recur", now)
            payload = {
                "taskId": next_id,
                "title": task.title,
                "recurrence": task.recurrence,
                "seriesId": task.series_key,
                "sourceTaskId": task.task_id,
                "dueAt": next_due_at(task.due_at if task.due_at is not None else now, task.recurrence, clock.tz_name),
            }
            optional = {
                "note": task.note,
                "estimateMinutes": task.estimate_minutes,
                "priority": task.priority,
            }
            payload.update({k: v for k, v in optional.items() if v is not None})
            events.append(Event(type=tasks.RECURRED, payload=payload, occurred_at=now, aggregate_id=next_id))
        return PendingCommand(tuple(events), task.task_id)

    return IdempotencyGuard(store, "completeTask").apply(idempotency_key, build)


def abandon_task(store: EventStore, clock, *, idempotency_key: str, task_id: str) -> CommandResult:
    def build() -> PendingCommand:
        task = require_open_task(store, task_id)
        event = Event(
            type=tasks.ABANDONED,
            payload={"taskId": task.task_id},
            occurred_at=clock.now(),
            aggregate_id=task.task_id,
        )
        return PendingCommand((event,), task.task_id)

    return IdempotencyGuard(store, "abandonTask").apply(idempotency_key, build)
