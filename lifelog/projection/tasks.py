"""
Tasks: decoded events, entity state and fold handlers.

A task moves inbox -> focus/deferred -> completed or abandoned. Completed and
abandoned are terminal: later events for the task are ignored by the fold.
Completing a recurring task also appends task.recurred, the genesis of the
next task in the series.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from ..core.errors import DecodeError
from ..core.events import Event
from ..core.reducer import Reducer
from .decoding import lenient, opt_bool, opt_choice, opt_number, opt_str
from .projector import Projector

logger = logging.getLogger(__name__)

CREATED = "task.created"
UPDATED = "task.updated"
FOCUSED = "task.focused"
DEFERRED = "task.deferred"
COMPLETED = "task.completed"
ABANDONED = "task.abandoned"
RECURRED = "task.recurred"
EVENT_TYPES = (CREATED, UPDATED, FOCUSED, DEFERRED, COMPLETED, ABANDONED, RECURRED)

INBOX = "inbox"
FOCUS = "focus"
DEFERRED_STATUS = "deferred"
DONE = "completed"
DROPPED = "abandoned"
STATUSES = (INBOX, FOCUS, DEFERRED_STATUS, DONE, DROPPED)
CLOSED_STATUSES = (DONE, DROPPED)

RECURRENCES = ("daily", "weekly", "monthly")
PRIORITIES = ("low", "medium", "high")


def _task_id(p, event: Event, genesis: bool = False) -> str:
    # older producers wrote the task id as payload "id"
    task_id = opt_str(p, "taskId") or opt_str(p, "id")
    if task_id is None and genesis:
        task_id = event.id
    if not task_id:
        raise DecodeError(f"{event.type}: missing taskId")
    return task_id


@dataclass(frozen=True)
class TaskCreated:
    task_id: str
    occurred_at: int
    title: str
    note: Optional[str] = None
    estimate_minutes: Optional[int] = None
    recurrence: Optional[str] = None
    priority: Optional[str] = None
    due_at: Optional[int] = None
    series_id: Optional[str] = None
    source_task_id: Optional[str] = None

    @property
    def entity_id(self) -> str:
        return self.task_id


@dataclass(frozen=True)
class TaskUpdated:
    task_id: str
    occurred_at: int
    title: Optional[str] = None
    note: Optional[str] = None
    priority: Optional[str] = None
    due_at: Optional[int] = None
    due_cleared: bool = False
    estimate_minutes: Optional[int] = None

    @property
    def entity_id(self) -> str:
        return self.task_id


@dataclass(frozen=True)
class TaskStatusChanged:
    """focused / deferred / completed / abandoned, told apart by status."""
    task_id: str
    occurred_at: int
    status: str
    deferred_until: Optional[int] = None

    @property
    def entity_id(self) -> str:
        return self.task_id


EVENT_CLASSES = (TaskCreated, TaskUpdated, TaskStatusChanged)

STATUS_BY_TYPE = {FOCUSED: FOCUS, DEFERRED: DEFERRED_STATUS, COMPLETED: DONE, ABANDONED: DROPPED}


@dataclass(frozen=True)
class TaskState:
    task_id: str
    title: str
    status: str
    created_at: int
    note: Optional[str] = None
    estimate_minutes: Optional[int] = None
    recurrence: Optional[str] = None
    priority: Optional[str] = None
    due_at: Optional[int] = None
    series_id: Optional[str] = None
    source_task_id: Optional[str] = None
    focused_at: Optional[int] = None
    deferred_until: Optional[int] = None
    completed_at: Optional[int] = None
    abandoned_at: Optional[int] = None

    @property
    def closed(self) -> bool:
        return self.status in CLOSED_STATUSES

    @property
    def series_key(self) -> str:
        return self.series_id or self.task_id

    def to_dict(self):
        return {
            "taskId": self.task_id,
            "title": self.title,
            "status": self.status,
            "note": self.note,
            "estimateMinutes": self.estimate_minutes,
            "recurrence": self.recurrence,
            "priority": self.priority,
            "dueAt": self.due_at,
            "seriesId": self.series_id,
            "createdAt": self.created_at,
            "focusedAt": self.focused_at,
            "deferredUntil": self.deferred_until,
            "completedAt": self.completed_at,
            "abandonedAt": self.abandoned_at,
        }


def decode_task_event_strict(event: Event):
    p = event.payload or {}

    if event.type in (CREATED, RECURRED):
        return TaskCreated(
            task_id=_task_id(p, event, genesis=True),
            occurred_at=event.occurred_at,
            title=opt_str(p, "title") or "",
            note=opt_str(p, "note"),
            estimate_minutes=opt_number(p, "estimateMinutes"),
            recurrence=opt_choice(p, "recurrence", RECURRENCES),
            priority=opt_choice(p, "priority", PRIORITIES),
            due_at=opt_number(p, "dueAt"),
            series_id=opt_str(p, "seriesId"),
            source_task_id=opt_str(p, "sourceTaskId"),
        )

    if event.type == UPDATED:
        return TaskUpdated(
            task_id=_task_id(p, event),
            occurred_at=event.occurred_at,
            title=opt_str(p, "title"),
            note=opt_str(p, "note"),
            priority=opt_choice(p, "priority", PRIORITIES),
            due_at=opt_number(p, "dueAt"),
            due_cleared=bool(opt_bool(p, "dueAtCleared")),
            estimate_minutes=opt_number(p, "estimateMinutes"),
        )

    if event.type in STATUS_BY_TYPE:
        return TaskStatusChanged(
            task_id=_task_id(p, event),
            occurred_at=event.occurred_at,
            status=STATUS_BY_TYPE[event.type],
            deferred_until=opt_number(p, "deferUntil"),
        )

    return None


decode_task_event = lenient(decode_task_event_strict)


def on_created(cur, ev: TaskCreated) -> TaskState:
    return TaskState(
        task_id=ev.task_id,
        title=ev.title,
        status=INBOX,
        created_at=ev.occurred_at,
        note=ev.note,
        estimate_minutes=ev.estimate_minutes,
        recurrence=ev.recurrence,
        priority=ev.priority,
        due_at=ev.due_at,
        series_id=ev.series_id,
        source_task_id=ev.source_task_id,
    )


def on_updated(cur: Optional[TaskState], ev: TaskUpdated):
    if cur is None:
        logger.debug("update for unknown task id %s ignored", ev.task_id)
        return cur
    if cur.closed:
        return cur
    changes = {
        "title": ev.title,
        "note": ev.note,
        "priority": ev.priority,
        "due_at": ev.due_at,
        "estimate_minutes": ev.estimate_minutes,
    }
    updated = replace(cur, **{k: v for k, v in changes.items() if v is not None})
    if ev.due_cleared:
        updated = replace(updated, due_at=None)
    return updated


def on_status(cur: Optional[TaskState], ev: TaskStatusChanged):
    if cur is None or cur.closed:
        return cur
    if ev.status == FOCUS:
        return replace(cur, status=FOCUS, focused_at=ev.occurred_at)
    if ev.status == DEFERRED_STATUS:
        return replace(cur, status=DEFERRED_STATUS, deferred_until=ev.deferred_until)
    if ev.status == DONE:
        return replace(cur, status=DONE, completed_at=ev.occurred_at)
    return replace(cur, status=DROPPED, abandoned_at=ev.occurred_at)


def register_handlers(reducer: Reducer) -> None:
    reducer.register(TaskCreated, on_created)
    reducer.register(TaskUpdated, on_updated)
    reducer.register(TaskStatusChanged, on_status)


def build_projector() -> Projector:
    reducer = Reducer()
    register_handlers(reducer)
    return Projector("tasks", EVENT_TYPES, decode_task_event, reducer)
