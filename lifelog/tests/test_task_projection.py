"""
Tests for the task projection: lifecycle, partial updates and legacy payloads.
"""

from lifelog.core.events import Event
from lifelog.log.memory_store import InMemoryEventStore
from lifelog.projection import tasks
from lifelog.query import task_list


def _append(store, event_type, at, **payload):
    store.append(Event(type=event_type, payload=payload, occurred_at=at))


def _load(store, task_id="t1"):
    return tasks.build_projector().load(store, task_id)


def test_created_task_starts_in_inbox():
    store = InMemoryEventStore()
    _append(store, tasks.CREATED, 10, taskId="t1", title="File taxes", priority="high", dueAt=500)

    task = _load(store)

    assert task.status == tasks.INBOX
    assert task.title == "File taxes"
    assert task.priority == "high"
    assert task.due_at == 500
    assert task.created_at == 10
    assert not task.closed


def test_legacy_payload_id_and_log_id():
    store = InMemoryEventStore()
    _append(store, tasks.CREATED, 1, id="legacy", title="Old")
    _append(store, tasks.CREATED, 2, title="No id at all")
    _append(store, tasks.COMPLETED, 3, id="legacy")

    assert _load(store, "legacy").status == tasks.DONE
    assert _load(store, "evt_1").title == "No id at all"


def test_partial_update_and_due_clear():
    store = InMemoryEventStore()
    _append(store, tasks.CREATED, 1, taskId="t1", title="Draft", note="first", dueAt=500)
    _append(store, tasks.UPDATED, 2, taskId="t1", title="Draft v2")

    task = _load(store)
    assert task.title == "Draft v2"
    assert task.note == "first"
    assert task.due_at == 500

    _append(store, tasks.UPDATED, 3, taskId="t1", dueAtCleared=True)
    assert _load(store).due_at is None


def test_status_transitions():
    store = InMemoryEventStore()
    _append(store, tasks.CREATED, 1, taskId="t1", title="Call bank")
    _append(store, tasks.FOCUSED, 2, taskId="t1")
    assert _load(store).focused_at == 2

    _append(store, tasks.DEFERRED, 3, taskId="t1", deferUntil=900)
    task = _load(store)
    assert task.status == tasks.DEFERRED_STATUS
    assert task.deferred_until == 900

    _append(store, tasks.COMPLETED, 4, taskId="t1")
    task = _load(store)
    assert task.status == tasks.DONE
    assert task.completed_at == 4


def test_closed_tasks_ignore_later_events():
    store = InMemoryEventStore()
    _append(store, tasks.CREATED, 1, taskId="t1", title="Renew passport")
    _append(store, tasks.ABANDONED, 2, taskId="t1")
    _append(store, tasks.COMPLETED, 3, taskId="t1")
    _append(store, tasks.UPDATED, 4, taskId="t1", title="Revived")

    task = _load(store)
    assert task.status == tasks.DROPPED
    assert task.abandoned_at == 2
    assert task.completed_at is None
    assert task.title == "Renew passport"


def test_recurred_event_is_a_genesis_in_the_series():
    store = InMemoryEventStore()
    _append(store, tasks.CREATED, 1, taskId="t1", title="Water plants", recurrence="weekly")
    _append(store, tasks.COMPLETED, 2, taskId="t1")
    _append(
        store, tasks.RECURRED, 2,
        taskId="t2", title="Water plants", recurrence="weekly", seriesId="t1", sourceTaskId="t1", dueAt=700,
    )

    nxt = _load(store, "t2")
    assert nxt.status == tasks.INBOX
    assert nxt.series_key == "t1"
    assert nxt.source_task_id == "t1"
    assert _load(store).series_key == "t1"


def test_events_without_task_id_are_skipped():
    store = InMemoryEventStore()
    _append(store, tasks.CREATED, 1, taskId="t1", title="Keep")
    _append(store, tasks.COMPLETED, 2)
    _append(store, "task.unknownKind", 3, taskId="t1")

    projector = tasks.build_projector()
    result = projector.fold(projector.scan(store))

    assert result.skipped == 1
    assert result.state.get_agg("t1").status == tasks.INBOX


def test_task_list_orders_and_filters():
    store = InMemoryEventStore()
    _append(store, tasks.CREATED, 1, taskId="a", title="Later", dueAt=900)
    _append(store, tasks.CREATED, 2, taskId="b", title="Sooner", dueAt=300)
    _append(store, tasks.CREATED, 3, taskId="c", title="Focused")
    _append(store, tasks.CREATED, 4, taskId="d", title="Done")
    _append(store, tasks.FOCUSED, 5, taskId="c")
    _append(store, tasks.COMPLETED, 6, taskId="d")

    assert [t.task_id for t in task_list(store).items] == ["c", "b", "a"]
    assert [t.task_id for t in task_list(store, include_closed=True).items] == ["c", "b", "a", "d"]
    assert len(task_list(store, limit=1).items) == 1
