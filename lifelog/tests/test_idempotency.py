"""
Tests for the idempotency guard.

A key that already produced events must return the earlier result, even when
two callers race for it.
"""

import threading

import pytest

from lifelog.core.clock import DeterministicClock
from lifelog.core.errors import EventStoreError, ValidationError
from lifelog.core.events import Event
from lifelog.idempotency import IdempotencyGuard, PendingCommand, stamp
from lifelog.log.memory_store import InMemoryEventStore
from lifelog.commands import schedule_recurring_transaction

CLOCK = DeterministicClock(1_740_000_000_000)
DUE = 1_742_000_000_000


def _schedule(store, key, amount=1500, clock=CLOCK):
    return schedule_recurring_transaction(
        store, clock, idempotency_key=key, amount=amount, cadence="monthly", next_due_at=DUE
    )


@pytest.mark.parametrize("key", ["", "   ", None, 42])
def test_missing_key_is_rejected(key):
    store = InMemoryEventStore()

    with pytest.raises(ValidationError, match="idempotencyKey is required"):
        _schedule(store, key)

    assert len(store) == 0


def test_repeated_key_appends_once_and_returns_same_id():
    store = InMemoryEventStore()

    first = _schedule(store, "k1")
    second = _schedule(store, "k1", amount=9999, clock=CLOCK.tick(5000))

    assert first.created and not first.deduplicated
    assert second.deduplicated and not second.created
    assert second.entity_id == first.entity_id
    assert len(store) == 1
    assert store.find_by_idempotency_key("k1").payload["amount"] == 1500


def test_validation_failure_appends_nothing_and_frees_the_key():
    store = InMemoryEventStore()

    with pytest.raises(ValidationError):
        _schedule(store, "k1", amount=-1)
    assert len(store) == 0

    assert _schedule(store, "k1").created


def test_wire_shape():
    store = InMemoryEventStore()

    result = _schedule(store, "k1")

    assert result.to_wire("recurringId") == {"recurringId": result.entity_id, "deduplicated": False}
    assert _schedule(store, "k1").to_wire("recurringId")["deduplicated"] is True


def test_empty_command_is_a_noop():
    store = InMemoryEventStore()

    result = IdempotencyGuard(store, "nothing").apply("k1", lambda: PendingCommand(()))

    assert not result.created
    assert len(store) == 0


class LateWinnerStore(InMemoryEventStore):
    """Hides the winning event from the first lookup, as if it landed just after it."""

    def __init__(self):
        super().__init__()
        self.lookups = 0

    def find_by_idempotency_key(self, idempotency_key):
        self.lookups += 1
        if self.lookups == 1:
            return None
        return super().find_by_idempotency_key(idempotency_key)


def test_lost_race_reports_deduplicated():
    store = LateWinnerStore()
    store.append(Event(type="finance.recurringTransactionScheduled", idempotency_key="k1", result_id="rec_winner"))

    result = _schedule(store, "k1")

    assert result.deduplicated
    assert result.entity_id == "rec_winner"
    assert len(store) == 1


def test_store_failure_propagates():
    class BrokenStore(InMemoryEventStore):
        def append_batch(self, events):
            raise EventStoreError("disk full")

    with pytest.raises(EventStoreError):
        _schedule(BrokenStore(), "k1")


def test_concurrent_callers_with_one_key_append_once():
    store = InMemoryEventStore()
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        results.append(_schedule(store, "shared"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store) == 1
    assert sum(1 for r in results if r.created) == 1
    assert sum(1 for r in results if r.deduplicated) == 7
    assert len({r.entity_id for r in results}) == 1


def test_only_first_event_of_a_batch_carries_the_key():
    events = [Event(type="habit.missed"), Event(type="habit.missed", idempotency_key="stray")]

    stamped = stamp(events, "k1")

    assert [e.idempotency_key for e in stamped] == ["k1", None]


def test_keyed_event_remembers_the_reported_id():
    events = [Event(type="habit.missed", aggregate_id="habit_a"), Event(type="habit.missed", result_id="stray")]

    stamped = stamp(events, "k1", None)

    assert [e.result_id for e in stamped] == [None, None]
    assert stamped[0].aggregate_id == "habit_a"
    assert stamp(events, "k2", "rec_1")[0].to_wire()["resultId"] == "rec_1"
