"""
Tests for replay determinism.

Critical: Replay must produce identical state across multiple runs.
"""

import os
import random
import tempfile

import pytest

from lifelog.core.canonical import canonical_json_str
from lifelog.core.errors import DeterminismError
from lifelog.core.events import Event
from lifelog.log.file_store import FileEventStore
from lifelog.log.memory_store import InMemoryEventStore
from lifelog.projection import recurring
from lifelog.replay.runner import check_deterministic, fold, replay


def _schedule(rid, amount, at):
    return Event(
        type=recurring.SCHEDULED,
        payload={"recurringId": rid, "amount": amount, "cadence": "weekly", "nextDueAt": at + 1000},
        occurred_at=at,
    )


def _update(rid, amount, at):
    return Event(type=recurring.UPDATED, payload={"recurringId": rid, "amount": amount}, occurred_at=at)


def test_replay_determinism_100_runs():
    """Replay same events 100 times must produce identical state."""
    with tempfile.TemporaryDirectory() as tmpdir:
        log_path = os.path.join(tmpdir, "test.log")
        store = FileEventStore(log_path)
        projector = recurring.build_projector()

        for i in range(10):
            store.append(_schedule(f"r{i % 3}", 100 + i, i))

        results = []
        for _ in range(100):
            result = replay(store, projector)
            results.append(canonical_json_str(result.state.aggregates))

        assert len(set(results)) == 1

        final = replay(store, projector)
        assert final.applied == 10
        assert sorted(final.state.aggregates) == ["r0", "r1", "r2"]


def test_fold_orders_by_occurrence_not_insertion():
    """Physical log order is irrelevant; (occurred_at, seq) decides."""
    store = InMemoryEventStore()
    store.append(_update("r1", 700, 20))
    store.append(_schedule("r1", 500, 10))

    state = replay(store, recurring.build_projector()).state

    assert state.get_agg("r1").amount == 700


def test_fold_is_independent_of_input_order():
    """Shuffled input folds to the same bytes."""
    store = InMemoryEventStore()
    store.append(_schedule("r1", 500, 10))
    store.append(_update("r1", 600, 20))
    store.append(_update("r1", 650, 20))
    store.append(Event(type=recurring.CANCELED, payload={"recurringId": "r1"}, occurred_at=30))
    events = list(store.read())
    projector = recurring.build_projector()

    expected = canonical_json_str(fold(events, projector.decode, projector.reducer).state.aggregates)
    rng = random.Random(7)
    for _ in range(20):
        shuffled = list(events)
        rng.shuffle(shuffled)
        got = fold(shuffled, projector.decode, projector.reducer)
        assert canonical_json_str(got.state.aggregates) == expected


def test_replay_partial():
    """Replay to a specific sequence ignores later appends."""
    store = InMemoryEventStore()
    store.append(_schedule("r1", 500, 10))
    store.append(_update("r1", 600, 20))
    store.append(_update("r1", 700, 30))
    projector = recurring.build_projector()

    assert replay(store, projector, to_seq=1).state.get_agg("r1").amount == 600
    assert replay(store, projector).state.get_agg("r1").amount == 700


def test_undecodable_events_are_skipped_and_counted():
    store = InMemoryEventStore()
    store.append(_schedule("r1", 500, 10))
    store.append(Event(type=recurring.UPDATED, payload={"amount": 1}, occurred_at=20))  # no recurringId

    result = replay(store, recurring.build_projector())

    assert result.applied == 1
    assert result.skipped == 1
    assert result.state.get_agg("r1").amount == 500


def test_check_deterministic_passes_for_pure_reducer():
    store = InMemoryEventStore()
    store.append(_schedule("r1", 500, 10))
    projector = recurring.build_projector()

    result = check_deterministic(list(store.read()), projector.decode, projector.reducer, runs=3)

    assert result.applied == 1


def test_check_deterministic_detects_impure_decoder():
    store = InMemoryEventStore()
    store.append(_schedule("r1", 500, 10))
    projector = recurring.build_projector()
    counter = {"n": 0}

    def drifting_decode(ev):
        counter["n"] += 1
        decoded = projector.decode(ev)
        return decoded.__class__(**dict(decoded.__dict__, amount=counter["n"]))

    with pytest.raises(DeterminismError):
        check_deterministic(list(store.read()), drifting_decode, projector.reducer)
