"""
Replay runner: reconstruct derived state from events.

Replay is pure: decodes and applies each event in logical order
(occurred_at, then seq). Same events -> same state.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from ..core.canonical import canonical_json_bytes
from ..core.errors import DeterminismError
from ..core.events import Event
from ..core.reducer import Reducer
from ..core.state import State
from ..log.store import EventStore


@dataclass(frozen=True)
class ReplayResult:
    """
    Result of replay operation.

    Fields:
        state: Final state after applying events
        applied: Number of events applied
        skipped: Number of events the decoder rejected or ignored
    """
    state: State
    applied: int
    skipped: int = 0


def fold(
    events: Iterable[Event],
    decode: Callable[[Event], Any],
    reducer: Reducer,
    to_seq: Optional[int] = None,
) -> ReplayResult:
    """
    Fold events into a fresh State.

    Args:
        events: Raw events in any order
        decode: Raw event -> typed event, or None to skip
        reducer: Reducer with registered handlers
        to_seq: Ignore events appended after this sequence (inclusive, None = all)
    """
    st = State()
    applied = 0
    skipped = 0

    for ev in sorted(events, key=Event.sort_key):
        if to_seq is not None and ev.require_seq() > to_seq:
            continue
        decoded = decode(ev)
        if decoded is None:
            skipped += 1
            continue
        st = reducer.apply(st, decoded)
        applied += 1

    return ReplayResult(state=st, applied=applied, skipped=skipped)


def replay(store: EventStore, projector, to_seq: Optional[int] = None) -> ReplayResult:
    """
    Replay one entity family from the store.

    Args:
        store: Event store to read from
        projector: Projector naming the family's event types, decoder and reducer
        to_seq: Stop at this sequence (inclusive, None = all)
    """
    return fold(projector.scan(store), projector.decode, projector.reducer, to_seq=to_seq)


def check_deterministic(
    events: Iterable[Event],
    decode: Callable[[Event], Any],
    reducer: Reducer,
    runs: int = 2,
) -> ReplayResult:
    """
    Fold the same events `runs` times and compare canonical bytes.

    Raises:
        DeterminismError: If any two folds differ
    """
    events = list(events)
    first = fold(events, decode, reducer)
    expected = canonical_json_bytes(first.state.aggregates)
    for attempt in range(1, runs):
        again = fold(events, decode, reducer)
        if canonical_json_bytes(again.state.aggregates) != expected:
            raise DeterminismError(f"fold {attempt} differs from fold 0")
    return first
