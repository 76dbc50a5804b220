"""
In-memory event store.

Serializes writers with a lock; readers iterate over an immutable snapshot of
committed events, so folds never observe a half-applied batch.
"""

import threading
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..core.events import Event
from .store import AppendResult, EventStore, check_batch, matches


class InMemoryEventStore(EventStore):
    """
    Process-local append-only event store.

    Guarantees:
    - Append-only (no mutations)
    - Check-then-append of idempotency keys under one lock
    """

    def __init__(self, events: Optional[Iterable[Event]] = None) -> None:
        self._lock = threading.Lock()
        self._events: Tuple[Event, ...] = ()
        self._by_key: Dict[str, Event] = {}
        if events:
            self.append_batch(list(events))

    def append_batch(self, events: Sequence[Event]) -> AppendResult:
        with self._lock:
            check_batch(events, set(self._by_key.keys()))

            next_seq = len(self._events)
            stored: List[Event] = []
            for ev in events:
                stored.append(replace(ev, seq=next_seq, id=f"evt_{next_seq}"))
                next_seq += 1

            self._events = self._events + tuple(stored)
            for ev in stored:
                if ev.idempotency_key is not None:
                    self._by_key[ev.idempotency_key] = ev

        return AppendResult(events=tuple(stored))

    def read(
        self,
        aggregate_id: Optional[str] = None,
        from_seq: int = 0,
        types: Optional[Iterable[str]] = None,
    ) -> Iterator[Event]:
        snapshot = self._events
        type_set = frozenset(types) if types is not None else None
        for ev in snapshot:
            if matches(ev, aggregate_id, from_seq, type_set):
                yield ev

    def find_by_idempotency_key(self, idempotency_key: str) -> Optional[Event]:
        return self._by_key.get(idempotency_key)

    def __len__(self) -> int:
        return len(self._events)
