"""
EventStore abstract interface.

Defines the contract the engine expects from the Log Store collaborator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from ..core.errors import DuplicateIdempotencyKeyError, EventStoreError
from ..core.events import Event


@dataclass(frozen=True)
class AppendResult:
    """
    Result of a committed append.

    Fields:
        events: Stored events with id/seq assigned, in append order
    """

    events: Tuple[Event, ...]

    @property
    def first(self) -> Event:
        return self.events[0]

    @property
    def last_seq(self) -> int:
        return self.events[-1].require_seq()


class EventStore(ABC):
    """
    Abstract event storage interface.

    All implementations must guarantee:
    - Append-only (no updates, no deletes)
    - Sequential ordering (events indexed by seq)
    - Atomic batches (all events of a batch commit, or none)
    - Unique idempotency keys (checked and enforced under the append lock)
    """

    @abstractmethod
    def append_batch(self, events: Sequence[Event]) -> AppendResult:
        """
        Append events to log as one unit.

        Args:
            events: Events to append (id/seq will be assigned)

        Returns:
            AppendResult with the stored events

        Raises:
            DuplicateIdempotencyKeyError: If any key is already in the log
            EventStoreError: If append fails
        """
        ...

    def append(self, event: Event) -> AppendResult:
        return self.append_batch([event])

    @abstractmethod
    def read(
        self,
        aggregate_id: Optional[str] = None,
        from_seq: int = 0,
        types: Optional[Iterable[str]] = None,
    ) -> Iterator[Event]:
        """
        Read events from log.

        Args:
            aggregate_id: Filter by aggregate ID (None = all)
            from_seq: Start from this sequence number (inclusive)
            types: Filter by event type tags (None = all)

        Yields:
            Events in sequence (insertion) order
        """
        ...

    @abstractmethod
    def find_by_idempotency_key(self, idempotency_key: str) -> Optional[Event]:
        """Return the event carrying the key, or None."""
        ...

    def scan(
        self,
        types: Optional[Iterable[str]] = None,
        aggregate_id: Optional[str] = None,
    ) -> List[Event]:
        """
        Filtered snapshot ordered by occurrence time.

        Physical order is not logical order across entities, so events are
        sorted by (occurred_at, seq).
        """
        return sorted(self.read(aggregate_id=aggregate_id, types=types), key=Event.sort_key)


def check_batch(events: Sequence[Event], known_keys: Set[str]) -> None:
    """
    Validate a batch against the keys already in the log.

    Raises:
        EventStoreError: If the batch is empty
        DuplicateIdempotencyKeyError: If a key repeats
    """
    if not events:
        raise EventStoreError("cannot append an empty batch")
    seen: Set[str] = set()
    for ev in events:
        key = ev.idempotency_key
        if key is None:
            continue
        if key in known_keys or key in seen:
            raise DuplicateIdempotencyKeyError(key)
        seen.add(key)


def matches(event: Event, aggregate_id: Optional[str], from_seq: int, types) -> bool:
    if event.require_seq() < from_seq:
        return False
    if aggregate_id is not None and event.aggregate_id != aggregate_id:
        return False
    if types is not None and event.type not in types:
        return False
    return True
