"""
Idempotency Guard.

Wraps every command: a key that already produced an event returns the
earlier result as deduplicated, otherwise the command validates, builds its
events and the guard appends them as one batch.

The "not found" check is advisory. The store's unique constraint on
idempotency_key is what makes check-then-append atomic; a lost race surfaces
as DuplicateIdempotencyKeyError and is reported as deduplicated.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from .core.errors import DuplicateIdempotencyKeyError, LifelogError, ValidationError
from .core.events import Event
from .log.store import EventStore
from .logging_config import get_logger
from .metrics import track_command, track_event

CREATED = "created"
DEDUPLICATED = "deduplicated"
REJECTED = "rejected"
NOOP = "noop"


@dataclass(frozen=True)
class PendingCommand:
    """Events a validated command wants appended, and the entity they belong to."""
    events: Tuple[Event, ...]
    entity_id: Optional[str] = None


@dataclass(frozen=True)
class CommandResult:
    entity_id: Optional[str]
    created: bool
    deduplicated: bool = False
    event_count: int = 0

    def to_wire(self, id_field: str = "id") -> Dict[str, Any]:
        data: Dict[str, Any] = {"deduplicated": self.deduplicated}
        if self.entity_id is not None:
            data[id_field] = self.entity_id
        return data


def require_idempotency_key(idempotency_key) -> str:
    if not isinstance(idempotency_key, str) or not idempotency_key.strip():
        raise ValidationError("idempotencyKey is required")
    return idempotency_key


class IdempotencyGuard:
    """
    Usage:
        guard = IdempotencyGuard(store, "cancelRecurringTransaction")
        result = guard.apply(key, lambda: PendingCommand((event,), recurring_id))
    """

    def __init__(self, store: EventStore, command_name: str) -> None:
        self.store = store
        self.command_name = command_name

    def _deduplicated(self, existing: Event, log) -> CommandResult:
        track_command(self.command_name, DEDUPLICATED)
        log.info("deduplicated %s (event %s)", self.command_name, existing.id)
        return CommandResult(entity_id=existing.result_id, created=False, deduplicated=True)

    def apply(self, idempotency_key: str, command_fn: Callable[[], PendingCommand]) -> CommandResult:
        """
        Run command_fn at most once per idempotency key.

        Raises:
            ValidationError / NotFoundError: From command_fn, before any append
            EventStoreError: If the store fails
        """
        key = require_idempotency_key(idempotency_key)
        log = get_logger(__name__, trace_id=key, command=self.command_name)

        existing = self.store.find_by_idempotency_key(key)
        if existing is not None:
            return self._deduplicated(existing, log)

        try:
            pending = command_fn()
        except LifelogError as ex:
            track_command(self.command_name, REJECTED)
            log.info("rejected %s: %s", self.command_name, ex)
            raise

        if not pending.events:
            track_command(self.command_name, NOOP)
            return CommandResult(entity_id=pending.entity_id, created=False)

        events = stamp(pending.events, key, pending.entity_id)
        try:
            result = self.store.append_batch(events)
        except DuplicateIdempotencyKeyError:
            existing = self.store.find_by_idempotency_key(key)
            if existing is None:
                raise
            return self._deduplicated(existing, log)

        for ev in result.events:
            track_event(ev.type)
        track_command(self.command_name, CREATED)
        log.info(
            "%s appended %d event(s) through seq %d",
            self.command_name,
            len(result.events),
            result.last_seq,
        )
        return CommandResult(
            entity_id=pending.entity_id,
            created=True,
            event_count=len(result.events),
        )


def stamp(
    events: Sequence[Event], idempotency_key: str, result_id: Optional[str] = None
) -> Tuple[Event, ...]:
    """
    Put the key and the reported entity id on the first event of the batch;
    the rest carry neither. A retry answers with that entity id.
    """
    first = replace(events[0], idempotency_key=idempotency_key, result_id=result_id)
    rest = tuple(replace(ev, idempotency_key=None, result_id=None) for ev in events[1:])
    return (first,) + rest
