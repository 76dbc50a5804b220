"""
Event model for the append-only log.

Events are immutable records of things that happened. Corrections are new
events referencing the same entity id, never edits.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def wire_ms(value: Any) -> int:
    """
    Epoch ms from a stored record. JSON producers may write 1.74e12 for an
    integer; anything that is not a finite number reads as 0.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    return value


@dataclass(frozen=True)
class Event:
    """
    Immutable event record.

    Fields:
        type: Discriminated tag (e.g., "finance.recurringTransactionScheduled")
        payload: Type-specific fields
        occurred_at: Logical timestamp in ms, used for ordering and windowing
        idempotency_key: Present only on the event a command created
        aggregate_id: Entity id the event belongs to, when known at append time
        result_id: On the keyed event, the entity id its command reported
        id: Opaque identifier (assigned by EventStore)
        seq: Insertion sequence number (assigned by EventStore)
    """
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    occurred_at: int = 0
    idempotency_key: Optional[str] = None
    aggregate_id: Optional[str] = None
    result_id: Optional[str] = None
    id: Optional[str] = None
    seq: Optional[int] = None

    def require_seq(self) -> int:
        """
        Get sequence number or raise error if not assigned.

        Raises:
            ValueError: If seq is None
        """
        if self.seq is None:
            raise ValueError("Event.seq is required but None")
        return self.seq

    def sort_key(self):
        """Logical order: occurred_at first, insertion order breaks ties."""
        return (self.occurred_at, self.seq if self.seq is not None else -1)

    def to_wire(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "seq": self.seq,
            "type": self.type,
            "payload": dict(self.payload),
            "occurredAt": self.occurred_at,
        }
        if self.idempotency_key is not None:
            data["idempotencyKey"] = self.idempotency_key
        if self.aggregate_id is not None:
            data["aggregateId"] = self.aggregate_id
        if self.result_id is not None:
            data["resultId"] = self.result_id
        return data

    @staticmethod
    def from_wire(data: Dict[str, Any]) -> "Event":
        payload = data.get("payload")
        occurred_at = data.get("occurredAt")
        return Event(
            type=str(data.get("type", "")),
            payload=dict(payload) if isinstance(payload, dict) else {},
            occurred_at=wire_ms(occurred_at),
            idempotency_key=data.get("idempotencyKey"),
            aggregate_id=data.get("aggregateId"),
            result_id=data.get("resultId"),
            id=data.get("id"),
            seq=data.get("seq"),
        )
