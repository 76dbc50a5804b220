"""
Recurring schedules: decoded events, entity state and fold handlers.

All handlers are pure and deterministic.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from ..core.errors import DecodeError
from ..core.events import Event
from ..core.reducer import Reducer
from .decoding import lenient, opt_bool, opt_choice, opt_number, opt_str, require_id
from .projector import Projector

logger = logging.getLogger(__name__)

SCHEDULED = "finance.recurringTransactionScheduled"
UPDATED = "finance.recurringTransactionUpdated"
CANCELED = "finance.recurringTransactionCanceled"
EVENT_TYPES = (SCHEDULED, UPDATED, CANCELED)

CADENCES = ("weekly", "biweekly", "monthly")
KINDS = ("regular", "subscription")
DEFAULT_CADENCE = "monthly"
DEFAULT_KIND = "regular"


@dataclass(frozen=True)
class RecurringScheduled:
    recurring_id: str
    occurred_at: int
    amount: int
    cadence: str
    next_due_at: int
    kind: str
    category: Optional[str] = None
    envelope_id: Optional[str] = None
    merchant_hint: Optional[str] = None
    note: Optional[str] = None

    @property
    def entity_id(self) -> str:
        return self.recurring_id


@dataclass(frozen=True)
class RecurringUpdated:
    """Only fields that were present in the payload are set."""
    recurring_id: str
    occurred_at: int
    amount: Optional[int] = None
    cadence: Optional[str] = None
    next_due_at: Optional[int] = None
    kind: Optional[str] = None
    category: Optional[str] = None
    category_cleared: bool = False
    envelope_id: Optional[str] = None
    envelope_cleared: bool = False
    merchant_hint: Optional[str] = None
    note: Optional[str] = None

    @property
    def entity_id(self) -> str:
        return self.recurring_id


@dataclass(frozen=True)
class RecurringCanceled:
    recurring_id: str
    occurred_at: int

    @property
    def entity_id(self) -> str:
        return self.recurring_id


EVENT_CLASSES = (RecurringScheduled, RecurringUpdated, RecurringCanceled)


@dataclass(frozen=True)
class RecurringScheduleState:
    recurring_id: str
    amount: int
    cadence: str
    next_due_at: int
    kind: str
    created_at: int
    category: Optional[str] = None
    envelope_id: Optional[str] = None
    merchant_hint: Optional[str] = None
    note: Optional[str] = None
    canceled_at: Optional[int] = None

    @property
    def canceled(self) -> bool:
        return self.canceled_at is not None

    def to_dict(self):
        return {
            "recurringId": self.recurring_id,
            "amount": self.amount,
            "cadence": self.cadence,
            "nextDueAt": self.next_due_at,
            "kind": self.kind,
            "category": self.category,
            "envelopeId": self.envelope_id,
            "merchantHint": self.merchant_hint,
            "note": self.note,
            "createdAt": self.created_at,
            "canceledAt": self.canceled_at,
        }


def decode_recurring_event_strict(event: Event):
    """
    Raw event -> typed recurring event.

    Returns None for events of other families.

    Raises:
        DecodeError: If an update or cancel carries no recurringId
    """
    p = event.payload or {}

    if event.type == SCHEDULED:
        recurring_id = opt_str(p, "recurringId") or event.id
        if not recurring_id:
            raise DecodeError(f"{event.type}: no recurringId and no log id")
        amount = opt_number(p, "amount")
        next_due_at = opt_number(p, "nextDueAt")
        return RecurringScheduled(
            recurring_id=recurring_id,
            occurred_at=event.occurred_at,
            amount=amount if amount is not None else 0,
            cadence=opt_choice(p, "cadence", CADENCES) or DEFAULT_CADENCE,
            next_due_at=next_due_at if next_due_at is not None else event.occurred_at,
            kind=opt_choice(p, "kind", KINDS) or DEFAULT_KIND,
            category=opt_str(p, "category"),
            envelope_id=opt_str(p, "envelopeId"),
            merchant_hint=opt_str(p, "merchantHint"),
            note=opt_str(p, "note"),
        )

    if event.type == UPDATED:
        return RecurringUpdated(
            recurring_id=require_id(p, "recurringId", event),
            occurred_at=event.occurred_at,
            amount=opt_number(p, "amount"),
            cadence=opt_choice(p, "cadence", CADENCES),
            next_due_at=opt_number(p, "nextDueAt"),
            kind=opt_choice(p, "kind", KINDS),
            category=opt_str(p, "category"),
            category_cleared=bool(opt_bool(p, "categoryCleared")),
            envelope_id=opt_str(p, "envelopeId"),
            envelope_cleared=bool(opt_bool(p, "envelopeCleared")),
            merchant_hint=opt_str(p, "merchantHint"),
            note=opt_str(p, "note"),
        )

    if event.type == CANCELED:
        return RecurringCanceled(
            recurring_id=require_id(p, "recurringId", event),
            occurred_at=event.occurred_at,
        )

    return None


decode_recurring_event = lenient(decode_recurring_event_strict)


def on_scheduled(cur, ev: RecurringScheduled) -> RecurringScheduleState:
    # A repeated genesis replaces the entry; fold order makes the last one win.
    return RecurringScheduleState(
        recurring_id=ev.recurring_id,
        amount=ev.amount,
        cadence=ev.cadence,
        next_due_at=ev.next_due_at,
        kind=ev.kind,
        created_at=ev.occurred_at,
        category=ev.category,
        envelope_id=ev.envelope_id,
        merchant_hint=ev.merchant_hint,
        note=ev.note,
    )


def _pick(new, old):
    return old if new is None else new


def on_updated(cur: Optional[RecurringScheduleState], ev: RecurringUpdated):
    if cur is None:
        logger.debug("update for unknown recurring id %s ignored", ev.recurring_id)
        return cur
    if cur.canceled:
        return cur

    if ev.category_cleared:
        category = None
    else:
        category = _pick(ev.category, cur.category)

    if ev.envelope_cleared:
        envelope_id = None
    else:
        envelope_id = _pick(ev.envelope_id, cur.envelope_id)

    return replace(
        cur,
        amount=_pick(ev.amount, cur.amount),
        cadence=_pick(ev.cadence, cur.cadence),
        next_due_at=_pick(ev.next_due_at, cur.next_due_at),
        kind=_pick(ev.kind, cur.kind),
        category=category,
        envelope_id=envelope_id,
        merchant_hint=_pick(ev.merchant_hint, cur.merchant_hint),
        note=_pick(ev.note, cur.note),
    )


def on_canceled(cur: Optional[RecurringScheduleState], ev: RecurringCanceled):
    if cur is None or cur.canceled:
        return cur
    return replace(cur, canceled_at=ev.occurred_at)


def register_handlers(reducer: Reducer) -> None:
    reducer.register(RecurringScheduled, on_scheduled)
    reducer.register(RecurringUpdated, on_updated)
    reducer.register(RecurringCanceled, on_canceled)


def build_projector() -> Projector:
    reducer = Reducer()
    register_handlers(reducer)
    return Projector("recurring", EVENT_TYPES, decode_recurring_event, reducer)
