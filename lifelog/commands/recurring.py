"""
Recurring transaction commands.

schedule mints the recurring id; update and cancel target an existing,
non-canceled schedule.
"""

from typing import Optional

from ..core.errors import NotFoundError, ValidationError
from ..core.events import Event
from ..core.ids import mint_entity_id
from ..idempotency import CommandResult, IdempotencyGuard, PendingCommand
from ..log.store import EventStore
from ..projection import recurring
from .envelopes import require_live_envelope
from .validation import optional_choice, optional_text, require_choice, require_positive_int, require_text

AMOUNT_MESSAGE = "amount must be a positive integer in cents"
NEXT_DUE_MESSAGE = "nextDueAt must be a valid timestamp"


def require_live_schedule(store: EventStore, recurring_id: str) -> recurring.RecurringScheduleState:
    schedule = recurring.build_projector().load(store, recurring_id)
    if schedule is None or schedule.canceled:
        raise NotFoundError("Recurring transaction not found or canceled")
    return schedule


def schedule_recurring_transaction(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    amount: int,
    cadence: str,
    next_due_at: int,
    kind: Optional[str] = None,
    category: Optional[str] = None,
    envelope_id: Optional[str] = None,
    merchant_hint: Optional[str] = None,
    note: Optional[str] = None,
) -> CommandResult:
    def build() -> PendingCommand:
        require_positive_int(amount, AMOUNT_MESSAGE)
        require_positive_int(next_due_at, NEXT_DUE_MESSAGE)
        require_choice(cadence, recurring.CADENCES, "cadence")
        optional_choice(kind, recurring.KINDS, "kind")
        if envelope_id:
            require_live_envelope(store, envelope_id)

        now = clock.now()
        recurring_id = mint_entity_id("rec", idempotency_key, now)
        payload = {
            "recurringId": recurring_id,
            "amount": amount,
            "cadence": cadence,
            "nextDueAt": next_due_at,
            "kind": kind or recurring.DEFAULT_KIND,
        }
        optional = {
            "envelopeId": envelope_id or None,
            "merchantHint": optional_text(merchant_hint),
            "note": optional_text(note),
            "category": optional_text(category),
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        event = Event(type=recurring.SCHEDULED, payload=payload, occurred_at=now, aggregate_id=recurring_id)
        return PendingCommand((event,), recurring_id)

    return IdempotencyGuard(store, "scheduleRecurringTransaction").apply(idempotency_key, build)


def update_recurring_transaction(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    recurring_id: str,
    amount: Optional[int] = None,
    cadence: Optional[str] = None,
    next_due_at: Optional[int] = None,
    kind: Optional[str] = None,
    category: Optional[str] = None,
    clear_category: bool = False,
    envelope_id: Optional[str] = None,
    clear_envelope: bool = False,
    merchant_hint: Optional[str] = None,
    note: Optional[str] = None,
) -> CommandResult:
    """Partial update: only the arguments that are given end up in the event."""

    def build() -> PendingCommand:
        target = require_text(recurring_id, "recurringId is required")
        if amount is not None:
            require_positive_int(amount, AMOUNT_MESSAGE)
        if next_due_at is not None:
            require_positive_int(next_due_at, NEXT_DUE_MESSAGE)
        optional_choice(cadence, recurring.CADENCES, "cadence")
        optional_choice(kind, recurring.KINDS, "kind")
        if envelope_id and clear_envelope:
            raise ValidationError("envelopeId and clearEnvelope are mutually exclusive")
        if category is not None and clear_category:
            raise ValidationError("category and clearCategory are mutually exclusive")
        require_live_schedule(store, target)
        if envelope_id:
            require_live_envelope(store, envelope_id)

        payload = {"recurringId": target}
        changes = {
            "amount": amount,
            "cadence": cadence,
            "nextDueAt": next_due_at,
            "kind": kind,
            "envelopeId": envelope_id or None,
            "merchantHint": optional_text(merchant_hint),
            "note": optional_text(note),
            "category": category.strip() if isinstance(category, str) else None,
            "envelopeCleared": True if clear_envelope else None,
            "categoryCleared": True if clear_category else None,
        }
        payload.update({k: v for k, v in changes.items() if v is not None})
        if len(payload) == 1:
            raise ValidationError("no fields to update")

        event = Event(type=recurring.UPDATED, payload=payload, occurred_at=clock.now(), aggregate_id=target)
        return PendingCommand((event,), target)

    return IdempotencyGuard(store, "updateRecurringTransaction").apply(idempotency_key, build)


def cancel_recurring_transaction(store: EventStore, clock, *, idempotency_key: str, recurring_id: str) -> CommandResult:
    def build() -> PendingCommand:
        target = require_text(recurring_id, "recurringId is required")
        require_live_schedule(store, target)
        event = Event(
            type=recurring.CANCELED,
            payload={"recurringId": target},
            occurred_at=clock.now(),
            aggregate_id=target,
        )
        return PendingCommand((event,), target)

    return IdempotencyGuard(store, "cancelRecurringTransaction").apply(idempotency_key, build)
