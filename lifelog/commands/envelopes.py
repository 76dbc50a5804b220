"""Envelope (budget) commands."""

from typing import Optional

from ..core.errors import NotFoundError, ValidationError
from ..core.events import Event
from ..core.ids import mint_entity_id
from ..idempotency import CommandResult, IdempotencyGuard, PendingCommand
from ..log.store import EventStore
from ..projection import envelopes
from .validation import optional_text, require_non_negative_int, require_text


def require_live_envelope(store: EventStore, envelope_id: str) -> envelopes.EnvelopeState:
    envelope = envelopes.build_projector().load(store, envelope_id)
    if envelope is None or envelope.deleted:
        raise NotFoundError("Envelope not found")
    return envelope


def set_envelope(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    name: str,
    envelope_id: Optional[str] = None,
    soft_ceiling: Optional[int] = None,
    clear_soft_ceiling: bool = False,
    emoji: Optional[str] = None,
    is_private: Optional[bool] = None,
) -> CommandResult:
    def build() -> PendingCommand:
        clean_name = require_text(name, "Envelope name cannot be empty")
        if soft_ceiling is not None:
            require_non_negative_int(soft_ceiling, "softCeiling must be a non-negative integer in cents")
        if soft_ceiling is not None and clear_soft_ceiling:
            raise ValidationError("softCeiling and clearSoftCeiling are mutually exclusive")
        now = clock.now()

        if envelope_id:
            require_live_envelope(store, envelope_id)
            payload = {"envelopeId": envelope_id, "name": clean_name}
            extra = {
                "softCeiling": soft_ceiling,
                "softCeilingCleared": True if clear_soft_ceiling else None,
                "emoji": optional_text(emoji),
                "isPrivate": is_private,
            }
            payload.update({k: v for k, v in extra.items() if v is not None})
            event = Event(type=envelopes.CEILING_UPDATED, payload=payload, occurred_at=now, aggregate_id=envelope_id)
            return PendingCommand((event,), envelope_id)

        new_id = mint_entity_id("env", idempotency_key, now)
        payload = {"envelopeId": new_id, "name": clean_name, "isPrivate": bool(is_private)}
        if soft_ceiling is not None:
            payload["softCeiling"] = soft_ceiling
        if optional_text(emoji):
            payload["emoji"] = optional_text(emoji)
        event = Event(type=envelopes.CREATED, payload=payload, occurred_at=now, aggregate_id=new_id)
        return PendingCommand((event,), new_id)

    return IdempotencyGuard(store, "setEnvelope").apply(idempotency_key, build)


def delete_envelope(store: EventStore, clock, *, idempotency_key: str, envelope_id: str) -> CommandResult:
    def build() -> PendingCommand:
        target = require_text(envelope_id, "envelopeId is required")
        require_live_envelope(store, target)
        event = Event(
            type=envelopes.DELETED,
            payload={"envelopeId": target},
            occurred_at=clock.now(),
            aggregate_id=target,
        )
        return PendingCommand((event,), target)

    return IdempotencyGuard(store, "deleteEnvelope").apply(idempotency_key, build)
