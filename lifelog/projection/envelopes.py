"""
Envelopes (budgets): decoded events, entity state and fold handlers.

Deletion is a terminal marker; deleted envelopes stay in the fold so callers
can still ask for them.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from ..core.errors import DecodeError
from ..core.events import Event
from ..core.reducer import Reducer
from .decoding import lenient, opt_bool, opt_number, opt_str, require_id
from .projector import Projector

logger = logging.getLogger(__name__)

CREATED = "finance.envelopeCreated"
CEILING_UPDATED = "finance.envelopeCeilingUpdated"
DELETED = "finance.envelopeDeleted"
EVENT_TYPES = (CREATED, CEILING_UPDATED, DELETED)


@dataclass(frozen=True)
class EnvelopeCreated:
    envelope_id: str
    occurred_at: int
    name: str
    soft_ceiling: Optional[int] = None
    emoji: Optional[str] = None
    is_private: bool = False

    @property
    def entity_id(self) -> str:
        return self.envelope_id


@dataclass(frozen=True)
class EnvelopeUpdated:
    envelope_id: str
    occurred_at: int
    name: Optional[str] = None
    soft_ceiling: Optional[int] = None
    ceiling_cleared: bool = False
    emoji: Optional[str] = None
    is_private: Optional[bool] = None

    @property
    def entity_id(self) -> str:
        return self.envelope_id


@dataclass(frozen=True)
class EnvelopeDeleted:
    envelope_id: str
    occurred_at: int

    @property
    def entity_id(self) -> str:
        return self.envelope_id


EVENT_CLASSES = (EnvelopeCreated, EnvelopeUpdated, EnvelopeDeleted)


@dataclass(frozen=True)
class EnvelopeState:
    envelope_id: str
    name: str
    created_at: int
    soft_ceiling: Optional[int] = None
    emoji: Optional[str] = None
    is_private: bool = False
    deleted_at: Optional[int] = None

    @property
    def deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self):
        return {
            "envelopeId": self.envelope_id,
            "name": self.name,
            "softCeiling": self.soft_ceiling,
            "emoji": self.emoji,
            "isPrivate": self.is_private,
            "createdAt": self.created_at,
            "deletedAt": self.deleted_at,
        }


def decode_envelope_event_strict(event: Event):
    p = event.payload or {}

    if event.type == CREATED:
        envelope_id = opt_str(p, "envelopeId") or event.id
        if not envelope_id:
            raise DecodeError(f"{event.type}: no envelopeId and no log id")
        return EnvelopeCreated(
            envelope_id=envelope_id,
            occurred_at=event.occurred_at,
            name=opt_str(p, "name") or "",
            soft_ceiling=opt_number(p, "softCeiling"),
            emoji=opt_str(p, "emoji"),
            is_private=bool(opt_bool(p, "isPrivate")),
        )

    if event.type == CEILING_UPDATED:
        return EnvelopeUpdated(
            envelope_id=require_id(p, "envelopeId", event),
            occurred_at=event.occurred_at,
            name=opt_str(p, "name"),
            soft_ceiling=opt_number(p, "softCeiling"),
            ceiling_cleared=bool(opt_bool(p, "softCeilingCleared")),
            emoji=opt_str(p, "emoji"),
            is_private=opt_bool(p, "isPrivate"),
        )

    if event.type == DELETED:
        return EnvelopeDeleted(
            envelope_id=require_id(p, "envelopeId", event),
            occurred_at=event.occurred_at,
        )

    return None


decode_envelope_event = lenient(decode_envelope_event_strict)


def on_created(cur, ev: EnvelopeCreated) -> EnvelopeState:
    return EnvelopeState(
        envelope_id=ev.envelope_id,
        name=ev.name,
        created_at=ev.occurred_at,
        soft_ceiling=ev.soft_ceiling,
        emoji=ev.emoji,
        is_private=ev.is_private,
    )


def on_updated(cur: Optional[EnvelopeState], ev: EnvelopeUpdated):
    if cur is None:
        logger.debug("update for unknown envelope id %s ignored", ev.envelope_id)
        return cur
    if cur.deleted:
        return cur
    soft_ceiling = None if ev.ceiling_cleared else (
        ev.soft_ceiling if ev.soft_ceiling is not None else cur.soft_ceiling
    )
    return replace(
        cur,
        name=ev.name if ev.name is not None else cur.name,
        soft_ceiling=soft_ceiling,
        emoji=ev.emoji if ev.emoji is not None else cur.emoji,
        is_private=ev.is_private if ev.is_private is not None else cur.is_private,
    )


def on_deleted(cur: Optional[EnvelopeState], ev: EnvelopeDeleted):
    if cur is None or cur.deleted:
        return cur
    return replace(cur, deleted_at=ev.occurred_at)


def register_handlers(reducer: Reducer) -> None:
    reducer.register(EnvelopeCreated, on_created)
    reducer.register(EnvelopeUpdated, on_updated)
    reducer.register(EnvelopeDeleted, on_deleted)


def build_projector() -> Projector:
    reducer = Reducer()
    register_handlers(reducer)
    return Projector("envelopes", EVENT_TYPES, decode_envelope_event, reducer)
