"""
Accounts: decoded events, entity state and fold handlers.
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

ADDED = "finance.account.added"
UPDATED = "finance.account.updated"
EVENT_TYPES = (ADDED, UPDATED)

ACCOUNT_TYPES = ("checking", "savings", "cash", "credit", "other")
DEFAULT_ACCOUNT_TYPE = "other"


@dataclass(frozen=True)
class AccountAdded:
    account_id: str
    occurred_at: int
    name: str
    account_type: str
    balance: int
    currency: Optional[str] = None
    institution: Optional[str] = None

    @property
    def entity_id(self) -> str:
        return self.account_id


@dataclass(frozen=True)
class AccountUpdated:
    account_id: str
    occurred_at: int
    name: Optional[str] = None
    account_type: Optional[str] = None
    balance: Optional[int] = None
    currency: Optional[str] = None
    institution: Optional[str] = None
    hidden: Optional[bool] = None

    @property
    def entity_id(self) -> str:
        return self.account_id


EVENT_CLASSES = (AccountAdded, AccountUpdated)


@dataclass(frozen=True)
class AccountState:
    account_id: str
    name: str
    account_type: str
    balance: int
    created_at: int
    currency: Optional[str] = None
    institution: Optional[str] = None
    hidden: bool = False

    def to_dict(self):
        return {
            "accountId": self.account_id,
            "name": self.name,
            "type": self.account_type,
            "balance": self.balance,
            "currency": self.currency,
            "institution": self.institution,
            "hidden": self.hidden,
        }


def decode_account_event_strict(event: Event):
    p = event.payload or {}

    if event.type == ADDED:
        account_id = opt_str(p, "accountId") or event.id
        if not account_id:
            raise DecodeError(f"{event.type}: no accountId and no log id")
        balance = opt_number(p, "balance")
        return AccountAdded(
            account_id=account_id,
            occurred_at=event.occurred_at,
            name=opt_str(p, "name") or "",
            account_type=opt_choice(p, "type", ACCOUNT_TYPES) or DEFAULT_ACCOUNT_TYPE,
            balance=balance if balance is not None else 0,
            currency=opt_str(p, "currency"),
            institution=opt_str(p, "institution"),
        )

    if event.type == UPDATED:
        return AccountUpdated(
            account_id=require_id(p, "accountId", event),
            occurred_at=event.occurred_at,
            name=opt_str(p, "name"),
            account_type=opt_choice(p, "type", ACCOUNT_TYPES),
            balance=opt_number(p, "balance"),
            currency=opt_str(p, "currency"),
            institution=opt_str(p, "institution"),
            hidden=opt_bool(p, "isHidden"),
        )

    return None


decode_account_event = lenient(decode_account_event_strict)


def on_added(cur, ev: AccountAdded) -> AccountState:
    return AccountState(
        account_id=ev.account_id,
        name=ev.name,
        account_type=ev.account_type,
        balance=ev.balance,
        created_at=ev.occurred_at,
        currency=ev.currency,
        institution=ev.institution,
    )


def on_updated(cur: Optional[AccountState], ev: AccountUpdated):
    if cur is None:
        logger.debug("update for unknown account id %s ignored", ev.account_id)
        return cur
    changes = {
        "name": ev.name,
        "account_type": ev.account_type,
        "balance": ev.balance,
        "currency": ev.currency,
        "institution": ev.institution,
        "hidden": ev.hidden,
    }
    return replace(cur, **{k: v for k, v in changes.items() if v is not None})


def register_handlers(reducer: Reducer) -> None:
    reducer.register(AccountAdded, on_added)
    reducer.register(AccountUpdated, on_updated)


def build_projector() -> Projector:
    reducer = Reducer()
    register_handlers(reducer)
    return Projector("accounts", EVENT_TYPES, decode_account_event, reducer)
