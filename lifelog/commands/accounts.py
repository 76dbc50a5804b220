"""Account commands: create-or-update and visibility."""

from typing import Optional

from ..config import DEFAULT_CONFIG
from ..core.errors import NotFoundError
from ..core.events import Event
from ..core.ids import mint_entity_id
from ..idempotency import CommandResult, IdempotencyGuard, PendingCommand
from ..log.store import EventStore
from ..projection import accounts
from .validation import optional_text, require_choice, require_number, require_text


def require_account(store: EventStore, account_id: str) -> accounts.AccountState:
    account = accounts.build_projector().load(store, account_id)
    if account is None:
        raise NotFoundError("Account not found")
    return account


def set_account(
    store: EventStore,
    clock,
    *,
    idempotency_key: str,
    name: str,
    account_type: str,
    account_id: Optional[str] = None,
    balance=None,
    currency: Optional[str] = None,
    institution: Optional[str] = None,
    default_currency: str = DEFAULT_CONFIG.default_currency,
) -> CommandResult:
    """
    Create an account, or update the one named by account_id.

    An update only carries the fields that were given.
    """

    def build() -> PendingCommand:
        clean_name = require_text(name, "Account name cannot be empty")
        require_choice(account_type, accounts.ACCOUNT_TYPES, "type")
        if balance is not None:
            require_number(balance, "balance must be a number")
        now = clock.now()

        if account_id:
            require_account(store, account_id)
            payload = {"accountId": account_id, "name": clean_name, "type": account_type}
            extra = {"balance": balance, "currency": optional_text(currency), "institution": optional_text(institution)}
            payload.update({k: v for k, v in extra.items() if v is not None})
            event = Event(type=accounts.UPDATED, payload=payload, occurred_at=now, aggregate_id=account_id)
            return PendingCommand((event,), account_id)

        new_id = mint_entity_id("acct", idempotency_key, now)
        payload = {
            "accountId": new_id,
            "name": clean_name,
            "type": account_type,
            "balance": balance if balance is not None else 0,
            "currency": optional_text(currency) or default_currency,
        }
        if optional_text(institution):
            payload["institution"] = optional_text(institution)
        event = Event(type=accounts.ADDED, payload=payload, occurred_at=now, aggregate_id=new_id)
        return PendingCommand((event,), new_id)

    return IdempotencyGuard(store, "setAccount").apply(idempotency_key, build)


def hide_account(store: EventStore, clock, *, idempotency_key: str, account_id: str, hidden: bool = True) -> CommandResult:
    def build() -> PendingCommand:
        target = require_text(account_id, "accountId is required")
        require_account(store, target)
        event = Event(
            type=accounts.UPDATED,
            payload={"accountId": target, "isHidden": bool(hidden)},
            occurred_at=clock.now(),
            aggregate_id=target,
        )
        return PendingCommand((event,), target)

    return IdempotencyGuard(store, "hideAccount").apply(idempotency_key, build)
