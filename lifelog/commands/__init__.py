"""
Command interface.

Every command is `fn(store, clock, *, idempotency_key, ...) -> CommandResult`:
validation runs first, then the events are appended as one batch through the
IdempotencyGuard.
"""

from .accounts import hide_account, set_account
from .envelopes import delete_envelope, set_envelope
from .habits import (
    archive_habit,
    clear_habit_status,
    create_habit,
    log_habit,
    pause_habit,
    relapse_habit,
    resolve_missed_habits,
    resume_habit,
    skip_habit,
    snooze_habit,
    update_habit,
)
from .recurring import cancel_recurring_transaction, schedule_recurring_transaction, update_recurring_transaction
from .tasks import abandon_task, capture_task, complete_task, defer_task, focus_task, update_task

__all__ = [
    "schedule_recurring_transaction",
    "update_recurring_transaction",
    "cancel_recurring_transaction",
    "set_account",
    "hide_account",
    "set_envelope",
    "delete_envelope",
    "create_habit",
    "update_habit",
    "pause_habit",
    "resume_habit",
    "archive_habit",
    "log_habit",
    "skip_habit",
    "snooze_habit",
    "relapse_habit",
    "clear_habit_status",
    "resolve_missed_habits",
    "capture_task",
    "update_task",
    "focus_task",
    "defer_task",
    "complete_task",
    "abandon_task",
]
