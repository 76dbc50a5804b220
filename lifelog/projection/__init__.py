"""
Entity projectors, one per family.

Each family module exposes EVENT_TYPES, EVENT_CLASSES, a strict and a lenient
decoder, pure fold handlers and build_projector().
"""

from .projector import Projector
from . import accounts, day_log, envelopes, habits, recurring, tasks

__all__ = [
    "Projector",
    "accounts",
    "day_log",
    "envelopes",
    "habits",
    "recurring",
    "tasks",
]
