"""
Core folding primitives.

This module provides the foundational abstractions for event-sourced reads:
- Event: Immutable log records
- State: Derived entity map
- Reducer: Pure functions for state transitions
- Canonical: Deterministic serialization
- Clock: Time source (deterministic or wall clock)
- Day keys: Local calendar dates
- IDs: Stable identifier generation
"""

from .events import Event
from .state import State
from .reducer import Reducer
from .canonical import canonicalize, canonical_json_bytes, canonical_json_str
from .clock import DeterministicClock, SystemClock
from .ids import stable_id, mint_entity_id
from .errors import (
    LifelogError,
    ValidationError,
    NotFoundError,
    DecodeError,
    InvalidTransitionError,
    DeterminismError,
    EventStoreError,
    DuplicateIdempotencyKeyError,
)

__all__ = [
    "Event",
    "State",
    "Reducer",
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "DeterministicClock",
    "SystemClock",
    "stable_id",
    "mint_entity_id",
    "LifelogError",
    "ValidationError",
    "NotFoundError",
    "DecodeError",
    "InvalidTransitionError",
    "DeterminismError",
    "EventStoreError",
    "DuplicateIdempotencyKeyError",
]
