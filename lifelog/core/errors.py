"""
Exception types for the lifelog engine.
"""


class LifelogError(Exception):
    """Base class for all engine errors."""
    pass


class ValidationError(LifelogError):
    """Raised when command or query input is malformed or out of range."""
    pass


class NotFoundError(LifelogError):
    """Raised when a command targets an entity that is missing or terminal."""
    pass


class DecodeError(LifelogError):
    """Raised when a stored event cannot be decoded into its typed form."""
    pass


class InvalidTransitionError(LifelogError):
    """Raised when event handler is not registered or transition is invalid."""
    pass


class DeterminismError(LifelogError):
    """Raised when determinism guarantee is violated."""
    pass


class EventStoreError(LifelogError):
    """Raised when event store operations fail."""
    pass


class DuplicateIdempotencyKeyError(EventStoreError):
    """Raised by a store when an append reuses an idempotency key."""

    def __init__(self, idempotency_key: str) -> None:
        super().__init__(f"idempotency key already used: {idempotency_key}")
        self.idempotency_key = idempotency_key
