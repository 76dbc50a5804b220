"""
Reducer: pure state transition functions.

The reducer dispatches decoded (typed) events to handlers. It must be:
- Pure (no side effects, no I/O)
- Deterministic (same input -> same output)
- Exhaustive (a decoded event class without a handler is an error, not a no-op)
"""

from typing import Any, Callable, Dict, FrozenSet, Type

from .errors import InvalidTransitionError
from .state import State

# Handler signature: (current_entity_state | None, event) -> new_entity_state | None
# Returning the current object unchanged means "no-op"; returning None drops the entity.
Handler = Callable[[Any, Any], Any]


class Reducer:
    """
    Registry of event handlers for state transitions.

    Usage:
        reducer = Reducer()
        reducer.register(RecurringScheduled, on_scheduled)
        new_state = reducer.apply(state, decoded_event)
    """

    def __init__(self) -> None:
        self._handlers: Dict[type, Handler] = {}

    def register(self, event_class: Type, handler: Handler) -> None:
        """
        Register event handler.

        Args:
            event_class: Decoded event class
            handler: Pure function (current_entity_state, event) -> new_entity_state
        """
        self._handlers[event_class] = handler

    def handled_types(self) -> FrozenSet[type]:
        return frozenset(self._handlers.keys())

    def apply(self, state: State, event: Any) -> State:
        """
        Apply decoded event to state using registered handler.

        Raises:
            InvalidTransitionError: If no handler registered for the event class
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise InvalidTransitionError(f"No handler for event type: {type(event).__name__}")

        key = event.entity_id
        current = state.get_agg(key)
        new_agg_state = handler(current, event)
        if new_agg_state is current:
            return state
        if new_agg_state is None:
            return state.without_agg(key)
        return state.with_agg(key, new_agg_state)
