"""
Payload decoding helpers.

Every family decodes raw events into typed, fully populated dataclasses before
folding. Decoders raise DecodeError with a reason; lenient() turns that into a
skipped event so a malformed historical record never breaks a read.
"""

import logging
from typing import Any, Callable, Dict, Optional, Sequence, TypeVar

from ..core.daykeys import is_valid_day_key
from ..core.errors import DecodeError
from ..core.events import Event

logger = logging.getLogger(__name__)

T = TypeVar("T")


def opt_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    return value if isinstance(value, str) else None


def opt_number(payload: Dict[str, Any], key: str):
    value = payload.get(key)
    # bool is an int subclass; a stray true/false is not an amount
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def opt_bool(payload: Dict[str, Any], key: str) -> Optional[bool]:
    value = payload.get(key)
    return value if isinstance(value, bool) else None


def opt_day_key(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    return value if is_valid_day_key(value) else None


def opt_choice(payload: Dict[str, Any], key: str, allowed: Sequence[str]) -> Optional[str]:
    value = payload.get(key)
    if isinstance(value, str) and value in allowed:
        return value
    return None


def require_id(payload: Dict[str, Any], key: str, event: Event) -> str:
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
        return value
    raise DecodeError(f"{event.type}: missing {key}")


def lenient(decoder: Callable[[Event], Optional[T]]) -> Callable[[Event], Optional[T]]:
    """Wrap a strict decoder so undecodable events are skipped, not fatal."""

    def decode(event: Event) -> Optional[T]:
        try:
            return decoder(event)
        except DecodeError as ex:
            logger.warning("skipping undecodable event %s: %s", event.id, ex)
            return None

    decode.__name__ = getattr(decoder, "__name__", "decode")
    return decode
