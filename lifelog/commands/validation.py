"""Input checks shared by commands. Every failure is a ValidationError raised before any append."""

from typing import Any, Optional, Sequence

from ..core.daykeys import is_valid_day_key
from ..core.errors import ValidationError


def is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def require_positive_int(value: Any, message: str) -> int:
    if not is_int(value) or value <= 0:
        raise ValidationError(message)
    return value


def require_non_negative_int(value: Any, message: str) -> int:
    if not is_int(value) or value < 0:
        raise ValidationError(message)
    return value


def require_number(value: Any, message: str):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(message)
    return value


def require_text(value: Any, message: str) -> str:
    """Stripped, non-empty string."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)
    return value.strip()


def optional_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def require_choice(value: Any, allowed: Sequence[str], field: str) -> str:
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(allowed)}")
    return value


def optional_choice(value: Any, allowed: Sequence[str], field: str) -> Optional[str]:
    if value is None:
        return None
    return require_choice(value, allowed, field)


def require_day_key(value: Any, field: str = "dayKey") -> str:
    if not is_valid_day_key(value):
        raise ValidationError(f"{field} must be in YYYY-MM-DD format")
    return value


def optional_day_key(value: Any, field: str) -> Optional[str]:
    if value is None:
        return None
    return require_day_key(value, field)
