"""
Calendar day keys.

A day key is a timezone-local calendar date string ("YYYY-MM-DD"). Scheduling,
logging and windowing all work in day keys, never raw epoch offsets, so that
month/year boundaries and DST shifts cannot move a day.
"""

import calendar
import re
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ValidationError

DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Weekday numbering follows the client: 0=Sunday ... 6=Saturday.
SUNDAY = 0
SATURDAY = 6


def is_valid_day_key(value) -> bool:
    if not isinstance(value, str) or not DAY_KEY_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_day_key(value) -> date:
    """
    Parse a day key into a date.

    Raises:
        ValidationError: If value is not a real YYYY-MM-DD calendar date
    """
    if not is_valid_day_key(value):
        raise ValidationError("dayKey must be in YYYY-MM-DD format")
    return date.fromisoformat(value)


def day_key_from_date(d: date) -> str:
    return d.isoformat()


def resolve_zone(tz_name: str):
    if not tz_name or tz_name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as ex:
        raise ValidationError(f"unknown timezone: {tz_name}") from ex


def day_key_from_ms(ms: int, tz_name: str = "UTC") -> str:
    """Local calendar day of an epoch-ms timestamp in the given IANA zone."""
    dt = datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).astimezone(resolve_zone(tz_name))
    return dt.date().isoformat()


def add_months_ms(ms: int, months: int, tz_name: str = "UTC") -> int:
    """
    Same local wall time `months` calendar months later. The day of month is
    clamped to the target month's length (Jan 31 + 1 month -> Feb 28/29).
    """
    local = datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).astimezone(resolve_zone(tz_name))
    index = local.month - 1 + months
    year, month = local.year + index // 12, index % 12 + 1
    moved = local.replace(year=year, month=month, day=min(local.day, calendar.monthrange(year, month)[1]))
    elapsed = moved.astimezone(timezone.utc) - local.astimezone(timezone.utc)
    return ms + elapsed // timedelta(milliseconds=1)


def add_days(day_key: str, days: int) -> str:
    return (parse_day_key(day_key) + timedelta(days=days)).isoformat()


def days_between(start_day_key: str, end_day_key: str) -> int:
    """Signed number of days from start to end."""
    return (parse_day_key(end_day_key) - parse_day_key(start_day_key)).days


def iter_day_keys(start_day_key: str, end_day_key: str) -> Iterator[str]:
    """Yield every day key from start to end inclusive, oldest first."""
    current = parse_day_key(start_day_key)
    end = parse_day_key(end_day_key)
    step = timedelta(days=1)
    while current <= end:
        yield current.isoformat()
        current += step


def window_day_keys(as_of_day_key: str, days: int) -> List[str]:
    """
    The `days` day keys ending at as_of_day_key, oldest first.

    Example:
        window_day_keys("2025-03-02", 3) -> ["2025-02-28", "2025-03-01", "2025-03-02"]
    """
    if days <= 0:
        return []
    return list(iter_day_keys(add_days(as_of_day_key, -(days - 1)), as_of_day_key))


def weekday_of(day_key: str) -> int:
    return (parse_day_key(day_key).weekday() + 1) % 7
