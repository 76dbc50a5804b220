"""
Engine configuration.

Environment Variables:
    LIFELOG_TIMEZONE: IANA zone used for day keys - default: UTC
    LIFELOG_DEFAULT_CURRENCY: Currency for accounts created without one - default: GHS
    LIFELOG_SNOOZED_CREDIT: Trend score for snoozed days, 0..1 - default: 0.5
    LIFELOG_MAX_HISTORY_DAYS: Lookback bound for streak scans - default: 3660
    LIFELOG_EVENT_STORE_PATH: JSONL log used by the CLI - default: /tmp/lifelog/events.log
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_EVENT_STORE_PATH = "/tmp/lifelog/events.log"


def _env_int(key: str) -> Optional[int]:
    val = os.getenv(key)
    if not val:
        return None
    try:
        parsed = int(val)
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _env_float(key: str) -> Optional[float]:
    val = os.getenv(key)
    if not val:
        return None
    try:
        return float(val)
    except ValueError:
        return None


@dataclass(frozen=True)
class EngineConfig:
    timezone: str = "UTC"
    default_currency: str = "GHS"
    snoozed_credit: float = 0.5
    max_history_days: int = 3660
    event_store_path: str = DEFAULT_EVENT_STORE_PATH

    @staticmethod
    def from_env() -> "EngineConfig":
        defaults = EngineConfig()
        credit = _env_float("LIFELOG_SNOOZED_CREDIT")
        if credit is None or not 0.0 <= credit <= 1.0:
            credit = defaults.snoozed_credit
        return EngineConfig(
            timezone=os.getenv("LIFELOG_TIMEZONE") or defaults.timezone,
            default_currency=os.getenv("LIFELOG_DEFAULT_CURRENCY") or defaults.default_currency,
            snoozed_credit=credit,
            max_history_days=_env_int("LIFELOG_MAX_HISTORY_DAYS") or defaults.max_history_days,
            event_store_path=os.getenv("LIFELOG_EVENT_STORE_PATH") or defaults.event_store_path,
        )


DEFAULT_CONFIG = EngineConfig()
