"""
Clock implementations.

The clock is consulted for "now" when a command stamps occurred_at and when a
query needs today's day key. It is never read while folding.
"""

import time
from dataclasses import dataclass

from .daykeys import day_key_from_ms


@dataclass(frozen=True)
class DeterministicClock:
    """
    Fixed clock for tests and replays: now() is whatever `current` holds
    and today() is its day key in tz_name.
    """
    current: int = 0
    tz_name: str = "UTC"

    def now(self) -> int:
        return self.current

    def today(self) -> str:
        return day_key_from_ms(self.current, self.tz_name)

    def tick(self, step: int = 1) -> "DeterministicClock":
        """Return a copy moved forward by step milliseconds."""
        return DeterministicClock(self.current + step, self.tz_name)


@dataclass(frozen=True)
class SystemClock:
    """Wall clock reporting epoch milliseconds and the local day key."""
    tz_name: str = "UTC"

    def now(self) -> int:
        return int(time.time() * 1000)

    def today(self) -> str:
        return day_key_from_ms(self.now(), self.tz_name)
