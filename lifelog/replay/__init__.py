"""
Replay system for state reconstruction.

Replay applies a reducer to an event stream to derive current state.
Must be 100% deterministic: same events -> same state.
"""

from .runner import ReplayResult, check_deterministic, fold, replay

__all__ = [
    "check_deterministic",
    "ReplayResult",
    "fold",
    "replay",
]
