"""
lifelog CLI - developer tooling over a JSONL event log

Commands:
- lifelog log tail/inspect - Event log operations
- lifelog replay - Fold every family and print a state hash
- lifelog recurring - Active recurring transactions
- lifelog habits list/consistency - Habit read models
- lifelog tasks list/consistency - Task read models
"""

from lifelog import __version__

__all__ = ["__version__"]
