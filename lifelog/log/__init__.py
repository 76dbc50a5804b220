"""
Event storage.

This module provides:
- EventStore: Abstract interface for the Log Store collaborator
- InMemoryEventStore: Process-local store (tests, embedding)
- FileEventStore: File-based append-only storage (JSONL)
"""

from .store import EventStore, AppendResult
from .memory_store import InMemoryEventStore
from .file_store import FileEventStore

__all__ = [
    "EventStore",
    "AppendResult",
    "InMemoryEventStore",
    "FileEventStore",
]
