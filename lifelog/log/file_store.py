"""
File-based event store using append-only JSONL format.

Each line is one record: {"event": {...wire event...}}.
"""

import json
import logging
import os
from dataclasses import replace
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from ..core.canonical import canonical_json_str
from ..core.errors import EventStoreError
from ..core.events import Event
from .store import AppendResult, EventStore, check_batch, matches

try:
    import fcntl
except ImportError:  # Windows or unsupported platform
    fcntl = None

logger = logging.getLogger(__name__)


class FileEventStore(EventStore):
    """
    File-based append-only event store.

    Storage format: JSONL (newline-delimited JSON)
    Each line: {"event": {"id": ..., "seq": ..., "type": ..., "payload": {...}, ...}}

    Guarantees:
    - Append-only (no mutations)
    - Fsync after each batch (durability)
    - Idempotency keys checked under an exclusive file lock
    """

    def __init__(self, path: str) -> None:
        """
        Initialize file event store.

        Args:
            path: Path to JSONL file
        """
        self.path = path

        # Ensure directory exists
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

        # Create empty file if not exists
        if not os.path.exists(path):
            with open(path, "wb") as f:
                f.write(b"")

    def _iter_records(self, f) -> Iterator[Event]:
        for line in f:
            if not line.strip():
                continue
            rec = json.loads(line)
            yield Event.from_wire(rec["event"])

    def _last_seq_and_keys(self, f) -> Tuple[int, Set[str]]:
        """
        Read last sequence number and the idempotency keys in the log.

        Returns:
            (last_seq, keys) tuple
            (-1, set()) if log is empty
        """
        last_seq = -1
        keys: Set[str] = set()
        f.seek(0)
        for ev in self._iter_records(f):
            last_seq = ev.require_seq()
            if ev.idempotency_key is not None:
                keys.add(ev.idempotency_key)
        return last_seq, keys

    def append_batch(self, events: Sequence[Event]) -> AppendResult:
        """
        Append events to log as a single write.

        Raises:
            DuplicateIdempotencyKeyError: If any key is already in the log
            EventStoreError: If append fails
        """
        try:
            with open(self.path, "a+b") as f:
                if fcntl:
                    fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                try:
                    last_seq, keys = self._last_seq_and_keys(f)
                    check_batch(events, keys)

                    stored: List[Event] = []
                    lines: List[str] = []
                    for ev in events:
                        last_seq += 1
                        e2 = replace(ev, seq=last_seq, id=f"evt_{last_seq}")
                        stored.append(e2)
                        lines.append(canonical_json_str({"event": e2.to_wire()}) + "\n")

                    f.seek(0, os.SEEK_END)
                    f.write("".join(lines).encode("utf-8"))
                    f.flush()
                    os.fsync(f.fileno())
                finally:
                    if fcntl:
                        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except OSError as ex:
            raise EventStoreError(str(ex)) from ex

        logger.debug("appended %d event(s) to %s", len(stored), self.path)
        return AppendResult(events=tuple(stored))

    def read(
        self,
        aggregate_id: Optional[str] = None,
        from_seq: int = 0,
        types: Optional[Iterable[str]] = None,
    ) -> Iterator[Event]:
        """
        Read events from log.

        Yields:
            Events in sequence order
        """
        type_set = frozenset(types) if types is not None else None
        try:
            with open(self.path, "rb") as f:
                for ev in self._iter_records(f):
                    if matches(ev, aggregate_id, from_seq, type_set):
                        yield ev
        except OSError as ex:
            raise EventStoreError(str(ex)) from ex

    def find_by_idempotency_key(self, idempotency_key: str) -> Optional[Event]:
        for ev in self.read():
            if ev.idempotency_key == idempotency_key:
                return ev
        return None
