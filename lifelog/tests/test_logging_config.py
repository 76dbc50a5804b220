"""
Tests for structured logging.
"""

import json
import logging

from pythonjsonlogger import jsonlogger

from lifelog.commands import set_envelope
from lifelog.core.clock import DeterministicClock
from lifelog.log.memory_store import InMemoryEventStore
from lifelog.logging_config import TraceIDFilter, build_formatter, get_logger, setup_logging


def _record(**extra):
    record = logging.LogRecord("lifelog.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_lines_carry_trace_and_context():
    record = _record(trace_id="k-1", command="logHabit")

    data = json.loads(build_formatter("json").format(record))

    assert data["message"] == "hello world"
    assert data["level"] == "INFO"
    assert data["logger"] == "lifelog.test"
    assert data["trace_id"] == "k-1"
    assert data["command"] == "logHabit"


def test_filter_fills_missing_trace_id():
    record = _record()

    assert TraceIDFilter().filter(record)
    assert "[trace_id=N/A]" in build_formatter("text").format(record)


def test_adapter_extra():
    log = get_logger("lifelog.test", command="skipHabit")

    assert log.extra == {"command": "skipHabit", "trace_id": "N/A"}


def test_setup_logging_reads_env(monkeypatch):
    monkeypatch.setenv("LIFELOG_LOG_LEVEL", "debug")
    monkeypatch.setenv("LIFELOG_LOG_FORMAT", "text")
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, jsonlogger.JsonFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_guard_logs_under_the_idempotency_key(caplog):
    store = InMemoryEventStore()
    clock = DeterministicClock(1_740_000_000_000)

    with caplog.at_level(logging.INFO, logger="lifelog.idempotency"):
        set_envelope(store, clock, idempotency_key="key-42", name="Rent")
        set_envelope(store, clock, idempotency_key="key-42", name="Rent")

    records = [r for r in caplog.records if r.name == "lifelog.idempotency"]
    assert len(records) == 2
    assert {r.trace_id for r in records} == {"key-42"}
    assert {r.command for r in records} == {"setEnvelope"}
    assert "deduplicated" in records[1].getMessage()
