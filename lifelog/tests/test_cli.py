"""
Tests for the developer CLI against a JSONL log on disk.
"""

import json

import pytest
from typer.testing import CliRunner

from cli.main import app
from lifelog.core.clock import DeterministicClock
from lifelog.log.file_store import FileEventStore
from lifelog.commands import capture_task, complete_task, create_habit, log_habit, schedule_recurring_transaction

runner = CliRunner()
CLOCK = DeterministicClock(1_741_003_200_000)  # 2025-03-03 12:00 UTC


@pytest.fixture
def log_path(tmp_path):
    path = str(tmp_path / "events.log")
    store = FileEventStore(path)
    schedule_recurring_transaction(
        store, CLOCK, idempotency_key="s1", amount=1299, cadence="monthly", next_due_at=1_742_000_000_000
    )
    hid = create_habit(store, CLOCK, idempotency_key="h1", name="Read", cadence="daily").entity_id
    log_habit(store, CLOCK, idempotency_key="l1", habit_id=hid)
    done = capture_task(store, CLOCK, idempotency_key="t1", title="Pay rent").entity_id
    complete_task(store, CLOCK, idempotency_key="t2", task_id=done)
    capture_task(store, CLOCK, idempotency_key="t3", title="Call bank", priority="high")
    return path


def test_replay_hashes_are_stable(log_path):
    first = runner.invoke(app, ["replay", "--log", log_path, "--json", "--verify"])
    second = runner.invoke(app, ["replay", "--log", log_path, "--json"])

    assert first.exit_code == 0, first.output
    rows = {r["family"]: r for r in json.loads(first.output)["families"]}
    assert rows["recurring"]["entities"] == 1
    assert rows["habits"]["entities"] == 1
    assert rows["habitDayLog"]["applied"] == 1
    assert rows["tasks"]["entities"] == 2
    assert json.loads(first.output)["families"] == json.loads(second.output)["families"]


def test_recurring_json(log_path):
    result = runner.invoke(app, ["recurring", "--log", log_path, "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["limit"] == 20
    assert [i["amount"] for i in data["items"]] == [1299]


def test_habit_consistency_json(log_path):
    result = runner.invoke(app, ["habits", "consistency", "--log", log_path, "--day", "2025-03-03", "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["consistencyPct"] == 100
    assert data["currentStreak"] == 1


def test_unknown_habit_exits_2(log_path):
    result = runner.invoke(app, ["habits", "consistency", "habit_nope", "--log", log_path, "--json"])

    assert result.exit_code == 2
    assert "Habit not found" in result.output


def test_missing_log_exits_2(tmp_path):
    missing = str(tmp_path / "nope.log")

    result = runner.invoke(app, ["log", "tail", "--log", missing, "--json"])

    assert result.exit_code == 2
    assert json.loads(result.output)["error"].startswith("Log file not found")


def test_tasks_list_and_consistency_json(log_path):
    listed = runner.invoke(app, ["tasks", "list", "--log", log_path, "--json"])
    assert listed.exit_code == 0, listed.output
    assert [t["title"] for t in json.loads(listed.output)["items"]] == ["Call bank"]

    report = runner.invoke(app, ["tasks", "consistency", "--log", log_path, "--day", "2025-03-03", "--json"])
    assert report.exit_code == 0, report.output
    data = json.loads(report.output)
    assert data["createdInWindow"] == 2
    assert data["completedInWindow"] == 1
    assert data["completionRatePct"] == 50
    assert data["currentStreak"] == 1


def test_unknown_task_exits_2(log_path):
    result = runner.invoke(app, ["tasks", "consistency", "task_nope", "--log", log_path, "--json"])

    assert result.exit_code == 2
    assert "Task not found" in result.output
