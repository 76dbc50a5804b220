"""Command groups for the lifelog CLI."""

import json
import os
from typing import Any, NoReturn

import typer
from rich.console import Console

from lifelog.config import EngineConfig
from lifelog.core import SystemClock
from lifelog.log import FileEventStore

console = Console()


def default_log_path() -> str:
    return EngineConfig.from_env().event_store_path


def open_store(log_path: str, json_output: bool) -> FileEventStore:
    """Open an existing log; a missing file exits with code 2 instead of creating one."""
    if not os.path.exists(log_path):
        fail(f"Log file not found: {log_path}", json_output, path=log_path)
    return FileEventStore(log_path)


def system_clock() -> SystemClock:
    return SystemClock(EngineConfig.from_env().timezone)


def emit_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def fail(message: str, json_output: bool, **extra: Any) -> NoReturn:
    if json_output:
        print(json.dumps(dict({"error": message}, **extra)))
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(2)
