"""
Event log commands: tail, inspect
"""

import json
from typing import List, Optional

import typer
from rich.syntax import Syntax
from rich.table import Table

from lifelog.core import Event
from lifelog.core.errors import LifelogError

from . import console, default_log_path, emit_json, fail, open_store

app = typer.Typer()


def _load(log_path: str, json_output: bool) -> List[Event]:
    store = open_store(log_path, json_output)
    try:
        return list(store.read())
    except (LifelogError, ValueError) as e:
        fail(str(e), json_output)


@app.command()
def tail(
    log_path: Optional[str] = typer.Option(None, "--log", "-l", help="Path to event log file"),
    lines: Optional[int] = typer.Option(None, "--lines", "-n", help="Number of events to show"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show the last events of the log.

    Examples:
        lifelog log tail
        lifelog log tail --lines 10
        lifelog log tail --json
    """
    path = log_path or default_log_path()
    events = _load(path, json_output)
    if lines:
        events = events[-lines:]

    if json_output:
        emit_json({"events": [ev.to_wire() for ev in events], "count": len(events)})
        return

    if not events:
        console.print("[yellow]Event log is empty[/yellow]")
        return

    table = Table(title=f"Event Log: {path}")
    table.add_column("Seq", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Aggregate ID", style="yellow")
    table.add_column("Occurred At")
    table.add_column("Idempotency Key", style="dim")

    for ev in events:
        table.add_row(
            str(ev.seq),
            ev.type,
            ev.aggregate_id or "N/A",
            str(ev.occurred_at),
            ev.idempotency_key or "",
        )

    console.print(table)
    console.print(f"\n[bold]Total events:[/bold] {len(events)}")


@app.command()
def inspect(
    log_path: Optional[str] = typer.Option(None, "--log", "-l", help="Path to event log file"),
    from_seq: Optional[int] = typer.Option(None, "--from", help="Start from sequence number"),
    to_seq: Optional[int] = typer.Option(None, "--to", help="End at sequence number"),
    event_type: Optional[str] = typer.Option(None, "--event-type", "-t", help="Filter by event type"),
    aggregate_id: Optional[str] = typer.Option(None, "--aggregate", "-a", help="Filter by entity id"),
    show_payload: bool = typer.Option(False, "--payload", "-p", help="Show full payload"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Inspect event log with filters.

    Examples:
        lifelog log inspect --from 0 --to 10
        lifelog log inspect --event-type habit.completed
        lifelog log inspect --payload --json
    """
    path = log_path or default_log_path()
    events = _load(path, json_output)

    if from_seq is not None:
        events = [ev for ev in events if ev.seq >= from_seq]
    if to_seq is not None:
        events = [ev for ev in events if ev.seq <= to_seq]
    if event_type:
        events = [ev for ev in events if ev.type == event_type]
    if aggregate_id:
        events = [ev for ev in events if ev.aggregate_id == aggregate_id]

    if json_output:
        records = [ev.to_wire() for ev in events]
        if not show_payload:
            for rec in records:
                rec["payload"] = "<hidden>"
        emit_json({"events": records, "count": len(records)})
        return

    if not events:
        console.print("[yellow]No events match the filters[/yellow]")
        return

    for ev in events:
        console.print(f"\n[bold cyan]Event {ev.seq}[/bold cyan] ({ev.id})")
        console.print(f"  Type: [green]{ev.type}[/green]")
        console.print(f"  Aggregate: [yellow]{ev.aggregate_id or 'N/A'}[/yellow]")
        console.print(f"  Occurred At: {ev.occurred_at}")
        console.print(f"  Idempotency Key: {ev.idempotency_key or 'N/A'}")

        if show_payload:
            console.print("  Payload:")
            syntax = Syntax(
                json.dumps(ev.payload, indent=2, sort_keys=True),
                "json",
                theme="monokai",
                line_numbers=False,
            )
            console.print(syntax)

    console.print(f"\n[bold]Total events:[/bold] {len(events)}")
