"""
Recurring command: list scheduled recurring transactions
"""

from datetime import datetime, timezone
from typing import Optional

import typer
from rich.table import Table

from lifelog.core.errors import LifelogError
from lifelog.query import recurring_transactions

from . import console, default_log_path, emit_json, fail, open_store


def _due(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def recurring_command(
    log_path: Optional[str] = typer.Option(None, "--log", "-l", help="Path to event log file"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Page size (1-100, default 20)"),
    include_canceled: bool = typer.Option(False, "--all", help="Include canceled schedules"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List recurring transactions, soonest due first.

    Examples:
        lifelog recurring
        lifelog recurring --limit 5 --all
    """
    path = log_path or default_log_path()
    store = open_store(path, json_output)
    try:
        result = recurring_transactions(store, limit=limit, include_canceled=include_canceled)
    except LifelogError as e:
        fail(str(e), json_output)

    if json_output:
        emit_json(result.to_dict())
        return

    if not result.items:
        console.print("[yellow]No recurring transactions[/yellow]")
        return

    table = Table(title="Recurring Transactions")
    table.add_column("ID", style="dim")
    table.add_column("Amount", justify="right", style="green")
    table.add_column("Cadence")
    table.add_column("Next Due", style="cyan")
    table.add_column("Kind")
    table.add_column("Category")
    table.add_column("Status")
    for item in result.items:
        table.add_row(
            item.recurring_id,
            f"{item.amount / 100:.2f}",
            item.cadence,
            _due(item.next_due_at),
            item.kind,
            item.category or "",
            "[red]canceled[/red]" if item.canceled else "active",
        )
    console.print(table)
