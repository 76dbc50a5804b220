"""
Task commands: list, consistency
"""

from typing import Optional

import typer
from rich.table import Table

from lifelog.config import EngineConfig
from lifelog.core.errors import LifelogError
from lifelog.query import task_consistency, task_list, tasks_consistency

from . import console, default_log_path, emit_json, fail, open_store, system_clock

app = typer.Typer()

STATUS_STYLE = {"focus": "bold cyan", "completed": "green", "abandoned": "dim"}


@app.command("list")
def list_tasks(
    log_path: Optional[str] = typer.Option(None, "--log", "-l", help="Path to event log file"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Page size (1-100, default 20)"),
    include_closed: bool = typer.Option(False, "--all", help="Include completed and abandoned tasks"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Open tasks: focus first, then inbox, then deferred."""
    path = log_path or default_log_path()
    store = open_store(path, json_output)
    try:
        result = task_list(store, limit=limit, include_closed=include_closed)
    except LifelogError as e:
        fail(str(e), json_output)

    if json_output:
        emit_json(result.to_dict())
        return

    if not result.items:
        console.print("[yellow]No tasks[/yellow]")
        return

    table = Table(title="Tasks")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Recurrence")
    for task in result.items:
        style = STATUS_STYLE.get(task.status)
        status = f"[{style}]{task.status}[/{style}]" if style else task.status
        table.add_row(task.task_id, task.title, status, task.priority or "", task.recurrence or "")
    console.print(table)


@app.command()
def consistency(
    task_id: Optional[str] = typer.Argument(None, help="Task id (omit for all tasks)"),
    log_path: Optional[str] = typer.Option(None, "--log", "-l", help="Path to event log file"),
    day_key: Optional[str] = typer.Option(None, "--day", "-d", help="Last day of the window (default: today)"),
    window_days: Optional[int] = typer.Option(None, "--window", "-w", help="Window length in days (7-90)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Completion rate and completion-day streaks for one task series or all tasks.

    Examples:
        lifelog tasks consistency
        lifelog tasks consistency task_9c1e... --window 14
    """
    path = log_path or default_log_path()
    store = open_store(path, json_output)
    config = EngineConfig.from_env()
    clock = system_clock()
    try:
        if task_id:
            result = task_consistency(
                store, clock, task_id=task_id, day_key=day_key, window_days=window_days, config=config
            )
            if result is None:
                fail(f"Task not found: {task_id}", json_output)
            report = result.report
        else:
            result = report = tasks_consistency(
                store, clock, day_key=day_key, window_days=window_days, config=config
            )
    except LifelogError as e:
        fail(str(e), json_output)

    if json_output:
        emit_json(result.to_dict())
        return

    table = Table(show_header=False, box=None)
    table.add_row("[bold]As of[/bold]", report.as_of_day_key)
    table.add_row("[bold]Window[/bold]", f"{report.window_days} days")
    table.add_row("[bold]Completion rate[/bold]", f"{report.completion_rate_pct}%")
    table.add_row("[bold]Created / completed[/bold]", f"{report.created_in_window} / {report.completed_in_window}")
    table.add_row("[bold]Current streak[/bold]", str(report.current_streak))
    table.add_row("[bold]Best streak[/bold]", str(report.best_streak))
    console.print(table)
    console.print(" ".join(str(point.completed) for point in report.trend))
