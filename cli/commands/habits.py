"""
Habit commands: list, consistency
"""

from typing import Optional

import typer
from rich.table import Table

from lifelog.config import EngineConfig
from lifelog.core.errors import LifelogError
from lifelog.query import habit_consistency, habit_list, habits_consistency

from . import console, default_log_path, emit_json, fail, open_store, system_clock

app = typer.Typer()

HEAT = {None: "[dim]·[/dim]", 0.0: "[red]■[/red]", 1.0: "[green]■[/green]"}


def _cell(score: Optional[float]) -> str:
    return HEAT.get(score, "[yellow]■[/yellow]")


@app.command("list")
def list_habits(
    log_path: Optional[str] = typer.Option(None, "--log", "-l", help="Path to event log file"),
    day_key: Optional[str] = typer.Option(None, "--day", "-d", help="Day key YYYY-MM-DD (default: today)"),
    include_archived: bool = typer.Option(False, "--all", help="Include archived habits"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Habits with their schedule and status for a day."""
    path = log_path or default_log_path()
    store = open_store(path, json_output)
    try:
        result = habit_list(store, system_clock(), day_key=day_key, include_archived=include_archived)
    except LifelogError as e:
        fail(str(e), json_output)

    if json_output:
        emit_json(result.to_dict())
        return

    table = Table(title=f"Habits on {result.day_key}")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Cadence")
    table.add_column("Scheduled")
    table.add_column("Status", style="green")
    for entry in result.habits:
        cadence = entry.habit.cadence
        label = cadence.kind if not cadence.days else f"{cadence.kind} {list(cadence.days)}"
        scheduled = "yes" if entry.scheduled else "no"
        if entry.paused_until_day_key:
            scheduled = f"paused until {entry.paused_until_day_key}"
        table.add_row(entry.habit.habit_id, entry.habit.name, label, scheduled, entry.status or "")
    console.print(table)


@app.command()
def consistency(
    habit_id: Optional[str] = typer.Argument(None, help="Habit id (omit for all habits)"),
    log_path: Optional[str] = typer.Option(None, "--log", "-l", help="Path to event log file"),
    day_key: Optional[str] = typer.Option(None, "--day", "-d", help="Last day of the window (default: today)"),
    window_days: Optional[int] = typer.Option(None, "--window", "-w", help="Window length in days (7-90)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Consistency, streaks and trend for one habit or all of them.

    Examples:
        lifelog habits consistency
        lifelog habits consistency habit_3f2a... --window 7
    """
    path = log_path or default_log_path()
    store = open_store(path, json_output)
    config = EngineConfig.from_env()
    clock = system_clock()
    try:
        if habit_id:
            report = habit_consistency(
                store, clock, habit_id=habit_id, day_key=day_key, window_days=window_days, config=config
            )
            if report is None:
                fail(f"Habit not found: {habit_id}", json_output)
        else:
            report = habits_consistency(store, clock, day_key=day_key, window_days=window_days, config=config)
    except LifelogError as e:
        fail(str(e), json_output)

    if json_output:
        emit_json(report.to_dict())
        return

    table = Table(show_header=False, box=None)
    table.add_row("[bold]As of[/bold]", report.as_of_day_key)
    table.add_row("[bold]Window[/bold]", f"{report.window_days} days")
    table.add_row("[bold]Consistency[/bold]", f"{report.consistency_pct}%")
    table.add_row("[bold]Scheduled days[/bold]", str(report.scheduled_days))
    table.add_row("[bold]Current streak[/bold]", str(report.current_streak))
    table.add_row("[bold]Best streak[/bold]", str(report.best_streak))
    console.print(table)
    console.print("".join(_cell(point.score) for point in report.trend))
