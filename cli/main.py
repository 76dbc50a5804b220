#!/usr/bin/env python3
"""
lifelog CLI - inspect and fold a lifelog event log

Main entrypoint for the lifelog command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from cli.commands import habits, log, recurring, replay, tasks
from lifelog.logging_config import setup_logging
from lifelog.metrics import start_metrics_server_from_env

# Initialize Typer app
app = typer.Typer(
    name="lifelog",
    help="Event-sourced finance, habit and task read models",
    add_completion=False,
)

# Console for rich output
console = Console()

# Add command groups
app.add_typer(log.app, name="log", help="Event log operations")
app.add_typer(habits.app, name="habits", help="Habit read models")
app.add_typer(tasks.app, name="tasks", help="Task read models")

# Add standalone commands
app.command("replay")(replay.replay_command)
app.command("recurring")(recurring.recurring_command)


@app.command()
def version():
    """Show version information."""
    from cli import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]lifelog[/bold]", f"v{__version__}")
    table.add_row("Engine", "fold-on-read")

    console.print(table)


def main():
    """Main entrypoint."""
    setup_logging()
    start_metrics_server_from_env()
    app()


if __name__ == "__main__":
    main()
