"""
CLI entry point using Typer.

Provides commands for inspecting a training plan:
- parse: Parse a workout description
- day / week / calendar: Show scheduled workouts by date
- progress: Plan progress, weekly totals and training phase
- streaks: Streaks and badges
- toggle: Mark a workout done or undo it
- validate: Check a plan file
- migrate: Convert a weekly plan to the date-based schema
"""

import typer

from . import views
from .app import app
from .commands import calendar, progress, workouts  # noqa: F401  (registers commands)


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    """
    Running training plan calendar, completion tracking and progress.
    """
    if ctx.invoked_subcommand is not None:
        return

    views.console.print()
    views.console.print("[bold cyan]run-scheduler[/bold cyan] — training plan calendar")
    views.console.print()
    views.console.print(ctx.get_help())


if __name__ == "__main__":
    app()
