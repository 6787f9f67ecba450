"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of calendar and progress data.
"""

import calendar as _calendar

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.calendar import is_before_start
from ..core.config import DAY_ORDER, BadgeDefinition
from ..core.models import (
    CountProgress,
    PhaseOutline,
    ResolvedWorkout,
    StreakState,
    TimeProgress,
    WeekSummary,
    WorkoutDescriptor,
)
from ..core.workout_parser import preview, workout_category

console = Console()

_CATEGORY_STYLE = {
    "rest": "dim",
    "easy": "green",
    "long": "blue",
    "tempo": "yellow",
    "interval": "magenta",
    "general": "white",
}


def format_cell(workout: ResolvedWorkout | None, before_start: bool = False) -> str:
    """
    Text for one calendar cell.

    Dates before the plan start are shown as Rest; other unscheduled dates
    are blank.
    """
    if workout is None:
        return "[dim]Rest[/dim]" if before_start else ""
    style = _CATEGORY_STYLE[workout_category(workout.activity)]
    mark = "[green]✓[/green] " if workout.is_completed else ""
    return f"{mark}[{style}]{escape(preview(workout.activity))}[/{style}]"


def print_workout(date: str, workout: ResolvedWorkout | None, descriptor: WorkoutDescriptor | None = None) -> None:
    """
    Print a single day's workout with its tips.

    Args:
        date: Calendar date
        workout: Resolved workout, or None if nothing is scheduled
        descriptor: Parsed fields of the workout text
    """
    if workout is None:
        console.print(f"[yellow]{date}: nothing scheduled.[/yellow]")
        return

    status = "[green]done[/green]" if workout.is_completed else "[dim]not done[/dim]"
    console.print(
        f"[bold cyan]{date}[/bold cyan]  Week {workout.week_number} {workout.day_name}  ({status})"
    )
    console.print(f"  {escape(workout.activity)}")

    if descriptor is not None:
        fields = [
            f"{label}: {value}"
            for label, value in (
                ("distance", descriptor.distance),
                ("duration", descriptor.duration),
                ("pace", descriptor.pace),
            )
            if value
        ]
        if fields:
            console.print(f"  [dim]{escape(' | '.join(fields))}[/dim]")

    if workout.tips:
        console.print()
        console.print("[bold]Tips[/bold]")
        for tip in workout.tips:
            console.print(f"  - {escape(tip)}")


def print_week(cells: list[tuple[str, ResolvedWorkout | None]], anchor: str | None = None) -> None:
    """Print a Monday-Sunday week as a table."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Day", style="cyan")
    table.add_column("Date")
    table.add_column("Wk", justify="right")
    table.add_column("Workout")

    for (date, workout), day_name in zip(cells, DAY_ORDER):
        before = is_before_start(anchor, date)
        table.add_row(
            day_name,
            date,
            str(workout.week_number) if workout is not None else "",
            format_cell(workout, before_start=before),
        )
    console.print(table)


def print_month(
    grid: list[list[tuple[str, ResolvedWorkout | None] | None]],
    year: int,
    month: int,
    anchor: str | None = None,
) -> None:
    """Print a month grid, one column per weekday."""
    table = Table(
        title=f"{_calendar.month_name[month]} {year}",
        show_header=True,
        header_style="bold",
        show_lines=True,
    )
    for day_name in DAY_ORDER:
        table.add_column(day_name, width=14, overflow="fold")

    for row in grid:
        cells = []
        for cell in row:
            if cell is None:
                cells.append("")
                continue
            date, workout = cell
            before = is_before_start(anchor, date)
            cells.append(f"[cyan]{date[-2:]}[/cyan] {format_cell(workout, before_start=before)}")
        table.add_row(*cells)
    console.print(table)


def print_descriptor(text: str, descriptor: WorkoutDescriptor) -> None:
    """Print parsed workout fields."""
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Category", workout_category(text))
    table.add_row("Distance", escape(descriptor.distance or "-"))
    table.add_row("Duration", escape(descriptor.duration or "-"))
    table.add_row("Pace", escape(descriptor.pace or "-"))
    sections = descriptor.sections
    if sections is not None:
        table.add_row("Warm up", escape(sections.warm_up or "-"))
        table.add_row("Work", escape(sections.work or "-"))
        table.add_row("Cool down", escape(sections.cool_down or "-"))
    console.print(table)


def format_progress(progress: TimeProgress | CountProgress) -> str:
    """One-line progress description."""
    if isinstance(progress, TimeProgress):
        return (
            f"{progress.progress_percent}%  "
            f"(day {progress.elapsed_days} of {progress.total_days}, "
            f"{progress.remaining_days} remaining)"
        )
    return f"{progress.percentage}%  ({progress.completed} of {progress.total} workouts)"


def print_progress(
    progress: TimeProgress | CountProgress,
    summary: WeekSummary,
    outline: PhaseOutline,
    phase: str | None,
    week_number: int,
) -> None:
    """Print plan progress, this week's totals and the training phase."""
    console.print()
    console.print(f"[bold]Progress:[/bold] {format_progress(progress)}")
    console.print(f"[bold]Week:[/bold] {week_number}")
    if phase is not None:
        console.print(f"[bold]Phase:[/bold] {phase.replace('_', ' ')}")
    elif outline.reason:
        console.print(f"[dim]Phases disabled ({outline.reason})[/dim]")

    table = Table(show_header=True, header_style="bold")
    table.add_column("")
    table.add_column("Workouts", justify="right")
    table.add_column("Distance (km)", justify="right")
    table.add_column("Time (min)", justify="right")
    table.add_row(
        f"This week ({summary.week_start} → {summary.week_end})",
        str(summary.this_week_count),
        f"{summary.this_week_distance_km:.1f}",
        f"{summary.this_week_duration_minutes:.0f}",
    )
    table.add_row(
        "Total",
        str(summary.total_count),
        f"{summary.total_distance_km:.1f}",
        f"{summary.total_duration_minutes:.0f}",
    )
    console.print(table)
    if summary.average_rating:
        console.print(f"Average rating: {summary.average_rating:.1f}/10")
    console.print()


def print_streaks(
    state: StreakState,
    table_rows: tuple[BadgeDefinition, ...],
    eligible: tuple[BadgeDefinition, ...],
    earned: dict[str, str],
) -> None:
    """
    Print streak counters and the badge table.

    Args:
        state: Current streak state
        table_rows: Badge definitions in display order
        eligible: Badges whose threshold is met
        earned: Earned badge ids mapped to earned_at
    """
    console.print()
    console.print(f"[bold]Current streak:[/bold] {state.current_streak} days")
    console.print(f"[bold]Longest streak:[/bold] {state.longest_streak} days")
    console.print(f"[bold]Total workouts:[/bold] {state.total_workouts}")

    eligible_ids = {b.id for b in eligible}
    table = Table(show_header=True, header_style="bold")
    table.add_column("Badge")
    table.add_column("Requirement")
    table.add_column("Status")
    for badge in table_rows:
        unit = "day streak" if badge.metric == "streak" else "workouts"
        if badge.id in earned:
            status = f"[green]earned {earned[badge.id][:10]}[/green]"
        elif badge.id in eligible_ids:
            status = "[yellow]eligible[/yellow]"
        else:
            status = "[dim]locked[/dim]"
        table.add_row(escape(badge.name), f"{badge.requirement} {unit}", status)
    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{escape(message)}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {escape(message)}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {escape(message)}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{escape(message)}[/blue]")
