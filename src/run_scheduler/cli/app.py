"""Shared Typer app object, shared option types, and store utilities."""

from pathlib import Path
from typing import Annotated, Optional

import typer

from ..core.calendar import validate_plan
from ..core.models import MalformedPlanError, TrainingPlan
from ..core.progression import resolve_today
from ..io.plan_store import PlanStore, get_default_plan_path
from ..io.serializers import ValidationError, validate_date
from . import views

# Shared options used across commands
PlanPathOption = Annotated[
    Optional[Path],
    typer.Option("--plan-path", "-p", help="Path to plan JSON file"),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]

TodayOption = Annotated[
    Optional[str],
    typer.Option("--today", help="Treat this date (YYYY-MM-DD) as today"),
]

AnchorOption = Annotated[
    Optional[str],
    typer.Option("--start-date", "-s", help="Anchor date for weekly plans (default: plan start_date)"),
]

app = typer.Typer(
    name="run-scheduler",
    help="Running training plan calendar, completion tracking and progress.",
    no_args_is_help=False,
    invoke_without_command=True,
)


def get_store(plan_path: Path | None) -> PlanStore:
    """Get plan store from path or default location."""
    if plan_path is None:
        plan_path = get_default_plan_path()
    return PlanStore(plan_path)


def load_plan_or_exit(store: PlanStore) -> TrainingPlan:
    """
    Load and structurally validate the store's plan.

    Prints the problem and exits on a missing, unparseable or malformed plan.
    """
    if not store.exists():
        views.print_error(f"Plan file not found: {store.plan_path}")
        views.print_info("Pass --plan-path or place your plan at ~/.run-scheduler/plan.json")
        raise typer.Exit(1)

    try:
        plan = store.load_plan()
        validate_plan(plan)
    except (ValidationError, MalformedPlanError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    return plan


def parse_date_option(value: str | None, name: str) -> str | None:
    """Validate an optional YYYY-MM-DD option value, exiting on bad input."""
    if value is None:
        return None
    try:
        return validate_date(value)
    except ValidationError as e:
        views.print_error(f"{name}: {e}")
        raise typer.Exit(1)


def resolve_cli_today(plan: TrainingPlan, today: str | None) -> str:
    """``--today`` if given, else today in the plan's timezone (or the default zone)."""
    return parse_date_option(today, "--today") or resolve_today(plan.timezone)


def resolve_anchor(plan: TrainingPlan, start_date: str | None) -> str | None:
    return parse_date_option(start_date, "--start-date") or plan.start_date
