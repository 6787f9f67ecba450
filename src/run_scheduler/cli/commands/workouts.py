"""Workout and plan-file commands: parse, validate, migrate."""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer

from ...core.calendar import dated_day_issues, migrate_to_date_based
from ...core.models import MalformedPlanError
from ...core.workout_parser import (
    estimate_completion_metrics,
    parse_workout,
    render_emphasis,
    strip_formatting,
    workout_category,
)
from ...io.serializers import descriptor_to_dict
from .. import views
from ..app import (
    AnchorOption,
    JsonOption,
    PlanPathOption,
    app,
    get_store,
    load_plan_or_exit,
    parse_date_option,
)


@app.command()
def parse(
    text: Annotated[str, typer.Argument(help="Workout description to parse")],
    json_out: JsonOption = False,
) -> None:
    """
    Parse a free-text workout description into distance, duration, pace and sections.
    """
    descriptor = parse_workout(text)

    if json_out:
        distance_km, duration_minutes = estimate_completion_metrics(text)
        data = descriptor_to_dict(descriptor)
        data.update({
            "category": workout_category(text),
            "plain": strip_formatting(text),
            "html": render_emphasis(text),
            "estimate": {"distance_km": distance_km, "duration_minutes": duration_minutes},
        })
        print(json.dumps(data, indent=2))
        return

    views.console.print()
    views.print_descriptor(text, descriptor)
    views.console.print()


@app.command()
def validate(
    plan_path: PlanPathOption = None,
) -> None:
    """
    Check a plan file for structural problems.
    """
    store = get_store(plan_path)
    plan = load_plan_or_exit(store)

    issues = dated_day_issues(plan.days) if plan.is_date_based else []
    for issue in issues:
        views.print_warning(issue)

    kind = "date-based" if plan.is_date_based else "weekly"
    views.print_success(f"Plan OK: {kind}, {plan.length_weeks} weeks")
    if issues:
        raise typer.Exit(1)


@app.command()
def migrate(
    plan_path: PlanPathOption = None,
    start_date: AnchorOption = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the migrated plan here (default: overwrite)"),
    ] = None,
) -> None:
    """
    Convert a weekly plan to the date-based schema.

    Week numbers are kept, so existing completions stay attached.
    """
    store = get_store(plan_path)
    plan = load_plan_or_exit(store)

    if plan.is_date_based:
        views.print_info("Plan is already date-based; nothing to do.")
        return

    try:
        migrated = migrate_to_date_based(plan, parse_date_option(start_date, "--start-date"))
    except MalformedPlanError as e:
        views.print_error(str(e))
        views.print_info("Pass --start-date YYYY-MM-DD to anchor the plan.")
        raise typer.Exit(1)

    target = store.save_plan(migrated, output)
    views.print_success(f"Wrote {len(migrated.days or ())} dated days to {target}")
