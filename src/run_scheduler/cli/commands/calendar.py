"""Calendar commands: day, week, calendar."""

import json
import re
from typing import Annotated, Optional

import typer

from ...core.calendar import is_before_start, month_grid, resolve_for_date, week_view
from ...core.workout_parser import parse_workout
from ...io.serializers import descriptor_to_dict, resolved_workout_to_dict
from .. import views
from ..app import (
    AnchorOption,
    JsonOption,
    PlanPathOption,
    TodayOption,
    app,
    get_store,
    load_plan_or_exit,
    parse_date_option,
    resolve_anchor,
    resolve_cli_today,
)


@app.command()
def day(
    date: Annotated[
        Optional[str],
        typer.Argument(help="Date to show (YYYY-MM-DD, default: today)"),
    ] = None,
    plan_path: PlanPathOption = None,
    start_date: AnchorOption = None,
    today: TodayOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show the workout scheduled on a date.
    """
    store = get_store(plan_path)
    plan = load_plan_or_exit(store)
    anchor = resolve_anchor(plan, start_date)
    target = parse_date_option(date, "date") or resolve_cli_today(plan, today)

    workout = resolve_for_date(plan, anchor, target, store.load_ledger())

    if json_out:
        data = {
            "date": target,
            "before_start": is_before_start(anchor, target),
            "workout": resolved_workout_to_dict(workout),
            "parsed": descriptor_to_dict(parse_workout(workout.activity)) if workout else None,
        }
        print(json.dumps(data, indent=2))
        return

    views.console.print()
    views.print_workout(target, workout, parse_workout(workout.activity) if workout else None)
    views.console.print()


@app.command()
def week(
    date: Annotated[
        Optional[str],
        typer.Argument(help="Any date in the week to show (default: today)"),
    ] = None,
    plan_path: PlanPathOption = None,
    start_date: AnchorOption = None,
    today: TodayOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show the Monday-Sunday week containing a date.
    """
    store = get_store(plan_path)
    plan = load_plan_or_exit(store)
    anchor = resolve_anchor(plan, start_date)
    target = parse_date_option(date, "date") or resolve_cli_today(plan, today)

    cells = week_view(plan, anchor, target, store.load_ledger())

    if json_out:
        print(json.dumps(
            [{"date": d, "workout": resolved_workout_to_dict(w)} for d, w in cells],
            indent=2,
        ))
        return

    views.console.print()
    views.print_week(cells, anchor)
    views.console.print()


@app.command("calendar")
def calendar_cmd(
    month: Annotated[
        Optional[str],
        typer.Argument(help="Month to show (YYYY-MM, default: current month)"),
    ] = None,
    plan_path: PlanPathOption = None,
    start_date: AnchorOption = None,
    today: TodayOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show a month of the plan as a calendar grid.
    """
    store = get_store(plan_path)
    plan = load_plan_or_exit(store)
    anchor = resolve_anchor(plan, start_date)

    if month is None:
        current = resolve_cli_today(plan, today)
        year, month_num = int(current[:4]), int(current[5:7])
    else:
        match = re.match(r"^(\d{4})-(\d{2})$", month)
        if match is None or not 1 <= int(match.group(2)) <= 12:
            views.print_error(f"Invalid month: {month}. Expected YYYY-MM")
            raise typer.Exit(1)
        year, month_num = int(match.group(1)), int(match.group(2))

    grid = month_grid(plan, anchor, year, month_num, store.load_ledger())

    if json_out:
        print(json.dumps(
            [
                [
                    None if cell is None else {"date": cell[0], "workout": resolved_workout_to_dict(cell[1])}
                    for cell in row
                ]
                for row in grid
            ],
            indent=2,
        ))
        return

    views.console.print()
    views.print_month(grid, year, month_num, anchor)
    views.console.print()
