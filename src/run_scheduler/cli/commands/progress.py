"""Progress commands: progress, streaks, toggle."""

import json
from datetime import datetime, timezone as dt_timezone
from typing import Annotated, Optional

import typer

from ...core.calendar import completion_key, resolve_for_week_day, today_position, workout_date
from ...core.config import DAY_ORDER
from ...core.dates import local_noon_timestamp
from ...core.engine.config_loader import load_badge_definitions, load_streak_milestones
from ...core.models import CompletionRecord
from ...core.progression import (
    completion_dates_by_key,
    compute_progress,
    compute_streaks,
    crossed_streak_milestones,
    current_phase,
    eligible_badges,
    phase_outline,
    toggle_with_badges,
    week_summary,
    weekly_volume,
    weeks_to_race,
)
from ...core.workout_parser import estimate_completion_metrics
from ...io.serializers import (
    phase_outline_to_dict,
    progress_to_dict,
    streak_state_to_dict,
    week_summary_to_dict,
)
from .. import views
from ..app import (
    JsonOption,
    PlanPathOption,
    TodayOption,
    app,
    get_store,
    load_plan_or_exit,
    resolve_cli_today,
)


@app.command()
def progress(
    plan_path: PlanPathOption = None,
    today: TodayOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show plan progress, this week's totals and the current training phase.
    """
    store = get_store(plan_path)
    plan = load_plan_or_exit(store)
    current = resolve_cli_today(plan, today)
    records = store.load_completions()
    ledger = store.load_ledger()

    result = compute_progress(plan, ledger, current)
    summary = week_summary(records, current, plan.timezone)
    week_number, _ = today_position(plan, plan.start_date, current)
    outline = phase_outline(plan.length_weeks, weeks_to_race(plan.race_date, current))
    phase = current_phase(outline, week_number, plan.length_weeks)

    if json_out:
        print(json.dumps({
            "today": current,
            "week_number": week_number,
            "progress": progress_to_dict(result),
            "summary": week_summary_to_dict(summary),
            "phases": phase_outline_to_dict(outline),
            "current_phase": phase,
            "volume": {
                str(week): {"distance_km": distance, "duration_minutes": duration}
                for week, (distance, duration) in weekly_volume(records).items()
            },
        }, indent=2))
        return

    views.print_progress(result, summary, outline, phase, week_number)


@app.command()
def streaks(
    plan_path: PlanPathOption = None,
    today: TodayOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show current and longest streak with badge status.
    """
    store = get_store(plan_path)
    plan = load_plan_or_exit(store)
    current = resolve_cli_today(plan, today)
    records = store.load_completions()
    earned = store.load_earned_badges()
    badges = load_badge_definitions()

    state = compute_streaks(
        store.load_ledger(),
        completion_dates_by_key(records, plan.timezone),
        current,
        earned,
    )
    eligible = eligible_badges(state, badges)

    if json_out:
        data = streak_state_to_dict(state)
        data["eligible"] = [b.id for b in eligible]
        data["earned"] = earned
        print(json.dumps(data, indent=2))
        return

    views.print_streaks(state, badges, eligible, earned)


@app.command()
def toggle(
    week_number: Annotated[int, typer.Argument(help="Plan week number (1-based)")],
    day_name: Annotated[str, typer.Argument(help="Day: Mon, Tue, Wed, Thu, Fri, Sat, Sun")],
    plan_path: PlanPathOption = None,
    today: TodayOption = None,
    distance_km: Annotated[
        Optional[float],
        typer.Option("--distance-km", help="Distance run (default: estimated from the workout)"),
    ] = None,
    duration_minutes: Annotated[
        Optional[float],
        typer.Option("--duration-min", help="Time run in minutes (default: estimated from the workout)"),
    ] = None,
    rating: Annotated[
        Optional[int],
        typer.Option("--rating", "-r", min=1, max=10, help="How the workout felt, 1-10"),
    ] = None,
) -> None:
    """
    Mark a workout done, or undo it if it is already done.
    """
    day_name = day_name.strip().capitalize()[:3]
    if day_name not in DAY_ORDER:
        views.print_error(f"Invalid day: {day_name}. Must be one of {', '.join(DAY_ORDER)}")
        raise typer.Exit(1)

    store = get_store(plan_path)
    plan = load_plan_or_exit(store)
    slot = resolve_for_week_day(plan, week_number, day_name)
    if slot is None:
        views.print_error(f"No workout scheduled for week {week_number} {day_name}")
        raise typer.Exit(1)

    current = resolve_cli_today(plan, today)
    records = store.load_completions()
    ledger = store.load_ledger()
    dates = completion_dates_by_key(records, plan.timezone)
    earned = store.load_earned_badges()
    badges = load_badge_definitions()
    key = completion_key(week_number, day_name)

    before = compute_streaks(ledger, dates, current, earned)
    outcome = toggle_with_badges(ledger, key, dates, current, earned, badges)

    if today is None:
        completed_at = datetime.now(dt_timezone.utc).isoformat(timespec="seconds")
    else:
        completed_at = local_noon_timestamp(current, plan.timezone)

    if distance_km is None and duration_minutes is None:
        distance_km, duration_minutes = estimate_completion_metrics(slot.workout)

    record = CompletionRecord(
        week_number=week_number,
        day_name=day_name,
        completed_at=completed_at,
        scheduled_date=workout_date(plan, plan.start_date, week_number, day_name),
        distance_km=distance_km,
        duration_minutes=duration_minutes,
        rating=rating,
    )
    done = store.toggle_completion(record)

    if not done:
        views.print_info(f"Week {week_number} {day_name} marked as not done.")
        return

    views.print_success(f"Week {week_number} {day_name} done: {slot.workout}")

    if outcome.badge_unlocked:
        store.record_earned_badges([b.id for b in outcome.newly_eligible], completed_at)
        for badge in outcome.newly_eligible:
            views.print_success(f"Badge unlocked: {badge.name} ({badge.description})")

    for milestone in crossed_streak_milestones(
        before.current_streak, outcome.streaks.current_streak, load_streak_milestones()
    ):
        views.print_info(f"{milestone}-day streak!")
