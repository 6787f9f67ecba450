"""
JSON serialization for plan and completion data.

Handles conversion between dataclasses and JSON-compatible dicts.  Plan
input must tolerate both plan schemas (weekly and date-based) and both
day-entry shapes (string or object) indefinitely.
"""

import json
import re
from datetime import datetime
from typing import Any

from ..core.config import DAY_ORDER, ISO_DATE_FORMAT
from ..core.models import (
    CompletionRecord,
    CountProgress,
    DatedDay,
    DayEntry,
    MalformedPlanError,
    PhaseOutline,
    ResolvedWorkout,
    StreakState,
    TimeProgress,
    TrainingPlan,
    Week,
    WeekSummary,
    WorkoutDescriptor,
    coerce_tips,
)


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_date(date_str: str) -> str:
    """
    Validate and normalize date string to ISO format.

    Accepts full timestamps and keeps only the date part.

    Args:
        date_str: Date string to validate

    Returns:
        Normalized YYYY-MM-DD string

    Raises:
        ValidationError: If date format is invalid
    """
    if not isinstance(date_str, str) or not re.match(r"^\d{4}-\d{2}-\d{2}", date_str.strip()):
        raise ValidationError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")

    date_str = date_str.strip()[:10]
    try:
        datetime.strptime(date_str, ISO_DATE_FORMAT)
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str}") from e

    return date_str


def validate_day_name(day_name: str) -> str:
    """
    Validate a weekday abbreviation.

    Raises:
        ValidationError: If not one of Mon..Sun
    """
    if day_name not in DAY_ORDER:
        raise ValidationError(f"Invalid day name: {day_name!r}. Must be one of {DAY_ORDER}")
    return day_name


def validate_rating(rating: Any) -> int | None:
    """Validate an optional 1-10 rating."""
    if rating is None:
        return None
    try:
        value = int(rating)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid rating: {rating!r}") from e
    if not 1 <= value <= 10:
        raise ValidationError(f"rating must be between 1 and 10, got {value}")
    return value


def _optional_float(value: Any, name: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {name}: {value!r}") from e
    if result < 0:
        raise ValidationError(f"{name} must be non-negative, got {result}")
    return result


# =============================================================================
# Plans
# =============================================================================


def dict_to_week(data: dict[str, Any], position: int) -> Week:
    """
    Convert one entry of the weekly ``plan`` array.

    Unknown day keys are ignored; slots that are neither a string nor an
    object with a workout text are treated as absent.

    Raises:
        MalformedPlanError: If the entry is not an object or its week number
            is not a positive integer
    """
    if not isinstance(data, dict):
        raise MalformedPlanError(f"plan[{position}] must be an object, got {type(data).__name__}")

    week_number = data.get("week", position + 1)
    if isinstance(week_number, bool) or not isinstance(week_number, int) or week_number < 1:
        raise MalformedPlanError(f"plan[{position}] has invalid week number: {week_number!r}")

    raw_days = data.get("days") or {}
    if not isinstance(raw_days, dict):
        raise MalformedPlanError(f"Week {week_number}: days must be an object")

    days: dict[str, DayEntry] = {}
    for day_name in DAY_ORDER:
        raw = raw_days.get(day_name)
        try:
            if isinstance(raw, dict) and raw.get("date"):
                raw = {**raw, "date": validate_date(raw["date"])}
            entry = DayEntry.from_raw(raw)
        except (ValueError, ValidationError) as e:
            raise MalformedPlanError(f"Week {week_number} {day_name}: {e}") from e
        if entry is not None:
            days[day_name] = entry
    return Week(week=week_number, days=days)


def dict_to_dated_day(data: dict[str, Any], position: int) -> DatedDay:
    """
    Convert one entry of the ``days`` array.

    Raises:
        MalformedPlanError: If the entry has no valid date
    """
    if not isinstance(data, dict):
        raise MalformedPlanError(f"days[{position}] must be an object")
    try:
        date_str = validate_date(data.get("date"))
    except ValidationError as e:
        raise MalformedPlanError(f"days[{position}]: {e}") from e

    workout = data.get("workout")
    return DatedDay(
        date=date_str,
        workout=workout if isinstance(workout, str) else "",
        tips=coerce_tips(data.get("tips")),
        dow=data.get("dow") if data.get("dow") in DAY_ORDER else None,
        workout_type=data.get("workout_type") or data.get("workoutType"),
        calibration_tag=data.get("calibrationTag") or data.get("calibration_tag"),
    )


def dict_to_training_plan(data: dict[str, Any]) -> TrainingPlan:
    """
    Convert plan JSON to a TrainingPlan.

    Accepts the weekly schema (``plan`` array), the date-based schema
    (``days`` array) or both.  ``start_date``/``startDate``,
    ``race_date``/``raceDate`` and ``timezone`` are optional.

    Args:
        data: Decoded plan JSON

    Returns:
        TrainingPlan

    Raises:
        MalformedPlanError: If the structure cannot describe a plan
    """
    if not isinstance(data, dict):
        raise MalformedPlanError("Plan JSON must be an object")

    raw_weeks = data.get("plan") or []
    raw_days = data.get("days") or []
    if not isinstance(raw_weeks, list) or not isinstance(raw_days, list):
        raise MalformedPlanError("'plan' and 'days' must be arrays")

    weeks = tuple(dict_to_week(w, i) for i, w in enumerate(raw_weeks))
    days = tuple(dict_to_dated_day(d, i) for i, d in enumerate(raw_days))

    def _date_field(*names: str) -> str | None:
        for name in names:
            value = data.get(name)
            if value:
                try:
                    return validate_date(value)
                except ValidationError as e:
                    raise MalformedPlanError(f"{name}: {e}") from e
        return None

    timezone = data.get("timezone")
    return TrainingPlan(
        plan=weeks,
        days=days or None,
        start_date=_date_field("start_date", "startDate"),
        timezone=timezone if isinstance(timezone, str) and timezone else None,
        race_date=_date_field("race_date", "raceDate"),
    )


def day_entry_to_dict(entry: DayEntry) -> dict[str, Any]:
    data: dict[str, Any] = {"workout": entry.workout, "tips": list(entry.tips)}
    if entry.workout_type is not None:
        data["workoutType"] = entry.workout_type
    if entry.calibration_tag is not None:
        data["calibrationTag"] = entry.calibration_tag
    if entry.date is not None:
        data["date"] = entry.date
    return data


def dated_day_to_dict(day: DatedDay) -> dict[str, Any]:
    data: dict[str, Any] = {"date": day.date, "workout": day.workout, "tips": list(day.tips)}
    if day.dow is not None:
        data["dow"] = day.dow
    if day.workout_type is not None:
        data["workout_type"] = day.workout_type
    if day.calibration_tag is not None:
        data["calibrationTag"] = day.calibration_tag
    return data


def training_plan_to_dict(plan: TrainingPlan) -> dict[str, Any]:
    """
    Convert TrainingPlan to plan JSON (rich object slots).

    Optional keys are omitted when unset.
    """
    data: dict[str, Any] = {
        "plan": [
            {
                "week": week.week,
                "days": {
                    day_name: day_entry_to_dict(week.days[day_name])
                    for day_name in DAY_ORDER
                    if day_name in week.days
                },
            }
            for week in plan.plan
        ]
    }
    if plan.days:
        data["days"] = [dated_day_to_dict(d) for d in plan.days]
    if plan.start_date is not None:
        data["start_date"] = plan.start_date
    if plan.race_date is not None:
        data["race_date"] = plan.race_date
    if plan.timezone is not None:
        data["timezone"] = plan.timezone
    return data


def plan_to_json(plan: TrainingPlan) -> str:
    return json.dumps(training_plan_to_dict(plan), indent=2)


# =============================================================================
# Completions
# =============================================================================


def dict_to_completion_record(data: dict[str, Any]) -> CompletionRecord:
    """
    Convert a completion row.

    Accepts ``week_number``/``weekNumber`` and ``day_name``/``dayName``.

    Raises:
        ValidationError: If a field is missing or invalid
    """
    if not isinstance(data, dict):
        raise ValidationError("Completion row must be an object")

    week_number = data.get("week_number", data.get("weekNumber"))
    if isinstance(week_number, bool) or not isinstance(week_number, int) or week_number < 1:
        raise ValidationError(f"Invalid week_number: {week_number!r}")
    day_name = validate_day_name(data.get("day_name", data.get("dayName")))

    completed_at = data.get("completed_at")
    if completed_at is not None and not isinstance(completed_at, str):
        raise ValidationError(f"Invalid completed_at: {completed_at!r}")
    scheduled = data.get("scheduled_date")

    return CompletionRecord(
        week_number=week_number,
        day_name=day_name,
        completed_at=completed_at or None,
        scheduled_date=validate_date(scheduled) if scheduled else None,
        distance_km=_optional_float(data.get("distance_km"), "distance_km"),
        duration_minutes=_optional_float(data.get("duration_minutes"), "duration_minutes"),
        rating=validate_rating(data.get("rating")),
    )


def completion_record_to_dict(record: CompletionRecord) -> dict[str, Any]:
    return {
        "week_number": record.week_number,
        "day_name": record.day_name,
        "completed_at": record.completed_at,
        "scheduled_date": record.scheduled_date,
        "distance_km": record.distance_km,
        "duration_minutes": record.duration_minutes,
        "rating": record.rating,
    }


def completion_to_json_line(record: CompletionRecord) -> str:
    """
    Convert CompletionRecord to a single JSON line.

    Args:
        record: Completion to convert

    Returns:
        Compact JSON string (no newline)
    """
    return json.dumps(completion_record_to_dict(record), separators=(",", ":"))


def json_line_to_completion(line: str) -> CompletionRecord:
    """
    Parse a JSON line to CompletionRecord.

    Raises:
        ValidationError: If JSON or data is invalid
    """
    try:
        data = json.loads(line.strip())
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e

    return dict_to_completion_record(data)


# =============================================================================
# Engine outputs
# =============================================================================


def resolved_workout_to_dict(workout: ResolvedWorkout | None) -> dict[str, Any] | None:
    if workout is None:
        return None
    return {
        "week_number": workout.week_number,
        "day_name": workout.day_name,
        "date": workout.date,
        "activity": workout.activity,
        "tips": list(workout.tips),
        "is_completed": workout.is_completed,
        "key": workout.key,
    }


def descriptor_to_dict(descriptor: WorkoutDescriptor) -> dict[str, Any]:
    sections = descriptor.sections
    return {
        "distance": descriptor.distance,
        "duration": descriptor.duration,
        "pace": descriptor.pace,
        "sections": None if sections is None else {
            "warm_up": sections.warm_up,
            "work": sections.work,
            "cool_down": sections.cool_down,
        },
    }


def progress_to_dict(progress: TimeProgress | CountProgress) -> dict[str, Any]:
    if isinstance(progress, TimeProgress):
        return {
            "kind": "time",
            "total_days": progress.total_days,
            "elapsed_days": progress.elapsed_days,
            "remaining_days": progress.remaining_days,
            "progress_percent": progress.progress_percent,
        }
    return {
        "kind": "count",
        "completed": progress.completed,
        "total": progress.total,
        "percentage": progress.percentage,
    }


def streak_state_to_dict(state: StreakState) -> dict[str, Any]:
    return {
        "current_streak": state.current_streak,
        "longest_streak": state.longest_streak,
        "total_workouts": state.total_workouts,
        "badges": sorted(state.badges),
    }


def week_summary_to_dict(summary: WeekSummary) -> dict[str, Any]:
    return {
        "week_start": summary.week_start,
        "week_end": summary.week_end,
        "this_week": {
            "count": summary.this_week_count,
            "distance_km": summary.this_week_distance_km,
            "duration_minutes": summary.this_week_duration_minutes,
        },
        "total": {
            "count": summary.total_count,
            "distance_km": summary.total_distance_km,
            "duration_minutes": summary.total_duration_minutes,
        },
        "average_rating": summary.average_rating,
    }


def phase_outline_to_dict(outline: PhaseOutline) -> dict[str, Any]:
    return {
        "steps_enabled": outline.steps_enabled,
        "phases": list(outline.phases),
        "reason": outline.reason,
    }
