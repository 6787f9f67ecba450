"""
Plan calendar resolution for run-scheduler.

Maps a training plan plus an anchor date to concrete calendar dates and
back.  Two plan schemas are supported permanently:

- date-based plans carry an explicit ``days`` list and are looked up by date;
- weekly-offset (legacy) plans are pegged to an anchor date, week 1 being
  the Monday-start week that contains the anchor.

The schema is dispatched once per call on ``TrainingPlan.is_date_based``.
Both paths produce the same CompletionKey for the same logical workout.
Out-of-range or missing data is never an error: it resolves to None
("nothing scheduled"), which the caller renders as an empty cell.
"""

import calendar as _calendar
import re
from dataclasses import replace

from .config import DAY_ORDER, REST_WORKOUT
from .dates import (
    add_days,
    day_name_of,
    days_between,
    monday_of,
    parse_date,
    to_iso,
    try_parse_date,
)
from .models import (
    CompletionKey,
    DatedDay,
    DayEntry,
    Ledger,
    MalformedPlanError,
    ResolvedWorkout,
    TrainingPlan,
    Week,
)
from .workout_parser import coaching_notes

_KEY_RE = re.compile(r"^(\d+)-(Mon|Tue|Wed|Thu|Fri|Sat|Sun)$")


# =============================================================================
# Completion keys
# =============================================================================


def completion_key(week_number: int, day_name: str) -> CompletionKey:
    """Canonical completion identity ``"{weekNumber}-{dayName}"``."""
    return f"{week_number}-{day_name}"


def parse_completion_key(key: str) -> tuple[int, str] | None:
    """Split a completion key into (week_number, day_name); None if malformed."""
    match = _KEY_RE.match(key) if isinstance(key, str) else None
    if match is None:
        return None
    return int(match.group(1)), match.group(2)


# =============================================================================
# Internal helpers
# =============================================================================


def _normalize_date(date_str: str | None) -> str | None:
    d = try_parse_date(date_str)
    return to_iso(d) if d is not None else None


def _resolved(
    week_number: int,
    day_name: str,
    entry: DayEntry,
    date_str: str,
    ledger: Ledger,
) -> ResolvedWorkout:
    return ResolvedWorkout(
        week_number=week_number,
        day_name=day_name,
        activity=entry.workout,
        tips=entry.tips or coaching_notes(entry.workout),
        is_completed=completion_key(week_number, day_name) in ledger,
        date=date_str,
    )


def _effective_anchor(plan: TrainingPlan, anchor: str | None) -> str | None:
    return _normalize_date(anchor) or plan.start_date


def _first_dated_monday(plan: TrainingPlan) -> str | None:
    dates = [d.date for d in plan.days or ()]
    return monday_of(min(dates)) if dates else None


def _positional_week_index(plan: TrainingPlan, date_str: str) -> int | None:
    """Monday-offset week index of ``date_str`` from the first dated day."""
    first_monday = _first_dated_monday(plan)
    if first_monday is None:
        return None
    return days_between(first_monday, monday_of(date_str)) // 7


def _week_number_for_dated(plan: TrainingPlan, date_str: str, day_name: str) -> int | None:
    """
    Locate the weekly slot carrying ``date_str``; fall back to position.

    Returns None when the positional fallback lands outside a non-empty
    weekly array.
    """
    for week in plan.plan:
        slot = week.slot(day_name)
        if slot is not None and slot.date == date_str:
            return week.week

    index = _positional_week_index(plan, date_str)
    if index is None or index < 0:
        return None
    if plan.plan:
        if index >= len(plan.plan):
            return None
        return plan.plan[index].week
    return index + 1


def _weekly_index(anchor: str, date_str: str) -> int:
    return days_between(monday_of(anchor), monday_of(date_str)) // 7


# =============================================================================
# Date -> workout
# =============================================================================


def _resolve_dated(plan: TrainingPlan, date_str: str, ledger: Ledger) -> ResolvedWorkout | None:
    dated = next((d for d in plan.days or () if d.date == date_str), None)
    if dated is None:
        return None

    day_name = day_name_of(date_str)
    week_number = _week_number_for_dated(plan, date_str, day_name)
    if week_number is None:
        return None
    return _resolved(week_number, day_name, dated.to_day_entry(), date_str, ledger)


def _resolve_weekly(
    plan: TrainingPlan,
    anchor: str | None,
    date_str: str,
    ledger: Ledger,
) -> ResolvedWorkout | None:
    if anchor is None or date_str < anchor:
        return None

    index = _weekly_index(anchor, date_str)
    if index < 0 or index >= len(plan.plan):
        return None

    week = plan.plan[index]
    day_name = day_name_of(date_str)
    entry = week.slot(day_name)
    if entry is None:
        return None
    return _resolved(week.week, day_name, entry, date_str, ledger)


def resolve_for_date(
    plan: TrainingPlan,
    anchor: str | None,
    date: str,
    ledger: Ledger = frozenset(),
) -> ResolvedWorkout | None:
    """
    Resolve the workout scheduled on a calendar date.

    Args:
        plan: Training plan (either schema)
        anchor: Plan start date for weekly plans (default: plan.start_date);
            ignored by date-based plans
        date: ISO date to resolve
        ledger: Completed keys, used for ``is_completed``

    Returns:
        ResolvedWorkout, or None when nothing is scheduled (including dates
        before the plan's start and past its last week)
    """
    date_str = _normalize_date(date)
    if date_str is None:
        return None

    if plan.is_date_based:
        return _resolve_dated(plan, date_str, ledger)
    return _resolve_weekly(plan, _effective_anchor(plan, anchor), date_str, ledger)


# =============================================================================
# (week, day) -> workout / date
# =============================================================================


def plan_weeks(plan: TrainingPlan) -> tuple[Week, ...]:
    """Weekly view of a plan; date-based plans without weeks are regrouped."""
    if plan.plan:
        return plan.plan
    if plan.days:
        return days_to_weeks(plan.days)
    return ()


def resolve_for_week_day(plan: TrainingPlan, week_number: int, day_name: str) -> DayEntry | None:
    """Return the canonical slot for (week_number, day_name), or None."""
    if day_name not in DAY_ORDER:
        return None
    week = next((w for w in plan_weeks(plan) if w.week == week_number), None)
    return week.slot(day_name) if week is not None else None


def workout_date(
    plan: TrainingPlan,
    anchor: str | None,
    week_number: int,
    day_name: str,
) -> str | None:
    """
    Calendar date of (week_number, day_name): the inverse of resolve_for_date.

    Returns None for unknown weeks or days, and for weekly-plan slots that
    fall before the anchor.
    """
    if day_name not in DAY_ORDER:
        return None

    if plan.is_date_based:
        listed = {d.date for d in plan.days or ()}
        entry = resolve_for_week_day(plan, week_number, day_name)
        if entry is not None and entry.date in listed:
            return entry.date
        first_monday = _first_dated_monday(plan)
        if first_monday is None:
            return None
        weeks = [w.week for w in plan.plan]
        if weeks:
            if week_number not in weeks:
                return None
            index = weeks.index(week_number)
        else:
            index = week_number - 1
        candidate = add_days(first_monday, index * 7 + DAY_ORDER.index(day_name))
        return candidate if candidate in listed else None

    anchor = _effective_anchor(plan, anchor)
    if anchor is None:
        return None
    index = next((i for i, w in enumerate(plan.plan) if w.week == week_number), None)
    if index is None:
        return None
    candidate = add_days(monday_of(anchor), index * 7 + DAY_ORDER.index(day_name))
    return candidate if candidate >= anchor else None


def today_position(plan: TrainingPlan, anchor: str | None, today: str) -> tuple[int, str]:
    """
    Return (week_number, day_name) for ``today``.

    Weeks before the start clamp to week 1; the week number is not bounded
    by the plan length so callers can tell the plan has finished.
    """
    day_name = day_name_of(today)
    if plan.is_date_based:
        resolved = _resolve_dated(plan, today, frozenset())
        if resolved is not None:
            return resolved.week_number, day_name
        start = _first_dated_monday(plan)
    else:
        start = _effective_anchor(plan, anchor)
    if start is None:
        return 1, day_name
    return max(0, _weekly_index(start, today)) + 1, day_name


def is_before_start(anchor: str | None, date: str) -> bool:
    """
    True when ``date`` is strictly before the anchor.

    The engine resolves such dates to None; a week view may choose to show
    them as "Rest" instead.
    """
    anchor_str, date_str = _normalize_date(anchor), _normalize_date(date)
    if anchor_str is None or date_str is None:
        return False
    return date_str < anchor_str


# =============================================================================
# Views
# =============================================================================


def week_view(
    plan: TrainingPlan,
    anchor: str | None,
    week_start: str,
    ledger: Ledger = frozenset(),
) -> list[tuple[str, ResolvedWorkout | None]]:
    """
    Seven (date, workout) cells for the Monday-start week containing ``week_start``.
    """
    monday = monday_of(week_start)
    dates = [add_days(monday, i) for i in range(7)]
    return [(d, resolve_for_date(plan, anchor, d, ledger)) for d in dates]


def month_grid(
    plan: TrainingPlan,
    anchor: str | None,
    year: int,
    month: int,
    ledger: Ledger = frozenset(),
) -> list[list[tuple[str, ResolvedWorkout | None] | None]]:
    """
    Monday-start rows covering one month.

    Cells outside the month are None (padding); each in-month cell is a
    (date, workout-or-None) pair.  Navigating between months only changes
    ``year``/``month``; the anchor is passed through untouched.
    """
    cal = _calendar.Calendar(firstweekday=0)
    rows: list[list[tuple[str, ResolvedWorkout | None] | None]] = []
    for week in cal.monthdatescalendar(year, month):
        row: list[tuple[str, ResolvedWorkout | None] | None] = []
        for d in week:
            if d.month != month:
                row.append(None)
                continue
            iso = to_iso(d)
            row.append((iso, resolve_for_date(plan, anchor, iso, ledger)))
        rows.append(row)
    return rows


# =============================================================================
# Schema conversion
# =============================================================================


def days_to_weeks(days: tuple[DatedDay, ...] | list[DatedDay]) -> tuple[Week, ...]:
    """
    Group dated days into Monday-start weeks numbered from 1.

    Every slot from the first Monday to the last Sunday is filled; dates
    with no entry become Rest slots.  Each slot carries its date.
    """
    if not days:
        return ()

    by_date: dict[str, DatedDay] = {}
    for d in sorted(days, key=lambda d: d.date):
        by_date.setdefault(d.date, d)

    first_monday = monday_of(min(by_date))
    last_monday = monday_of(max(by_date))
    n_weeks = days_between(first_monday, last_monday) // 7 + 1

    weeks: list[Week] = []
    for w in range(n_weeks):
        slots: dict[str, DayEntry] = {}
        for i, day_name in enumerate(DAY_ORDER):
            date_str = add_days(first_monday, w * 7 + i)
            dated = by_date.get(date_str)
            if dated is not None and dated.workout.strip():
                slots[day_name] = dated.to_day_entry()
            else:
                slots[day_name] = DayEntry(workout=REST_WORKOUT, date=date_str)
        weeks.append(Week(week=w + 1, days=slots))
    return tuple(weeks)


def weeks_to_days(plan: TrainingPlan, start_date: str) -> tuple[DatedDay, ...]:
    """
    Expand a weekly plan into dated days from ``start_date``.

    Weeks are Monday-aligned like resolve_for_date, so converted plans
    keep their completion keys.  Slots before the start date are skipped;
    missing slots become Rest days.

    Raises:
        MalformedPlanError: If start_date is not a valid ISO date
    """
    start = _normalize_date(start_date)
    if start is None:
        raise MalformedPlanError(f"Invalid start_date: {start_date!r}")

    first_monday = monday_of(start)
    days: list[DatedDay] = []
    for index, week in enumerate(plan.plan):
        for i, day_name in enumerate(DAY_ORDER):
            date_str = add_days(first_monday, index * 7 + i)
            if date_str < start:
                continue
            entry = week.slot(day_name)
            if entry is None or not entry.workout.strip():
                days.append(DatedDay(date=date_str, workout=REST_WORKOUT, dow=day_name, workout_type="REST"))
                continue
            days.append(
                DatedDay(
                    date=date_str,
                    workout=entry.workout,
                    tips=entry.tips,
                    dow=day_name,
                    workout_type=entry.workout_type or _infer_workout_type(entry.workout),
                    calibration_tag=entry.calibration_tag,
                )
            )
    return tuple(days)


def _infer_workout_type(workout: str) -> str:
    lowered = workout.lower()
    if "race" in lowered:
        return "RACE"
    if lowered.strip() == "rest" or "rest day" in lowered:
        return "REST"
    return "TRAIN"


def migrate_to_date_based(plan: TrainingPlan, start_date: str | None = None) -> TrainingPlan:
    """
    Convert a weekly plan to the date-based schema.

    The weekly array is kept with each slot's date filled in, so week
    numbers and completion keys are unchanged.  Date-based plans are
    returned as-is.

    Raises:
        MalformedPlanError: If no start date is available
    """
    if plan.is_date_based:
        return plan
    start = start_date or plan.start_date
    if start is None:
        raise MalformedPlanError("A start date is required to migrate a weekly plan")

    days = weeks_to_days(plan, start)
    dates = {d.date for d in days}
    first_monday = monday_of(start)
    weeks = []
    for index, week in enumerate(plan.plan):
        slots = {}
        for i, day_name in enumerate(DAY_ORDER):
            entry = week.slot(day_name)
            date_str = add_days(first_monday, index * 7 + i)
            if entry is not None:
                slots[day_name] = replace(entry, date=date_str if date_str in dates else None)
        weeks.append(Week(week=week.week, days=slots))

    return replace(plan, plan=tuple(weeks), days=days, start_date=start)


# =============================================================================
# Validation
# =============================================================================


def validate_plan(plan: TrainingPlan) -> None:
    """
    Check that dates can be derived from the plan.

    Raises:
        MalformedPlanError: If the plan has no weeks and no days, a week has
            none of the seven day keys, or week numbers are duplicated or
            not increasing
    """
    if not plan.plan and not plan.days:
        raise MalformedPlanError("Plan has no weeks and no dated days")

    previous = 0
    for index, week in enumerate(plan.plan):
        if not any(day_name in week.days for day_name in DAY_ORDER):
            raise MalformedPlanError(
                f"Week {week.week} (position {index + 1}) has none of the day keys {DAY_ORDER}"
            )
        if week.week <= previous:
            raise MalformedPlanError(
                f"Week numbers must be unique and increasing; got {week.week} after {previous}"
            )
        previous = week.week


def dated_day_issues(days: tuple[DatedDay, ...] | list[DatedDay]) -> list[str]:
    """
    Report integrity problems in a days array without raising.

    Returns:
        List of human-readable issues (empty when valid)
    """
    issues: list[str] = []
    if not days:
        return ["days[] cannot be empty"]

    seen: set[str] = set()
    for index, day in enumerate(days):
        if day.date in seen:
            issues.append(f"Duplicate date found: {day.date}")
        seen.add(day.date)
        if not day.workout.strip():
            issues.append(f"Day at index {index} ({day.date}) has no workout assigned")
        if day.dow is not None and day.dow != day_name_of(day.date):
            issues.append(f"Day at index {index} ({day.date}) is labelled {day.dow}, expected {day_name_of(day.date)}")

    ordered = [d.date for d in days]
    if ordered != sorted(ordered):
        issues.append("days[] must be in chronological order")
    return issues


def sanitize_days(days: tuple[DatedDay, ...] | list[DatedDay]) -> tuple[DatedDay, ...]:
    """Drop duplicate dates (first occurrence wins) and sort chronologically."""
    seen: set[str] = set()
    unique = []
    for day in days:
        if day.date in seen:
            continue
        seen.add(day.date)
        unique.append(day)
    return tuple(sorted(unique, key=lambda d: parse_date(d.date)))
