"""
Completion and progression calculations.

Derives progress percentages, streaks, badge eligibility, weekly
summaries and the training-phase outline from a plan, a completion ledger
and an explicit ``today``.  Nothing here reads the wall clock except
``resolve_today``; every other function is a pure derivation of its
arguments and is recomputed on every read.

Badge *eligibility* is computed here.  *Earning* a badge is a one-way,
persisted transition performed by the caller (see ``merge_earned_badges``
and io/plan_store.py).
"""

import math
from collections.abc import Iterable, Mapping
from datetime import datetime

from .config import (
    BADGE_DEFINITIONS,
    FULL_PHASES_WEEKS,
    PHASE_ORDER,
    PHASES_MIN_PLAN_WEEKS,
    RACE_IMMINENT_WEEKS,
    STREAK_MILESTONES,
    THREE_PHASES_WEEKS,
    BadgeDefinition,
)
from .calendar import parse_completion_key, plan_weeks
from .dates import (
    add_days,
    days_between,
    timestamp_to_local_date,
    today_in_timezone,
    try_parse_date,
    to_iso,
    week_bounds,
)
from .engine.config_loader import load_default_timezone
from .models import (
    CompletionKey,
    CompletionRecord,
    CountProgress,
    Ledger,
    PhaseOutline,
    StreakState,
    TimeProgress,
    ToggleOutcome,
    TrainingPlan,
    WeekSummary,
)
from .workout_parser import is_rest_day


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return max(0, min(100, round_half_up(100 * part / whole)))


# =============================================================================
# Ledger
# =============================================================================


def toggle_completion(ledger: Ledger, key: CompletionKey) -> Ledger:
    """
    Add ``key`` if absent, remove it if present.

    Toggling the same key twice returns the original ledger.
    """
    if key in ledger:
        return ledger - {key}
    return ledger | {key}


def ledger_from_records(records: Iterable[CompletionRecord]) -> Ledger:
    """Build a ledger from completion rows (duplicate rows collapse to one key)."""
    return frozenset(r.key for r in records)


# =============================================================================
# Progress
# =============================================================================


def resolve_today(timezone: str | None = None, now: datetime | None = None) -> str:
    """
    Today's ISO date in ``timezone``, else the configured default zone.

    This is the only place the engine reads the clock; calculators take
    ``today`` as a parameter.
    """
    if timezone is None:
        timezone = load_default_timezone()
    return today_in_timezone(timezone, now)


def time_progress(start_date: str | None, end_date: str | None, today: str) -> TimeProgress | None:
    """
    Time-based progress between a start and an end (race) date.

    Args:
        start_date: First plan day
        end_date: Race or final plan day (inclusive)
        today: Reference date

    Returns:
        TimeProgress, or None when the dates are missing, invalid or
        end precedes start
    """
    start, end, now = try_parse_date(start_date), try_parse_date(end_date), try_parse_date(today)
    if start is None or end is None or now is None or end < start:
        return None

    total = (end - start).days + 1
    elapsed = max(0, min(total, (now - start).days))
    return TimeProgress(
        total_days=total,
        elapsed_days=elapsed,
        remaining_days=total - elapsed,
        progress_percent=_percent(elapsed, total),
    )


def count_progress(plan: TrainingPlan, ledger: Ledger) -> CountProgress:
    """
    Workout-count progress over non-rest slots.

    Ledger keys pointing at rest slots or at slots not in the plan are not
    counted.  Percentage is 0 when the plan has no non-rest slots.
    """
    training_keys = {
        f"{week.week}-{day_name}"
        for week in plan_weeks(plan)
        for day_name, entry in week.days.items()
        if not is_rest_day(entry.workout)
    }
    completed = len(training_keys & ledger)
    total = len(training_keys)
    return CountProgress(completed=completed, total=total, percentage=_percent(completed, total))


def compute_progress(
    plan: TrainingPlan,
    ledger: Ledger,
    today: str,
    start_date: str | None = None,
    race_date: str | None = None,
) -> TimeProgress | CountProgress:
    """
    Time-based progress when a start and a race date are usable, else count-based.

    Explicit dates win over the plan's own ``start_date``/``race_date``.
    """
    progress = time_progress(start_date or plan.start_date, race_date or plan.race_date, today)
    if progress is not None:
        return progress
    return count_progress(plan, ledger)


# =============================================================================
# Streaks
# =============================================================================


def completion_dates_by_key(
    records: Iterable[CompletionRecord],
    timezone: str | None = None,
) -> dict[CompletionKey, str]:
    """
    Calendar date of each completion, in the plan timezone.

    ``completed_at`` is converted to a local date; rows without a usable
    timestamp fall back to ``scheduled_date``.  Later rows override earlier
    ones for the same key.
    """
    timezone = timezone or load_default_timezone()
    dates: dict[CompletionKey, str] = {}
    for record in records:
        local = timestamp_to_local_date(record.completed_at, timezone) or record.scheduled_date
        if local is not None:
            dates[record.key] = local
    return dates


def _longest_run(sorted_dates: list[str]) -> int:
    longest = run = 0
    previous = None
    for d in sorted_dates:
        run = run + 1 if previous is not None and days_between(previous, d) == 1 else 1
        longest = max(longest, run)
        previous = d
    return longest


def _current_run(dates: set[str], today: str) -> int:
    cursor = today if today in dates else add_days(today, -1)
    count = 0
    while cursor in dates:
        count += 1
        cursor = add_days(cursor, -1)
    return count


def compute_streaks(
    ledger: Ledger,
    dates_by_key: Mapping[CompletionKey, str],
    today: str,
    earned: Iterable[str] = (),
) -> StreakState:
    """
    Derive streak state from the ledger.

    The current streak counts back from today, or from yesterday when today
    has no completion yet.  The longest streak is recomputed over the whole
    history.  Ledger keys without a known date count toward
    ``total_workouts`` but not toward streaks.

    Args:
        ledger: Completed keys
        dates_by_key: Completion date per key (see completion_dates_by_key)
        today: Reference date
        earned: Externally earned badge ids, passed through unchanged

    Returns:
        StreakState with ``longest_streak >= current_streak``
    """
    dates = set()
    for key in ledger:
        d = try_parse_date(dates_by_key.get(key))
        if d is not None:
            dates.add(to_iso(d))

    current = _current_run(dates, today)
    longest = max(_longest_run(sorted(dates)), current)
    return StreakState(
        current_streak=current,
        longest_streak=longest,
        total_workouts=len(ledger),
        badges=frozenset(earned),
    )


# =============================================================================
# Badges
# =============================================================================


def _metric_value(state: StreakState, badge: BadgeDefinition) -> int:
    return state.longest_streak if badge.metric == "streak" else state.total_workouts


def eligible_badges(
    state: StreakState,
    table: Iterable[BadgeDefinition] = BADGE_DEFINITIONS,
) -> tuple[BadgeDefinition, ...]:
    """Badges whose metric meets or exceeds the requirement, in table order."""
    return tuple(b for b in table if _metric_value(state, b) >= b.requirement)


def newly_eligible_badges(
    before: StreakState,
    after: StreakState,
    earned: Iterable[str] = (),
    table: Iterable[BadgeDefinition] = BADGE_DEFINITIONS,
) -> tuple[BadgeDefinition, ...]:
    """
    Badges eligible after but not before, excluding already earned ids.
    """
    table = tuple(table)
    earned_ids = set(earned) | set(after.badges)
    was_eligible = {b.id for b in eligible_badges(before, table)}
    return tuple(
        b for b in eligible_badges(after, table)
        if b.id not in was_eligible and b.id not in earned_ids
    )


def toggle_with_badges(
    ledger: Ledger,
    key: CompletionKey,
    dates_by_key: Mapping[CompletionKey, str],
    today: str,
    earned: Iterable[str] = (),
    table: Iterable[BadgeDefinition] = BADGE_DEFINITIONS,
) -> ToggleOutcome:
    """
    Toggle a completion and report which badges became eligible.

    A newly completed key without a known date is dated ``today``.

    Returns:
        ToggleOutcome (new ledger, new streaks, newly eligible badges)
    """
    earned = frozenset(earned)
    table = tuple(table)
    before = compute_streaks(ledger, dates_by_key, today, earned)

    new_ledger = toggle_completion(ledger, key)
    dates = dict(dates_by_key)
    if key in new_ledger and key not in dates:
        dates[key] = today
    after = compute_streaks(new_ledger, dates, today, earned)

    return ToggleOutcome(
        ledger=new_ledger,
        streaks=after,
        newly_eligible=newly_eligible_badges(before, after, earned, table),
    )


def merge_earned_badges(
    earned: Mapping[str, str],
    newly: Iterable[BadgeDefinition | str],
    earned_at: str,
) -> dict[str, str]:
    """
    Record newly earned badges with their timestamp.

    Existing entries are never removed or re-dated, even if the metric
    has since regressed.
    """
    merged = dict(earned)
    for badge in newly:
        badge_id = badge if isinstance(badge, str) else badge.id
        merged.setdefault(badge_id, earned_at)
    return merged


def crossed_streak_milestones(
    previous: int,
    current: int,
    milestones: Iterable[int] = STREAK_MILESTONES,
) -> list[int]:
    """Streak milestones reached by moving from ``previous`` to ``current``."""
    return [m for m in milestones if previous < m <= current]


# =============================================================================
# Summaries
# =============================================================================


def _record_date(record: CompletionRecord, timezone: str | None) -> str | None:
    return record.scheduled_date or timestamp_to_local_date(record.completed_at, timezone)


def week_summary(
    records: Iterable[CompletionRecord],
    today: str,
    timezone: str | None = None,
) -> WeekSummary:
    """
    Totals for the Monday-Sunday week containing ``today`` and overall.

    A row belongs to the week of its scheduled date, or of its completion
    date when no scheduled date was recorded.
    """
    records = list(records)
    timezone = timezone or load_default_timezone()
    week_start, week_end = week_bounds(today)
    this_week = []
    for r in records:
        d = _record_date(r, timezone)
        if d is not None and week_start <= d <= week_end:
            this_week.append(r)
    ratings = [r.rating for r in records if r.rating is not None]

    return WeekSummary(
        week_start=week_start,
        week_end=week_end,
        this_week_count=len(this_week),
        this_week_distance_km=round(sum(r.distance_km or 0.0 for r in this_week), 2),
        this_week_duration_minutes=round(sum(r.duration_minutes or 0.0 for r in this_week), 2),
        total_count=len(records),
        total_distance_km=round(sum(r.distance_km or 0.0 for r in records), 2),
        total_duration_minutes=round(sum(r.duration_minutes or 0.0 for r in records), 2),
        average_rating=round(sum(ratings) / len(ratings), 1) if ratings else 0.0,
    )


def weekly_volume(records: Iterable[CompletionRecord]) -> dict[int, tuple[float, float]]:
    """
    Distance (km) and duration (minutes) per plan week, ordered by week.
    """
    totals: dict[int, tuple[float, float]] = {}
    for r in records:
        distance, duration = totals.get(r.week_number, (0.0, 0.0))
        totals[r.week_number] = (
            distance + (r.distance_km or 0.0),
            duration + (r.duration_minutes or 0.0),
        )
    return {
        week: (round(distance, 2), round(duration, 2))
        for week, (distance, duration) in sorted(totals.items())
    }


def completed_keys_by_week(ledger: Ledger) -> dict[int, list[str]]:
    """Completed day names grouped by week number (malformed keys skipped)."""
    grouped: dict[int, list[str]] = {}
    for key in sorted(ledger):
        parsed = parse_completion_key(key)
        if parsed is None:
            continue
        week, day_name = parsed
        grouped.setdefault(week, []).append(day_name)
    return dict(sorted(grouped.items()))


# =============================================================================
# Training phases
# =============================================================================


def weeks_to_race(race_date: str | None, today: str) -> int | None:
    """Whole weeks until the race, rounded up; None without a usable date."""
    race = try_parse_date(race_date)
    now = try_parse_date(today)
    if race is None or now is None:
        return None
    return math.ceil((race - now).days / 7)


def phase_outline(duration_weeks: int, weeks_until_race: int | None = None) -> PhaseOutline:
    """
    Decide which training phases a plan uses.

    Args:
        duration_weeks: Plan length in weeks
        weeks_until_race: Weeks left before the race, if known

    Returns:
        PhaseOutline; disabled plans carry a ``reason``
    """
    if duration_weeks < PHASES_MIN_PLAN_WEEKS:
        return PhaseOutline(steps_enabled=False, phases=(), reason="plan_too_short")

    if weeks_until_race is not None and weeks_until_race <= RACE_IMMINENT_WEEKS:
        return PhaseOutline(steps_enabled=False, phases=("race_specific",), reason="race_imminent")

    if duration_weeks >= FULL_PHASES_WEEKS:
        return PhaseOutline(steps_enabled=True, phases=PHASE_ORDER)
    if duration_weeks >= THREE_PHASES_WEEKS:
        return PhaseOutline(steps_enabled=True, phases=("aerobic_base", "threshold", "race_specific"))
    return PhaseOutline(steps_enabled=True, phases=("aerobic_base", "race_specific"))


def week_focus(duration_weeks: int) -> dict[int, str]:
    """
    Focus phase for each week of a plan.

    Short plans split evenly between base and race-specific work; long
    plans use fixed base/threshold/economy blocks; mid-length plans use
    proportional blocks.
    """
    if duration_weeks <= 0:
        return {}

    if duration_weeks < PHASES_MIN_PLAN_WEEKS:
        blocks = [("race_specific", duration_weeks)]
    elif duration_weeks < THREE_PHASES_WEEKS:
        base = math.ceil(duration_weeks * 0.5)
        blocks = [("aerobic_base", base)]
    elif duration_weeks >= FULL_PHASES_WEEKS:
        blocks = [("aerobic_base", 4), ("threshold", 3), ("economy", 2)]
    else:
        blocks = [
            ("aerobic_base", math.ceil(duration_weeks * 0.35)),
            ("threshold", math.ceil(duration_weeks * 0.25)),
        ]

    focus: dict[int, str] = {}
    week = 1
    for phase, length in blocks:
        for _ in range(length):
            if week > duration_weeks:
                break
            focus[week] = phase
            week += 1
    while week <= duration_weeks:
        focus[week] = "race_specific"
        week += 1
    return focus


def current_phase(outline: PhaseOutline, week_number: int, duration_weeks: int) -> str | None:
    """
    Focus phase of ``week_number``.

    Returns None when phases are disabled for a too-short plan; an
    imminent race always maps to race_specific.
    """
    if not outline.steps_enabled:
        return outline.phases[0] if outline.phases else None
    if week_number < 1:
        return outline.phases[0]
    return week_focus(duration_weeks).get(min(week_number, duration_weeks), outline.phases[-1])
