"""
Data models for run-scheduler.

All core dataclasses representing training plans, resolved calendar cells,
completions and the derived progression state.  Dates are ISO strings
(YYYY-MM-DD); calendar-date equality is string equality.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime

from .config import DAY_ORDER, ISO_DATE_FORMAT, BadgeDefinition

# Sole identity used to test completion: "{weekNumber}-{dayName}"
CompletionKey = str
Ledger = frozenset[CompletionKey]


class MalformedPlanError(ValueError):
    """Raised when a plan is structurally invalid and dates cannot be derived."""

    pass


def _validate_date(date_str: str) -> None:
    """Validate date string is ISO format YYYY-MM-DD."""
    if not isinstance(date_str, str) or not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValueError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")

    try:
        datetime.strptime(date_str, ISO_DATE_FORMAT)
    except ValueError as e:
        raise ValueError(f"Invalid date: {date_str}") from e


def _validate_day_name(day_name: str) -> None:
    if day_name not in DAY_ORDER:
        raise ValueError(f"Invalid day name: {day_name!r}. Must be one of {DAY_ORDER}")


def coerce_tips(raw: object) -> tuple[str, ...]:
    """Tips as a tuple of strings; a single string is one tip, anything else is none."""
    if isinstance(raw, str):
        return (raw,) if raw else ()
    if isinstance(raw, (list, tuple)):
        return tuple(str(t) for t in raw)
    return ()


@dataclass(frozen=True)
class DayEntry:
    """
    One weekday slot of a weekly plan.

    A plain string slot is equivalent to ``DayEntry(workout=s, tips=())``;
    see ``DayEntry.from_raw``.
    """

    workout: str
    tips: tuple[str, ...] = ()
    workout_type: str | None = None
    calibration_tag: str | None = None
    date: str | None = None  # Present only in date-anchored plans

    def __post_init__(self) -> None:
        if self.date is not None:
            _validate_date(self.date)

    @classmethod
    def from_raw(cls, raw: "str | dict | DayEntry | None") -> "DayEntry | None":
        """
        Canonicalize a raw slot (string or rich object) to a DayEntry.

        Returns None for missing slots or objects without a workout text.
        """
        if raw is None:
            return None
        if isinstance(raw, DayEntry):
            return raw
        if isinstance(raw, str):
            return cls(workout=raw)
        if not isinstance(raw, dict):
            return None

        workout = raw.get("workout")
        if not isinstance(workout, str):
            return None
        return cls(
            workout=workout,
            tips=coerce_tips(raw.get("tips")),
            workout_type=raw.get("workoutType") or raw.get("workout_type"),
            calibration_tag=raw.get("calibrationTag"),
            date=raw.get("date") or None,
        )


@dataclass(frozen=True)
class Week:
    """
    One week of a weekly plan.

    ``days`` maps weekday abbreviations (Mon..Sun) to slots; partial weeks
    are allowed, a week with none of the seven keys is not (see
    calendar.validate_plan).
    """

    week: int  # 1-based ordinal
    days: dict[str, DayEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.week < 1:
            raise ValueError("week must be positive")

    def slot(self, day_name: str) -> DayEntry | None:
        """Return the slot for a weekday, or None if absent."""
        return self.days.get(day_name)


@dataclass(frozen=True)
class DatedDay:
    """A single explicitly dated workout of a date-based plan."""

    date: str
    workout: str
    tips: tuple[str, ...] = ()
    dow: str | None = None
    workout_type: str | None = None
    calibration_tag: str | None = None

    def __post_init__(self) -> None:
        _validate_date(self.date)

    def to_day_entry(self) -> DayEntry:
        """Canonical slot view of this dated day."""
        return DayEntry(
            workout=self.workout,
            tips=self.tips,
            workout_type=self.workout_type,
            calibration_tag=self.calibration_tag,
            date=self.date,
        )


@dataclass(frozen=True)
class TrainingPlan:
    """
    A complete training plan in either schema.

    If ``days`` is present and non-empty it is authoritative for date
    mapping (date-based plan); ``plan`` keeps week-number continuity.
    """

    plan: tuple[Week, ...] = ()
    days: tuple[DatedDay, ...] | None = None
    start_date: str | None = None
    timezone: str | None = None
    race_date: str | None = None

    def __post_init__(self) -> None:
        if self.start_date is not None:
            _validate_date(self.start_date)
        if self.race_date is not None:
            _validate_date(self.race_date)

    @property
    def is_date_based(self) -> bool:
        """Capability check: an explicit days array selects the date-based path."""
        return bool(self.days)

    @property
    def length_weeks(self) -> int:
        return len(self.plan)


@dataclass(frozen=True)
class WorkoutSections:
    """Labelled segments of a workout description."""

    warm_up: str | None = None
    work: str | None = None
    cool_down: str | None = None


@dataclass(frozen=True)
class WorkoutDescriptor:
    """
    Structured fields parsed from free-text workout descriptions.

    Absent fields mean "not present in text", never zero.
    """

    distance: str | None = None
    duration: str | None = None
    pace: str | None = None
    sections: WorkoutSections | None = None


@dataclass(frozen=True)
class ResolvedWorkout:
    """The workout scheduled on one concrete calendar date."""

    week_number: int
    day_name: str
    activity: str
    tips: tuple[str, ...]
    is_completed: bool
    date: str

    @property
    def key(self) -> CompletionKey:
        return f"{self.week_number}-{self.day_name}"


@dataclass(frozen=True)
class CompletionRecord:
    """
    An externally sourced completion row.

    Only the key and whichever date field is available are used by the
    engine; the metrics feed weekly summaries.
    """

    week_number: int
    day_name: str
    completed_at: str | None = None  # ISO timestamp
    scheduled_date: str | None = None  # ISO date
    distance_km: float | None = None
    duration_minutes: float | None = None
    rating: int | None = None  # 1-10

    def __post_init__(self) -> None:
        if self.week_number < 1:
            raise ValueError("week_number must be positive")
        _validate_day_name(self.day_name)
        if self.scheduled_date is not None:
            _validate_date(self.scheduled_date)
        if self.distance_km is not None and self.distance_km < 0:
            raise ValueError("distance_km must be non-negative")
        if self.duration_minutes is not None and self.duration_minutes < 0:
            raise ValueError("duration_minutes must be non-negative")
        if self.rating is not None and not 1 <= self.rating <= 10:
            raise ValueError(f"rating must be between 1 and 10, got {self.rating}")

    @property
    def key(self) -> CompletionKey:
        return f"{self.week_number}-{self.day_name}"


@dataclass(frozen=True)
class StreakState:
    """
    Streak and badge state derived from the ledger.

    ``badges`` holds the externally earned badge ids; the engine never
    adds to it.
    """

    current_streak: int = 0
    longest_streak: int = 0
    total_workouts: int = 0
    badges: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if min(self.current_streak, self.longest_streak, self.total_workouts) < 0:
            raise ValueError("streak counters must be non-negative")


@dataclass(frozen=True)
class TimeProgress:
    """Time-based plan progress between start and race/end date."""

    total_days: int
    elapsed_days: int
    remaining_days: int
    progress_percent: int


@dataclass(frozen=True)
class CountProgress:
    """Workout-count progress, used when no usable dates are known."""

    completed: int
    total: int
    percentage: int


@dataclass(frozen=True)
class ToggleOutcome:
    """Result of a toggle: new ledger, new streaks and the newly-eligible signal."""

    ledger: Ledger
    streaks: StreakState
    newly_eligible: tuple[BadgeDefinition, ...] = ()

    @property
    def badge_unlocked(self) -> bool:
        return bool(self.newly_eligible)


@dataclass(frozen=True)
class WeekSummary:
    """
    Completion totals for the current Monday-Sunday week and overall.
    """

    week_start: str
    week_end: str
    this_week_count: int
    this_week_distance_km: float
    this_week_duration_minutes: float
    total_count: int
    total_distance_km: float
    total_duration_minutes: float
    average_rating: float  # 0.0 when no completion carries a rating


@dataclass(frozen=True)
class PhaseOutline:
    """Which training phases a plan of a given length uses."""

    steps_enabled: bool
    phases: tuple[str, ...]
    reason: str | None = None
