"""
Configuration constants for the plan scheduling and progression engine.

All adjustable parameters are centralized here for easy tuning.
Values can be overridden through engine.yaml (see engine/config_loader.py).
"""

from dataclasses import dataclass
from typing import Final, Literal

BadgeMetric = Literal["streak", "count"]


@dataclass(frozen=True)
class BadgeDefinition:
    """One row of the static badge table."""

    id: str
    name: str
    description: str
    requirement: int  # Threshold the metric must meet or exceed
    metric: BadgeMetric  # "streak" -> longest_streak, "count" -> total_workouts

    def __post_init__(self) -> None:
        if self.requirement < 1:
            raise ValueError("requirement must be positive")
        if self.metric not in ("streak", "count"):
            raise ValueError(f"Invalid badge metric: {self.metric}")

# =============================================================================
# CALENDAR
# =============================================================================

# Weeks always start on Monday, regardless of locale.
DAY_ORDER: Final[tuple[str, ...]] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

ISO_DATE_FORMAT: Final[str] = "%Y-%m-%d"

# "Today" is always resolved in an explicit zone, never system-local time.
DEFAULT_TIMEZONE: Final[str] = "Europe/Paris"

REST_WORKOUT: Final[str] = "Rest"

# =============================================================================
# PARSER / DISPLAY
# =============================================================================

PREVIEW_LENGTH: Final[int] = 30  # Calendar-cell preview length (chars)
KM_PER_MILE: Final[float] = 1.609

# =============================================================================
# BADGES AND STREAKS
# =============================================================================

BADGE_DEFINITIONS: Final[tuple[BadgeDefinition, ...]] = (
    BadgeDefinition("first_workout", "First Step", "Complete your first workout", 1, "count"),
    BadgeDefinition("week_warrior", "Week Warrior", "Complete 7 workouts", 7, "count"),
    BadgeDefinition("consistency_king", "Consistency King", "Maintain a 7-day streak", 7, "streak"),
    BadgeDefinition("dedicated_runner", "Dedicated Runner", "Complete 30 workouts", 30, "count"),
    BadgeDefinition("streak_master", "Streak Master", "Maintain a 14-day streak", 14, "streak"),
    BadgeDefinition("century_club", "Century Club", "Complete 100 workouts", 100, "count"),
    BadgeDefinition("unstoppable", "Unstoppable", "Maintain a 30-day streak", 30, "streak"),
)

STREAK_MILESTONES: Final[tuple[int, ...]] = (7, 14, 30, 50, 100)

# =============================================================================
# PROGRESS PHASES
# =============================================================================

PHASE_ORDER: Final[tuple[str, ...]] = ("aerobic_base", "threshold", "economy", "race_specific")

PHASES_MIN_PLAN_WEEKS: Final[int] = 5  # Plans of 4 weeks or less get no phases
RACE_IMMINENT_WEEKS: Final[int] = 3  # At or below: race-specific only
FULL_PHASES_WEEKS: Final[int] = 12  # All four phases
THREE_PHASES_WEEKS: Final[int] = 8  # Base, threshold, race-specific

# =============================================================================
# COACHING NOTES (fallback tips keyed by workout category)
# =============================================================================

COACHING_NOTES: Final[dict[str, tuple[str, ...]]] = {
    "rest": (
        "Complete rest is essential for adaptation - this is when your body actually gets stronger.",
        "Light stretching, foam rolling, or walking (under 20 minutes) is fine if you feel restless, "
        "but avoid any cardiovascular stress.",
        "Prioritize 8+ hours of quality sleep. Sleep is when muscle repair happens.",
        "Focus on recovery nutrition: lean proteins, colorful vegetables and omega-3 rich foods.",
        "If you feel overly fatigued or notice persistent soreness, you may need additional rest.",
    ),
    "easy": (
        "You should be able to hold a full conversation during this entire run.",
        "Keep your heart rate in Zone 2 (60-70% of max HR). If you're breathing through your mouth, slow down.",
        "Easy runs build your aerobic base: mitochondrial density and capillary development.",
        "Don't let ego dictate pace. Running easy days too hard compromises recovery.",
        "Focus on good form: upright posture, relaxed shoulders, cadence around 170-180 steps per minute.",
    ),
    "long": (
        "Start slower than you think you should. The first 10-15 minutes should feel almost too easy.",
        "Fuel before (complex carbs + protein 2-3 hours out) and during (30-60g carbs per hour after the first hour).",
        "Don't wait until you're thirsty. In hot weather, include electrolytes.",
        "Break the run into mental chunks rather than fixating on the total distance.",
        "Recovery starts immediately after: carbs and protein within 30 minutes, then prioritize sleep.",
    ),
    "tempo": (
        'Tempo pace should feel "comfortably hard" - you could speak in short phrases but wouldn\'t want to.',
        "Warm up thoroughly: 10-15 minutes easy running, then dynamic stretches and a few strides.",
        "Run at or slightly below lactate threshold to teach your body to clear lactate more efficiently.",
        "Maintain consistent effort rather than chasing a specific pace.",
        "Cool down with 10-15 minutes easy running.",
    ),
    "interval": (
        "Warm up is critical: 15-20 minutes easy, dynamic stretches, then strides. "
        "Your first interval should not be your fastest.",
        "Intervals should feel hard but controlled. If form is breaking down, back off 5-10 seconds per interval.",
        "Jog the recovery intervals - don't stand still.",
        "Form checklist: quick turnover, upright posture, powerful arm swing, landing under your body.",
        "Don't skip the cool-down. Jog 10-15 minutes easy to lower heart rate gradually.",
    ),
    "general": (
        "Focus on good running form: upright posture, relaxed shoulders, arms at 90 degrees.",
        "Listen to your body. If something hurts, back off or stop.",
        "Warm up with dynamic stretches and a few minutes of easy jogging.",
        "Stay hydrated throughout the day, not just during your run.",
        "Consistency beats intensity.",
    ),
}
