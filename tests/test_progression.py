"""
Tests for completion and progression calculations.

Progress percentages, streaks, badge eligibility, weekly summaries and
training phases.  Values are hand-computed.
"""

from datetime import datetime, timezone

import pytest

from run_scheduler.core.calendar import completion_key
from run_scheduler.core.config import BADGE_DEFINITIONS, DAY_ORDER
from run_scheduler.core.dates import add_days
from run_scheduler.core.models import (
    CompletionRecord,
    CountProgress,
    DayEntry,
    PhaseOutline,
    StreakState,
    TimeProgress,
    TrainingPlan,
    Week,
)
from run_scheduler.core.progression import (
    completed_keys_by_week,
    completion_dates_by_key,
    compute_progress,
    compute_streaks,
    count_progress,
    crossed_streak_milestones,
    current_phase,
    eligible_badges,
    ledger_from_records,
    merge_earned_badges,
    newly_eligible_badges,
    phase_outline,
    resolve_today,
    round_half_up,
    time_progress,
    toggle_completion,
    toggle_with_badges,
    week_focus,
    week_summary,
    weekly_volume,
    weeks_to_race,
)

TODAY = "2024-03-20"

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _key(n: int) -> str:
    """Distinct, well-formed completion key for the n-th workout (0-based)."""
    return completion_key(n // 7 + 1, DAY_ORDER[n % 7])


def _history(days_ago: list[int], today: str = TODAY) -> tuple[frozenset[str], dict[str, str]]:
    """Ledger and completion dates with one workout on each given day offset."""
    dates = {_key(i): add_days(today, -offset) for i, offset in enumerate(days_ago)}
    return frozenset(dates), dates


def _plan() -> TrainingPlan:
    week = Week(
        week=1,
        days={
            "Mon": DayEntry(workout="Rest"),
            "Tue": DayEntry(workout="Easy 5km"),
            "Wed": DayEntry(workout="Tempo 6km"),
            "Thu": DayEntry(workout="Rest day"),
            "Sat": DayEntry(workout="Restart with easy strides"),
        },
    )
    return TrainingPlan(plan=(week,))


def _record(week: int, day: str, **kwargs) -> CompletionRecord:
    return CompletionRecord(week_number=week, day_name=day, **kwargs)


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class TestLedger:
    """Toggling is its own inverse."""

    @pytest.mark.parametrize("key", ["1-Mon", "2-Wed"])
    def test_toggle_twice_restores(self, key):
        ledger = frozenset({"1-Mon", "1-Tue"})
        assert toggle_completion(toggle_completion(ledger, key), key) == ledger

    def test_toggle_adds_and_removes(self):
        assert toggle_completion(frozenset(), "1-Mon") == {"1-Mon"}
        assert toggle_completion(frozenset({"1-Mon"}), "1-Mon") == frozenset()

    def test_ledger_from_records_collapses_duplicates(self):
        records = [_record(1, "Mon"), _record(1, "Mon"), _record(2, "Sun")]
        assert ledger_from_records(records) == {"1-Mon", "2-Sun"}

    def test_completed_keys_by_week(self):
        grouped = completed_keys_by_week(frozenset({"2-Sun", "1-Tue", "bogus", "1-Mon"}))
        assert grouped == {1: ["Mon", "Tue"], 2: ["Sun"]}


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class TestTimeProgress:
    """Time-based progress between start and race dates."""

    def test_midway(self):
        p = time_progress("2024-01-01", "2024-01-10", "2024-01-06")
        assert p == TimeProgress(total_days=10, elapsed_days=5, remaining_days=5, progress_percent=50)

    def test_first_day_is_zero(self):
        assert time_progress("2024-01-01", "2024-01-10", "2024-01-01").progress_percent == 0

    def test_before_start_and_after_end(self):
        before = time_progress("2024-01-01", "2024-01-10", "2023-12-01")
        after = time_progress("2024-01-01", "2024-01-10", "2024-02-01")
        assert (before.elapsed_days, before.progress_percent) == (0, 0)
        assert (after.elapsed_days, after.remaining_days, after.progress_percent) == (10, 0, 100)

    def test_half_rounds_up(self):
        # 1 of 8 days = 12.5%
        assert time_progress("2024-01-01", "2024-01-08", "2024-01-02").progress_percent == 13
        assert round_half_up(2.5) == 3

    @pytest.mark.parametrize("start, end", [
        (None, "2024-01-10"),
        ("2024-01-10", None),
        ("2024-13-01", "2024-12-01"),
        ("2024-01-10", "2024-01-01"),
    ])
    def test_unusable_dates(self, start, end):
        assert time_progress(start, end, "2024-01-05") is None

    def test_bounds_hold_for_every_day(self):
        for offset in range(-20, 60):
            p = time_progress("2024-01-01", "2024-01-31", add_days("2024-01-01", offset))
            assert 0 <= p.progress_percent <= 100
            assert 0 <= p.elapsed_days <= p.total_days


class TestCountProgress:
    """Count-based fallback over non-rest slots."""

    def test_rest_slots_excluded(self):
        ledger = frozenset({"1-Mon", "1-Tue", "9-Fri"})
        p = count_progress(_plan(), ledger)
        # Tue, Wed, Sat are training slots; Mon is rest, 9-Fri not in the plan
        assert p == CountProgress(completed=1, total=3, percentage=33)

    def test_empty_plan_is_zero(self):
        assert count_progress(TrainingPlan(), frozenset({"1-Mon"})) == CountProgress(0, 0, 0)

    def test_compute_progress_prefers_dates(self):
        plan = TrainingPlan(plan=_plan().plan, start_date="2024-01-01", race_date="2024-01-10")
        assert isinstance(compute_progress(plan, frozenset(), "2024-01-06"), TimeProgress)

    def test_compute_progress_explicit_dates_win(self):
        p = compute_progress(_plan(), frozenset(), "2024-01-06", "2024-01-01", "2024-01-10")
        assert p.progress_percent == 50

    def test_compute_progress_falls_back_to_count(self):
        p = compute_progress(_plan(), frozenset({"1-Wed"}), "2024-01-06")
        assert isinstance(p, CountProgress)
        assert p.completed == 1


class TestResolveToday:
    """Today is always resolved in an explicit zone."""

    NOW = datetime(2024, 1, 1, 23, 30, tzinfo=timezone.utc)

    def test_explicit_zone(self):
        assert resolve_today("Europe/Paris", self.NOW) == "2024-01-02"
        assert resolve_today("America/New_York", self.NOW) == "2024-01-01"

    def test_default_zone(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert resolve_today(None, self.NOW) == "2024-01-02"

    def test_unknown_zone_falls_back(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert resolve_today("Mars/Olympus", self.NOW) == "2024-01-02"


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------


class TestStreaks:
    """Current and longest streaks from completion dates."""

    def test_seven_day_streak_with_earlier_gap(self):
        ledger, dates = _history([0, 1, 2, 3, 4, 5, 6, 8, 9])
        state = compute_streaks(ledger, dates, TODAY)
        assert state.current_streak == 7
        assert state.longest_streak >= 7
        assert state.total_workouts == 9

    def test_counts_from_yesterday_when_today_empty(self):
        ledger, dates = _history([1, 2])
        assert compute_streaks(ledger, dates, TODAY).current_streak == 2

    def test_gap_resets_current(self):
        ledger, dates = _history([2, 3, 4, 5])
        state = compute_streaks(ledger, dates, TODAY)
        assert state.current_streak == 0
        assert state.longest_streak == 4

    def test_longest_recomputed_over_history(self):
        ledger, dates = _history([0, 10, 11, 12, 13, 14, 20])
        state = compute_streaks(ledger, dates, TODAY)
        assert (state.current_streak, state.longest_streak) == (1, 5)

    def test_several_workouts_same_day_count_once(self):
        dates = {"1-Mon": TODAY, "1-Tue": TODAY}
        state = compute_streaks(frozenset(dates), dates, TODAY)
        assert (state.current_streak, state.total_workouts) == (1, 2)

    def test_undated_keys_count_toward_total_only(self):
        state = compute_streaks(frozenset({"1-Mon", "1-Tue"}), {}, TODAY)
        assert state == StreakState(0, 0, 2, frozenset())

    def test_keys_outside_ledger_ignored(self):
        _, dates = _history([0, 1, 2])
        state = compute_streaks(frozenset({_key(0)}), dates, TODAY)
        assert state.current_streak == 1

    @pytest.mark.parametrize("days_ago", [
        [],
        [0],
        [3, 4, 5, 6, 7, 8],
        [0, 1, 5, 6, 7],
        [1, 2, 3, 30, 31, 32, 33],
    ])
    def test_longest_at_least_current(self, days_ago):
        ledger, dates = _history(days_ago)
        state = compute_streaks(ledger, dates, TODAY)
        assert state.longest_streak >= state.current_streak

    def test_earned_passed_through(self):
        state = compute_streaks(frozenset(), {}, TODAY, earned={"first_workout"})
        assert state.badges == {"first_workout"}


class TestCompletionDates:
    """Completion dates in the plan timezone."""

    def test_timestamp_converted_to_plan_zone(self):
        records = [_record(1, "Mon", completed_at="2024-01-01T23:30:00Z")]
        assert completion_dates_by_key(records, "Europe/Paris") == {"1-Mon": "2024-01-02"}
        assert completion_dates_by_key(records, "UTC") == {"1-Mon": "2024-01-01"}

    def test_falls_back_to_scheduled_date(self):
        records = [
            _record(1, "Mon", scheduled_date="2024-01-01"),
            _record(1, "Tue", completed_at="not a time", scheduled_date="2024-01-02"),
            _record(1, "Wed"),
        ]
        assert completion_dates_by_key(records, "UTC") == {"1-Mon": "2024-01-01", "1-Tue": "2024-01-02"}

    def test_configured_default_zone_matches_today(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        user_dir = tmp_path / ".run-scheduler"
        user_dir.mkdir()
        (user_dir / "engine.yaml").write_text("calendar:\n  default_timezone: America/Los_Angeles\n")
        now = datetime(2024, 1, 2, 5, 0, tzinfo=timezone.utc)
        records = [_record(1, "Mon", completed_at="2024-01-02T05:00:00Z")]

        today = resolve_today(None, now)
        dates = completion_dates_by_key(records)
        assert today == "2024-01-01"
        assert dates == {"1-Mon": "2024-01-01"}
        assert compute_streaks(frozenset(dates), dates, today).current_streak == 1
        assert week_summary(records, today).this_week_count == 1


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


def _ids(badges) -> list[str]:
    return [b.id for b in badges]


class TestBadges:
    """Eligibility, newly-eligible signal and one-way earning."""

    def test_count_badges_use_total(self):
        state = StreakState(current_streak=0, longest_streak=0, total_workouts=30)
        assert _ids(eligible_badges(state)) == ["first_workout", "week_warrior", "dedicated_runner"]

    def test_streak_badges_use_longest(self):
        state = StreakState(current_streak=0, longest_streak=14, total_workouts=14)
        assert "streak_master" in _ids(eligible_badges(state))
        assert "consistency_king" in _ids(eligible_badges(state))
        assert "unstoppable" not in _ids(eligible_badges(state))

    def test_thirtieth_workout_fires_once(self):
        ledger = frozenset(_key(i) for i in range(29))
        earned: set[str] = {"first_workout", "week_warrior"}

        outcome = toggle_with_badges(ledger, _key(29), {}, TODAY, earned)
        assert outcome.streaks.total_workouts == 30
        assert outcome.badge_unlocked
        assert _ids(outcome.newly_eligible) == ["dedicated_runner"]

        earned |= set(_ids(outcome.newly_eligible))
        again = toggle_with_badges(outcome.ledger, _key(30), {}, TODAY, earned)
        assert not again.badge_unlocked

        # Even without recording the earn, staying above the threshold does not re-fire
        quiet = toggle_with_badges(outcome.ledger, _key(30), {}, TODAY, {"first_workout", "week_warrior"})
        assert not quiet.badge_unlocked

    def test_toggle_dates_new_completion_today(self):
        outcome = toggle_with_badges(frozenset(), "1-Mon", {}, TODAY)
        assert outcome.streaks.current_streak == 1
        assert _ids(outcome.newly_eligible) == ["first_workout"]

    def test_untoggle_never_fires(self):
        outcome = toggle_with_badges(frozenset({"1-Mon"}), "1-Mon", {}, TODAY)
        assert outcome.ledger == frozenset()
        assert outcome.newly_eligible == ()

    def test_newly_eligible_excludes_earned(self):
        before = StreakState(total_workouts=6)
        after = StreakState(total_workouts=7, badges=frozenset({"week_warrior"}))
        assert newly_eligible_badges(before, after) == ()
        assert _ids(newly_eligible_badges(before, StreakState(total_workouts=7))) == ["week_warrior"]

    def test_custom_table(self):
        table = BADGE_DEFINITIONS[:1]
        assert _ids(eligible_badges(StreakState(total_workouts=100), table)) == ["first_workout"]

    def test_merge_is_one_way(self):
        earned = {"first_workout": "2024-01-01T08:00:00Z"}
        merged = merge_earned_badges(earned, [BADGE_DEFINITIONS[0], BADGE_DEFINITIONS[1]], "2024-02-01T08:00:00Z")
        assert merged == {
            "first_workout": "2024-01-01T08:00:00Z",
            "week_warrior": "2024-02-01T08:00:00Z",
        }
        assert merge_earned_badges(merged, [], "2024-03-01") == merged

    def test_merge_accepts_ids(self):
        assert merge_earned_badges({}, ["unstoppable"], "2024-01-01") == {"unstoppable": "2024-01-01"}

    @pytest.mark.parametrize("previous, current, expected", [
        (6, 7, [7]),
        (13, 30, [14, 30]),
        (7, 7, []),
        (10, 2, []),
        (99, 150, [100]),
    ])
    def test_streak_milestones(self, previous, current, expected):
        assert crossed_streak_milestones(previous, current) == expected


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


class TestSummaries:
    """Weekly and overall completion totals."""

    def test_week_summary(self):
        records = [
            _record(2, "Mon", scheduled_date="2024-01-08", distance_km=5.0, duration_minutes=30, rating=8),
            _record(2, "Sun", completed_at="2024-01-14T10:00:00Z", distance_km=10.0, duration_minutes=60, rating=6),
            _record(1, "Fri", scheduled_date="2024-01-05", distance_km=3.0),
            _record(1, "Sun", scheduled_date="2024-01-07", completed_at="2024-01-08T07:00:00Z", distance_km=8.0),
        ]
        s = week_summary(records, "2024-01-10", "UTC")
        assert (s.week_start, s.week_end) == ("2024-01-08", "2024-01-14")
        assert s.this_week_count == 2
        assert s.this_week_distance_km == 15.0
        assert s.this_week_duration_minutes == 90.0
        assert s.total_count == 4
        assert s.total_distance_km == 26.0
        assert s.average_rating == 7.0

    def test_week_summary_empty(self):
        s = week_summary([], "2024-01-10")
        assert (s.this_week_count, s.total_count, s.average_rating) == (0, 0, 0.0)

    def test_weekly_volume(self):
        records = [
            _record(2, "Mon", distance_km=5.0, duration_minutes=30),
            _record(1, "Tue", distance_km=4.0),
            _record(2, "Wed", distance_km=6.5, duration_minutes=35),
        ]
        assert weekly_volume(records) == {1: (4.0, 0.0), 2: (11.5, 65.0)}


# ---------------------------------------------------------------------------
# Training phases
# ---------------------------------------------------------------------------


class TestPhases:
    """Phase outline and per-week focus."""

    def test_weeks_to_race(self):
        assert weeks_to_race("2024-03-01", "2024-01-01") == 9
        assert weeks_to_race("2024-01-08", "2024-01-01") == 1
        assert weeks_to_race(None, "2024-01-01") is None

    def test_short_plan_disabled(self):
        assert phase_outline(4) == PhaseOutline(steps_enabled=False, phases=(), reason="plan_too_short")

    def test_race_imminent(self):
        outline = phase_outline(16, 2)
        assert outline.reason == "race_imminent"
        assert outline.phases == ("race_specific",)
        assert current_phase(outline, 14, 16) == "race_specific"

    @pytest.mark.parametrize("weeks, expected", [
        (12, ("aerobic_base", "threshold", "economy", "race_specific")),
        (8, ("aerobic_base", "threshold", "race_specific")),
        (6, ("aerobic_base", "race_specific")),
    ])
    def test_phase_sets(self, weeks, expected):
        assert phase_outline(weeks, 20).phases == expected

    def test_week_focus_long_plan(self):
        focus = week_focus(12)
        assert [focus[w] for w in (1, 4, 5, 7, 8, 9, 10, 12)] == [
            "aerobic_base", "aerobic_base", "threshold", "threshold",
            "economy", "economy", "race_specific", "race_specific",
        ]

    def test_week_focus_short_and_mid(self):
        assert week_focus(6) == {1: "aerobic_base", 2: "aerobic_base", 3: "aerobic_base",
                                 4: "race_specific", 5: "race_specific", 6: "race_specific"}
        focus = week_focus(10)
        assert [focus[w] for w in (4, 5, 7, 8)] == ["aerobic_base", "threshold", "threshold", "race_specific"]
        assert set(week_focus(3).values()) == {"race_specific"}
        assert week_focus(0) == {}

    def test_current_phase(self):
        outline = phase_outline(12)
        assert current_phase(outline, 5, 12) == "threshold"
        assert current_phase(outline, 40, 12) == "race_specific"
        assert current_phase(phase_outline(3), 1, 3) is None
