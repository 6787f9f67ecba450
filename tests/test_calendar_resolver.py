"""
Tests for plan calendar resolution.

Covers both plan schemas (weekly-offset and date-based), the inverse
(week, day) -> date mapping, views, schema conversion and validation.
"""

import pytest

from run_scheduler.core.calendar import (
    completion_key,
    dated_day_issues,
    days_to_weeks,
    is_before_start,
    migrate_to_date_based,
    month_grid,
    parse_completion_key,
    resolve_for_date,
    resolve_for_week_day,
    sanitize_days,
    today_position,
    validate_plan,
    week_view,
    weeks_to_days,
    workout_date,
)
from run_scheduler.core.config import COACHING_NOTES, DAY_ORDER
from run_scheduler.core.dates import add_days, get_zone, local_noon_timestamp, timestamp_to_local_date
from run_scheduler.core.models import DatedDay, DayEntry, MalformedPlanError, TrainingPlan, Week

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

WEEK_TEMPLATE = {
    "Mon": "Rest",
    "Tue": "Easy 5km run",
    "Wed": "Easy 5km run",
    "Thu": "Tempo 6km",
    "Fri": "Rest",
    "Sat": "Intervals 6x800m",
    "Sun": "Long run 12km",
}


def _week(number: int, days: dict[str, str] | None = None) -> Week:
    slots = days if days is not None else WEEK_TEMPLATE
    return Week(week=number, days={k: DayEntry.from_raw(v) for k, v in slots.items()})


def _weekly_plan(weeks: int = 2, start_date: str | None = "2024-01-01") -> TrainingPlan:
    return TrainingPlan(plan=tuple(_week(i) for i in range(1, weeks + 1)), start_date=start_date)


def _dated(date: str, workout: str) -> DatedDay:
    return DatedDay(date=date, workout=workout)


# ---------------------------------------------------------------------------
# Completion keys
# ---------------------------------------------------------------------------


class TestCompletionKeys:
    """Key construction and parsing."""

    def test_round_trip(self):
        assert completion_key(3, "Fri") == "3-Fri"
        assert parse_completion_key("3-Fri") == (3, "Fri")

    @pytest.mark.parametrize("key", ["x-Fri", "1-Funday", "", "1Fri", None])
    def test_malformed(self, key):
        assert parse_completion_key(key) is None


# ---------------------------------------------------------------------------
# Weekly-offset plans
# ---------------------------------------------------------------------------


class TestWeeklyResolution:
    """Anchor-relative week math on weekly plans."""

    def test_scenario_wednesday_of_week_one(self):
        plan = TrainingPlan(plan=(_week(1, {"Wed": "Easy 5km run"}),), start_date="2024-01-01")
        w = resolve_for_date(plan, "2024-01-01", "2024-01-03")
        assert w is not None
        assert (w.week_number, w.day_name, w.activity, w.is_completed) == (1, "Wed", "Easy 5km run", False)
        assert w.date == "2024-01-03"

    def test_fallback_tips_from_category(self):
        w = resolve_for_date(_weekly_plan(), None, "2024-01-03")
        assert w.tips == COACHING_NOTES["easy"]

    def test_own_tips_kept(self):
        plan = TrainingPlan(
            plan=(Week(week=1, days={"Mon": DayEntry(workout="Easy 4km", tips=("Relax",))}),),
            start_date="2024-01-01",
        )
        assert resolve_for_date(plan, None, "2024-01-01").tips == ("Relax",)

    def test_completed_from_ledger(self):
        w = resolve_for_date(_weekly_plan(), "2024-01-01", "2024-01-10", frozenset({"2-Wed"}))
        assert w.key == "2-Wed"
        assert w.is_completed

    def test_anchor_defaults_to_plan_start(self):
        w = resolve_for_date(_weekly_plan(), None, "2024-01-08")
        assert (w.week_number, w.day_name) == (2, "Mon")

    @pytest.mark.parametrize("date", ["2023-12-31", "2023-11-01", "2024-01-15", "2025-06-01"])
    def test_out_of_range_is_none(self, date):
        assert resolve_for_date(_weekly_plan(), "2024-01-01", date) is None

    def test_midweek_anchor(self):
        plan = _weekly_plan()
        assert resolve_for_date(plan, "2024-01-03", "2024-01-01") is None
        w = resolve_for_date(plan, "2024-01-03", "2024-01-04")
        assert (w.week_number, w.day_name) == (1, "Thu")
        w = resolve_for_date(plan, "2024-01-03", "2024-01-08")
        assert (w.week_number, w.day_name) == (2, "Mon")

    def test_missing_slot_is_none(self):
        plan = TrainingPlan(plan=(_week(1, {"Wed": "Easy 5km run"}),), start_date="2024-01-01")
        assert resolve_for_date(plan, None, "2024-01-04") is None

    def test_no_anchor_is_none(self):
        assert resolve_for_date(_weekly_plan(start_date=None), None, "2024-01-03") is None

    def test_invalid_date_is_none(self):
        assert resolve_for_date(_weekly_plan(), None, "2024-02-30") is None
        assert resolve_for_date(_weekly_plan(), None, "soon") is None


class TestWeekDayLookup:
    """resolve_for_week_day and workout_date."""

    def test_slot_lookup(self):
        plan = _weekly_plan()
        assert resolve_for_week_day(plan, 2, "Sun").workout == "Long run 12km"
        assert resolve_for_week_day(plan, 3, "Sun") is None
        assert resolve_for_week_day(plan, 1, "Funday") is None

    def test_workout_date(self):
        assert workout_date(_weekly_plan(), "2024-01-01", 1, "Wed") == "2024-01-03"
        assert workout_date(_weekly_plan(), None, 2, "Sun") == "2024-01-14"

    def test_inverse_of_resolve(self):
        plan = _weekly_plan(3)
        for week in plan.plan:
            for day_name in week.days:
                date = workout_date(plan, None, week.week, day_name)
                w = resolve_for_date(plan, None, date)
                assert (w.week_number, w.day_name) == (week.week, day_name)

    def test_slot_before_anchor_has_no_date(self):
        assert workout_date(_weekly_plan(), "2024-01-03", 1, "Mon") is None
        assert workout_date(_weekly_plan(), "2024-01-03", 9, "Mon") is None

    def test_today_position(self):
        plan = _weekly_plan()
        assert today_position(plan, None, "2023-12-25") == (1, "Mon")
        assert today_position(plan, None, "2024-01-10") == (2, "Wed")
        assert today_position(plan, None, "2024-01-22") == (4, "Mon")

    def test_is_before_start(self):
        assert is_before_start("2024-01-03", "2024-01-02")
        assert not is_before_start("2024-01-03", "2024-01-03")
        assert not is_before_start(None, "2024-01-03")


# ---------------------------------------------------------------------------
# Date-based plans
# ---------------------------------------------------------------------------


class TestDateBasedResolution:
    """Explicit days arrays."""

    def test_exact_date_with_positional_weeks(self):
        plan = TrainingPlan(days=(_dated("2024-01-03", "Easy 5km"), _dated("2024-01-10", "Tempo 6km")))
        first = resolve_for_date(plan, None, "2024-01-03")
        second = resolve_for_date(plan, None, "2024-01-10")
        assert (first.week_number, first.day_name) == (1, "Wed")
        assert (second.week_number, second.activity) == (2, "Tempo 6km")

    def test_date_not_listed_is_none(self):
        plan = TrainingPlan(days=(_dated("2024-01-03", "Easy 5km"),))
        assert resolve_for_date(plan, None, "2024-01-04") is None

    def test_anchor_ignored(self):
        plan = TrainingPlan(days=(_dated("2024-01-03", "Easy 5km"),))
        assert resolve_for_date(plan, "2030-01-01", "2024-01-03").week_number == 1

    def test_week_from_dated_slot(self):
        weeks = (
            Week(week=5, days={"Wed": DayEntry(workout="Easy 5km", date="2024-01-03")}),
        )
        plan = TrainingPlan(plan=weeks, days=(_dated("2024-01-03", "Easy 5km"),))
        assert resolve_for_date(plan, None, "2024-01-03").key == "5-Wed"

    def test_positional_fallback_outside_weekly_array(self):
        weeks = (_week(1),)
        plan = TrainingPlan(
            plan=weeks,
            days=(_dated("2024-01-01", "Easy 5km"), _dated("2024-01-17", "Tempo 6km")),
        )
        assert resolve_for_date(plan, None, "2024-01-01").key == "1-Mon"
        assert resolve_for_date(plan, None, "2024-01-17") is None

    def test_workout_date_inverse(self):
        plan = TrainingPlan(days=(_dated("2024-01-03", "Easy 5km"), _dated("2024-01-10", "Tempo 6km")))
        assert workout_date(plan, None, 2, "Wed") == "2024-01-10"
        assert workout_date(plan, None, 2, "Thu") is None


class TestSchemaEquivalence:
    """Both schemas yield the same key for the same logical workout."""

    @pytest.mark.parametrize("start", ["2024-01-01", "2024-01-03"])
    def test_migrated_plan_keeps_keys(self, start):
        weekly = _weekly_plan(start_date=start)
        dated = migrate_to_date_based(weekly)
        assert dated.is_date_based

        for offset in range(-3, 18):
            date = add_days("2024-01-01", offset)
            a = resolve_for_date(weekly, None, date)
            b = resolve_for_date(dated, None, date)
            if a is None:
                assert b is None
                continue
            assert b is not None
            assert a.key == b.key
            assert a.activity == b.activity

    def test_migrate_is_noop_for_dated_plan(self):
        plan = TrainingPlan(days=(_dated("2024-01-03", "Easy 5km"),))
        assert migrate_to_date_based(plan) is plan

    def test_migrate_requires_start(self):
        with pytest.raises(MalformedPlanError):
            migrate_to_date_based(_weekly_plan(start_date=None))


class TestConversion:
    """weeks_to_days and days_to_weeks."""

    def test_weeks_to_days_fills_rest(self):
        plan = TrainingPlan(plan=(_week(1, {"Wed": "Easy 5km run"}),))
        days = weeks_to_days(plan, "2024-01-01")
        assert len(days) == 7
        assert days[2].workout == "Easy 5km run"
        assert days[0].workout == "Rest"
        assert [d.dow for d in days] == list(DAY_ORDER)

    def test_weeks_to_days_skips_before_start(self):
        days = weeks_to_days(_weekly_plan(1), "2024-01-03")
        assert days[0].date == "2024-01-03"
        assert len(days) == 5

    def test_weeks_to_days_bad_start(self):
        with pytest.raises(MalformedPlanError):
            weeks_to_days(_weekly_plan(), "January")

    def test_days_to_weeks_fills_gaps(self):
        weeks = days_to_weeks([_dated("2024-01-04", "Tempo 6km"), _dated("2024-01-02", "Easy 5km")])
        assert len(weeks) == 1
        week = weeks[0]
        assert week.week == 1
        assert week.slot("Mon").workout == "Rest"
        assert week.slot("Mon").date == "2024-01-01"
        assert week.slot("Tue").workout == "Easy 5km"
        assert week.slot("Thu").date == "2024-01-04"

    def test_days_to_weeks_spans_weeks(self):
        weeks = days_to_weeks([_dated("2024-01-07", "Long run"), _dated("2024-01-15", "Easy")])
        assert [w.week for w in weeks] == [1, 2, 3]

    def test_days_to_weeks_empty(self):
        assert days_to_weeks([]) == ()


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


class TestViews:
    """Week view and month grid."""

    def test_week_view_starts_monday(self):
        cells = week_view(_weekly_plan(), None, "2024-01-04")
        assert [d for d, _ in cells] == [add_days("2024-01-01", i) for i in range(7)]
        assert cells[1][1].activity == "Easy 5km run"

    def test_week_view_before_start_is_empty(self):
        cells = week_view(_weekly_plan(), None, "2023-12-27")
        assert all(w is None for _, w in cells)

    def test_month_grid_padding(self):
        grid = month_grid(_weekly_plan(), None, 2024, 2)
        assert grid[0][:3] == [None, None, None]
        assert grid[0][3][0] == "2024-02-01"
        assert all(len(row) == 7 for row in grid)

    def test_month_grid_resolves_cells(self):
        grid = month_grid(_weekly_plan(), None, 2024, 1, frozenset({"1-Tue"}))
        assert len(grid) == 5
        date, workout = grid[0][1]
        assert date == "2024-01-02"
        assert workout.is_completed
        # Past the two-week plan
        assert grid[3][0] == ("2024-01-22", None)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    """Structural checks."""

    def test_valid_plan(self):
        validate_plan(_weekly_plan())

    def test_partial_week_is_valid(self):
        validate_plan(TrainingPlan(plan=(_week(1, {"Sat": "Long run"}),)))

    def test_empty_plan(self):
        with pytest.raises(MalformedPlanError):
            validate_plan(TrainingPlan())

    def test_week_without_day_keys(self):
        with pytest.raises(MalformedPlanError, match="none of the day keys"):
            validate_plan(TrainingPlan(plan=(Week(week=1, days={}),)))

    def test_week_numbers_must_increase(self):
        with pytest.raises(MalformedPlanError):
            validate_plan(TrainingPlan(plan=(_week(2), _week(1))))
        with pytest.raises(MalformedPlanError):
            validate_plan(TrainingPlan(plan=(_week(1), _week(1))))

    def test_dated_day_issues(self):
        days = [
            _dated("2024-01-03", "Easy"),
            _dated("2024-01-02", ""),
            _dated("2024-01-03", "Tempo"),
        ]
        issues = dated_day_issues(days)
        assert any("Duplicate date" in i for i in issues)
        assert any("no workout" in i for i in issues)
        assert any("chronological" in i for i in issues)

    def test_dated_day_issues_clean(self):
        assert dated_day_issues([_dated("2024-01-02", "Easy"), _dated("2024-01-03", "Rest")]) == []
        assert dated_day_issues([]) == ["days[] cannot be empty"]

    def test_wrong_dow_reported(self):
        day = DatedDay(date="2024-01-01", workout="Easy", dow="Tue")
        assert dated_day_issues([day])

    def test_sanitize_days(self):
        days = [_dated("2024-01-03", "Easy"), _dated("2024-01-01", "Rest"), _dated("2024-01-03", "Tempo")]
        clean = sanitize_days(days)
        assert [d.date for d in clean] == ["2024-01-01", "2024-01-03"]
        assert clean[1].workout == "Easy"


class TestZones:
    """Default zone and local timestamps."""

    def test_missing_zone_uses_configured_default(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        user_dir = tmp_path / ".run-scheduler"
        user_dir.mkdir()
        (user_dir / "engine.yaml").write_text("calendar:\n  default_timezone: America/Los_Angeles\n")
        assert get_zone(None).key == "America/Los_Angeles"
        assert get_zone("Mars/Olympus").key == "America/Los_Angeles"
        assert timestamp_to_local_date("2024-01-02T05:00:00Z") == "2024-01-01"

    def test_bundled_default(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_zone("").key == "Europe/Paris"

    def test_local_noon_keeps_calendar_day(self):
        stamp = local_noon_timestamp("2024-01-03", "Pacific/Kiritimati")
        assert stamp == "2024-01-03T12:00:00+14:00"
        assert timestamp_to_local_date(stamp, "Pacific/Kiritimati") == "2024-01-03"
        assert local_noon_timestamp("2024-07-01", "UTC") == "2024-07-01T12:00:00+00:00"
