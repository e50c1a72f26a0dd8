"""Tests for pure placement and invalidation rules."""

import pytest

from periodplanner.domain.calendar import Weekday
from periodplanner.domain.models import (
    Activity,
    ConstraintConfig,
    RejectionReason,
    empty_week,
)
from periodplanner.validation.rules import (
    audit_schedule,
    check_config_combination,
    check_placement,
    count_adjacent_run,
    find_invalid_placements,
    find_week_invalid_placements,
    longest_run,
)

MON, TUE, WED, THU, FRI = (
    "2024-01-15",
    "2024-01-16",
    "2024-01-17",
    "2024-01-18",
    "2024-01-19",
)


@pytest.fixture
def week():
    """An empty Monday-Friday week starting 2024-01-15."""
    return empty_week([MON, TUE, WED, THU, FRI])


@pytest.fixture
def activity():
    """An activity blacked out on Monday period 1."""
    return Activity("X", {Weekday.MONDAY: {1}})


class TestCounting:
    """Tests for grid counting helpers."""

    def test_adjacent_run_excludes_slot(self, week):
        day = week[MON]
        day[3] = day[4] = "A"
        day[6] = "B"
        assert count_adjacent_run(day, 5) == 3
        assert count_adjacent_run(day, 2) == 2
        assert count_adjacent_run(day, 8) == 0

    def test_adjacent_run_stops_at_gap(self, week):
        day = week[MON]
        day[1] = day[3] = "A"
        assert count_adjacent_run(day, 4) == 1

    def test_longest_run(self, week):
        day = week[MON]
        day[1] = day[2] = day[4] = day[5] = day[6] = "A"
        assert longest_run(day) == 3


class TestCheckPlacement:
    """Tests for the ordered placement chain."""

    def test_empty_grid_accepts(self, week, activity):
        assert check_placement(activity, MON, 2, week, ConstraintConfig()).valid

    def test_occupied_slot_rejected_first(self, week, activity):
        """An occupied slot is reported even when it is also blacked out."""
        week[MON][1] = "Y"
        check = check_placement(activity, MON, 1, week, ConstraintConfig())
        assert check.reason == RejectionReason.SLOT_OCCUPIED

    def test_weekend_rejected(self, week, activity):
        check = check_placement(activity, "2024-01-20", 3, week, ConstraintConfig())
        assert check.reason == RejectionReason.WEEKEND

    def test_blackout_rejected_before_unavailability(self, week, activity):
        unavailable = {MON: {1: True}}
        check = check_placement(activity, MON, 1, week, ConstraintConfig(), unavailable)
        assert check.reason == RejectionReason.BLACKOUT

    def test_blackout_holds_under_generous_limits(self, week, activity):
        """Blackouts reject regardless of how high the caps are."""
        config = ConstraintConfig(100, 100, 0, 100)
        check = check_placement(activity, MON, 1, week, config, ignore_unavailability=True)
        assert check.reason == RejectionReason.BLACKOUT

    def test_unavailability_rejected_unless_ignored(self, week, activity):
        unavailable = {TUE: {3: True}}
        check = check_placement(activity, TUE, 3, week, ConstraintConfig(), unavailable)
        assert check.reason == RejectionReason.UNAVAILABLE
        assert check.needs_confirmation
        assert check_placement(
            activity, TUE, 3, week, ConstraintConfig(), unavailable, ignore_unavailability=True
        ).valid

    def test_unknown_activity_has_no_blackouts(self, week):
        assert check_placement(None, MON, 1, week, ConstraintConfig()).valid

    def test_consecutive_boundary(self, week, activity):
        """With a limit of 2 and periods 3-4 taken, period 5 fails but 7 is fine."""
        week[TUE][3] = week[TUE][4] = "A"
        config = ConstraintConfig(max_consecutive_classes=2)
        check = check_placement(activity, TUE, 5, week, config)
        assert check.reason == RejectionReason.CONSECUTIVE_LIMIT
        assert check_placement(activity, TUE, 7, week, config).valid

    def test_bridging_two_runs_rejected(self, week, activity):
        """Filling a gap counts both neighbouring runs."""
        week[TUE][2] = week[TUE][4] = "A"
        config = ConstraintConfig(max_consecutive_classes=2)
        assert check_placement(activity, TUE, 3, week, config).reason == RejectionReason.CONSECUTIVE_LIMIT

    def test_daily_boundary(self, week, activity):
        """A fifth class on a full day fails; freeing a slot allows it."""
        for p in (1, 3, 5, 7):
            week[WED][p] = "A"
        config = ConstraintConfig(max_consecutive_classes=2, max_classes_per_day=4)
        assert check_placement(activity, WED, 8, week, config).reason == RejectionReason.DAILY_LIMIT

        week[WED][1] = None
        assert check_placement(activity, WED, 8, week, config).valid

    def test_weekly_boundary(self, week, activity):
        week[MON][2] = week[TUE][2] = week[WED][2] = "A"
        config = ConstraintConfig(min_classes_per_week=0, max_classes_per_week=3)
        check = check_placement(activity, THU, 2, week, config)
        assert check.reason == RejectionReason.WEEKLY_LIMIT

    @pytest.mark.parametrize("period", [0, 9])
    def test_invalid_period_raises(self, week, activity, period):
        with pytest.raises(ValueError):
            check_placement(activity, MON, period, week, ConstraintConfig())

    def test_malformed_date_raises(self, week, activity):
        with pytest.raises(ValueError):
            check_placement(activity, "15/01/2024", 1, week, ConstraintConfig())


class TestFindInvalidPlacements:
    """Tests for invalidation under tightened caps."""

    def test_daily_flags_latest_periods_first(self, week):
        """Tightening 4 -> 3 on periods {2,4,6,8} flags exactly 8 then 6."""
        for p in (2, 4, 6, 8):
            week[MON][p] = f"A{p}"
        current = ConstraintConfig(max_classes_per_day=4)
        proposed = ConstraintConfig(max_classes_per_day=3)

        invalid = find_week_invalid_placements(week, current, proposed)

        assert [(p.date_str, p.period) for p in invalid] == [(MON, 8), (MON, 6)]
        assert all(p.reason == RejectionReason.DAILY_LIMIT for p in invalid)
        assert [p.activity_name for p in invalid] == ["A8", "A6"]

    def test_day_at_new_cap_untouched(self, week):
        for p in (2, 4, 6):
            week[MON][p] = "A"
        invalid = find_week_invalid_placements(
            week, ConstraintConfig(max_classes_per_day=4), ConstraintConfig(max_classes_per_day=3)
        )
        assert invalid == []

    def test_unchanged_caps_not_evaluated(self, week):
        """Caps that are not lowered are never checked."""
        for p in range(1, 9):
            week[MON][p] = "A"
        config = ConstraintConfig()
        assert find_week_invalid_placements(week, config, config) == []

    def test_consecutive_flags_placement_past_new_limit(self, week):
        """Only the placement that makes a run too long is flagged."""
        week[TUE][1] = week[TUE][2] = week[TUE][3] = "A"
        week[TUE][6] = week[TUE][7] = "B"
        current = ConstraintConfig(max_consecutive_classes=3)
        proposed = ConstraintConfig(max_consecutive_classes=2)

        invalid = find_week_invalid_placements(week, current, proposed)

        assert [(p.date_str, p.period) for p in invalid] == [(TUE, 3)]
        assert all(p.reason == RejectionReason.CONSECUTIVE_LIMIT for p in invalid)

    def test_consecutive_pair_under_limit_one(self, week):
        week[MON][1] = week[MON][2] = "A"
        invalid = find_week_invalid_placements(
            week, ConstraintConfig(max_consecutive_classes=2), ConstraintConfig(max_consecutive_classes=1)
        )
        assert [p.period for p in invalid] == [2]

    def test_consecutive_count_restarts_after_flag(self, week):
        """A long run is broken up every ``limit + 1`` periods."""
        for p in range(1, 6):
            week[MON][p] = "A"
        invalid = find_week_invalid_placements(
            week,
            ConstraintConfig(max_consecutive_classes=2, max_classes_per_day=8),
            ConstraintConfig(max_consecutive_classes=1, max_classes_per_day=8),
        )
        assert [p.period for p in invalid] == [2, 4]

    def test_weekly_scans_latest_dates_first(self, week):
        week[MON][1] = week[TUE][1] = "A"
        week[WED][1] = week[WED][3] = "B"
        current = ConstraintConfig(min_classes_per_week=0, max_classes_per_week=4)
        proposed = ConstraintConfig(min_classes_per_week=0, max_classes_per_week=3)

        invalid = find_week_invalid_placements(week, current, proposed)

        assert [(p.date_str, p.period) for p in invalid] == [(WED, 3)]
        assert all(p.reason == RejectionReason.WEEKLY_LIMIT for p in invalid)

    def test_weekly_removes_only_the_excess(self):
        """Twelve classes cut to a weekly cap of ten lose exactly two."""
        dates = ["2024-01-15", "2024-01-16", "2024-01-17", "2024-01-18", "2024-01-19"]
        week = empty_week(dates)
        for date_str in dates[:4]:
            for p in (1, 3, 5):
                week[date_str][p] = "A"

        invalid = find_week_invalid_placements(
            week,
            ConstraintConfig(min_classes_per_week=0, max_classes_per_week=16),
            ConstraintConfig(min_classes_per_week=0, max_classes_per_week=10),
        )

        assert [(p.date_str, p.period) for p in invalid] == [("2024-01-18", 5), ("2024-01-18", 3)]

    def test_findings_not_deduplicated(self, week):
        """A placement breaking two tightened caps is listed twice."""
        for p in (2, 4, 6, 8):
            week[MON][p] = "A"
        current = ConstraintConfig(max_classes_per_day=4, min_classes_per_week=0, max_classes_per_week=4)
        proposed = ConstraintConfig(max_classes_per_day=3, min_classes_per_week=0, max_classes_per_week=3)

        invalid = find_week_invalid_placements(week, current, proposed)

        reasons = [p.reason for p in invalid]
        assert reasons == [
            RejectionReason.DAILY_LIMIT,
            RejectionReason.DAILY_LIMIT,
            RejectionReason.WEEKLY_LIMIT,
        ]
        assert [p.period for p in invalid] == [8, 6, 8]

    def test_all_weeks_carry_offset(self, week):
        other = empty_week(["2024-01-22"])
        for p in (2, 4, 6, 8):
            week[MON][p] = "A"
            other["2024-01-22"][p] = "B"
        weeks = {1: other, 0: week}

        invalid = find_invalid_placements(
            weeks, ConstraintConfig(max_classes_per_day=4), ConstraintConfig(max_classes_per_day=3)
        )

        assert [p.week_offset for p in invalid] == [0, 0, 1, 1]
        assert invalid[2].date_str == "2024-01-22"


class TestAudit:
    """Tests for auditing a schedule against its own caps."""

    def test_clean_schedule_passes(self, week):
        week[MON][1] = "A"
        config = ConstraintConfig(min_classes_per_week=1)
        assert audit_schedule({0: week}, config).is_valid

    def test_reports_each_breach(self, week):
        for p in (1, 2, 3, 5, 7):
            week[MON][p] = "A"
        config = ConstraintConfig(max_consecutive_classes=2, max_classes_per_day=4)

        result = audit_schedule({0: week}, config)

        assert len(result.by_reason("consecutive")) == 1
        assert len(result.by_reason("daily")) == 1
        assert len(result.by_reason("weekly_min")) == 1
        assert result.by_reason("weekly_max") == []

    def test_empty_week_not_below_minimum(self, week):
        assert audit_schedule({0: week}, ConstraintConfig()).is_valid


class TestConfigCombination:
    """Tests for constraint combination checks."""

    def test_day_cap_below_consecutive_rejected(self):
        check = check_config_combination(ConstraintConfig(max_consecutive_classes=3, max_classes_per_day=2))
        assert not check.valid
        assert check.reason == RejectionReason.INVALID_COMBINATION

    def test_defaults_accepted(self):
        assert check_config_combination(ConstraintConfig()).valid
