"""Tests for the CP-SAT simulation strategy."""

import pytest

from periodplanner.domain.calendar import Weekday
from periodplanner.domain.models import (
    Activity,
    ConstraintConfig,
    RejectionReason,
    empty_week,
)
from periodplanner.scheduling.cpsat_simulator import CPSATSimulationStrategy, SolverConfig
from periodplanner.scheduling.simulator import SimulationSource, WhatIfSimulator

MON, TUE = "2024-01-15", "2024-01-16"


@pytest.fixture
def activities():
    return [Activity("X"), Activity("B", {Weekday.TUESDAY: {3}})]


@pytest.fixture
def strategy(activities):
    return CPSATSimulationStrategy(activities, SolverConfig(time_limit_seconds=5.0, num_workers=1))


class TestCPSATSimulation:
    """Tests for CPSATSimulationStrategy."""

    def test_removes_only_the_excess(self, strategy):
        """The solver keeps the cap's worth of placements, unlike the scan."""
        week = empty_week([MON, TUE])
        for p in (2, 4, 6, 8):
            week[MON][p] = "X"

        result = strategy.simulate({0: week}, ConstraintConfig(), ConstraintConfig(max_classes_per_day=3))

        assert result.source == SimulationSource.SOLVER
        assert len(result.invalid_placements) == 1
        assert result.invalid_placements[0].reason == RejectionReason.DAILY_LIMIT
        assert result.simulated_class_count == 3
        assert result.detail.startswith("OPTIMAL")

    def test_breaks_long_runs(self, strategy):
        week = empty_week([MON])
        for p in (1, 2, 3):
            week[MON][p] = "X"

        result = strategy.simulate(
            {0: week}, ConstraintConfig(), ConstraintConfig(max_consecutive_classes=1, max_classes_per_day=4)
        )

        # 1 and 3 survive once 2 goes
        assert [p.period for p in result.invalid_placements] == [2]
        assert result.invalid_placements[0].reason == RejectionReason.CONSECUTIVE_LIMIT

    def test_blackout_placements_removed(self, strategy):
        week = empty_week([MON, TUE])
        week[TUE][3] = "B"
        week[MON][1] = "X"

        result = strategy.simulate({0: week}, ConstraintConfig(), ConstraintConfig())

        assert [(p.activity_name, p.reason) for p in result.invalid_placements] == [
            ("B", RejectionReason.BLACKOUT)
        ]

    def test_no_changes_is_feasible(self, strategy):
        week = empty_week([MON])
        week[MON][1] = "X"
        result = strategy.simulate({0: week}, ConstraintConfig(), ConstraintConfig())
        assert result.feasible
        assert result.current_class_count == 1

    def test_through_simulator(self, strategy):
        week = empty_week([MON])
        for p in (2, 4, 6, 8):
            week[MON][p] = "X"

        result = WhatIfSimulator(strategy).simulate(
            {0: week}, ConstraintConfig(), ConstraintConfig(max_classes_per_day=3)
        )

        assert result.source == SimulationSource.SOLVER
        assert week[MON][8] == "X"

    def test_weekly_cut_matches_scan(self, strategy):
        """Both strategies keep exactly the weekly cap's worth of classes."""
        dates = ["2024-01-15", "2024-01-16", "2024-01-17", "2024-01-18"]
        week = empty_week(dates)
        for date_str in dates:
            for p in (1, 3, 5):
                week[date_str][p] = "X"
        current = ConstraintConfig(min_classes_per_week=0, max_classes_per_week=16)
        proposed = ConstraintConfig(min_classes_per_week=0, max_classes_per_week=10)

        solver = strategy.simulate({0: week}, current, proposed)
        scan = WhatIfSimulator().simulate({0: week}, current, proposed)

        assert solver.simulated_class_count == scan.simulated_class_count == 10
        assert all(p.reason == RejectionReason.WEEKLY_LIMIT for p in solver.invalid_placements)
