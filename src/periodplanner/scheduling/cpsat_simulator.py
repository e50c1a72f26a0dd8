"""OR-Tools CP-SAT strategy for what-if simulation.

Where the scan strategy removes placements by a fixed latest-first rule, this
strategy searches for the smallest set of removals that satisfies every cap
of the proposed configuration, and also drops placements that sit on an
activity blackout.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger
from ortools.sat.python import cp_model

from periodplanner.domain.calendar import parse_date, weekday_of
from periodplanner.domain.errors import SolverUnavailableError
from periodplanner.domain.models import (
    PERIODS,
    Activity,
    ConstraintConfig,
    InvalidPlacement,
    RejectionReason,
    ScheduleWeeks,
)
from periodplanner.scheduling.simulator import (
    SimulationResult,
    SimulationSource,
    SimulationStrategy,
    build_result,
)
from periodplanner.validation.rules import count_day, longest_run


@dataclass
class SolverConfig:
    """Configuration for the CP-SAT strategy.

    Attributes:
        time_limit_seconds: Maximum solver runtime.
        num_workers: Number of parallel workers (0 = auto).
    """

    time_limit_seconds: float = 10.0
    num_workers: int = 0


@dataclass(frozen=True)
class _Placement:
    week_offset: int
    date_str: str
    period: int
    activity_name: str


class CPSATSimulationStrategy(SimulationStrategy):
    """Keeps as many placements as possible under the proposed caps.

    Args:
        activities: Catalog used for blackout lookups.
        config: Solver limits.
    """

    def __init__(self, activities: list[Activity], config: Optional[SolverConfig] = None):
        self.activities = {a.name: a for a in activities}
        self.config = config or SolverConfig()

    def _on_blackout(self, placement: _Placement) -> bool:
        activity = self.activities.get(placement.activity_name)
        if activity is None:
            return False
        weekday = weekday_of(parse_date(placement.date_str))
        return activity.has_conflict(weekday, placement.period)

    def simulate(
        self,
        weeks: ScheduleWeeks,
        current: ConstraintConfig,
        proposed: ConstraintConfig,
    ) -> SimulationResult:
        model = cp_model.CpModel()

        placements: list[_Placement] = []
        for offset in sorted(weeks):
            for date_str in sorted(weeks[offset]):
                day = weeks[offset][date_str]
                for period in PERIODS:
                    if day.get(period):
                        placements.append(_Placement(offset, date_str, period, day[period]))

        # keep[i] = 1 if placement i survives the change
        keep = {p: model.NewBoolVar(f"keep_{p.week_offset}_{p.date_str}_{p.period}") for p in placements}

        by_day: dict[tuple[int, str], dict[int, cp_model.IntVar]] = {}
        by_week: dict[int, list[cp_model.IntVar]] = {}
        for p, var in keep.items():
            by_day.setdefault((p.week_offset, p.date_str), {})[p.period] = var
            by_week.setdefault(p.week_offset, []).append(var)
            if self._on_blackout(p):
                model.Add(var == 0)

        window = proposed.max_consecutive_classes + 1
        for day_vars in by_day.values():
            # Any fully occupied window longer than the limit must lose one
            for start in range(PERIODS.start, PERIODS.stop - window + 1):
                span = range(start, start + window)
                if all(period in day_vars for period in span):
                    model.Add(sum(day_vars[period] for period in span) <= proposed.max_consecutive_classes)
            model.Add(sum(day_vars.values()) <= proposed.max_classes_per_day)

        for week_vars in by_week.values():
            model.Add(sum(week_vars) <= proposed.max_classes_per_week)

        model.Maximize(sum(keep.values()))

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = self.config.time_limit_seconds
        if self.config.num_workers > 0:
            solver.parameters.num_workers = self.config.num_workers

        status = solver.Solve(model)

        status_map = {
            cp_model.OPTIMAL: "OPTIMAL",
            cp_model.FEASIBLE: "FEASIBLE",
            cp_model.INFEASIBLE: "INFEASIBLE",
            cp_model.MODEL_INVALID: "MODEL_INVALID",
            cp_model.UNKNOWN: "UNKNOWN",
        }
        status_str = status_map.get(status, "UNKNOWN")

        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            raise SolverUnavailableError(status_str)

        invalid = [
            InvalidPlacement(
                p.activity_name,
                p.date_str,
                p.period,
                self._removal_reason(p, weeks, proposed),
                p.week_offset,
            )
            for p in placements
            if not solver.Value(keep[p])
        ]

        logger.info(
            "CP-SAT simulation finished",
            status=status_str,
            placements=len(placements),
            removed=len(invalid),
            wall_time=solver.WallTime(),
        )
        result = build_result(weeks, proposed, invalid, SimulationSource.SOLVER)
        result.detail = f"{status_str} in {solver.WallTime():.2f}s"
        return result

    def _removal_reason(
        self,
        placement: _Placement,
        weeks: ScheduleWeeks,
        proposed: ConstraintConfig,
    ) -> RejectionReason:
        day = weeks[placement.week_offset][placement.date_str]
        if self._on_blackout(placement):
            return RejectionReason.BLACKOUT
        if longest_run(day) > proposed.max_consecutive_classes:
            return RejectionReason.CONSECUTIVE_LIMIT
        if count_day(day) > proposed.max_classes_per_day:
            return RejectionReason.DAILY_LIMIT
        return RejectionReason.WEEKLY_LIMIT
