"""What-if simulation of constraint changes.

A simulation answers: if ``proposed`` replaced ``current``, which existing
placements would have to go? Simulations work on deep copies and never touch
a :class:`ScheduleStore`. Applying a result is a separate step
(:meth:`ScheduleStore.apply_constraint_change`).
"""

import copy
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from periodplanner.domain.errors import SolverUnavailableError
from periodplanner.domain.models import (
    ConstraintConfig,
    InvalidPlacement,
    ScheduleSnapshot,
    ScheduleWeeks,
)
from periodplanner.validation.rules import count_all, count_week, find_invalid_placements


class SimulationSource:
    """Tags describing how a simulation result was produced."""

    SCAN = "scan"
    SOLVER = "solver"
    FALLBACK_TIMEOUT = "fallback_timeout"
    FALLBACK_SOLVER_ERROR = "fallback_solver_error"
    FALLBACK_SOLVER_INFEASIBLE = "fallback_solver_infeasible"


@dataclass
class SimulationMetrics:
    """Aggregate figures for a simulated schedule.

    Attributes:
        total_classes: Placements before the change.
        invalid_placements: Number of flagged placements (with repeats).
        affected_days: Distinct (week, date) pairs with a flagged placement.
        weeks_below_minimum: Weeks left with some classes but fewer than the
            proposed weekly minimum.
    """

    total_classes: int = 0
    invalid_placements: int = 0
    affected_days: int = 0
    weeks_below_minimum: int = 0


@dataclass
class SimulationResult:
    """Outcome of a what-if simulation."""

    feasible: bool
    current_class_count: int
    simulated_class_count: int
    invalid_placements: list[InvalidPlacement] = field(default_factory=list)
    source: str = SimulationSource.SCAN
    metrics: SimulationMetrics = field(default_factory=SimulationMetrics)
    feasible_schedule: Optional[ScheduleWeeks] = None
    detail: Optional[str] = None


def build_result(
    weeks: ScheduleWeeks,
    proposed: ConstraintConfig,
    invalid: list[InvalidPlacement],
    source: str,
) -> SimulationResult:
    """Assemble a result from a list of flagged placements.

    ``weeks`` is not modified; the trimmed schedule is built on a copy.
    """
    current_count = count_all(weeks)

    remaining = copy.deepcopy(weeks)
    for placement in invalid:
        day = remaining.get(placement.week_offset, {}).get(placement.date_str)
        if day is not None and day.get(placement.period) == placement.activity_name:
            day[placement.period] = None

    below_minimum = sum(
        1 for week in remaining.values() if 0 < count_week(week) < proposed.min_classes_per_week
    )
    affected_days = {(p.week_offset, p.date_str) for p in invalid}

    return SimulationResult(
        feasible=not invalid,
        current_class_count=current_count,
        simulated_class_count=current_count - len(invalid),
        invalid_placements=invalid,
        source=source,
        metrics=SimulationMetrics(
            total_classes=current_count,
            invalid_placements=len(invalid),
            affected_days=len(affected_days),
            weeks_below_minimum=below_minimum,
        ),
        feasible_schedule=remaining,
    )


class SimulationStrategy(ABC):
    """Interface for anything that can evaluate a constraint change."""

    @abstractmethod
    def simulate(
        self,
        weeks: ScheduleWeeks,
        current: ConstraintConfig,
        proposed: ConstraintConfig,
    ) -> SimulationResult:
        """Evaluate ``proposed`` against ``weeks``. Must not mutate ``weeks``."""
        pass


class ScanSimulationStrategy(SimulationStrategy):
    """Reference strategy: the validator's invalidation rules over every week."""

    def simulate(
        self,
        weeks: ScheduleWeeks,
        current: ConstraintConfig,
        proposed: ConstraintConfig,
    ) -> SimulationResult:
        invalid = find_invalid_placements(weeks, current, proposed)
        return build_result(weeks, proposed, invalid, SimulationSource.SCAN)


@dataclass
class SimulatorConfig:
    """Configuration for the what-if simulator.

    Attributes:
        timeout_seconds: Deadline for a non-scan strategy before falling back.
    """

    timeout_seconds: float = 30.0


class WhatIfSimulator:
    """Runs simulations, racing slow strategies against a deadline.

    The scan strategy runs inline. Any other strategy runs on a worker thread;
    if it misses the deadline, fails or cannot give an answer, the scan result
    is returned with a ``fallback_*`` source tag.
    """

    def __init__(
        self,
        strategy: Optional[SimulationStrategy] = None,
        config: Optional[SimulatorConfig] = None,
    ):
        self.scan = ScanSimulationStrategy()
        self.strategy = strategy or self.scan
        self.config = config or SimulatorConfig()

    def simulate(
        self,
        weeks: ScheduleWeeks,
        current: ConstraintConfig,
        proposed: ConstraintConfig,
    ) -> SimulationResult:
        """Simulate ``proposed`` over a copy of ``weeks``."""
        if isinstance(self.strategy, ScanSimulationStrategy):
            return self.strategy.simulate(copy.deepcopy(weeks), current, proposed)

        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.strategy.simulate, copy.deepcopy(weeks), current, proposed)
        try:
            result = future.result(timeout=self.config.timeout_seconds)
        except FuturesTimeoutError:
            source = SimulationSource.FALLBACK_TIMEOUT
            detail = f"Solver exceeded {self.config.timeout_seconds}s"
        except SolverUnavailableError as e:
            source = SimulationSource.FALLBACK_SOLVER_INFEASIBLE
            detail = str(e)
        except Exception as e:
            logger.exception("Simulation strategy failed")
            source = SimulationSource.FALLBACK_SOLVER_ERROR
            detail = str(e)
        else:
            return result
        finally:
            executor.shutdown(wait=False)

        logger.warning("Falling back to scan simulation", source=source, detail=detail)
        fallback = self.scan.simulate(copy.deepcopy(weeks), current, proposed)
        fallback.source = source
        fallback.detail = detail
        return fallback

    def simulate_snapshot(
        self,
        snapshot: ScheduleSnapshot,
        proposed: ConstraintConfig,
    ) -> SimulationResult:
        """Simulate ``proposed`` against a snapshot's own committed config."""
        return self.simulate(snapshot.weeks, snapshot.config, proposed)
