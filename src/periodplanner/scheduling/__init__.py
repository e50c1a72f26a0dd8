"""Schedule state, suggestions and what-if simulation."""

from periodplanner.scheduling.cpsat_simulator import CPSATSimulationStrategy, SolverConfig
from periodplanner.scheduling.simulator import (
    ScanSimulationStrategy,
    SimulationResult,
    SimulationSource,
    SimulationStrategy,
    SimulatorConfig,
    WhatIfSimulator,
)
from periodplanner.scheduling.store import (
    ActivityDifferences,
    ImportOutcome,
    PersistenceMode,
    RestoreMode,
    ScheduleStore,
)
from periodplanner.scheduling.suggestions import SuggestionEngine

__all__ = [
    "ActivityDifferences",
    "CPSATSimulationStrategy",
    "ImportOutcome",
    "PersistenceMode",
    "RestoreMode",
    "ScanSimulationStrategy",
    "ScheduleStore",
    "SimulationResult",
    "SimulationSource",
    "SimulationStrategy",
    "SimulatorConfig",
    "SolverConfig",
    "SuggestionEngine",
    "WhatIfSimulator",
]
