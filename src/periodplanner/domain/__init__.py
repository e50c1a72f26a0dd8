"""Domain models, calendar helpers and error types."""

from periodplanner.domain.calendar import (
    Weekday,
    format_date,
    monday_of,
    next_monday,
    parse_date,
    week_dates,
    weekday_of,
)
from periodplanner.domain.errors import (
    DuplicateNameError,
    MalformedImportError,
    PlannerError,
    ReferentialError,
    SolverUnavailableError,
    StorageFailure,
    StorageFailureKind,
)
from periodplanner.domain.models import (
    PERIODS,
    PERIODS_PER_DAY,
    Activity,
    ConstraintConfig,
    InvalidPlacement,
    PlacementCheck,
    RejectionReason,
    SavedSchedule,
    ScheduleSnapshot,
    SlotRef,
    SlotState,
)

__all__ = [
    "Activity",
    "ConstraintConfig",
    "DuplicateNameError",
    "InvalidPlacement",
    "MalformedImportError",
    "PERIODS",
    "PERIODS_PER_DAY",
    "PlacementCheck",
    "PlannerError",
    "ReferentialError",
    "RejectionReason",
    "SavedSchedule",
    "ScheduleSnapshot",
    "SlotRef",
    "SlotState",
    "SolverUnavailableError",
    "StorageFailure",
    "StorageFailureKind",
    "Weekday",
    "format_date",
    "monday_of",
    "next_monday",
    "parse_date",
    "week_dates",
    "weekday_of",
]
