"""Core domain models for the period planner.

The placement grid is a plain nested mapping::

    week_offset -> "YYYY-MM-DD" -> period (1..8) -> activity name or None

The unavailability overlay uses the same shape with booleans. Both are kept as
dicts so snapshots can be deep-copied and serialized without adapters.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from periodplanner.domain.calendar import Weekday, format_date, parse_date

PERIODS_PER_DAY = 8
PERIODS = range(1, PERIODS_PER_DAY + 1)

DayGrid = dict[int, Optional[str]]
WeekGrid = dict[str, DayGrid]
ScheduleWeeks = dict[int, WeekGrid]
DayAvailability = dict[int, bool]
WeekAvailability = dict[str, DayAvailability]
UnavailabilityOverlay = dict[int, WeekAvailability]


def check_period(period: int) -> int:
    """Return ``period`` unchanged, or raise if it is not in 1..8.

    Raises:
        ValueError: If the period number is outside the school day.
    """
    if isinstance(period, bool) or not isinstance(period, int) or period not in PERIODS:
        raise ValueError(f"Period must be an integer in 1..{PERIODS_PER_DAY}, got {period!r}")
    return period


def empty_day() -> DayGrid:
    """A day with every period free."""
    return {p: None for p in PERIODS}


def empty_week(date_strs: list[str]) -> WeekGrid:
    """A week grid with every period of every date free."""
    return {d: empty_day() for d in date_strs}


@dataclass
class Activity:
    """A recurring class with fixed blackout periods.

    Attributes:
        name: Unique catalog key.
        conflicts: Blackout periods per weekday. These can never be scheduled.
    """

    name: str
    conflicts: dict[Weekday, set[int]] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Activity name must not be empty")
        for periods in self.conflicts.values():
            for period in periods:
                check_period(period)

    @property
    def blackout_count(self) -> int:
        """Total blackout periods summed across all weekdays."""
        return sum(len(periods) for periods in self.conflicts.values())

    def has_conflict(self, weekday: Weekday, period: int) -> bool:
        return period in self.conflicts.get(weekday, set())

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "conflicts": {
                day.value: sorted(periods)
                for day, periods in self.conflicts.items()
                if periods
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Activity":
        conflicts = {
            Weekday(day): set(int(p) for p in periods)
            for day, periods in data.get("conflicts", {}).items()
        }
        return cls(name=data["name"], conflicts=conflicts)


@dataclass(frozen=True)
class ConstraintConfig:
    """Aggregate load limits for the schedule.

    Instances are immutable; a change of limits replaces the whole object.

    Attributes:
        max_consecutive_classes: Longest allowed run of back-to-back periods.
        max_classes_per_day: Most classes on a single date.
        min_classes_per_week: Target minimum per week (reported, not enforced).
        max_classes_per_week: Most classes in a single week.
    """

    max_consecutive_classes: int = 2
    max_classes_per_day: int = 4
    min_classes_per_week: int = 12
    max_classes_per_week: int = 16

    def __post_init__(self):
        for name, value in self.to_dict().items():
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        if self.max_classes_per_week < self.min_classes_per_week:
            raise ValueError(
                "max_classes_per_week must be greater than or equal to min_classes_per_week"
            )

    def tightens(self, current: "ConstraintConfig") -> list[str]:
        """Names of the caps this config lowers relative to ``current``."""
        fields = ("max_consecutive_classes", "max_classes_per_day", "max_classes_per_week")
        return [f for f in fields if getattr(self, f) < getattr(current, f)]

    def to_dict(self) -> dict[str, int]:
        return {
            "max_consecutive_classes": self.max_consecutive_classes,
            "max_classes_per_day": self.max_classes_per_day,
            "min_classes_per_week": self.min_classes_per_week,
            "max_classes_per_week": self.max_classes_per_week,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConstraintConfig":
        defaults = cls()
        return cls(**{key: int(data.get(key, value)) for key, value in defaults.to_dict().items()})


class RejectionReason(Enum):
    """Why a placement is not allowed."""

    SLOT_OCCUPIED = "slot_occupied"
    WEEKEND = "weekend"
    BLACKOUT = "blackout"
    UNAVAILABLE = "unavailable"
    CONSECUTIVE_LIMIT = "consecutive_limit"
    DAILY_LIMIT = "daily_limit"
    WEEKLY_LIMIT = "weekly_limit"
    INVALID_COMBINATION = "invalid_combination"

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self]


REJECTION_MESSAGES = {
    RejectionReason.SLOT_OCCUPIED: "Time slot is already occupied",
    RejectionReason.WEEKEND: "Classes cannot be scheduled on weekends",
    RejectionReason.BLACKOUT: "Class has a conflict during this period",
    RejectionReason.UNAVAILABLE: "Teacher is unavailable during this period",
    RejectionReason.CONSECUTIVE_LIMIT: "Would exceed maximum consecutive classes",
    RejectionReason.DAILY_LIMIT: "Would exceed maximum classes per day",
    RejectionReason.WEEKLY_LIMIT: "Would exceed maximum classes per week",
    RejectionReason.INVALID_COMBINATION: "Constraint values are inconsistent",
}


@dataclass(frozen=True)
class PlacementCheck:
    """Outcome of a placement check. A rejection is data, not an exception."""

    valid: bool
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls) -> "PlacementCheck":
        return cls(valid=True)

    @classmethod
    def reject(cls, reason: RejectionReason, message: Optional[str] = None) -> "PlacementCheck":
        return cls(valid=False, reason=reason, message=message or reason.message)

    @property
    def needs_confirmation(self) -> bool:
        """True when only the unavailability overlay stands in the way."""
        return self.reason == RejectionReason.UNAVAILABLE

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class SlotRef:
    """A (date, period) cell of the grid."""

    date_str: str
    period: int


class SlotState(Enum):
    """How a slot should be presented for a selected activity."""

    AVAILABLE = "available"
    NEEDS_CONFIRMATION = "needs_confirmation"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class InvalidPlacement:
    """An existing placement that breaks a (proposed) constraint."""

    activity_name: str
    date_str: str
    period: int
    reason: RejectionReason
    week_offset: int = 0

    @property
    def message(self) -> str:
        return self.reason.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "activity_name": self.activity_name,
            "date_str": self.date_str,
            "period": self.period,
            "reason": self.reason.value,
            "week_offset": self.week_offset,
        }


def weeks_to_dict(weeks: ScheduleWeeks) -> dict[str, Any]:
    """JSON-friendly form of a grid or overlay (string keys throughout)."""
    return {
        str(offset): {
            date_str: {str(period): value for period, value in day.items()}
            for date_str, day in week.items()
        }
        for offset, week in weeks.items()
    }


def weeks_from_dict(data: dict[str, Any]) -> dict:
    """Inverse of :func:`weeks_to_dict`."""
    return {
        int(offset): {
            date_str: {int(period): value for period, value in day.items()}
            for date_str, day in week.items()
        }
        for offset, week in data.items()
    }


@dataclass
class ScheduleSnapshot:
    """A detached copy of everything the store owns.

    Snapshots never share mutable structure with a live store.
    """

    weeks: ScheduleWeeks
    activities: list[Activity]
    config: ConstraintConfig
    unavailability: UnavailabilityOverlay
    start_date: date
    current_week_offset: int = 0

    @property
    def class_count(self) -> int:
        return sum(
            1
            for week in self.weeks.values()
            for day in week.values()
            for name in day.values()
            if name
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "weeks": weeks_to_dict(self.weeks),
            "activities": [a.to_dict() for a in self.activities],
            "config": self.config.to_dict(),
            "unavailability": weeks_to_dict(self.unavailability),
            "start_date": format_date(self.start_date),
            "current_week_offset": self.current_week_offset,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduleSnapshot":
        return cls(
            weeks=weeks_from_dict(data.get("weeks", {})),
            activities=[Activity.from_dict(a) for a in data.get("activities", [])],
            config=ConstraintConfig.from_dict(data.get("config", {})),
            unavailability=weeks_from_dict(data.get("unavailability", {})),
            start_date=parse_date(data["start_date"]),
            current_week_offset=int(data.get("current_week_offset", 0)),
        )


@dataclass
class SavedSchedule:
    """A named, timestamped snapshot kept for later restore.

    Only ``name``, ``description`` and ``last_modified`` change after creation.
    """

    id: str
    name: str
    description: str
    created_at: datetime
    last_modified: datetime
    snapshot: ScheduleSnapshot

    @property
    def start_date(self) -> date:
        return self.snapshot.start_date

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
            "last_modified": self.last_modified.isoformat(),
            "snapshot": self.snapshot.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SavedSchedule":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            created_at=datetime.fromisoformat(data["created_at"]),
            last_modified=datetime.fromisoformat(data["last_modified"]),
            snapshot=ScheduleSnapshot.from_dict(data["snapshot"]),
        )
