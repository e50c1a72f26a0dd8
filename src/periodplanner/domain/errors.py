"""Error types raised by the planner.

Placement rejections are not errors; they come back as
:class:`~periodplanner.domain.models.PlacementCheck` results. The exceptions
here cover user-initiated operations that cannot complete and failures at the
storage and import boundaries.
"""

from enum import Enum
from typing import Optional


class PlannerError(Exception):
    """Base class for all planner errors."""


class ReferentialError(PlannerError):
    """An activity cannot be deleted while placements still reference it."""

    def __init__(self, activity_name: str, placement_count: int = 0):
        self.activity_name = activity_name
        self.placement_count = placement_count
        super().__init__(
            f"Cannot delete '{activity_name}': it is scheduled in "
            f"{placement_count} slot(s). Remove those placements first."
        )


class DuplicateNameError(PlannerError):
    """A catalog entry or saved schedule with this name already exists."""

    def __init__(self, name: str, kind: str = "activity"):
        self.name = name
        self.kind = kind
        super().__init__(f"A {kind} named '{name}' already exists")


class StorageFailureKind(Enum):
    """Why a persistence operation failed."""

    QUOTA_EXCEEDED = "quota_exceeded"
    UNREADABLE = "unreadable"
    OTHER = "other"


class StorageFailure(PlannerError):
    """A persistence read or write failed. In-memory state is left untouched."""

    def __init__(
        self,
        key: str,
        kind: StorageFailureKind = StorageFailureKind.OTHER,
        detail: Optional[str] = None,
    ):
        self.key = key
        self.kind = kind
        self.detail = detail
        super().__init__(self.user_message)

    @property
    def user_message(self) -> str:
        if self.kind == StorageFailureKind.QUOTA_EXCEEDED:
            return "Storage is full. Delete some saved schedules and try again."
        if self.kind == StorageFailureKind.UNREADABLE:
            message = f"Failed to read '{self.key}'"
            return f"{message}: {self.detail}" if self.detail else message
        message = f"Failed to save '{self.key}'"
        if self.detail:
            message += f": {self.detail}"
        return message


class MalformedImportError(PlannerError):
    """An activity import source could not be read or parsed."""

    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"Could not import activities from {source}: {detail}")


class SolverUnavailableError(PlannerError):
    """A simulation strategy could not produce a usable result."""

    def __init__(self, status: str, detail: Optional[str] = None):
        self.status = status
        self.detail = detail
        message = f"Solver returned {status}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
