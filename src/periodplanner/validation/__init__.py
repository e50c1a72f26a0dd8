"""Placement rules and the store-bound validator."""

from periodplanner.validation.rules import (
    AuditResult,
    ConstraintViolation,
    audit_schedule,
    check_config_combination,
    check_placement,
    count_adjacent_run,
    find_invalid_placements,
    find_week_invalid_placements,
)
from periodplanner.validation.validator import PlacementValidator

__all__ = [
    "AuditResult",
    "ConstraintViolation",
    "PlacementValidator",
    "audit_schedule",
    "check_config_combination",
    "check_placement",
    "count_adjacent_run",
    "find_invalid_placements",
    "find_week_invalid_placements",
]
