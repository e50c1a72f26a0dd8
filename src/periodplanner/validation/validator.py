"""Placement validation bound to a schedule store.

This is the single place the UI layer asks whether a placement is legal and
which placements a tighter configuration would invalidate.
"""

from typing import TYPE_CHECKING

from loguru import logger

from periodplanner.domain.models import ConstraintConfig, InvalidPlacement, PlacementCheck
from periodplanner.validation.rules import check_placement, find_week_invalid_placements

if TYPE_CHECKING:
    from periodplanner.scheduling.store import ScheduleStore


class PlacementValidator:
    """Checks placements against a store's active week and committed config.

    The validator reads the store on every call and never writes to it.

    Example:
        >>> validator = PlacementValidator(store)
        >>> validator.is_valid_placement("PK207", "2024-01-15", 3).valid
        True
    """

    def __init__(self, store: "ScheduleStore"):
        self.store = store

    def is_valid_placement(
        self,
        activity_name: str,
        date_str: str,
        period: int,
        ignore_unavailability: bool = False,
    ) -> PlacementCheck:
        """Check a single placement in the active week.

        Args:
            activity_name: Catalog name of the activity. Unknown names are
                checked as if they had no blackouts.
            date_str: Target date as ``YYYY-MM-DD``.
            period: Target period, 1..8.
            ignore_unavailability: Skip the unavailability check once the
                user has confirmed the override.

        Returns:
            PlacementCheck with the first failing reason, if any.

        Raises:
            ValueError: If the period or date is malformed.
        """
        check = check_placement(
            self.store.get_activity(activity_name),
            date_str,
            period,
            self.store.current_week(),
            self.store.config,
            self.store.current_unavailability(),
            ignore_unavailability=ignore_unavailability,
        )
        if not check.valid:
            logger.debug(
                "Placement rejected",
                activity=activity_name,
                date=date_str,
                period=period,
                reason=check.reason.value,
            )
        return check

    def find_invalid_placements(self, new_config: ConstraintConfig) -> list[InvalidPlacement]:
        """Placements in the active week that ``new_config`` would invalidate.

        Only caps that ``new_config`` lowers are evaluated. A placement may be
        listed once per cap it breaks.
        """
        invalid = find_week_invalid_placements(
            self.store.current_week(),
            self.store.config,
            new_config,
            week_offset=self.store.current_week_offset,
        )
        logger.info(
            "Checked tightened constraints",
            week_offset=self.store.current_week_offset,
            tightened=new_config.tightens(self.store.config),
            invalid=len(invalid),
        )
        return invalid
