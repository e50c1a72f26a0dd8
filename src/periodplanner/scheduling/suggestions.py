"""Slot highlighting and next-activity suggestions."""

from typing import Collection, Optional

from periodplanner.domain.models import PERIODS, Activity, SlotRef, SlotState
from periodplanner.scheduling.store import ScheduleStore
from periodplanner.validation.validator import PlacementValidator


class SuggestionEngine:
    """Answers "where can this go?" and "what should I place next?".

    Both questions are scoped to the store's active week.
    """

    def __init__(self, store: ScheduleStore, validator: Optional[PlacementValidator] = None):
        self.store = store
        self.validator = validator or PlacementValidator(store)

    def available_slots(self, activity_name: str) -> list[SlotRef]:
        """Every slot of the active week where the activity can be placed now."""
        return [
            SlotRef(date_str, period)
            for date_str in self.store.current_week_dates()
            for period in PERIODS
            if self.validator.is_valid_placement(activity_name, date_str, period).valid
        ]

    def slot_states(self, activity_name: str) -> dict[SlotRef, SlotState]:
        """Classify every slot of the active week for highlighting.

        A slot blocked only by the unavailability overlay is
        ``NEEDS_CONFIRMATION``: placement is allowed once the user confirms.
        """
        states = {}
        for date_str in self.store.current_week_dates():
            for period in PERIODS:
                check = self.validator.is_valid_placement(activity_name, date_str, period)
                if check.valid:
                    state = SlotState.AVAILABLE
                elif check.needs_confirmation and self.validator.is_valid_placement(
                    activity_name, date_str, period, ignore_unavailability=True
                ).valid:
                    state = SlotState.NEEDS_CONFIRMATION
                else:
                    state = SlotState.BLOCKED
                states[SlotRef(date_str, period)] = state
        return states

    def suggest_next(self, exclude: Collection[str] = ()) -> Optional[Activity]:
        """The unplaced activity with the most blackout periods.

        Ties go to the activity that comes first in the catalog. Returns None
        once every activity has been placed somewhere.

        Args:
            exclude: Names to leave out, such as activities with no legal slot.
        """
        best: Optional[Activity] = None
        for activity in self.store.unscheduled_activities():
            if activity.name in exclude:
                continue
            if best is None or activity.blackout_count > best.blackout_count:
                best = activity
        return best
