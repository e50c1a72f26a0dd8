"""Tests for the suggestion engine."""

from datetime import date

import pytest

from periodplanner.domain.calendar import Weekday
from periodplanner.domain.models import Activity, ConstraintConfig, SlotRef, SlotState
from periodplanner.scheduling.store import ScheduleStore
from periodplanner.scheduling.suggestions import SuggestionEngine

MONDAY = date(2024, 1, 15)
MON = "2024-01-15"


def activity_with_blackouts(name: str, count: int) -> Activity:
    """Activity blacked out on the first ``count`` periods of Monday/Tuesday."""
    mon = set(range(1, min(count, 8) + 1))
    tue = set(range(1, count - len(mon) + 1))
    conflicts = {Weekday.MONDAY: mon}
    if tue:
        conflicts[Weekday.TUESDAY] = tue
    return Activity(name, conflicts)


class TestSuggestNext:
    """Tests for SuggestionEngine.suggest_next."""

    @pytest.fixture
    def store(self):
        store = ScheduleStore(start_date=MONDAY)
        for name, count in (("low", 3), ("high", 7), ("min", 1)):
            store.add_activity(activity_with_blackouts(name, count))
        return store

    def test_picks_most_constrained(self, store):
        assert SuggestionEngine(store).suggest_next().name == "high"

    def test_only_unplaced_considered(self, store):
        store.schedule_activity("high", "2024-01-17", 1)
        assert SuggestionEngine(store).suggest_next().name == "low"

    def test_placement_in_other_week_counts(self, store):
        store.change_week(1)
        store.schedule_activity("high", "2024-01-24", 1)
        store.change_week(-1)
        assert SuggestionEngine(store).suggest_next().name == "low"

    def test_ties_keep_catalog_order(self):
        store = ScheduleStore(start_date=MONDAY)
        store.add_activity(activity_with_blackouts("first", 2))
        store.add_activity(activity_with_blackouts("second", 2))
        assert SuggestionEngine(store).suggest_next().name == "first"

    def test_excluded_names_skipped(self, store):
        assert SuggestionEngine(store).suggest_next(exclude=["high"]).name == "low"
        assert SuggestionEngine(store).suggest_next(exclude=["high", "low", "min"]) is None

    def test_none_when_all_placed(self, store):
        for period, name in enumerate(("low", "high", "min"), start=1):
            store.schedule_activity(name, "2024-01-19", period * 2)
        assert SuggestionEngine(store).suggest_next() is None


class TestSlots:
    """Tests for slot enumeration and classification."""

    @pytest.fixture
    def store(self):
        store = ScheduleStore(start_date=MONDAY)
        store.add_activity(Activity("X", {Weekday.MONDAY: {1}}))
        return store

    def test_available_slots_skip_blackouts(self, store):
        slots = SuggestionEngine(store).available_slots("X")
        assert SlotRef(MON, 1) not in slots
        assert SlotRef(MON, 2) in slots
        assert len(slots) == 39

    def test_available_slots_empty_when_week_full(self, store):
        store.update_config(ConstraintConfig(min_classes_per_week=0, max_classes_per_week=1))
        store.schedule_activity("X", MON, 5)
        assert SuggestionEngine(store).available_slots("X") == []

    def test_slot_states(self, store):
        store.mark_unavailable(MON, 3)
        store.mark_unavailable(MON, 1)
        states = SuggestionEngine(store).slot_states("X")

        assert states[SlotRef(MON, 1)] == SlotState.BLOCKED
        assert states[SlotRef(MON, 3)] == SlotState.NEEDS_CONFIRMATION
        assert states[SlotRef(MON, 4)] == SlotState.AVAILABLE
        assert len(states) == 40
