"""Schedule store: the single owner of mutable planner state.

The store holds the placement grid, the activity catalog, the unavailability
overlay, the active constraint configuration and the saved-schedule list. It
does not validate placements; callers check with
:class:`~periodplanner.validation.validator.PlacementValidator` first.
"""

import copy
import json
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

from loguru import logger

from periodplanner.domain.calendar import format_date, monday_of, next_monday, parse_date, week_date_strings
from periodplanner.domain.errors import (
    DuplicateNameError,
    MalformedImportError,
    ReferentialError,
    StorageFailure,
)
from periodplanner.domain.models import (
    Activity,
    ConstraintConfig,
    InvalidPlacement,
    PlacementCheck,
    SavedSchedule,
    ScheduleSnapshot,
    ScheduleWeeks,
    UnavailabilityOverlay,
    WeekAvailability,
    WeekGrid,
    check_period,
    empty_day,
    weeks_from_dict,
    weeks_to_dict,
)
from periodplanner.importing.activity_csv import load_activities_file, parse_activities
from periodplanner.storage.backends import InMemoryStore, KeyValueStore, StorageKey
from periodplanner.validation.rules import check_config_combination


class PersistenceMode(Enum):
    """When grid placements are written to the backend."""

    MANUAL_FLUSH = "manual_flush"  # Caller invokes flush_schedule()
    WRITE_THROUGH = "write_through"  # Every grid mutation is persisted


class RestoreMode(Enum):
    """How a saved schedule is brought back."""

    FULL = "full"  # Replace catalog, grid, config and overlay
    ADAPT = "adapt"  # Keep current catalog, drop placements it cannot support


@dataclass
class ActivityDifferences:
    """Catalog differences between a saved schedule and the live catalog."""

    missing: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)

    @property
    def has_differences(self) -> bool:
        return bool(self.missing or self.modified or self.added)


@dataclass
class ImportOutcome:
    """Result of replacing the catalog from an import source."""

    activities: list[Activity]
    error: Optional[MalformedImportError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ScheduleStore:
    """Owns all planner state and persists it through a key-value backend.

    Catalog, config, overlay and saved schedules are written on every change.
    Grid placements follow ``mode``.

    Args:
        persistence: Backend for persisted state. Defaults to an in-memory store.
        start_date: Schedule start. Normalized to its week's Monday. Defaults to
            the Monday after ``today``.
        config: Initial constraint configuration.
        mode: Grid persistence policy.
        today: Reference date for the default start date.
        clock: Source of timestamps for saved schedules.
    """

    def __init__(
        self,
        persistence: Optional[KeyValueStore] = None,
        start_date: Optional[date] = None,
        config: Optional[ConstraintConfig] = None,
        mode: PersistenceMode = PersistenceMode.MANUAL_FLUSH,
        today: Optional[date] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.persistence = persistence if persistence is not None else InMemoryStore()
        self.mode = mode
        self.clock = clock
        self.last_storage_error: Optional[StorageFailure] = None

        if start_date is not None:
            self._start_date = monday_of(start_date)
        else:
            self._start_date = next_monday(today or date.today())
        self._current_offset = 0
        self._weeks: ScheduleWeeks = {}
        self._activities: dict[str, Activity] = {}
        self._config = config or ConstraintConfig()
        self._unavailability: UnavailabilityOverlay = {}
        self._saved: list[SavedSchedule] = []
        self._ensure_week(0)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def start_date(self) -> date:
        return self._start_date

    @property
    def current_week_offset(self) -> int:
        return self._current_offset

    @property
    def config(self) -> ConstraintConfig:
        return self._config

    @property
    def activities(self) -> list[Activity]:
        """Catalog in insertion order."""
        return list(self._activities.values())

    def get_activity(self, name: str) -> Optional[Activity]:
        return self._activities.get(name)

    def current_week_dates(self) -> list[str]:
        return week_date_strings(self._start_date, self._current_offset)

    def current_week(self) -> WeekGrid:
        """The active week's grid, restricted to its Monday..Friday dates.

        Day mappings are live; treat them as read-only.
        """
        return self._week_view(self._current_offset)

    def weeks(self) -> ScheduleWeeks:
        """Every week's grid. Live mappings; treat them as read-only."""
        return self._weeks

    def current_unavailability(self) -> WeekAvailability:
        return self._unavailability.get(self._current_offset, {})

    def is_unavailable(self, date_str: str, period: int) -> bool:
        return bool(self.current_unavailability().get(date_str, {}).get(period))

    def snapshot(self) -> ScheduleSnapshot:
        """Deep copy of all state. Never aliases the live store.

        Each week is restricted to the dates it covers under the current start
        date, so placements left under an earlier start date are not copied.
        """
        weeks = {
            offset: {
                date_str: copy.deepcopy(week[date_str])
                for date_str in week_date_strings(self._start_date, offset)
                if date_str in week
            }
            for offset, week in self._weeks.items()
        }
        return ScheduleSnapshot(
            weeks=weeks,
            activities=copy.deepcopy(self.activities),
            config=self._config,
            unavailability=copy.deepcopy(self._unavailability),
            start_date=self._start_date,
            current_week_offset=self._current_offset,
        )

    # ------------------------------------------------------------------
    # Grid
    # ------------------------------------------------------------------

    def _ensure_week(self, offset: int) -> WeekGrid:
        week = self._weeks.setdefault(offset, {})
        for date_str in week_date_strings(self._start_date, offset):
            if date_str not in week:
                week[date_str] = empty_day()
        return week

    def _week_view(self, offset: int) -> WeekGrid:
        week = self._ensure_week(offset)
        return {d: week[d] for d in week_date_strings(self._start_date, offset)}

    def _active_day(self, date_str: str) -> dict[int, Optional[str]]:
        week = self.current_week()
        if date_str not in week:
            raise ValueError(
                f"{date_str} is not in the active week (offset {self._current_offset})"
            )
        return week[date_str]

    def schedule_activity(self, name: str, date_str: str, period: int) -> None:
        """Write ``name`` into a slot of the active week.

        No constraint checks are made and an existing occupant is overwritten.

        Raises:
            ValueError: If the activity is unknown, the date is not in the
                active week or the period is out of range.
        """
        check_period(period)
        if name not in self._activities:
            raise ValueError(f"Unknown activity: {name}")
        day = self._active_day(date_str)
        previous = day[period]
        day[period] = name
        logger.info(
            "Scheduled activity",
            activity=name,
            date=date_str,
            period=period,
            replaced=previous,
        )
        self._grid_changed()

    def unschedule_activity(self, date_str: str, period: int) -> None:
        """Clear a slot of the active week. Clearing an empty slot does nothing."""
        check_period(period)
        day = self._active_day(date_str)
        if day[period] is None:
            return
        logger.info("Unscheduled activity", activity=day[period], date=date_str, period=period)
        day[period] = None
        self._grid_changed()

    def change_week(self, direction: int) -> int:
        """Move the active week by one and return the new offset."""
        if direction not in (1, -1):
            raise ValueError(f"direction must be 1 or -1, got {direction!r}")
        self._current_offset += direction
        self._ensure_week(self._current_offset)
        logger.debug("Changed week", week_offset=self._current_offset)
        return self._current_offset

    def set_start_date(self, new_start: date) -> None:
        """Move the schedule start to the Monday of ``new_start``'s week.

        The active offset returns to 0. Placements already stored are kept.
        """
        self._start_date = monday_of(new_start)
        self._current_offset = 0
        self._ensure_week(0)
        logger.info("Start date changed", start_date=format_date(self._start_date))
        self._persist(StorageKey.START_DATE, format_date(self._start_date))

    def reset_week(self) -> None:
        """Clear every placement in the active week."""
        self._weeks.pop(self._current_offset, None)
        self._ensure_week(self._current_offset)
        logger.info("Reset week", week_offset=self._current_offset)
        self._grid_changed()

    def reset_all_weeks(self) -> None:
        """Drop every week's placements and return to week 0."""
        self._weeks = {}
        self._current_offset = 0
        self._ensure_week(0)
        logger.info("Reset all weeks")
        self._grid_changed()

    def placement_count(self, name: Optional[str] = None) -> int:
        """Placements across all weeks, optionally for one activity only."""
        return sum(
            1
            for week in self._weeks.values()
            for day in week.values()
            for occupant in day.values()
            if occupant and (name is None or occupant == name)
        )

    def current_week_count(self) -> int:
        return sum(1 for day in self.current_week().values() for occupant in day.values() if occupant)

    def is_referenced(self, name: str) -> bool:
        """True if any week places ``name``."""
        return self.placement_count(name) > 0

    def unscheduled_activities(self) -> list[Activity]:
        """Activities with no placement in any week, in catalog order."""
        placed = self._placed_names()
        return [a for a in self._activities.values() if a.name not in placed]

    def apply_constraint_change(
        self,
        invalid_placements: list[InvalidPlacement],
        proposed: ConstraintConfig,
    ) -> int:
        """Remove flagged placements, then commit ``proposed``.

        Placements are matched by week offset, date, period and activity name;
        entries that no longer match (or repeat) are skipped.

        Returns:
            Number of placements removed.
        """
        removed = 0
        for placement in invalid_placements:
            day = self._weeks.get(placement.week_offset, {}).get(placement.date_str)
            if day is not None and day.get(placement.period) == placement.activity_name:
                day[placement.period] = None
                removed += 1
        logger.info(
            "Applied constraint change",
            flagged=len(invalid_placements),
            removed=removed,
        )
        if removed:
            self._grid_changed()
        self._commit_config(proposed)
        return removed

    def flush_schedule(self) -> bool:
        """Persist the grid and start date now."""
        ok = self._persist(StorageKey.SCHEDULE, weeks_to_dict(self._weeks))
        return self._persist(StorageKey.START_DATE, format_date(self._start_date)) and ok

    def _grid_changed(self) -> None:
        if self.mode == PersistenceMode.WRITE_THROUGH:
            self.flush_schedule()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def add_activity(self, activity: Activity) -> None:
        if activity.name in self._activities:
            raise DuplicateNameError(activity.name)
        self._activities[activity.name] = activity
        logger.info("Added activity", activity=activity.name, blackouts=activity.blackout_count)
        self._persist_activities()

    def update_activity(self, name: str, activity: Activity) -> None:
        """Replace the activity called ``name``, keeping its catalog position.

        A rename rewrites the activity's placements in every week.
        """
        if name not in self._activities:
            raise ValueError(f"Unknown activity: {name}")
        if activity.name != name and activity.name in self._activities:
            raise DuplicateNameError(activity.name)

        self._activities = {
            (activity.name if key == name else key): (activity if key == name else value)
            for key, value in self._activities.items()
        }
        if activity.name != name:
            for week in self._weeks.values():
                for day in week.values():
                    for period, occupant in day.items():
                        if occupant == name:
                            day[period] = activity.name
            self._grid_changed()
        logger.info("Updated activity", activity=name, new_name=activity.name)
        self._persist_activities()

    def delete_activity(self, name: str) -> None:
        """Remove an activity from the catalog.

        Raises:
            ReferentialError: If any week still places the activity.
        """
        if name not in self._activities:
            raise ValueError(f"Unknown activity: {name}")
        count = self.placement_count(name)
        if count:
            raise ReferentialError(name, count)
        del self._activities[name]
        logger.info("Deleted activity", activity=name)
        self._persist_activities()

    def replace_activities(self, activities: list[Activity]) -> None:
        """Swap in a whole new catalog."""
        names = [a.name for a in activities]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise DuplicateNameError(sorted(duplicates)[0])
        orphaned = self._placed_names() - set(names)
        if orphaned:
            logger.warning(
                "New catalog does not cover scheduled activities",
                activities=sorted(orphaned),
            )
        self._activities = {a.name: a for a in activities}
        logger.info("Replaced activity catalog", count=len(activities))
        self._persist_activities()

    def import_activities(self, text: str) -> ImportOutcome:
        """Replace the catalog from CSV text, keeping it on a parse failure."""
        try:
            activities = parse_activities(text)
        except MalformedImportError as e:
            logger.error("Activity import failed", error=str(e))
            return ImportOutcome(activities=self.activities, error=e)
        self.replace_activities(activities)
        return ImportOutcome(activities=self.activities)

    def import_activities_file(self, path: Union[str, Path], retries: int = 2) -> ImportOutcome:
        """Replace the catalog from a CSV file, keeping it if the file is unreadable."""
        try:
            activities = load_activities_file(path, retries=retries)
        except MalformedImportError as e:
            logger.error("Activity import failed", path=str(path), error=str(e))
            return ImportOutcome(activities=self.activities, error=e)
        self.replace_activities(activities)
        return ImportOutcome(activities=self.activities)

    def _placed_names(self) -> set[str]:
        return {
            occupant
            for week in self._weeks.values()
            for day in week.values()
            for occupant in day.values()
            if occupant
        }

    # ------------------------------------------------------------------
    # Unavailability overlay
    # ------------------------------------------------------------------

    def _check_active_slot(self, date_str: str, period: int) -> None:
        check_period(period)
        if date_str not in self.current_week_dates():
            raise ValueError(
                f"{date_str} is not in the active week (offset {self._current_offset})"
            )

    def mark_unavailable(self, date_str: str, period: int) -> None:
        self._check_active_slot(date_str, period)
        week = self._unavailability.setdefault(self._current_offset, {})
        week.setdefault(date_str, {})[period] = True
        logger.info("Marked unavailable", date=date_str, period=period)
        self._persist_unavailability()

    def clear_unavailable(self, date_str: str, period: int) -> None:
        self._check_active_slot(date_str, period)
        day = self._unavailability.get(self._current_offset, {}).get(date_str)
        if not day or not day.get(period):
            return
        del day[period]
        logger.info("Cleared unavailability", date=date_str, period=period)
        self._persist_unavailability()

    def toggle_unavailable(self, date_str: str, period: int) -> bool:
        """Flip a slot's unavailability and return the new state."""
        if self.is_unavailable(date_str, period):
            self.clear_unavailable(date_str, period)
            return False
        self.mark_unavailable(date_str, period)
        return True

    # ------------------------------------------------------------------
    # Constraint configuration
    # ------------------------------------------------------------------

    def update_config(self, config: ConstraintConfig) -> PlacementCheck:
        """Commit a new configuration wholesale.

        Returns:
            A rejection, with nothing committed, if the limits contradict each
            other; otherwise an accepted check.
        """
        check = check_config_combination(config)
        if not check.valid:
            logger.warning("Rejected constraint configuration", reason=check.message)
            return check
        self._commit_config(config)
        return check

    def _commit_config(self, config: ConstraintConfig) -> None:
        self._config = config
        logger.info("Committed constraint configuration", **config.to_dict())
        self._persist(StorageKey.CONFIG, config.to_dict())

    # ------------------------------------------------------------------
    # Saved schedules
    # ------------------------------------------------------------------

    def saved_schedules(self) -> list[SavedSchedule]:
        return list(self._saved)

    def get_saved_schedule(self, schedule_id: str) -> SavedSchedule:
        for saved in self._saved:
            if saved.id == schedule_id:
                return saved
        raise KeyError(f"No saved schedule with id {schedule_id}")

    def _check_saved_name(self, name: str, exclude_id: Optional[str] = None) -> str:
        name = name.strip()
        if not name:
            raise ValueError("Saved schedule name must not be empty")
        for saved in self._saved:
            if saved.id != exclude_id and saved.name.lower() == name.lower():
                raise DuplicateNameError(name, kind="saved schedule")
        return name

    def save_schedule(self, name: str, description: str = "") -> SavedSchedule:
        """Store a named deep copy of the current state.

        Raises:
            DuplicateNameError: If a saved schedule already uses the name,
                compared case-insensitively.
        """
        name = self._check_saved_name(name)
        now = self.clock()
        saved = SavedSchedule(
            id=uuid.uuid4().hex,
            name=name,
            description=description.strip(),
            created_at=now,
            last_modified=now,
            snapshot=self.snapshot(),
        )
        self._saved.append(saved)
        logger.info("Saved schedule", schedule_id=saved.id, name=name)
        self._persist_saved()
        return saved

    def update_saved_schedule(
        self,
        schedule_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> SavedSchedule:
        """Edit a saved schedule's name or description."""
        saved = self.get_saved_schedule(schedule_id)
        if name is not None:
            saved.name = self._check_saved_name(name, exclude_id=schedule_id)
        if description is not None:
            saved.description = description.strip()
        saved.last_modified = self.clock()
        self._persist_saved()
        return saved

    def delete_saved_schedule(self, schedule_id: str) -> bool:
        before = len(self._saved)
        self._saved = [s for s in self._saved if s.id != schedule_id]
        if len(self._saved) == before:
            return False
        logger.info("Deleted saved schedule", schedule_id=schedule_id)
        self._persist_saved()
        return True

    def activity_differences(self, schedule_id: str) -> ActivityDifferences:
        """Compare a saved schedule's catalog with the live one."""
        saved_catalog = {a.name: a for a in self.get_saved_schedule(schedule_id).snapshot.activities}
        diff = ActivityDifferences()
        for name, activity in saved_catalog.items():
            current = self._activities.get(name)
            if current is None:
                diff.missing.append(name)
            elif current.conflicts != activity.conflicts:
                diff.modified.append(name)
        diff.added = [name for name in self._activities if name not in saved_catalog]
        return diff

    def restore_saved_schedule(
        self,
        schedule_id: str,
        mode: RestoreMode = RestoreMode.FULL,
    ) -> int:
        """Replace live state with a saved schedule.

        In ``ADAPT`` mode the current catalog is kept and placements of
        activities it does not contain are dropped.

        Returns:
            Number of placements dropped (always 0 in ``FULL`` mode).
        """
        snapshot = copy.deepcopy(self.get_saved_schedule(schedule_id).snapshot)
        dropped = 0

        if mode == RestoreMode.FULL:
            self._activities = {a.name: a for a in snapshot.activities}
        else:
            for week in snapshot.weeks.values():
                for day in week.values():
                    for period, occupant in day.items():
                        if occupant and occupant not in self._activities:
                            day[period] = None
                            dropped += 1

        self._weeks = snapshot.weeks
        self._unavailability = snapshot.unavailability
        self._config = snapshot.config
        self._start_date = snapshot.start_date
        self._current_offset = 0
        self._ensure_week(0)

        logger.info(
            "Restored saved schedule",
            schedule_id=schedule_id,
            mode=mode.value,
            dropped=dropped,
        )
        self._persist_activities()
        self._persist(StorageKey.CONFIG, self._config.to_dict())
        self._persist_unavailability()
        self.flush_schedule()
        return dropped

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _persist(self, key: str, payload: Any) -> bool:
        """Write one key. Failures are logged and recorded, never raised."""
        try:
            self.persistence.set(key, json.dumps(payload))
        except StorageFailure as e:
            self.last_storage_error = e
            logger.warning("Persistence failed", key=key, kind=e.kind.value, error=e.user_message)
            return False
        return True

    def _persist_activities(self) -> bool:
        return self._persist(StorageKey.ACTIVITIES, [a.to_dict() for a in self._activities.values()])

    def _persist_unavailability(self) -> bool:
        return self._persist(StorageKey.UNAVAILABILITY, weeks_to_dict(self._unavailability))

    def _persist_saved(self) -> bool:
        return self._persist(StorageKey.SAVED_SCHEDULES, [s.to_dict() for s in self._saved])

    def _read(self, key: str) -> Optional[Any]:
        try:
            raw = self.persistence.get(key)
        except StorageFailure as e:
            logger.warning("Ignoring unreadable stored value", key=key, error=e.user_message)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring unreadable stored value", key=key, error=str(e))
            return None

    def load(self) -> bool:
        """Restore persisted state. Unreadable entries are skipped.

        Returns:
            True if at least one key was restored.
        """
        loaders = {
            StorageKey.ACTIVITIES: lambda data: setattr(
                self, "_activities", {a.name: a for a in (Activity.from_dict(d) for d in data)}
            ),
            StorageKey.CONFIG: lambda data: setattr(self, "_config", ConstraintConfig.from_dict(data)),
            StorageKey.UNAVAILABILITY: lambda data: setattr(
                self, "_unavailability", weeks_from_dict(data)
            ),
            StorageKey.SCHEDULE: lambda data: setattr(self, "_weeks", weeks_from_dict(data)),
            StorageKey.START_DATE: lambda data: setattr(self, "_start_date", monday_of(parse_date(data))),
            StorageKey.SAVED_SCHEDULES: lambda data: setattr(
                self, "_saved", [SavedSchedule.from_dict(d) for d in data]
            ),
        }

        restored = 0
        for key, apply in loaders.items():
            data = self._read(key)
            if data is None:
                continue
            try:
                apply(data)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Ignoring malformed stored value", key=key, error=str(e))
                continue
            restored += 1

        self._current_offset = 0
        self._ensure_week(0)
        logger.info("Loaded planner state", keys=restored)
        return restored > 0
