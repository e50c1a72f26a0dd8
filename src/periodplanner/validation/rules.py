"""Pure placement and invalidation rules.

Everything here works on plain grid mappings and a :class:`ConstraintConfig`;
nothing reads or writes a store. The bound :class:`PlacementValidator` and the
what-if simulator are thin layers over these functions.
"""

from dataclasses import dataclass, field
from typing import Optional

from periodplanner.domain.calendar import parse_date, weekday_of
from periodplanner.domain.models import (
    PERIODS,
    Activity,
    ConstraintConfig,
    DayGrid,
    InvalidPlacement,
    PlacementCheck,
    RejectionReason,
    ScheduleWeeks,
    WeekAvailability,
    WeekGrid,
    check_period,
)


def count_adjacent_run(day: DayGrid, period: int) -> int:
    """Count occupied periods directly adjacent to ``period`` on both sides.

    The slot itself is not counted. Each direction stops at the first empty
    period.
    """
    count = 0
    p = period - 1
    while p >= PERIODS.start and day.get(p):
        count += 1
        p -= 1
    p = period + 1
    while p < PERIODS.stop and day.get(p):
        count += 1
        p += 1
    return count


def count_day(day: DayGrid) -> int:
    return sum(1 for name in day.values() if name)


def count_week(week: WeekGrid) -> int:
    return sum(count_day(day) for day in week.values())


def count_all(weeks: ScheduleWeeks) -> int:
    return sum(count_week(week) for week in weeks.values())


def longest_run(day: DayGrid) -> int:
    """Length of the longest block of back-to-back occupied periods."""
    best = current = 0
    for period in PERIODS:
        if day.get(period):
            current += 1
            best = max(best, current)
        else:
            current = 0
    return best


def check_placement(
    activity: Optional[Activity],
    date_str: str,
    period: int,
    week: WeekGrid,
    config: ConstraintConfig,
    unavailable: Optional[WeekAvailability] = None,
    ignore_unavailability: bool = False,
) -> PlacementCheck:
    """Decide whether ``activity`` may go into ``(date_str, period)``.

    Checks run in a fixed order and the first failure wins: occupied slot,
    weekend, blackout, unavailability, consecutive run, daily count, weekly
    count. Counts never include the slot being evaluated.

    Args:
        activity: The activity to place. None is treated as an activity with
            no blackouts.
        date_str: Target date as ``YYYY-MM-DD``.
        period: Target period, 1..8.
        week: The week grid the date belongs to.
        config: Constraint limits to check against.
        unavailable: Unavailability overlay for the same week.
        ignore_unavailability: Skip the unavailability check. Callers set this
            only after the user confirmed the override.

    Raises:
        ValueError: If the period or date is malformed.
    """
    check_period(period)
    weekday = weekday_of(parse_date(date_str))
    day = week.get(date_str, {})

    if day.get(period):
        return PlacementCheck.reject(RejectionReason.SLOT_OCCUPIED)

    if weekday.is_weekend:
        return PlacementCheck.reject(RejectionReason.WEEKEND)

    if activity is not None and activity.has_conflict(weekday, period):
        return PlacementCheck.reject(RejectionReason.BLACKOUT)

    if not ignore_unavailability and unavailable and unavailable.get(date_str, {}).get(period):
        return PlacementCheck.reject(RejectionReason.UNAVAILABLE)

    if count_adjacent_run(day, period) >= config.max_consecutive_classes:
        return PlacementCheck.reject(
            RejectionReason.CONSECUTIVE_LIMIT,
            f"Would exceed maximum of {config.max_consecutive_classes} consecutive classes",
        )

    if count_day(day) >= config.max_classes_per_day:
        return PlacementCheck.reject(
            RejectionReason.DAILY_LIMIT,
            f"Would exceed maximum of {config.max_classes_per_day} classes per day",
        )

    if count_week(week) >= config.max_classes_per_week:
        return PlacementCheck.reject(
            RejectionReason.WEEKLY_LIMIT,
            f"Would exceed maximum of {config.max_classes_per_week} classes per week",
        )

    return PlacementCheck.ok()


def _occupied_descending(day: DayGrid) -> list[int]:
    return [p for p in reversed(PERIODS) if day.get(p)]


def _flag_daily_over_cap(
    date_str: str,
    day: DayGrid,
    cap: int,
    week_offset: int,
) -> list[InvalidPlacement]:
    """Flag a day's placements, latest period first, while the remaining count is at or over ``cap``.

    A day of {2,4,6,8} cut from 4 to 3 loses 8 and 6, leaving it below the
    new cap.
    """
    periods = _occupied_descending(day)
    flagged = []
    remaining = len(periods)
    if remaining <= cap:
        return flagged
    for period in periods:
        if remaining < cap:
            break
        flagged.append(
            InvalidPlacement(day[period], date_str, period, RejectionReason.DAILY_LIMIT, week_offset)
        )
        remaining -= 1
    return flagged


def _flag_weekly_excess(week: WeekGrid, cap: int, week_offset: int) -> list[InvalidPlacement]:
    """Flag exactly the placements over ``cap``, latest date and period first."""
    slots = [
        (date_str, p, week[date_str][p])
        for date_str in sorted(week, reverse=True)
        for p in _occupied_descending(week[date_str])
    ]
    excess = len(slots) - cap
    return [
        InvalidPlacement(name, date_str, period, RejectionReason.WEEKLY_LIMIT, week_offset)
        for date_str, period, name in slots[: max(0, excess)]
    ]


def _flag_long_runs(date_str: str, day: DayGrid, limit: int, week_offset: int) -> list[InvalidPlacement]:
    """Walk a day from period 1 and flag each placement that pushes a run past ``limit``.

    A flagged placement ends its run, so the count restarts after it.
    """
    flagged = []
    run = 0
    for period in PERIODS:
        name = day.get(period)
        if not name:
            run = 0
            continue
        run += 1
        if run > limit:
            flagged.append(
                InvalidPlacement(name, date_str, period, RejectionReason.CONSECUTIVE_LIMIT, week_offset)
            )
            run = 0
    return flagged


def find_week_invalid_placements(
    week: WeekGrid,
    current: ConstraintConfig,
    proposed: ConstraintConfig,
    week_offset: int = 0,
) -> list[InvalidPlacement]:
    """Placements in one week that break caps ``proposed`` lowers.

    Only caps strictly lower than in ``current`` are checked. Results are
    concatenated in the order consecutive, daily, weekly, so a placement can
    appear more than once.
    """
    invalid: list[InvalidPlacement] = []
    dates = sorted(week)

    if proposed.max_consecutive_classes < current.max_consecutive_classes:
        for date_str in dates:
            invalid.extend(
                _flag_long_runs(date_str, week[date_str], proposed.max_consecutive_classes, week_offset)
            )

    if proposed.max_classes_per_day < current.max_classes_per_day:
        for date_str in dates:
            invalid.extend(
                _flag_daily_over_cap(date_str, week[date_str], proposed.max_classes_per_day, week_offset)
            )

    if proposed.max_classes_per_week < current.max_classes_per_week:
        invalid.extend(_flag_weekly_excess(week, proposed.max_classes_per_week, week_offset))

    return invalid


def find_invalid_placements(
    weeks: ScheduleWeeks,
    current: ConstraintConfig,
    proposed: ConstraintConfig,
) -> list[InvalidPlacement]:
    """Run :func:`find_week_invalid_placements` over every week, in offset order."""
    invalid: list[InvalidPlacement] = []
    for offset in sorted(weeks):
        invalid.extend(find_week_invalid_placements(weeks[offset], current, proposed, offset))
    return invalid


@dataclass
class ConstraintViolation:
    """An existing breach of the committed constraints."""

    reason: str
    week_offset: int
    message: str
    date_str: Optional[str] = None


@dataclass
class AuditResult:
    """Result of auditing a whole schedule against its own constraints."""

    violations: list[ConstraintViolation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def by_reason(self, reason: str) -> list[ConstraintViolation]:
        return [v for v in self.violations if v.reason == reason]


def audit_schedule(weeks: ScheduleWeeks, config: ConstraintConfig) -> AuditResult:
    """Report every constraint the current schedule breaks.

    Unlike placement checks, this also reports weeks that have some classes
    but fewer than ``min_classes_per_week``.
    """
    result = AuditResult()
    for offset in sorted(weeks):
        week = weeks[offset]
        for date_str in sorted(week):
            day = week[date_str]
            run = longest_run(day)
            if run > config.max_consecutive_classes:
                result.violations.append(
                    ConstraintViolation(
                        "consecutive",
                        offset,
                        f"{date_str}: {run} consecutive classes exceeds maximum of "
                        f"{config.max_consecutive_classes}",
                        date_str,
                    )
                )
            total = count_day(day)
            if total > config.max_classes_per_day:
                result.violations.append(
                    ConstraintViolation(
                        "daily",
                        offset,
                        f"{date_str}: {total} classes exceeds daily maximum of "
                        f"{config.max_classes_per_day}",
                        date_str,
                    )
                )

        weekly = count_week(week)
        if weekly > config.max_classes_per_week:
            result.violations.append(
                ConstraintViolation(
                    "weekly_max",
                    offset,
                    f"Week {offset}: {weekly} classes exceeds weekly maximum of "
                    f"{config.max_classes_per_week}",
                )
            )
        elif 0 < weekly < config.min_classes_per_week:
            result.violations.append(
                ConstraintViolation(
                    "weekly_min",
                    offset,
                    f"Week {offset}: {weekly} classes is below weekly minimum of "
                    f"{config.min_classes_per_week}",
                )
            )
    return result


def check_config_combination(config: ConstraintConfig) -> PlacementCheck:
    """Reject limit combinations that can never be satisfied together."""
    if config.max_classes_per_day < config.max_consecutive_classes:
        return PlacementCheck.reject(
            RejectionReason.INVALID_COMBINATION,
            "Maximum classes per day cannot be less than maximum consecutive classes",
        )
    return PlacementCheck.ok()
