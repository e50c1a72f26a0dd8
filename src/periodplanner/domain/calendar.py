"""Calendar helpers for the Monday-start school week.

Dates are always handled as ``datetime.date`` values built from local
calendar fields. String forms use ``YYYY-MM-DD`` and are parsed back from the
``(year, month, day)`` triple, so week-offset arithmetic never depends on a
timezone.
"""

from datetime import date, timedelta
from enum import Enum

SCHOOL_DAYS_PER_WEEK = 5


class Weekday(Enum):
    """Days of the week, Monday first (matches ``date.weekday()``)."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @property
    def is_weekend(self) -> bool:
        return self in (Weekday.SATURDAY, Weekday.SUNDAY)

    @classmethod
    def school_days(cls) -> list["Weekday"]:
        """Monday through Friday, in order."""
        return list(cls)[:SCHOOL_DAYS_PER_WEEK]


_WEEKDAYS = list(Weekday)


def weekday_of(d: date) -> Weekday:
    """Return the weekday of a date."""
    return _WEEKDAYS[d.weekday()]


def monday_of(d: date) -> date:
    """Return the Monday of the calendar week containing ``d``.

    Sunday belongs to the week that started six days earlier.
    """
    return d - timedelta(days=d.weekday())


def next_monday(today: date) -> date:
    """Return the first Monday strictly after ``today``.

    This is the rule used for a fresh schedule's default start date: Sunday
    moves forward one day and Monday moves forward a full week. It differs
    from :func:`monday_of`, which never moves forward.
    """
    return today + timedelta(days=7 - today.weekday())


def format_date(d: date) -> str:
    """Format a date as ``YYYY-MM-DD`` from its calendar fields."""
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_date(date_str: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a date.

    Raises:
        ValueError: If the string is not a valid calendar date.
    """
    parts = date_str.split("-")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid date string: {date_str!r}")
    year, month, day = (int(p) for p in parts)
    return date(year, month, day)


def week_dates(start_monday: date, offset: int = 0) -> list[date]:
    """Return Monday..Friday of the week ``offset`` weeks after ``start_monday``.

    A start date that is not a Monday is snapped back to its week's Monday
    before the dates are generated.
    """
    week_start = start_monday + timedelta(weeks=offset)
    if week_start.weekday() != 0:
        week_start = monday_of(week_start)
    return [week_start + timedelta(days=i) for i in range(SCHOOL_DAYS_PER_WEEK)]


def week_date_strings(start_monday: date, offset: int = 0) -> list[str]:
    """Formatted variant of :func:`week_dates`."""
    return [format_date(d) for d in week_dates(start_monday, offset)]
