"""CSV import and export of the activity catalog.

Expected layout, one header row followed by one row per activity::

    Class,Monday,Tuesday,Wednesday,Thursday,Friday
    PK207,2,2,4,3,"1,3"

Each weekday cell lists blackout periods separated by commas, quoted when
there is more than one.
"""

import csv
import io
import time
from pathlib import Path
from typing import Union

from loguru import logger

from periodplanner.domain.calendar import Weekday
from periodplanner.domain.errors import MalformedImportError
from periodplanner.domain.models import PERIODS, Activity

CSV_COLUMNS = ["Class"] + [day.value for day in Weekday.school_days()]


def _parse_periods(cell: str, activity_name: str, weekday: Weekday) -> set[int]:
    periods = set()
    for token in cell.replace('"', "").split(","):
        token = token.strip()
        if not token:
            continue
        if not token.isdigit() or int(token) not in PERIODS:
            logger.warning(
                "Ignoring invalid blackout period",
                activity=activity_name,
                weekday=weekday.value,
                token=token,
            )
            continue
        periods.add(int(token))
    return periods


def parse_activities(text: str) -> list[Activity]:
    """Parse CSV text into activities.

    The first line is always treated as a header. Rows with fewer than six
    columns are dropped, as are rows with an empty name. A name that appears
    twice keeps its first row.

    Args:
        text: Raw CSV content.

    Returns:
        Activities in file order.

    Raises:
        MalformedImportError: If the text is not readable CSV.
    """
    activities: list[Activity] = []
    seen: set[str] = set()

    try:
        rows = list(csv.reader(io.StringIO(text.strip())))
    except csv.Error as e:
        raise MalformedImportError("CSV text", str(e)) from e

    for line_no, row in enumerate(rows[1:], start=2):
        if len(row) < len(CSV_COLUMNS):
            continue
        name = row[0].strip()
        if not name:
            continue
        if name in seen:
            logger.warning("Duplicate activity row skipped", activity=name, line=line_no)
            continue

        conflicts = {}
        for weekday, cell in zip(Weekday.school_days(), row[1 : len(CSV_COLUMNS)]):
            periods = _parse_periods(cell, name, weekday)
            if periods:
                conflicts[weekday] = periods

        activities.append(Activity(name=name, conflicts=conflicts))
        seen.add(name)

    logger.debug("Parsed activity CSV", rows=len(rows), activities=len(activities))
    return activities


def load_activities_file(
    path: Union[str, Path],
    retries: int = 2,
    retry_delay_seconds: float = 0.2,
) -> list[Activity]:
    """Read and parse an activity CSV file, retrying transient read failures.

    Raises:
        MalformedImportError: If the file cannot be read after all attempts,
            or it is not valid UTF-8 text.
    """
    path = Path(path)
    last_error: Exception = FileNotFoundError(str(path))

    for attempt in range(retries + 1):
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise MalformedImportError(str(path), "file is not UTF-8 text") from e
        except FileNotFoundError as e:
            raise MalformedImportError(str(path), "file not found") from e
        except OSError as e:
            last_error = e
            logger.warning(
                "Activity file read failed",
                path=str(path),
                attempt=attempt + 1,
                error=str(e),
            )
            if attempt < retries:
                time.sleep(retry_delay_seconds)
            continue
        return parse_activities(text)

    raise MalformedImportError(str(path), str(last_error)) from last_error


def export_activities(activities: list[Activity]) -> str:
    """Write activities back out in the import layout."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for activity in activities:
        row = [activity.name]
        for weekday in Weekday.school_days():
            periods = sorted(activity.conflicts.get(weekday, set()))
            row.append(",".join(str(p) for p in periods))
        writer.writerow(row)
    return buffer.getvalue()
