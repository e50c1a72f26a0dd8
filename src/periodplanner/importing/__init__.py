"""Activity catalog import and export."""

from periodplanner.importing.activity_csv import (
    export_activities,
    load_activities_file,
    parse_activities,
)

__all__ = [
    "export_activities",
    "load_activities_file",
    "parse_activities",
]
