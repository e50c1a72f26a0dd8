"""Tests for calendar helpers."""

from datetime import date

import pytest

from periodplanner.domain.calendar import (
    Weekday,
    format_date,
    monday_of,
    next_monday,
    parse_date,
    week_date_strings,
    week_dates,
    weekday_of,
)


class TestMondayOf:
    """Tests for backward Monday normalization."""

    def test_monday_maps_to_itself(self):
        """A Monday is already normalized."""
        assert monday_of(date(2024, 1, 15)) == date(2024, 1, 15)

    def test_midweek_maps_back(self):
        """Wednesday and Friday map to the Monday before."""
        assert monday_of(date(2024, 1, 17)) == date(2024, 1, 15)
        assert monday_of(date(2024, 1, 19)) == date(2024, 1, 15)

    def test_sunday_maps_back_six_days(self):
        """Sunday belongs to the week that started six days earlier."""
        assert monday_of(date(2024, 1, 21)) == date(2024, 1, 15)

    def test_month_boundary(self):
        """Normalization crosses month boundaries."""
        assert monday_of(date(2024, 3, 1)) == date(2024, 2, 26)


class TestNextMonday:
    """Tests for the forward default-start rule."""

    def test_sunday_moves_forward_one_day(self):
        assert next_monday(date(2024, 1, 21)) == date(2024, 1, 22)

    def test_monday_moves_forward_a_week(self):
        assert next_monday(date(2024, 1, 15)) == date(2024, 1, 22)

    def test_midweek_moves_to_following_monday(self):
        assert next_monday(date(2024, 1, 17)) == date(2024, 1, 22)
        assert next_monday(date(2024, 1, 20)) == date(2024, 1, 22)

    def test_differs_from_monday_of_on_sunday(self):
        """The two rules disagree on Sundays."""
        sunday = date(2024, 1, 21)
        assert next_monday(sunday) != monday_of(sunday)


class TestFormatting:
    """Tests for date string conversion."""

    def test_format_pads_fields(self):
        assert format_date(date(2024, 3, 5)) == "2024-03-05"

    def test_parse_builds_from_fields(self):
        assert parse_date("2024-03-05") == date(2024, 3, 5)

    @pytest.mark.parametrize("bad", ["2024-13-01", "2024/01/15", "not-a-date", "2024-01"])
    def test_parse_rejects_malformed(self, bad):
        """Malformed strings raise ValueError."""
        with pytest.raises(ValueError):
            parse_date(bad)

    def test_weekday_of(self):
        assert weekday_of(date(2024, 1, 15)) == Weekday.MONDAY
        assert weekday_of(date(2024, 1, 20)) == Weekday.SATURDAY
        assert Weekday.SATURDAY.is_weekend
        assert not Weekday.FRIDAY.is_weekend


class TestWeekDates:
    """Tests for week date generation."""

    def test_returns_monday_to_friday(self):
        dates = week_dates(date(2024, 1, 15))
        assert dates[0] == date(2024, 1, 15)
        assert dates[-1] == date(2024, 1, 19)
        assert len(dates) == 5

    def test_offset_moves_by_weeks(self):
        assert week_dates(date(2024, 1, 15), 1)[0] == date(2024, 1, 22)
        assert week_dates(date(2024, 1, 15), -1)[0] == date(2024, 1, 8)

    def test_non_monday_start_snaps(self):
        """A start that is not a Monday snaps to its week's Monday."""
        assert week_dates(date(2024, 1, 17))[0] == date(2024, 1, 15)

    def test_string_variant(self):
        assert week_date_strings(date(2024, 1, 15)) == [
            "2024-01-15",
            "2024-01-16",
            "2024-01-17",
            "2024-01-18",
            "2024-01-19",
        ]
