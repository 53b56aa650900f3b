"""
Tests for the business day calendar.
2024-01-01 is a Monday; the weekend of 2024-01-06/07 is used throughout.
"""

import pytest
from datetime import date

from analysis.calculations.business_days import BusinessDayCalendar, holiday_table_summary


@pytest.fixture
def plain_calendar():
    """Weekends only."""
    return BusinessDayCalendar()


@pytest.fixture
def ar_calendar():
    """Calendar with a few configured holidays."""
    return BusinessDayCalendar.from_holiday_table({
        2024: ['2024-01-01', '2024-03-29'],
        2025: [date(2025, 1, 1)],
    })


class TestIsBusinessDay:
    """Tests for weekend and holiday classification."""

    def test_weekday_is_business_day(self, plain_calendar):
        assert plain_calendar.is_business_day(date(2024, 1, 8))

    def test_weekend_is_not_business_day(self, plain_calendar):
        assert not plain_calendar.is_business_day(date(2024, 1, 6))
        assert not plain_calendar.is_business_day(date(2024, 1, 7))

    def test_configured_holiday_is_not_business_day(self, ar_calendar):
        assert not ar_calendar.is_business_day(date(2024, 1, 1))
        assert not ar_calendar.is_business_day(date(2024, 3, 29))
        assert ar_calendar.is_business_day(date(2024, 1, 2))

    def test_holiday_only_applies_when_configured(self, plain_calendar):
        assert plain_calendar.is_business_day(date(2024, 1, 1))


class TestStepping:
    """Tests for previous/next and n-step arithmetic."""

    def test_previous_business_day_skips_weekend(self, plain_calendar):
        assert plain_calendar.previous_business_day(date(2024, 1, 8)) == date(2024, 1, 5)

    def test_previous_business_day_never_returns_input(self, plain_calendar):
        assert plain_calendar.previous_business_day(date(2024, 1, 10)) == date(2024, 1, 9)

    def test_next_business_day_skips_weekend(self, plain_calendar):
        assert plain_calendar.next_business_day(date(2024, 1, 5)) == date(2024, 1, 8)

    def test_previous_business_day_skips_holiday(self, ar_calendar):
        # Tue 2024-01-02 -> Mon 01-01 is a holiday -> Fri 2023-12-29
        assert ar_calendar.previous_business_day(date(2024, 1, 2)) == date(2023, 12, 29)

    def test_subtract_zero_returns_input(self, plain_calendar):
        saturday = date(2024, 1, 6)
        assert plain_calendar.subtract_business_days(saturday, 0) == saturday

    def test_subtract_one_week(self, plain_calendar):
        assert plain_calendar.subtract_business_days(date(2024, 1, 15), 5) == date(2024, 1, 8)

    def test_subtract_across_holiday(self, ar_calendar):
        # Thu 2024-01-04 back 3: Wed 3, Tue 2, (Mon 1 holiday) Fri 2023-12-29
        assert ar_calendar.subtract_business_days(date(2024, 1, 4), 3) == date(2023, 12, 29)

    def test_add_is_symmetric(self, ar_calendar):
        start = date(2023, 12, 29)
        assert ar_calendar.add_business_days(start, 3) == date(2024, 1, 4)
        assert ar_calendar.add_business_days(start, 0) == start

    def test_negative_steps_rejected(self, plain_calendar):
        with pytest.raises(ValueError, match="non-negative"):
            plain_calendar.subtract_business_days(date(2024, 1, 8), -1)
        with pytest.raises(ValueError, match="non-negative"):
            plain_calendar.add_business_days(date(2024, 1, 8), -2)


class TestRanges:
    """Tests for counting and range helpers."""

    def test_count_full_week(self, plain_calendar):
        assert plain_calendar.count_business_days_between(date(2024, 1, 1), date(2024, 1, 7)) == 5

    def test_count_is_inclusive(self, plain_calendar):
        day = date(2024, 1, 3)
        assert plain_calendar.count_business_days_between(day, day) == 1

    def test_count_reversed_range_is_zero(self, plain_calendar):
        assert plain_calendar.count_business_days_between(date(2024, 1, 7), date(2024, 1, 1)) == 0

    def test_count_excludes_holidays(self, ar_calendar):
        assert ar_calendar.count_business_days_between(date(2024, 1, 1), date(2024, 1, 7)) == 4

    def test_business_days_in_range(self, plain_calendar):
        days = list(plain_calendar.business_days_in_range(date(2024, 1, 5), date(2024, 1, 9)))
        assert days == [date(2024, 1, 5), date(2024, 1, 8), date(2024, 1, 9)]

    def test_first_and_last_in_range(self, plain_calendar):
        start, end = date(2024, 1, 6), date(2024, 1, 14)
        assert plain_calendar.first_business_day_in_range(start, end) == date(2024, 1, 8)
        assert plain_calendar.last_business_day_in_range(start, end) == date(2024, 1, 12)

    def test_weekend_only_range_has_no_business_day(self, plain_calendar):
        start, end = date(2024, 1, 6), date(2024, 1, 7)
        assert plain_calendar.first_business_day_in_range(start, end) is None
        assert plain_calendar.last_business_day_in_range(start, end) is None


class TestHolidayTable:
    """Tests for building calendars from configuration."""

    def test_holidays_for_year(self, ar_calendar):
        assert ar_calendar.holidays_for_year(2024) == [date(2024, 1, 1), date(2024, 3, 29)]
        assert ar_calendar.holidays_for_year(2026) == []

    def test_string_year_keys_accepted(self):
        calendar = BusinessDayCalendar.from_holiday_table({'2024': ['2024-05-01']})
        assert not calendar.is_business_day(date(2024, 5, 1))

    def test_holiday_under_wrong_year_rejected(self):
        with pytest.raises(ValueError, match="listed under year"):
            BusinessDayCalendar.from_holiday_table({2024: ['2025-01-01']})

    def test_empty_year_entry(self):
        calendar = BusinessDayCalendar.from_holiday_table({2024: None})
        assert calendar.holidays == set()

    def test_summary_counts_per_year(self, ar_calendar):
        assert holiday_table_summary(ar_calendar) == {2024: 2, 2025: 1}
