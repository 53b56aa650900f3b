"""
Business day calendar.
Weekends plus a configured, year-indexed holiday table. No IO.
"""

from datetime import date, timedelta
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set, Union

ONE_DAY = timedelta(days=1)
WEEKEND_DAYS = (5, 6)  # Saturday, Sunday


class BusinessDayCalendar:
    """
    Trading-day arithmetic over weekends and configured holidays.

    Holidays are injected (see ``from_holiday_table``) so new years or regions
    only need a config change.
    """

    def __init__(self, holidays: Optional[Iterable[date]] = None):
        """
        Args:
            holidays: Non-business dates in addition to weekends
        """
        self._holidays: Set[date] = set(holidays or [])

    @classmethod
    def from_holiday_table(
        cls,
        table: Mapping[Union[int, str], Iterable[Union[str, date]]]
    ) -> 'BusinessDayCalendar':
        """
        Build a calendar from a year -> holiday list mapping.

        Args:
            table: e.g. {2024: ['2024-01-01', ...], 2025: [...]}; entries may be
                ISO strings or date objects (YAML yields either)

        Returns:
            Configured BusinessDayCalendar

        Raises:
            ValueError: If a holiday does not belong to the year it is listed under
        """
        holidays = []
        for year, entries in table.items():
            year = int(year)
            for entry in entries or []:
                day = entry if isinstance(entry, date) else date.fromisoformat(str(entry))
                if day.year != year:
                    raise ValueError(f"Holiday {day} listed under year {year}")
                holidays.append(day)
        return cls(holidays)

    @property
    def holidays(self) -> Set[date]:
        return set(self._holidays)

    def holidays_for_year(self, year: int) -> List[date]:
        return sorted(d for d in self._holidays if d.year == year)

    def is_business_day(self, day: date) -> bool:
        """False on Saturday/Sunday or a configured holiday."""
        if day.weekday() in WEEKEND_DAYS:
            return False
        return day not in self._holidays

    def previous_business_day(self, day: date) -> date:
        """Closest business day strictly before ``day``."""
        current = day - ONE_DAY
        while not self.is_business_day(current):
            current -= ONE_DAY
        return current

    def next_business_day(self, day: date) -> date:
        """Closest business day strictly after ``day``."""
        current = day + ONE_DAY
        while not self.is_business_day(current):
            current += ONE_DAY
        return current

    def subtract_business_days(self, day: date, n: int) -> date:
        """
        Step back n business days.

        Applied one step at a time because holiday spacing is irregular.
        n=0 returns the input unchanged, even if it is not a business day.

        Raises:
            ValueError: If n is negative
        """
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")

        result = day
        for _ in range(n):
            result = self.previous_business_day(result)
        return result

    def add_business_days(self, day: date, n: int) -> date:
        """Step forward n business days. n=0 returns the input unchanged."""
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")

        result = day
        for _ in range(n):
            result = self.next_business_day(result)
        return result

    def business_days_in_range(self, start: date, end: date) -> Iterator[date]:
        """Yield business days in [start, end], ascending."""
        current = start
        while current <= end:
            if self.is_business_day(current):
                yield current
            current += ONE_DAY

    def count_business_days_between(self, start: date, end: date) -> int:
        """Count business days in [start, end]; 0 if start > end."""
        if start > end:
            return 0
        return sum(1 for _ in self.business_days_in_range(start, end))

    def last_business_day_in_range(self, start: date, end: date) -> Optional[date]:
        current = end
        while current >= start:
            if self.is_business_day(current):
                return current
            current -= ONE_DAY
        return None

    def first_business_day_in_range(self, start: date, end: date) -> Optional[date]:
        return next(self.business_days_in_range(start, end), None)


def holiday_table_summary(calendar: BusinessDayCalendar) -> Dict[int, int]:
    """Number of configured holidays per year (for logging)."""
    summary: Dict[int, int] = {}
    for day in calendar.holidays:
        summary[day.year] = summary.get(day.year, 0) + 1
    return dict(sorted(summary.items()))
