"""
Timegrid feature: month, year and day grid builders.
"""

from datetime import date, timedelta

from agenda.features.timegrid.schemas import TimeSlot

GRID_WEEKS = 6
GRID_CELLS = GRID_WEEKS * 7


def first_of_month(year: int, month: int) -> date:
    # Zero-based month; values outside 0..11 roll into neighbouring years.
    year_offset, month = divmod(month, 12)
    return date(year + year_offset, month + 1, 1)


def get_month_days(year: int, month: int) -> list[date]:
    """Return the 42 cells of a Monday-first month grid.

    Args:
        year: Calendar year.
        month: Zero-based month (0 = January, 11 = December).

    The grid opens with the days of the previous month that share the week of
    the 1st, continues through the whole month and is padded with days of the
    next month until 6 full weeks are filled.
    """
    first = first_of_month(year, month)
    grid_start = first - timedelta(days=first.isoweekday() - 1)
    return [grid_start + timedelta(days=offset) for offset in range(GRID_CELLS)]


def month_weeks(year: int, month: int) -> list[list[date]]:
    """The month grid split into its 6 week rows."""
    days = get_month_days(year, month)
    return [days[row * 7:(row + 1) * 7] for row in range(GRID_WEEKS)]


def get_year_months(year: int) -> list[date]:
    """First day of each month of `year`."""
    return [first_of_month(year, month) for month in range(12)]


def get_time_slots() -> list[TimeSlot]:
    """24 hourly slots, shared by the day and week grids."""
    return [TimeSlot(hour=hour, minute=0) for hour in range(24)]
