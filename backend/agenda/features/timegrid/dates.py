"""
Timegrid feature: day/week/month boundaries and duration arithmetic.

All functions are pure: they accept `date` or `datetime` values, never mutate
their input, and work in local (naive) time. Aware datetimes keep their tzinfo.
"""

from datetime import date, datetime, time, timedelta

DAYS_OF_WEEK = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def _tz(d: date):
    return d.tzinfo if isinstance(d, datetime) else None


def start_of_day(d: date) -> datetime:
    """Local midnight of `d`'s day."""
    return datetime.combine(d, time.min, tzinfo=_tz(d))


def end_of_day(d: date) -> datetime:
    """Last representable instant of `d`'s day."""
    return datetime.combine(d, time.max, tzinfo=_tz(d))


def start_of_week(d: date) -> datetime:
    """Monday 00:00 of `d`'s week.

    ISO weekday numbers Sunday as 7, so stepping back `weekday - 1` days
    always lands on Monday.
    """
    return start_of_day(d) - timedelta(days=d.isoweekday() - 1)


def end_of_week(d: date) -> datetime:
    """Sunday 23:59:59.999999 of `d`'s week."""
    return end_of_day(start_of_week(d) + timedelta(days=6))


def start_of_month(d: date) -> datetime:
    return start_of_day(d.replace(day=1))


def end_of_month(d: date) -> datetime:
    # Day 28 exists in every month; +4 days always lands in the next month.
    next_month = d.replace(day=28) + timedelta(days=4)
    return end_of_day(next_month - timedelta(days=next_month.day))


def add_days(d: date, days: int) -> date:
    """Shift `d` by a signed number of days; returns the same type as `d`."""
    return d + timedelta(days=days)


def add_weeks(d: date, weeks: int) -> date:
    return d + timedelta(weeks=weeks)


def duration_hours(start: datetime, end: datetime) -> float:
    """Length of [start, end) in hours; negative when end precedes start."""
    return (end - start).total_seconds() / 3600


def fractional_hour(d: datetime) -> float:
    """Hour of day with minutes as a fraction (09:30 -> 9.5)."""
    return d.hour + d.minute / 60


def is_same_day(a: date, b: date) -> bool:
    return (a.year, a.month, a.day) == (b.year, b.month, b.day)


def is_same_month(a: date, b: date) -> bool:
    return (a.year, a.month) == (b.year, b.month)


def month_name(d: date) -> str:
    return MONTHS[d.month - 1]
