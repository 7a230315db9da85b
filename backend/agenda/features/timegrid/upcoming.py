"""
Timegrid feature: look-ahead selection of upcoming items.
"""

from datetime import datetime, timedelta
from typing import Iterable

from agenda.features.calendar.schemas import CalendarItem

UPCOMING_WINDOW = timedelta(days=30)
DEFAULT_UPCOMING_LIMIT = 5


def get_all_upcoming_items(
    items: Iterable[CalendarItem],
    now: datetime | None = None,
) -> list[CalendarItem]:
    """Items starting within the next 30 days (bounds inclusive), earliest first.

    The sort is stable, so items sharing a start keep their collection order.
    """
    now = now or datetime.now()
    horizon = now + UPCOMING_WINDOW
    upcoming = [item for item in items if now <= item.start <= horizon]
    return sorted(upcoming, key=lambda item: item.start)


def get_upcoming_items(
    items: Iterable[CalendarItem],
    limit: int | None = DEFAULT_UPCOMING_LIMIT,
    now: datetime | None = None,
) -> list[CalendarItem]:
    """The first `limit` upcoming items; `limit=None` returns all of them."""
    upcoming = get_all_upcoming_items(items, now=now)
    return upcoming if limit is None else upcoming[:limit]
