"""
Timegrid feature: slot membership, vertical placement and conflict detection.
"""

import math
from datetime import date, datetime, timedelta
from typing import Iterable

from agenda.features.calendar.schemas import CalendarItem, category_color
from agenda.features.timegrid.dates import (
    add_days,
    duration_hours,
    end_of_day,
    end_of_month,
    end_of_week,
    fractional_hour,
    start_of_day,
    start_of_month,
    start_of_week,
)
from agenda.features.timegrid.grids import get_time_slots
from agenda.features.timegrid.schemas import DayLayout, PlacedItem, SlotLayout, SlotPlacement

SLOT_LENGTH = timedelta(hours=1)
MIN_HEIGHT_PERCENT = 25.0  # keeps very short items clickable


# ── Period filters ───────────────────────────────────────

def _overlapping(items: Iterable[CalendarItem], start: datetime, end: datetime) -> list[CalendarItem]:
    return [item for item in items if item.start <= end and item.end >= start]


def get_items_for_day(items: Iterable[CalendarItem], day: date) -> list[CalendarItem]:
    return _overlapping(items, start_of_day(day), end_of_day(day))


def get_items_for_week(items: Iterable[CalendarItem], day: date) -> list[CalendarItem]:
    return _overlapping(items, start_of_week(day), end_of_week(day))


def get_items_for_month(items: Iterable[CalendarItem], day: date) -> list[CalendarItem]:
    return _overlapping(items, start_of_month(day), end_of_month(day))


def filter_items(items: Iterable[CalendarItem], search_term: str | None) -> list[CalendarItem]:
    """Items whose title contains `search_term`, ignoring case."""
    if not search_term:
        return list(items)
    needle = search_term.lower()
    return [item for item in items if needle in item.title.lower()]


# ── Slots ────────────────────────────────────────────────

def in_slot(item: CalendarItem, slot_start: datetime) -> bool:
    """Whether `item` starts in, ends in, or spans the hour beginning at `slot_start`."""
    slot_end = slot_start + SLOT_LENGTH
    return (
        (slot_start <= item.start < slot_end)
        or (slot_start < item.end <= slot_end)
        or (item.start <= slot_start and item.end >= slot_end)
    )


def slot_start_for(day: date, hour: int) -> datetime:
    return start_of_day(day).replace(hour=hour)


def get_slot_items(items: Iterable[CalendarItem], day: date, hour: int) -> list[CalendarItem]:
    slot_start = slot_start_for(day, hour)
    return [item for item in get_items_for_day(items, day) if in_slot(item, slot_start)]


def place_item(item: CalendarItem, min_height: float = MIN_HEIGHT_PERCENT) -> SlotPlacement:
    """Offset and height of `item` relative to the slot it starts in."""
    start_hour = fractional_hour(item.start)
    return SlotPlacement(
        top_percent=(start_hour - math.floor(start_hour)) * 100,
        height_percent=max(duration_hours(item.start, item.end) * 100, min_height),
    )


def layout_day(items: Iterable[CalendarItem], day: date) -> DayLayout:
    """Slot membership and anchored placements for all 24 hours of `day`."""
    day_items = get_items_for_day(items, day)
    slots = []
    for slot in get_time_slots():
        slot_start = slot_start_for(day, slot.hour)
        members = tuple(item for item in day_items if in_slot(item, slot_start))
        placed = tuple(
            PlacedItem(item=item, placement=place_item(item), color=category_color(item.type))
            for item in members
            if slot_start <= item.start < slot_start + SLOT_LENGTH
        )
        slots.append(SlotLayout(slot=slot, start=slot_start, items=members, placed=placed))
    return DayLayout(day=start_of_day(day).date(), slots=tuple(slots))


def layout_week(items: Iterable[CalendarItem], day: date) -> list[DayLayout]:
    """Day layouts for Monday..Sunday of `day`'s week."""
    items = list(items)
    monday = start_of_week(day)
    return [layout_day(items, add_days(monday, offset)) for offset in range(7)]


# ── Conflicts ────────────────────────────────────────────

def _overlaps(existing: CalendarItem, candidate: CalendarItem) -> bool:
    return (
        (existing.start <= candidate.start < existing.end)
        or (existing.start < candidate.end <= existing.end)
        or (candidate.start <= existing.start and candidate.end >= existing.end)
    )


def find_conflicts(existing: Iterable[CalendarItem], candidate: CalendarItem) -> list[CalendarItem]:
    """Existing items that overlap `candidate`, skipping the candidate's own id."""
    return [
        item
        for item in existing
        if not (candidate.id is not None and item.id == candidate.id)
        and _overlaps(item, candidate)
    ]


def has_time_conflict(existing: Iterable[CalendarItem], candidate: CalendarItem) -> bool:
    return bool(find_conflicts(existing, candidate))
