"""
Timegrid feature: value objects produced by the grid builders and placement engine.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from agenda.features.calendar.schemas import CalendarItem


class TimeSlot(BaseModel):
    """One hour of a day grid; minute is always 0."""
    model_config = ConfigDict(frozen=True)

    hour: int = Field(ge=0, le=23)
    minute: int = 0

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


class SlotPlacement(BaseModel):
    """Vertical placement of an item inside its anchor slot, in percent of slot height."""
    model_config = ConfigDict(frozen=True)

    top_percent: float
    height_percent: float


class PlacedItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    item: CalendarItem
    placement: SlotPlacement
    color: str


class SlotLayout(BaseModel):
    """Items touching one hour slot of a day.

    `items` is every member of the slot; `placed` only holds the items that
    start inside the slot and are therefore drawn from it.
    """
    model_config = ConfigDict(frozen=True)

    slot: TimeSlot
    start: datetime
    items: tuple[CalendarItem, ...] = ()
    placed: tuple[PlacedItem, ...] = ()


class DayLayout(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    slots: tuple[SlotLayout, ...]
