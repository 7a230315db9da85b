"""
Calendar feature: Schemas for items, remote records and request/response models.

Remote records name their fields inconsistently (`startTime`/`start_time`,
`dueDate`/`due_date`, `global`/`isGlobal`/`is_global`) and spell enum values in
mixed case. Everything is normalized here, once, when a record becomes a
CalendarItem; the rest of the package only sees canonical values.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class ItemType(str, Enum):
    EVENT = "EVENT"
    TASK = "TASK"


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


CATEGORY_COLORS = {
    ItemType.EVENT: "#10b981",  # green
    ItemType.TASK: "#3b82f6",   # blue
}
DEFAULT_COLOR = "#9ca3af"  # gray


def category_color(item_type: "ItemType | str | None") -> str:
    """Presentation color for an item type, matched case-insensitively."""
    key = (item_type.value if isinstance(item_type, ItemType) else str(item_type or "")).upper()
    for known, color in CATEGORY_COLORS.items():
        if known.value == key:
            return color
    return DEFAULT_COLOR


def to_local_naive(value: datetime) -> datetime:
    """Drop tzinfo after converting an aware instant to local wall time."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _parse_instant(value: Any) -> Any:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if isinstance(value, datetime):
        return to_local_naive(value)
    return value


def _canonical_type(value: Any) -> Any:
    if value is None or value == "":
        return ItemType.EVENT
    return value.strip().upper() if isinstance(value, str) else value


def _canonical_status(value: Any) -> Any:
    if value is None or value == "":
        return TaskStatus.PENDING
    return value.strip().upper().replace(" ", "_") if isinstance(value, str) else value


CanonicalType = Annotated[ItemType, BeforeValidator(_canonical_type)]
CanonicalStatus = Annotated[TaskStatus, BeforeValidator(_canonical_status)]


class CalendarItem(BaseModel):
    """A scheduled event or task, as held in the controller's collection."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str | None = None
    title: str = Field(min_length=1)
    description: str | None = None
    location: str | None = None
    start: datetime = Field(validation_alias=AliasChoices("start", "startTime", "start_time"))
    end: datetime = Field(validation_alias=AliasChoices("end", "dueDate", "due_date", "end_time"))
    type: CanonicalType = ItemType.EVENT
    status: CanonicalStatus = TaskStatus.PENDING
    color: str = DEFAULT_COLOR
    assigned_user_ids: frozenset[str] = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices("assigned_user_ids", "assignedUserIds", "assignedUsers"),
    )
    is_global: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_global", "isGlobal", "global"),
    )

    @model_validator(mode="before")
    @classmethod
    def _default_color(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("color"):
            data = {**data, "color": category_color(data.get("type"))}
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        # Remote stores hand out numeric ids as well as UUID strings.
        return None if value is None else str(value)

    @field_validator("start", "end", mode="before")
    @classmethod
    def _local_time(cls, value: Any) -> Any:
        return _parse_instant(value)

    @field_validator("assigned_user_ids", mode="before")
    @classmethod
    def _user_ids(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        ids = []
        for entry in value:
            if isinstance(entry, dict):
                entry = entry.get("id")
            if entry is not None:
                ids.append(str(entry))
        return frozenset(ids)

    @classmethod
    def from_record(cls, record: dict) -> "CalendarItem":
        """Build an item from a raw remote-store record."""
        return cls.model_validate(record)

    @property
    def is_task(self) -> bool:
        return self.type is ItemType.TASK

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED

    def to_record(self) -> dict:
        """Remote write payload in the store's camelCase vocabulary."""
        record = {
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "status": self.status.value if self.is_task else TaskStatus.PENDING.value,
            "startTime": self.start.isoformat(),
            "dueDate": self.end.isoformat(),
            "location": self.location if not self.is_task else "",
            "color": self.color,
            "global": self.is_global,
            "assignedUserIds": [] if self.is_global else sorted(self.assigned_user_ids),
        }
        if self.id is not None:
            record["id"] = self.id
        return record


# ── Request / response models ────────────────────────────


class ItemCreate(BaseModel):
    """Request to create a new event or task."""
    title: str = Field(min_length=1)
    description: str | None = None
    location: str | None = None
    start: datetime
    end: datetime
    type: CanonicalType = ItemType.EVENT
    status: CanonicalStatus = TaskStatus.PENDING
    color: str | None = None
    assigned_user_ids: list[str] = []
    is_global: bool = False

    def to_item(self, item_id: str | None = None) -> CalendarItem:
        return CalendarItem.model_validate({**self.model_dump(), "id": item_id})


class ItemUpdate(ItemCreate):
    """Request to replace an existing item (full record, never a partial patch)."""


class CursorUpdate(BaseModel):
    """Request to move the view cursor."""
    current_date: datetime | None = None
    selected_date: datetime | None = None
    view: str | None = None  # day | week | month | year
    search_term: str | None = None
    show_all_upcoming: bool | None = None


class ItemResponse(BaseModel):
    """Response model for a calendar item."""
    id: str | None
    title: str
    description: str | None = None
    location: str | None = None
    start: datetime
    end: datetime
    type: ItemType
    status: TaskStatus
    color: str
    assigned_user_ids: list[str] = []
    is_global: bool = False

    @classmethod
    def from_item(cls, item: CalendarItem) -> "ItemResponse":
        return cls(
            **item.model_dump(exclude={"assigned_user_ids"}),
            assigned_user_ids=sorted(item.assigned_user_ids),
        )
