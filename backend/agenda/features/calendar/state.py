"""
Calendar feature: state container and reducer.

The state is immutable; every change goes through `calendar_reducer`, which
returns a new state (or raises ConflictRejection and leaves the old one intact).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agenda.core.exceptions import ConflictRejection
from agenda.features.calendar.schemas import CalendarItem
from agenda.features.timegrid.placement import find_conflicts


class ViewMode(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class ActionType(str, Enum):
    SET_DATE = "SET_DATE"
    SET_VIEW = "SET_VIEW"
    SET_SELECTED_DATE = "SET_SELECTED_DATE"
    REPLACE_ALL_ITEMS = "REPLACE_ALL_ITEMS"
    ADD_ITEM = "ADD_ITEM"
    UPDATE_ITEM = "UPDATE_ITEM"
    DELETE_ITEM = "DELETE_ITEM"
    SET_SEARCH_TERM = "SET_SEARCH_TERM"
    SET_SHOW_ALL_UPCOMING = "SET_SHOW_ALL_UPCOMING"
    SET_LOADING = "SET_LOADING"
    SET_ERROR = "SET_ERROR"


@dataclass(frozen=True)
class Action:
    type: ActionType
    payload: Any = None


class CalendarState(BaseModel):
    """Item collection plus view cursor and request flags for one session."""
    model_config = ConfigDict(frozen=True)

    items: tuple[CalendarItem, ...] = ()
    current_date: datetime = Field(default_factory=datetime.now)
    selected_date: datetime = Field(default_factory=datetime.now)
    view: ViewMode = ViewMode.MONTH
    search_term: str = ""
    show_all_upcoming: bool = False
    loading: bool = False
    error: str | None = None


def calendar_reducer(state: CalendarState, action: Action) -> CalendarState:
    """Apply one action to `state`.

    Raises:
        ConflictRejection: ADD_ITEM / UPDATE_ITEM payload overlaps another item.
        ValueError: Unknown action type.
    """
    payload = action.payload

    if action.type is ActionType.SET_DATE:
        return state.model_copy(update={"current_date": payload})

    if action.type is ActionType.SET_VIEW:
        return state.model_copy(update={"view": ViewMode(payload)})

    if action.type is ActionType.SET_SELECTED_DATE:
        return state.model_copy(update={"selected_date": payload})

    if action.type is ActionType.REPLACE_ALL_ITEMS:
        return state.model_copy(
            update={"items": tuple(payload), "loading": False, "error": None}
        )

    if action.type is ActionType.ADD_ITEM:
        conflicts = find_conflicts(state.items, payload)
        if conflicts:
            raise ConflictRejection(payload, conflicts)
        return state.model_copy(update={"items": state.items + (payload,)})

    if action.type is ActionType.UPDATE_ITEM:
        others = tuple(item for item in state.items if item.id != payload.id)
        conflicts = find_conflicts(others, payload)
        if conflicts:
            raise ConflictRejection(payload, conflicts)
        items = tuple(payload if item.id == payload.id else item for item in state.items)
        if payload not in items:
            items += (payload,)
        return state.model_copy(update={"items": items})

    if action.type is ActionType.DELETE_ITEM:
        return state.model_copy(
            update={"items": tuple(item for item in state.items if item.id != payload)}
        )

    if action.type is ActionType.SET_SEARCH_TERM:
        return state.model_copy(update={"search_term": payload or ""})

    if action.type is ActionType.SET_SHOW_ALL_UPCOMING:
        return state.model_copy(update={"show_all_upcoming": bool(payload)})

    if action.type is ActionType.SET_LOADING:
        return state.model_copy(update={"loading": bool(payload)})

    if action.type is ActionType.SET_ERROR:
        return state.model_copy(update={"error": payload})

    raise ValueError(f"Unknown action type: {action.type}")
