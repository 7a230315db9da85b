"""
Calendar feature: API routes for grid views and item management.
"""

from datetime import date

from fastapi import APIRouter, Depends, Header, Request

from agenda.core.dependencies import get_controller, get_current_user_id
from agenda.core.exceptions import AppBaseError, app_error_to_http
from agenda.features.calendar.controller import CalendarController
from agenda.features.calendar.schemas import CursorUpdate, ItemCreate, ItemResponse, ItemUpdate
from agenda.features.timegrid.dates import is_same_month
from agenda.features.timegrid.grids import first_of_month, get_month_days, get_year_months, month_weeks
from agenda.features.timegrid.placement import get_items_for_day, layout_day

router = APIRouter()


def _items(items) -> list[dict]:
    return [ItemResponse.from_item(item).model_dump(mode="json") for item in items]


def _state_body(controller: CalendarController) -> dict:
    state = controller.state
    return {
        "current_date": state.current_date.isoformat(),
        "selected_date": state.selected_date.isoformat(),
        "view": state.view.value,
        "search_term": state.search_term,
        "show_all_upcoming": state.show_all_upcoming,
        "loading": state.loading,
        "error": state.error,
        "items": _items(controller.filtered_items()),
    }


@router.get("/state")
async def get_state(controller: CalendarController = Depends(get_controller)):
    """Full session state: cursor, flags and the (search-filtered) collection."""
    return {"data": _state_body(controller)}


@router.get("/month")
async def month_view(
    year: int,
    month: int,
    controller: CalendarController = Depends(get_controller),
):
    """42-cell month grid (zero-based month) with the items of each day."""
    items = controller.filtered_items()
    shown_month = first_of_month(year, month)
    weeks = []
    for week in month_weeks(year, month):
        weeks.append([
            {
                "date": day.isoformat(),
                "in_month": is_same_month(day, shown_month),
                "items": _items(get_items_for_day(items, day)),
            }
            for day in week
        ])
    return {"data": {"year": year, "month": month, "weeks": weeks}}


@router.get("/year")
async def year_view(year: int):
    """Month grids of a whole year, without items."""
    months = []
    for index, first in enumerate(get_year_months(year)):
        months.append({
            "month": index,
            "first_day": first.isoformat(),
            "days": [
                {"date": day.isoformat(), "in_month": is_same_month(day, first)}
                for day in get_month_days(year, index)
            ],
        })
    return {"data": {"year": year, "months": months}}


def _day_body(layout) -> dict:
    return {
        "day": layout.day.isoformat(),
        "slots": [
            {
                "hour": slot.slot.hour,
                "label": slot.slot.label,
                "item_ids": [item.id for item in slot.items],
                "placed": [
                    {
                        "item": ItemResponse.from_item(placed.item).model_dump(mode="json"),
                        "top_percent": placed.placement.top_percent,
                        "height_percent": placed.placement.height_percent,
                        "color": placed.color,
                    }
                    for placed in slot.placed
                ],
            }
            for slot in layout.slots
        ],
    }


@router.get("/day")
async def day_view(
    day: date | None = None,
    controller: CalendarController = Depends(get_controller),
):
    """Hour slots of one day (defaults to the selected date)."""
    layout = controller.day_layout() if day is None else layout_day(controller.filtered_items(), day)
    return {"data": _day_body(layout)}


@router.get("/week")
async def week_view(controller: CalendarController = Depends(get_controller)):
    """Monday..Sunday hour slots of the selected date's week."""
    return {"data": [_day_body(layout) for layout in controller.week_layout()]}


@router.get("/upcoming")
async def upcoming(controller: CalendarController = Depends(get_controller)):
    """Items starting within the next 30 days."""
    return {"data": _items(controller.upcoming())}


@router.put("/cursor")
async def move_cursor(
    data: CursorUpdate,
    controller: CalendarController = Depends(get_controller),
):
    """Update view cursor, search term and upcoming toggle."""
    if data.current_date is not None:
        controller.set_date(data.current_date)
    if data.selected_date is not None:
        controller.set_selected_date(data.selected_date)
    if data.view is not None:
        try:
            controller.set_view(data.view.lower())
        except ValueError as e:
            raise app_error_to_http(AppBaseError("Unknown view", str(e)), status_code=422)
    if data.search_term is not None:
        controller.set_search_term(data.search_term)
    if data.show_all_upcoming is not None:
        controller.set_show_all_upcoming(data.show_all_upcoming)
    return {"data": _state_body(controller)}


@router.delete("/session")
async def close_session(
    request: Request,
    x_session_id: str = Header("default"),
    user_id: str = Depends(get_current_user_id),
):
    """Close the caller's session and release its store connection."""
    closed = await request.app.state.sessions.close(x_session_id, user_id)
    return {"closed": closed}


@router.post("/refresh")
async def refresh(controller: CalendarController = Depends(get_controller)):
    """Reload the collection from the remote store."""
    await controller.refresh()
    return {"data": _state_body(controller)}


@router.post("/items")
async def create_item(
    data: ItemCreate,
    controller: CalendarController = Depends(get_controller),
):
    """Create a new event or task."""
    try:
        item = await controller.add_item(data.to_item())
    except AppBaseError as e:
        raise app_error_to_http(e)
    return {"data": ItemResponse.from_item(item).model_dump(mode="json")}


@router.put("/items/{item_id}")
async def update_item(
    item_id: str,
    data: ItemUpdate,
    controller: CalendarController = Depends(get_controller),
):
    """Replace an existing event or task."""
    try:
        item = await controller.update_item(data.to_item(item_id))
    except AppBaseError as e:
        raise app_error_to_http(e)
    return {"data": ItemResponse.from_item(item).model_dump(mode="json")}


@router.delete("/items/{item_id}")
async def delete_item(
    item_id: str,
    controller: CalendarController = Depends(get_controller),
):
    """Delete an item, then resynchronize the collection."""
    deleted = await controller.delete_item(item_id)
    return {"deleted": deleted, "data": _state_body(controller)}


@router.patch("/items/{item_id}/toggle-completion")
async def toggle_completion(
    item_id: str,
    controller: CalendarController = Depends(get_controller),
):
    """Flip a task between completed and pending."""
    toggled = await controller.toggle_task_completion(item_id)
    return {"toggled": toggled, "data": _state_body(controller)}
