"""
Calendar feature: reconciliation controller.

One controller per session owns the authoritative in-memory item collection
and keeps it in step with the remote store. Every remote-touching mutation
follows the same sequence:

    set loading -> await store -> on success apply the state transition and
    clear the error -> on failure set the error flag, keep the collection

Mutations are serialized with a per-controller lock and the conflict gate runs
inside it, so two rapid submissions can never both pass the gate against the
same stale snapshot.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Iterable

from pydantic import ValidationError

from agenda.core.exceptions import ConflictRejection, RemoteFailure, ValidationRejection
from agenda.features.calendar.schemas import CalendarItem, ItemType
from agenda.features.calendar.state import (
    Action,
    ActionType,
    CalendarState,
    ViewMode,
    calendar_reducer,
)
from agenda.features.calendar.store import ItemStore
from agenda.features.timegrid.grids import get_month_days, get_year_months
from agenda.features.timegrid.placement import filter_items, find_conflicts, layout_day, layout_week
from agenda.features.timegrid.schemas import DayLayout
from agenda.features.timegrid.upcoming import get_all_upcoming_items, get_upcoming_items

logger = logging.getLogger(__name__)

SAVE_ERROR = "Failed to save event"
DELETE_ERROR = "Failed to delete event"
FETCH_ERROR = "Failed to load events"
TOGGLE_ERROR = "Failed to update task"


def validate_candidate(candidate: CalendarItem) -> None:
    """Boundary check run before a candidate reaches the gate or the store."""
    if candidate.end <= candidate.start:
        raise ValidationRejection(
            detail=f"start={candidate.start.isoformat()} end={candidate.end.isoformat()}"
        )


def merge_records(events: Iterable[dict], tasks: Iterable[dict]) -> list[CalendarItem]:
    """Flatten event-like and task-like records into one item list.

    A record without a `type` takes the kind of the endpoint it came from.
    Malformed records are logged and skipped.
    """
    items = []
    for default_type, records in ((ItemType.EVENT, events), (ItemType.TASK, tasks)):
        for record in records:
            try:
                items.append(CalendarItem.from_record({"type": default_type.value, **record}))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {default_type.value} record {record.get('id')!r}: {e}")
    return items


class CalendarController:
    """Owns one session's CalendarState and mediates all writes to the store."""

    def __init__(
        self,
        store: ItemStore,
        privileged: bool = False,
        state: CalendarState | None = None,
    ):
        self.store = store
        self._privileged = privileged
        self._state = state or CalendarState()
        self._mutation_lock = asyncio.Lock()
        self._closed = False

    # ── State access ─────────────────────────────────────

    @property
    def state(self) -> CalendarState:
        """Current immutable snapshot."""
        return self._state

    @property
    def privileged(self) -> bool:
        return self._privileged

    @property
    def closed(self) -> bool:
        return self._closed

    def dispatch(self, action: Action) -> CalendarState:
        """Run `action` through the reducer; ignored once the controller is closed."""
        if self._closed:
            logger.debug(f"Dropping {action.type.value} on a closed controller")
            return self._state
        self._state = calendar_reducer(self._state, action)
        return self._state

    def close(self) -> None:
        """Discard the session; remote calls still in flight resolve into nothing."""
        self._closed = True

    # ── Cursor actions ───────────────────────────────────

    def set_date(self, value: datetime) -> None:
        self.dispatch(Action(ActionType.SET_DATE, value))

    def set_view(self, view: ViewMode | str) -> None:
        self.dispatch(Action(ActionType.SET_VIEW, view))

    def set_selected_date(self, value: datetime) -> None:
        self.dispatch(Action(ActionType.SET_SELECTED_DATE, value))

    def navigate_to_day(self, value: datetime) -> None:
        self.set_selected_date(value)
        self.set_view(ViewMode.DAY)

    def navigate_to_week(self, value: datetime) -> None:
        self.set_selected_date(value)
        self.set_view(ViewMode.WEEK)
        self.set_date(value)

    def set_search_term(self, term: str) -> None:
        self.dispatch(Action(ActionType.SET_SEARCH_TERM, term))

    def set_show_all_upcoming(self, show: bool) -> None:
        self.dispatch(Action(ActionType.SET_SHOW_ALL_UPCOMING, show))

    def set_loading(self, loading: bool) -> None:
        self.dispatch(Action(ActionType.SET_LOADING, loading))

    def set_error(self, message: str | None) -> None:
        self.dispatch(Action(ActionType.SET_ERROR, message))

    def replace_all_items(self, items: Iterable[CalendarItem]) -> None:
        self.dispatch(Action(ActionType.REPLACE_ALL_ITEMS, list(items)))

    # ── Read side ────────────────────────────────────────

    def filtered_items(self) -> list[CalendarItem]:
        return filter_items(self._state.items, self._state.search_term)

    def upcoming(self, now: datetime | None = None) -> list[CalendarItem]:
        if self._state.show_all_upcoming:
            return get_all_upcoming_items(self._state.items, now=now)
        return get_upcoming_items(self._state.items, now=now)

    def month_grid(self) -> list[date]:
        current = self._state.current_date
        return get_month_days(current.year, current.month - 1)

    def year_grid(self) -> list[date]:
        return get_year_months(self._state.current_date.year)

    def day_layout(self) -> DayLayout:
        return layout_day(self.filtered_items(), self._state.selected_date)

    def week_layout(self) -> list[DayLayout]:
        return layout_week(self.filtered_items(), self._state.selected_date)

    # ── Remote-backed mutations ──────────────────────────

    def _gate(self, existing: Iterable[CalendarItem], candidate: CalendarItem) -> None:
        conflicts = find_conflicts(existing, candidate)
        if conflicts:
            logger.info(
                f"Rejected '{candidate.title}' ({candidate.start:%Y-%m-%d %H:%M}-"
                f"{candidate.end:%H:%M}): overlaps {[item.id for item in conflicts]}"
            )
            raise ConflictRejection(candidate, conflicts)

    def _fail(self, error: RemoteFailure, message: str) -> None:
        logger.error(f"{error.message}: {error.detail}", exc_info=error)
        self.set_error(message)
        self.set_loading(False)

    def _to_item(self, operation: str, record: dict | None) -> CalendarItem:
        try:
            return CalendarItem.from_record(record or {})
        except ValidationError as e:
            raise RemoteFailure(operation, f"Unreadable record returned: {e}") from e

    async def _apply_persisted(self, action_type: ActionType, persisted: CalendarItem) -> None:
        """Apply a record the store has already committed.

        The store may normalize what it saved (e.g. round the times), so the
        persisted record can trip the gate the candidate passed. The write is
        already done at that point; resynchronize instead of dropping it.
        """
        try:
            self.dispatch(Action(action_type, persisted))
        except ConflictRejection as e:
            logger.warning(
                f"Store saved {persisted.id} with times overlapping "
                f"{[item.id for item in e.conflicts]}, refetching"
            )
            await self._refetch()
        else:
            self.set_error(None)

    async def add_item(self, candidate: CalendarItem) -> CalendarItem:
        """Create `candidate` remotely and append the persisted item.

        Raises:
            ValidationRejection: end is not after start.
            ConflictRejection: candidate overlaps an existing item.
            RemoteFailure: the store rejected the write (state.error is set too).
        """
        validate_candidate(candidate)
        async with self._mutation_lock:
            self._gate(self._state.items, candidate)
            self.set_loading(True)
            try:
                record = await self.store.create_item(candidate.to_record())
                persisted = self._to_item("create_item", record)
                await self._apply_persisted(ActionType.ADD_ITEM, persisted)
            except RemoteFailure as e:
                self._fail(e, SAVE_ERROR)
                raise
            finally:
                self.set_loading(False)
            logger.info(f"Created {persisted.type.value} {persisted.id} '{persisted.title}'")
            return persisted

    async def update_item(self, candidate: CalendarItem) -> CalendarItem:
        """Replace the item sharing `candidate.id` with the persisted candidate.

        Raises:
            ValidationRejection: end is not after start, or the candidate has no id.
            ConflictRejection: candidate overlaps another item.
            RemoteFailure: the store rejected the write (state.error is set too).
        """
        validate_candidate(candidate)
        if candidate.id is None:
            raise ValidationRejection("Cannot update an item that was never saved")

        async with self._mutation_lock:
            others = [item for item in self._state.items if item.id != candidate.id]
            self._gate(others, candidate)
            self.set_loading(True)
            try:
                record = await self.store.update_item(candidate.id, candidate.to_record())
                persisted = self._to_item("update_item", record)
                await self._apply_persisted(ActionType.UPDATE_ITEM, persisted)
            except RemoteFailure as e:
                self._fail(e, SAVE_ERROR)
                raise
            finally:
                self.set_loading(False)
            logger.info(f"Updated {persisted.type.value} {persisted.id} '{persisted.title}'")
            return persisted

    async def delete_item(self, item_id: str) -> bool:
        """Delete remotely, drop locally, then resynchronize with a full refetch.

        Returns True when the store confirmed the deletion. Failures only show
        up in state.error.
        """
        async with self._mutation_lock:
            self.set_loading(True)
            failure = None
            try:
                await self.store.delete_item(item_id)
            except RemoteFailure as e:
                failure = e
                self._fail(e, DELETE_ERROR)
            else:
                self.dispatch(Action(ActionType.DELETE_ITEM, item_id))
            finally:
                self.set_loading(False)

            await self._refetch()
            if failure is not None:
                # the cleanup refetch clears the error; the failed delete must stay visible
                self.set_error(DELETE_ERROR)
            return failure is None

    async def toggle_task_completion(self, item_id: str) -> bool:
        """Flip a task's completion on the store, bypassing the conflict gate."""
        async with self._mutation_lock:
            self.set_loading(True)
            try:
                await self.store.toggle_task_completion(item_id)
            except RemoteFailure as e:
                self._fail(e, TOGGLE_ERROR)
                return False
            finally:
                self.set_loading(False)
            return await self._refetch()

    async def refresh(self) -> bool:
        """Reload the whole collection from the store."""
        async with self._mutation_lock:
            return await self._refetch()

    async def set_privileged(self, privileged: bool) -> bool:
        """Switch privilege class; the visible item set differs, so refetch on change."""
        if privileged == self._privileged:
            return False
        self._privileged = privileged
        logger.info(f"Privilege changed (privileged={privileged}), refetching items")
        await self.refresh()
        return True

    async def _refetch(self) -> bool:
        self.set_loading(True)
        if self._privileged:
            fetches = (self.store.fetch_all_events(), self.store.fetch_all_tasks())
        else:
            fetches = (self.store.fetch_visible_events(), self.store.fetch_visible_tasks())

        try:
            events, tasks = await asyncio.gather(*fetches)
        except RemoteFailure as e:
            self._fail(e, FETCH_ERROR)
            return False
        finally:
            self.set_loading(False)

        items = merge_records(events or [], tasks or [])
        self.replace_all_items(items)
        logger.debug(f"Loaded {len(items)} items (privileged={self._privileged})")
        return True
