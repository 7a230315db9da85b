"""Tests for the reconciliation controller against an in-memory store."""

import asyncio
from datetime import datetime

import httpx
import pytest

from agenda.core.exceptions import ConflictRejection, ItemNotFoundError, RemoteFailure, ValidationRejection
from agenda.features.calendar.api_client import TaskEventsAPIClient
from agenda.features.calendar.controller import (
    DELETE_ERROR,
    FETCH_ERROR,
    SAVE_ERROR,
    TOGGLE_ERROR,
    CalendarController,
    merge_records,
)
from agenda.features.calendar.schemas import ItemType
from agenda.features.calendar.state import CalendarState, ViewMode
from fakes import FakeItemStore, make_item


def ids(controller: CalendarController) -> list[str]:
    return [item.id for item in controller.state.items]


async def loaded(store, privileged: bool = False) -> CalendarController:
    controller = CalendarController(store, privileged=privileged)
    await controller.refresh()
    return controller


class TestMergeRecords:
    def test_endpoint_supplies_missing_type(self):
        items = merge_records(
            [{"id": 1, "title": "Talk", "startTime": "2025-04-22T09:00:00", "dueDate": "2025-04-22T10:00:00"}],
            [{"id": 2, "title": "Todo", "startTime": "2025-04-22T11:00:00", "dueDate": "2025-04-22T12:00:00"}],
        )
        assert [item.type for item in items] == [ItemType.EVENT, ItemType.TASK]

    def test_malformed_records_are_skipped(self, caplog):
        items = merge_records(
            [
                {"id": 1, "title": "Talk", "startTime": "2025-04-22T09:00:00", "dueDate": "2025-04-22T10:00:00"},
                {"id": 2, "title": "No dates"},
            ],
            [],
        )
        assert [item.id for item in items] == ["1"]
        assert "Skipping malformed EVENT record" in caplog.text


class TestRefresh:
    @pytest.mark.asyncio
    async def test_visible_subset(self, seeded_store):
        controller = await loaded(seeded_store)
        assert sorted(ids(controller)) == ["1", "2"]
        assert controller.state.loading is False
        assert controller.state.error is None
        assert "fetch_visible_events" in seeded_store.calls
        assert "fetch_all_events" not in seeded_store.calls

    @pytest.mark.asyncio
    async def test_privileged_sees_everything(self, seeded_store):
        controller = await loaded(seeded_store, privileged=True)
        assert sorted(ids(controller)) == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_collection(self, seeded_store):
        controller = await loaded(seeded_store)
        seeded_store.fail_on.add("fetch_visible_tasks")
        assert await controller.refresh() is False
        assert sorted(ids(controller)) == ["1", "2"]
        assert controller.state.error == FETCH_ERROR
        assert controller.state.loading is False

    @pytest.mark.asyncio
    async def test_privilege_change_refetches(self, seeded_store):
        controller = await loaded(seeded_store)
        assert await controller.set_privileged(True) is True
        assert sorted(ids(controller)) == ["1", "2", "3"]
        assert await controller.set_privileged(True) is False


class TestAddItem:
    @pytest.mark.asyncio
    async def test_success_appends_persisted_item(self, seeded_store):
        controller = await loaded(seeded_store)
        candidate = make_item(datetime(2025, 4, 22, 13), datetime(2025, 4, 22, 14), title="Review")
        persisted = await controller.add_item(candidate)
        assert persisted.id is not None
        assert persisted.id in ids(controller)
        assert persisted.id in seeded_store.records
        assert controller.state.loading is False
        assert controller.state.error is None

    @pytest.mark.asyncio
    async def test_conflict_never_reaches_store(self, seeded_store):
        controller = await loaded(seeded_store)
        clash = make_item(datetime(2025, 4, 22, 11), datetime(2025, 4, 22, 12), title="Clash")
        with pytest.raises(ConflictRejection) as exc_info:
            await controller.add_item(clash)
        assert [item.id for item in exc_info.value.conflicts] == ["1"]
        assert "create_item" not in seeded_store.calls
        assert sorted(ids(controller)) == ["1", "2"]

    @pytest.mark.asyncio
    async def test_end_before_start_is_rejected(self, store):
        controller = CalendarController(store)
        backwards = make_item(datetime(2025, 4, 22, 10), datetime(2025, 4, 22, 9))
        with pytest.raises(ValidationRejection):
            await controller.add_item(backwards)
        zero_length = make_item(datetime(2025, 4, 22, 10), datetime(2025, 4, 22, 10))
        with pytest.raises(ValidationRejection):
            await controller.add_item(zero_length)
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_remote_failure_sets_error_and_reraises(self, seeded_store):
        controller = await loaded(seeded_store)
        seeded_store.fail_on.add("create_item")
        candidate = make_item(datetime(2025, 4, 22, 13), datetime(2025, 4, 22, 14))
        with pytest.raises(RemoteFailure):
            await controller.add_item(candidate)
        assert controller.state.error == SAVE_ERROR
        assert controller.state.loading is False
        assert sorted(ids(controller)) == ["1", "2"]

    @pytest.mark.asyncio
    async def test_concurrent_adds_cannot_both_pass_the_gate(self, store):
        controller = CalendarController(store)
        store.gate = asyncio.Event()
        first = make_item(datetime(2025, 4, 22, 9), datetime(2025, 4, 22, 10), title="First")
        second = make_item(datetime(2025, 4, 22, 9, 30), datetime(2025, 4, 22, 10, 30), title="Second")

        first_task = asyncio.create_task(controller.add_item(first))
        second_task = asyncio.create_task(controller.add_item(second))
        await asyncio.sleep(0)
        store.gate.set()

        persisted = await first_task
        with pytest.raises(ConflictRejection):
            await second_task
        assert ids(controller) == [persisted.id]
        assert store.calls.count("create_item") == 1


class TestUpdateItem:
    @pytest.mark.asyncio
    async def test_replaces_item(self, seeded_store):
        controller = await loaded(seeded_store)
        current = next(item for item in controller.state.items if item.id == "1")
        moved = current.model_copy(update={"start": datetime(2025, 4, 22, 8), "end": datetime(2025, 4, 22, 9)})
        persisted = await controller.update_item(moved)
        assert persisted.start == datetime(2025, 4, 22, 8)
        assert len(controller.state.items) == 2

    @pytest.mark.asyncio
    async def test_unchanged_interval_is_not_a_self_conflict(self, seeded_store):
        controller = await loaded(seeded_store)
        current = next(item for item in controller.state.items if item.id == "1")
        renamed = current.model_copy(update={"title": "Renamed"})
        assert (await controller.update_item(renamed)).title == "Renamed"

    @pytest.mark.asyncio
    async def test_requires_an_id(self, store):
        controller = CalendarController(store)
        with pytest.raises(ValidationRejection):
            await controller.update_item(make_item(datetime(2025, 4, 22, 9), datetime(2025, 4, 22, 10)))

    @pytest.mark.asyncio
    async def test_unknown_id_is_a_remote_failure(self, seeded_store):
        controller = await loaded(seeded_store)
        ghost = make_item(datetime(2025, 5, 1, 9), datetime(2025, 5, 1, 10), item_id="ghost")
        with pytest.raises(ItemNotFoundError):
            await controller.update_item(ghost)
        assert controller.state.error == SAVE_ERROR


class TestDeleteItem:
    @pytest.mark.asyncio
    async def test_delete_then_refetch(self, seeded_store):
        controller = await loaded(seeded_store)
        seeded_store.calls.clear()
        assert await controller.delete_item("1") is True
        assert ids(controller) == ["2"]
        assert seeded_store.calls[0] == "delete_item"
        assert "fetch_visible_events" in seeded_store.calls

    @pytest.mark.asyncio
    async def test_failure_is_not_raised_and_stays_visible(self, seeded_store):
        controller = await loaded(seeded_store)
        seeded_store.fail_on.add("delete_item")
        seeded_store.calls.clear()
        assert await controller.delete_item("1") is False
        assert controller.state.error == DELETE_ERROR
        assert controller.state.loading is False
        assert sorted(ids(controller)) == ["1", "2"]
        assert "fetch_visible_tasks" in seeded_store.calls


class TestToggleCompletion:
    @pytest.mark.asyncio
    async def test_toggle_refetches(self, seeded_store):
        controller = await loaded(seeded_store)
        assert await controller.toggle_task_completion("2") is True
        task = next(item for item in controller.state.items if item.id == "2")
        assert task.is_completed
        assert await controller.toggle_task_completion("2") is True
        task = next(item for item in controller.state.items if item.id == "2")
        assert not task.is_completed

    @pytest.mark.asyncio
    async def test_failure(self, seeded_store):
        controller = await loaded(seeded_store)
        assert await controller.toggle_task_completion("missing") is False
        assert controller.state.error == TOGGLE_ERROR
        assert controller.state.loading is False


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_late_resolution_is_dropped_after_close(self, store):
        controller = CalendarController(store)
        store.gate = asyncio.Event()
        candidate = make_item(datetime(2025, 4, 22, 9), datetime(2025, 4, 22, 10))
        task = asyncio.create_task(controller.add_item(candidate))
        await asyncio.sleep(0)
        controller.close()
        store.gate.set()
        await task
        assert controller.closed
        assert controller.state.items == ()

    def test_dispatch_after_close_is_ignored(self, store):
        controller = CalendarController(store)
        controller.close()
        controller.set_view("day")
        assert controller.state.view is ViewMode.MONTH


class TestReadSide:
    def test_navigation(self, store):
        controller = CalendarController(store)
        target = datetime(2025, 4, 23, 10)
        controller.navigate_to_day(target)
        assert controller.state.view is ViewMode.DAY
        assert controller.state.selected_date == target
        controller.navigate_to_week(datetime(2025, 5, 5))
        assert controller.state.view is ViewMode.WEEK
        assert controller.state.current_date == datetime(2025, 5, 5)

    def test_grids_follow_current_date(self, store):
        controller = CalendarController(store, state=CalendarState(current_date=datetime(2024, 2, 14)))
        grid = controller.month_grid()
        assert len(grid) == 42
        assert grid[0].isoformat() == "2024-01-29"
        assert len(controller.year_grid()) == 12

    def test_search_and_upcoming(self, store):
        now = datetime(2025, 4, 22, 8)
        items = tuple(
            make_item(datetime(2025, 4, 23 + day, 9), datetime(2025, 4, 23 + day, 10), title=f"Call {day}", item_id=str(day))
            for day in range(7)
        )
        controller = CalendarController(store, state=CalendarState(items=items))
        assert len(controller.upcoming(now=now)) == 5
        controller.set_show_all_upcoming(True)
        assert len(controller.upcoming(now=now)) == 7
        controller.set_search_term("call 3")
        assert [item.id for item in controller.filtered_items()] == ["3"]

    def test_day_layout_uses_selected_date(self, store):
        item = make_item(datetime(2025, 4, 22, 9), datetime(2025, 4, 22, 10), item_id="x")
        controller = CalendarController(
            store, state=CalendarState(items=(item,), selected_date=datetime(2025, 4, 22, 15)),
        )
        assert controller.day_layout().slots[9].placed[0].item == item
        assert len(controller.week_layout()) == 7


class ShiftingStore(FakeItemStore):
    """Store that saves every write with its start moved to 08:30."""

    async def create_item(self, record: dict) -> dict:
        return await super().create_item({**record, "startTime": "2025-04-22T08:30:00"})

    async def update_item(self, item_id: str, record: dict) -> dict:
        return await super().update_item(item_id, {**record, "startTime": "2025-04-22T08:30:00"})


def event_record(item_id: str, start: str, end: str) -> dict:
    return {"id": item_id, "title": f"Event {item_id}", "type": "EVENT", "startTime": start, "dueDate": end}


class TestStoreNormalizedWrites:
    @pytest.mark.asyncio
    async def test_add_resynchronizes_when_saved_times_overlap(self):
        store = ShiftingStore([event_record("1", "2025-04-22T08:00:00", "2025-04-22T09:00:00")])
        controller = await loaded(store)
        candidate = make_item(datetime(2025, 4, 22, 9), datetime(2025, 4, 22, 10), title="Standup")

        persisted = await controller.add_item(candidate)

        assert persisted.start == datetime(2025, 4, 22, 8, 30)
        assert sorted(ids(controller)) == sorted(store.records)
        assert controller.state.error is None
        assert controller.state.loading is False

    @pytest.mark.asyncio
    async def test_update_resynchronizes_when_saved_times_overlap(self):
        store = ShiftingStore([
            event_record("1", "2025-04-22T08:00:00", "2025-04-22T09:00:00"),
            event_record("2", "2025-04-22T10:00:00", "2025-04-22T11:00:00"),
        ])
        controller = await loaded(store)
        current = next(item for item in controller.state.items if item.id == "2")
        moved = current.model_copy(update={"start": datetime(2025, 4, 22, 9), "end": datetime(2025, 4, 22, 10)})

        await controller.update_item(moved)

        local = next(item for item in controller.state.items if item.id == "2")
        assert local.start == datetime(2025, 4, 22, 8, 30)
        assert sorted(ids(controller)) == ["1", "2"]
        assert controller.state.loading is False


class TestLoadingAlwaysCleared:
    @pytest.mark.asyncio
    async def test_non_json_response_becomes_save_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        api = TaskEventsAPIClient("http://api.test/api", transport=httpx.MockTransport(handler))
        controller = CalendarController(api)
        candidate = make_item(datetime(2025, 4, 22, 9), datetime(2025, 4, 22, 10))

        with pytest.raises(RemoteFailure):
            await controller.add_item(candidate)

        assert controller.state.loading is False
        assert controller.state.error == SAVE_ERROR
        assert controller.state.items == ()
        await api.close()

    @pytest.mark.asyncio
    async def test_unexpected_store_error_does_not_leave_loading_set(self, store):
        async def broken(record):
            raise RuntimeError("driver crashed")

        store.create_item = broken
        controller = CalendarController(store)
        with pytest.raises(RuntimeError):
            await controller.add_item(make_item(datetime(2025, 4, 22, 9), datetime(2025, 4, 22, 10)))
        assert controller.state.loading is False

    @pytest.mark.asyncio
    async def test_unexpected_fetch_error_does_not_leave_loading_set(self, store):
        async def broken():
            raise RuntimeError("driver crashed")

        store.fetch_visible_events = broken
        controller = CalendarController(store)
        with pytest.raises(RuntimeError):
            await controller.refresh()
        assert controller.state.loading is False
