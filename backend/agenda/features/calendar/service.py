"""
Calendar feature: Supabase-backed item store.

The Supabase client is synchronous; every query runs in the default executor
so the event loop stays free while a request is in flight.
"""

import asyncio
import logging
from functools import partial
from typing import Callable

from supabase import Client

from agenda.core.exceptions import ItemNotFoundError, RemoteFailure
from agenda.features.calendar.store import ItemStore

logger = logging.getLogger(__name__)

# camelCase write payload -> snake_case table column
_COLUMNS = {
    "title": "title",
    "description": "description",
    "type": "type",
    "status": "status",
    "startTime": "start_time",
    "dueDate": "due_date",
    "location": "location",
    "color": "color",
    "global": "is_global",
    "assignedUserIds": "assigned_user_ids",
}


def record_to_row(record: dict) -> dict:
    """Translate a camelCase write payload into table columns."""
    return {column: record[key] for key, column in _COLUMNS.items() if key in record}


class SupabaseItemStore(ItemStore):
    """CRUD operations for events and tasks stored in one Supabase table."""

    def __init__(self, db: Client, user_id: str, table: str = "task_events"):
        self.db = db
        self.user_id = user_id
        self.table = table

    async def _run(self, operation: str, query: Callable):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, query)
        except RemoteFailure:
            raise
        except Exception as e:
            logger.error(f"Supabase {operation} failed: {e}")
            raise RemoteFailure(operation, str(e)) from e

    # ── Reads ────────────────────────────────────────────

    def _select(self, item_type: str, visible_only: bool) -> list[dict]:
        query = self.db.table(self.table).select("*").eq("type", item_type)
        if visible_only:
            query = query.or_(
                f"is_global.eq.true,"
                f"user_id.eq.{self.user_id},"
                f"assigned_user_ids.cs.{{{self.user_id}}}"
            )
        result = query.order("start_time", desc=False).execute()
        return result.data or []

    async def fetch_visible_events(self) -> list[dict]:
        return await self._run("fetch_visible_events", partial(self._select, "EVENT", True))

    async def fetch_all_events(self) -> list[dict]:
        return await self._run("fetch_all_events", partial(self._select, "EVENT", False))

    async def fetch_visible_tasks(self) -> list[dict]:
        return await self._run("fetch_visible_tasks", partial(self._select, "TASK", True))

    async def fetch_all_tasks(self) -> list[dict]:
        return await self._run("fetch_all_tasks", partial(self._select, "TASK", False))

    # ── Writes ───────────────────────────────────────────

    def _insert(self, record: dict) -> dict:
        row = {**record_to_row(record), "user_id": self.user_id}
        result = self.db.table(self.table).insert(row).execute()
        return result.data[0]

    def _update(self, item_id: str, record: dict) -> dict:
        result = (
            self.db.table(self.table)
            .update(record_to_row(record))
            .eq("id", item_id)
            .execute()
        )
        if not result.data:
            raise ItemNotFoundError("update_item", item_id)
        return result.data[0]

    def _delete(self, item_id: str) -> None:
        result = self.db.table(self.table).delete().eq("id", item_id).execute()
        if not result.data:
            raise ItemNotFoundError("delete_item", item_id)

    def _toggle(self, item_id: str) -> None:
        current = (
            self.db.table(self.table)
            .select("status")
            .eq("id", item_id)
            .eq("type", "TASK")
            .execute()
        )
        if not current.data:
            raise ItemNotFoundError("toggle_task_completion", item_id)
        status = str(current.data[0].get("status") or "").upper()
        new_status = "PENDING" if status == "COMPLETED" else "COMPLETED"
        self.db.table(self.table).update({"status": new_status}).eq("id", item_id).execute()

    async def create_item(self, record: dict) -> dict:
        return await self._run("create_item", partial(self._insert, record))

    async def update_item(self, item_id: str, record: dict) -> dict:
        return await self._run("update_item", partial(self._update, item_id, record))

    async def delete_item(self, item_id: str) -> None:
        await self._run("delete_item", partial(self._delete, item_id))

    async def toggle_task_completion(self, item_id: str) -> None:
        await self._run("toggle_task_completion", partial(self._toggle, item_id))
