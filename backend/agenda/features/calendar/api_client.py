"""
Calendar feature: HTTP client for the task-events REST API.

ENDPOINTS (all relative to TASK_EVENTS_API_BASE_URL):
  GET    /task-events/events                        visible events
  GET    /task-events/tasks                         visible tasks
  GET    /task-events/admin/events                  all events (privileged)
  GET    /task-events/admin/tasks                   all tasks (privileged)
  POST   /task-events                               create, returns persisted record
  PUT    /task-events/{id}                          full replace, returns persisted record
  DELETE /task-events/{id}
  PATCH  /task-events/tasks/{id}/toggle-completion
"""

import logging

import httpx

from agenda.core.exceptions import ItemNotFoundError, RemoteFailure
from agenda.features.calendar.store import ItemStore

logger = logging.getLogger(__name__)

ENDPOINT = "/task-events"


class TaskEventsAPIClient(ItemStore):
    """Item store backed by the task-events REST API.

    Auth: an opaque Bearer token issued elsewhere is sent on every request.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        item_id: str | None = None,
        json: dict | None = None,
    ):
        try:
            response = await self._client.request(method, path, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404 and item_id is not None:
                raise ItemNotFoundError(operation, item_id) from e
            logger.error(f"{operation}: {method} {path} -> {e.response.status_code}")
            raise RemoteFailure(operation, f"HTTP {e.response.status_code}: {e.response.text}") from e
        except httpx.HTTPError as e:
            logger.error(f"{operation}: {method} {path} failed: {e}")
            raise RemoteFailure(operation, str(e)) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{operation}: {method} {path} returned a non-JSON body")
            raise RemoteFailure(operation, f"Invalid JSON response: {e}") from e

    # ── Reads ────────────────────────────────────────────

    async def fetch_visible_events(self) -> list[dict]:
        return await self._request("fetch_visible_events", "GET", f"{ENDPOINT}/events") or []

    async def fetch_all_events(self) -> list[dict]:
        return await self._request("fetch_all_events", "GET", f"{ENDPOINT}/admin/events") or []

    async def fetch_visible_tasks(self) -> list[dict]:
        return await self._request("fetch_visible_tasks", "GET", f"{ENDPOINT}/tasks") or []

    async def fetch_all_tasks(self) -> list[dict]:
        return await self._request("fetch_all_tasks", "GET", f"{ENDPOINT}/admin/tasks") or []

    # ── Writes ───────────────────────────────────────────

    async def create_item(self, record: dict) -> dict:
        return await self._request("create_item", "POST", ENDPOINT, json=record)

    async def update_item(self, item_id: str, record: dict) -> dict:
        return await self._request(
            "update_item", "PUT", f"{ENDPOINT}/{item_id}", item_id=item_id, json=record
        )

    async def delete_item(self, item_id: str) -> None:
        await self._request("delete_item", "DELETE", f"{ENDPOINT}/{item_id}", item_id=item_id)

    async def toggle_task_completion(self, item_id: str) -> None:
        await self._request(
            "toggle_task_completion",
            "PATCH",
            f"{ENDPOINT}/tasks/{item_id}/toggle-completion",
            item_id=item_id,
        )

    async def close(self):
        """Close the underlying HTTP client."""
        await self._client.aclose()
