"""
Calendar feature: abstract interface to the remote authoritative item store.

Adapters return raw records (dicts); mapping to CalendarItem happens in the
controller so that every adapter shares one normalization point.
"""

from abc import ABC, abstractmethod


class ItemStore(ABC):
    """Async operation set the reconciliation controller relies on.

    Implementations raise RemoteFailure (or ItemNotFoundError) for any
    store-side failure.
    """

    @abstractmethod
    async def fetch_visible_events(self) -> list[dict]:
        """Event records the current user may see."""

    @abstractmethod
    async def fetch_all_events(self) -> list[dict]:
        """Every event record (privileged callers)."""

    @abstractmethod
    async def fetch_visible_tasks(self) -> list[dict]:
        """Task records the current user may see."""

    @abstractmethod
    async def fetch_all_tasks(self) -> list[dict]:
        """Every task record (privileged callers)."""

    @abstractmethod
    async def create_item(self, record: dict) -> dict:
        """Persist a new record; the returned record carries the assigned id."""

    @abstractmethod
    async def update_item(self, item_id: str, record: dict) -> dict:
        """Replace the record stored under `item_id`."""

    @abstractmethod
    async def delete_item(self, item_id: str) -> None:
        """Remove the record stored under `item_id`."""

    @abstractmethod
    async def toggle_task_completion(self, item_id: str) -> None:
        """Flip a task between COMPLETED and PENDING."""

    async def close(self) -> None:
        """Release transport resources, if any."""
