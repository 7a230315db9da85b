"""
FastAPI dependency injection functions.

Authentication lives outside this package: the auth layer overrides
`get_current_user_id` and `get_privileged` through `app.dependency_overrides`.
"""

import logging
import time
from collections import OrderedDict

from fastapi import Depends, Header, Request

from agenda.config import Settings, get_settings
from agenda.core.database import get_supabase_client
from agenda.features.calendar.api_client import TaskEventsAPIClient
from agenda.features.calendar.controller import CalendarController
from agenda.features.calendar.service import SupabaseItemStore
from agenda.features.calendar.store import ItemStore

logger = logging.getLogger(__name__)


def get_current_user_id() -> str:
    """Dependency: id of the calling user (overridden by the auth layer)."""
    return "anonymous"


def get_privileged() -> bool:
    """Dependency: whether the caller may see the full collection."""
    return False


def build_item_store(settings: Settings, user_id: str) -> ItemStore:
    """Create the remote store selected by STORE_BACKEND."""
    if settings.STORE_BACKEND == "http":
        return TaskEventsAPIClient(
            base_url=settings.TASK_EVENTS_API_BASE_URL,
            token=settings.TASK_EVENTS_API_TOKEN or None,
            timeout=float(settings.API_TIMEOUT),
        )
    if settings.STORE_BACKEND == "supabase":
        return SupabaseItemStore(get_supabase_client(), user_id, table=settings.TASK_EVENTS_TABLE)
    raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")


class SessionRegistry:
    """One CalendarController per (user, session id), created lazily and loaded on first use.

    Sessions are bound to the user that opened them: the same session id sent
    by another user opens a separate controller over that user's store.
    Beyond `max_sessions` the least recently used session is closed, and
    sessions idle for longer than `idle_seconds` are closed on the next access.
    """

    def __init__(self, store_factory, max_sessions: int = 256, idle_seconds: float = 3600, clock=time.monotonic):
        self._store_factory = store_factory
        self._max_sessions = max_sessions
        self._idle_seconds = idle_seconds
        self._clock = clock
        self._controllers: OrderedDict[tuple[str, str], CalendarController] = OrderedDict()
        self._last_used: dict[tuple[str, str], float] = {}

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)

    async def get(self, session_id: str, user_id: str, privileged: bool) -> CalendarController:
        key = (user_id, session_id)
        await self._evict_idle()
        controller = self._controllers.get(key)
        if controller is None:
            controller = CalendarController(self._store_factory(user_id), privileged=privileged)
            self._controllers[key] = controller
            self._last_used[key] = self._clock()
            logger.info(f"Opened calendar session {session_id[:8]} for user {user_id}")
            await self._evict_overflow()
            await controller.refresh()
        else:
            self._controllers.move_to_end(key)
            self._last_used[key] = self._clock()
            await controller.set_privileged(privileged)
        return controller

    async def close(self, session_id: str, user_id: str) -> bool:
        """Close one session; returns False when it was not open."""
        key = (user_id, session_id)
        controller = self._controllers.pop(key, None)
        self._last_used.pop(key, None)
        if controller is None:
            return False
        controller.close()
        await controller.store.close()
        logger.info(f"Closed calendar session {session_id[:8]} for user {user_id}")
        return True

    async def close_all(self) -> None:
        for user_id, session_id in list(self._controllers):
            await self.close(session_id, user_id)

    async def _evict_idle(self) -> None:
        cutoff = self._clock() - self._idle_seconds
        for key, last_used in list(self._last_used.items()):
            if last_used < cutoff:
                await self.close(key[1], key[0])

    async def _evict_overflow(self) -> None:
        while len(self._controllers) > self._max_sessions:
            user_id, session_id = next(iter(self._controllers))
            await self.close(session_id, user_id)


async def get_controller(
    request: Request,
    x_session_id: str = Header("default"),
    user_id: str = Depends(get_current_user_id),
    privileged: bool = Depends(get_privileged),
) -> CalendarController:
    """Dependency: the calendar controller bound to the caller's user and session."""
    registry: SessionRegistry = request.app.state.sessions
    return await registry.get(x_session_id, user_id, privileged)


def default_store_factory(user_id: str) -> ItemStore:
    return build_item_store(get_settings(), user_id)
