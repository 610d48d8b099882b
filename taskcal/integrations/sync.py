"""
Facade implementations that compose or wrap stores.
"""

import asyncio
import logging
from datetime import datetime, tzinfo
from typing import Any

from taskcal import config
from taskcal.config import load_settings
from taskcal.errors import RemoteError
from taskcal.schedule.models import CalendarEvent, EventSpec, TaskItem, TaskList

from .facade import RemoteSyncFacade
from .google_calendar import GoogleCalendarStore
from .google_tasks import GoogleTasksStore
from .memory import InMemoryFacade

logger = logging.getLogger(__name__)


class GoogleSyncFacade:
    """Google Tasks + Google Calendar behind the RemoteSyncFacade protocol."""

    def __init__(
        self,
        tasks: GoogleTasksStore | None = None,
        calendar: GoogleCalendarStore | None = None,
        tz: tzinfo | None = None,
    ):
        self.tasks = tasks or GoogleTasksStore(tz=tz)
        self.calendar = calendar or GoogleCalendarStore(tz=tz)

    async def list_task_lists(self) -> list[TaskList]:
        return await self.tasks.list_task_lists()

    async def list_tasks(self, list_id: str) -> list[TaskItem]:
        return await self.tasks.list_tasks(list_id)

    async def insert_task(self, list_id: str, fields: dict[str, Any]) -> TaskItem:
        return await self.tasks.insert_task(list_id, fields)

    async def patch_task(self, list_id: str, task_id: str, fields: dict[str, Any]) -> TaskItem:
        return await self.tasks.patch_task(list_id, task_id, fields)

    async def delete_task(self, list_id: str, task_id: str) -> None:
        await self.tasks.delete_task(list_id, task_id)

    async def list_events(self, range_start: datetime, range_end: datetime) -> list[CalendarEvent]:
        return await self.calendar.list_events(range_start, range_end)

    async def create_event(self, spec: EventSpec) -> CalendarEvent:
        return await self.calendar.create_event(spec)

    async def update_event(self, event_id: str, spec: EventSpec) -> CalendarEvent:
        return await self.calendar.update_event(event_id, spec)

    async def delete_event(self, event_id: str) -> None:
        await self.calendar.delete_event(event_id)


class TimeoutFacade:
    """
    Bound every call of another facade.

    The core never times out a store call by itself; wrap the facade in this
    when the panel must not stay in `submitting` on a stalled network.
    """

    def __init__(self, inner: RemoteSyncFacade, timeout_seconds: float = 30.0):
        self.inner = inner
        self.timeout_seconds = timeout_seconds

    async def _call(self, name: str, *args):
        try:
            return await asyncio.wait_for(getattr(self.inner, name)(*args), self.timeout_seconds)
        except TimeoutError as e:
            logger.warning(f"{name} timed out after {self.timeout_seconds}s")
            raise RemoteError(
                f"{name} timed out after {self.timeout_seconds}s", reason="timeout"
            ) from e

    async def list_task_lists(self) -> list[TaskList]:
        return await self._call("list_task_lists")

    async def list_tasks(self, list_id: str) -> list[TaskItem]:
        return await self._call("list_tasks", list_id)

    async def insert_task(self, list_id: str, fields: dict[str, Any]) -> TaskItem:
        return await self._call("insert_task", list_id, fields)

    async def patch_task(self, list_id: str, task_id: str, fields: dict[str, Any]) -> TaskItem:
        return await self._call("patch_task", list_id, task_id, fields)

    async def delete_task(self, list_id: str, task_id: str) -> None:
        await self._call("delete_task", list_id, task_id)

    async def list_events(self, range_start: datetime, range_end: datetime) -> list[CalendarEvent]:
        return await self._call("list_events", range_start, range_end)

    async def create_event(self, spec: EventSpec) -> CalendarEvent:
        return await self._call("create_event", spec)

    async def update_event(self, event_id: str, spec: EventSpec) -> CalendarEvent:
        return await self._call("update_event", event_id, spec)

    async def delete_event(self, event_id: str) -> None:
        await self._call("delete_event", event_id)


def build_default_facade(tz: tzinfo | None = None, timeout_seconds: float | None = None) -> RemoteSyncFacade:
    """
    Google stores bounded by a timeout, or empty in-memory stores when
    TASKCAL_OFFLINE=1.
    """
    if config.OFFLINE:
        logger.info("TASKCAL_OFFLINE=1, using in-memory stores")
        return InMemoryFacade(tz=tz)

    settings = load_settings()
    return TimeoutFacade(
        GoogleSyncFacade(
            tasks=GoogleTasksStore(include_completed=settings.include_completed_tasks, tz=tz),
            tz=tz,
        ),
        timeout_seconds or config.REMOTE_TIMEOUT_SECONDS,
    )
