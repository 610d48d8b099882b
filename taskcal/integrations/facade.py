"""
Remote Sync Facade - the only way the core reaches the two stores.

Implementations:
- GoogleSyncFacade (Google Tasks + Google Calendar)
- InMemoryFacade (offline runs and tests)
- TimeoutFacade (wraps another facade and bounds each call)

Failures surface as taskcal.errors.RemoteError; a missing id surfaces as
NotFoundError.
"""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from taskcal.schedule.models import CalendarEvent, EventSpec, TaskItem, TaskList


@runtime_checkable
class RemoteSyncFacade(Protocol):
    """Async list/create/update/delete over the task and calendar stores."""

    async def list_task_lists(self) -> list[TaskList]: ...

    async def list_tasks(self, list_id: str) -> list[TaskItem]: ...

    async def insert_task(self, list_id: str, fields: dict[str, Any]) -> TaskItem: ...

    async def patch_task(self, list_id: str, task_id: str, fields: dict[str, Any]) -> TaskItem:
        """Patch a task. Raises NotFoundError when the id is not in the list."""
        ...

    async def delete_task(self, list_id: str, task_id: str) -> None: ...

    async def list_events(self, range_start: datetime, range_end: datetime) -> list[CalendarEvent]: ...

    async def create_event(self, spec: EventSpec) -> CalendarEvent: ...

    async def update_event(self, event_id: str, spec: EventSpec) -> CalendarEvent: ...

    async def delete_event(self, event_id: str) -> None: ...
