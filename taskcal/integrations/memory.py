"""
In-memory facade - both stores held in dicts.

Used for offline runs of the CLI and panel server, and by the tests. Every
call is recorded in `calls`. A call can be made to fail (`fail_next`) or to
wait on an asyncio.Event (`hold`) so in-flight behaviour can be exercised.
"""

import asyncio
import itertools
import logging
from dataclasses import replace
from datetime import date, datetime, tzinfo
from typing import Any

from taskcal.errors import NotFoundError
from taskcal.schedule.models import CalendarEvent, EventSpec, TaskItem, TaskList
from taskcal.schedule.normalizer import parse_instant

from .google_calendar import apply_event_spec

logger = logging.getLogger(__name__)


class InMemoryFacade:
    """Dict-backed task and calendar stores."""

    def __init__(self, tz: tzinfo | None = None, calendar_id: str = "primary"):
        self.tz = tz
        self.calendar_id = calendar_id
        self.task_lists: dict[str, TaskList] = {}
        self.tasks: dict[str, dict[str, TaskItem]] = {}
        self.events: dict[str, CalendarEvent] = {}
        self.calls: list[tuple[str, tuple]] = []
        self._failures: dict[str, Exception] = {}
        self._holds: dict[str, asyncio.Event] = {}
        self._ids = itertools.count(1)

    # =========================================================================
    # Seeding and test hooks
    # =========================================================================

    def add_task_list(self, list_id: str, title: str = "") -> TaskList:
        task_list = TaskList(id=list_id, title=title or list_id)
        self.task_lists[list_id] = task_list
        self.tasks.setdefault(list_id, {})
        return task_list

    def add_task(self, list_id: str, task_id: str, title: str, due: date | None = None,
                 completed: bool = False, notes: str | None = None) -> TaskItem:
        if list_id not in self.task_lists:
            self.add_task_list(list_id)
        task = TaskItem(
            id=task_id, list_id=list_id, title=title, notes=notes, due=due, completed=completed
        )
        self.tasks[list_id][task_id] = task
        return task

    def add_event(self, event: CalendarEvent) -> CalendarEvent:
        self.events[event.id] = event
        return event

    def fail_next(self, method: str, error: Exception) -> None:
        """Make the next call of `method` raise `error`."""
        self._failures[method] = error

    def hold(self, method: str) -> asyncio.Event:
        """Block calls of `method` until the returned event is set."""
        gate = asyncio.Event()
        self._holds[method] = gate
        return gate

    def calls_to(self, method: str) -> list[tuple]:
        return [args for name, args in self.calls if name == method]

    async def _enter(self, method: str, *args) -> None:
        self.calls.append((method, args))
        gate = self._holds.get(method)
        if gate is not None:
            await gate.wait()
        error = self._failures.pop(method, None)
        if error is not None:
            logger.debug(f"{method} failing on request: {error}")
            raise error

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    # =========================================================================
    # Task store
    # =========================================================================

    def _apply_task_fields(self, task: TaskItem, fields: dict[str, Any]) -> TaskItem:
        changes: dict[str, Any] = {}
        if "title" in fields:
            changes["title"] = fields["title"] or ""
        if "notes" in fields:
            changes["notes"] = fields["notes"]
        if "due" in fields:
            wire = fields["due"]
            changes["due"] = parse_instant(wire, self.tz)[0] if wire else None
        if "status" in fields:
            changes["completed"] = fields["status"] == "completed"
        return replace(task, **changes)

    def _tasks_in(self, list_id: str) -> dict[str, TaskItem]:
        if list_id not in self.tasks:
            raise NotFoundError(f"Task list {list_id}: not found")
        return self.tasks[list_id]

    async def list_task_lists(self) -> list[TaskList]:
        await self._enter("list_task_lists")
        return list(self.task_lists.values())

    async def list_tasks(self, list_id: str) -> list[TaskItem]:
        await self._enter("list_tasks", list_id)
        return list(self._tasks_in(list_id).values())

    async def insert_task(self, list_id: str, fields: dict[str, Any]) -> TaskItem:
        await self._enter("insert_task", list_id, dict(fields))
        bucket = self._tasks_in(list_id)
        task = self._apply_task_fields(TaskItem(id=self._next_id("task"), list_id=list_id), fields)
        bucket[task.id] = task
        return task

    async def patch_task(self, list_id: str, task_id: str, fields: dict[str, Any]) -> TaskItem:
        await self._enter("patch_task", list_id, task_id, dict(fields))
        bucket = self.tasks.get(list_id, {})
        if task_id not in bucket:
            raise NotFoundError(f"Update task {task_id}: not found")
        task = self._apply_task_fields(bucket[task_id], fields)
        bucket[task_id] = task
        return task

    async def delete_task(self, list_id: str, task_id: str) -> None:
        await self._enter("delete_task", list_id, task_id)
        bucket = self.tasks.get(list_id, {})
        if bucket.pop(task_id, None) is None:
            raise NotFoundError(f"Delete task {task_id}: not found")

    # =========================================================================
    # Calendar store
    # =========================================================================

    def _build_event(self, event_id: str, spec: EventSpec) -> CalendarEvent:
        body = apply_event_spec({"id": event_id}, spec, self.tz)
        return CalendarEvent.from_api(body, self.calendar_id)

    @staticmethod
    def _starts_within(event: CalendarEvent, range_start: datetime, range_end: datetime) -> bool:
        if event.start is None:
            return False
        if isinstance(event.start, datetime):
            return range_start <= event.start < range_end
        return range_start.date() <= event.start < range_end.date()

    async def list_events(self, range_start: datetime, range_end: datetime) -> list[CalendarEvent]:
        await self._enter("list_events", range_start, range_end)
        return [e for e in self.events.values() if self._starts_within(e, range_start, range_end)]

    async def create_event(self, spec: EventSpec) -> CalendarEvent:
        await self._enter("create_event", spec)
        event = self._build_event(self._next_id("evt"), spec)
        self.events[event.id] = event
        return event

    async def update_event(self, event_id: str, spec: EventSpec) -> CalendarEvent:
        await self._enter("update_event", event_id, spec)
        if event_id not in self.events:
            raise NotFoundError(f"Update event {event_id}: not found")
        event = self._build_event(event_id, spec)
        self.events[event_id] = event
        return event

    async def delete_event(self, event_id: str) -> None:
        await self._enter("delete_event", event_id)
        if self.events.pop(event_id, None) is None:
            raise NotFoundError(f"Delete event {event_id}: not found")
