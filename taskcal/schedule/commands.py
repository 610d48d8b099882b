"""
Schedule commands - one-shot scheduling operations on a single task.

These back the task-level actions (set, clear, complete, promote to a timed
task event) and the task branch of the panel's submit and delete. Each
function awaits the facade directly; callers own refreshing their views
afterwards.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, tzinfo
from typing import Any

from taskcal.errors import ConfirmationRequired, NotFoundError, ValidationError
from taskcal.integrations.facade import RemoteSyncFacade

from .merger import merge
from .models import (
    CalendarEvent,
    EventSpec,
    ItemKind,
    RecurrenceTag,
    ScheduleSpec,
    TargetRef,
    TaskItem,
    UnifiedItem,
)
from .normalizer import schedule_to_instant

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], Awaitable[bool]]
"""Asks the user a yes/no question; True means go ahead."""

DEFAULT_EVENT_MINUTES = 60

RECURRENCE_NOTE_PREFIX = "Recurring: "


# =============================================================================
# LOOKUP
# =============================================================================


async def locate_task_list(facade: RemoteSyncFacade, task_id: str) -> str:
    """
    Find the list holding a task by scanning every list.

    Raises:
        NotFoundError: If no list contains the id
    """
    for task_list in await facade.list_task_lists():
        tasks = await facade.list_tasks(task_list.id)
        if any(task.id == task_id for task in tasks):
            return task_list.id
    raise NotFoundError(f"Task {task_id} not found in any list")


async def patch_task_anywhere(
    facade: RemoteSyncFacade, ref: TargetRef, fields: dict[str, Any]
) -> TaskItem:
    """
    Patch a task, falling back to a list scan.

    The list id on the reference is tried first. Only when it is missing or
    the store reports NotFound are the lists scanned.
    """
    if ref.list_id:
        try:
            return await facade.patch_task(ref.list_id, ref.id, fields)
        except NotFoundError:
            logger.info(f"Task {ref.id} not in list {ref.list_id}, scanning all lists")

    list_id = await locate_task_list(facade, ref.id)
    return await facade.patch_task(list_id, ref.id, fields)


async def load_items(
    facade: RemoteSyncFacade,
    range_start: datetime,
    range_end: datetime,
    tz: tzinfo | None = None,
    include_completed: bool = False,
) -> list[UnifiedItem]:
    """
    Fetch every task and the events in [range_start, range_end), then merge.

    Tasks are not range-filtered; the task store cannot query by due date.
    """
    tasks = []
    for task_list in await facade.list_task_lists():
        for task in await facade.list_tasks(task_list.id):
            if task.completed and not include_completed:
                continue
            tasks.append((task, task_list.id))
    events = await facade.list_events(range_start, range_end)

    items = merge(tasks, events, tz)
    logger.info(f"Loaded {len(tasks)} tasks and {len(events)} events")
    return items


async def delete_task_anywhere(facade: RemoteSyncFacade, ref: TargetRef) -> None:
    list_id = ref.list_id or await locate_task_list(facade, ref.id)
    await facade.delete_task(list_id, ref.id)


# =============================================================================
# COMMANDS
# =============================================================================


async def create_task_event(
    facade: RemoteSyncFacade,
    title: str,
    schedule: ScheduleSpec,
    description: str = "",
    duration_minutes: int = DEFAULT_EVENT_MINUTES,
) -> CalendarEvent:
    """Create a calendar event tagged as a task."""
    if not title.strip():
        raise ValidationError("Title is required", field="title")
    spec = EventSpec(
        title=title.strip(),
        schedule=schedule,
        description=description,
        is_task_tagged=True,
        duration_minutes=duration_minutes,
    )
    event = await facade.create_event(spec)
    logger.info(f"Created task event {event.id} for {schedule.date}")
    return event


async def set_task_schedule(
    facade: RemoteSyncFacade,
    ref: TargetRef,
    schedule: ScheduleSpec,
    title: str = "",
    tz: tzinfo | None = None,
    duration_minutes: int = DEFAULT_EVENT_MINUTES,
    notes: str | None = None,
) -> TaskItem | CalendarEvent:
    """
    Schedule a task.

    A date-only schedule patches the task's due date. A schedule with a time
    of day cannot live in the task store, so a task event is created instead.

    The task store has no recurrence field; a recurring schedule is kept as a
    "Recurring: <tag>" line in the notes.

    Args:
        title: New title. Left unchanged when empty.
        notes: New notes. None leaves them unchanged unless a recurrence
            line has to be written.

    Returns:
        The patched TaskItem, or the new task-tagged CalendarEvent
    """
    if not schedule.is_all_day:
        return await create_task_event(
            facade, title, schedule, notes or "", duration_minutes=duration_minutes
        )

    fields: dict[str, Any] = {"due": schedule_to_instant(schedule, tz)}
    if title.strip():
        fields["title"] = title.strip()
    if notes is not None or schedule.recurrence:
        fields["notes"] = task_notes(notes or "", schedule.recurrence)
    task = await patch_task_anywhere(facade, ref, fields)
    logger.info(f"Scheduled task {ref.id} for {schedule.date}")
    return task


def task_notes(notes: str, recurrence: RecurrenceTag | None) -> str | None:
    """Notes with any recurrence line replaced by one for `recurrence`."""
    if recurrence is None:
        return notes.strip() or None
    lines = [line for line in notes.splitlines() if not line.startswith(RECURRENCE_NOTE_PREFIX)]
    lines.append(f"{RECURRENCE_NOTE_PREFIX}{recurrence.value}")
    return "\n".join(lines).strip()


async def complete_task(facade: RemoteSyncFacade, ref: TargetRef) -> TaskItem:
    """
    Mark a task completed.

    Raises:
        ValidationError: If `ref` is not a task-store task
    """
    if ref.kind != ItemKind.TASK:
        raise ValidationError("Only tasks can be completed", field="target_ref")

    task = await patch_task_anywhere(facade, ref, {"status": "completed"})
    logger.info(f"Completed task {ref.id}")
    return task


async def clear_task_schedule(
    facade: RemoteSyncFacade,
    ref: TargetRef,
    confirm: ConfirmCallback | None,
    title: str = "",
) -> TaskItem:
    """
    Remove a task's due date after confirmation.

    Raises:
        ConfirmationRequired: If there is no confirm callback or it declined
    """
    if confirm is None or not await confirm(f"Clear the schedule of {title or 'this task'}?"):
        raise ConfirmationRequired(f"Clearing the schedule of {ref.id} was not confirmed")

    task = await patch_task_anywhere(facade, ref, {"due": None})
    logger.info(f"Cleared schedule of task {ref.id}")
    return task
