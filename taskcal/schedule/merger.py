"""
Unified Item Merger - one ordered projection over tasks and calendar events.

Ordering:
- ascending by due date
- on the same date, task items before calendar items
- otherwise input encounter order (tasks are encountered before events)

Task-tagged calendar events are shown as tasks but keep their start instant,
which is how a task gets a time of day the task store cannot hold.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo

from .models import CalendarEvent, ItemKind, ItemType, TargetRef, TaskItem, UnifiedItem
from .normalizer import local_date_of, recurrence_from_rules, today

logger = logging.getLogger(__name__)

NO_TITLE = "(No title)"

_TYPE_RANK = {ItemType.TASK: 0, ItemType.CALENDAR: 1}


def task_to_unified(task: TaskItem, list_id: str | None = None) -> UnifiedItem | None:
    """Project a task. Tasks without a due date have no place and return None."""
    if task.due is None:
        return None
    owner = list_id or task.list_id
    return UnifiedItem(
        id=task.id,
        type=ItemType.TASK,
        title=task.title or NO_TITLE,
        due_date=task.due,
        completed=task.completed,
        is_all_day=True,
        description=task.notes,
        source_ref=TargetRef(id=task.id, kind=ItemKind.TASK, list_id=owner),
    )


def event_to_unified(event: CalendarEvent, tz: tzinfo | None = None) -> UnifiedItem | None:
    """Project a calendar event. Events without a start return None."""
    if event.start is None:
        return None

    due_instant = event.start if isinstance(event.start, datetime) else None
    kind = ItemKind.TASK_EVENT if event.is_task_tagged else ItemKind.EVENT
    return UnifiedItem(
        id=event.id,
        type=ItemType.TASK if event.is_task_tagged else ItemType.CALENDAR,
        title=event.title or NO_TITLE,
        due_date=local_date_of(event.start, tz),
        due_instant=due_instant,
        is_all_day=due_instant is None,
        recurrence=recurrence_from_rules(event.recurrence_rules),
        description=event.description,
        source_ref=TargetRef(id=event.id, kind=kind, calendar_id=event.calendar_id),
    )


def merge(
    tasks: Iterable[tuple[TaskItem, str]],
    events: Iterable[CalendarEvent],
    tz: tzinfo | None = None,
) -> list[UnifiedItem]:
    """
    Merge tasks and calendar events into one sorted list.

    Args:
        tasks: (task, owning list id) pairs
        events: Calendar events, task-tagged or not
        tz: Zone used to place timed events on a calendar date

    Returns:
        UnifiedItems sorted by (due_date, task-before-calendar), stable
    """
    unified: list[UnifiedItem] = []

    for task, list_id in tasks:
        item = task_to_unified(task, list_id)
        if item is not None:
            unified.append(item)

    skipped = 0
    for event in events:
        item = event_to_unified(event, tz)
        if item is None:
            skipped += 1
            continue
        unified.append(item)

    if skipped:
        logger.debug(f"Skipped {skipped} events without a start")

    # list.sort is stable, so equal keys keep encounter order
    unified.sort(key=lambda item: (item.due_date, _TYPE_RANK[item.type]))
    return unified


# =============================================================================
# VIEWS
# =============================================================================


def group_by_date(items: Iterable[UnifiedItem]) -> dict[date, list[UnifiedItem]]:
    """Group items by due date, preserving order within each day."""
    grouped: dict[date, list[UnifiedItem]] = {}
    for item in items:
        grouped.setdefault(item.due_date, []).append(item)
    return grouped


def items_for_date(items: Iterable[UnifiedItem], day: date) -> list[UnifiedItem]:
    return [item for item in items if item.due_date == day]


def items_for_range(items: Iterable[UnifiedItem], start: date, end: date) -> list[UnifiedItem]:
    """Items dated within [start, end], both bounds inclusive."""
    return [item for item in items if start <= item.due_date <= end]


def items_for_month(items: Iterable[UnifiedItem], year: int, month: int) -> list[UnifiedItem]:
    return [
        item for item in items if item.due_date.year == year and item.due_date.month == month
    ]


def upcoming_items(
    items: Iterable[UnifiedItem],
    days_ahead: int = 14,
    reference: date | None = None,
) -> list[UnifiedItem]:
    """Items due from the reference day through `days_ahead` days later."""
    start = reference or today()
    return items_for_range(items, start, start + timedelta(days=days_ahead))
