"""
Tests for the Unified Item Merger.

Covers the task/event projection, ordering, idempotence and the date views.
"""

from datetime import date, timedelta, timezone

from taskcal.schedule.merger import (
    NO_TITLE,
    group_by_date,
    items_for_date,
    items_for_month,
    items_for_range,
    merge,
    upcoming_items,
)
from taskcal.schedule.models import CalendarEvent, ItemKind, ItemType, TaskItem

WEST = timezone(timedelta(hours=-7))


def _task(task_id, due, title="Task", list_id="L1", completed=False):
    return TaskItem.from_api(
        {
            "id": task_id,
            "title": title,
            "due": f"{due}T00:00:00.000Z" if due else None,
            "status": "completed" if completed else "needsAction",
        },
        list_id,
        timezone.utc,
    )


def _event(event_id, start, title="Event", task=False, recurrence=None):
    data = {"id": event_id, "summary": title, "start": start, "end": start}
    if task:
        data["extendedProperties"] = {"private": {"isTask": "true"}}
    if recurrence:
        data["recurrence"] = recurrence
    return CalendarEvent.from_api(data)


# ============================================================
# Projection
# ============================================================


class TestMergeProjection:
    """How tasks and events become unified items."""

    def test_task_and_task_event_on_same_day(self):
        """A task and a task-tagged event are both typed as tasks."""
        t1 = _task("t1", "2025-10-20")
        e1 = _event("e1", {"dateTime": "2025-10-20T21:00:00Z"}, task=True)

        items = merge([(t1, "L1")], [e1], tz=timezone.utc)

        assert [i.id for i in items] == ["t1", "e1"]
        assert all(i.type == ItemType.TASK for i in items)
        assert all(i.due_date == date(2025, 10, 20) for i in items)
        assert items[0].due_instant is None
        assert items[1].due_instant is not None
        assert items[1].source_ref.kind == ItemKind.TASK_EVENT

    def test_plain_event_is_calendar(self):
        items = merge([], [_event("e2", {"date": "2025-10-21"})])
        assert items[0].type == ItemType.CALENDAR
        assert items[0].is_all_day is True
        assert items[0].source_ref.kind == ItemKind.EVENT

    def test_timed_event_placed_on_local_date(self):
        """A late-evening UTC start belongs to the previous day further west."""
        items = merge([], [_event("e3", {"dateTime": "2025-10-21T02:00:00Z"})], tz=WEST)
        assert items[0].due_date == date(2025, 10, 20)
        assert items[0].is_all_day is False

    def test_items_without_due_are_excluded(self):
        items = merge([(_task("t2", None), "L1")], [_event("e4", None)])
        assert items == []

    def test_task_ref_carries_list_id(self):
        items = merge([(_task("t1", "2025-10-20", list_id="L9"), "L9")], [])
        assert items[0].source_ref.list_id == "L9"

    def test_empty_title_gets_placeholder(self):
        items = merge([(_task("t1", "2025-10-20", title=""), "L1")], [])
        assert items[0].title == NO_TITLE

    def test_recurrence_rules_become_tag(self):
        event = _event("e5", {"date": "2025-10-22"}, recurrence=["RRULE:FREQ=WEEKLY"])
        assert merge([], [event])[0].recurrence == "weekly"


# ============================================================
# Ordering
# ============================================================


class TestMergeOrdering:
    """Sorting by date, tasks first, then encounter order."""

    def test_sorted_by_date_then_task_first(self):
        tasks = [(_task("t_late", "2025-10-22"), "L1"), (_task("t_early", "2025-10-20"), "L1")]
        events = [_event("e_early", {"date": "2025-10-20"}), _event("e_mid", {"date": "2025-10-21"})]

        items = merge(tasks, events)

        assert [i.id for i in items] == ["t_early", "e_early", "e_mid", "t_late"]

    def test_ties_keep_encounter_order(self):
        tasks = [(_task(f"t{n}", "2025-10-20"), "L1") for n in range(5)]
        events = [_event(f"e{n}", {"date": "2025-10-20"}) for n in range(3)]
        items = merge(tasks, events)
        assert [i.id for i in items] == ["t0", "t1", "t2", "t3", "t4", "e0", "e1", "e2"]

    def test_merge_is_idempotent(self):
        tasks = [(_task("t1", "2025-10-21"), "L1"), (_task("t2", "2025-10-20"), "L2")]
        events = [
            _event("e1", {"dateTime": "2025-10-20T15:00:00Z"}, task=True),
            _event("e2", {"date": "2025-10-20"}),
        ]
        assert merge(tasks, events, tz=WEST) == merge(tasks, events, tz=WEST)


# ============================================================
# Views
# ============================================================


class TestViews:
    """Grouping and date-range helpers."""

    def _items(self):
        tasks = [
            (_task("t1", "2025-10-20"), "L1"),
            (_task("t2", "2025-10-31"), "L1"),
            (_task("t3", "2025-11-01"), "L1"),
            (_task("t4", "2025-11-04"), "L1"),
        ]
        return merge(tasks, [_event("e1", {"date": "2025-10-20"})])

    def test_group_by_date(self):
        grouped = group_by_date(self._items())
        assert [i.id for i in grouped[date(2025, 10, 20)]] == ["t1", "e1"]
        assert list(grouped) == [date(2025, 10, 20), date(2025, 10, 31), date(2025, 11, 1), date(2025, 11, 4)]

    def test_items_for_date(self):
        assert [i.id for i in items_for_date(self._items(), date(2025, 10, 31))] == ["t2"]

    def test_range_is_inclusive(self):
        items = items_for_range(self._items(), date(2025, 10, 31), date(2025, 11, 1))
        assert [i.id for i in items] == ["t2", "t3"]

    def test_items_for_month(self):
        assert [i.id for i in items_for_month(self._items(), 2025, 11)] == ["t3", "t4"]

    def test_upcoming_items(self):
        items = upcoming_items(self._items(), days_ahead=12, reference=date(2025, 10, 21))
        assert [i.id for i in items] == ["t2", "t3"]
