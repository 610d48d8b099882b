"""
Scheduling models: what the two stores hold and what the panel shows.

TaskItem and CalendarEvent are read-only snapshots of remote entities,
rebuilt on every refresh. UnifiedItem is the merged projection and is never
persisted.
"""

import datetime as dt
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from enum import StrEnum
from typing import Any

from taskcal.config import TASK_EVENT_PROPERTY

# =============================================================================
# ENUMS
# =============================================================================


class RecurrenceTag(StrEnum):
    """Recurrence presets offered by the schedule pickers."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ItemType(StrEnum):
    """Display type of a merged item."""

    TASK = "task"
    CALENDAR = "calendar"


class ItemKind(StrEnum):
    """Where an item is stored, which decides how it is mutated."""

    TASK = "task"  # task store, date only
    TASK_EVENT = "task_event"  # calendar store, tagged as a task
    EVENT = "event"  # calendar store, plain event


# =============================================================================
# SCHEDULE
# =============================================================================


@dataclass(frozen=True)
class ScheduleSpec:
    """
    A user's date/time pick.

    Invariant: is_all_day is True exactly when time is None.
    """

    date: dt.date
    time: dt.time | None = None
    is_all_day: bool = True
    recurrence: RecurrenceTag | None = None

    def __post_init__(self):
        if self.is_all_day != (self.time is None):
            raise ValueError(
                f"ScheduleSpec is_all_day={self.is_all_day} conflicts with time={self.time}"
            )
        if isinstance(self.recurrence, str):
            tag = RecurrenceTag(self.recurrence)
            object.__setattr__(self, "recurrence", None if tag == RecurrenceTag.NONE else tag)

    @classmethod
    def all_day(cls, day: dt.date, recurrence: RecurrenceTag | None = None) -> "ScheduleSpec":
        return cls(date=day, time=None, is_all_day=True, recurrence=recurrence)

    @classmethod
    def at(cls, day: dt.date, at_time: dt.time, recurrence: RecurrenceTag | None = None) -> "ScheduleSpec":
        return cls(date=day, time=at_time, is_all_day=False, recurrence=recurrence)


@dataclass(frozen=True)
class EventSpec:
    """Everything the calendar store needs to create or replace an event."""

    title: str
    schedule: ScheduleSpec
    description: str = ""
    is_task_tagged: bool = False
    duration_minutes: int = 60


# =============================================================================
# REMOTE ENTITIES
# =============================================================================


def _parse_api_datetime(value: str) -> datetime:
    """Parse an RFC 3339 timestamp from a Google API payload."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class TaskList:
    """A task list in the task store."""

    id: str
    title: str = ""


@dataclass(frozen=True)
class TaskItem:
    """A task-store entry. The store keeps a date, never a time of day."""

    id: str
    list_id: str
    title: str = ""
    notes: str | None = None
    due: date | None = None
    completed: bool = False
    parent_id: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any], list_id: str, tz: tzinfo | None = None) -> "TaskItem":
        """
        Create from a Tasks API resource.

        `due` is the local midnight of the due date as a UTC instant, so it is
        decoded in the zone it was written from.
        """
        from .normalizer import parse_instant

        due_raw = data.get("due")
        return cls(
            id=data.get("id", ""),
            list_id=list_id,
            title=data.get("title") or "",
            notes=data.get("notes"),
            due=parse_instant(due_raw, tz)[0] if due_raw else None,
            completed=data.get("status") == "completed",
            parent_id=data.get("parent"),
        )


@dataclass(frozen=True)
class CalendarEvent:
    """A calendar-store entry, possibly tagged as a task."""

    id: str
    calendar_id: str
    title: str = ""
    start: date | datetime | None = None
    end: date | datetime | None = None
    recurrence_rules: tuple[str, ...] = ()
    is_task_tagged: bool = False
    description: str | None = None

    @property
    def is_all_day(self) -> bool:
        return self.start is not None and not isinstance(self.start, datetime)

    @classmethod
    def from_api(cls, data: dict[str, Any], calendar_id: str = "primary") -> "CalendarEvent":
        """Create from a Calendar API event resource."""
        private = (data.get("extendedProperties") or {}).get("private") or {}
        return cls(
            id=data.get("id", ""),
            calendar_id=calendar_id,
            title=data.get("summary") or "",
            start=cls._parse_boundary(data.get("start")),
            end=cls._parse_boundary(data.get("end")),
            recurrence_rules=tuple(data.get("recurrence") or ()),
            is_task_tagged=private.get(TASK_EVENT_PROPERTY) == "true",
            description=data.get("description"),
        )

    @staticmethod
    def _parse_boundary(value: dict | None) -> date | datetime | None:
        if not value:
            return None
        if value.get("dateTime"):
            return _parse_api_datetime(value["dateTime"])
        if value.get("date"):
            return date.fromisoformat(value["date"])
        return None


# =============================================================================
# PROJECTION
# =============================================================================


@dataclass(frozen=True)
class TargetRef:
    """
    Stable reference to a remote item.

    list_id is carried whenever it is known so task updates never need the
    cross-list scan.
    """

    id: str
    kind: ItemKind
    list_id: str | None = None
    calendar_id: str | None = None

    def __post_init__(self):
        if isinstance(self.kind, str) and not isinstance(self.kind, ItemKind):
            object.__setattr__(self, "kind", ItemKind(self.kind))

    @property
    def key(self) -> str:
        """Key used for per-target click tracking."""
        return f"item:{self.kind.value}:{self.id}"

    @property
    def in_calendar(self) -> bool:
        return self.kind in (ItemKind.TASK_EVENT, ItemKind.EVENT)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "list_id": self.list_id,
            "calendar_id": self.calendar_id,
        }


@dataclass(frozen=True)
class UnifiedItem:
    """One row of the merged task/calendar projection."""

    id: str
    type: ItemType
    title: str
    due_date: date
    source_ref: TargetRef
    due_instant: datetime | None = None
    completed: bool | None = None
    is_all_day: bool = True
    recurrence: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict."""
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "due_date": self.due_date.isoformat(),
            "due_instant": self.due_instant.isoformat() if self.due_instant else None,
            "completed": self.completed,
            "is_all_day": self.is_all_day,
            "recurrence": self.recurrence,
            "description": self.description,
            "source_ref": self.source_ref.to_dict(),
        }


@dataclass
class FormDraft:
    """
    What the user has typed into the create/edit form.

    Values are kept as entered so a failed submit can be shown again.
    """

    title: str = ""
    date_text: str = ""
    time_text: str = ""
    is_all_day: bool = False
    item_kind: ItemKind = ItemKind.EVENT
    recurrence: RecurrenceTag | None = None
    notes: str = ""
    errors: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "date": self.date_text,
            "time": self.time_text,
            "is_all_day": self.is_all_day,
            "item_kind": self.item_kind.value,
            "recurrence": self.recurrence.value if self.recurrence else None,
            "notes": self.notes,
            "errors": dict(self.errors),
        }
