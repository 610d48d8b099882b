"""
Scheduling core: models, date/time normalization, presets and merging.
"""

from .merger import group_by_date, items_for_month, items_for_range, merge, upcoming_items
from .models import (
    CalendarEvent,
    EventSpec,
    FormDraft,
    ItemKind,
    ItemType,
    RecurrenceTag,
    ScheduleSpec,
    TargetRef,
    TaskItem,
    TaskList,
    UnifiedItem,
)
from .normalizer import (
    format_relative,
    parse_freeform_date,
    parse_freeform_time,
    parse_instant,
    to_instant,
)

__all__ = [
    # Models
    "CalendarEvent",
    "EventSpec",
    "FormDraft",
    "ItemKind",
    "ItemType",
    "RecurrenceTag",
    "ScheduleSpec",
    "TargetRef",
    "TaskItem",
    "TaskList",
    "UnifiedItem",
    # Normalizer
    "to_instant",
    "parse_instant",
    "format_relative",
    "parse_freeform_date",
    "parse_freeform_time",
    # Merger
    "merge",
    "group_by_date",
    "items_for_range",
    "items_for_month",
    "upcoming_items",
]
