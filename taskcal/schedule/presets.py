"""
Quick-pick presets for the schedule pickers.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, time, timedelta

from .models import RecurrenceTag
from .normalizer import add_months, format_time, time_of_day_label, today

SATURDAY = 5


@dataclass(frozen=True)
class DatePreset:
    label: str
    resolve: Callable[[date], date]

    def value(self, reference: date | None = None) -> date:
        return self.resolve(reference or today())


@dataclass(frozen=True)
class TimePreset:
    label: str
    value: time


@dataclass(frozen=True)
class RecurrencePreset:
    label: str
    value: RecurrenceTag | None


def next_saturday(reference: date) -> date:
    """The coming Saturday; a week out when the reference is a Saturday."""
    days = (SATURDAY - reference.weekday()) % 7 or 7
    return reference + timedelta(days=days)


DATE_PRESETS: list[DatePreset] = [
    DatePreset("Today", lambda d: d),
    DatePreset("Tomorrow", lambda d: d + timedelta(days=1)),
    DatePreset("Next Week", lambda d: d + timedelta(days=7)),
    DatePreset("Next Month", lambda d: add_months(d, 1)),
    DatePreset("This Weekend", next_saturday),
]


def _time_preset(hours: int, label: str) -> TimePreset:
    return TimePreset(f"{format_time(hours, 0)} ({label})", time(hours, 0))


TIME_PRESETS: list[TimePreset] = [
    _time_preset(9, "Morning"),
    _time_preset(12, "Noon"),
    _time_preset(14, "Afternoon"),
    _time_preset(17, "Evening"),
    _time_preset(21, "Night"),
]

RECURRENCE_PRESETS: list[RecurrencePreset] = [
    RecurrencePreset("No recurrence", None),
    RecurrencePreset("Daily", RecurrenceTag.DAILY),
    RecurrencePreset("Weekly", RecurrenceTag.WEEKLY),
    RecurrencePreset("Bi-weekly", RecurrenceTag.BIWEEKLY),
    RecurrencePreset("Monthly", RecurrenceTag.MONTHLY),
    RecurrencePreset("Yearly", RecurrenceTag.YEARLY),
]


def describe_preset_date(value: date, reference: date | None = None) -> str:
    """
    Short description shown next to a date preset.

    "Today", "Tomorrow", "Saturday (4 days from now)" within a week,
    otherwise "Nov 18, 2025".
    """
    reference = reference or today()
    days = (value - reference).days
    if days == 0:
        return "Today"
    if days == 1:
        return "Tomorrow"
    if 1 < days <= 7:
        return f"{value.strftime('%A')} ({days} days from now)"
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def describe_preset_time(value: time) -> str:
    return f"{format_time(value.hour, value.minute)} {time_of_day_label(value.hour)}"
