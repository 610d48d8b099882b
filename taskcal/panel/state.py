"""
Panel state and the snapshots rendered from it.

PanelState is private to one PanelStateMachine and mutated only by it.
PanelSnapshot is an immutable copy handed to the render callback.
"""

import asyncio
import calendar
from dataclasses import dataclass, field, replace
from datetime import date
from enum import StrEnum
from typing import Any

from taskcal.schedule.merger import group_by_date, items_for_date, items_for_month
from taskcal.schedule.models import FormDraft, TargetRef, UnifiedItem

# Weeks start on Sunday
FIRST_WEEKDAY = calendar.SUNDAY


class PanelMode(StrEnum):
    IDLE = "idle"
    CREATING = "creating"
    EDITING = "editing"
    SUBMITTING = "submitting"


class NoticeLevel(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """A message shown to the user above the panel."""

    level: NoticeLevel
    message: str
    field: str | None = None
    hint: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "message": self.message,
            "field": self.field,
            "hint": self.hint,
        }


@dataclass
class PanelState:
    """Transient state of one open panel."""

    visible_year: int
    visible_month: int
    mode: PanelMode = PanelMode.IDLE
    pending_mode: PanelMode | None = None
    target_ref: TargetRef | None = None
    form_draft: FormDraft | None = None
    selected_date: date | None = None
    items: list[UnifiedItem] = field(default_factory=list)
    notice: Notice | None = None
    pending_clicks: dict[str, asyncio.TimerHandle] = field(default_factory=dict)

    def snapshot(self) -> "PanelSnapshot":
        draft = self.form_draft
        return PanelSnapshot(
            mode=self.mode,
            pending_mode=self.pending_mode,
            visible_year=self.visible_year,
            visible_month=self.visible_month,
            selected_date=self.selected_date,
            target_ref=self.target_ref,
            form_draft=replace(draft, errors=dict(draft.errors)) if draft else None,
            items=tuple(self.items),
            notice=self.notice,
        )


def month_grid(year: int, month: int) -> list[list[date | None]]:
    """
    Weeks of the month as rows of seven dates, Sunday first.

    Cells outside the month are None.
    """
    weeks = calendar.Calendar(firstweekday=FIRST_WEEKDAY).monthdatescalendar(year, month)
    return [[day if day.month == month else None for day in week] for week in weeks]


@dataclass(frozen=True)
class PanelSnapshot:
    """What the render callback receives after every applied message."""

    mode: PanelMode
    visible_year: int
    visible_month: int
    pending_mode: PanelMode | None = None
    selected_date: date | None = None
    target_ref: TargetRef | None = None
    form_draft: FormDraft | None = None
    items: tuple[UnifiedItem, ...] = ()
    notice: Notice | None = None

    def month_items(self) -> list[UnifiedItem]:
        return items_for_month(self.items, self.visible_year, self.visible_month)

    def selected_items(self) -> list[UnifiedItem]:
        if self.selected_date is None:
            return []
        return items_for_date(self.items, self.selected_date)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict, including the month grid."""
        by_day = group_by_date(self.month_items())
        grid = [
            [
                {"date": day.isoformat(), "item_ids": [i.id for i in by_day.get(day, [])]}
                if day
                else None
                for day in week
            ]
            for week in month_grid(self.visible_year, self.visible_month)
        ]
        return {
            "mode": self.mode.value,
            "pending_mode": self.pending_mode.value if self.pending_mode else None,
            "visible_year": self.visible_year,
            "visible_month": self.visible_month,
            "selected_date": self.selected_date.isoformat() if self.selected_date else None,
            "target_ref": self.target_ref.to_dict() if self.target_ref else None,
            "form": self.form_draft.to_dict() if self.form_draft else None,
            "items": [item.to_dict() for item in self.items],
            "selected_items": [item.id for item in self.selected_items()],
            "grid": grid,
            "notice": self.notice.to_dict() if self.notice else None,
        }
