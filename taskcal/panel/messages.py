"""
Inbound panel messages.

Every message is a pydantic model with a literal `type`, so a JSON payload
from the websocket parses into exactly one of them:

    {"type": "navigate", "month": 11, "year": 2025}
    {"type": "press_day", "date": "2025-10-20"}
    {"type": "submit_form", "title": "Dentist", "date": "2025-10-21", "time": "2:30 PM"}
"""

import datetime as dt
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from taskcal.errors import ValidationError
from taskcal.schedule.models import ItemKind, RecurrenceTag, TargetRef


class TargetRefModel(BaseModel):
    """Wire form of a TargetRef."""

    id: str
    kind: ItemKind
    list_id: str | None = None
    calendar_id: str | None = None

    def to_ref(self) -> TargetRef:
        return TargetRef(
            id=self.id, kind=self.kind, list_id=self.list_id, calendar_id=self.calendar_id
        )

    @classmethod
    def from_ref(cls, ref: TargetRef) -> "TargetRefModel":
        return cls(id=ref.id, kind=ref.kind, list_id=ref.list_id, calendar_id=ref.calendar_id)


class Navigate(BaseModel):
    """Show another month. Month is 1-12."""

    type: Literal["navigate"] = "navigate"
    month: int
    year: int


class SelectDate(BaseModel):
    type: Literal["select_date"] = "select_date"
    date: dt.date


class ClearSelection(BaseModel):
    type: Literal["clear_selection"] = "clear_selection"


class RequestCreate(BaseModel):
    """Open the create form, prefilled with `date` when given."""

    type: Literal["request_create"] = "request_create"
    date: dt.date | None = None


class RequestEdit(BaseModel):
    type: Literal["request_edit"] = "request_edit"
    target_ref: TargetRefModel


class SubmitForm(BaseModel):
    """
    Submit the open form.

    Fields carry the text as typed; parsing happens in the state machine so a
    bad value turns into an inline notice rather than a rejected message.
    """

    type: Literal["submit_form"] = "submit_form"
    mode: Literal["creating", "editing"] | None = None
    target_ref: TargetRefModel | None = None
    title: str = ""
    date: str = ""
    time: str = ""
    is_all_day: bool = False
    item_kind: ItemKind = ItemKind.EVENT
    recurrence: RecurrenceTag | None = None
    notes: str = ""


class CancelForm(BaseModel):
    type: Literal["cancel_form"] = "cancel_form"


class DeleteItem(BaseModel):
    type: Literal["delete_item"] = "delete_item"
    target_ref: TargetRefModel


class CompleteTask(BaseModel):
    """Mark a task-store task completed."""

    type: Literal["complete_task"] = "complete_task"
    target_ref: TargetRefModel


class ClearSchedule(BaseModel):
    """Remove a task's due date. Asks for confirmation first."""

    type: Literal["clear_schedule"] = "clear_schedule"
    target_ref: TargetRefModel


class Refresh(BaseModel):
    type: Literal["refresh"] = "refresh"


class PressDay(BaseModel):
    """Raw press on a day cell, before click disambiguation."""

    type: Literal["press_day"] = "press_day"
    date: dt.date


class PressItem(BaseModel):
    """Raw press on an item, before click disambiguation."""

    type: Literal["press_item"] = "press_item"
    target_ref: TargetRefModel


PanelMessage = Annotated[
    Navigate
    | SelectDate
    | ClearSelection
    | RequestCreate
    | RequestEdit
    | SubmitForm
    | CancelForm
    | DeleteItem
    | CompleteTask
    | ClearSchedule
    | Refresh
    | PressDay
    | PressItem,
    Field(discriminator="type"),
]

_adapter: TypeAdapter = TypeAdapter(PanelMessage)

# Accepted while a mutation is in flight when reads are allowed to queue
READ_MESSAGES = (Navigate, Refresh, SelectDate, ClearSelection)


def parse_message(data: dict[str, Any] | str | bytes) -> PanelMessage:
    """
    Parse a message from a dict or a JSON document.

    Raises:
        ValidationError: If the payload matches no message
    """
    try:
        if isinstance(data, (str, bytes)):
            return _adapter.validate_json(data)
        return _adapter.validate_python(data)
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(f"Invalid panel message: {first.get('msg', e)}", field=location or None) from e
