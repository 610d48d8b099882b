"""
Panel IDs carried in a context variable, so log records emitted while a panel
handles a message can be attributed to that panel.
"""

import contextvars
import uuid
from typing import Optional

_panel_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "panel_id", default=None
)


def get_panel_id() -> Optional[str]:
    """ID of the panel handling the current message, if any."""
    return _panel_id_var.get()


def generate_panel_id() -> str:
    return f"panel-{uuid.uuid4().hex[:12]}"


class PanelContext:
    """
    Scope in which get_panel_id() returns `panel_id`.

    Contexts nest; leaving one restores the enclosing panel's ID.
    """

    def __init__(self, panel_id: Optional[str] = None):
        self.panel_id = panel_id or generate_panel_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> "PanelContext":
        self._token = _panel_id_var.set(self.panel_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _panel_id_var.reset(self._token)
            self._token = None
