"""
Interactive calendar panel: messages in, snapshots out.
"""

from .machine import Outcome, PanelStateMachine
from .messages import parse_message
from .state import Notice, NoticeLevel, PanelMode, PanelSnapshot, PanelState, month_grid

__all__ = [
    "PanelStateMachine",
    "Outcome",
    "parse_message",
    "PanelMode",
    "PanelState",
    "PanelSnapshot",
    "Notice",
    "NoticeLevel",
    "month_grid",
]
