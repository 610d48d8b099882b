"""
Observability module: log setup and panel correlation IDs.

Modules log through `logging.getLogger(__name__)`; configure_logging installs
the formatters once at startup. Inside a PanelContext every record carries
the panel's ID.

Usage:
    with PanelContext(machine.panel_id):
        logger.info("Navigated", extra={"message_type": "navigate"})
"""

from .context import PanelContext, generate_panel_id, get_panel_id
from .logging import configure_logging

__all__ = [
    "configure_logging",
    "PanelContext",
    "generate_panel_id",
    "get_panel_id",
]
