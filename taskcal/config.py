"""
Centralized configuration for taskcal.

Deployment-specific values come from environment variables.
Panel behaviour is tuned through an optional YAML file
(~/.taskcal/config/panel.yaml) layered over PanelSettings defaults.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

import yaml

from taskcal import paths

logger = logging.getLogger(__name__)

# ============================================================
# Google access
# ============================================================

CALENDAR_ID: str = os.environ.get("TASKCAL_CALENDAR_ID", "primary")
"""Calendar that holds both plain events and task-tagged events."""

SERVICE_ACCOUNT_FILE: str = os.environ.get(
    "TASKCAL_SA_FILE", str(Path.home() / ".taskcal" / "service_account.json")
)
"""Service account JSON used to build Google API clients."""

DELEGATED_USER: str | None = os.environ.get("TASKCAL_USER") or None
"""User to impersonate through domain-wide delegation. None = the account itself."""

TASKS_SCOPES = ["https://www.googleapis.com/auth/tasks"]
CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar"]

TASK_EVENT_PROPERTY = "isTask"
"""Private extended property marking a calendar event as a task."""

REMOTE_TIMEOUT_SECONDS: float = float(os.environ.get("TASKCAL_TIMEOUT", "30"))
"""Upper bound for one store call when going through TimeoutFacade."""

OFFLINE: bool = os.environ.get("TASKCAL_OFFLINE") == "1"
"""Use empty in-memory stores instead of Google."""

# ============================================================
# Logging
# ============================================================

LOG_LEVEL: str = os.environ.get("TASKCAL_LOG_LEVEL", "INFO")


# ============================================================
# Panel settings
# ============================================================


@dataclass(frozen=True)
class PanelSettings:
    """Tunables for one interactive panel."""

    click_debounce_ms: int = 300
    default_event_minutes: int = 60
    default_form_time: str = "09:00"
    validation_notice_seconds: float = 3.0
    allow_reads_while_submitting: bool = False
    include_completed_tasks: bool = False
    upcoming_days: int = 14

    @property
    def click_debounce_seconds(self) -> float:
        return self.click_debounce_ms / 1000.0


def load_settings(path: Path | str | None = None) -> PanelSettings:
    """
    Load panel settings from YAML, falling back to defaults.

    Args:
        path: Settings file. If None, uses paths.settings_path().

    Returns:
        PanelSettings with file values applied over the defaults.
    """
    settings_file = Path(path) if path else paths.settings_path()
    if not settings_file.exists():
        return PanelSettings()

    try:
        with open(settings_file) as f:
            raw = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        logger.warning(f"Could not read settings {settings_file}: {e}; using defaults")
        return PanelSettings()

    if not isinstance(raw, dict):
        logger.warning(f"Settings file {settings_file} is not a mapping; using defaults")
        return PanelSettings()

    defaults = PanelSettings()
    known = {f.name for f in fields(PanelSettings)}
    overrides = {}
    for key, value in raw.items():
        if key not in known:
            logger.warning(f"Ignoring unknown setting: {key}")
            continue
        default = getattr(defaults, key)
        if not _matches_type(value, default):
            logger.warning(f"Ignoring setting {key}={value!r}: expected {type(default).__name__}")
            continue
        overrides[key] = float(value) if isinstance(default, float) else value

    return replace(defaults, **overrides)


def _matches_type(value, default) -> bool:
    """bool is not accepted for numbers; an int is accepted for a float."""
    if isinstance(default, bool) or isinstance(value, bool):
        return isinstance(value, bool) and isinstance(default, bool)
    if isinstance(default, float):
        return isinstance(value, (int, float))
    return isinstance(value, type(default))
