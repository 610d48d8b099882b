from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "TASKCAL_HOME"


def app_home() -> Path:
    """
    User-writable home for taskcal.
    Override with TASKCAL_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".taskcal").resolve()


def config_dir() -> Path:
    d = app_home() / "config"
    d.mkdir(parents=True, exist_ok=True)
    return d


def settings_path() -> Path:
    """Panel settings file (YAML). May not exist."""
    return config_dir() / "panel.yaml"


def log_dir() -> Path:
    d = app_home() / "logs"
    d.mkdir(parents=True, exist_ok=True)
    return d
