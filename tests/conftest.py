"""
Test configuration - ensures repo root is in sys.path + determinism guards.

This allows tests to import from top-level packages (taskcal, api, cli).
Enforces determinism by blocking live Google API clients and keeping the
settings file out of the user's home.

IMPORTANT: Guards are installed at conftest load time (not in fixtures) so a
store built at import time is caught too.
"""

import sys
from pathlib import Path

import googleapiclient.discovery
import pytest

# Add repo root to sys.path so tests can import taskcal.*, api.*, cli.*
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


# =============================================================================
# DETERMINISM GUARD: Block live Google API clients
# =============================================================================


def _guarded_build(service_name, version, *args, **kwargs):
    raise RuntimeError(
        f"DETERMINISM VIOLATION: test built a live {service_name} {version} client.\n"
        "Inject a MagicMock service into the store (store._service = mock)."
    )


googleapiclient.discovery.build = _guarded_build


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point TASKCAL_HOME at a temp dir so no real panel.yaml is read."""
    monkeypatch.setenv("TASKCAL_HOME", str(tmp_path / "taskcal_home"))
    return tmp_path / "taskcal_home"
