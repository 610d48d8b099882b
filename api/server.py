"""
taskcal API Server - serves the calendar panel over a websocket.
"""
# ruff: noqa: S104
# S104: Development server binding (guarded by __name__ check)

import logging
import os
from datetime import tzinfo

import uvicorn
from fastapi import FastAPI

from taskcal import __version__, config, paths
from taskcal.config import PanelSettings, load_settings
from taskcal.integrations import RemoteSyncFacade, build_default_facade
from taskcal.observability import configure_logging

from api.panel_router import panel_router

logger = logging.getLogger(__name__)


def create_app(
    facade: RemoteSyncFacade | None = None,
    settings: PanelSettings | None = None,
    tz: tzinfo | None = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        facade: Remote stores shared by all panels. Defaults to
            build_default_facade().
        settings: Panel tunables. Defaults to load_settings().
        tz: Zone the panels pick dates in. None = system local.
    """
    app = FastAPI(
        title="taskcal",
        description="One calendar over Google Tasks and Google Calendar",
        version=__version__,
    )
    app.state.facade = facade or build_default_facade(tz)
    app.state.settings = settings or load_settings()
    app.state.tz = tz
    app.include_router(panel_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    logger.info(f"taskcal {__version__} app created")
    return app


# ==== Main ====


def main():
    """Run the server."""
    configure_logging(config.LOG_LEVEL, log_file=str(paths.log_dir() / "server.log"))
    port = int(os.environ.get("PORT", 8421))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
