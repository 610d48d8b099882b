"""
Panel Router - the calendar panel over a websocket.

Endpoint:
- WS /panel - one PanelStateMachine per connection

Client -> server:
    panel messages, e.g. {"type": "press_day", "date": "2025-10-20"}
    {"type": "confirm_reply", "id": 1, "confirmed": true}

Server -> client:
    {"type": "snapshot", "panel_id": "...", "snapshot": {...}}
    {"type": "confirm", "id": 1, "prompt": "Delete Dentist?"}
    {"type": "rejected", "message_type": "submit_form"}
    {"type": "error", "message": "...", "field": "..."}

Usage in server.py:
    from api.panel_router import panel_router
    app.include_router(panel_router)
"""

import asyncio
import itertools
import json
import logging
from datetime import tzinfo
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from taskcal.config import PanelSettings
from taskcal.errors import ValidationError
from taskcal.integrations.facade import RemoteSyncFacade
from taskcal.observability import PanelContext
from taskcal.panel import Outcome, PanelSnapshot, PanelStateMachine, parse_message

logger = logging.getLogger(__name__)

panel_router = APIRouter(tags=["Panel"])


class PanelSession:
    """One websocket connection driving one panel."""

    def __init__(
        self,
        websocket: WebSocket,
        facade: RemoteSyncFacade,
        settings: PanelSettings | None = None,
        tz: tzinfo | None = None,
    ):
        self.websocket = websocket
        self.machine = PanelStateMachine(
            facade, self.render, confirm=self.confirm, settings=settings, tz=tz
        )
        self._confirms: dict[int, asyncio.Future] = {}
        self._confirm_ids = itertools.count(1)
        self._send_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    async def send(self, payload: dict[str, Any]) -> None:
        async with self._send_lock:
            await self.websocket.send_json(payload)

    async def render(self, snapshot: PanelSnapshot) -> None:
        await self.send(
            {"type": "snapshot", "panel_id": self.machine.panel_id, "snapshot": snapshot.to_dict()}
        )

    async def confirm(self, prompt: str) -> bool:
        """Ask the client and wait for its confirm_reply."""
        confirm_id = next(self._confirm_ids)
        future = asyncio.get_running_loop().create_future()
        self._confirms[confirm_id] = future
        try:
            await self.send({"type": "confirm", "id": confirm_id, "prompt": prompt})
            return await future
        finally:
            self._confirms.pop(confirm_id, None)

    def _resolve_confirm(self, data: dict[str, Any]) -> None:
        future = self._confirms.get(data.get("id"))
        if future is None or future.done():
            logger.warning(f"Confirm reply for unknown id {data.get('id')}")
            return
        future.set_result(bool(data.get("confirmed")))

    async def _handle(self, message) -> None:
        outcome = await self.machine.handle(message)
        if outcome == Outcome.REJECTED:
            await self.send({"type": "rejected", "message_type": message.type})

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _receive(self, text: str) -> None:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            await self.send({"type": "error", "message": f"Invalid JSON: {e}", "field": None})
            return

        if isinstance(data, dict) and data.get("type") == "confirm_reply":
            self._resolve_confirm(data)
            return

        try:
            message = parse_message(data)
        except ValidationError as e:
            await self.send({"type": "error", "message": str(e), "field": e.field})
            return

        # Handled as tasks so a pending confirm can be answered meanwhile;
        # the machine's lock keeps them in arrival order
        self._spawn(self._handle(message))

    async def run(self) -> None:
        await self.machine.open()
        try:
            while True:
                await self._receive(await self.websocket.receive_text())
        except WebSocketDisconnect:
            with PanelContext(self.machine.panel_id):
                logger.info("Panel client disconnected")
        finally:
            self.close()

    def close(self) -> None:
        self.machine.dispose()
        for future in self._confirms.values():
            future.cancel()
        for task in list(self._tasks):
            task.cancel()


@panel_router.websocket("/panel")
async def panel_socket(websocket: WebSocket):
    """Open a panel for this connection and drive it until disconnect."""
    await websocket.accept()
    state = websocket.app.state
    session = PanelSession(
        websocket,
        state.facade,
        settings=getattr(state, "settings", None),
        tz=getattr(state, "tz", None),
    )
    await session.run()
