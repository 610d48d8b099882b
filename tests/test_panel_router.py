"""
Tests for the websocket panel router and the app factory.

Runs the FastAPI app in-process with TestClient against InMemoryFacade.
"""

from datetime import date, timezone

from fastapi.testclient import TestClient

from api.server import create_app
from taskcal import __version__
from taskcal.config import PanelSettings
from taskcal.integrations.memory import InMemoryFacade

UTC = timezone.utc


def _client() -> tuple[TestClient, InMemoryFacade]:
    facade = InMemoryFacade(tz=UTC)
    facade.add_task_list("L1", "Inbox")
    facade.add_task("L1", "t1", "Pay rent", due=date(2025, 10, 20))
    settings = PanelSettings(click_debounce_ms=30)
    return TestClient(create_app(facade=facade, settings=settings, tz=UTC)), facade


def _open_october(ws) -> dict:
    first = ws.receive_json()
    assert first["type"] == "snapshot"
    ws.send_json({"type": "navigate", "year": 2025, "month": 10})
    return ws.receive_json()


# ============================================================
# App
# ============================================================


class TestApp:
    """App factory and plain HTTP routes."""

    def test_health(self):
        client, _ = _client()
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}

    def test_state_holds_injected_facade(self):
        client, facade = _client()
        assert client.app.state.facade is facade
        assert client.app.state.settings.click_debounce_ms == 30


# ============================================================
# Websocket panel
# ============================================================


class TestPanelSocket:
    """One panel per websocket connection."""

    def test_first_message_is_snapshot(self):
        client, _ = _client()
        with client.websocket_connect("/panel") as ws:
            message = ws.receive_json()

        assert message["type"] == "snapshot"
        assert message["panel_id"].startswith("panel-")
        assert message["snapshot"]["mode"] == "idle"

    def test_navigate_renders_month(self):
        client, _ = _client()
        with client.websocket_connect("/panel") as ws:
            message = _open_october(ws)

        snapshot = message["snapshot"]
        assert (snapshot["visible_year"], snapshot["visible_month"]) == (2025, 10)
        assert [item["id"] for item in snapshot["items"]] == ["t1"]
        cells = [cell for week in snapshot["grid"] for cell in week if cell]
        assert len(cells) == 31
        assert next(c for c in cells if c["date"] == "2025-10-20")["item_ids"] == ["t1"]

    def test_invalid_message_reports_error(self):
        client, _ = _client()
        with client.websocket_connect("/panel") as ws:
            ws.receive_json()
            ws.send_json({"type": "select_date", "date": "not-a-date"})
            message = ws.receive_json()

        assert message["type"] == "error"
        assert message["field"] == "select_date.date"

    def test_invalid_json_reports_error(self):
        client, _ = _client()
        with client.websocket_connect("/panel") as ws:
            ws.receive_json()
            ws.send_text("{not json")
            message = ws.receive_json()

        assert message["type"] == "error"
        assert message["message"].startswith("Invalid JSON")

    def test_message_not_allowed_is_rejected(self):
        client, _ = _client()
        with client.websocket_connect("/panel") as ws:
            ws.receive_json()
            ws.send_json({"type": "submit_form", "title": "x", "date": "2025-10-20"})
            message = ws.receive_json()

        assert message == {"type": "rejected", "message_type": "submit_form"}

    def test_confirmed_delete(self):
        client, facade = _client()
        with client.websocket_connect("/panel") as ws:
            _open_october(ws)
            ws.send_json({"type": "delete_item", "target_ref": {"id": "t1", "kind": "task"}})

            prompt = ws.receive_json()
            assert prompt["type"] == "confirm"
            assert prompt["prompt"] == "Delete Pay rent?"
            ws.send_json({"type": "confirm_reply", "id": prompt["id"], "confirmed": True})

            submitting = ws.receive_json()
            done = ws.receive_json()

        assert submitting["snapshot"]["mode"] == "submitting"
        assert done["snapshot"]["mode"] == "idle"
        assert done["snapshot"]["items"] == []
        assert done["snapshot"]["notice"]["message"] == "Deleted Pay rent"
        assert "t1" not in facade.tasks["L1"]

    def test_declined_delete(self):
        client, facade = _client()
        with client.websocket_connect("/panel") as ws:
            _open_october(ws)
            ws.send_json({"type": "delete_item", "target_ref": {"id": "t1", "kind": "task"}})

            prompt = ws.receive_json()
            ws.send_json({"type": "confirm_reply", "id": prompt["id"], "confirmed": False})
            message = ws.receive_json()

        assert message == {"type": "rejected", "message_type": "delete_item"}
        assert "t1" in facade.tasks["L1"]
        assert facade.calls_to("delete_task") == []

    def test_confirmed_clear_schedule(self):
        client, facade = _client()
        with client.websocket_connect("/panel") as ws:
            _open_october(ws)
            ws.send_json({"type": "clear_schedule", "target_ref": {"id": "t1", "kind": "task"}})

            prompt = ws.receive_json()
            assert prompt["prompt"] == "Clear the schedule of Pay rent?"
            ws.send_json({"type": "confirm_reply", "id": prompt["id"], "confirmed": True})

            submitting = ws.receive_json()
            done = ws.receive_json()

        assert submitting["snapshot"]["mode"] == "submitting"
        assert done["snapshot"]["notice"]["message"] == "Cleared the schedule of Pay rent"
        assert facade.tasks["L1"]["t1"].due is None

    def test_complete_task(self):
        client, facade = _client()
        with client.websocket_connect("/panel") as ws:
            _open_october(ws)
            ws.send_json({"type": "complete_task", "target_ref": {"id": "t1", "kind": "task"}})

            submitting = ws.receive_json()
            done = ws.receive_json()

        assert submitting["snapshot"]["mode"] == "submitting"
        assert done["snapshot"]["items"] == []
        assert facade.tasks["L1"]["t1"].completed is True
