"""Tests for the HTTP/WebSocket surface."""

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from session_core.main import app


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def receive_until(ws, message_type, limit=50):
    """Read messages until one of *message_type* arrives; periodic ones are skipped."""
    for _ in range(limit):
        message = ws.receive_json()
        if message["type"] == message_type:
            return message
    raise AssertionError(f"no {message_type!r} message within {limit} messages")


class TestHttp:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "sessions": 0}

    def test_unknown_session(self, client):
        resp = client.get("/api/sessions/nope")
        assert resp.status_code == 404


class TestWebSocketSession:
    def test_requires_local_id(self, client):
        with client.websocket_connect("/ws/session/room-1") as ws:
            message = ws.receive_json()
            assert message["type"] == "error"

    def test_full_session_flow(self, client):
        with client.websocket_connect("/ws/session/room-1?local_id=alice") as ws:
            first = receive_until(ws, "primary_changed")
            assert first["data"]["primary_id"] == "alice"

            ws.send_json({"action": "participant_connected", "participant_id": "bob"})
            ws.send_json({"action": "pin", "participant_id": "bob"})
            primary = receive_until(ws, "primary_changed")
            assert primary["data"]["primary_id"] == "bob"
            assert primary["data"]["reason"] == "pinned"

            ws.send_json({"action": "track_subscribed", "participant_id": "bob"})
            quality = receive_until(ws, "video_quality")
            assert quality["data"] == {"participant_id": "bob", "tier": "medium"}

            ws.send_json({"action": "active_speakers", "participant_ids": ["bob"]})
            quality = receive_until(ws, "video_quality")
            assert quality["data"] == {"participant_id": "bob", "tier": "high"}

            ws.send_json({"action": "view_mode", "view_mode": "gallery"})
            ws.send_json({"action": "snapshot"})
            snapshot = receive_until(ws, "snapshot")["data"]
            assert snapshot["roster"] == ["alice", "bob"]
            assert snapshot["pinned_id"] == "bob"
            assert snapshot["view_mode"] == "gallery"

            ws.send_json({"action": "unload"})
            receive_until(ws, "disconnect")
            terminated = receive_until(ws, "terminated")
            assert terminated["data"] == {"reason": "page_unload"}

        assert client.get("/api/health").json()["sessions"] == 0

    def test_spotlight_data_message(self, client):
        with client.websocket_connect("/ws/session/room-2?local_id=alice") as ws:
            receive_until(ws, "primary_changed")
            ws.send_json({"action": "roster", "participant_ids": ["alice", "bob", "carol"]})
            ws.send_json(
                {"action": "data_received", "payload": '{"participantId": "carol", "timestamp": 17}'}
            )
            primary = receive_until(ws, "primary_changed")
            assert primary["data"] == {
                "primary_id": "carol",
                "previous_id": "alice",
                "reason": "spotlighted",
            }
            ws.send_json({"action": "unload"})
            receive_until(ws, "disconnect")

    def test_invalid_payload_reports_error(self, client):
        with client.websocket_connect("/ws/session/room-3?local_id=alice") as ws:
            receive_until(ws, "primary_changed")
            ws.send_text("not json")
            ws.send_json({"action": "pin"})  # null pin is valid: clears
            ws.send_json({"action": "track_subscribed"})
            error = receive_until(ws, "error")
            assert error["data"]["action"] == "track_subscribed"

            ws.send_json({"action": "unload"})
            receive_until(ws, "disconnect")

    def test_server_side_termination_closes_socket(self, client):
        with client.websocket_connect("/ws/session/room-4?local_id=alice") as ws:
            receive_until(ws, "primary_changed")
            handle = client.app.state.sessions["room-4"]

            # Ends the session on the server loop with no client frame pending.
            client.portal.call(handle.session.close, "alone_timeout")

            terminated = receive_until(ws, "terminated")
            assert terminated["data"] == {"reason": "alone_timeout"}
            with pytest.raises(WebSocketDisconnect):
                receive_until(ws, "never-sent")

        assert client.get("/api/health").json()["sessions"] == 0
