import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.core.database import get_db
from app.service.room_service import RoomService
from main import app as fastapi_app


@pytest.fixture
def ws_client(engine, session_factory, monkeypatch):
    """One TestClient portal so sockets and REST calls share an event loop."""

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr("app.session.session_layer.init_redis", lambda **kwargs: None)
    monkeypatch.setattr("main.engine", engine)
    monkeypatch.setattr("app.router.api.v1.chat.SessionLocal", session_factory)
    fastapi_app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(fastapi_app) as client:
            yield client
    finally:
        fastapi_app.dependency_overrides.pop(get_db, None)


def _token(headers):
    return headers["Authorization"].split(" ")[1]


def test_socket_without_session_is_closed(ws_client):
    with ws_client.websocket_connect("/api/v1/chat/ws?token=nope") as ws:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
    assert exc_info.value.code == 4001


def test_socket_rejects_bad_frames(ws_client, db, alice, bob, carol, auth_headers):
    room = RoomService(db).create_room(alice, bob)
    token = _token(auth_headers(carol))
    with ws_client.websocket_connect(f"/api/v1/chat/ws?token={token}") as ws:
        ws.send_text("not json")
        assert ws.receive_json()["code"] == "INVALID_JSON"
        ws.send_json({"action": "subscribe"})
        assert ws.receive_json()["code"] == "MISSING_ROOM_ID"
        ws.send_json({"action": "subscribe", "room_id": "abc"})
        assert ws.receive_json()["code"] == "INVALID_ROOM_ID"
        ws.send_json({"action": "subscribe", "room_id": str(room.id)})
        assert ws.receive_json()["code"] == "UNAUTHORIZED"


def test_room_events_reach_subscribers(ws_client, db, alice, bob, auth_headers):
    room = RoomService(db).create_room(alice, bob)
    a_headers, b_headers = auth_headers(alice), auth_headers(bob)
    with ws_client.websocket_connect(f"/api/v1/chat/ws?token={_token(a_headers)}") as ws_a, \
            ws_client.websocket_connect(f"/api/v1/chat/ws?token={_token(b_headers)}") as ws_b:
        for ws in (ws_a, ws_b):
            ws.send_json({"action": "subscribe", "room_id": str(room.id)})
            # Frames are handled in order, so this reply means the subscribe is done.
            ws.send_json({"action": "dance", "room_id": str(room.id)})
            assert ws.receive_json()["code"] == "UNKNOWN_ACTION"

        ws_a.send_json({"action": "typing", "room_id": str(room.id), "typing": True})
        event = ws_b.receive_json()
        assert event["event"] == "user_typing"
        assert event["payload"] == {"participant": alice.key, "typing": True}

        response = ws_client.post(
            f"/api/v1/chat/rooms/{room.id}/messages", json={"content": "hello"}, headers=b_headers
        )
        assert response.status_code == 201
        event = ws_a.receive_json()
        assert event["event"] == "message_created"
        assert event["channel"] == f"room:{room.id}"
        assert event["payload"]["content"] == "hello"
