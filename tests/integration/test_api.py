"""Integration tests for the HTTP and WebSocket surface (in-memory UoW)."""
from __future__ import annotations

import uuid

import jwt
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from chat_realtime.app import create_app
from chat_realtime.config import settings
from chat_realtime.infrastructure.auth.hs256_verifier import HS256Verifier
from tests.conftest import FakeStore, FakeUoW, make_conversation, make_identity


def _make_token(sub: uuid.UUID) -> str:
    return jwt.encode(
        {"sub": str(sub)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def _receive_until(ws, event_type: str) -> dict:
    while True:
        frame = ws.receive_json()
        if frame["type"] == event_type:
            return frame["data"]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def client(store):
    app = create_app(
        uow_factory=lambda: FakeUoW(store),
        verifier=HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM),
    )
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "sessions": 0}


def test_correlation_id_echoed(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"


def test_bad_token_closes_with_4001(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/chat?token=not-a-jwt"):
            pass
    assert exc_info.value.code == 4001


def test_unknown_identity_rejected(client):
    token = _make_token(uuid.uuid4())
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/ws/chat?token={token}"):
            pass
    assert exc_info.value.code == 4001


def test_missing_token_rejected(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/chat"):
            pass
    assert exc_info.value.code == 4001


def test_ping_and_invalid_payload(client, store):
    alice = make_identity(store, "alice")

    with client.websocket_connect(f"/ws/chat?token={_make_token(alice.id)}") as ws:
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong", "data": {}}

        ws.send_text("{not json")
        assert ws.receive_json() == {"type": "error", "data": {"code": "invalid_payload"}}


def test_chat_flow_over_websocket(client, store):
    alice = make_identity(store, "alice")
    bob = make_identity(store, "bob")
    conv = make_conversation(store, alice.id, bob.id)

    with client.websocket_connect(f"/ws/chat?token={_make_token(alice.id)}") as alice_ws, \
            client.websocket_connect(
                "/ws/chat", headers={"Authorization": f"Bearer {_make_token(bob.id)}"},
            ) as bob_ws:
        presence = _receive_until(alice_ws, "presence:status")
        assert presence["identity_id"] == str(bob.id)
        assert presence["status"] == "online"

        for ws in (alice_ws, bob_ws):
            ws.send_json({"type": "channel:join", "data": {"container_id": str(conv.id)}})
            joined = _receive_until(ws, "channel:joined")
            assert joined["container_id"] == str(conv.id)

        alice_ws.send_json({
            "type": "message:send",
            "data": {"container_id": str(conv.id), "content": "hi bob"},
        })
        received = _receive_until(bob_ws, "message:new")
        assert received["message"]["content"] == "hi bob"
        echoed = _receive_until(alice_ws, "message:new")
        assert echoed["message"]["id"] == received["message"]["id"]

        bob_ws.send_json({
            "type": "messages:read",
            "data": {"container_id": str(conv.id), "message_ids": [received["message"]["id"]]},
        })
        read = _receive_until(alice_ws, "messages:read")
        assert read["read_by"] == str(bob.id)

        assert store.unread(conv.id, bob.id) == 0
        assert store.identities[bob.id].status == "online"
        assert client.get("/healthz").json()["sessions"] == 2
