"""Integration smoke tests for the REST and WebSocket surfaces (in-memory UoW)."""
from __future__ import annotations

import time

import jwt
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from ticket_chat.api.deps import get_uow, get_verifier
from ticket_chat.app import create_app
from ticket_chat.config import settings
from ticket_chat.services.chat_gateway import ChatGateway
from tests.conftest import (
    ASSIGNEE_ID,
    CREATOR_ID,
    OUTSIDER_ID,
    TICKET_ID,
    make_history,
)


def _make_token(user_id: str = CREATOR_ID, roles: list | None = None, token_type: str = "access") -> str:
    return jwt.encode(
        {
            "userId": user_id,
            "type": token_type,
            "roles": roles or [],
            "iss": settings.JWT_ISSUER,
            "aud": settings.JWT_AUDIENCE,
            "exp": int(time.time()) + 300,
        },
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def _auth(user_id: str = CREATOR_ID) -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(user_id)}"}


@pytest.fixture
def app(uow):
    app = create_app()

    async def _override():
        yield uow

    app.dependency_overrides[get_uow] = _override
    app.state.gateway = ChatGateway(
        app.state.ws_manager,
        get_verifier(),
        uow,
        history_limit=settings.CHAT_HISTORY_LIMIT,
    )
    return app


@pytest.fixture
def client(app):
    # One portal for every socket so they share the gateway's event loop.
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert "X-Request-ID" in resp.headers


def test_chat_view(client, uow):
    uow.messages._messages.extend(make_history(3))

    resp = client.get(f"/api/v1/tickets/{TICKET_ID}/chat", headers=_auth(ASSIGNEE_ID))

    assert resp.status_code == 200
    data = resp.json()
    assert [m["message"] for m in data["messages"]] == ["message 1", "message 2", "message 3"]
    assert data["messages"][0]["senderId"] == CREATOR_ID
    assert data["pagination"] == {"page": 1, "limit": 50, "total": 3, "hasMore": False}
    assert data["ticket"]["ticketNumber"] == f"TKT-{TICKET_ID}"
    assert [p["type"] for p in data["participants"]] == ["creator", "assignee", "vendor", "verifier"]


def test_chat_view_paging(client, uow):
    uow.messages._messages.extend(make_history(12))

    resp = client.get(
        f"/api/v1/tickets/{TICKET_ID}/chat",
        params={"page": 2, "limit": 5},
        headers=_auth(),
    )

    assert resp.status_code == 200
    data = resp.json()
    assert [m["message"] for m in data["messages"]] == [f"message {i}" for i in range(3, 8)]
    assert data["pagination"]["hasMore"] is True


def test_chat_view_rejects_oversized_page(client):
    resp = client.get(
        f"/api/v1/tickets/{TICKET_ID}/chat",
        params={"limit": settings.CHAT_MAX_PAGE_SIZE + 1},
        headers=_auth(),
    )
    assert resp.status_code == 422


def test_chat_view_forbidden(client):
    resp = client.get(f"/api/v1/tickets/{TICKET_ID}/chat", headers=_auth(OUTSIDER_ID))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Access denied to this ticket"


def test_unauthorized_returns_401(client):
    assert client.get(f"/api/v1/tickets/{TICKET_ID}/chat").status_code == 401
    refresh = {"Authorization": f"Bearer {_make_token(token_type='refresh')}"}
    assert client.get(f"/api/v1/tickets/{TICKET_ID}/chat", headers=refresh).status_code == 401


def test_participants(client):
    resp = client.get(f"/api/v1/tickets/{TICKET_ID}/chat/participants", headers=_auth())
    assert resp.status_code == 200
    vendor = resp.json()["participants"][2]
    assert vendor["role"] == "VENDOR"
    assert vendor["companyName"] == "Green Farms"


def test_presence_empty(client):
    resp = client.get(f"/api/v1/tickets/{TICKET_ID}/chat/presence", headers=_auth())
    assert resp.status_code == 200
    assert resp.json() == {"ticketId": TICKET_ID, "activeUsers": []}


def test_ws_rejects_missing_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/tickets/chat"):
            pass
    assert exc.value.code == 4001


def test_ws_rejects_invalid_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/tickets/chat?token=not-a-jwt"):
            pass
    assert exc.value.code == 4001


def test_ws_chat_flow(client, uow):
    token = _make_token(CREATOR_ID)
    with client.websocket_connect(f"/ws/tickets/chat?token={token}") as ws:
        connected = ws.receive_json()
        assert connected["type"] == "connected"
        assert connected["data"]["userId"] == CREATOR_ID

        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"

        ws.send_json({"type": "join_ticket", "data": {"ticketId": TICKET_ID}})
        assert ws.receive_json()["type"] == "joined_ticket"
        history = ws.receive_json()
        assert history["type"] == "messages_history"
        assert history["data"]["messages"] == []

        ws.send_json(
            {"type": "send_message", "data": {"ticketId": TICKET_ID, "message": "hello"}, "ack": "a1"},
        )
        new_message = ws.receive_json()
        assert new_message["type"] == "new_message"
        assert new_message["data"]["message"]["message"] == "hello"
        assert ws.receive_json() == {"type": "ack", "data": {"ack": "a1", "success": True}}

        ws.send_text("not json")
        error = ws.receive_json()
        assert error == {"type": "error", "data": {"type": "VALIDATION_ERROR", "message": "Invalid payload"}}

    assert len(uow.messages._messages) == 1


def test_ws_two_participants(client):
    with client.websocket_connect(
        "/ws/tickets/chat", headers={"Authorization": f"Bearer {_make_token(CREATOR_ID)}"},
    ) as creator:
        creator.receive_json()
        creator.send_json({"type": "join_ticket", "data": {"ticketId": TICKET_ID}})
        creator.receive_json()
        creator.receive_json()

        with client.websocket_connect(f"/ws/tickets/chat?token={_make_token(ASSIGNEE_ID)}") as assignee:
            assignee.receive_json()
            assignee.send_json({"type": "join_ticket", "data": {"ticketId": TICKET_ID}})
            assert assignee.receive_json()["type"] == "joined_ticket"
            assert assignee.receive_json()["type"] == "messages_history"

            joined = creator.receive_json()
            assert joined["type"] == "user_joined"
            assert joined["data"]["userId"] == ASSIGNEE_ID

            assignee.send_json({"type": "typing_start", "data": {"ticketId": TICKET_ID}})
            typing = creator.receive_json()
            assert typing["type"] == "user_typing"
            assert typing["data"]["userName"] == "Assignee"

            assignee.send_json({"type": "leave_ticket", "data": {"ticketId": TICKET_ID}})
            assert assignee.receive_json()["type"] == "left_ticket"
            left = creator.receive_json()
            assert left["type"] == "user_left"
            assert left["data"]["userId"] == ASSIGNEE_ID


def test_post_message(client, uow):
    resp = client.post(
        f"/api/v1/tickets/{TICKET_ID}/chat",
        json={"message": "  Photos attached to GRN  "},
        headers=_auth(CREATOR_ID),
    )

    assert resp.status_code == 201
    message = resp.json()["message"]
    assert message["message"] == "Photos attached to GRN"
    assert message["ticketId"] == TICKET_ID
    assert message["senderId"] == CREATOR_ID
    assert message["sender"]["name"] == "Creator"
    assert [m.id for m in uow.messages._messages] == [message["id"]]
    assert uow._committed is True


def test_post_message_reaches_room(client):
    with client.websocket_connect(f"/ws/tickets/chat?token={_make_token(ASSIGNEE_ID)}") as assignee:
        assignee.receive_json()
        assignee.send_json({"type": "join_ticket", "data": {"ticketId": TICKET_ID}})
        assert assignee.receive_json()["type"] == "joined_ticket"
        assert assignee.receive_json()["type"] == "messages_history"

        resp = client.post(
            f"/api/v1/tickets/{TICKET_ID}/chat",
            json={
                "attachments": [
                    {"fileName": "crate.jpg", "url": "https://files.example.com/crate.jpg", "s3Key": "t/crate.jpg"},
                ],
            },
            headers=_auth(CREATOR_ID),
        )
        assert resp.status_code == 201

        event = assignee.receive_json()
        assert event["type"] == "new_message"
        assert event["data"]["ticketId"] == TICKET_ID
        assert event["data"]["message"]["id"] == resp.json()["message"]["id"]
        assert event["data"]["message"]["attachments"][0]["storageKey"] == "t/crate.jpg"


def test_post_message_forbidden(client, uow):
    resp = client.post(
        f"/api/v1/tickets/{TICKET_ID}/chat",
        json={"message": "hi"},
        headers=_auth(OUTSIDER_ID),
    )

    assert resp.status_code == 403
    assert uow.messages._messages == []


def test_post_message_requires_content(client, uow):
    resp = client.post(
        f"/api/v1/tickets/{TICKET_ID}/chat",
        json={"message": "   "},
        headers=_auth(CREATOR_ID),
    )

    assert resp.status_code == 422
    assert resp.json()["detail"] == "Message or attachment is required"
    assert uow.messages._messages == []


def test_post_message_unauthenticated(client):
    resp = client.post(f"/api/v1/tickets/{TICKET_ID}/chat", json={"message": "hi"})
    assert resp.status_code == 401
