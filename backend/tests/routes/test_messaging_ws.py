"""Messaging WebSocket gateway."""

from fastapi.testclient import TestClient
import pytest
from starlette.websockets import WebSocketDisconnect

from app.models.user import User

WS_URL = "/api/v1/ws/messaging"


def _token(headers: dict) -> str:
    return headers["Authorization"].split(" ", 1)[1]


def _receive_event(ws, event: str, attempts: int = 3) -> dict:
    for _ in range(attempts):
        frame = ws.receive_json()
        if frame["event"] == event:
            return frame
    raise AssertionError(f"no {event} frame received")


@pytest.fixture
def conversation_id(client: TestClient, linked_client: User, auth_headers_coach: dict) -> str:
    response = client.post(
        "/api/v1/conversations", headers=auth_headers_coach, json={"participant_id": linked_client.id}
    )
    return response.json()["id"]


def test_handshake_rejects_bad_token(client: TestClient):
    with client.websocket_connect(f"{WS_URL}?token=not-a-jwt") as ws:
        frame = ws.receive_json()
        assert frame["event"] == "connect_error"
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()

    assert exc.value.code == 4401


def test_handshake_requires_token(client: TestClient):
    with client.websocket_connect(WS_URL) as ws:
        assert ws.receive_json()["event"] == "connect_error"


def test_connect_and_ping(client: TestClient, test_coach: User, auth_headers_coach: dict):
    with client.websocket_connect(f"{WS_URL}?token={_token(auth_headers_coach)}") as ws:
        connected = ws.receive_json()
        assert connected["event"] == "connected"
        assert connected["data"]["user_id"] == test_coach.id
        assert connected["data"]["user_type"] == "coach"

        ws.send_json({"event": "ping"})
        assert ws.receive_json()["event"] == "pong"

        ws.send_json({"event": "shout", "data": {}})
        error = ws.receive_json()
        assert error["event"] == "error"
        assert error["data"]["code"] == "UNKNOWN_EVENT"

        ws.send_json({"event": "join_conversation", "data": {}})
        assert ws.receive_json()["data"]["code"] == "BAD_FRAME"


def test_outsider_cannot_join(client: TestClient, auth_headers_coach_2: dict, conversation_id: str):
    with client.websocket_connect(f"{WS_URL}?token={_token(auth_headers_coach_2)}") as ws:
        ws.receive_json()
        ws.send_json({"event": "join_conversation", "data": {"conversation_id": conversation_id}})

        frame = ws.receive_json()

    assert frame["event"] == "error"
    assert frame["data"]["code"] == "NOT_PARTICIPANT"


def test_new_message_and_typing_reach_room(
    client: TestClient,
    test_coach: User,
    auth_headers_coach: dict,
    auth_headers_client: dict,
    conversation_id: str,
):
    join = {"event": "join_conversation", "data": {"conversation_id": conversation_id}}
    with client.websocket_connect(f"{WS_URL}?token={_token(auth_headers_client)}") as reader:
        reader.receive_json()
        reader.send_json(join)
        assert reader.receive_json()["event"] == "joined_conversation"

        with client.websocket_connect(f"{WS_URL}?token={_token(auth_headers_coach)}") as writer:
            writer.receive_json()
            writer.send_json(join)
            writer.receive_json()

            writer.send_json({"event": "typing", "data": {"conversation_id": conversation_id, "is_typing": True}})
            typing = reader.receive_json()
            assert typing["event"] == "user_typing"
            assert typing["data"] == {
                "conversation_id": conversation_id,
                "user_id": test_coach.id,
                "user_type": "coach",
                "is_typing": True,
            }

            sent = client.post(
                f"/api/v1/conversations/{conversation_id}/messages",
                headers=auth_headers_coach,
                json={"content": "See you at 9"},
            )
            assert sent.status_code == 201

            frame = _receive_event(reader, "new_message")
            assert frame["data"]["message"]["content"] == "See you at 9"
            assert frame["data"]["message"]["id"] == sent.json()["id"]
