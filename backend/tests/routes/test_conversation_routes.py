"""Direct conversations, messages and the notification inbox."""

from datetime import timedelta

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from app.models.message import Message
from app.models.types import utcnow
from app.models.user import User


@pytest.fixture
def conversation_id(client: TestClient, linked_client: User, auth_headers_coach: dict) -> str:
    response = client.post(
        "/api/v1/conversations", headers=auth_headers_coach, json={"participant_id": linked_client.id}
    )
    assert response.status_code == 201
    return response.json()["id"]


def _send(client: TestClient, headers: dict, conversation_id: str, content: str) -> dict:
    response = client.post(
        f"/api/v1/conversations/{conversation_id}/messages", headers=headers, json={"content": content}
    )
    assert response.status_code == 201
    return response.json()


class TestConversations:
    def test_direct_conversation_is_reused(
        self,
        client: TestClient,
        test_coach: User,
        linked_client: User,
        auth_headers_client: dict,
        conversation_id: str,
    ):
        response = client.post(
            "/api/v1/conversations", headers=auth_headers_client, json={"participant_id": test_coach.id}
        )

        assert response.status_code == 201
        assert response.json()["id"] == conversation_id
        names = {p["user_id"]: p["name"] for p in response.json()["participants"]}
        assert names == {test_coach.id: "Casey Coach", linked_client.id: "Riley Client"}

    def test_unlinked_client_cannot_message_coach(
        self, client: TestClient, test_coach_2: User, auth_headers_client: dict
    ):
        response = client.post(
            "/api/v1/conversations", headers=auth_headers_client, json={"participant_id": test_coach_2.id}
        )

        assert response.status_code == 403
        assert response.json()["code"] == "MESSAGING_NOT_ALLOWED"

    def test_clients_cannot_message_each_other(
        self, client: TestClient, test_client_user_2: User, auth_headers_client: dict
    ):
        response = client.post(
            "/api/v1/conversations", headers=auth_headers_client, json={"participant_id": test_client_user_2.id}
        )

        assert response.status_code == 403

    def test_coaches_can_message_each_other(
        self, client: TestClient, test_coach_2: User, auth_headers_coach: dict
    ):
        response = client.post(
            "/api/v1/conversations", headers=auth_headers_coach, json={"participant_id": test_coach_2.id}
        )

        assert response.status_code == 201

    def test_self_conversation(self, client: TestClient, test_coach: User, auth_headers_coach: dict):
        response = client.post(
            "/api/v1/conversations", headers=auth_headers_coach, json={"participant_id": test_coach.id}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "SELF_CONVERSATION"

    def test_outsider_gets_404(self, client: TestClient, auth_headers_coach_2: dict, conversation_id: str):
        response = client.get(f"/api/v1/conversations/{conversation_id}", headers=auth_headers_coach_2)

        assert response.status_code == 404
        assert response.json()["code"] == "CONVERSATION_NOT_FOUND"

        send = client.post(
            f"/api/v1/conversations/{conversation_id}/messages",
            headers=auth_headers_coach_2,
            json={"content": "Let me in"},
        )
        assert send.status_code == 404


class TestMessages:
    def test_send_counts_unread_and_mark_read(
        self,
        client: TestClient,
        auth_headers_coach: dict,
        auth_headers_client: dict,
        conversation_id: str,
    ):
        _send(client, auth_headers_coach, conversation_id, "Welcome aboard")
        _send(client, auth_headers_coach, conversation_id, "Your first session is Monday")

        unread = client.get("/api/v1/conversations/unread-count", headers=auth_headers_client)
        assert unread.json() == {"unread_count": 2}
        assert client.get("/api/v1/conversations/unread-count", headers=auth_headers_coach).json() == {
            "unread_count": 0
        }

        listed = client.get("/api/v1/conversations", headers=auth_headers_client).json()
        assert listed[0]["unread_count"] == 2
        assert listed[0]["last_message"]["content"] == "Your first session is Monday"

        marked = client.post(f"/api/v1/conversations/{conversation_id}/read", headers=auth_headers_client)
        assert marked.json() == {"conversation_id": conversation_id, "marked": 2}

        again = client.post(f"/api/v1/conversations/{conversation_id}/read", headers=auth_headers_client)
        assert again.json()["marked"] == 0
        assert client.get("/api/v1/conversations/unread-count", headers=auth_headers_client).json() == {
            "unread_count": 0
        }

    def test_cursor_paging(self, client: TestClient, auth_headers_coach: dict, conversation_id: str):
        sent = [_send(client, auth_headers_coach, conversation_id, f"Note {n}") for n in range(3)]

        first = client.get(
            f"/api/v1/conversations/{conversation_id}/messages", headers=auth_headers_coach, params={"limit": 2}
        ).json()
        assert [m["content"] for m in first["items"]] == ["Note 2", "Note 1"]
        assert first["has_more"] is True
        assert first["next_cursor"] == sent[1]["id"]

        second = client.get(
            f"/api/v1/conversations/{conversation_id}/messages",
            headers=auth_headers_coach,
            params={"limit": 2, "before": first["next_cursor"]},
        ).json()
        assert [m["content"] for m in second["items"]] == ["Note 0"]
        assert second["has_more"] is False
        assert second["next_cursor"] is None

    def test_unknown_cursor(self, client: TestClient, auth_headers_coach: dict, conversation_id: str):
        response = client.get(
            f"/api/v1/conversations/{conversation_id}/messages",
            headers=auth_headers_coach,
            params={"before": "0" * 26},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_CURSOR"

    def test_reply_must_stay_in_conversation(
        self,
        client: TestClient,
        test_coach_2: User,
        auth_headers_coach: dict,
        conversation_id: str,
    ):
        other = client.post(
            "/api/v1/conversations", headers=auth_headers_coach, json={"participant_id": test_coach_2.id}
        ).json()["id"]
        elsewhere = _send(client, auth_headers_coach, other, "Hello colleague")

        response = client.post(
            f"/api/v1/conversations/{conversation_id}/messages",
            headers=auth_headers_coach,
            json={"content": "Replying", "reply_to_id": elsewhere["id"]},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REPLY"

    def test_edit_rules(
        self,
        client: TestClient,
        db: Session,
        auth_headers_coach: dict,
        auth_headers_client: dict,
        conversation_id: str,
    ):
        message = _send(client, auth_headers_coach, conversation_id, "Sesion at 5")

        edited = client.patch(
            f"/api/v1/messages/{message['id']}", headers=auth_headers_coach, json={"content": "Session at 5"}
        )
        assert edited.status_code == 200
        assert edited.json()["content"] == "Session at 5"
        assert edited.json()["is_edited"] is True

        not_mine = client.patch(
            f"/api/v1/messages/{message['id']}", headers=auth_headers_client, json={"content": "Nope"}
        )
        assert not_mine.status_code == 403
        assert not_mine.json()["code"] == "NOT_SENDER"

        row = db.get(Message, message["id"])
        row.created_at = utcnow() - timedelta(minutes=20)
        db.commit()

        late = client.patch(f"/api/v1/messages/{message['id']}", headers=auth_headers_coach, json={"content": "6"})
        assert late.status_code == 422
        assert late.json()["code"] == "EDIT_WINDOW_EXPIRED"

    def test_delete_hides_content(self, client: TestClient, auth_headers_coach: dict, conversation_id: str):
        message = _send(client, auth_headers_coach, conversation_id, "Oops, wrong chat")

        deleted = client.delete(f"/api/v1/messages/{message['id']}", headers=auth_headers_coach)
        assert deleted.status_code == 200
        assert deleted.json()["is_deleted"] is True
        assert deleted.json()["content"] is None

        page = client.get(f"/api/v1/conversations/{conversation_id}/messages", headers=auth_headers_coach).json()
        assert page["items"][0]["content"] is None

        again = client.delete(f"/api/v1/messages/{message['id']}", headers=auth_headers_coach)
        assert again.status_code == 422
        assert again.json()["code"] == "MESSAGE_DELETED"

    def test_outsider_cannot_touch_message(
        self, client: TestClient, auth_headers_coach: dict, auth_headers_coach_2: dict, conversation_id: str
    ):
        message = _send(client, auth_headers_coach, conversation_id, "Private")

        response = client.delete(f"/api/v1/messages/{message['id']}", headers=auth_headers_coach_2)

        assert response.status_code == 404
        assert response.json()["code"] == "MESSAGE_NOT_FOUND"


class TestNotificationInbox:
    def test_message_notifies_recipient(
        self, client: TestClient, auth_headers_coach: dict, auth_headers_client: dict, conversation_id: str
    ):
        _send(client, auth_headers_coach, conversation_id, "Check your plan for this week")

        inbox = client.get("/api/v1/notifications", headers=auth_headers_client).json()
        assert inbox["total"] == 1
        note = inbox["items"][0]
        assert note["title"] == "New message from Casey Coach"
        assert note["action_url"] == f"/messages/{conversation_id}"
        assert note["metadata"]["conversation_id"] == conversation_id
        assert note["is_read"] is False

        assert client.get("/api/v1/notifications", headers=auth_headers_coach).json()["total"] == 0

    def test_read_delete_and_read_all(
        self, client: TestClient, auth_headers_coach: dict, auth_headers_client: dict, conversation_id: str
    ):
        for n in range(3):
            _send(client, auth_headers_coach, conversation_id, f"Reminder {n}")
        ids = [item["id"] for item in client.get("/api/v1/notifications", headers=auth_headers_client).json()["items"]]
        assert client.get("/api/v1/notifications/unread-count", headers=auth_headers_client).json() == {
            "unread_count": 3
        }

        read = client.post(f"/api/v1/notifications/{ids[0]}/read", headers=auth_headers_client)
        assert read.json()["is_read"] is True
        assert read.json()["read_at"] is not None

        deleted = client.delete(f"/api/v1/notifications/{ids[1]}", headers=auth_headers_client)
        assert deleted.status_code == 200

        read_all = client.post("/api/v1/notifications/read-all", headers=auth_headers_client)
        assert read_all.json()["data"] == {"count": 1}

        unread_only = client.get(
            "/api/v1/notifications", headers=auth_headers_client, params={"unread_only": True}
        ).json()
        assert unread_only["total"] == 0

    def test_other_users_notification(
        self, client: TestClient, auth_headers_coach: dict, auth_headers_client: dict, conversation_id: str
    ):
        _send(client, auth_headers_coach, conversation_id, "Hi")
        note_id = client.get("/api/v1/notifications", headers=auth_headers_client).json()["items"][0]["id"]

        response = client.post(f"/api/v1/notifications/{note_id}/read", headers=auth_headers_coach)

        assert response.status_code == 404
        assert response.json()["code"] == "NOTIFICATION_NOT_FOUND"
