"""Coach roster routes and client invites."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.client import ClientCoach, ClientInvite
from app.models.notification import Notification
from app.models.password_reset import PasswordResetToken
from app.models.user import User


class TestRoster:
    def test_add_new_client_creates_account_and_setup_link(
        self, client: TestClient, db: Session, test_coach: User, auth_headers_coach: dict
    ):
        with patch("app.services.email.EmailService.send_password_reset_email") as send:
            response = client.post(
                "/api/v1/clients",
                headers=auth_headers_coach,
                json={"email": "Fresh@Example.com", "first_name": "Fresh", "last_name": "Face"},
            )

        assert response.status_code == 201
        data = response.json()
        assert data["client"]["email"] == "fresh@example.com"
        assert data["client"]["user_type"] == "client"
        assert data["is_primary"] is True
        send.assert_called_once()
        assert db.query(PasswordResetToken).filter(PasswordResetToken.user_id == data["client_id"]).count() == 1

        coach_notes = db.query(Notification).filter(Notification.user_id == test_coach.id).all()
        assert [n.title for n in coach_notes] == ["New client"]

    def test_add_existing_client_twice(
        self, client: TestClient, test_client_user: User, auth_headers_coach: dict
    ):
        first = client.post(
            "/api/v1/clients",
            headers=auth_headers_coach,
            json={"email": test_client_user.email, "first_name": "Riley"},
        )
        assert first.status_code == 201
        assert first.json()["client_id"] == test_client_user.id

        second = client.post(
            "/api/v1/clients",
            headers=auth_headers_coach,
            json={"email": test_client_user.email, "first_name": "Riley"},
        )
        assert second.status_code == 409
        assert second.json()["code"] == "CLIENT_EXISTS"

    def test_list_search_and_filter(
        self, client: TestClient, linked_client: User, auth_headers_coach: dict, auth_headers_coach_2: dict
    ):
        found = client.get("/api/v1/clients", headers=auth_headers_coach, params={"search": "riley"})
        assert found.json()["total"] == 1
        assert found.json()["items"][0]["client"]["first_name"] == "Riley"

        inactive = client.get("/api/v1/clients", headers=auth_headers_coach, params={"status": "inactive"})
        assert inactive.json()["total"] == 0

        other_coach = client.get("/api/v1/clients", headers=auth_headers_coach_2)
        assert other_coach.json()["total"] == 0

    def test_update_and_remove(self, client: TestClient, db: Session, linked_client: User, auth_headers_coach: dict):
        updated = client.patch(
            f"/api/v1/clients/{linked_client.id}",
            headers=auth_headers_coach,
            json={"status": "inactive", "notes": "On pause"},
        )
        assert updated.json()["status"] == "inactive"
        assert updated.json()["notes"] == "On pause"

        removed = client.delete(f"/api/v1/clients/{linked_client.id}", headers=auth_headers_coach)
        assert removed.status_code == 200
        assert db.query(ClientCoach).count() == 0
        assert db.get(User, linked_client.id) is not None

        missing = client.get(f"/api/v1/clients/{linked_client.id}", headers=auth_headers_coach)
        assert missing.status_code == 404
        assert missing.json()["code"] == "CLIENT_NOT_FOUND"

    def test_clients_cannot_manage_rosters(self, client: TestClient, auth_headers_client: dict):
        response = client.get("/api/v1/clients", headers=auth_headers_client)

        assert response.status_code == 403


class TestInvites:
    def _invite(self, client: TestClient, headers: dict, email: str) -> dict:
        with patch("app.services.email.EmailService.send_client_invite") as send:
            response = client.post(
                "/api/v1/clients/invites",
                headers=headers,
                json={"email": email, "first_name": "Riley", "message": "Join my programme"},
            )
        assert response.status_code == 201
        send.assert_called_once()
        assert "/join?invite=" in send.call_args.kwargs["invite_url"]
        return response.json()

    def test_accept_invite(
        self,
        client: TestClient,
        db: Session,
        test_coach: User,
        test_client_user: User,
        auth_headers_coach: dict,
        auth_headers_client: dict,
    ):
        invite = self._invite(client, auth_headers_coach, test_client_user.email)
        token = db.get(ClientInvite, invite["id"]).token

        accepted = client.post("/api/v1/clients/invites/accept", headers=auth_headers_client, json={"token": token})

        assert accepted.status_code == 200
        assert accepted.json()["coach_id"] == test_coach.id
        assert accepted.json()["status"] == "active"

        reused = client.post("/api/v1/clients/invites/accept", headers=auth_headers_client, json={"token": token})
        assert reused.status_code == 400
        assert reused.json()["code"] == "INVALID_INVITE"

        pending = client.get("/api/v1/clients/invites", headers=auth_headers_coach)
        assert pending.json() == []

    def test_reinvite_refreshes_open_invite(self, client: TestClient, db: Session, auth_headers_coach: dict):
        first = self._invite(client, auth_headers_coach, "someone@example.com")
        first_token = db.get(ClientInvite, first["id"]).token

        second = self._invite(client, auth_headers_coach, "someone@example.com")

        assert second["id"] == first["id"]
        db.expire_all()
        assert db.get(ClientInvite, first["id"]).token != first_token

    def test_invite_for_another_email(
        self,
        client: TestClient,
        db: Session,
        test_client_user: User,
        auth_headers_coach: dict,
        auth_headers_client: dict,
    ):
        invite = self._invite(client, auth_headers_coach, "not-riley@example.com")
        token = db.get(ClientInvite, invite["id"]).token

        response = client.post("/api/v1/clients/invites/accept", headers=auth_headers_client, json={"token": token})

        assert response.status_code == 400
        assert response.json()["code"] == "INVITE_EMAIL_MISMATCH"

    def test_expired_invite(
        self,
        client: TestClient,
        db: Session,
        test_client_user: User,
        auth_headers_coach: dict,
        auth_headers_client: dict,
    ):
        invite = self._invite(client, auth_headers_coach, test_client_user.email)
        row = db.get(ClientInvite, invite["id"])
        row.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.commit()

        response = client.post("/api/v1/clients/invites/accept", headers=auth_headers_client, json={"token": row.token})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INVITE"

    def test_cannot_invite_current_client(self, client: TestClient, linked_client: User, auth_headers_coach: dict):
        response = client.post(
            "/api/v1/clients/invites",
            headers=auth_headers_coach,
            json={"email": linked_client.email},
        )

        assert response.status_code == 409
