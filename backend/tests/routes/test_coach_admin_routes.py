"""Admin coach management."""

from datetime import timedelta
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.types import utcnow
from app.models.user import User

BASE = "/api/v1/admin/coaches"


def _login(client: TestClient, email: str, password: str):
    return client.post(
        "/api/v1/auth/login", json={"email": email, "password": password, "user_type": "coach"}
    )


def test_list_search_and_detail(
    client: TestClient, test_coach: User, test_coach_2: User, linked_client: User, auth_headers_admin: dict
):
    everyone = client.get(BASE, headers=auth_headers_admin).json()
    assert everyone["total"] == 2

    found = client.get(BASE, headers=auth_headers_admin, params={"search": "morgan"}).json()
    assert [coach["id"] for coach in found["items"]] == [test_coach_2.id]

    detail = client.get(f"{BASE}/{test_coach.id}", headers=auth_headers_admin).json()
    assert detail["client_count"] == 1
    assert detail["active_subscription"] is None


def test_coaches_cannot_manage_coaches(client: TestClient, auth_headers_coach: dict):
    assert client.get(BASE, headers=auth_headers_coach).status_code == 403


def test_deactivate_blocks_login_and_reactivate_restores(
    client: TestClient, test_coach: User, test_password: str, auth_headers_admin: dict
):
    deactivated = client.post(
        f"{BASE}/{test_coach.id}/deactivate", headers=auth_headers_admin, json={"reason": "Chargeback"}
    )
    assert deactivated.json()["is_active"] is False
    assert _login(client, test_coach.email, test_password).status_code == 401

    inactive = client.get(BASE, headers=auth_headers_admin, params={"status": "inactive"}).json()
    assert [coach["id"] for coach in inactive["items"]] == [test_coach.id]

    client.post(f"{BASE}/{test_coach.id}/reactivate", headers=auth_headers_admin)
    assert _login(client, test_coach.email, test_password).status_code == 200


def test_soft_delete(client: TestClient, test_coach: User, auth_headers_admin: dict):
    deleted = client.delete(f"{BASE}/{test_coach.id}", headers=auth_headers_admin)
    assert deleted.json()["deleted_at"] is not None

    listed = client.get(BASE, headers=auth_headers_admin, params={"status": "deleted"}).json()
    assert listed["total"] == 1

    reactivate = client.post(f"{BASE}/{test_coach.id}/reactivate", headers=auth_headers_admin)
    assert reactivate.status_code == 422
    assert reactivate.json()["code"] == "COACH_DELETED"

    missing = client.patch(f"{BASE}/{test_coach.id}", headers=auth_headers_admin, json={"business_name": "X"})
    assert missing.status_code == 404


def test_update_coach(client: TestClient, test_coach: User, auth_headers_admin: dict):
    response = client.patch(
        f"{BASE}/{test_coach.id}", headers=auth_headers_admin, json={"business_name": "Casey & Co", "is_verified": True}
    )

    assert response.json()["business_name"] == "Casey & Co"
    assert response.json()["is_verified"] is True


def test_inactive_coaches(
    client: TestClient, db: Session, test_coach: User, test_coach_2: User, auth_headers_admin: dict
):
    test_coach.last_login_at = utcnow() - timedelta(days=2)
    test_coach_2.last_login_at = utcnow() - timedelta(days=45)
    db.commit()

    response = client.get(f"{BASE}/inactive", headers=auth_headers_admin)

    assert [coach["id"] for coach in response.json()] == [test_coach_2.id]


def test_email_coach(client: TestClient, test_coach: User, auth_headers_admin: dict):
    with patch("app.services.email.EmailService.send_direct_message") as send:
        response = client.post(
            f"{BASE}/{test_coach.id}/email",
            headers=auth_headers_admin,
            json={"subject": "Plan change", "body": "Your plan renews next week."},
        )

    assert response.status_code == 202
    send.assert_called_once_with(test_coach.email, "Casey", "Plan change", "Your plan renews next week.")
