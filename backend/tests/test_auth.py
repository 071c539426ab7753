# backend/tests/test_auth.py
"""
Test authentication: token helpers, registration, login, profile and
password reset flows.
"""

from datetime import timedelta
from unittest.mock import patch

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from app.auth import (
    create_access_token,
    create_signed_state,
    decode_signed_state,
    get_password_hash,
    verify_password,
    verify_token_claims,
)
from app.core.exceptions import UnauthorizedException
from app.models.client import ClientCoach
from app.models.password_reset import PasswordResetToken
from app.models.user import User


class TestTokenHelpers:
    def test_password_hashing(self):
        hashed = get_password_hash("Secret1234")

        assert hashed != "Secret1234"
        assert verify_password("Secret1234", hashed) is True
        assert verify_password("WrongPassword1", hashed) is False

    def test_verify_token_claims(self):
        token = create_access_token({"sub": "01HXYZ", "type": "coach"})

        claims = verify_token_claims(token)

        assert claims["sub"] == "01HXYZ"
        assert claims["type"] == "coach"

    def test_verify_token_claims_rejects_missing_and_expired(self):
        with pytest.raises(UnauthorizedException):
            verify_token_claims(None)

        expired = create_access_token({"sub": "01HXYZ", "type": "coach"}, expires_delta=timedelta(seconds=-5))
        with pytest.raises(UnauthorizedException):
            verify_token_claims(expired)

    def test_signed_state_is_not_an_access_token(self):
        state = create_signed_state({"coach_id": "c1", "platform": "calendly"})

        assert decode_signed_state(state)["coach_id"] == "c1"
        with pytest.raises(UnauthorizedException):
            verify_token_claims(state)


class TestRegistration:
    def test_register_coach(self, client: TestClient):
        response = client.post(
            "/api/v1/auth/register/coach",
            json={
                "email": "New.Coach@Example.com",
                "password": "StrongPass1",
                "first_name": "New",
                "last_name": "Coach",
                "business_name": "New Coaching",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new.coach@example.com"
        assert data["user_type"] == "coach"
        assert data["business_name"] == "New Coaching"
        assert "hashed_password" not in data

    def test_register_coach_duplicate_email(self, client: TestClient, test_coach: User):
        response = client.post(
            "/api/v1/auth/register/coach",
            json={"email": test_coach.email, "password": "StrongPass1", "first_name": "A", "last_name": "B"},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_EXISTS"

    def test_same_email_may_hold_coach_and_client_accounts(self, client: TestClient, test_coach: User):
        response = client.post(
            "/api/v1/auth/register/client",
            json={"email": test_coach.email, "password": "StrongPass1", "first_name": "A", "last_name": "B"},
        )

        assert response.status_code == 201
        assert response.json()["user_type"] == "client"

    def test_weak_password_rejected(self, client: TestClient):
        response = client.post(
            "/api/v1/auth/register/coach",
            json={"email": "weak@example.com", "password": "onlyletters", "first_name": "A", "last_name": "B"},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_register_client_links_coach(self, client: TestClient, db: Session, test_coach: User):
        response = client.post(
            "/api/v1/auth/register/client",
            json={
                "email": "linked@example.com",
                "password": "StrongPass1",
                "first_name": "Linked",
                "last_name": "Client",
                "coach_id": test_coach.id,
            },
        )

        assert response.status_code == 201
        link = db.query(ClientCoach).filter(ClientCoach.client_id == response.json()["id"]).one()
        assert link.coach_id == test_coach.id
        assert link.is_primary is True

    def test_register_client_unknown_coach(self, client: TestClient):
        response = client.post(
            "/api/v1/auth/register/client",
            json={
                "email": "orphan@example.com",
                "password": "StrongPass1",
                "first_name": "O",
                "last_name": "C",
                "coach_id": "0" * 26,
            },
        )

        assert response.status_code == 404


class TestLogin:
    def test_login_success(self, client: TestClient, test_coach: User, test_password: str):
        response = client.post(
            "/api/v1/auth/login",
            json={"email": test_coach.email, "password": test_password, "user_type": "coach"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user_type"] == "coach"
        assert data["expires_in"] > 0

        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == 200
        assert me.json()["id"] == test_coach.id
        assert me.json()["last_login_at"] is not None

    def test_login_wrong_user_type(self, client: TestClient, test_coach: User, test_password: str):
        response = client.post(
            "/api/v1/auth/login",
            json={"email": test_coach.email, "password": test_password, "user_type": "client"},
        )

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    def test_login_inactive_account(self, client: TestClient, db: Session, test_coach: User, test_password: str):
        test_coach.is_active = False
        db.commit()

        response = client.post(
            "/api/v1/auth/login",
            json={"email": test_coach.email, "password": test_password, "user_type": "coach"},
        )

        assert response.status_code == 401
        assert response.json()["code"] == "ACCOUNT_INACTIVE"

    def test_me_requires_token(self, client: TestClient):
        response = client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.headers["content-type"].startswith("application/problem+json")

    def test_role_guard(self, client: TestClient, auth_headers_coach: dict):
        response = client.get("/api/v1/admin/coaches", headers=auth_headers_coach)

        assert response.status_code == 403


class TestProfile:
    def test_update_profile(self, client: TestClient, auth_headers_coach: dict):
        response = client.patch(
            "/api/v1/auth/me",
            headers=auth_headers_coach,
            json={"bio": "Helping founders grow", "timezone": "Europe/Berlin"},
        )

        assert response.status_code == 200
        assert response.json()["bio"] == "Helping founders grow"
        assert response.json()["timezone"] == "Europe/Berlin"

    def test_change_password(
        self, client: TestClient, test_coach: User, auth_headers_coach: dict, test_password: str
    ):
        response = client.post(
            "/api/v1/auth/change-password",
            headers=auth_headers_coach,
            json={"current_password": test_password, "new_password": "BrandNew123"},
        )
        assert response.status_code == 200

        login = client.post(
            "/api/v1/auth/login",
            json={"email": test_coach.email, "password": "BrandNew123", "user_type": "coach"},
        )
        assert login.status_code == 200

    def test_change_password_wrong_current(self, client: TestClient, auth_headers_coach: dict):
        response = client.post(
            "/api/v1/auth/change-password",
            headers=auth_headers_coach,
            json={"current_password": "NotMine123", "new_password": "BrandNew123"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PASSWORD"


class TestPasswordReset:
    def test_request_for_unknown_email_still_succeeds(self, client: TestClient):
        with patch("app.services.email.EmailService.send_password_reset_email") as send:
            response = client.post(
                "/api/v1/auth/password-reset/request",
                json={"email": "nobody@example.com", "user_type": "coach"},
            )

        assert response.status_code == 200
        send.assert_not_called()

    def test_full_reset_flow(self, client: TestClient, db: Session, test_coach: User):
        with patch("app.services.email.EmailService.send_password_reset_email") as send:
            response = client.post(
                "/api/v1/auth/password-reset/request",
                json={"email": test_coach.email, "user_type": "coach"},
            )
        assert response.status_code == 200
        send.assert_called_once()

        token = db.query(PasswordResetToken).filter(PasswordResetToken.user_id == test_coach.id).one().token

        verify = client.get(f"/api/v1/auth/password-reset/verify/{token}")
        assert verify.status_code == 200

        confirm = client.post(
            "/api/v1/auth/password-reset/confirm",
            json={"token": token, "new_password": "ResetPass99"},
        )
        assert confirm.status_code == 200

        again = client.post(
            "/api/v1/auth/password-reset/confirm",
            json={"token": token, "new_password": "ResetPass98"},
        )
        assert again.status_code == 400

        login = client.post(
            "/api/v1/auth/login",
            json={"email": test_coach.email, "password": "ResetPass99", "user_type": "coach"},
        )
        assert login.status_code == 200
