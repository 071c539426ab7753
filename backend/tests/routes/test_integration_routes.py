"""Platform connections over a mocked httpx transport."""

from typing import Dict, List
from urllib.parse import parse_qs, urlparse

from fastapi import Depends
from fastapi.testclient import TestClient
import httpx
import pytest
from sqlalchemy.orm import Session

from app.api.dependencies.services import get_integration_service
from app.core.config import OAuthClientSettings, settings
from app.database import get_db
from app.main import app
from app.services.integration_service import IntegrationService


class FakeCalendly:
    """Token, profile and events endpoints; ``token_status`` switches the token endpoint to failure."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.token_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/oauth/token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            form = parse_qs(request.content.decode())
            suffix = "2" if form["grant_type"] == ["refresh_token"] else "1"
            return httpx.Response(
                200,
                json={"access_token": f"at{suffix}", "refresh_token": f"rt{suffix}", "expires_in": 3600},
            )
        if request.url.path == "/users/me":
            return httpx.Response(
                200,
                json={
                    "resource": {
                        "uri": "https://api.calendly.com/users/U1",
                        "name": "Casey Coach",
                        "current_organization": "https://api.calendly.com/organizations/O1",
                        "scheduling_url": "https://calendly.com/casey",
                    }
                },
            )
        if request.url.path == "/scheduled_events":
            return httpx.Response(
                200,
                json={
                    "collection": [
                        {
                            "uri": "https://api.calendly.com/scheduled_events/E1",
                            "name": "Discovery call",
                            "status": "active",
                            "start_time": "2026-03-02T15:00:00Z",
                            "end_time": "2026-03-02T15:30:00Z",
                        }
                    ]
                },
            )
        return httpx.Response(404, json={"message": "not found"})


@pytest.fixture
def calendly(monkeypatch: pytest.MonkeyPatch):
    fake = FakeCalendly()
    monkeypatch.setattr(
        settings, "calendly_oauth", OAuthClientSettings(client_id="calendly-id", client_secret="calendly-secret")
    )

    def _service(db: Session = Depends(get_db)) -> IntegrationService:
        return IntegrationService(db, transport=httpx.MockTransport(fake))

    app.dependency_overrides[get_integration_service] = _service
    yield fake
    app.dependency_overrides.pop(get_integration_service, None)


def _connect(client: TestClient, headers: Dict[str, str]) -> dict:
    start = client.post("/api/v1/integrations/calendly/authorize", headers=headers)
    assert start.status_code == 200
    state = start.json()["state"]
    response = client.get("/api/v1/integrations/calendly/callback", params={"code": "auth-code", "state": state})
    assert response.status_code == 200
    return response.json()


class TestPlatforms:
    def test_platform_list_reports_configuration(self, client: TestClient, auth_headers_coach: dict, calendly):
        response = client.get("/api/v1/integrations/platforms", headers=auth_headers_coach)
        platforms = {p["name"]: p for p in response.json()}

        assert platforms["calendly"]["configured"] is True
        assert platforms["facebook"]["configured"] is False
        assert platforms["thinkific"]["required_fields"] == ["api_key", "subdomain"]

    def test_unconfigured_platform(self, client: TestClient, auth_headers_coach: dict):
        response = client.post("/api/v1/integrations/facebook/authorize", headers=auth_headers_coach)

        assert response.status_code == 422
        assert response.json()["code"] == "PLATFORM_NOT_CONFIGURED"

    def test_unknown_platform(self, client: TestClient, auth_headers_coach: dict):
        response = client.post("/api/v1/integrations/myspace/authorize", headers=auth_headers_coach)

        assert response.status_code == 404
        assert response.json()["code"] == "PLATFORM_NOT_FOUND"

    def test_clients_cannot_connect(self, client: TestClient, auth_headers_client: dict):
        response = client.get("/api/v1/integrations", headers=auth_headers_client)

        assert response.status_code == 403


class TestOAuthFlow:
    def test_authorize_url_carries_state(self, client: TestClient, auth_headers_coach: dict, calendly):
        data = client.post("/api/v1/integrations/calendly/authorize", headers=auth_headers_coach).json()

        query = parse_qs(urlparse(data["authorization_url"]).query)
        assert query["client_id"] == ["calendly-id"]
        assert query["response_type"] == ["code"]
        assert query["state"] == [data["state"]]
        assert query["redirect_uri"][0].endswith("/api/v1/integrations/calendly/callback")

    def test_callback_stores_masked_tokens_and_profile(
        self, client: TestClient, test_coach, auth_headers_coach: dict, calendly
    ):
        integration = _connect(client, auth_headers_coach)

        assert integration["coach_id"] == test_coach.id
        assert integration["integration_type"] == "app"
        assert integration["access_token"] == "***"
        assert integration["refresh_token"] == "***"
        assert integration["profile_data"]["name"] == "Casey Coach"
        assert integration["config"]["user_uri"] == "https://api.calendly.com/users/U1"
        token_form = parse_qs(calendly.requests[0].content.decode())
        assert token_form["code"] == ["auth-code"]
        assert token_form["client_secret"] == ["calendly-secret"]

        listed = client.get("/api/v1/integrations", headers=auth_headers_coach).json()
        assert [i["id"] for i in listed] == [integration["id"]]

    def test_reconnect_updates_existing_row(self, client: TestClient, auth_headers_coach: dict, calendly):
        first = _connect(client, auth_headers_coach)
        second = _connect(client, auth_headers_coach)

        assert second["id"] == first["id"]

    def test_tampered_state(self, client: TestClient, calendly):
        response = client.get("/api/v1/integrations/calendly/callback", params={"code": "x", "state": "forged"})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_STATE"

    def test_calendly_events(self, client: TestClient, auth_headers_coach: dict, calendly):
        _connect(client, auth_headers_coach)

        response = client.get("/api/v1/integrations/calendly/events", headers=auth_headers_coach)

        assert response.status_code == 200
        assert [event["name"] for event in response.json()] == ["Discovery call"]
        events_request = calendly.requests[-1]
        assert events_request.headers["Authorization"] == "Bearer at1"
        assert events_request.url.params["user"] == "https://api.calendly.com/users/U1"

    def test_calendly_events_need_connection(self, client: TestClient, auth_headers_coach: dict, calendly):
        response = client.get("/api/v1/integrations/calendly/events", headers=auth_headers_coach)

        assert response.status_code == 404

    def test_refresh_and_rejected_grant(self, client: TestClient, auth_headers_coach: dict, calendly):
        integration_id = _connect(client, auth_headers_coach)["id"]

        refreshed = client.post(f"/api/v1/integrations/{integration_id}/refresh", headers=auth_headers_coach)
        assert refreshed.status_code == 200
        assert refreshed.json()["sync_error"] is None

        calendly.token_status = 401
        rejected = client.post(f"/api/v1/integrations/{integration_id}/refresh", headers=auth_headers_coach)
        assert rejected.status_code == 502
        assert rejected.json()["code"] == "INTEGRATION_ERROR"

        listed = client.get("/api/v1/integrations", headers=auth_headers_coach).json()
        assert listed[0]["is_active"] is False
        assert listed[0]["sync_error"]


class TestCoursePlatforms:
    def test_connect_masks_api_key(self, client: TestClient, auth_headers_coach: dict):
        response = client.post(
            "/api/v1/integrations/thinkific/connect",
            headers=auth_headers_coach,
            json={"credentials": {"api_key": "secret-key", "subdomain": "casey"}},
        )

        assert response.status_code == 201
        assert response.json()["config"] == {"api_key": "***", "subdomain": "casey"}

        again = client.post(
            "/api/v1/integrations/thinkific/connect",
            headers=auth_headers_coach,
            json={"credentials": {"api_key": "secret-key", "subdomain": "casey"}},
        )
        assert again.status_code == 409

    def test_missing_fields(self, client: TestClient, auth_headers_coach: dict):
        response = client.post(
            "/api/v1/integrations/thinkific/connect",
            headers=auth_headers_coach,
            json={"credentials": {"api_key": "secret-key"}},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_FIELDS"

    def test_sync_settings_and_disconnect(
        self, client: TestClient, auth_headers_coach: dict, auth_headers_coach_2: dict
    ):
        integration_id = client.post(
            "/api/v1/integrations/thinkific/connect",
            headers=auth_headers_coach,
            json={"credentials": {"api_key": "k", "subdomain": "casey"}},
        ).json()["id"]

        updated = client.patch(
            f"/api/v1/integrations/{integration_id}/sync-settings",
            headers=auth_headers_coach,
            json={"sync_settings": {"auto_sync": True}},
        )
        assert updated.json()["sync_settings"] == {"auto_sync": True}

        foreign = client.delete(f"/api/v1/integrations/{integration_id}", headers=auth_headers_coach_2)
        assert foreign.status_code == 404

        deleted = client.delete(f"/api/v1/integrations/{integration_id}", headers=auth_headers_coach)
        assert deleted.status_code == 200
        assert client.get("/api/v1/integrations", headers=auth_headers_coach).json() == []
