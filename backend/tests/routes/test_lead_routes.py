from fastapi.testclient import TestClient
import pytest


@pytest.fixture
def coach_lead_id(client: TestClient, auth_headers_coach: dict) -> str:
    response = client.post(
        "/api/v1/leads",
        headers=auth_headers_coach,
        json={"name": "Pat Prospect", "email": "pat@example.com", "source": "referral"},
    )
    assert response.status_code == 201
    return response.json()["id"]


class TestLandingRoutes:
    def test_landing_is_public_and_deduplicated(
        self, client: TestClient, auth_headers_admin: dict, auth_headers_coach: dict
    ):
        payload = {"name": "Alex Applicant", "email": "alex@example.com", "answers": {"niche": "fitness"}}

        first = client.post("/api/v1/leads/landing", json=payload)
        assert first.status_code == 201
        assert first.json()["success"] is True

        repeat = client.post("/api/v1/leads/landing", json=payload)
        assert repeat.status_code == 409
        assert repeat.json()["code"] == "LEAD_RECENTLY_SUBMITTED"

        admin_view = client.get("/api/v1/leads", headers=auth_headers_admin)
        assert admin_view.json()["total"] == 1
        assert admin_view.json()["items"][0]["answers"] == {"niche": "fitness"}

        coach_view = client.get("/api/v1/leads", headers=auth_headers_coach)
        assert coach_view.json()["total"] == 0


class TestLeadRoutes:
    def test_status_update_and_stats(self, client: TestClient, auth_headers_coach: dict, coach_lead_id: str):
        response = client.put(
            f"/api/v1/leads/{coach_lead_id}/status",
            headers=auth_headers_coach,
            json={"status": "scheduled", "notes": "Discovery call booked"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "scheduled"

        stats = client.get("/api/v1/leads/stats", headers=auth_headers_coach).json()
        assert stats["total"] == 1
        assert stats["by_status"]["scheduled"] == 1
        assert stats["conversion_rate"] == 0.0

        filtered = client.get("/api/v1/leads", headers=auth_headers_coach, params={"status": "converted"})
        assert filtered.json()["total"] == 0

    def test_other_coach_gets_404(self, client: TestClient, auth_headers_coach_2: dict, coach_lead_id: str):
        response = client.patch(f"/api/v1/leads/{coach_lead_id}", headers=auth_headers_coach_2, json={"notes": "x"})

        assert response.status_code == 404
        assert response.json()["code"] == "LEAD_NOT_FOUND"

    def test_clients_cannot_list_leads(self, client: TestClient, auth_headers_client: dict):
        response = client.get("/api/v1/leads", headers=auth_headers_client)

        assert response.status_code == 403

    def test_delete_lead(self, client: TestClient, auth_headers_coach: dict, coach_lead_id: str):
        deleted = client.delete(f"/api/v1/leads/{coach_lead_id}", headers=auth_headers_coach)
        assert deleted.status_code == 200

        missing = client.get(f"/api/v1/leads/{coach_lead_id}", headers=auth_headers_coach)
        assert missing.status_code == 404


class TestSequenceRoutes:
    def test_sequence_lifecycle_for_lead(self, client: TestClient, auth_headers_coach: dict, coach_lead_id: str):
        created = client.post(
            "/api/v1/sequences",
            headers=auth_headers_coach,
            json={
                "name": "Nurture",
                "steps": [
                    {"subject": "Welcome {{ first_name }}", "body": "Glad you reached out.", "delay_days": 0},
                    {"subject": "Checking in", "body": "Any questions?", "delay_days": 3},
                ],
            },
        )
        assert created.status_code == 201
        sequence = created.json()
        assert [step["order_index"] for step in sequence["steps"]] == [0, 1]

        started = client.post(
            f"/api/v1/sequences/{sequence['id']}/start", headers=auth_headers_coach, json={"lead_id": coach_lead_id}
        )
        assert started.status_code == 201
        assert started.json()[0]["subject"] == "Welcome Pat"

        again = client.post(
            f"/api/v1/sequences/{sequence['id']}/start", headers=auth_headers_coach, json={"lead_id": coach_lead_id}
        )
        assert again.status_code == 409

        paused = client.post(
            f"/api/v1/sequences/{sequence['id']}/pause", headers=auth_headers_coach, json={"lead_id": coach_lead_id}
        )
        assert {email["status"] for email in paused.json()} == {"paused"}

        cancelled = client.post(
            f"/api/v1/sequences/{sequence['id']}/cancel", headers=auth_headers_coach, json={"lead_id": coach_lead_id}
        )
        assert cancelled.json()["data"] == {"cancelled": 2}

        emails = client.get(f"/api/v1/leads/{coach_lead_id}/emails", headers=auth_headers_coach)
        assert {email["status"] for email in emails.json()} == {"cancelled"}

    def test_status_change_sequence_needs_target(self, client: TestClient, auth_headers_coach: dict):
        response = client.post(
            "/api/v1/sequences",
            headers=auth_headers_coach,
            json={
                "name": "On convert",
                "trigger": "status_change",
                "steps": [{"subject": "Welcome aboard", "body": "Let's begin."}],
            },
        )

        assert response.status_code == 422

    def test_sequences_are_private(self, client: TestClient, auth_headers_coach: dict, auth_headers_coach_2: dict):
        sequence_id = client.post(
            "/api/v1/sequences",
            headers=auth_headers_coach,
            json={"name": "Mine", "steps": [{"subject": "Hi", "body": "Hello"}]},
        ).json()["id"]

        response = client.get(f"/api/v1/sequences/{sequence_id}", headers=auth_headers_coach_2)

        assert response.status_code == 404
