from fastapi.testclient import TestClient


def test_health(client: TestClient):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "coachdesk-api"
    assert data["timestamp"].endswith("Z")
    assert "X-Commit-Sha" in response.headers


def test_health_lite_and_db(client: TestClient):
    assert client.get("/api/v1/health/lite").json() == {"status": "ok"}

    db_health = client.get("/api/v1/health/db")
    assert db_health.status_code == 200
    assert db_health.json()["database"] == "sqlite"


def test_prometheus_exposition(client: TestClient):
    client.get("/api/v1/health/lite")

    response = client.get("/metrics/prometheus")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "coachdesk_http_requests_total" in response.text


def test_analytics_are_role_scoped(client: TestClient, auth_headers_coach: dict, auth_headers_admin: dict):
    coach = client.get("/api/v1/analytics/coach", headers=auth_headers_coach)
    assert coach.status_code == 200
    assert coach.json()["clients"]["total"] == 0

    assert client.get("/api/v1/analytics/admin", headers=auth_headers_coach).status_code == 403

    admin = client.get("/api/v1/analytics/admin", headers=auth_headers_admin, params={"months": 2})
    assert admin.status_code == 200
    assert len(admin.json()["revenue_by_month"]) == 2
