from fastapi.testclient import TestClient
import pytest

from app.services.content_service import engagement_rate


@pytest.mark.parametrize(
    "views,likes,comments,shares,expected",
    [
        (0, 5, 5, 5, 0.0),
        (200, 10, 5, 5, 10.0),
        (3, 1, 0, 0, 33.33),
    ],
)
def test_engagement_rate(views, likes, comments, shares, expected):
    assert engagement_rate(views, likes, comments, shares) == expected


def _category(client: TestClient, headers: dict, name: str) -> str:
    response = client.post("/api/v1/content/categories", headers=headers, json={"name": name, "color": "#3366FF"})
    assert response.status_code == 201
    return response.json()["id"]


def test_category_names_are_unique_per_coach(
    client: TestClient, auth_headers_coach: dict, auth_headers_coach_2: dict
):
    _category(client, auth_headers_coach, "Reels")

    clash = client.post("/api/v1/content/categories", headers=auth_headers_coach, json={"name": "Reels"})
    assert clash.status_code == 409
    assert clash.json()["code"] == "CATEGORY_EXISTS"

    _category(client, auth_headers_coach_2, "Reels")


def test_content_metrics_and_top_performing(client: TestClient, auth_headers_coach: dict):
    category_id = _category(client, auth_headers_coach, "Tips")
    quiet = client.post(
        "/api/v1/content",
        headers=auth_headers_coach,
        json={"title": "Morning routine", "category_id": category_id, "tags": ["habits"]},
    ).json()
    loud = client.post(
        "/api/v1/content",
        headers=auth_headers_coach,
        json={"title": "Goal setting", "content_type": "reel", "status": "published", "platform": "instagram"},
    ).json()
    assert loud["published_at"] is not None
    assert quiet["published_at"] is None

    client.put(f"/api/v1/content/{quiet['id']}/metrics", headers=auth_headers_coach, json={"views": 1000, "likes": 10})
    updated = client.put(
        f"/api/v1/content/{loud['id']}/metrics",
        headers=auth_headers_coach,
        json={"views": 100, "likes": 20, "comments": 4, "shares": 1},
    )
    assert updated.json()["engagement_rate"] == 25.0

    top = client.get("/api/v1/content/top", headers=auth_headers_coach, params={"limit": 1})
    assert [piece["id"] for piece in top.json()] == [loud["id"]]

    stats = client.get("/api/v1/content/categories/stats", headers=auth_headers_coach).json()
    assert {row["category_name"]: row["total_views"] for row in stats} == {"Uncategorized": 100, "Tips": 1000}

    filtered = client.get("/api/v1/content", headers=auth_headers_coach, params={"status": "published"})
    assert filtered.json()["total"] == 1


def test_deleting_category_uncategorises_pieces(client: TestClient, auth_headers_coach: dict):
    category_id = _category(client, auth_headers_coach, "Podcasts")
    piece_id = client.post(
        "/api/v1/content",
        headers=auth_headers_coach,
        json={"title": "Episode 1", "category_id": category_id},
    ).json()["id"]

    deleted = client.delete(f"/api/v1/content/categories/{category_id}", headers=auth_headers_coach)
    assert deleted.status_code == 200

    piece = client.get(f"/api/v1/content/{piece_id}", headers=auth_headers_coach)
    assert piece.json()["category_id"] is None


def test_content_is_private_to_its_coach(client: TestClient, auth_headers_coach: dict, auth_headers_coach_2: dict):
    piece_id = client.post("/api/v1/content", headers=auth_headers_coach, json={"title": "Private"}).json()["id"]

    response = client.get(f"/api/v1/content/{piece_id}", headers=auth_headers_coach_2)

    assert response.status_code == 404
    assert response.json()["code"] == "CONTENT_NOT_FOUND"

    foreign_category = _category(client, auth_headers_coach_2, "Theirs")
    attach = client.patch(
        f"/api/v1/content/{piece_id}", headers=auth_headers_coach, json={"category_id": foreign_category}
    )
    assert attach.status_code == 404
