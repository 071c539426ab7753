"""Communities: membership rules, the feed, reactions, comments and moderation."""

from typing import Dict

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from app.models.notification import Notification
from app.models.user import User
from app.services.community_service import slugify


def _create_community(client: TestClient, headers: dict, name: str = "Founders Circle", **fields) -> dict:
    response = client.post("/api/v1/communities", headers=headers, json={"name": name, **fields})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def public_community(client: TestClient, auth_headers_coach: dict) -> dict:
    return _create_community(client, auth_headers_coach, visibility="public")


@pytest.fixture
def member_headers(
    client: TestClient, public_community: dict, test_client_user: User, auth_headers_client: dict
) -> Dict[str, str]:
    joined = client.post(f"/api/v1/communities/{public_community['id']}/join", headers=auth_headers_client)
    assert joined.status_code == 200
    return auth_headers_client


def _post(client: TestClient, headers: dict, community_id: str, content: str = "Hello everyone") -> dict:
    response = client.post(f"/api/v1/communities/{community_id}/posts", headers=headers, json={"content": content})
    assert response.status_code == 201
    return response.json()


def test_slugify():
    assert slugify("Founders & Friends!") == "founders-friends"
    assert slugify("***") == "community"


class TestCommunities:
    def test_owner_is_first_member_and_slugs_are_unique(self, client: TestClient, auth_headers_coach: dict):
        first = _create_community(client, auth_headers_coach)
        second = _create_community(client, auth_headers_coach)

        assert first["slug"] == "founders-circle"
        assert second["slug"] == "founders-circle-2"
        assert first["member_count"] == 1

        members = client.get(f"/api/v1/communities/{first['id']}/members", headers=auth_headers_coach).json()
        assert [(m["role"], m["user_name"]) for m in members] == [("owner", "Casey Coach")]

    def test_clients_cannot_create(self, client: TestClient, auth_headers_client: dict):
        response = client.post("/api/v1/communities", headers=auth_headers_client, json={"name": "Mine"})

        assert response.status_code == 403

    def test_private_community_is_hidden_from_outsiders(
        self, client: TestClient, auth_headers_coach: dict, auth_headers_coach_2: dict
    ):
        community = _create_community(client, auth_headers_coach, visibility="private")

        response = client.get(f"/api/v1/communities/{community['id']}", headers=auth_headers_coach_2)

        assert response.status_code == 404

    def test_only_admins_update(self, client: TestClient, public_community: dict, member_headers: dict):
        response = client.patch(
            f"/api/v1/communities/{public_community['id']}", headers=member_headers, json={"name": "Taken over"}
        )

        assert response.status_code == 403
        assert response.json()["code"] == "INSUFFICIENT_ROLE"


class TestMembership:
    def test_public_join_is_immediate(self, client: TestClient, public_community: dict, member_headers: dict):
        community = client.get(f"/api/v1/communities/{public_community['id']}", headers=member_headers).json()
        assert community["member_count"] == 2

        again = client.post(f"/api/v1/communities/{public_community['id']}/join", headers=member_headers)
        assert again.status_code == 409

        listed = client.get("/api/v1/communities", headers=member_headers).json()
        assert [c["id"] for c in listed] == [public_community["id"]]

    def test_private_join_waits_for_approval(
        self, client: TestClient, auth_headers_coach: dict, test_client_user: User, auth_headers_client: dict
    ):
        community = _create_community(client, auth_headers_coach, visibility="private")

        pending = client.post(f"/api/v1/communities/{community['id']}/join", headers=auth_headers_client)
        assert pending.json()["status"] == "pending"

        blocked = client.get(f"/api/v1/communities/{community['id']}/posts", headers=auth_headers_client)
        assert blocked.status_code == 403
        assert blocked.json()["code"] == "NOT_MEMBER"

        approved = client.post(
            f"/api/v1/communities/{community['id']}/members/{pending.json()['id']}/approve",
            headers=auth_headers_coach,
        )
        assert approved.json()["status"] == "active"

        approve_twice = client.post(
            f"/api/v1/communities/{community['id']}/members/{pending.json()['id']}/approve",
            headers=auth_headers_coach,
        )
        assert approve_twice.json()["code"] == "NOT_PENDING"

    def test_invite_only_requires_an_admin(
        self,
        client: TestClient,
        auth_headers_coach: dict,
        test_client_user: User,
        auth_headers_client: dict,
    ):
        community = _create_community(client, auth_headers_coach, visibility="invite_only")

        joined = client.post(f"/api/v1/communities/{community['id']}/join", headers=auth_headers_client)
        assert joined.status_code == 403
        assert joined.json()["code"] == "INVITE_ONLY"

        added = client.post(
            f"/api/v1/communities/{community['id']}/members",
            headers=auth_headers_coach,
            json={"user_id": test_client_user.id},
        )
        assert added.status_code == 201
        assert added.json()["role"] == "member"

        owner_role = client.post(
            f"/api/v1/communities/{community['id']}/members",
            headers=auth_headers_coach,
            json={"user_id": test_client_user.id, "role": "owner"},
        )
        assert owner_role.json()["code"] == "INVALID_ROLE"

    def test_roles_and_banning(
        self,
        client: TestClient,
        public_community: dict,
        member_headers: dict,
        test_client_user_2: User,
        make_headers,
        auth_headers_coach: dict,
    ):
        community_id = public_community["id"]
        other_headers = make_headers(test_client_user_2)
        other = client.post(f"/api/v1/communities/{community_id}/join", headers=other_headers).json()
        members = client.get(f"/api/v1/communities/{community_id}/members", headers=auth_headers_coach).json()
        moderator_id = next(m["id"] for m in members if m["user_name"] == "Riley Client")
        owner_id = next(m["id"] for m in members if m["role"] == "owner")

        promoted = client.put(
            f"/api/v1/communities/{community_id}/members/{moderator_id}/role",
            headers=auth_headers_coach,
            json={"role": "moderator"},
        )
        assert promoted.json()["role"] == "moderator"

        not_owner = client.put(
            f"/api/v1/communities/{community_id}/members/{other['id']}/role",
            headers=member_headers,
            json={"role": "moderator"},
        )
        assert not_owner.status_code == 403

        cannot_touch_owner = client.post(
            f"/api/v1/communities/{community_id}/members/{owner_id}/suspend", headers=member_headers
        )
        assert cannot_touch_owner.status_code == 403

        banned = client.post(
            f"/api/v1/communities/{community_id}/members/{other['id']}/suspend",
            headers=member_headers,
            params={"ban": True},
        )
        assert banned.json()["status"] == "banned"

        rejoin = client.post(f"/api/v1/communities/{community_id}/join", headers=other_headers)
        assert rejoin.json()["code"] == "BANNED"

    def test_banned_member_cannot_leave_to_rejoin(
        self,
        client: TestClient,
        public_community: dict,
        test_client_user_2: User,
        make_headers,
        auth_headers_coach: dict,
    ):
        community_id = public_community["id"]
        other_headers = make_headers(test_client_user_2)
        other = client.post(f"/api/v1/communities/{community_id}/join", headers=other_headers).json()
        client.post(
            f"/api/v1/communities/{community_id}/members/{other['id']}/suspend",
            headers=auth_headers_coach,
            params={"ban": True},
        )

        leave = client.post(f"/api/v1/communities/{community_id}/leave", headers=other_headers)
        assert leave.status_code == 403
        assert leave.json()["code"] == "MEMBERSHIP_RESTRICTED"

        rejoin = client.post(f"/api/v1/communities/{community_id}/join", headers=other_headers)
        assert rejoin.status_code == 403
        assert rejoin.json()["code"] == "BANNED"

    def test_owner_cannot_leave(self, client: TestClient, public_community: dict, auth_headers_coach: dict):
        response = client.post(f"/api/v1/communities/{public_community['id']}/leave", headers=auth_headers_coach)

        assert response.status_code == 422
        assert response.json()["code"] == "OWNER_CANNOT_LEAVE"

    def test_member_leaves(self, client: TestClient, public_community: dict, member_headers: dict):
        response = client.post(f"/api/v1/communities/{public_community['id']}/leave", headers=member_headers)
        assert response.status_code == 200

        community = client.get(f"/api/v1/communities/{public_community['id']}", headers=member_headers).json()
        assert community["member_count"] == 1


class TestFeed:
    def test_posts_pins_and_notifications(
        self,
        client: TestClient,
        db: Session,
        public_community: dict,
        member_headers: dict,
        test_client_user: User,
        auth_headers_coach: dict,
    ):
        community_id = public_community["id"]
        older = _post(client, auth_headers_coach, community_id, "Welcome to the circle")
        newer = _post(client, auth_headers_coach, community_id, "Weekly wins thread")

        feed = client.get(f"/api/v1/communities/{community_id}/posts", headers=member_headers).json()
        assert [p["id"] for p in feed["items"]] == [newer["id"], older["id"]]
        assert feed["items"][0]["author_name"] == "Casey Coach"

        pinned = client.post(f"/api/v1/communities/posts/{older['id']}/pin", headers=auth_headers_coach)
        assert pinned.json()["is_pinned"] is True
        feed = client.get(f"/api/v1/communities/{community_id}/posts", headers=member_headers).json()
        assert feed["items"][0]["id"] == older["id"]

        member_pin = client.post(f"/api/v1/communities/posts/{newer['id']}/pin", headers=member_headers)
        assert member_pin.status_code == 403

        notes = db.query(Notification).filter(Notification.user_id == test_client_user.id).all()
        assert len(notes) == 2
        assert notes[0].title == "New post in Founders Circle"

    def test_author_or_moderator_edits(
        self,
        client: TestClient,
        public_community: dict,
        member_headers: dict,
        auth_headers_coach: dict,
        test_client_user_2: User,
        make_headers,
    ):
        post = _post(client, member_headers, public_community["id"])
        bystander_headers = make_headers(test_client_user_2)
        client.post(f"/api/v1/communities/{public_community['id']}/join", headers=bystander_headers)

        edited = client.patch(
            f"/api/v1/communities/posts/{post['id']}", headers=member_headers, json={"content": "Edited"}
        )
        assert edited.json()["is_edited"] is True

        by_owner = client.patch(
            f"/api/v1/communities/posts/{post['id']}", headers=auth_headers_coach, json={"content": "Trimmed"}
        )
        assert by_owner.status_code == 200
        assert by_owner.json()["content"] == "Trimmed"

        by_member = client.patch(
            f"/api/v1/communities/posts/{post['id']}", headers=bystander_headers, json={"content": "Nope"}
        )
        assert by_member.status_code == 403
        assert by_member.json()["code"] == "NOT_AUTHOR"
        assert client.delete(f"/api/v1/communities/posts/{post['id']}", headers=bystander_headers).status_code == 403

        removed = client.delete(f"/api/v1/communities/posts/{post['id']}", headers=auth_headers_coach)
        assert removed.status_code == 200

    def test_reaction_toggle(self, client: TestClient, public_community: dict, member_headers: dict):
        post = _post(client, member_headers, public_community["id"])
        url = f"/api/v1/communities/posts/{post['id']}/reactions"

        liked = client.post(url, headers=member_headers, json={"reaction_type": "like"})
        assert liked.json() == {"reaction_type": "like", "reaction_count": 1}

        switched = client.post(url, headers=member_headers, json={"reaction_type": "celebrate"})
        assert switched.json() == {"reaction_type": "celebrate", "reaction_count": 1}

        detail = client.get(f"/api/v1/communities/posts/{post['id']}", headers=member_headers)
        assert detail.json()["my_reaction"] == "celebrate"

        removed = client.post(url, headers=member_headers, json={"reaction_type": "celebrate"})
        assert removed.json() == {"reaction_type": None, "reaction_count": 0}

    def test_replies_are_one_level_deep(
        self, client: TestClient, public_community: dict, member_headers: dict, auth_headers_coach: dict
    ):
        post = _post(client, auth_headers_coach, public_community["id"])
        comments_url = f"/api/v1/communities/posts/{post['id']}/comments"

        top = client.post(comments_url, headers=member_headers, json={"content": "Great post"}).json()
        reply = client.post(
            comments_url, headers=auth_headers_coach, json={"content": "Thanks!", "parent_comment_id": top["id"]}
        )
        assert reply.status_code == 201

        too_deep = client.post(
            comments_url,
            headers=member_headers,
            json={"content": "Nested", "parent_comment_id": reply.json()["id"]},
        )
        assert too_deep.status_code == 422
        assert too_deep.json()["code"] == "REPLY_DEPTH"

        detail = client.get(f"/api/v1/communities/posts/{post['id']}", headers=member_headers).json()
        assert detail["comment_count"] == 2
        assert [c["reply_count"] for c in detail["comments"]] == [1]

        replies = client.get(f"/api/v1/communities/comments/{top['id']}/replies", headers=member_headers).json()
        assert [r["content"] for r in replies] == ["Thanks!"]

        client.delete(f"/api/v1/communities/comments/{top['id']}", headers=member_headers)
        after = client.get(f"/api/v1/communities/posts/{post['id']}", headers=member_headers).json()
        assert after["comment_count"] == 0


class TestModeration:
    def test_flag_resolve_hides_post(
        self, client: TestClient, public_community: dict, member_headers: dict, auth_headers_coach: dict
    ):
        community_id = public_community["id"]
        post = _post(client, auth_headers_coach, community_id, "Buy my crypto course")

        flag = client.post(
            "/api/v1/communities/flags", headers=member_headers, json={"post_id": post["id"], "reason": "Spam"}
        )
        assert flag.status_code == 201

        duplicate = client.post(
            "/api/v1/communities/flags", headers=member_headers, json={"post_id": post["id"], "reason": "Spam"}
        )
        assert duplicate.json()["code"] == "ALREADY_FLAGGED"

        member_view = client.get(f"/api/v1/communities/{community_id}/flags", headers=member_headers)
        assert member_view.status_code == 403

        queue = client.get(f"/api/v1/communities/{community_id}/flags", headers=auth_headers_coach).json()
        assert [f["id"] for f in queue] == [flag.json()["id"]]

        resolved = client.post(
            f"/api/v1/communities/flags/{flag.json()['id']}/resolve",
            headers=auth_headers_coach,
            json={"note": "Removed"},
        )
        assert resolved.json()["status"] == "resolved"

        feed = client.get(f"/api/v1/communities/{community_id}/posts", headers=member_headers).json()
        assert feed["total"] == 0

        hidden = client.get(f"/api/v1/communities/posts/{post['id']}", headers=member_headers)
        assert hidden.status_code == 404

        closed = client.post(
            f"/api/v1/communities/flags/{flag.json()['id']}/dismiss", headers=auth_headers_coach, json={}
        )
        assert closed.json()["code"] == "FLAG_CLOSED"

    def test_flag_needs_exactly_one_target(self, client: TestClient, public_community: dict, member_headers: dict):
        response = client.post("/api/v1/communities/flags", headers=member_headers, json={"reason": "?"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FLAG_TARGET"

    def test_analytics(
        self, client: TestClient, public_community: dict, member_headers: dict, auth_headers_coach: dict
    ):
        community_id = public_community["id"]
        _post(client, member_headers, community_id)
        _post(client, member_headers, community_id)

        data = client.get(f"/api/v1/communities/{community_id}/analytics", headers=auth_headers_coach).json()

        assert data["member_count"] == 2
        assert data["members_by_role"]["owner"] == 1
        assert data["posts"] == 2
        assert data["top_posters"][0]["user_name"] == "Riley Client"
        assert data["top_posters"][0]["post_count"] == 2
