"""Course builder, drip, paywall and enrollment routes."""

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from app.models.billing import PaymentRequest
from app.models.course import Enrollment
from app.models.notification import Notification
from app.models.user import User


def _build_course(client: TestClient, headers: dict, lessons: int = 2, **course_fields) -> dict:
    """Course with one chapter and ``lessons`` lessons; returns ids."""
    course = client.post("/api/v1/courses", headers=headers, json={"title": "Mindset Mastery", **course_fields})
    assert course.status_code == 201
    course_id = course.json()["id"]
    chapter = client.post(f"/api/v1/courses/{course_id}/chapters", headers=headers, json={"title": "Week 1"})
    assert chapter.status_code == 201
    chapter_id = chapter.json()["id"]
    lesson_ids = []
    for index in range(lessons):
        lesson = client.post(
            f"/api/v1/courses/chapters/{chapter_id}/lessons",
            headers=headers,
            json={"title": f"Lesson {index + 1}", "content": f"Body {index + 1}"},
        )
        assert lesson.status_code == 201
        lesson_ids.append(lesson.json()["id"])
    return {"course_id": course_id, "chapter_id": chapter_id, "lesson_ids": lesson_ids}


@pytest.fixture
def published_course(client: TestClient, auth_headers_coach: dict) -> dict:
    ids = _build_course(client, auth_headers_coach)
    response = client.post(f"/api/v1/courses/{ids['course_id']}/publish", headers=auth_headers_coach)
    assert response.status_code == 200
    return ids


class TestCourseBuilder:
    def test_publish_requires_lessons(self, client: TestClient, auth_headers_coach: dict):
        course_id = client.post("/api/v1/courses", headers=auth_headers_coach, json={"title": "Empty"}).json()["id"]

        response = client.post(f"/api/v1/courses/{course_id}/publish", headers=auth_headers_coach)

        assert response.status_code == 422
        assert response.json()["code"] == "COURSE_EMPTY"

    def test_course_detail_and_reorder(self, client: TestClient, auth_headers_coach: dict):
        ids = _build_course(client, auth_headers_coach, lessons=3)
        reversed_ids = list(reversed(ids["lesson_ids"]))

        reordered = client.put(
            f"/api/v1/courses/chapters/{ids['chapter_id']}/lessons/order",
            headers=auth_headers_coach,
            json={"ordered_ids": reversed_ids},
        )
        assert reordered.status_code == 200
        assert [lesson["order_index"] for lesson in reordered.json()] == [0, 1, 2]

        detail = client.get(f"/api/v1/courses/{ids['course_id']}", headers=auth_headers_coach)
        assert [lesson["id"] for lesson in detail.json()["chapters"][0]["lessons"]] == reversed_ids

    def test_reorder_must_list_every_item(self, client: TestClient, auth_headers_coach: dict):
        ids = _build_course(client, auth_headers_coach, lessons=2)

        response = client.put(
            f"/api/v1/courses/chapters/{ids['chapter_id']}/lessons/order",
            headers=auth_headers_coach,
            json={"ordered_ids": ids["lesson_ids"][:1]},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REORDER"

    def test_other_coach_cannot_see_course(
        self, client: TestClient, auth_headers_coach: dict, auth_headers_coach_2: dict
    ):
        ids = _build_course(client, auth_headers_coach, lessons=1)

        response = client.get(f"/api/v1/courses/{ids['course_id']}", headers=auth_headers_coach_2)

        assert response.status_code == 404

    def test_paywall_validation(self, client: TestClient, auth_headers_coach: dict):
        ids = _build_course(client, auth_headers_coach, lessons=1)
        url = f"/api/v1/courses/{ids['course_id']}/paywall"

        no_price = client.put(url, headers=auth_headers_coach, json={"pricing_type": "one_time"})
        assert no_price.json()["code"] == "PRICE_REQUIRED"

        bad_installments = client.put(
            url,
            headers=auth_headers_coach,
            json={"pricing_type": "one_time", "price": 9900, "allow_installments": True, "installment_count": 3},
        )
        assert bad_installments.json()["code"] == "INVALID_INSTALLMENTS"

        ok = client.put(
            url,
            headers=auth_headers_coach,
            json={"pricing_type": "installment", "price": 9900, "allow_installments": True, "installment_count": 3},
        )
        assert ok.status_code == 200
        assert ok.json()["is_paid"] is True
        assert ok.json()["installment_count"] == 3

    def test_drip_schedule(self, client: TestClient, auth_headers_coach: dict):
        ids = _build_course(client, auth_headers_coach, lessons=2)
        course_id = ids["course_id"]

        settings = client.put(
            f"/api/v1/courses/{course_id}/drip",
            headers=auth_headers_coach,
            json={"is_drip_enabled": True, "drip_interval": "week", "drip_count": 1},
        )
        assert settings.json()["is_drip_enabled"] is True

        schedule = client.put(
            f"/api/v1/courses/{course_id}/drip/lessons",
            headers=auth_headers_coach,
            json={"lessons": [{"lesson_id": ids["lesson_ids"][1], "drip_delay": 7}]},
        )
        assert schedule.status_code == 200
        delays = {entry["lesson_id"]: entry["drip_delay"] for entry in schedule.json()["lessons"]}
        assert delays == {ids["lesson_ids"][0]: 0, ids["lesson_ids"][1]: 7}

        unknown = client.put(
            f"/api/v1/courses/{course_id}/drip/lessons",
            headers=auth_headers_coach,
            json={"lessons": [{"lesson_id": "0" * 26, "drip_delay": 1}]},
        )
        assert unknown.json()["code"] == "LESSON_NOT_IN_COURSE"


class TestEnrollment:
    def test_client_self_enrolls_in_free_course(
        self,
        client: TestClient,
        db: Session,
        published_course: dict,
        linked_client: User,
        test_coach: User,
        auth_headers_client: dict,
    ):
        response = client.post(f"/api/v1/courses/{published_course['course_id']}/enroll", headers=auth_headers_client)

        assert response.status_code == 201
        assert response.json()["status"] == "active"
        assert response.json()["progress_percentage"] == 0

        again = client.post(f"/api/v1/courses/{published_course['course_id']}/enroll", headers=auth_headers_client)
        assert again.status_code == 409
        assert again.json()["code"] == "ALREADY_ENROLLED"

        notified = db.query(Notification).filter(Notification.user_id == test_coach.id).all()
        assert [n.title for n in notified] == ["New enrollment"]

    def test_unlinked_client_cannot_enroll(
        self, client: TestClient, published_course: dict, test_client_user: User, auth_headers_client: dict
    ):
        response = client.post(f"/api/v1/courses/{published_course['course_id']}/enroll", headers=auth_headers_client)

        assert response.status_code == 403
        assert response.json()["code"] == "NOT_LINKED"

    def test_unpublished_course(
        self, client: TestClient, auth_headers_coach: dict, linked_client: User, auth_headers_client: dict
    ):
        ids = _build_course(client, auth_headers_coach, lessons=1)

        response = client.post(f"/api/v1/courses/{ids['course_id']}/enroll", headers=auth_headers_client)

        assert response.status_code == 422
        assert response.json()["code"] == "COURSE_NOT_PUBLISHED"

    def test_paid_course_requires_payment_unless_coach_enrolls(
        self,
        client: TestClient,
        published_course: dict,
        linked_client: User,
        auth_headers_coach: dict,
        auth_headers_client: dict,
    ):
        course_id = published_course["course_id"]
        client.put(
            f"/api/v1/courses/{course_id}/paywall",
            headers=auth_headers_coach,
            json={"pricing_type": "one_time", "price": 4900},
        )

        self_enroll = client.post(f"/api/v1/courses/{course_id}/enroll", headers=auth_headers_client)
        assert self_enroll.status_code == 422
        assert self_enroll.json()["code"] == "PAYMENT_REQUIRED"

        by_coach = client.post(
            f"/api/v1/courses/{course_id}/enroll",
            headers=auth_headers_coach,
            json={"client_id": linked_client.id},
        )
        assert by_coach.status_code == 201
        assert by_coach.json()["client_id"] == linked_client.id

    def test_paid_course_unlocked_by_payment_request(
        self,
        client: TestClient,
        db: Session,
        published_course: dict,
        linked_client: User,
        auth_headers_coach: dict,
        auth_headers_client: dict,
    ):
        course_id = published_course["course_id"]
        client.put(
            f"/api/v1/courses/{course_id}/paywall",
            headers=auth_headers_coach,
            json={"pricing_type": "one_time", "price": 4900},
        )
        request_id = client.post(
            "/api/v1/payment-requests",
            headers=auth_headers_coach,
            json={"payer_id": linked_client.id, "request_type": "course_payment", "course_id": course_id},
        ).json()["id"]

        token = db.get(PaymentRequest, request_id).token
        paid = client.post(f"/api/v1/payment-requests/token/{token}/pay", headers=auth_headers_client, json={})
        assert paid.status_code == 200
        assert paid.json()["amount"] == 4900

        enrollments = client.get("/api/v1/courses/enrollments", headers=auth_headers_client)
        assert [e["course_id"] for e in enrollments.json()] == [course_id]


class TestProgress:
    def test_completing_every_lesson_completes_enrollment(
        self,
        client: TestClient,
        db: Session,
        published_course: dict,
        linked_client: User,
        test_coach: User,
        auth_headers_client: dict,
        auth_headers_coach: dict,
    ):
        course_id = published_course["course_id"]
        first, second = published_course["lesson_ids"]
        client.post(f"/api/v1/courses/{course_id}/enroll", headers=auth_headers_client)

        half = client.post(f"/api/v1/courses/{course_id}/lessons/{first}/complete", headers=auth_headers_client)
        assert half.json()["progress_percentage"] == 50.0
        assert half.json()["status"] == "active"

        repeat = client.post(f"/api/v1/courses/{course_id}/lessons/{first}/complete", headers=auth_headers_client)
        assert repeat.json()["progress_percentage"] == 50.0

        done = client.post(f"/api/v1/courses/{course_id}/lessons/{second}/complete", headers=auth_headers_client)
        assert done.json()["status"] == "completed"
        assert done.json()["progress_percentage"] == 100.0
        assert done.json()["completed_at"] is not None

        stats = client.get(f"/api/v1/courses/{course_id}/stats", headers=auth_headers_coach)
        assert stats.json()["completed_enrollments"] == 1
        assert stats.json()["completion_rate"] == 100.0

        titles = {n.title for n in db.query(Notification).filter(Notification.user_id == test_coach.id)}
        assert titles == {"New enrollment", "Course completed"}

    def test_drip_locks_future_lessons(
        self,
        client: TestClient,
        db: Session,
        published_course: dict,
        linked_client: User,
        auth_headers_client: dict,
        auth_headers_coach: dict,
    ):
        course_id = published_course["course_id"]
        first, second = published_course["lesson_ids"]
        client.put(f"/api/v1/courses/{course_id}/drip", headers=auth_headers_coach, json={"is_drip_enabled": True})
        client.put(
            f"/api/v1/courses/{course_id}/drip/lessons",
            headers=auth_headers_coach,
            json={"lessons": [{"lesson_id": second, "drip_delay": 3}]},
        )
        client.post(f"/api/v1/courses/{course_id}/enroll", headers=auth_headers_client)

        curriculum = client.get(f"/api/v1/courses/{course_id}/curriculum", headers=auth_headers_client).json()
        lessons = {lesson["id"]: lesson for lesson in curriculum["chapters"][0]["lessons"]}
        assert lessons[first]["is_locked"] is False
        assert lessons[first]["content"] == "Body 1"
        assert lessons[second]["is_locked"] is True
        assert lessons[second]["content"] is None

        locked = client.post(f"/api/v1/courses/{course_id}/lessons/{second}/complete", headers=auth_headers_client)
        assert locked.status_code == 422
        assert locked.json()["code"] == "LESSON_LOCKED"

        enrollment = db.query(Enrollment).filter(Enrollment.course_id == course_id).one()
        enrollment.enrolled_at = datetime.now(timezone.utc) - timedelta(days=4)
        db.commit()

        released = client.post(f"/api/v1/courses/{course_id}/lessons/{second}/complete", headers=auth_headers_client)
        assert released.status_code == 200
        assert released.json()["progress_percentage"] == 50.0

    def test_curriculum_requires_enrollment(
        self, client: TestClient, published_course: dict, linked_client: User, auth_headers_client: dict
    ):
        response = client.get(f"/api/v1/courses/{published_course['course_id']}/curriculum", headers=auth_headers_client)

        assert response.status_code == 403
        assert response.json()["code"] == "NOT_ENROLLED"
