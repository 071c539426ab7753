"""Billing routes: plan administration, subscription and transaction visibility, pay links."""

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from app.models.billing import PaymentRequest
from app.models.user import User


@pytest.fixture
def plan_id(client: TestClient, auth_headers_admin: dict) -> str:
    response = client.post(
        "/api/v1/plans",
        headers=auth_headers_admin,
        json={"name": "Pro", "monthly_price": 9900, "annual_price": 99000, "features": ["Courses"]},
    )
    assert response.status_code == 201
    return response.json()["id"]


class TestPlanRoutes:
    def test_coaches_cannot_create_plans(self, client: TestClient, auth_headers_coach: dict):
        response = client.post(
            "/api/v1/plans",
            headers=auth_headers_coach,
            json={"name": "Nope", "monthly_price": 1, "annual_price": 1},
        )

        assert response.status_code == 403

    def test_plan_lifecycle(self, client: TestClient, auth_headers_admin: dict, plan_id: str):
        listed = client.get("/api/v1/plans", headers=auth_headers_admin)
        assert [p["id"] for p in listed.json()] == [plan_id]

        updated = client.patch(f"/api/v1/plans/{plan_id}", headers=auth_headers_admin, json={"trial_days": 7})
        assert updated.status_code == 200
        assert updated.json()["trial_days"] == 7

        stats = client.get(f"/api/v1/plans/{plan_id}/stats", headers=auth_headers_admin)
        assert stats.json() == {
            "plan_id": plan_id,
            "total_subscriptions": 0,
            "active_subscriptions": 0,
            "total_revenue": 0,
            "monthly_recurring_revenue": 0,
        }

        deleted = client.delete(f"/api/v1/plans/{plan_id}", headers=auth_headers_admin)
        assert deleted.status_code == 200
        assert deleted.json()["is_deleted"] is True

        hidden = client.get("/api/v1/plans", headers=auth_headers_admin, params={"include_inactive": True})
        assert hidden.json() == []

    def test_invalid_color_rejected(self, client: TestClient, auth_headers_admin: dict):
        response = client.post(
            "/api/v1/plans",
            headers=auth_headers_admin,
            json={"name": "Color", "monthly_price": 1, "annual_price": 1, "color": "purple"},
        )

        assert response.status_code == 422


class TestSubscriptionRoutes:
    def test_admin_creates_and_coach_sees_own(
        self,
        client: TestClient,
        plan_id: str,
        test_coach: User,
        auth_headers_admin: dict,
        auth_headers_coach: dict,
        auth_headers_coach_2: dict,
    ):
        created = client.post(
            "/api/v1/subscriptions",
            headers=auth_headers_admin,
            json={"coach_id": test_coach.id, "plan_id": plan_id},
        )
        assert created.status_code == 201
        subscription_id = created.json()["id"]
        assert created.json()["plan"]["name"] == "Pro"

        current = client.get("/api/v1/subscriptions/current", headers=auth_headers_coach)
        assert current.json()["id"] == subscription_id

        other = client.get(f"/api/v1/subscriptions/{subscription_id}", headers=auth_headers_coach_2)
        assert other.status_code == 404

        listed = client.get("/api/v1/subscriptions", headers=auth_headers_coach_2)
        assert listed.json()["total"] == 0

    def test_coach_cancels_own_subscription(
        self, client: TestClient, plan_id: str, test_coach: User, auth_headers_admin: dict, auth_headers_coach: dict
    ):
        subscription_id = client.post(
            "/api/v1/subscriptions",
            headers=auth_headers_admin,
            json={"coach_id": test_coach.id, "plan_id": plan_id},
        ).json()["id"]

        response = client.post(
            f"/api/v1/subscriptions/{subscription_id}/cancel",
            headers=auth_headers_coach,
            json={"immediate": True, "reason": "Switching tools"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "canceled"

        renew = client.post(f"/api/v1/subscriptions/{subscription_id}/renew", headers=auth_headers_admin)
        assert renew.status_code == 422
        assert renew.json()["code"] == "SUBSCRIPTION_NOT_ACTIVE"

    def test_pending_cancellation_is_resumed_not_reactivated(
        self, client: TestClient, plan_id: str, test_coach: User, auth_headers_admin: dict, auth_headers_coach: dict
    ):
        created = client.post(
            "/api/v1/subscriptions",
            headers=auth_headers_admin,
            json={"coach_id": test_coach.id, "plan_id": plan_id},
        ).json()
        subscription_id = created["id"]
        client.post(f"/api/v1/subscriptions/{subscription_id}/cancel", headers=auth_headers_coach, json={})

        reactivate = client.post(f"/api/v1/subscriptions/{subscription_id}/reactivate", headers=auth_headers_coach)
        assert reactivate.status_code == 422
        assert reactivate.json()["code"] == "SUBSCRIPTION_ACTIVE"

        resumed = client.post(f"/api/v1/subscriptions/{subscription_id}/resume", headers=auth_headers_coach)
        assert resumed.status_code == 200
        assert resumed.json()["canceled_at"] is None
        assert resumed.json()["current_period_end"] == created["current_period_end"]

    def test_stats_are_admin_only(
        self, client: TestClient, plan_id: str, test_coach: User, auth_headers_admin: dict, auth_headers_coach: dict
    ):
        client.post(
            "/api/v1/subscriptions",
            headers=auth_headers_admin,
            json={"coach_id": test_coach.id, "plan_id": plan_id},
        )

        assert client.get("/api/v1/subscriptions/stats", headers=auth_headers_coach).status_code == 403
        stats = client.get("/api/v1/subscriptions/stats", headers=auth_headers_admin).json()
        assert stats["active"] == 1
        assert stats["monthly_recurring_revenue"] == 9900

    def test_current_is_null_without_subscription(self, client: TestClient, auth_headers_coach: dict):
        response = client.get("/api/v1/subscriptions/current", headers=auth_headers_coach)

        assert response.status_code == 200
        assert response.json() is None


class TestTransactionRoutes:
    def test_transaction_flow_and_invoice_lookup(
        self,
        client: TestClient,
        plan_id: str,
        test_coach: User,
        auth_headers_admin: dict,
        auth_headers_coach: dict,
        auth_headers_coach_2: dict,
    ):
        created = client.post(
            "/api/v1/transactions",
            headers=auth_headers_admin,
            json={"coach_id": test_coach.id, "plan_id": plan_id, "amount": 9900, "metadata": {"source": "manual"}},
        )
        assert created.status_code == 201
        transaction = created.json()
        assert transaction["status"] == "pending"
        assert transaction["metadata"] == {"source": "manual"}

        completed = client.post(
            f"/api/v1/transactions/{transaction['id']}/complete",
            headers=auth_headers_admin,
            params={"payment_method": "bank_transfer"},
        )
        assert completed.json()["status"] == "completed"

        refund = client.post(
            f"/api/v1/transactions/{transaction['id']}/refund",
            headers=auth_headers_admin,
            json={"amount": 900},
        )
        assert refund.json()["status"] == "partially_refunded"
        assert refund.json()["refunded_amount"] == 900

        own = client.get(f"/api/v1/transactions/invoice/{transaction['invoice_number']}", headers=auth_headers_coach)
        assert own.status_code == 200

        foreign = client.get(f"/api/v1/transactions/{transaction['id']}", headers=auth_headers_coach_2)
        assert foreign.status_code == 404

        mine = client.get("/api/v1/transactions", headers=auth_headers_coach)
        assert mine.json()["total"] == 1
        assert mine.json()["has_next"] is False

    def test_failed_pending_and_stats_views(
        self,
        client: TestClient,
        plan_id: str,
        test_coach: User,
        auth_headers_admin: dict,
        auth_headers_coach: dict,
        auth_headers_coach_2: dict,
    ):
        created = client.post(
            "/api/v1/transactions",
            headers=auth_headers_admin,
            json={"coach_id": test_coach.id, "plan_id": plan_id, "amount": 9900},
        ).json()
        client.post(
            f"/api/v1/transactions/{created['id']}/fail", headers=auth_headers_admin, json={"reason": "Declined"}
        )

        failed = client.get("/api/v1/transactions/failed", headers=auth_headers_admin)
        assert [t["id"] for t in failed.json()] == [created["id"]]
        assert client.get("/api/v1/transactions/failed", headers=auth_headers_coach).status_code == 403
        assert client.get("/api/v1/transactions/pending", headers=auth_headers_admin).json() == []

        own = client.get("/api/v1/transactions/stats", headers=auth_headers_coach).json()
        assert own["total_transactions"] == 1
        assert own["status_breakdown"] == {"failed": 1}
        other = client.get(
            "/api/v1/transactions/stats", headers=auth_headers_coach_2, params={"coach_id": test_coach.id}
        ).json()
        assert other["total_transactions"] == 0


class TestPaymentRequestRoutes:
    def test_coach_bills_client_who_pays_by_token(
        self,
        client: TestClient,
        db: Session,
        linked_client: User,
        auth_headers_coach: dict,
        auth_headers_client: dict,
        auth_headers_coach_2: dict,
    ):
        created = client.post(
            "/api/v1/payment-requests",
            headers=auth_headers_coach,
            json={
                "payer_id": linked_client.id,
                "request_type": "custom",
                "amount": 15000,
                "description": "Strategy session",
            },
        )
        assert created.status_code == 201
        request_id = created.json()["id"]
        token = db.get(PaymentRequest, request_id).token

        stranger = client.get(f"/api/v1/payment-requests/token/{token}", headers=auth_headers_coach_2)
        assert stranger.status_code == 404

        owed = client.get("/api/v1/payment-requests", headers=auth_headers_client, params={"role": "payer"})
        assert owed.json()["total"] == 1

        paid = client.post(
            f"/api/v1/payment-requests/token/{token}/pay",
            headers=auth_headers_client,
            json={"payment_method": "card"},
        )
        assert paid.status_code == 200
        assert paid.json()["status"] == "paid"

        cancel = client.post(f"/api/v1/payment-requests/{request_id}/cancel", headers=auth_headers_coach)
        assert cancel.status_code == 422
        assert cancel.json()["code"] == "PAYMENT_REQUEST_NOT_PENDING"

    def test_client_cannot_create_requests(
        self, client: TestClient, test_coach: User, auth_headers_client: dict
    ):
        response = client.post(
            "/api/v1/payment-requests",
            headers=auth_headers_client,
            json={"payer_id": test_coach.id, "request_type": "custom", "amount": 100},
        )

        assert response.status_code == 403
