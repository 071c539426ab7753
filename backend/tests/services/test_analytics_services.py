from datetime import datetime

import pytest
from sqlalchemy.orm import Session

from app.core.date_utils import add_months, month_windows
from app.core.enums import BillingCycle
from app.models.user import User
from app.schemas.billing import PlanCreate, TransactionCreate
from app.schemas.lead import LeadCreate
from app.services.analytics_service import AnalyticsService
from app.services.lead_service import LeadService
from app.services.plan_service import PlanService
from app.services.subscription_service import SubscriptionService
from app.services.transaction_service import TransactionService


@pytest.mark.parametrize(
    "start,months,expected",
    [
        (datetime(2026, 1, 31), 1, datetime(2026, 2, 28)),
        (datetime(2028, 1, 31), 1, datetime(2028, 2, 29)),
        (datetime(2026, 11, 15), 3, datetime(2027, 2, 15)),
        (datetime(2026, 3, 31), -1, datetime(2026, 2, 28)),
        (datetime(2026, 5, 10), 12, datetime(2027, 5, 10)),
    ],
)
def test_add_months(start, months, expected):
    assert add_months(start, months) == expected


def test_month_windows_oldest_first():
    windows = month_windows(datetime(2026, 2, 14, 9, 30), 3)

    assert [label for label, _, _ in windows] == ["2025-12", "2026-01", "2026-02"]
    assert windows[-1][1] == datetime(2026, 2, 1)
    assert windows[-1][2] == datetime(2026, 3, 1)


class TestAnalyticsService:
    def test_coach_dashboard(self, db: Session, test_coach: User, linked_client: User):
        LeadService(db).create_lead(test_coach, LeadCreate(name="Pat Prospect", email="pat@example.com"))

        dashboard = AnalyticsService(db).coach_dashboard(test_coach.id)

        assert dashboard["clients"] == {"total": 1, "active": 1, "new_this_month": 1}
        assert dashboard["enrollments"] == {"total": 0, "completed": 0, "completion_rate": 0.0}
        assert dashboard["leads"]["total"] == 1
        assert dashboard["content"]["total_pieces"] == 0
        assert dashboard["payment_requests_paid_total"] == 0

    def test_admin_dashboard_revenue(self, db: Session, test_coach: User, test_coach_2: User):
        plan = PlanService(db).create_plan(PlanCreate(name="Growth", monthly_price=4900, annual_price=49000))
        subscriptions = SubscriptionService(db)
        subscriptions.create_subscription(test_coach.id, plan.id, BillingCycle.ANNUAL)
        subscriptions.create_subscription(test_coach_2.id, plan.id, BillingCycle.MONTHLY)
        transactions = TransactionService(db)
        paid = transactions.create_transaction(TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=4900))
        transactions.mark_completed(paid.id, payment_method="card")
        transactions.create_transaction(TransactionCreate(coach_id=test_coach_2.id, plan_id=plan.id, amount=4900))

        dashboard = AnalyticsService(db).admin_dashboard(months=3)

        assert dashboard["coaches"]["total"] == 2
        assert dashboard["coaches"]["inactive"] == 0
        assert dashboard["monthly_recurring_revenue"] == round(49000 / 12) + 4900
        assert dashboard["subscriptions_by_plan"] == [
            {"plan_id": plan.id, "plan_name": "Growth", "active_subscriptions": 2}
        ]
        assert len(dashboard["revenue_by_month"]) == 3
        assert dashboard["revenue_by_month"][-1]["revenue"] == 4900
        assert dashboard["transactions_by_status"] == {
            "completed": {"count": 1, "amount": 4900},
            "pending": {"count": 1, "amount": 4900},
        }
