# backend/app/services/analytics_service.py
"""
Dashboard analytics for coaches and admins.

Read-only aggregations over the billing, client, course, lead and content
repositories. Community analytics live in CommunityService.
"""

from datetime import datetime
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.date_utils import month_windows, start_of_month
from ..core.enums import (
    ClientCoachStatus,
    EnrollmentStatus,
    LeadType,
    PaymentRequestStatus,
    SubscriptionStatus,
    UserType,
)
from ..models.types import utcnow
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .lead_service import LeadService
from .plan_service import monthly_value

logger = logging.getLogger(__name__)

DEFAULT_REVENUE_MONTHS = 6


class AnalyticsService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.client_coach_repository = RepositoryFactory.create_client_coach_repository(db)
        self.enrollment_repository = RepositoryFactory.create_enrollment_repository(db)
        self.content_repository = RepositoryFactory.create_content_piece_repository(db)
        self.subscription_repository = RepositoryFactory.create_subscription_repository(db)
        self.transaction_repository = RepositoryFactory.create_transaction_repository(db)
        self.payment_request_repository = RepositoryFactory.create_payment_request_repository(db)

    @BaseService.measure_operation("coach_dashboard")
    def coach_dashboard(self, coach_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        month_start = start_of_month(now or utcnow())

        enrollments = self.enrollment_repository.coach_enrollment_counts(coach_id)
        enrollment_total = sum(enrollments.values())
        completed = enrollments.get(EnrollmentStatus.COMPLETED.value, 0)

        return {
            "clients": {
                "total": self.client_coach_repository.count_for_coach(coach_id),
                "active": self.client_coach_repository.count_for_coach(coach_id, status=ClientCoachStatus.ACTIVE),
                "new_this_month": self.client_coach_repository.count_for_coach(coach_id, since=month_start),
            },
            "enrollments": {
                "total": enrollment_total,
                "completed": completed,
                "completion_rate": round(completed / enrollment_total * 100, 2) if enrollment_total else 0.0,
            },
            "leads": LeadService(self.db).stats_for(coach_id, LeadType.COACH_LEAD),
            "content": self.content_repository.totals_for_coach(coach_id),
            "payment_requests_paid_total": self.payment_request_repository.paid_total_for_creator(coach_id),
            "payment_requests_pending_total": self.payment_request_repository.paid_total_for_creator(
                coach_id, statuses=[PaymentRequestStatus.PENDING.value]
            ),
        }

    def monthly_recurring_revenue(self) -> int:
        """Sum of the monthly value of every paying subscription, in cents. Trials count for nothing."""
        return sum(
            monthly_value(subscription.plan, subscription.billing_cycle)
            for subscription in self.subscription_repository.list_live_with_plans()
            if subscription.plan is not None and subscription.status == SubscriptionStatus.ACTIVE.value
        )

    def revenue_by_month(self, months: int = DEFAULT_REVENUE_MONTHS, now: Optional[datetime] = None) -> list:
        """Net collected revenue per calendar month, refunds subtracted."""
        result = []
        for label, start, end in month_windows(now or utcnow(), months):
            revenue = sum(
                transaction.amount - (transaction.refunded_amount or 0)
                for transaction in self.transaction_repository.list_paid_between(start, end)
            )
            result.append({"month": label, "revenue": revenue})
        return result

    @BaseService.measure_operation("admin_dashboard")
    def admin_dashboard(self, months: int = DEFAULT_REVENUE_MONTHS, now: Optional[datetime] = None) -> Dict[str, Any]:
        current = now or utcnow()
        total = self.user_repository.count_by_type(UserType.COACH)
        active = self.user_repository.count_by_type(UserType.COACH, active_only=True)
        return {
            "coaches": {
                "total": total,
                "active": active,
                "inactive": total - active,
                "new_this_month": self.user_repository.count_by_type(
                    UserType.COACH, created_since=start_of_month(current)
                ),
            },
            "subscriptions_by_plan": [
                {"plan_id": plan_id, "plan_name": plan_name, "active_subscriptions": count}
                for plan_id, plan_name, count in self.subscription_repository.count_live_by_plan()
            ],
            "monthly_recurring_revenue": self.monthly_recurring_revenue(),
            "revenue_by_month": self.revenue_by_month(months, current),
            "transactions_by_status": self.transaction_repository.totals_by_status(),
        }
