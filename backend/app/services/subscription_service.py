# backend/app/services/subscription_service.py
"""
Coach subscription lifecycle.

A coach holds at most one live (active or trialing) subscription. Periods
are one calendar month or one year. A non-immediate cancellation keeps the
subscription usable until the period ends; the hourly expiry task then
moves it to ``expired``.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.date_utils import add_months
from ..core.enums import BillingCycle, SubscriptionStatus
from ..core.exceptions import BusinessRuleException, ConflictException, NotFoundException
from ..events.billing_events import SubscriptionCanceled, SubscriptionCreated
from ..models.billing import Plan, Subscription
from ..models.types import utcnow
from ..repositories.billing_repository import LIVE_SUBSCRIPTION_STATUSES
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .plan_service import monthly_value

logger = logging.getLogger(__name__)


def period_end(start: datetime, billing_cycle: str) -> datetime:
    return add_months(start, 12 if billing_cycle == BillingCycle.ANNUAL.value else 1)


class SubscriptionService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.subscription_repository = RepositoryFactory.create_subscription_repository(db)
        self.plan_repository = RepositoryFactory.create_plan_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    def get_subscription(self, subscription_id: str) -> Subscription:
        subscription = self.subscription_repository.get_by_id(subscription_id)
        if subscription is None:
            raise NotFoundException("Subscription not found", code="SUBSCRIPTION_NOT_FOUND")
        return subscription

    def _get_subscribable_plan(self, plan_id: str) -> Plan:
        plan = self.plan_repository.get_by_id(plan_id, load_relationships=False)
        if plan is None or plan.is_deleted:
            raise NotFoundException("Plan not found", code="PLAN_NOT_FOUND")
        if not plan.is_active:
            raise BusinessRuleException("Plan is not available for new subscriptions", code="PLAN_INACTIVE")
        return plan

    @BaseService.measure_operation("create_subscription")
    def create_subscription(
        self,
        coach_id: str,
        plan_id: str,
        billing_cycle: BillingCycle = BillingCycle.MONTHLY,
        *,
        start_trial: bool = True,
    ) -> Subscription:
        """
        Start a subscription. Plans with trial days start in ``trialing`` and
        the first paid period begins when the trial ends.

        Raises:
            NotFoundException: Unknown coach or plan
            BusinessRuleException: Inactive plan
            ConflictException: Coach already has a live subscription
        """
        with self.transaction():
            subscription = self._create(coach_id, plan_id, billing_cycle, start_trial=start_trial)
        return subscription

    def _create(
        self, coach_id: str, plan_id: str, billing_cycle: BillingCycle, *, start_trial: bool
    ) -> Subscription:
        """Create inside the caller's transaction."""
        if self.user_repository.get_coach(coach_id) is None:
            raise NotFoundException("Coach not found", code="COACH_NOT_FOUND")
        plan = self._get_subscribable_plan(plan_id)
        if self.subscription_repository.get_live_for_coach(coach_id) is not None:
            raise ConflictException("Coach already has an active subscription", code="SUBSCRIPTION_EXISTS")

        now = utcnow()
        cycle = BillingCycle(billing_cycle).value
        trial_start = trial_end = None
        status = SubscriptionStatus.ACTIVE
        start = now
        if start_trial and plan.trial_days > 0:
            status = SubscriptionStatus.TRIALING
            trial_start = now
            trial_end = now + timedelta(days=plan.trial_days)
            start = trial_end
        end = period_end(start, cycle)
        subscription = self.subscription_repository.create(
            coach_id=coach_id,
            plan_id=plan.id,
            status=status.value,
            billing_cycle=cycle,
            current_period_start=start,
            current_period_end=end,
            trial_start=trial_start,
            trial_end=trial_end,
            next_billing_date=start if status == SubscriptionStatus.TRIALING else end,
        )
        self.publish_after_commit(
            SubscriptionCreated(
                subscription_id=subscription.id, coach_id=coach_id, plan_id=plan.id, status=status.value
            )
        )
        return subscription

    @BaseService.measure_operation("list_subscriptions")
    def list_subscriptions(
        self,
        *,
        coach_id: Optional[str] = None,
        plan_id: Optional[str] = None,
        status: Optional[SubscriptionStatus] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Subscription], int]:
        return self.subscription_repository.list_subscriptions(
            coach_id=coach_id, plan_id=plan_id, status=status, page=page, per_page=per_page
        )

    def get_current_for_coach(self, coach_id: str) -> Optional[Subscription]:
        return self.subscription_repository.get_live_for_coach(coach_id) or (
            self.subscription_repository.get_latest_for_coach(coach_id)
        )

    @BaseService.measure_operation("cancel_subscription")
    def cancel_subscription(
        self, subscription_id: str, *, immediate: bool = False, reason: Optional[str] = None
    ) -> Subscription:
        subscription = self.get_subscription(subscription_id)
        if subscription.status in (SubscriptionStatus.CANCELED.value, SubscriptionStatus.EXPIRED.value):
            raise BusinessRuleException("Subscription is already canceled", code="ALREADY_CANCELED")

        with self.transaction():
            now = utcnow()
            if immediate:
                subscription.status = SubscriptionStatus.CANCELED.value
                subscription.canceled_at = now
                subscription.next_billing_date = None
            elif subscription.status == SubscriptionStatus.TRIALING.value and subscription.trial_end is not None:
                # no paid period starts after a canceled trial
                subscription.canceled_at = subscription.trial_end
                subscription.next_billing_date = None
            else:
                # stays usable until the period ends
                subscription.canceled_at = subscription.current_period_end
                subscription.next_billing_date = None
            subscription.cancel_reason = reason
            self.publish_after_commit(
                SubscriptionCanceled(
                    subscription_id=subscription.id,
                    coach_id=subscription.coach_id,
                    immediate=immediate,
                    reason=reason,
                )
            )
        return subscription

    @BaseService.measure_operation("reactivate_subscription")
    def reactivate_subscription(self, subscription_id: str) -> Subscription:
        """
        Restart a canceled subscription with a fresh period starting now.

        Live subscriptions are refused even with a cancellation pending;
        ``resume_subscription`` withdraws that without touching the period.

        Raises:
            BusinessRuleException: If the subscription is live or already expired
        """
        subscription = self.get_subscription(subscription_id)
        if subscription.status == SubscriptionStatus.EXPIRED.value:
            raise BusinessRuleException("Expired subscriptions cannot be reactivated", code="SUBSCRIPTION_EXPIRED")
        if subscription.status in LIVE_SUBSCRIPTION_STATUSES:
            raise BusinessRuleException("Subscription is already active", code="SUBSCRIPTION_ACTIVE")
        other = self.subscription_repository.get_live_for_coach(subscription.coach_id)
        if other is not None and other.id != subscription.id:
            raise ConflictException("Coach already has an active subscription", code="SUBSCRIPTION_EXISTS")

        with self.transaction():
            now = utcnow()
            subscription.status = SubscriptionStatus.ACTIVE.value
            subscription.current_period_start = now
            subscription.current_period_end = period_end(now, subscription.billing_cycle)
            subscription.next_billing_date = subscription.current_period_end
            subscription.canceled_at = None
            subscription.cancel_reason = None
        return subscription

    @BaseService.measure_operation("resume_subscription")
    def resume_subscription(self, subscription_id: str) -> Subscription:
        """Withdraw a pending cancellation. The current period and trial are kept."""
        subscription = self.get_subscription(subscription_id)
        if subscription.status not in LIVE_SUBSCRIPTION_STATUSES or subscription.canceled_at is None:
            raise BusinessRuleException("No pending cancellation to withdraw", code="NO_PENDING_CANCELLATION")
        with self.transaction():
            subscription.canceled_at = None
            subscription.cancel_reason = None
            subscription.next_billing_date = (
                subscription.current_period_start
                if subscription.status == SubscriptionStatus.TRIALING.value
                else subscription.current_period_end
            )
        return subscription

    @BaseService.measure_operation("renew_subscription")
    def renew_subscription(self, subscription_id: str) -> Subscription:
        with self.transaction():
            subscription = self._renew(self.get_subscription(subscription_id))
        return subscription

    def _renew(self, subscription: Subscription) -> Subscription:
        """Advance to the next period; trials convert to active. Caller commits."""
        if subscription.status not in (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIALING.value):
            raise BusinessRuleException("Only active subscriptions can be renewed", code="SUBSCRIPTION_NOT_ACTIVE")
        if subscription.status == SubscriptionStatus.TRIALING.value:
            subscription.status = SubscriptionStatus.ACTIVE.value
        else:
            subscription.current_period_start = subscription.current_period_end
            subscription.current_period_end = period_end(subscription.current_period_start, subscription.billing_cycle)
        subscription.next_billing_date = subscription.current_period_end
        subscription.canceled_at = None
        subscription.cancel_reason = None
        return subscription

    def create_or_renew_for_payment(self, coach_id: str, plan_id: str, billing_cycle: BillingCycle) -> Subscription:
        """Plan payment side effect. Caller commits."""
        live = self.subscription_repository.get_live_for_coach(coach_id)
        if live is not None and live.plan_id == plan_id:
            return self._renew(live)
        if live is not None:
            live.status = SubscriptionStatus.CANCELED.value
            live.canceled_at = utcnow()
            live.cancel_reason = "Replaced by new plan"
            self.db.flush()
        return self._create(coach_id, plan_id, billing_cycle, start_trial=False)

    @BaseService.measure_operation("expire_lapsed_subscriptions")
    def expire_lapsed(self, now: Optional[datetime] = None) -> int:
        """Move subscriptions whose cancellation date or period end passed to ``expired``."""
        current = now or utcnow()
        with self.transaction():
            lapsed = self.subscription_repository.list_lapsed(current)
            for subscription in lapsed:
                subscription.status = SubscriptionStatus.EXPIRED.value
                subscription.next_billing_date = None
        if lapsed:
            self.log_operation("subscriptions_expired", count=len(lapsed))
        return len(lapsed)

    @BaseService.measure_operation("subscription_stats")
    def stats(self) -> Dict[str, Any]:
        """
        Counts per status, MRR over paying subscriptions, and the average
        lifespan in days of canceled subscriptions.
        """
        counts = self.subscription_repository.count_by_status()
        monthly_recurring_revenue = sum(
            monthly_value(subscription.plan, subscription.billing_cycle)
            for subscription in self.subscription_repository.list_live_with_plans()
            if subscription.plan is not None and subscription.status == SubscriptionStatus.ACTIVE.value
        )
        lifespans = [
            (subscription.canceled_at - subscription.created_at).total_seconds() / 86400
            for subscription in self.subscription_repository.list_canceled()
            if subscription.canceled_at is not None
        ]
        return {
            "total": sum(counts.values()),
            **{status.value: counts.get(status.value, 0) for status in SubscriptionStatus},
            "monthly_recurring_revenue": monthly_recurring_revenue,
            "average_lifespan_days": round(sum(lifespans) / len(lifespans)) if lifespans else 0,
        }

    def list_expiring_soon(self, days: Optional[int] = None) -> List[Subscription]:
        now = utcnow()
        return self.subscription_repository.list_expiring(
            now, now + timedelta(days=days or settings.subscription_expiring_days)
        )
