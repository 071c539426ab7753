"""Billing services: plans, subscriptions, transactions and payment requests."""

from datetime import datetime, timedelta, timezone
import re
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session

from app.core.date_utils import add_months
from app.core.enums import (
    BillingCycle,
    PaymentRequestStatus,
    PaymentRequestType,
    SubscriptionStatus,
    TransactionStatus,
)
from app.core.exceptions import (
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from app.models.billing import PaymentRequest, Plan, Subscription, Transaction
from app.models.user import User
from app.schemas.billing import PaymentRequestCreate, PlanCreate, PlanUpdate, TransactionCreate
from app.services.payment_request_service import PaymentRequestService
from app.services.plan_service import PlanService, monthly_value
from app.services.subscription_service import SubscriptionService, period_end
from app.services.transaction_service import TransactionService, format_invoice_number


@pytest.fixture
def plan(db: Session) -> Plan:
    return PlanService(db).create_plan(
        PlanCreate(name="Growth", monthly_price=4900, annual_price=49000, features=["Unlimited clients"])
    )


@pytest.fixture
def trial_plan(db: Session) -> Plan:
    return PlanService(db).create_plan(
        PlanCreate(name="Starter", monthly_price=1900, annual_price=19000, trial_days=14)
    )


class TestPlanService:
    def test_create_plan_rejects_duplicate_name(self, db: Session, plan: Plan):
        with pytest.raises(ConflictException):
            PlanService(db).create_plan(PlanCreate(name="Growth", monthly_price=1, annual_price=1))

    def test_monthly_value_for_annual_cycle(self, plan: Plan):
        assert monthly_value(plan, "monthly") == 4900
        assert monthly_value(plan, "annual") == round(49000 / 12)

    def test_update_and_list_filters(self, db: Session, plan: Plan):
        service = PlanService(db)
        service.update_plan(plan.id, PlanUpdate(is_active=False))

        assert [p.id for p in service.list_plans()] == []
        assert [p.id for p in service.list_plans(include_inactive=True)] == [plan.id]

    def test_deactivate_blocked_by_live_subscription(self, db: Session, plan: Plan, test_coach: User):
        SubscriptionService(db).create_subscription(test_coach.id, plan.id)

        with pytest.raises(BusinessRuleException) as exc:
            PlanService(db).deactivate_plan(plan.id)
        assert exc.value.code == "PLAN_IN_USE"

    def test_delete_is_soft_and_blocked_by_history(self, db: Session, plan: Plan, test_coach: User):
        service = PlanService(db)
        unused = service.create_plan(PlanCreate(name="Legacy", monthly_price=100, annual_price=1000))

        deleted = service.delete_plan(unused.id)
        assert deleted.is_deleted is True
        assert deleted.deleted_at is not None
        with pytest.raises(NotFoundException):
            service.get_plan(unused.id)

        SubscriptionService(db).create_subscription(test_coach.id, plan.id)
        with pytest.raises(BusinessRuleException) as exc:
            service.delete_plan(plan.id)
        assert exc.value.code == "PLAN_HAS_HISTORY"

    def test_plan_stats(self, db: Session, plan: Plan, test_coach: User, test_coach_2: User):
        subscriptions = SubscriptionService(db)
        subscriptions.create_subscription(test_coach.id, plan.id)
        subscriptions.create_subscription(test_coach_2.id, plan.id)
        transactions = TransactionService(db)
        paid = transactions.create_transaction(
            TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=4900)
        )
        transactions.mark_completed(paid.id)
        transactions.create_transaction(TransactionCreate(coach_id=test_coach_2.id, plan_id=plan.id, amount=4900))

        stats = PlanService(db).get_plan_stats(plan.id)

        assert stats["total_subscriptions"] == 2
        assert stats["active_subscriptions"] == 2
        assert stats["total_revenue"] == 4900
        assert stats["monthly_recurring_revenue"] == 2 * 4900


class TestSubscriptionService:
    def test_period_end_uses_calendar_months(self):
        start = datetime(2026, 1, 31, tzinfo=timezone.utc)

        assert period_end(start, "monthly") == datetime(2026, 2, 28, tzinfo=timezone.utc)
        assert period_end(start, "annual") == datetime(2027, 1, 31, tzinfo=timezone.utc)

    def test_create_without_trial(self, db: Session, plan: Plan, test_coach: User):
        subscription = SubscriptionService(db).create_subscription(test_coach.id, plan.id, BillingCycle.ANNUAL)

        assert subscription.status == SubscriptionStatus.ACTIVE.value
        assert subscription.trial_end is None
        assert subscription.current_period_end == add_months(subscription.current_period_start, 12)

    def test_create_with_trial_starts_period_after_trial(self, db: Session, trial_plan: Plan, test_coach: User):
        subscription = SubscriptionService(db).create_subscription(test_coach.id, trial_plan.id)

        assert subscription.status == SubscriptionStatus.TRIALING.value
        assert subscription.trial_end - subscription.trial_start == timedelta(days=14)
        assert subscription.current_period_start == subscription.trial_end
        assert subscription.next_billing_date == subscription.trial_end

    def test_skip_trial(self, db: Session, trial_plan: Plan, test_coach: User):
        subscription = SubscriptionService(db).create_subscription(test_coach.id, trial_plan.id, start_trial=False)

        assert subscription.status == SubscriptionStatus.ACTIVE.value

    def test_one_live_subscription_per_coach(self, db: Session, plan: Plan, trial_plan: Plan, test_coach: User):
        service = SubscriptionService(db)
        service.create_subscription(test_coach.id, plan.id)

        with pytest.raises(ConflictException):
            service.create_subscription(test_coach.id, trial_plan.id)

    def test_inactive_plan_cannot_be_subscribed(self, db: Session, plan: Plan, test_coach: User):
        PlanService(db).deactivate_plan(plan.id)

        with pytest.raises(BusinessRuleException) as exc:
            SubscriptionService(db).create_subscription(test_coach.id, plan.id)
        assert exc.value.code == "PLAN_INACTIVE"

    def test_cancel_at_period_end_keeps_access(self, db: Session, plan: Plan, test_coach: User):
        service = SubscriptionService(db)
        subscription = service.create_subscription(test_coach.id, plan.id)
        period = (subscription.current_period_start, subscription.current_period_end)

        canceled = service.cancel_subscription(subscription.id, reason="Too busy")

        assert canceled.status == SubscriptionStatus.ACTIVE.value
        assert canceled.canceled_at == canceled.current_period_end
        assert canceled.next_billing_date is None
        assert canceled.cancel_reason == "Too busy"

        with pytest.raises(BusinessRuleException) as exc:
            service.reactivate_subscription(subscription.id)
        assert exc.value.code == "SUBSCRIPTION_ACTIVE"

        resumed = service.resume_subscription(subscription.id)
        assert resumed.canceled_at is None
        assert resumed.cancel_reason is None
        assert (resumed.current_period_start, resumed.current_period_end) == period
        assert resumed.next_billing_date == resumed.current_period_end

        with pytest.raises(BusinessRuleException) as exc:
            service.resume_subscription(subscription.id)
        assert exc.value.code == "NO_PENDING_CANCELLATION"

    def test_reactivate_after_immediate_cancel_starts_fresh_period(
        self, db: Session, plan: Plan, test_coach: User
    ):
        service = SubscriptionService(db)
        subscription = service.create_subscription(test_coach.id, plan.id)
        service.cancel_subscription(subscription.id, immediate=True)

        reactivated = service.reactivate_subscription(subscription.id)

        assert reactivated.status == SubscriptionStatus.ACTIVE.value
        assert reactivated.canceled_at is None
        assert reactivated.current_period_end == period_end(reactivated.current_period_start, "monthly")
        assert reactivated.next_billing_date == reactivated.current_period_end

    def test_canceled_trial_ends_with_the_trial(self, db: Session, trial_plan: Plan, test_coach: User):
        service = SubscriptionService(db)
        subscription = service.create_subscription(test_coach.id, trial_plan.id)

        canceled = service.cancel_subscription(subscription.id)

        assert canceled.status == SubscriptionStatus.TRIALING.value
        assert canceled.canceled_at == canceled.trial_end
        assert canceled.canceled_at < canceled.current_period_end
        assert service.expire_lapsed(now=canceled.trial_end + timedelta(minutes=1)) == 1

    def test_stats(self, db: Session, plan: Plan, trial_plan: Plan, test_coach: User, test_coach_2: User):
        service = SubscriptionService(db)
        service.create_subscription(test_coach.id, plan.id, BillingCycle.ANNUAL)
        trial = service.create_subscription(test_coach_2.id, trial_plan.id)
        canceled = service.cancel_subscription(trial.id, immediate=True)
        canceled.created_at = canceled.canceled_at - timedelta(days=10)
        db.commit()

        stats = service.stats()

        assert stats == {
            "total": 2,
            "active": 1,
            "trialing": 0,
            "canceled": 1,
            "expired": 0,
            "past_due": 0,
            "monthly_recurring_revenue": round(49000 / 12),
            "average_lifespan_days": 10,
        }

    def test_cancel_immediately(self, db: Session, plan: Plan, test_coach: User):
        service = SubscriptionService(db)
        subscription = service.create_subscription(test_coach.id, plan.id)

        canceled = service.cancel_subscription(subscription.id, immediate=True)

        assert canceled.status == SubscriptionStatus.CANCELED.value
        with pytest.raises(BusinessRuleException) as exc:
            service.cancel_subscription(subscription.id)
        assert exc.value.code == "ALREADY_CANCELED"

    def test_renew_converts_trial_then_advances(self, db: Session, trial_plan: Plan, test_coach: User):
        service = SubscriptionService(db)
        subscription = service.create_subscription(test_coach.id, trial_plan.id)
        first_end = subscription.current_period_end

        renewed = service.renew_subscription(subscription.id)
        assert renewed.status == SubscriptionStatus.ACTIVE.value
        assert renewed.current_period_end == first_end

        advanced = service.renew_subscription(subscription.id)
        assert advanced.current_period_start == first_end
        assert advanced.current_period_end == add_months(first_end, 1)

    def test_expire_lapsed(self, db: Session, plan: Plan, test_coach: User, test_coach_2: User):
        service = SubscriptionService(db)
        lapsed = service.create_subscription(test_coach.id, plan.id)
        other = service.create_subscription(test_coach_2.id, plan.id)

        expired = service.expire_lapsed(now=lapsed.current_period_end + timedelta(days=1))

        assert expired == 2
        db.expire_all()
        assert db.get(Subscription, lapsed.id).status == SubscriptionStatus.EXPIRED.value
        assert db.get(Subscription, other.id).next_billing_date is None

    def test_expire_lapsed_ignores_current_periods(self, db: Session, plan: Plan, test_coach: User):
        service = SubscriptionService(db)
        service.create_subscription(test_coach.id, plan.id)

        assert service.expire_lapsed() == 0


class TestTransactionService:
    def test_invoice_number_format(self, db: Session, plan: Plan, test_coach: User):
        transaction = TransactionService(db).create_transaction(
            TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=4900)
        )

        assert transaction.status == TransactionStatus.PENDING.value
        assert re.fullmatch(r"INV-\d{6}-[A-Z0-9]{6}", transaction.invoice_number)
        assert format_invoice_number(datetime(2026, 3, 9), "ABC123") == "INV-202603-ABC123"

    def test_complete_publishes_payment_event(self, db: Session, plan: Plan, test_coach: User):
        service = TransactionService(db)
        transaction = service.create_transaction(
            TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=4900)
        )

        with patch("app.events.bus.event_bus.publish") as publish:
            completed = service.mark_completed(transaction.id, payment_method="card")

        assert completed.status == TransactionStatus.COMPLETED.value
        assert completed.paid_at is not None
        assert completed.payment_method == "card"
        event = publish.call_args[0][0]
        assert event.name == "billing.payment.completed"
        assert event.invoice_number == transaction.invoice_number

    def test_fail_only_pending(self, db: Session, plan: Plan, test_coach: User):
        service = TransactionService(db)
        transaction = service.create_transaction(
            TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=4900)
        )

        failed = service.mark_failed(transaction.id, "Card declined")
        assert failed.status == TransactionStatus.FAILED.value
        assert failed.failure_reason == "Card declined"

        with pytest.raises(BusinessRuleException):
            service.mark_completed(transaction.id)

    def test_failed_and_stale_pending_views(self, db: Session, plan: Plan, test_coach: User):
        service = TransactionService(db)
        failed = service.create_transaction(TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=1900))
        service.mark_failed(failed.id, "Card declined")
        stale = service.create_transaction(TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=1000))
        service.create_transaction(TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=500))
        stale.created_at = stale.created_at - timedelta(hours=2)
        db.commit()

        assert [t.id for t in service.list_failed()] == [failed.id]
        assert [t.id for t in service.list_stale_pending(older_than_minutes=60)] == [stale.id]

    def test_stats(self, db: Session, plan: Plan, test_coach: User, test_coach_2: User):
        service = TransactionService(db)
        paid = service.create_transaction(TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=4900))
        service.mark_completed(paid.id, payment_method="card")
        declined = service.create_transaction(
            TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=1900)
        )
        service.mark_failed(declined.id, "Card declined")
        service.create_transaction(TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=1000))

        stats = service.stats()

        assert stats["total_transactions"] == 3
        assert stats["total_amount"] == 7800
        assert stats["total_refunded"] == 0
        assert stats["success_rate"] == 33.33
        assert stats["average_transaction_value"] == 2600
        assert stats["status_breakdown"] == {"completed": 1, "failed": 1, "pending": 1}
        assert stats["payment_method_breakdown"] == {"card": 1, "unknown": 2}
        assert service.stats(coach_id=test_coach_2.id)["success_rate"] == 0.0

    def test_partial_then_full_refund(self, db: Session, plan: Plan, test_coach: User):
        service = TransactionService(db)
        transaction = service.create_transaction(
            TransactionCreate(coach_id=test_coach.id, plan_id=plan.id, amount=5000)
        )

        with pytest.raises(BusinessRuleException) as exc:
            service.refund(transaction.id)
        assert exc.value.code == "TRANSACTION_NOT_REFUNDABLE"

        service.mark_completed(transaction.id)
        partial = service.refund(transaction.id, amount=2000, reason="Goodwill")
        assert partial.status == TransactionStatus.PARTIALLY_REFUNDED.value
        assert partial.refunded_amount == 2000

        with pytest.raises(BusinessRuleException) as exc:
            service.refund(transaction.id, amount=3001)
        assert exc.value.code == "REFUND_EXCEEDS_AMOUNT"

        full = service.refund(transaction.id)
        assert full.status == TransactionStatus.REFUNDED.value
        assert full.refunded_amount == 5000

    def test_subscription_must_belong_to_coach(
        self, db: Session, plan: Plan, test_coach: User, test_coach_2: User
    ):
        subscription = SubscriptionService(db).create_subscription(test_coach.id, plan.id)

        with pytest.raises(ValidationException) as exc:
            TransactionService(db).create_transaction(
                TransactionCreate(
                    coach_id=test_coach_2.id, plan_id=plan.id, subscription_id=subscription.id, amount=100
                )
            )
        assert exc.value.code == "SUBSCRIPTION_MISMATCH"


class TestPaymentRequestService:
    def test_plan_request_paid_creates_transaction_and_subscription(
        self, db: Session, plan: Plan, test_admin: User, test_coach: User
    ):
        service = PaymentRequestService(db)
        with patch("app.services.email.EmailService.send_payment_request") as send:
            request = service.create_request(
                test_admin,
                PaymentRequestCreate(
                    payer_id=test_coach.id,
                    request_type=PaymentRequestType.PLAN_PAYMENT,
                    plan_id=plan.id,
                    billing_cycle=BillingCycle.ANNUAL,
                ),
            )
        send.assert_called_once()
        assert request.amount == 49000
        assert request.status == PaymentRequestStatus.PENDING.value

        paid = service.pay(request.token, test_coach, payment_method="card")

        assert paid.status == PaymentRequestStatus.PAID.value
        transaction = db.get(Transaction, paid.transaction_id)
        assert transaction.status == TransactionStatus.COMPLETED.value
        subscription = SubscriptionService(db).get_current_for_coach(test_coach.id)
        assert subscription.plan_id == plan.id
        assert subscription.billing_cycle == BillingCycle.ANNUAL.value
        assert transaction.subscription_id == subscription.id

    def test_paying_same_plan_again_renews(self, db: Session, plan: Plan, test_admin: User, test_coach: User):
        existing = SubscriptionService(db).create_subscription(test_coach.id, plan.id)
        first_end = existing.current_period_end
        service = PaymentRequestService(db)
        request = service.create_request(
            test_admin,
            PaymentRequestCreate(payer_id=test_coach.id, request_type=PaymentRequestType.PLAN_PAYMENT, plan_id=plan.id),
        )

        service.pay(request.token, test_coach)

        db.expire_all()
        renewed = db.get(Subscription, existing.id)
        assert renewed.current_period_start == first_end

    def test_coach_cannot_bill_for_plans(self, db: Session, plan: Plan, test_coach: User, test_coach_2: User):
        with pytest.raises(ForbiddenException):
            PaymentRequestService(db).create_request(
                test_coach,
                PaymentRequestCreate(
                    payer_id=test_coach_2.id, request_type=PaymentRequestType.PLAN_PAYMENT, plan_id=plan.id
                ),
            )

    def test_custom_request_needs_linked_client(
        self, db: Session, test_coach: User, test_client_user: User
    ):
        data = PaymentRequestCreate(
            payer_id=test_client_user.id, request_type=PaymentRequestType.CUSTOM, amount=2500
        )
        with pytest.raises(ForbiddenException) as exc:
            PaymentRequestService(db).create_request(test_coach, data)
        assert exc.value.code == "NOT_LINKED"

    def test_only_payer_can_pay(
        self, db: Session, test_coach: User, linked_client: User, test_client_user_2: User
    ):
        service = PaymentRequestService(db)
        request = service.create_request(
            test_coach,
            PaymentRequestCreate(payer_id=linked_client.id, request_type=PaymentRequestType.CUSTOM, amount=2500),
        )

        with pytest.raises(ForbiddenException) as exc:
            service.pay(request.token, test_client_user_2)
        assert exc.value.code == "NOT_PAYER"

        paid = service.pay(request.token, linked_client)
        assert paid.status == PaymentRequestStatus.PAID.value
        assert paid.transaction_id is None

        with pytest.raises(BusinessRuleException):
            service.pay(request.token, linked_client)

    def test_expired_request_cannot_be_paid(self, db: Session, test_coach: User, linked_client: User):
        service = PaymentRequestService(db)
        request = service.create_request(
            test_coach,
            PaymentRequestCreate(payer_id=linked_client.id, request_type=PaymentRequestType.CUSTOM, amount=2500),
        )
        request.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.commit()

        with pytest.raises(BusinessRuleException) as exc:
            service.pay(request.token, linked_client)
        assert exc.value.code == "PAYMENT_REQUEST_EXPIRED"
        db.expire_all()
        assert db.get(PaymentRequest, request.id).status == PaymentRequestStatus.EXPIRED.value

    def test_expire_overdue_and_cancel(self, db: Session, test_coach: User, linked_client: User):
        service = PaymentRequestService(db)
        overdue = service.create_request(
            test_coach,
            PaymentRequestCreate(payer_id=linked_client.id, request_type=PaymentRequestType.CUSTOM, amount=100),
        )
        pending = service.create_request(
            test_coach,
            PaymentRequestCreate(payer_id=linked_client.id, request_type=PaymentRequestType.CUSTOM, amount=200),
        )

        assert service.expire_overdue(now=overdue.expires_at + timedelta(days=1)) == 2
        db.expire_all()
        assert db.get(PaymentRequest, pending.id).status == PaymentRequestStatus.EXPIRED.value
        with pytest.raises(BusinessRuleException):
            service.cancel(pending.id, test_coach)

    def test_cancel_only_by_requester(self, db: Session, test_coach: User, linked_client: User):
        service = PaymentRequestService(db)
        request = service.create_request(
            test_coach,
            PaymentRequestCreate(payer_id=linked_client.id, request_type=PaymentRequestType.CUSTOM, amount=100),
        )

        with pytest.raises(ForbiddenException):
            service.cancel(request.id, linked_client)
        assert service.cancel(request.id, test_coach).status == PaymentRequestStatus.CANCELED.value

        created, total = service.list_requests(test_coach, role="creator")
        assert total == 1 and created[0].id == request.id
        owed, owed_total = service.list_requests(linked_client, role="payer")
        assert owed_total == 1 and owed[0].id == request.id
