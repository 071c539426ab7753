# backend/app/repositories/billing_repository.py
"""
Billing repositories: plans, subscriptions, transactions, payment requests.

Aggregations used by plan stats and the admin dashboard live here so the
services never build SQL themselves.
"""

from datetime import datetime
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ..core.enums import PaymentRequestStatus, SubscriptionStatus, TransactionStatus
from ..models.billing import PaymentRequest, Plan, Subscription, Transaction
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

LIVE_SUBSCRIPTION_STATUSES = (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIALING.value)


class PlanRepository(BaseRepository[Plan]):
    def __init__(self, db: Session):
        super().__init__(db, Plan)

    def get_by_name(self, name: str) -> Optional[Plan]:
        return self.db.query(Plan).filter(func.lower(Plan.name) == name.strip().lower()).first()

    def list_plans(self, *, include_inactive: bool = False, include_deleted: bool = False) -> List[Plan]:
        query = self.db.query(Plan)
        if not include_deleted:
            query = query.filter(Plan.is_deleted.is_(False))
        if not include_inactive:
            query = query.filter(Plan.is_active.is_(True))
        return self._execute_query(query.order_by(Plan.monthly_price.asc(), Plan.name.asc()))

    def count_live_subscriptions(self, plan_id: str) -> int:
        query = self.db.query(func.count(Subscription.id)).filter(
            Subscription.plan_id == plan_id,
            Subscription.status.in_(LIVE_SUBSCRIPTION_STATUSES),
        )
        return int(self._execute_scalar(query) or 0)

    def has_billing_history(self, plan_id: str) -> bool:
        """True when any subscription or transaction references the plan."""
        if self.db.query(Subscription.id).filter(Subscription.plan_id == plan_id).first():
            return True
        return self.db.query(Transaction.id).filter(Transaction.plan_id == plan_id).first() is not None

    def plan_stats(self, plan_id: str) -> Dict[str, int]:
        total = self._execute_scalar(
            self.db.query(func.count(Subscription.id)).filter(Subscription.plan_id == plan_id)
        )
        revenue = self._execute_scalar(
            self.db.query(func.coalesce(func.sum(Transaction.amount - Transaction.refunded_amount), 0)).filter(
                Transaction.plan_id == plan_id,
                Transaction.status.in_(
                    [
                        TransactionStatus.COMPLETED.value,
                        TransactionStatus.PARTIALLY_REFUNDED.value,
                    ]
                ),
            )
        )
        return {
            "total_subscriptions": int(total or 0),
            "active_subscriptions": self.count_live_subscriptions(plan_id),
            "total_revenue": int(revenue or 0),
        }


class SubscriptionRepository(BaseRepository[Subscription]):
    def __init__(self, db: Session):
        super().__init__(db, Subscription)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(joinedload(Subscription.plan))

    def get_live_for_coach(self, coach_id: str) -> Optional[Subscription]:
        """The coach's active or trialing subscription, if any."""
        return (
            self._apply_eager_loading(self.db.query(Subscription))
            .filter(
                Subscription.coach_id == coach_id,
                Subscription.status.in_(LIVE_SUBSCRIPTION_STATUSES),
            )
            .order_by(Subscription.created_at.desc())
            .first()
        )

    def get_latest_for_coach(self, coach_id: str) -> Optional[Subscription]:
        return (
            self._apply_eager_loading(self.db.query(Subscription))
            .filter(Subscription.coach_id == coach_id)
            .order_by(Subscription.created_at.desc())
            .first()
        )

    def list_subscriptions(
        self,
        *,
        coach_id: Optional[str] = None,
        plan_id: Optional[str] = None,
        status: Optional[SubscriptionStatus] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Subscription], int]:
        query = self._apply_eager_loading(self.db.query(Subscription))
        if coach_id:
            query = query.filter(Subscription.coach_id == coach_id)
        if plan_id:
            query = query.filter(Subscription.plan_id == plan_id)
        if status is not None:
            query = query.filter(Subscription.status == status.value)
        return self._paginate(query.order_by(Subscription.created_at.desc()), page, per_page)

    def list_lapsed(self, now: datetime) -> List[Subscription]:
        """Live subscriptions whose cancellation date or period end has passed."""
        query = self.db.query(Subscription).filter(
            Subscription.status.in_(LIVE_SUBSCRIPTION_STATUSES + (SubscriptionStatus.CANCELED.value,)),
            or_(
                Subscription.canceled_at <= now,
                Subscription.current_period_end <= now,
            ),
        )
        return self._execute_query(query)

    def list_expiring(self, now: datetime, until: datetime) -> List[Subscription]:
        query = (
            self._apply_eager_loading(self.db.query(Subscription))
            .filter(
                Subscription.status.in_(LIVE_SUBSCRIPTION_STATUSES),
                Subscription.current_period_end > now,
                Subscription.current_period_end <= until,
            )
            .order_by(Subscription.current_period_end.asc())
        )
        return self._execute_query(query)

    def list_live_with_plans(self) -> List[Subscription]:
        query = self._apply_eager_loading(self.db.query(Subscription)).filter(
            Subscription.status.in_(LIVE_SUBSCRIPTION_STATUSES)
        )
        return self._execute_query(query)

    def count_by_status(self) -> Dict[str, int]:
        query = self.db.query(Subscription.status, func.count(Subscription.id)).group_by(Subscription.status)
        return {status: int(count) for status, count in self._execute_query(query)}

    def list_canceled(self) -> List[Subscription]:
        query = self.db.query(Subscription).filter(Subscription.status == SubscriptionStatus.CANCELED.value)
        return self._execute_query(query)

    def count_live_by_plan(self) -> List[Tuple[str, str, int]]:
        """(plan_id, plan_name, count) for live subscriptions."""
        query = (
            self.db.query(Plan.id, Plan.name, func.count(Subscription.id))
            .join(Subscription, Subscription.plan_id == Plan.id)
            .filter(Subscription.status.in_(LIVE_SUBSCRIPTION_STATUSES))
            .group_by(Plan.id, Plan.name)
            .order_by(Plan.name.asc())
        )
        return [(row[0], row[1], int(row[2])) for row in self._execute_query(query)]


class TransactionRepository(BaseRepository[Transaction]):
    def __init__(self, db: Session):
        super().__init__(db, Transaction)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(joinedload(Transaction.plan))

    def get_by_invoice_number(self, invoice_number: str) -> Optional[Transaction]:
        return (
            self._apply_eager_loading(self.db.query(Transaction))
            .filter(Transaction.invoice_number == invoice_number)
            .first()
        )

    def invoice_number_exists(self, invoice_number: str) -> bool:
        return self.db.query(Transaction.id).filter(Transaction.invoice_number == invoice_number).first() is not None

    def list_transactions(
        self,
        *,
        coach_id: Optional[str] = None,
        plan_id: Optional[str] = None,
        status: Optional[TransactionStatus] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Transaction], int]:
        query = self._apply_eager_loading(self.db.query(Transaction))
        if coach_id:
            query = query.filter(Transaction.coach_id == coach_id)
        if plan_id:
            query = query.filter(Transaction.plan_id == plan_id)
        if status is not None:
            query = query.filter(Transaction.status == status.value)
        if date_from is not None:
            query = query.filter(Transaction.invoice_date >= date_from)
        if date_to is not None:
            query = query.filter(Transaction.invoice_date <= date_to)
        return self._paginate(query.order_by(Transaction.invoice_date.desc()), page, per_page)

    def list_paid_between(self, start: datetime, end: datetime) -> List[Transaction]:
        """Completed or refunded transactions paid within [start, end)."""
        query = self.db.query(Transaction).filter(
            Transaction.paid_at.isnot(None),
            Transaction.paid_at >= start,
            Transaction.paid_at < end,
            Transaction.status.in_(
                [
                    TransactionStatus.COMPLETED.value,
                    TransactionStatus.PARTIALLY_REFUNDED.value,
                    TransactionStatus.REFUNDED.value,
                ]
            ),
        )
        return self._execute_query(query)

    def list_failed(self, limit: int) -> List[Transaction]:
        query = (
            self._apply_eager_loading(self.db.query(Transaction))
            .filter(Transaction.status == TransactionStatus.FAILED.value)
            .order_by(Transaction.created_at.desc())
            .limit(limit)
        )
        return self._execute_query(query)

    def list_pending_before(self, cutoff: datetime) -> List[Transaction]:
        """Pending transactions created at or before ``cutoff``, oldest first."""
        query = (
            self._apply_eager_loading(self.db.query(Transaction))
            .filter(Transaction.status == TransactionStatus.PENDING.value, Transaction.created_at <= cutoff)
            .order_by(Transaction.created_at.asc())
        )
        return self._execute_query(query)

    def summarize(
        self,
        *,
        coach_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Tuple[Dict[str, int], Dict[str, int], Dict[str, int]]:
        """(totals, count per status, count per payment method) over the filtered transactions."""
        filters = []
        if coach_id:
            filters.append(Transaction.coach_id == coach_id)
        if date_from is not None:
            filters.append(Transaction.invoice_date >= date_from)
        if date_to is not None:
            filters.append(Transaction.invoice_date <= date_to)

        count, amount, refunded = self._execute_query(
            self.db.query(
                func.count(Transaction.id),
                func.coalesce(func.sum(Transaction.amount), 0),
                func.coalesce(func.sum(Transaction.refunded_amount), 0),
            ).filter(*filters)
        )[0]
        by_status = self.db.query(Transaction.status, func.count(Transaction.id)).filter(*filters)
        by_method = self.db.query(Transaction.payment_method, func.count(Transaction.id)).filter(*filters)
        return (
            {"count": int(count), "amount": int(amount), "refunded": int(refunded)},
            {status: int(n) for status, n in self._execute_query(by_status.group_by(Transaction.status))},
            {
                (method or "unknown"): int(n)
                for method, n in self._execute_query(by_method.group_by(Transaction.payment_method))
            },
        )

    def totals_by_status(self) -> Dict[str, Dict[str, int]]:
        query = self.db.query(
            Transaction.status, func.count(Transaction.id), func.coalesce(func.sum(Transaction.amount), 0)
        ).group_by(Transaction.status)
        return {
            status: {"count": int(count), "amount": int(amount)}
            for status, count, amount in self._execute_query(query)
        }


class PaymentRequestRepository(BaseRepository[PaymentRequest]):
    def __init__(self, db: Session):
        super().__init__(db, PaymentRequest)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(
            joinedload(PaymentRequest.created_by),
            joinedload(PaymentRequest.payer),
            joinedload(PaymentRequest.plan),
            joinedload(PaymentRequest.course),
        )

    def get_by_token(self, token: str) -> Optional[PaymentRequest]:
        return self._apply_eager_loading(self.db.query(PaymentRequest)).filter(PaymentRequest.token == token).first()

    def list_for_user(
        self,
        *,
        created_by_id: Optional[str] = None,
        payer_id: Optional[str] = None,
        status: Optional[PaymentRequestStatus] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[PaymentRequest], int]:
        query = self._apply_eager_loading(self.db.query(PaymentRequest))
        if created_by_id:
            query = query.filter(PaymentRequest.created_by_id == created_by_id)
        if payer_id:
            query = query.filter(PaymentRequest.payer_id == payer_id)
        if status is not None:
            query = query.filter(PaymentRequest.status == status.value)
        return self._paginate(query.order_by(PaymentRequest.created_at.desc()), page, per_page)

    def list_overdue(self, now: datetime) -> List[PaymentRequest]:
        query = self.db.query(PaymentRequest).filter(
            PaymentRequest.status == PaymentRequestStatus.PENDING.value,
            PaymentRequest.expires_at < now,
        )
        return self._execute_query(query)

    def has_paid_course_request(self, course_id: str, payer_id: str) -> bool:
        return (
            self.db.query(PaymentRequest.id)
            .filter(
                PaymentRequest.course_id == course_id,
                PaymentRequest.payer_id == payer_id,
                PaymentRequest.status == PaymentRequestStatus.PAID.value,
            )
            .first()
            is not None
        )

    def paid_total_for_creator(self, created_by_id: str, statuses: Sequence[str] = ()) -> int:
        wanted = list(statuses) or [PaymentRequestStatus.PAID.value]
        query = self.db.query(func.coalesce(func.sum(PaymentRequest.amount), 0)).filter(
            PaymentRequest.created_by_id == created_by_id,
            PaymentRequest.status.in_(wanted),
        )
        return int(self._execute_scalar(query) or 0)
