# backend/app/services/transaction_service.py
"""
Transactions (invoices) for coach subscriptions.

Invoice numbers look like ``INV-202601-7K2Q9B``: prefix, invoice month and
six random uppercase alphanumerics, regenerated until unused.
"""

from datetime import datetime, timedelta
import logging
import secrets
import string
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.constants import INVOICE_PREFIX
from ..core.enums import TransactionStatus
from ..core.exceptions import BusinessRuleException, NotFoundException, ServiceException, ValidationException
from ..events.billing_events import PaymentCompleted
from ..models.billing import Transaction
from ..models.types import utcnow
from ..repositories.factory import RepositoryFactory
from ..schemas.billing import TransactionCreate
from .base import BaseService

logger = logging.getLogger(__name__)

_INVOICE_ALPHABET = string.ascii_uppercase + string.digits
_INVOICE_ATTEMPTS = 10

REFUNDABLE_STATUSES = (TransactionStatus.COMPLETED.value, TransactionStatus.PARTIALLY_REFUNDED.value)


def format_invoice_number(when: datetime, suffix: str) -> str:
    return f"{INVOICE_PREFIX}-{when.strftime('%Y%m')}-{suffix}"


class TransactionService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.transaction_repository = RepositoryFactory.create_transaction_repository(db)
        self.plan_repository = RepositoryFactory.create_plan_repository(db)
        self.subscription_repository = RepositoryFactory.create_subscription_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    def generate_invoice_number(self, when: Optional[datetime] = None) -> str:
        moment = when or utcnow()
        for _ in range(_INVOICE_ATTEMPTS):
            suffix = "".join(secrets.choice(_INVOICE_ALPHABET) for _ in range(6))
            candidate = format_invoice_number(moment, suffix)
            if not self.transaction_repository.invoice_number_exists(candidate):
                return candidate
        raise ServiceException("Could not allocate a unique invoice number")

    @BaseService.measure_operation("create_transaction")
    def create_transaction(self, data: TransactionCreate) -> Transaction:
        with self.transaction():
            transaction = self._create(
                coach_id=data.coach_id,
                plan_id=data.plan_id,
                subscription_id=data.subscription_id,
                amount=data.amount,
                currency=data.currency,
                payment_method=data.payment_method,
                description=data.description,
                metadata=data.metadata,
            )
        return transaction

    def _create(
        self,
        *,
        coach_id: str,
        plan_id: Optional[str],
        amount: int,
        currency: str,
        subscription_id: Optional[str] = None,
        payment_method: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        """Validate references and insert a pending transaction. Caller commits."""
        if self.user_repository.get_coach(coach_id) is None:
            raise NotFoundException("Coach not found", code="COACH_NOT_FOUND")
        if plan_id is not None and self.plan_repository.get_by_id(plan_id, load_relationships=False) is None:
            raise NotFoundException("Plan not found", code="PLAN_NOT_FOUND")
        if subscription_id is not None:
            subscription = self.subscription_repository.get_by_id(subscription_id, load_relationships=False)
            if subscription is None:
                raise NotFoundException("Subscription not found", code="SUBSCRIPTION_NOT_FOUND")
            if subscription.coach_id != coach_id:
                raise ValidationException(
                    "Subscription does not belong to this coach", code="SUBSCRIPTION_MISMATCH"
                )
        now = utcnow()
        return self.transaction_repository.create(
            coach_id=coach_id,
            plan_id=plan_id,
            subscription_id=subscription_id,
            amount=amount,
            currency=currency,
            status=TransactionStatus.PENDING.value,
            payment_method=payment_method,
            invoice_number=self.generate_invoice_number(now),
            invoice_date=now,
            description=description,
            extra_data=metadata,
        )

    def get_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.transaction_repository.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundException("Transaction not found", code="TRANSACTION_NOT_FOUND")
        return transaction

    def get_by_invoice_number(self, invoice_number: str) -> Transaction:
        transaction = self.transaction_repository.get_by_invoice_number(invoice_number)
        if transaction is None:
            raise NotFoundException("Invoice not found", code="TRANSACTION_NOT_FOUND")
        return transaction

    @BaseService.measure_operation("list_transactions")
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
        return self.transaction_repository.list_transactions(
            coach_id=coach_id,
            plan_id=plan_id,
            status=status,
            date_from=date_from,
            date_to=date_to,
            page=page,
            per_page=per_page,
        )

    def list_failed(self, limit: int = 100) -> List[Transaction]:
        return self.transaction_repository.list_failed(limit)

    def list_stale_pending(self, older_than_minutes: int = 60) -> List[Transaction]:
        """Pending transactions nobody settled within ``older_than_minutes``."""
        return self.transaction_repository.list_pending_before(utcnow() - timedelta(minutes=older_than_minutes))

    @BaseService.measure_operation("transaction_stats")
    def stats(
        self,
        *,
        coach_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        totals, by_status, by_method = self.transaction_repository.summarize(
            coach_id=coach_id, date_from=date_from, date_to=date_to
        )
        count = totals["count"]
        completed = by_status.get(TransactionStatus.COMPLETED.value, 0)
        return {
            "total_transactions": count,
            "total_amount": totals["amount"],
            "total_refunded": totals["refunded"],
            "success_rate": round(completed / count * 100, 2) if count else 0.0,
            "average_transaction_value": round(totals["amount"] / count) if count else 0,
            "status_breakdown": by_status,
            "payment_method_breakdown": by_method,
        }

    @BaseService.measure_operation("complete_transaction")
    def mark_completed(self, transaction_id: str, payment_method: Optional[str] = None) -> Transaction:
        with self.transaction():
            transaction = self._complete(self.get_transaction(transaction_id), payment_method)
        return transaction

    def _complete(self, transaction: Transaction, payment_method: Optional[str] = None) -> Transaction:
        if transaction.status != TransactionStatus.PENDING.value:
            raise BusinessRuleException(
                f"Cannot complete a {transaction.status} transaction", code="TRANSACTION_NOT_PENDING"
            )
        transaction.status = TransactionStatus.COMPLETED.value
        transaction.paid_at = utcnow()
        if payment_method:
            transaction.payment_method = payment_method
        self.db.flush()
        self.publish_after_commit(
            PaymentCompleted(
                transaction_id=transaction.id,
                coach_id=transaction.coach_id,
                amount=transaction.amount,
                currency=transaction.currency,
                invoice_number=transaction.invoice_number,
                paid_at=transaction.paid_at,
                plan_id=transaction.plan_id,
            )
        )
        return transaction

    @BaseService.measure_operation("fail_transaction")
    def mark_failed(self, transaction_id: str, reason: str) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        if transaction.status != TransactionStatus.PENDING.value:
            raise BusinessRuleException(
                f"Cannot fail a {transaction.status} transaction", code="TRANSACTION_NOT_PENDING"
            )
        with self.transaction():
            transaction.status = TransactionStatus.FAILED.value
            transaction.failure_reason = reason
        return transaction

    @BaseService.measure_operation("refund_transaction")
    def refund(self, transaction_id: str, amount: Optional[int] = None, reason: Optional[str] = None) -> Transaction:
        """
        Refund part or all of a paid transaction.

        ``amount`` defaults to everything not yet refunded.

        Raises:
            BusinessRuleException: Not refundable, or the refund exceeds the remaining amount
        """
        transaction = self.get_transaction(transaction_id)
        if transaction.status not in REFUNDABLE_STATUSES:
            raise BusinessRuleException(
                "Only completed transactions can be refunded", code="TRANSACTION_NOT_REFUNDABLE"
            )
        remaining = transaction.amount - (transaction.refunded_amount or 0)
        refund_amount = remaining if amount is None else amount
        if refund_amount <= 0 or refund_amount > remaining:
            raise BusinessRuleException(
                "Refund amount exceeds the refundable balance",
                code="REFUND_EXCEEDS_AMOUNT",
                details={"refundable": remaining},
            )
        with self.transaction():
            transaction.refunded_amount = (transaction.refunded_amount or 0) + refund_amount
            transaction.refund_reason = reason
            transaction.refunded_at = utcnow()
            transaction.status = (
                TransactionStatus.REFUNDED.value
                if transaction.refunded_amount >= transaction.amount
                else TransactionStatus.PARTIALLY_REFUNDED.value
            )
        self.log_operation("transaction_refunded", transaction_id=transaction.id, amount=refund_amount)
        return transaction
