# backend/app/services/payment_request_service.py
"""
Payment requests: a payable link one user sends another.

Admins bill coaches for plans; coaches bill their clients for a course or a
custom amount. Paying a plan request records a completed transaction and
creates or renews the coach's subscription; paying a course request enrolls
the client.
"""

from datetime import datetime, timedelta
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..auth import generate_secure_token
from ..core.config import settings
from ..core.constants import PAYMENT_REQUEST_EXPIRE_DAYS
from ..core.enums import BillingCycle, PaymentRequestStatus, PaymentRequestType, UserType
from ..core.exceptions import (
    BusinessRuleException,
    ForbiddenException,
    NotFoundException,
    ServiceException,
    ValidationException,
)
from ..models.billing import PaymentRequest
from ..models.types import utcnow
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.billing import PaymentRequestCreate
from .base import BaseService
from .email import EmailService

logger = logging.getLogger(__name__)


class PaymentRequestService(BaseService):
    def __init__(self, db: Session, email_service: Optional[EmailService] = None):
        super().__init__(db)
        self._email_service = email_service
        self.payment_request_repository = RepositoryFactory.create_payment_request_repository(db)
        self.plan_repository = RepositoryFactory.create_plan_repository(db)
        self.course_repository = RepositoryFactory.create_course_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.client_coach_repository = RepositoryFactory.create_client_coach_repository(db)

    @property
    def email_service(self) -> EmailService:
        if self._email_service is None:
            self._email_service = EmailService(self.db)
        return self._email_service

    @BaseService.measure_operation("create_payment_request")
    def create_request(self, creator: User, data: PaymentRequestCreate) -> PaymentRequest:
        """
        Create a request and email the payer a pay link.

        Raises:
            ForbiddenException: Creator may not bill this payer or this request type
            NotFoundException: Unknown payer, plan or course
        """
        payer = self.user_repository.get_by_id(data.payer_id, load_relationships=False)
        if payer is None or payer.is_deleted:
            raise NotFoundException("Payer not found", code="PAYER_NOT_FOUND")

        plan_id = course_id = billing_cycle = None
        if data.request_type == PaymentRequestType.PLAN_PAYMENT:
            if creator.user_type != UserType.ADMIN.value or payer.user_type != UserType.COACH.value:
                raise ForbiddenException("Only admins can bill coaches for plans", code="FORBIDDEN_REQUEST_TYPE")
            plan = self.plan_repository.get_by_id(data.plan_id, load_relationships=False)
            if plan is None or plan.is_deleted or not plan.is_active:
                raise NotFoundException("Plan not found", code="PLAN_NOT_FOUND")
            billing_cycle = (data.billing_cycle or BillingCycle.MONTHLY).value
            amount = data.amount or plan.price_for(billing_cycle)
            currency = plan.currency
            plan_id = plan.id
            description = data.description or f"{plan.name} ({billing_cycle})"
        else:
            if creator.user_type != UserType.COACH.value or payer.user_type != UserType.CLIENT.value:
                raise ForbiddenException("Only coaches can bill their clients", code="FORBIDDEN_REQUEST_TYPE")
            if not self.client_coach_repository.is_linked(creator.id, payer.id):
                raise ForbiddenException("Client is not linked to this coach", code="NOT_LINKED")
            if data.request_type == PaymentRequestType.COURSE_PAYMENT:
                course = self.course_repository.get_by_id(data.course_id, load_relationships=False)
                if course is None or course.coach_id != creator.id:
                    raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")
                if not course.is_paid:
                    raise BusinessRuleException("Course is free", code="COURSE_NOT_PAID")
                amount = data.amount or course.price
                currency = course.currency
                course_id = course.id
                description = data.description or course.title
            else:
                amount = data.amount
                currency = data.currency
                description = data.description

        if not amount:
            raise ValidationException("Payment amount must be positive", code="INVALID_AMOUNT")

        expires_at = utcnow() + timedelta(days=data.expires_in_days or PAYMENT_REQUEST_EXPIRE_DAYS)
        with self.transaction():
            request = self.payment_request_repository.create(
                created_by_id=creator.id,
                payer_id=payer.id,
                request_type=data.request_type.value,
                plan_id=plan_id,
                billing_cycle=billing_cycle,
                course_id=course_id,
                amount=amount,
                currency=currency,
                description=description,
                status=PaymentRequestStatus.PENDING.value,
                token=generate_secure_token(),
                expires_at=expires_at,
            )

        try:
            self.email_service.send_payment_request(
                to_email=payer.email,
                payer_name=payer.first_name,
                requester_name=creator.display_name or creator.full_name,
                amount=amount,
                currency=currency,
                pay_url=f"{settings.frontend_url}/pay/{request.token}",
                expires_at=expires_at,
                description=description,
            )
        except ServiceException as exc:
            self.logger.error("Payment request email failed for %s: %s", request.id, exc)
        return request

    def list_requests(
        self,
        user: User,
        *,
        role: str = "creator",
        status: Optional[PaymentRequestStatus] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[PaymentRequest], int]:
        """Requests the user created (``role="creator"``) or must pay (``role="payer"``)."""
        if role == "payer":
            return self.payment_request_repository.list_for_user(
                payer_id=user.id, status=status, page=page, per_page=per_page
            )
        return self.payment_request_repository.list_for_user(
            created_by_id=user.id, status=status, page=page, per_page=per_page
        )

    def get_by_token(self, token: str) -> PaymentRequest:
        request = self.payment_request_repository.get_by_token(token)
        if request is None:
            raise NotFoundException("Payment request not found", code="PAYMENT_REQUEST_NOT_FOUND")
        return request

    def _get_for_party(self, request_id: str, user: User) -> PaymentRequest:
        request = self.payment_request_repository.get_by_id(request_id)
        if request is None or user.id not in (request.created_by_id, request.payer_id):
            raise NotFoundException("Payment request not found", code="PAYMENT_REQUEST_NOT_FOUND")
        return request

    @BaseService.measure_operation("pay_payment_request")
    def pay(self, token: str, payer: User, payment_method: Optional[str] = None) -> PaymentRequest:
        """
        Settle a pending, unexpired request.

        Raises:
            ForbiddenException: Caller is not the payer
            BusinessRuleException: Request is not pending or has expired
        """
        from .course_service import CourseService
        from .subscription_service import SubscriptionService
        from .transaction_service import TransactionService

        request = self.get_by_token(token)
        if request.payer_id != payer.id:
            raise ForbiddenException("This payment request belongs to another user", code="NOT_PAYER")
        if request.status != PaymentRequestStatus.PENDING.value:
            raise BusinessRuleException(f"Payment request is {request.status}", code="PAYMENT_REQUEST_NOT_PENDING")
        now = utcnow()
        if request.expires_at <= now:
            with self.transaction():
                request.status = PaymentRequestStatus.EXPIRED.value
            raise BusinessRuleException("Payment request has expired", code="PAYMENT_REQUEST_EXPIRED")

        with self.transaction():
            if request.request_type == PaymentRequestType.PLAN_PAYMENT.value:
                transactions = TransactionService(self.db)
                subscriptions = SubscriptionService(self.db)
                transaction = transactions._create(
                    coach_id=payer.id,
                    plan_id=request.plan_id,
                    amount=request.amount,
                    currency=request.currency,
                    payment_method=payment_method,
                    description=request.description,
                    metadata={"payment_request_id": request.id},
                )
                transactions._complete(transaction, payment_method)
                subscription = subscriptions.create_or_renew_for_payment(
                    payer.id, request.plan_id, BillingCycle(request.billing_cycle or BillingCycle.MONTHLY.value)
                )
                transaction.subscription_id = subscription.id
                request.transaction_id = transaction.id
                self.absorb_events(transactions, subscriptions)
            elif request.request_type == PaymentRequestType.COURSE_PAYMENT.value:
                courses = CourseService(self.db)
                courses.enroll_after_payment(request.course_id, payer.id)
                self.absorb_events(courses)
            request.status = PaymentRequestStatus.PAID.value
            request.paid_at = now
        self.log_operation("payment_request_paid", request_id=request.id, request_type=request.request_type)
        return request

    @BaseService.measure_operation("cancel_payment_request")
    def cancel(self, request_id: str, user: User) -> PaymentRequest:
        request = self._get_for_party(request_id, user)
        if request.created_by_id != user.id:
            raise ForbiddenException("Only the requester can cancel", code="NOT_REQUESTER")
        if request.status != PaymentRequestStatus.PENDING.value:
            raise BusinessRuleException(f"Payment request is {request.status}", code="PAYMENT_REQUEST_NOT_PENDING")
        with self.transaction():
            request.status = PaymentRequestStatus.CANCELED.value
        return request

    @BaseService.measure_operation("expire_payment_requests")
    def expire_overdue(self, now: Optional[datetime] = None) -> int:
        """Pending requests past ``expires_at`` become expired."""
        with self.transaction():
            overdue = self.payment_request_repository.list_overdue(now or utcnow())
            for request in overdue:
                request.status = PaymentRequestStatus.EXPIRED.value
        if overdue:
            self.log_operation("payment_requests_expired", count=len(overdue))
        return len(overdue)
