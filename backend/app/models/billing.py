# backend/app/models/billing.py
"""
Billing models: plans, coach subscriptions, transactions and payment requests.

All money amounts are integer cents in the row's ``currency``.
"""

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..core.constants import DEFAULT_PLAN_COLOR
from ..core.enums import (
    BillingCycle,
    PaymentRequestStatus,
    SubscriptionStatus,
    TransactionStatus,
)
from ..database import Base
from .types import TimestampMixin, UTCDateTime, ulid_pk


class Plan(TimestampMixin, Base):
    __tablename__ = "plans"

    id = ulid_pk()
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    monthly_price = Column(Integer, nullable=False, default=0)
    annual_price = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    color = Column(String(7), nullable=False, default=DEFAULT_PLAN_COLOR)
    max_clients = Column(Integer, nullable=True)
    max_ai_agents = Column(Integer, nullable=True)
    features = Column(JSON, nullable=False, default=list)
    trial_days = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(UTCDateTime, nullable=True)

    subscriptions = relationship("Subscription", back_populates="plan")

    def price_for(self, cycle: str) -> int:
        return self.annual_price if cycle == BillingCycle.ANNUAL.value else self.monthly_price


class Subscription(TimestampMixin, Base):
    __tablename__ = "subscriptions"

    id = ulid_pk()
    coach_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(String(26), ForeignKey("plans.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=SubscriptionStatus.ACTIVE.value, index=True)
    billing_cycle = Column(String(10), nullable=False, default=BillingCycle.MONTHLY.value)
    current_period_start = Column(UTCDateTime, nullable=False)
    current_period_end = Column(UTCDateTime, nullable=False)
    trial_start = Column(UTCDateTime, nullable=True)
    trial_end = Column(UTCDateTime, nullable=True)
    next_billing_date = Column(UTCDateTime, nullable=True)
    canceled_at = Column(UTCDateTime, nullable=True)
    cancel_reason = Column(Text, nullable=True)

    plan = relationship("Plan", back_populates="subscriptions")
    coach = relationship("User", foreign_keys=[coach_id])


class Transaction(TimestampMixin, Base):
    __tablename__ = "transactions"

    id = ulid_pk()
    coach_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(String(26), ForeignKey("plans.id"), nullable=True, index=True)
    subscription_id = Column(String(26), ForeignKey("subscriptions.id"), nullable=True)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default=TransactionStatus.PENDING.value, index=True)
    payment_method = Column(String(50), nullable=True)
    invoice_number = Column(String(32), nullable=False, unique=True, index=True)
    invoice_date = Column(UTCDateTime, nullable=False)
    paid_at = Column(UTCDateTime, nullable=True)
    failure_reason = Column(Text, nullable=True)
    refunded_amount = Column(Integer, nullable=False, default=0)
    refund_reason = Column(Text, nullable=True)
    refunded_at = Column(UTCDateTime, nullable=True)
    description = Column(Text, nullable=True)
    extra_data = Column("metadata", JSON, nullable=True)

    plan = relationship("Plan")
    subscription = relationship("Subscription")
    coach = relationship("User", foreign_keys=[coach_id])


class PaymentRequest(TimestampMixin, Base):
    """
    A payment link one user sends to another.

    Admins bill coaches for plans; coaches bill clients for courses or custom
    amounts. Paying the request produces the matching side effect.
    """

    __tablename__ = "payment_requests"

    id = ulid_pk()
    created_by_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    payer_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    request_type = Column(String(20), nullable=False)
    plan_id = Column(String(26), ForeignKey("plans.id"), nullable=True)
    billing_cycle = Column(String(10), nullable=True)
    course_id = Column(String(26), ForeignKey("courses.id", ondelete="CASCADE"), nullable=True)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=PaymentRequestStatus.PENDING.value, index=True)
    token = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(UTCDateTime, nullable=False)
    paid_at = Column(UTCDateTime, nullable=True)
    transaction_id = Column(String(26), ForeignKey("transactions.id"), nullable=True)

    created_by = relationship("User", foreign_keys=[created_by_id])
    payer = relationship("User", foreign_keys=[payer_id])
    plan = relationship("Plan")
    course = relationship("Course")
