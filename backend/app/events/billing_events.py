"""Billing domain events."""
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Optional

from .base import DomainEvent


@dataclass
class PaymentCompleted(DomainEvent):
    name: ClassVar[str] = "billing.payment.completed"

    transaction_id: str
    coach_id: str
    amount: int
    currency: str
    invoice_number: str
    paid_at: datetime
    plan_id: Optional[str] = None


@dataclass
class SubscriptionCreated(DomainEvent):
    name: ClassVar[str] = "billing.subscription.created"

    subscription_id: str
    coach_id: str
    plan_id: str
    status: str


@dataclass
class SubscriptionCanceled(DomainEvent):
    name: ClassVar[str] = "billing.subscription.canceled"

    subscription_id: str
    coach_id: str
    immediate: bool
    reason: Optional[str] = None
