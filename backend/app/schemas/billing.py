"""Billing schemas: plans, subscriptions, transactions, payment requests. Amounts are cents."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.constants import DEFAULT_PLAN_COLOR, MAX_REASON_LENGTH
from ..core.enums import (
    BillingCycle,
    PaymentRequestStatus,
    PaymentRequestType,
    SubscriptionStatus,
    TransactionStatus,
)
from ._strict_base import ORMResponse, StrictRequestModel

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


def _upper_currency(value: Optional[str]) -> Optional[str]:
    return value.upper() if value else value


class PlanBase(StrictRequestModel):
    description: Optional[str] = Field(default=None, max_length=2000)
    monthly_price: int = Field(ge=0)
    annual_price: int = Field(ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    color: str = Field(default=DEFAULT_PLAN_COLOR, pattern=HEX_COLOR)
    max_clients: Optional[int] = Field(default=None, ge=0)
    max_ai_agents: Optional[int] = Field(default=None, ge=0)
    features: List[str] = Field(default_factory=list)
    trial_days: int = Field(default=0, ge=0, le=365)

    normalize_currency = field_validator("currency")(_upper_currency)


class PlanCreate(PlanBase):
    name: str = Field(min_length=1, max_length=100)


class PlanUpdate(StrictRequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    monthly_price: Optional[int] = Field(default=None, ge=0)
    annual_price: Optional[int] = Field(default=None, ge=0)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    max_clients: Optional[int] = Field(default=None, ge=0)
    max_ai_agents: Optional[int] = Field(default=None, ge=0)
    features: Optional[List[str]] = None
    trial_days: Optional[int] = Field(default=None, ge=0, le=365)
    is_active: Optional[bool] = None


class PlanResponse(ORMResponse):
    id: str
    name: str
    description: Optional[str] = None
    monthly_price: int
    annual_price: int
    currency: str
    color: str
    max_clients: Optional[int] = None
    max_ai_agents: Optional[int] = None
    features: List[str]
    trial_days: int
    is_active: bool
    is_deleted: bool
    created_at: datetime


class PlanStats(ORMResponse):
    plan_id: str
    total_subscriptions: int
    active_subscriptions: int
    total_revenue: int
    monthly_recurring_revenue: int


class SubscriptionCreate(StrictRequestModel):
    coach_id: str = Field(min_length=26, max_length=26)
    plan_id: str = Field(min_length=26, max_length=26)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    start_trial: bool = True


class SubscriptionCancel(StrictRequestModel):
    immediate: bool = False
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)


class SubscriptionResponse(ORMResponse):
    id: str
    coach_id: str
    plan_id: str
    status: SubscriptionStatus
    billing_cycle: BillingCycle
    current_period_start: datetime
    current_period_end: datetime
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: datetime
    plan: Optional[PlanResponse] = None


class SubscriptionStats(ORMResponse):
    total: int
    active: int
    trialing: int
    canceled: int
    expired: int
    past_due: int
    monthly_recurring_revenue: int
    average_lifespan_days: int


class TransactionCreate(StrictRequestModel):
    coach_id: str = Field(min_length=26, max_length=26)
    plan_id: str = Field(min_length=26, max_length=26)
    subscription_id: Optional[str] = Field(default=None, min_length=26, max_length=26)
    amount: int = Field(gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    payment_method: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    normalize_currency = field_validator("currency")(_upper_currency)


class TransactionFail(StrictRequestModel):
    reason: str = Field(min_length=1, max_length=MAX_REASON_LENGTH)


class TransactionRefund(StrictRequestModel):
    amount: Optional[int] = Field(default=None, gt=0, description="Defaults to the remaining refundable amount")
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)


class TransactionResponse(ORMResponse):
    id: str
    coach_id: str
    plan_id: Optional[str] = None
    subscription_id: Optional[str] = None
    amount: int
    currency: str
    status: TransactionStatus
    payment_method: Optional[str] = None
    invoice_number: str
    invoice_date: datetime
    paid_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    refunded_amount: int
    refund_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="extra_data")
    created_at: datetime


class TransactionStats(ORMResponse):
    total_transactions: int
    total_amount: int
    total_refunded: int
    success_rate: float
    average_transaction_value: int
    status_breakdown: Dict[str, int]
    payment_method_breakdown: Dict[str, int]


class PaymentRequestCreate(StrictRequestModel):
    payer_id: str = Field(min_length=26, max_length=26)
    request_type: PaymentRequestType
    plan_id: Optional[str] = Field(default=None, min_length=26, max_length=26)
    billing_cycle: Optional[BillingCycle] = None
    course_id: Optional[str] = Field(default=None, min_length=26, max_length=26)
    amount: Optional[int] = Field(default=None, gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    description: Optional[str] = Field(default=None, max_length=2000)
    expires_in_days: Optional[int] = Field(default=None, ge=1, le=90)

    normalize_currency = field_validator("currency")(_upper_currency)

    @model_validator(mode="after")
    def check_target(self) -> "PaymentRequestCreate":
        if self.request_type == PaymentRequestType.PLAN_PAYMENT and not self.plan_id:
            raise ValueError("plan_id is required for plan payments")
        if self.request_type == PaymentRequestType.COURSE_PAYMENT and not self.course_id:
            raise ValueError("course_id is required for course payments")
        if self.request_type == PaymentRequestType.CUSTOM and not self.amount:
            raise ValueError("amount is required for custom payment requests")
        return self


class PaymentRequestPay(StrictRequestModel):
    payment_method: Optional[str] = Field(default=None, max_length=50)


class PaymentRequestResponse(ORMResponse):
    id: str
    created_by_id: str
    payer_id: str
    request_type: PaymentRequestType
    plan_id: Optional[str] = None
    billing_cycle: Optional[BillingCycle] = None
    course_id: Optional[str] = None
    amount: int
    currency: str
    description: Optional[str] = None
    status: PaymentRequestStatus
    token: str
    expires_at: datetime
    paid_at: Optional[datetime] = None
    transaction_id: Optional[str] = None
    created_at: datetime
