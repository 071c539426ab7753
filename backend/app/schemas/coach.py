"""Admin coach-management and coach/client relationship schemas."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from ..core.constants import MAX_NAME_LENGTH, MAX_REASON_LENGTH
from ..core.enums import ClientCoachStatus
from ._strict_base import ORMResponse, StrictRequestModel
from .auth import UserResponse


class CoachSummary(UserResponse):
    deleted_at: Optional[datetime] = None


class CoachDetail(CoachSummary):
    client_count: int = 0
    active_subscription: Optional["SubscriptionBrief"] = None


class SubscriptionBrief(ORMResponse):
    id: str
    plan_id: str
    status: str
    billing_cycle: str
    current_period_end: datetime


class CoachAdminUpdate(StrictRequestModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    business_name: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=30)
    is_verified: Optional[bool] = None


class CoachEmailRequest(StrictRequestModel):
    subject: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1, max_length=10000)


class DeactivateRequest(StrictRequestModel):
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)


class ClientAdd(StrictRequestModel):
    email: EmailStr
    first_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    last_name: str = Field(default="", max_length=MAX_NAME_LENGTH)
    phone: Optional[str] = Field(default=None, max_length=30)
    notes: Optional[str] = None


class ClientRelationshipUpdate(StrictRequestModel):
    status: Optional[ClientCoachStatus] = None
    is_primary: Optional[bool] = None
    notes: Optional[str] = None


class ClientRelationshipResponse(ORMResponse):
    id: str
    coach_id: str
    client_id: str
    status: ClientCoachStatus
    is_primary: bool
    notes: Optional[str] = None
    created_at: datetime
    client: UserResponse


class ClientInviteCreate(StrictRequestModel):
    email: EmailStr
    first_name: Optional[str] = Field(default=None, max_length=MAX_NAME_LENGTH)
    message: Optional[str] = Field(default=None, max_length=2000)


class ClientInviteResponse(ORMResponse):
    id: str
    coach_id: str
    email: str
    first_name: Optional[str] = None
    message: Optional[str] = None
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime


class InviteAccept(StrictRequestModel):
    token: str = Field(min_length=1)


CoachDetail.model_rebuild()
