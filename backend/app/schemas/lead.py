"""Lead pipeline and email sequence schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import EmailStr, Field, model_validator

from ..core.enums import LeadStatus, LeadType, ScheduledEmailStatus, SequenceTrigger
from ._strict_base import ORMResponse, StrictRequestModel


class LandingSubmission(StrictRequestModel):
    """Public landing-page form for prospective coaches."""

    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=30)
    source: Optional[str] = Field(default="landing", max_length=50)
    answers: Optional[Dict[str, Any]] = None
    qualified: bool = False
    marketing_opt_in: bool = False
    meeting_date: Optional[str] = Field(default=None, max_length=20)
    meeting_time: Optional[str] = Field(default=None, max_length=20)


class LeadCreate(StrictRequestModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=30)
    source: Optional[str] = Field(default=None, max_length=50)
    status: LeadStatus = LeadStatus.CONTACTED
    notes: Optional[str] = None
    answers: Optional[Dict[str, Any]] = None
    qualified: bool = False
    marketing_opt_in: bool = False
    meeting_date: Optional[str] = Field(default=None, max_length=20)
    meeting_time: Optional[str] = Field(default=None, max_length=20)


class LeadUpdate(StrictRequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=30)
    source: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None
    answers: Optional[Dict[str, Any]] = None
    qualified: Optional[bool] = None
    marketing_opt_in: Optional[bool] = None
    meeting_date: Optional[str] = Field(default=None, max_length=20)
    meeting_time: Optional[str] = Field(default=None, max_length=20)


class LeadStatusUpdate(StrictRequestModel):
    status: LeadStatus
    notes: Optional[str] = None


class LeadResponse(ORMResponse):
    id: str
    lead_type: LeadType
    coach_id: Optional[str] = None
    name: str
    email: str
    phone: Optional[str] = None
    source: Optional[str] = None
    status: LeadStatus
    notes: Optional[str] = None
    answers: Optional[Dict[str, Any]] = None
    qualified: bool
    marketing_opt_in: bool
    meeting_date: Optional[str] = None
    meeting_time: Optional[str] = None
    last_contacted_at: Optional[datetime] = None
    converted_at: Optional[datetime] = None
    submitted_at: datetime
    created_at: datetime


class LeadStats(ORMResponse):
    total: int
    by_status: Dict[str, int]
    conversion_rate: float


class SequenceStepIn(StrictRequestModel):
    subject: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1)
    delay_days: int = Field(default=0, ge=0, le=365)


class SequenceCreate(StrictRequestModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    trigger: SequenceTrigger = SequenceTrigger.MANUAL
    target_status: Optional[LeadStatus] = None
    is_active: bool = True
    steps: List[SequenceStepIn] = Field(min_length=1)

    @model_validator(mode="after")
    def check_trigger(self) -> "SequenceCreate":
        if self.trigger == SequenceTrigger.STATUS_CHANGE and self.target_status is None:
            raise ValueError("target_status is required for status_change sequences")
        return self


class SequenceUpdate(StrictRequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    trigger: Optional[SequenceTrigger] = None
    target_status: Optional[LeadStatus] = None
    is_active: Optional[bool] = None
    steps: Optional[List[SequenceStepIn]] = Field(default=None, min_length=1)


class SequenceStepResponse(ORMResponse):
    id: str
    order_index: int
    subject: str
    body: str
    delay_days: int


class SequenceResponse(ORMResponse):
    id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    trigger: SequenceTrigger
    target_status: Optional[LeadStatus] = None
    is_active: bool
    steps: List[SequenceStepResponse]
    created_at: datetime


class ScheduledEmailResponse(ORMResponse):
    id: str
    lead_id: str
    sequence_id: str
    step_id: Optional[str] = None
    to_email: str
    subject: str
    scheduled_for: datetime
    status: ScheduledEmailStatus
    sent_at: Optional[datetime] = None
    error: Optional[str] = None


class StartSequenceRequest(StrictRequestModel):
    lead_id: str = Field(min_length=26, max_length=26)
