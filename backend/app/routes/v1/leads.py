# backend/app/routes/v1/leads.py
"""
Lead pipeline routes - API v1

Mounted under /api/v1/leads. Admins see platform (landing) leads, coaches
see their own. ``POST /landing`` is public.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...api.dependencies.auth import require_coach_or_admin
from ...api.dependencies.services import get_email_sequence_service
from ...core.enums import LeadStatus
from ...database import get_db
from ...models.user import User
from ...schemas.base_responses import DeleteResponse, PaginatedResponse, SuccessResponse
from ...schemas.lead import (
    LandingSubmission,
    LeadCreate,
    LeadResponse,
    LeadStats,
    LeadStatusUpdate,
    LeadUpdate,
    ScheduledEmailResponse,
)
from ...services.email_sequence_service import EmailSequenceService
from ...services.lead_service import LeadService

router = APIRouter(tags=["leads-v1"])


@router.post("/landing", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
def submit_landing(
    payload: LandingSubmission,
    db: Session = Depends(get_db),
) -> SuccessResponse:
    """Public landing-page form. Qualified submissions get a coach account."""
    lead = LeadService(db).submit_landing(payload)
    return SuccessResponse(message="Thanks! We'll be in touch soon.", data={"lead_id": lead.id})


@router.get("", response_model=PaginatedResponse[LeadResponse])
def list_leads(
    status_filter: Optional[LeadStatus] = Query(None, alias="status"),
    source: Optional[str] = Query(None, max_length=50),
    search: Optional[str] = Query(None, max_length=100),
    submitted_from: Optional[datetime] = Query(None),
    submitted_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> PaginatedResponse[LeadResponse]:
    items, total = LeadService(db).list_leads(
        current_user,
        status=status_filter,
        source=source,
        search=search,
        submitted_from=submitted_from,
        submitted_to=submitted_to,
        page=page,
        per_page=per_page,
    )
    return PaginatedResponse[LeadResponse].build(
        [LeadResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.post("", response_model=LeadResponse, status_code=status.HTTP_201_CREATED)
def create_lead(
    payload: LeadCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> LeadResponse:
    return LeadResponse.model_validate(LeadService(db).create_lead(current_user, payload))


@router.get("/stats", response_model=LeadStats)
def lead_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> LeadStats:
    return LeadStats.model_validate(LeadService(db).lead_stats(current_user))


@router.get("/{lead_id}", response_model=LeadResponse)
def get_lead(
    lead_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> LeadResponse:
    return LeadResponse.model_validate(LeadService(db).get_lead(current_user, lead_id))


@router.patch("/{lead_id}", response_model=LeadResponse)
def update_lead(
    lead_id: str,
    payload: LeadUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> LeadResponse:
    return LeadResponse.model_validate(LeadService(db).update_lead(current_user, lead_id, payload))


@router.put("/{lead_id}/status", response_model=LeadResponse)
def update_lead_status(
    lead_id: str,
    payload: LeadStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> LeadResponse:
    return LeadResponse.model_validate(LeadService(db).update_status(current_user, lead_id, payload))


@router.delete("/{lead_id}", response_model=DeleteResponse)
def delete_lead(
    lead_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> DeleteResponse:
    LeadService(db).delete_lead(current_user, lead_id)
    return DeleteResponse(message="Lead deleted")


@router.get("/{lead_id}/emails", response_model=List[ScheduledEmailResponse])
def list_lead_emails(
    lead_id: str,
    current_user: User = Depends(require_coach_or_admin),
    service: EmailSequenceService = Depends(get_email_sequence_service),
) -> List[ScheduledEmailResponse]:
    """Every sequence email scheduled for the lead, in send order."""
    return [ScheduledEmailResponse.model_validate(e) for e in service.list_for_lead(current_user, lead_id)]
