# backend/app/routes/v1/sequences.py
"""
Email sequence routes - API v1

Mounted under /api/v1/sequences. Sequences belong to the calling coach or
admin; starting, pausing, resuming and cancelling act on one lead.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from ...api.dependencies.auth import require_coach_or_admin
from ...api.dependencies.services import get_email_sequence_service
from ...models.user import User
from ...schemas.base_responses import DeleteResponse, SuccessResponse
from ...schemas.lead import (
    ScheduledEmailResponse,
    SequenceCreate,
    SequenceResponse,
    SequenceUpdate,
    StartSequenceRequest,
)
from ...services.email_sequence_service import EmailSequenceService

router = APIRouter(tags=["sequences-v1"])


@router.get("", response_model=List[SequenceResponse])
def list_sequences(
    current_user: User = Depends(require_coach_or_admin),
    service: EmailSequenceService = Depends(get_email_sequence_service),
) -> List[SequenceResponse]:
    return [SequenceResponse.model_validate(s) for s in service.list_sequences(current_user.id)]


@router.post("", response_model=SequenceResponse, status_code=status.HTTP_201_CREATED)
def create_sequence(
    payload: SequenceCreate,
    current_user: User = Depends(require_coach_or_admin),
    service: EmailSequenceService = Depends(get_email_sequence_service),
) -> SequenceResponse:
    return SequenceResponse.model_validate(service.create_sequence(current_user.id, payload))


@router.get("/{sequence_id}", response_model=SequenceResponse)
def get_sequence(
    sequence_id: str,
    current_user: User = Depends(require_coach_or_admin),
    service: EmailSequenceService = Depends(get_email_sequence_service),
) -> SequenceResponse:
    return SequenceResponse.model_validate(service.get_sequence(current_user.id, sequence_id))


@router.patch("/{sequence_id}", response_model=SequenceResponse)
def update_sequence(
    sequence_id: str,
    payload: SequenceUpdate,
    current_user: User = Depends(require_coach_or_admin),
    service: EmailSequenceService = Depends(get_email_sequence_service),
) -> SequenceResponse:
    """Passing ``steps`` replaces the whole step list."""
    return SequenceResponse.model_validate(service.update_sequence(current_user.id, sequence_id, payload))


@router.delete("/{sequence_id}", response_model=DeleteResponse)
def delete_sequence(
    sequence_id: str,
    current_user: User = Depends(require_coach_or_admin),
    service: EmailSequenceService = Depends(get_email_sequence_service),
) -> DeleteResponse:
    service.delete_sequence(current_user.id, sequence_id)
    return DeleteResponse(message="Sequence deleted")


@router.post(
    "/{sequence_id}/start", response_model=List[ScheduledEmailResponse], status_code=status.HTTP_201_CREATED
)
def start_sequence(
    sequence_id: str,
    payload: StartSequenceRequest,
    current_user: User = Depends(require_coach_or_admin),
    service: EmailSequenceService = Depends(get_email_sequence_service),
) -> List[ScheduledEmailResponse]:
    emails = service.start_for_lead(current_user, sequence_id, payload.lead_id)
    return [ScheduledEmailResponse.model_validate(email) for email in emails]


@router.post("/{sequence_id}/pause", response_model=List[ScheduledEmailResponse])
def pause_sequence(
    sequence_id: str,
    payload: StartSequenceRequest,
    current_user: User = Depends(require_coach_or_admin),
    service: EmailSequenceService = Depends(get_email_sequence_service),
) -> List[ScheduledEmailResponse]:
    emails = service.pause(current_user, sequence_id, payload.lead_id)
    return [ScheduledEmailResponse.model_validate(email) for email in emails]


@router.post("/{sequence_id}/resume", response_model=List[ScheduledEmailResponse])
def resume_sequence(
    sequence_id: str,
    payload: StartSequenceRequest,
    current_user: User = Depends(require_coach_or_admin),
    service: EmailSequenceService = Depends(get_email_sequence_service),
) -> List[ScheduledEmailResponse]:
    """Paused emails are rescheduled, shifted by how long they were paused."""
    emails = service.resume(current_user, sequence_id, payload.lead_id)
    return [ScheduledEmailResponse.model_validate(email) for email in emails]


@router.post("/{sequence_id}/cancel", response_model=SuccessResponse)
def cancel_sequence(
    sequence_id: str,
    payload: StartSequenceRequest,
    current_user: User = Depends(require_coach_or_admin),
    service: EmailSequenceService = Depends(get_email_sequence_service),
) -> SuccessResponse:
    cancelled = service.cancel(current_user, sequence_id, payload.lead_id)
    return SuccessResponse(message=f"Cancelled {cancelled} email(s)", data={"cancelled": cancelled})
