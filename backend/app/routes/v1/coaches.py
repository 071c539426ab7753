# backend/app/routes/v1/coaches.py
"""
Admin coach management routes - API v1

Mounted under /api/v1/admin/coaches. Every endpoint requires an admin.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import require_admin
from ...api.dependencies.services import get_coach_admin_service
from ...core.constants import INACTIVE_COACH_DEFAULT_DAYS
from ...core.enums import CoachAccountStatus
from ...models.user import User
from ...schemas.base_responses import PaginatedResponse, SuccessResponse
from ...schemas.coach import (
    CoachAdminUpdate,
    CoachDetail,
    CoachEmailRequest,
    CoachSummary,
    DeactivateRequest,
    SubscriptionBrief,
)
from ...services.coach_admin_service import CoachAdminService

router = APIRouter(tags=["admin-coaches-v1"])


@router.get("", response_model=PaginatedResponse[CoachSummary])
def list_coaches(
    search: Optional[str] = Query(None, max_length=100),
    status_filter: Optional[CoachAccountStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    _: User = Depends(require_admin),
    service: CoachAdminService = Depends(get_coach_admin_service),
) -> PaginatedResponse[CoachSummary]:
    coaches, total = service.list_coaches(search=search, status=status_filter, page=page, per_page=per_page)
    return PaginatedResponse[CoachSummary].build(
        [CoachSummary.model_validate(coach) for coach in coaches], total, page, per_page
    )


@router.get("/inactive", response_model=List[CoachSummary])
def list_inactive_coaches(
    days: int = Query(INACTIVE_COACH_DEFAULT_DAYS, ge=1, le=365),
    _: User = Depends(require_admin),
    service: CoachAdminService = Depends(get_coach_admin_service),
) -> List[CoachSummary]:
    """Coaches who have not logged in for ``days`` days."""
    return [CoachSummary.model_validate(coach) for coach in service.list_inactive_coaches(days)]


@router.get("/{coach_id}", response_model=CoachDetail)
def get_coach(
    coach_id: str,
    _: User = Depends(require_admin),
    service: CoachAdminService = Depends(get_coach_admin_service),
) -> CoachDetail:
    detail = service.get_coach_detail(coach_id)
    subscription = detail["active_subscription"]
    return CoachDetail.model_validate(
        {
            **CoachSummary.model_validate(detail["coach"]).model_dump(),
            "client_count": detail["client_count"],
            "active_subscription": SubscriptionBrief.model_validate(subscription) if subscription else None,
        }
    )


@router.patch("/{coach_id}", response_model=CoachSummary)
def update_coach(
    coach_id: str,
    payload: CoachAdminUpdate,
    _: User = Depends(require_admin),
    service: CoachAdminService = Depends(get_coach_admin_service),
) -> CoachSummary:
    return CoachSummary.model_validate(service.update_coach(coach_id, payload))


@router.post("/{coach_id}/deactivate", response_model=CoachSummary)
def deactivate_coach(
    coach_id: str,
    payload: DeactivateRequest,
    _: User = Depends(require_admin),
    service: CoachAdminService = Depends(get_coach_admin_service),
) -> CoachSummary:
    return CoachSummary.model_validate(service.deactivate_coach(coach_id, payload.reason))


@router.post("/{coach_id}/reactivate", response_model=CoachSummary)
def reactivate_coach(
    coach_id: str,
    _: User = Depends(require_admin),
    service: CoachAdminService = Depends(get_coach_admin_service),
) -> CoachSummary:
    return CoachSummary.model_validate(service.reactivate_coach(coach_id))


@router.delete("/{coach_id}", response_model=CoachSummary)
def delete_coach(
    coach_id: str,
    _: User = Depends(require_admin),
    service: CoachAdminService = Depends(get_coach_admin_service),
) -> CoachSummary:
    """Soft delete: the row stays, the account can no longer sign in."""
    return CoachSummary.model_validate(service.delete_coach(coach_id))


@router.post("/{coach_id}/email", response_model=SuccessResponse, status_code=status.HTTP_202_ACCEPTED)
def email_coach(
    coach_id: str,
    payload: CoachEmailRequest,
    _: User = Depends(require_admin),
    service: CoachAdminService = Depends(get_coach_admin_service),
) -> SuccessResponse:
    service.send_email_to_coach(coach_id, payload.subject, payload.body)
    return SuccessResponse(message="Email sent")
