# backend/app/routes/v1/plans.py
"""
Subscription plan routes - API v1

Mounted under /api/v1/plans. Reads are open to signed-in users (coaches
pick a plan); writes are admin-only.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...api.dependencies.auth import get_current_active_user, require_admin
from ...database import get_db
from ...models.user import User
from ...schemas.billing import PlanCreate, PlanResponse, PlanStats, PlanUpdate
from ...services.plan_service import PlanService

router = APIRouter(tags=["plans-v1"])


@router.get("", response_model=List[PlanResponse])
def list_plans(
    include_inactive: bool = Query(False),
    include_deleted: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> List[PlanResponse]:
    """Active plans for everyone; the include_* filters only apply for admins."""
    is_admin = current_user.is_admin
    plans = PlanService(db).list_plans(
        include_inactive=include_inactive and is_admin,
        include_deleted=include_deleted and is_admin,
    )
    return [PlanResponse.model_validate(plan) for plan in plans]


@router.post("", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(
    payload: PlanCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> PlanResponse:
    return PlanResponse.model_validate(PlanService(db).create_plan(payload))


@router.get("/{plan_id}", response_model=PlanResponse)
def get_plan(
    plan_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_active_user),
) -> PlanResponse:
    return PlanResponse.model_validate(PlanService(db).get_plan(plan_id))


@router.patch("/{plan_id}", response_model=PlanResponse)
def update_plan(
    plan_id: str,
    payload: PlanUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> PlanResponse:
    return PlanResponse.model_validate(PlanService(db).update_plan(plan_id, payload))


@router.post("/{plan_id}/deactivate", response_model=PlanResponse)
def deactivate_plan(
    plan_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> PlanResponse:
    return PlanResponse.model_validate(PlanService(db).deactivate_plan(plan_id))


@router.delete("/{plan_id}", response_model=PlanResponse)
def delete_plan(
    plan_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> PlanResponse:
    return PlanResponse.model_validate(PlanService(db).delete_plan(plan_id))


@router.get("/{plan_id}/stats", response_model=PlanStats)
def plan_stats(
    plan_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> PlanStats:
    return PlanStats.model_validate(PlanService(db).get_plan_stats(plan_id))
