# backend/app/routes/v1/subscriptions.py
"""
Coach subscription routes - API v1

Mounted under /api/v1/subscriptions. Admins manage every subscription;
coaches see and manage their own.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...api.dependencies.auth import require_admin, require_coach, require_coach_or_admin
from ...core.enums import SubscriptionStatus
from ...core.exceptions import NotFoundException
from ...database import get_db
from ...models.billing import Subscription
from ...models.user import User
from ...schemas.base_responses import PaginatedResponse
from ...schemas.billing import SubscriptionCancel, SubscriptionCreate, SubscriptionResponse, SubscriptionStats
from ...services.subscription_service import SubscriptionService

router = APIRouter(tags=["subscriptions-v1"])


def _visible_subscription(service: SubscriptionService, subscription_id: str, user: User) -> Subscription:
    subscription = service.get_subscription(subscription_id)
    if not user.is_admin and subscription.coach_id != user.id:
        raise NotFoundException("Subscription not found", code="SUBSCRIPTION_NOT_FOUND")
    return subscription


@router.get("", response_model=PaginatedResponse[SubscriptionResponse])
def list_subscriptions(
    coach_id: Optional[str] = Query(None),
    plan_id: Optional[str] = Query(None),
    status_filter: Optional[SubscriptionStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> PaginatedResponse[SubscriptionResponse]:
    if not current_user.is_admin:
        coach_id = current_user.id
    items, total = SubscriptionService(db).list_subscriptions(
        coach_id=coach_id, plan_id=plan_id, status=status_filter, page=page, per_page=per_page
    )
    return PaginatedResponse[SubscriptionResponse].build(
        [SubscriptionResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.post("", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
def create_subscription(
    payload: SubscriptionCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> SubscriptionResponse:
    subscription = SubscriptionService(db).create_subscription(
        payload.coach_id, payload.plan_id, payload.billing_cycle, start_trial=payload.start_trial
    )
    return SubscriptionResponse.model_validate(subscription)


@router.get("/current", response_model=Optional[SubscriptionResponse])
def current_subscription(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> Optional[SubscriptionResponse]:
    """The caller's active or trialing subscription, or null."""
    subscription = SubscriptionService(db).get_current_for_coach(current_user.id)
    return SubscriptionResponse.model_validate(subscription) if subscription else None


@router.get("/expiring", response_model=List[SubscriptionResponse])
def expiring_soon(
    days: Optional[int] = Query(None, ge=1, le=90),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> List[SubscriptionResponse]:
    return [SubscriptionResponse.model_validate(s) for s in SubscriptionService(db).list_expiring_soon(days)]


@router.get("/stats", response_model=SubscriptionStats)
def subscription_stats(
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> SubscriptionStats:
    return SubscriptionStats(**SubscriptionService(db).stats())


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
def get_subscription(
    subscription_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> SubscriptionResponse:
    service = SubscriptionService(db)
    return SubscriptionResponse.model_validate(_visible_subscription(service, subscription_id, current_user))


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
def cancel_subscription(
    subscription_id: str,
    payload: SubscriptionCancel,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> SubscriptionResponse:
    """Immediate cancellation ends access now; otherwise access runs to the period end."""
    service = SubscriptionService(db)
    _visible_subscription(service, subscription_id, current_user)
    subscription = service.cancel_subscription(subscription_id, immediate=payload.immediate, reason=payload.reason)
    return SubscriptionResponse.model_validate(subscription)


@router.post("/{subscription_id}/reactivate", response_model=SubscriptionResponse)
def reactivate_subscription(
    subscription_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> SubscriptionResponse:
    service = SubscriptionService(db)
    _visible_subscription(service, subscription_id, current_user)
    return SubscriptionResponse.model_validate(service.reactivate_subscription(subscription_id))


@router.post("/{subscription_id}/resume", response_model=SubscriptionResponse)
def resume_subscription(
    subscription_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> SubscriptionResponse:
    """Withdraw a pending cancellation and keep the current period."""
    service = SubscriptionService(db)
    _visible_subscription(service, subscription_id, current_user)
    return SubscriptionResponse.model_validate(service.resume_subscription(subscription_id))


@router.post("/{subscription_id}/renew", response_model=SubscriptionResponse)
def renew_subscription(
    subscription_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> SubscriptionResponse:
    return SubscriptionResponse.model_validate(SubscriptionService(db).renew_subscription(subscription_id))
