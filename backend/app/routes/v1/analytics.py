# backend/app/routes/v1/analytics.py
"""
Dashboard analytics routes - API v1

Mounted under /api/v1/analytics. Community analytics live on the
communities router.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...api.dependencies.auth import require_admin, require_coach
from ...database import get_db
from ...models.user import User
from ...schemas.analytics import AdminDashboard, CoachDashboard
from ...services.analytics_service import DEFAULT_REVENUE_MONTHS, AnalyticsService

router = APIRouter(tags=["analytics-v1"])


@router.get("/coach", response_model=CoachDashboard)
def coach_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> CoachDashboard:
    return CoachDashboard.model_validate(AnalyticsService(db).coach_dashboard(current_user.id))


@router.get("/admin", response_model=AdminDashboard)
def admin_dashboard(
    months: int = Query(DEFAULT_REVENUE_MONTHS, ge=1, le=24),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> AdminDashboard:
    return AdminDashboard.model_validate(AnalyticsService(db).admin_dashboard(months))
