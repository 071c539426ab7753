# backend/app/routes/v1/notifications.py
"""Notification inbox routes - API v1."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...api.dependencies.auth import get_current_active_user
from ...database import get_db
from ...models.user import User
from ...schemas.base_responses import DeleteResponse, PaginatedResponse, SuccessResponse
from ...schemas.notification import NotificationCount, NotificationResponse
from ...services.notification_service import NotificationService

router = APIRouter(tags=["notifications-v1"])


@router.get("", response_model=PaginatedResponse[NotificationResponse])
def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PaginatedResponse[NotificationResponse]:
    """List notifications for the current user, newest first."""
    items, total = NotificationService(db).list_for_user(
        current_user.id, unread_only=unread_only, page=page, per_page=per_page
    )
    return PaginatedResponse[NotificationResponse].build(
        [NotificationResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.get("/unread-count", response_model=NotificationCount)
def unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationCount:
    return NotificationCount(unread_count=NotificationService(db).unread_count(current_user.id))


@router.post("/read-all", response_model=SuccessResponse)
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> SuccessResponse:
    count = NotificationService(db).mark_all_read(current_user.id)
    return SuccessResponse(message="Notifications marked as read", data={"count": count})


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationResponse:
    return NotificationResponse.model_validate(NotificationService(db).mark_read(current_user.id, notification_id))


@router.delete("/{notification_id}", response_model=DeleteResponse)
def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> DeleteResponse:
    NotificationService(db).delete(current_user.id, notification_id)
    return DeleteResponse(message="Notification deleted")
