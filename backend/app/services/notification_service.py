# backend/app/services/notification_service.py
"""
Notification Service for CoachDesk.

Stores in-app notifications and pushes each one to the recipient's
``user:{type}:{id}`` room once committed. The push is best-effort: when no
gateway loop runs in this process (Celery workers) the notification is only
stored and the client picks it up from the REST list.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.enums import NotificationPriority, NotificationType
from ..core.exceptions import NotFoundException
from ..models.notification import Notification
from ..models.types import utcnow
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .messaging.publisher import schedule_notification

logger = logging.getLogger(__name__)


@dataclass
class Recipient:
    user_id: str
    user_type: str


class NotificationService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_notification_repository(db)

    @BaseService.measure_operation("notify")
    def notify(
        self,
        recipients: Iterable[Recipient],
        notification_type: NotificationType,
        title: str,
        message: str,
        *,
        action_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
    ) -> List[Notification]:
        """Create one notification per recipient, then push them to connected sockets."""
        targets = list(recipients)
        if not targets:
            return []
        with self.transaction():
            created = [
                self.repository.create(
                    user_id=recipient.user_id,
                    notification_type=notification_type.value,
                    title=title,
                    message=message,
                    action_url=action_url,
                    extra_data=metadata,
                    priority=priority.value,
                )
                for recipient in targets
            ]
        for recipient, notification in zip(targets, created):
            schedule_notification(recipient.user_type, recipient.user_id, notification)
        self.log_operation("notifications_created", notification_type=notification_type.value, count=len(created))
        return created

    def list_for_user(
        self, user_id: str, *, unread_only: bool = False, page: int = 1, per_page: int = 20
    ) -> Tuple[List[Notification], int]:
        return self.repository.list_for_user(user_id, unread_only=unread_only, page=page, per_page=per_page)

    def unread_count(self, user_id: str) -> int:
        return self.repository.count_unread(user_id)

    def _get_own(self, user_id: str, notification_id: str) -> Notification:
        notification = self.repository.get_by_id(notification_id, load_relationships=False)
        if notification is None or notification.user_id != user_id:
            raise NotFoundException("Notification not found", code="NOTIFICATION_NOT_FOUND")
        return notification

    def mark_read(self, user_id: str, notification_id: str) -> Notification:
        notification = self._get_own(user_id, notification_id)
        if not notification.is_read:
            with self.transaction():
                notification.is_read = True
                notification.read_at = utcnow()
        return notification

    def mark_all_read(self, user_id: str) -> int:
        with self.transaction():
            count = self.repository.mark_all_read(user_id, utcnow())
        return count

    def delete(self, user_id: str, notification_id: str) -> None:
        notification = self._get_own(user_id, notification_id)
        with self.transaction():
            self.db.delete(notification)
