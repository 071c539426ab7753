# backend/app/repositories/notification_repository.py

from datetime import datetime
from typing import List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.notification import Notification
from .base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, db: Session):
        super().__init__(db, Notification)

    def list_for_user(
        self, user_id: str, *, unread_only: bool = False, page: int = 1, per_page: int = 20
    ) -> Tuple[List[Notification], int]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return self._paginate(query.order_by(Notification.created_at.desc(), Notification.id.desc()), page, per_page)

    def count_unread(self, user_id: str) -> int:
        query = self.db.query(func.count(Notification.id)).filter(
            Notification.user_id == user_id, Notification.is_read.is_(False)
        )
        return int(self._execute_scalar(query) or 0)

    def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        count = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True, Notification.read_at: read_at}, synchronize_session=False)
        )
        self.db.flush()
        return int(count)
