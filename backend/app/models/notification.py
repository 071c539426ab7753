# backend/app/models/notification.py

from sqlalchemy import JSON, Boolean, Column, ForeignKey, String, Text

from ..core.enums import NotificationPriority
from ..database import Base
from .types import UTCDateTime, ulid_pk, utcnow


class Notification(Base):
    """In-app notification shown in a user's notification centre."""

    __tablename__ = "notifications"

    id = ulid_pk()
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    notification_type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(500), nullable=True)
    extra_data = Column("metadata", JSON, nullable=True)
    priority = Column(String(10), nullable=False, default=NotificationPriority.NORMAL.value)
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    read_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
