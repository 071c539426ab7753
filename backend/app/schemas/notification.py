"""Notification centre schemas."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from ..core.enums import NotificationPriority
from ._strict_base import ORMResponse


class NotificationResponse(ORMResponse):
    id: str
    notification_type: str
    title: str
    message: str
    action_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="extra_data")
    priority: NotificationPriority
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationCount(ORMResponse):
    unread_count: int
