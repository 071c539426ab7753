# backend/app/services/message_service.py
"""
Message Service for chat functionality.

Handles:
- Sending messages (updates the thread and the recipients' unread counts)
- Cursor paging, newest first
- Editing within the edit window and soft deletion, sender only
- Marking a conversation read

Realtime fan-out happens in the routes after these methods commit; the
services only return what the routes need to publish.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import BusinessRuleException, ForbiddenException, NotFoundException, ValidationException
from ..events.message_events import MessageCreated
from ..models.message import Message
from ..models.types import utcnow
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.messaging import MessageCreate
from .base import BaseService
from .conversation_service import ConversationService

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200


@dataclass
class MessagePageResult:
    messages: List[Message]
    has_more: bool
    next_cursor: Optional[str]


@dataclass
class MarkReadResult:
    """Ids stamped read, for the ``messages_read`` broadcast."""

    conversation_id: str
    message_ids: List[str]
    read_at: datetime


class MessageService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_message_repository(db)
        self.conversation_repository = RepositoryFactory.create_conversation_repository(db)
        self.conversations = ConversationService(db)

    def _get_own_message(self, message_id: str, user_id: str) -> Message:
        message = self.repository.get_by_id(message_id)
        if message is None or not self.conversation_repository.is_participant(message.conversation_id, user_id):
            raise NotFoundException("Message not found", code="MESSAGE_NOT_FOUND")
        if message.sender_id != user_id:
            raise ForbiddenException("Only the sender can change this message", code="NOT_SENDER")
        if message.is_deleted:
            raise BusinessRuleException("Message was deleted", code="MESSAGE_DELETED")
        return message

    @BaseService.measure_operation("send_message")
    def send_message(self, sender: User, conversation_id: str, data: MessageCreate) -> Message:
        """
        Store a message from a participant.

        Raises:
            NotFoundException: Unknown conversation or caller not a participant
            ValidationException: ``reply_to_id`` points outside the conversation
        """
        conversation = self.conversations.get_for_participant(conversation_id, sender.id)
        if data.reply_to_id:
            parent = self.repository.get_by_id(data.reply_to_id, load_relationships=False)
            if parent is None or parent.conversation_id != conversation.id:
                raise ValidationException("Reply target is not in this conversation", code="INVALID_REPLY")

        now = utcnow()
        with self.transaction():
            message = self.repository.create(
                conversation_id=conversation.id,
                sender_id=sender.id,
                sender_type=sender.user_type,
                message_type=data.message_type.value,
                content=data.content,
                media_url=data.media_url,
                reply_to_id=data.reply_to_id,
                created_at=now,
            )
            conversation.last_message_at = now
            conversation.last_message_preview = data.content[:PREVIEW_LENGTH]
            recipients = []
            for participant in conversation.participants:
                if participant.user_id == sender.id:
                    continue
                participant.unread_count = (participant.unread_count or 0) + 1
                recipients.append(participant.user_id)
            self.publish_after_commit(
                MessageCreated(
                    message_id=message.id,
                    conversation_id=conversation.id,
                    sender_id=sender.id,
                    recipient_ids=recipients,
                )
            )
        return message

    @BaseService.measure_operation("list_messages")
    def list_messages(
        self, user_id: str, conversation_id: str, *, limit: int = 50, before: Optional[str] = None
    ) -> MessagePageResult:
        """Newest-first page. ``before`` is the id of the oldest message already loaded."""
        self.conversations.get_for_participant(conversation_id, user_id)
        limit = max(1, min(limit, settings.message_page_max))
        cursor: Optional[Message] = None
        if before:
            cursor = self.repository.get_by_id(before, load_relationships=False)
            if cursor is None or cursor.conversation_id != conversation_id:
                raise ValidationException("Invalid cursor", code="INVALID_CURSOR")
        rows = self.repository.list_page(conversation_id, limit=limit + 1, before=cursor)
        has_more = len(rows) > limit
        messages = rows[:limit]
        return MessagePageResult(
            messages=messages,
            has_more=has_more,
            next_cursor=messages[-1].id if has_more and messages else None,
        )

    @BaseService.measure_operation("edit_message")
    def edit_message(self, user_id: str, message_id: str, content: str) -> Message:
        message = self._get_own_message(message_id, user_id)
        window = timedelta(minutes=settings.message_edit_window_minutes)
        if utcnow() - message.created_at > window:
            raise BusinessRuleException(
                f"Messages can only be edited within {settings.message_edit_window_minutes} minutes",
                code="EDIT_WINDOW_EXPIRED",
            )
        with self.transaction():
            message.content = content
            message.is_edited = True
            message.edited_at = utcnow()
        return message

    @BaseService.measure_operation("delete_message")
    def delete_message(self, user_id: str, message_id: str) -> Message:
        message = self._get_own_message(message_id, user_id)
        with self.transaction():
            message.is_deleted = True
            message.deleted_at = utcnow()
        return message

    @BaseService.measure_operation("mark_conversation_read")
    def mark_read(self, user_id: str, conversation_id: str) -> MarkReadResult:
        conversation = self.conversations.get_for_participant(conversation_id, user_id)
        now = utcnow()
        with self.transaction():
            ids = self.repository.mark_read(conversation.id, user_id, now)
            participant = conversation.participant_for(user_id)
            if participant is not None:
                participant.unread_count = 0
                participant.last_read_at = now
        return MarkReadResult(conversation_id=conversation.id, message_ids=ids, read_at=now)
