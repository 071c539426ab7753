# backend/app/services/conversation_service.py
"""
Conversation Service for direct messaging.

Handles:
- Listing a user's conversations with the last message and unread count
- Get-or-create of the direct thread between two users
- Participant checks used by the REST routes and the WebSocket gateway

Allowed pairs: a coach and a client linked by an active relationship,
an admin and anyone, and two coaches.
"""

from dataclasses import dataclass
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import UserType
from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..models.conversation import Conversation
from ..models.message import Message
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass
class ConversationSummary:
    """A conversation plus the caller-specific fields the list view needs."""

    conversation: Conversation
    last_message: Optional[Message]
    unread_count: int


class ConversationService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.conversation_repository = RepositoryFactory.create_conversation_repository(db)
        self.message_repository = RepositoryFactory.create_message_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.client_coach_repository = RepositoryFactory.create_client_coach_repository(db)

    def can_message(self, user_a: User, user_b: User) -> bool:
        types = {user_a.user_type, user_b.user_type}
        if UserType.ADMIN.value in types:
            return True
        if types == {UserType.COACH.value}:
            return True
        if types == {UserType.COACH.value, UserType.CLIENT.value}:
            coach, client = (user_a, user_b) if user_a.is_coach else (user_b, user_a)
            return self.client_coach_repository.is_linked(coach.id, client.id)
        return False

    @BaseService.measure_operation("get_or_create_direct")
    def get_or_create_direct(self, user: User, participant_id: str) -> Conversation:
        """
        Return the direct thread with ``participant_id``, creating it if needed.

        Raises:
            ValidationException: Messaging yourself
            NotFoundException: Unknown or inactive participant
            ForbiddenException: The pair may not message each other
        """
        if participant_id == user.id:
            raise ValidationException("Cannot start a conversation with yourself", code="SELF_CONVERSATION")
        other = self.user_repository.get_by_id(participant_id, load_relationships=False)
        if other is None or other.is_deleted or not other.is_active:
            raise NotFoundException("User not found", code="USER_NOT_FOUND")
        if not self.can_message(user, other):
            raise ForbiddenException("You cannot message this user", code="MESSAGING_NOT_ALLOWED")
        existing = self.conversation_repository.get_direct(user.id, other.id)
        if existing is not None:
            return existing
        with self.transaction():
            conversation = self.conversation_repository.create_direct(
                (user.id, user.user_type), (other.id, other.user_type)
            )
        self.log_operation("conversation_created", conversation_id=conversation.id)
        return conversation

    def get_for_participant(self, conversation_id: str, user_id: str) -> Conversation:
        conversation = self.conversation_repository.get_by_id(conversation_id)
        if conversation is None or conversation.participant_for(user_id) is None:
            raise NotFoundException("Conversation not found", code="CONVERSATION_NOT_FOUND")
        return conversation

    def is_participant(self, conversation_id: str, user_id: str) -> bool:
        return self.conversation_repository.is_participant(conversation_id, user_id)

    def summarize(self, conversation: Conversation, user_id: str) -> ConversationSummary:
        participant = conversation.participant_for(user_id)
        return ConversationSummary(
            conversation=conversation,
            last_message=self.message_repository.get_latest(conversation.id),
            unread_count=participant.unread_count if participant else 0,
        )

    @BaseService.measure_operation("list_conversations")
    def list_for_user(self, user_id: str, *, limit: int = 50, offset: int = 0) -> List[ConversationSummary]:
        conversations = self.conversation_repository.list_for_user(user_id, limit=limit, offset=offset)
        return [self.summarize(conversation, user_id) for conversation in conversations]

    def total_unread(self, user_id: str) -> int:
        return self.conversation_repository.total_unread(user_id)
