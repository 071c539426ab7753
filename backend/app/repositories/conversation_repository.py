# backend/app/repositories/conversation_repository.py
"""
Conversation Repository for CoachDesk.

Direct conversations are looked up by ``direct_key`` so a pair of users
always shares exactly one thread.
"""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.enums import ConversationType
from ..models.conversation import Conversation, ConversationParticipant, direct_key_for
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConversationRepository(BaseRepository[Conversation]):
    def __init__(self, db: Session):
        super().__init__(db, Conversation)

    def get_direct(self, user_a: str, user_b: str) -> Optional[Conversation]:
        return self.find_one_by(direct_key=direct_key_for(user_a, user_b))

    def create_direct(self, first: tuple[str, str], second: tuple[str, str]) -> Conversation:
        """Create a direct thread from two ``(user_id, user_type)`` pairs."""
        conversation = Conversation(
            conversation_type=ConversationType.DIRECT.value,
            direct_key=direct_key_for(first[0], second[0]),
        )
        conversation.participants = [
            ConversationParticipant(user_id=user_id, user_type=user_type) for user_id, user_type in (first, second)
        ]
        self.db.add(conversation)
        self.db.flush()
        return conversation

    def list_for_user(self, user_id: str, *, limit: int = 50, offset: int = 0) -> List[Conversation]:
        """Newest activity first; threads without messages sort by creation."""
        query = (
            self.db.query(Conversation)
            .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
            .filter(ConversationParticipant.user_id == user_id)
            .order_by(
                func.coalesce(Conversation.last_message_at, Conversation.created_at).desc(),
                Conversation.id.desc(),
            )
            .offset(offset)
            .limit(limit)
        )
        return self._execute_query(query)

    def get_participant(self, conversation_id: str, user_id: str) -> Optional[ConversationParticipant]:
        return (
            self.db.query(ConversationParticipant)
            .filter(
                ConversationParticipant.conversation_id == conversation_id,
                ConversationParticipant.user_id == user_id,
            )
            .first()
        )

    def is_participant(self, conversation_id: str, user_id: str) -> bool:
        return self.get_participant(conversation_id, user_id) is not None

    def total_unread(self, user_id: str) -> int:
        query = self.db.query(func.coalesce(func.sum(ConversationParticipant.unread_count), 0)).filter(
            ConversationParticipant.user_id == user_id
        )
        return int(self._execute_scalar(query) or 0)
