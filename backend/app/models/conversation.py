# backend/app/models/conversation.py
"""
Conversation model for messaging.

A direct conversation is unique per user pair: ``direct_key`` holds the two
participant ids sorted and joined, so get-or-create is a single lookup.
Per-participant state (unread count, last read) lives on
``ConversationParticipant``.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.enums import ConversationType
from ..database import Base
from .types import TimestampMixin, UTCDateTime, ulid_pk, utcnow


def direct_key_for(user_a: str, user_b: str) -> str:
    first, second = sorted((user_a, user_b))
    return f"{first}:{second}"


class Conversation(TimestampMixin, Base):
    __tablename__ = "conversations"

    id = ulid_pk()
    conversation_type = Column(String(10), nullable=False, default=ConversationType.DIRECT.value)
    direct_key = Column(String(60), nullable=True, unique=True, index=True)
    title = Column(String(200), nullable=True)
    last_message_at = Column(UTCDateTime, nullable=True, index=True)
    last_message_preview = Column(String(200), nullable=True)

    participants = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def participant_ids(self) -> list[str]:
        return [p.user_id for p in self.participants]

    def participant_for(self, user_id: str) -> "ConversationParticipant | None":
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None


class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"
    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_conversation_participant"),
    )

    id = ulid_pk()
    conversation_id = Column(
        String(26), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_type = Column(String(20), nullable=False)
    unread_count = Column(Integer, nullable=False, default=0)
    last_read_at = Column(UTCDateTime, nullable=True)
    joined_at = Column(UTCDateTime, nullable=False, default=utcnow)

    conversation = relationship("Conversation", back_populates="participants")
    user = relationship("User", lazy="joined")

    @property
    def name(self) -> str | None:
        return self.user.full_name if self.user is not None else None
