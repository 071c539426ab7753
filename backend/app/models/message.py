# backend/app/models/message.py
"""
Message model for conversations.

Deletion is soft: ``is_deleted`` hides the content from readers while the
row keeps its place in the history.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from ..core.enums import MessageType
from ..database import Base
from .types import UTCDateTime, ulid_pk, utcnow


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_conversation_created", "conversation_id", "created_at"),)

    id = ulid_pk()
    conversation_id = Column(
        String(26), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    sender_type = Column(String(20), nullable=False)
    message_type = Column(String(10), nullable=False, default=MessageType.TEXT.value)
    content = Column(Text, nullable=False)
    media_url = Column(String(500), nullable=True)
    reply_to_id = Column(String(26), ForeignKey("messages.id", ondelete="SET NULL"), nullable=True)
    is_edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(UTCDateTime, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(UTCDateTime, nullable=True)
    read_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    sender = relationship("User", foreign_keys=[sender_id], lazy="joined")

    def __repr__(self) -> str:
        return f"<Message {self.id} in {self.conversation_id}>"
