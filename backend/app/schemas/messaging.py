"""Conversation and message schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from ..core.enums import ConversationType, MessageType
from ._strict_base import ORMResponse, StrictRequestModel


class ConversationCreate(StrictRequestModel):
    participant_id: str = Field(min_length=26, max_length=26)


class ParticipantResponse(ORMResponse):
    user_id: str
    user_type: str
    name: Optional[str] = None
    unread_count: int
    last_read_at: Optional[datetime] = None


class MessageCreate(StrictRequestModel):
    content: str = Field(min_length=1, max_length=10000)
    message_type: MessageType = MessageType.TEXT
    media_url: Optional[str] = Field(default=None, max_length=500)
    reply_to_id: Optional[str] = Field(default=None, min_length=26, max_length=26)


class MessageEdit(StrictRequestModel):
    content: str = Field(min_length=1, max_length=10000)


class MessageResponse(ORMResponse):
    id: str
    conversation_id: str
    sender_id: str
    sender_type: str
    message_type: MessageType
    content: Optional[str] = None
    media_url: Optional[str] = None
    reply_to_id: Optional[str] = None
    is_edited: bool
    edited_at: Optional[datetime] = None
    is_deleted: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    @model_validator(mode="after")
    def hide_deleted_content(self) -> "MessageResponse":
        if self.is_deleted:
            self.content = None
            self.media_url = None
        return self


class ConversationResponse(ORMResponse):
    id: str
    conversation_type: ConversationType
    title: Optional[str] = None
    participants: List[ParticipantResponse]
    last_message_at: Optional[datetime] = None
    last_message: Optional[MessageResponse] = None
    unread_count: int = 0
    created_at: datetime


class MessagePage(ORMResponse):
    items: List[MessageResponse]
    has_more: bool
    next_cursor: Optional[str] = None


class MarkReadResponse(ORMResponse):
    conversation_id: str
    marked: int


class UnreadCountResponse(ORMResponse):
    unread_count: int
