"""Messaging events."""
from dataclasses import dataclass
from typing import ClassVar, List

from .base import DomainEvent


@dataclass
class MessageCreated(DomainEvent):
    name: ClassVar[str] = "message.created"

    message_id: str
    conversation_id: str
    sender_id: str
    recipient_ids: List[str]
