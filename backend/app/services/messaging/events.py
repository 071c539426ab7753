# backend/app/services/messaging/events.py
"""
WebSocket envelope definitions and builders.

Every frame in either direction is a JSON object:
{
    "event": str,      # Event name
    "data": dict,      # Event-specific data
    "timestamp": str   # ISO 8601, server frames only
}
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ServerEvent(str, Enum):
    """Events the gateway emits."""

    CONNECTED = "connected"
    CONNECT_ERROR = "connect_error"
    JOINED_CONVERSATION = "joined_conversation"
    LEFT_CONVERSATION = "left_conversation"
    NEW_MESSAGE = "new_message"
    MESSAGE_UPDATED = "message_updated"
    MESSAGE_DELETED = "message_deleted"
    MESSAGES_READ = "messages_read"
    USER_TYPING = "user_typing"
    NOTIFICATION = "notification"
    PONG = "pong"
    ERROR = "error"


class ClientEvent(str, Enum):
    """Events a connected client may send."""

    JOIN_CONVERSATION = "join_conversation"
    LEAVE_CONVERSATION = "leave_conversation"
    TYPING = "typing"
    PING = "ping"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def build_envelope(event: ServerEvent | str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    name = event.value if isinstance(event, ServerEvent) else event
    return {
        "event": name,
        "data": data or {},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def build_error(message: str, code: Optional[str] = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {"message": message}
    if code:
        data["code"] = code
    return build_envelope(ServerEvent.ERROR, data)


def serialize_message(message: Any) -> Dict[str, Any]:
    """Wire form of a ``Message`` row; deleted messages lose their content."""
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "sender_type": message.sender_type,
        "message_type": message.message_type,
        "content": None if message.is_deleted else message.content,
        "media_url": None if message.is_deleted else message.media_url,
        "reply_to_id": message.reply_to_id,
        "is_edited": message.is_edited,
        "edited_at": _iso(message.edited_at),
        "is_deleted": message.is_deleted,
        "read_at": _iso(message.read_at),
        "created_at": _iso(message.created_at),
    }


def build_new_message_event(message: Any) -> Dict[str, Any]:
    return build_envelope(ServerEvent.NEW_MESSAGE, {"message": serialize_message(message)})


def build_message_updated_event(message: Any) -> Dict[str, Any]:
    return build_envelope(ServerEvent.MESSAGE_UPDATED, {"message": serialize_message(message)})


def build_message_deleted_event(conversation_id: str, message_id: str) -> Dict[str, Any]:
    return build_envelope(
        ServerEvent.MESSAGE_DELETED, {"conversation_id": conversation_id, "message_id": message_id}
    )


def build_messages_read_event(
    conversation_id: str, reader_id: str, message_ids: List[str], read_at: datetime
) -> Dict[str, Any]:
    return build_envelope(
        ServerEvent.MESSAGES_READ,
        {
            "conversation_id": conversation_id,
            "reader_id": reader_id,
            "message_ids": message_ids,
            "read_at": read_at.isoformat(),
        },
    )


def build_typing_event(conversation_id: str, user_id: str, user_type: str, is_typing: bool) -> Dict[str, Any]:
    return build_envelope(
        ServerEvent.USER_TYPING,
        {
            "conversation_id": conversation_id,
            "user_id": user_id,
            "user_type": user_type,
            "is_typing": is_typing,
        },
    )


def build_notification_event(notification: Any) -> Dict[str, Any]:
    return build_envelope(
        ServerEvent.NOTIFICATION,
        {
            "id": notification.id,
            "type": notification.notification_type,
            "title": notification.title,
            "message": notification.message,
            "action_url": notification.action_url,
            "priority": notification.priority,
            "metadata": notification.extra_data or {},
            "created_at": _iso(notification.created_at),
        },
    )
