# backend/app/services/messaging/publisher.py
"""
High-level realtime publishing for messaging and notifications.

Routes ``await`` the async functions after the service call commits; sync
code (event handlers) uses ``schedule_notification`` which hands the
emission to the gateway loop. Publishing is fire-and-forget: failures are
logged, never raised, because the rows are already committed.
"""

from datetime import datetime
import logging
from typing import Any, List

from .connection_manager import connection_manager, conversation_room
from .events import (
    build_message_deleted_event,
    build_message_updated_event,
    build_messages_read_event,
    build_new_message_event,
    build_notification_event,
)

logger = logging.getLogger(__name__)


async def publish_new_message(message: Any) -> None:
    try:
        await connection_manager.emit_to_room(
            conversation_room(message.conversation_id), build_new_message_event(message)
        )
    except Exception as exc:
        logger.error("[WS] new_message publish failed for %s: %s", message.id, exc)


async def publish_message_updated(message: Any) -> None:
    try:
        await connection_manager.emit_to_room(
            conversation_room(message.conversation_id), build_message_updated_event(message)
        )
    except Exception as exc:
        logger.error("[WS] message_updated publish failed for %s: %s", message.id, exc)


async def publish_message_deleted(conversation_id: str, message_id: str) -> None:
    try:
        await connection_manager.emit_to_room(
            conversation_room(conversation_id), build_message_deleted_event(conversation_id, message_id)
        )
    except Exception as exc:
        logger.error("[WS] message_deleted publish failed for %s: %s", message_id, exc)


async def publish_messages_read(
    conversation_id: str, reader_id: str, message_ids: List[str], read_at: datetime
) -> None:
    try:
        await connection_manager.emit_to_room(
            conversation_room(conversation_id),
            build_messages_read_event(conversation_id, reader_id, message_ids, read_at),
        )
    except Exception as exc:
        logger.error("[WS] messages_read publish failed for %s: %s", conversation_id, exc)


async def publish_notification(user_type: str, user_id: str, notification: Any) -> None:
    try:
        await connection_manager.emit_to_user(user_type, user_id, build_notification_event(notification))
    except Exception as exc:
        logger.error("[WS] notification publish failed for %s: %s", user_id, exc)


def schedule_notification(user_type: str, user_id: str, notification: Any) -> bool:
    """Sync entry point; returns False when no gateway loop is running here."""
    envelope = build_notification_event(notification)
    scheduled = connection_manager.schedule(connection_manager.emit_to_user(user_type, user_id, envelope))
    if not scheduled:
        logger.debug("[WS] no gateway loop; notification %s stored only", notification.id)
    return scheduled
