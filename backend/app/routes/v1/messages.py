# backend/app/routes/v1/messages.py
"""
Message routes - API v1

Mounted under /api/v1/messages. Sender-only edits (inside the edit window)
and soft deletes; each change is pushed to the conversation room.
"""

import asyncio

from fastapi import APIRouter, Depends

from ...api.dependencies.auth import get_current_active_user
from ...api.dependencies.services import get_message_service
from ...models.user import User
from ...schemas.messaging import MessageEdit, MessageResponse
from ...services.message_service import MessageService
from ...services.messaging.publisher import publish_message_deleted, publish_message_updated

router = APIRouter(tags=["messages-v1"])


@router.patch("/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: str,
    payload: MessageEdit,
    current_user: User = Depends(get_current_active_user),
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    message = await asyncio.to_thread(service.edit_message, current_user.id, message_id, payload.content)
    await publish_message_updated(message)
    return MessageResponse.model_validate(message)


@router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: str,
    current_user: User = Depends(get_current_active_user),
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    message = await asyncio.to_thread(service.delete_message, current_user.id, message_id)
    await publish_message_deleted(message.conversation_id, message.id)
    return MessageResponse.model_validate(message)
