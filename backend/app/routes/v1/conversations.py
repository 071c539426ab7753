# backend/app/routes/v1/conversations.py
"""
Conversation routes - API v1

Mounted under /api/v1/conversations. Writes commit in a worker thread, then
the realtime event goes out to the conversation room.

Endpoints:
    GET /                                 → Caller's conversations, newest activity first
    POST /                                → Create or fetch a direct conversation
    GET /unread-count                     → Total unread messages
    GET /{conversation_id}                → One conversation
    GET /{conversation_id}/messages       → Messages, newest first (``before`` cursor)
    POST /{conversation_id}/messages      → Send a message
    POST /{conversation_id}/read          → Mark the conversation read
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import get_current_active_user
from ...api.dependencies.services import get_conversation_service, get_message_service
from ...models.user import User
from ...schemas.messaging import (
    ConversationCreate,
    ConversationResponse,
    MarkReadResponse,
    MessageCreate,
    MessagePage,
    MessageResponse,
    ParticipantResponse,
    UnreadCountResponse,
)
from ...services.conversation_service import ConversationService, ConversationSummary
from ...services.message_service import MessageService
from ...services.messaging.publisher import publish_messages_read, publish_new_message

logger = logging.getLogger(__name__)

router = APIRouter(tags=["conversations-v1"])


def _conversation_response(summary: ConversationSummary) -> ConversationResponse:
    conversation = summary.conversation
    return ConversationResponse(
        id=conversation.id,
        conversation_type=conversation.conversation_type,
        title=conversation.title,
        participants=[ParticipantResponse.model_validate(p) for p in conversation.participants],
        last_message_at=conversation.last_message_at,
        last_message=MessageResponse.model_validate(summary.last_message) if summary.last_message else None,
        unread_count=summary.unread_count,
        created_at=conversation.created_at,
    )


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_active_user),
    service: ConversationService = Depends(get_conversation_service),
) -> List[ConversationResponse]:
    summaries = await asyncio.to_thread(service.list_for_user, current_user.id, limit=limit, offset=offset)
    return [_conversation_response(summary) for summary in summaries]


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    payload: ConversationCreate,
    current_user: User = Depends(get_current_active_user),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationResponse:
    """Return the direct conversation with ``participant_id``, creating it on first contact."""
    conversation = await asyncio.to_thread(service.get_or_create_direct, current_user, payload.participant_id)
    return _conversation_response(service.summarize(conversation, current_user.id))


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: User = Depends(get_current_active_user),
    service: ConversationService = Depends(get_conversation_service),
) -> UnreadCountResponse:
    total = await asyncio.to_thread(service.total_unread, current_user.id)
    return UnreadCountResponse(unread_count=total)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    current_user: User = Depends(get_current_active_user),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationResponse:
    conversation = await asyncio.to_thread(service.get_for_participant, conversation_id, current_user.id)
    return _conversation_response(service.summarize(conversation, current_user.id))


@router.get("/{conversation_id}/messages", response_model=MessagePage)
async def list_messages(
    conversation_id: str,
    limit: int = Query(50, ge=1, le=100),
    before: Optional[str] = Query(None, description="Id of the oldest message already loaded"),
    current_user: User = Depends(get_current_active_user),
    service: MessageService = Depends(get_message_service),
) -> MessagePage:
    page = await asyncio.to_thread(
        service.list_messages, current_user.id, conversation_id, limit=limit, before=before
    )
    return MessagePage(
        items=[MessageResponse.model_validate(message) for message in page.messages],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
    )


@router.post(
    "/{conversation_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED
)
async def send_message(
    conversation_id: str,
    payload: MessageCreate,
    current_user: User = Depends(get_current_active_user),
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    # Service handles creation and commit; publishing is fire-and-forget
    message = await asyncio.to_thread(service.send_message, current_user, conversation_id, payload)
    await publish_new_message(message)
    return MessageResponse.model_validate(message)


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(
    conversation_id: str,
    current_user: User = Depends(get_current_active_user),
    service: MessageService = Depends(get_message_service),
) -> MarkReadResponse:
    result = await asyncio.to_thread(service.mark_read, current_user.id, conversation_id)
    if result.message_ids:
        await publish_messages_read(result.conversation_id, current_user.id, result.message_ids, result.read_at)
    return MarkReadResponse(conversation_id=result.conversation_id, marked=len(result.message_ids))
