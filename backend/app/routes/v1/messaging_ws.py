# backend/app/routes/v1/messaging_ws.py
"""
Messaging WebSocket gateway - API v1

``/api/v1/ws/messaging?token=<jwt>``

Frames in both directions are JSON ``{"event": ..., "data": ...}``.

On connect the token is verified (failure: ``connect_error`` then close
4401), the socket joins ``user:{type}:{id}`` and receives ``connected``.
Client events: ``join_conversation``, ``leave_conversation``, ``typing``,
``ping``. Anything else gets an ``error`` frame.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from ...auth import verify_token_claims
from ...core.constants import WS_UNAUTHORIZED_CLOSE_CODE
from ...core.exceptions import UnauthorizedException
from ...database import get_db_session
from ...repositories.factory import RepositoryFactory
from ...services.messaging.connection_manager import (
    ClientConnection,
    connection_manager,
    conversation_room,
)
from ...services.messaging.events import ClientEvent, ServerEvent, build_envelope, build_error

logger = logging.getLogger(__name__)

router = APIRouter(tags=["messaging-ws-v1"])


def _authenticate(token: Optional[str]) -> Dict[str, str]:
    """Resolve the token to a live account; raises UnauthorizedException."""
    claims = verify_token_claims(token)
    with get_db_session() as db:
        user = RepositoryFactory.create_user_repository(db).get_by_id(claims["sub"], load_relationships=False)
        if user is None or user.is_deleted or not user.is_active:
            raise UnauthorizedException("Account is inactive", code="ACCOUNT_INACTIVE")
        return {"user_id": user.id, "user_type": user.user_type}


def _is_participant(conversation_id: str, user_id: str) -> bool:
    with get_db_session() as db:
        return RepositoryFactory.create_conversation_repository(db).is_participant(conversation_id, user_id)


async def _handle_event(connection: ClientConnection, frame: Any) -> None:
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        await connection_manager.send(connection, build_error("Malformed frame", code="BAD_FRAME"))
        return
    event = frame["event"]
    data = frame.get("data") if isinstance(frame.get("data"), dict) else {}

    if event == ClientEvent.PING.value:
        await connection_manager.send(connection, build_envelope(ServerEvent.PONG))
        return

    if event not in (
        ClientEvent.JOIN_CONVERSATION.value,
        ClientEvent.LEAVE_CONVERSATION.value,
        ClientEvent.TYPING.value,
    ):
        await connection_manager.send(connection, build_error(f"Unknown event: {event}", code="UNKNOWN_EVENT"))
        return

    conversation_id = data.get("conversation_id")
    if not isinstance(conversation_id, str) or not conversation_id:
        await connection_manager.send(connection, build_error("conversation_id is required", code="BAD_FRAME"))
        return

    if event == ClientEvent.LEAVE_CONVERSATION.value:
        connection_manager.leave(connection, conversation_room(conversation_id))
        await connection_manager.send(
            connection, build_envelope(ServerEvent.LEFT_CONVERSATION, {"conversation_id": conversation_id})
        )
        return

    allowed = await asyncio.to_thread(_is_participant, conversation_id, connection.user_id)
    if not allowed:
        await connection_manager.send(connection, build_error("Unauthorized", code="NOT_PARTICIPANT"))
        return

    if event == ClientEvent.JOIN_CONVERSATION.value:
        connection_manager.join(connection, conversation_room(conversation_id))
        await connection_manager.send(
            connection, build_envelope(ServerEvent.JOINED_CONVERSATION, {"conversation_id": conversation_id})
        )
    else:
        await connection_manager.set_typing(connection, conversation_id, bool(data.get("is_typing", True)))


@router.websocket("/ws/messaging")
async def messaging_socket(websocket: WebSocket, token: Optional[str] = Query(None)) -> None:
    await websocket.accept()
    try:
        identity = await asyncio.to_thread(_authenticate, token)
    except UnauthorizedException as exc:
        logger.info("[WS] rejected handshake: %s", exc.message)
        await websocket.send_json(build_envelope(ServerEvent.CONNECT_ERROR, {"message": exc.message}))
        await websocket.close(code=WS_UNAUTHORIZED_CLOSE_CODE)
        return

    connection = connection_manager.register(websocket, identity["user_id"], identity["user_type"])
    await connection_manager.send(
        connection,
        build_envelope(
            ServerEvent.CONNECTED,
            {
                "user_id": connection.user_id,
                "user_type": connection.user_type,
                "connection_id": connection.connection_id,
            },
        ),
    )
    try:
        while True:
            try:
                frame = await websocket.receive_json()
            except ValueError:
                await connection_manager.send(connection, build_error("Frames must be JSON", code="BAD_FRAME"))
                continue
            connection.touch()
            await _handle_event(connection, frame)
    except WebSocketDisconnect:
        logger.debug("[WS] client closed conn=%s", connection.connection_id)
    finally:
        connection_manager.disconnect(connection.connection_id)
