# backend/app/services/messaging/connection_manager.py
"""
In-memory WebSocket connection map for the messaging gateway.

Each worker tracks its own sockets and room memberships:
- ``user:{user_type}:{user_id}`` joined on connect, used for notifications
- ``conversation:{conversation_id}`` joined on request after a participant check

Room emissions are best-effort. A socket that fails to receive a frame is
dropped. When a broadcaster backend is connected, emissions are published to
one shared channel and every worker (this one included) delivers them to its
local sockets; otherwise delivery is local only.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
import time
from typing import Any, Dict, List, Optional, Set, Tuple

from starlette.websockets import WebSocket

from ...core.broadcast import WS_FANOUT_CHANNEL, get_broadcast, is_broadcast_initialized
from ...core.config import settings
from ...core.constants import CONVERSATION_ROOM_PREFIX, USER_ROOM_PREFIX
from ...core.ulid_helper import generate_ulid
from ...monitoring.prometheus_metrics import prometheus_metrics
from .events import build_typing_event

logger = logging.getLogger(__name__)


def user_room(user_type: str, user_id: str) -> str:
    return f"{USER_ROOM_PREFIX}:{user_type}:{user_id}"


def conversation_room(conversation_id: str) -> str:
    return f"{CONVERSATION_ROOM_PREFIX}:{conversation_id}"


@dataclass
class ClientConnection:
    websocket: WebSocket
    user_id: str
    user_type: str
    connection_id: str = field(default_factory=generate_ulid)
    rooms: Set[str] = field(default_factory=set)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_activity: float = field(default_factory=time.monotonic)

    def touch(self) -> None:
        self.last_activity = time.monotonic()


class ConnectionManager:
    def __init__(
        self,
        typing_timeout: Optional[float] = None,
        inactivity_timeout: Optional[float] = None,
    ) -> None:
        self.typing_timeout = typing_timeout if typing_timeout is not None else settings.ws_typing_timeout_seconds
        self.inactivity_timeout = (
            inactivity_timeout if inactivity_timeout is not None else settings.ws_inactivity_timeout_seconds
        )
        self.connections: Dict[str, ClientConnection] = {}
        self.rooms: Dict[str, Set[str]] = {}
        self._typing_timers: Dict[Tuple[str, str], asyncio.TimerHandle] = {}
        self._background_tasks: Set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # Loop tracking (sync callers schedule emissions onto it)

    def bind_loop(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    @property
    def loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None and self._loop.is_closed():
            self._loop = None
        return self._loop

    # Registration

    def register(self, websocket: WebSocket, user_id: str, user_type: str) -> ClientConnection:
        """Track an accepted, authenticated socket and join its user room."""
        if self._loop is None:
            self.bind_loop()
        connection = ClientConnection(websocket=websocket, user_id=user_id, user_type=user_type)
        self.connections[connection.connection_id] = connection
        self.join(connection, user_room(user_type, user_id))
        prometheus_metrics.ws_connected()
        logger.info("[WS] connected user=%s type=%s conn=%s", user_id, user_type, connection.connection_id)
        return connection

    def disconnect(self, connection_id: str) -> None:
        """Drop a connection from the map, every room, and all typing state."""
        connection = self.connections.pop(connection_id, None)
        if connection is None:
            return
        for room in list(connection.rooms):
            self._remove_from_room(connection_id, room)
        connection.rooms.clear()
        for key in [key for key in self._typing_timers if key[0] == connection_id]:
            self._typing_timers.pop(key).cancel()
        prometheus_metrics.ws_disconnected()
        logger.info("[WS] disconnected user=%s conn=%s", connection.user_id, connection_id)

    def join(self, connection: ClientConnection, room: str) -> None:
        self.rooms.setdefault(room, set()).add(connection.connection_id)
        connection.rooms.add(room)

    def leave(self, connection: ClientConnection, room: str) -> None:
        connection.rooms.discard(room)
        self._remove_from_room(connection.connection_id, room)

    def _remove_from_room(self, connection_id: str, room: str) -> None:
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self.rooms[room]

    # Lookup

    def get(self, connection_id: str) -> Optional[ClientConnection]:
        return self.connections.get(connection_id)

    def room_members(self, room: str) -> Set[str]:
        return set(self.rooms.get(room, set()))

    def is_user_online(self, user_id: str) -> bool:
        return any(conn.user_id == user_id for conn in self.connections.values())

    def connected_user_ids(self) -> List[str]:
        return sorted({conn.user_id for conn in self.connections.values()})

    def stats(self) -> Dict[str, int]:
        return {
            "connections": len(self.connections),
            "users": len({conn.user_id for conn in self.connections.values()}),
            "rooms": len(self.rooms),
        }

    # Delivery

    async def send(self, connection: ClientConnection, envelope: Dict[str, Any]) -> bool:
        try:
            await connection.websocket.send_json(envelope)
        except Exception as exc:
            logger.warning("[WS] dropping conn=%s after send failure: %s", connection.connection_id, exc)
            self.disconnect(connection.connection_id)
            return False
        return True

    async def deliver_local(
        self, room: str, envelope: Dict[str, Any], exclude_connection_id: Optional[str] = None
    ) -> int:
        delivered = 0
        for connection_id in self.room_members(room):
            if connection_id == exclude_connection_id:
                continue
            connection = self.connections.get(connection_id)
            if connection is not None and await self.send(connection, envelope):
                delivered += 1
        return delivered

    async def emit_to_room(
        self, room: str, envelope: Dict[str, Any], exclude_connection_id: Optional[str] = None
    ) -> int:
        """
        Emit an envelope to every socket in ``room``.

        Returns the local delivery count; with fan-out enabled delivery happens
        in ``listen_fanout`` and this returns 0.
        """
        if is_broadcast_initialized():
            message = json.dumps({"room": room, "envelope": envelope, "exclude": exclude_connection_id})
            try:
                await get_broadcast().publish(channel=WS_FANOUT_CHANNEL, message=message)
                return 0
            except Exception as exc:
                logger.error("[BROADCAST] publish failed, delivering locally: %s", exc)
        return await self.deliver_local(room, envelope, exclude_connection_id)

    async def emit_to_user(self, user_type: str, user_id: str, envelope: Dict[str, Any]) -> int:
        return await self.emit_to_room(user_room(user_type, user_id), envelope)

    def schedule(self, coro: Any) -> bool:
        """
        Run an emission coroutine on the gateway loop from sync code.

        Returns False (and closes the coroutine) when no loop is bound, e.g.
        inside a Celery worker.
        """
        loop = self.loop
        if loop is None:
            coro.close()
            return False
        asyncio.run_coroutine_threadsafe(coro, loop)
        return True

    async def listen_fanout(self) -> None:
        """Deliver broadcaster frames to local sockets until cancelled."""
        async with get_broadcast().subscribe(channel=WS_FANOUT_CHANNEL) as subscriber:
            async for event in subscriber:
                try:
                    frame = json.loads(event.message)
                except (TypeError, ValueError):
                    logger.warning("[BROADCAST] ignoring malformed frame")
                    continue
                await self.deliver_local(frame["room"], frame["envelope"], frame.get("exclude"))

    # Typing indicator

    async def set_typing(self, connection: ClientConnection, conversation_id: str, is_typing: bool) -> None:
        """
        Broadcast a typing state to the conversation room except the sender.

        ``is_typing=True`` arms a timer that clears the state after the
        typing timeout unless refreshed.
        """
        key = (connection.connection_id, conversation_id)
        existing = self._typing_timers.pop(key, None)
        if existing is not None:
            existing.cancel()

        room = conversation_room(conversation_id)
        await self.emit_to_room(
            room,
            build_typing_event(conversation_id, connection.user_id, connection.user_type, is_typing),
            exclude_connection_id=connection.connection_id,
        )
        if is_typing:
            loop = asyncio.get_running_loop()
            self._typing_timers[key] = loop.call_later(
                self.typing_timeout, self._expire_typing, connection.connection_id, conversation_id
            )

    def _expire_typing(self, connection_id: str, conversation_id: str) -> None:
        self._typing_timers.pop((connection_id, conversation_id), None)
        connection = self.connections.get(connection_id)
        if connection is None:
            return
        task = asyncio.ensure_future(
            self.emit_to_room(
                conversation_room(conversation_id),
                build_typing_event(conversation_id, connection.user_id, connection.user_type, False),
                exclude_connection_id=connection_id,
            )
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("[WS] typing expiry broadcast failed: %s", task.exception())

    def is_typing(self, connection_id: str, conversation_id: str) -> bool:
        return (connection_id, conversation_id) in self._typing_timers

    # Inactivity cleanup

    async def cleanup_inactive(self, now: Optional[float] = None) -> int:
        """Close and drop sockets idle for longer than the inactivity timeout."""
        current = now if now is not None else time.monotonic()
        stale = [
            conn
            for conn in list(self.connections.values())
            if current - conn.last_activity > self.inactivity_timeout
        ]
        for connection in stale:
            self.disconnect(connection.connection_id)
            try:
                await connection.websocket.close(code=1000)
            except Exception as exc:
                logger.debug("[WS] close after inactivity failed: %s", exc)
        if stale:
            logger.info("[WS] cleaned up %d inactive connections", len(stale))
        return len(stale)

    async def run_cleanup_loop(self, interval: Optional[float] = None) -> None:
        period = interval if interval is not None else settings.ws_cleanup_interval_seconds
        while True:
            await asyncio.sleep(period)
            await self.cleanup_inactive()


connection_manager = ConnectionManager()
