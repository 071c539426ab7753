import asyncio
import time
from typing import Any, Dict, List

import pytest

from app.services.messaging.connection_manager import ConnectionManager, conversation_room, user_room


class FakeSocket:
    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.closed_with = None
        self.fail = fail

    async def send_json(self, data: Dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code

    def events(self) -> List[str]:
        return [frame["event"] for frame in self.sent]


@pytest.fixture
def manager() -> ConnectionManager:
    return ConnectionManager(typing_timeout=0.05, inactivity_timeout=60)


@pytest.mark.asyncio
async def test_register_joins_user_room(manager: ConnectionManager):
    conn = manager.register(FakeSocket(), "user-1", "coach")

    assert manager.room_members(user_room("coach", "user-1")) == {conn.connection_id}
    assert manager.is_user_online("user-1")
    assert manager.stats() == {"connections": 1, "users": 1, "rooms": 1}


@pytest.mark.asyncio
async def test_disconnect_clears_rooms(manager: ConnectionManager):
    conn = manager.register(FakeSocket(), "user-1", "coach")
    manager.join(conn, conversation_room("c1"))

    manager.disconnect(conn.connection_id)

    assert manager.rooms == {}
    assert manager.connected_user_ids() == []
    manager.disconnect(conn.connection_id)


@pytest.mark.asyncio
async def test_emit_to_room_skips_excluded_and_drops_broken(manager: ConnectionManager):
    sender = manager.register(FakeSocket(), "a", "coach")
    reader_socket = FakeSocket()
    reader = manager.register(reader_socket, "b", "client")
    broken = manager.register(FakeSocket(fail=True), "c", "client")
    room = conversation_room("c1")
    for conn in (sender, reader, broken):
        manager.join(conn, room)

    delivered = await manager.emit_to_room(room, {"event": "ping"}, exclude_connection_id=sender.connection_id)

    assert delivered == 1
    assert reader_socket.events() == ["ping"]
    assert manager.get(broken.connection_id) is None
    assert manager.room_members(room) == {sender.connection_id, reader.connection_id}


@pytest.mark.asyncio
async def test_typing_expires(manager: ConnectionManager):
    typist = manager.register(FakeSocket(), "a", "coach")
    watcher_socket = FakeSocket()
    watcher = manager.register(watcher_socket, "b", "client")
    for conn in (typist, watcher):
        manager.join(conn, conversation_room("c1"))

    await manager.set_typing(typist, "c1", True)
    assert manager.is_typing(typist.connection_id, "c1")

    await asyncio.sleep(0.15)

    assert not manager.is_typing(typist.connection_id, "c1")
    states = [frame["data"]["is_typing"] for frame in watcher_socket.sent]
    assert states == [True, False]
    assert manager._background_tasks == set()


@pytest.mark.asyncio
async def test_failed_typing_expiry_is_logged(manager: ConnectionManager, caplog: pytest.LogCaptureFixture):
    typist = manager.register(FakeSocket(), "a", "coach")
    manager.join(typist, conversation_room("c1"))
    await manager.set_typing(typist, "c1", True)

    async def broken_emit(*args: Any, **kwargs: Any) -> int:
        raise RuntimeError("fanout down")

    manager.emit_to_room = broken_emit  # type: ignore[method-assign]
    with caplog.at_level("ERROR"):
        await asyncio.sleep(0.15)

    assert manager._background_tasks == set()
    assert "typing expiry broadcast failed: fanout down" in caplog.text


@pytest.mark.asyncio
async def test_explicit_stop_typing_cancels_timer(manager: ConnectionManager):
    typist = manager.register(FakeSocket(), "a", "coach")
    manager.join(typist, conversation_room("c1"))

    await manager.set_typing(typist, "c1", True)
    await manager.set_typing(typist, "c1", False)

    assert not manager.is_typing(typist.connection_id, "c1")


@pytest.mark.asyncio
async def test_cleanup_inactive(manager: ConnectionManager):
    idle_socket = FakeSocket()
    idle = manager.register(idle_socket, "a", "coach")
    busy = manager.register(FakeSocket(), "b", "client")
    idle.last_activity = time.monotonic() - 120

    removed = await manager.cleanup_inactive()

    assert removed == 1
    assert idle_socket.closed_with == 1000
    assert list(manager.connections) == [busy.connection_id]


def test_schedule_without_loop_closes_coroutine():
    manager = ConnectionManager()

    async def emission():
        return None

    coro = emission()
    assert manager.schedule(coro) is False
    assert coro.cr_frame is None
