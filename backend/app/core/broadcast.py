# backend/app/core/broadcast.py
"""
Shared broadcaster for cross-worker WebSocket fan-out.

Each worker process keeps its own in-memory socket map. When several
workers serve the gateway, room emissions are published to one
broadcaster channel and every worker delivers them to its local sockets.
With no BROADCAST_URL configured the gateway delivers locally only.
"""
import logging
from typing import Optional

from broadcaster import Broadcast

from .config import settings

logger = logging.getLogger(__name__)

WS_FANOUT_CHANNEL = "coachdesk:ws"

_broadcast: Optional[Broadcast] = None


def get_broadcast() -> Broadcast:
    """
    Return the shared broadcast instance.

    Raises:
        RuntimeError: If connect_broadcast() has not run
    """
    if _broadcast is None:
        raise RuntimeError("Broadcast not initialized. Call connect_broadcast() during startup.")
    return _broadcast


def is_broadcast_initialized() -> bool:
    return _broadcast is not None


async def connect_broadcast(url: Optional[str] = None) -> bool:
    """
    Connect the broadcaster backend during application startup.

    Returns False (and stays local-only) when no URL is configured.
    """
    global _broadcast

    target = url or settings.broadcast_url
    if not target:
        logger.info("[BROADCAST] No BROADCAST_URL configured; WebSocket fan-out is local only")
        return False
    _broadcast = Broadcast(target)
    await _broadcast.connect()
    logger.info("[BROADCAST] Connected fan-out backend: %s", target.split("@")[-1])
    return True


async def disconnect_broadcast() -> None:
    global _broadcast

    if _broadcast is not None:
        await _broadcast.disconnect()
        _broadcast = None
        logger.info("[BROADCAST] Disconnected")
