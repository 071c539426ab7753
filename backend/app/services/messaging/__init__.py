# backend/app/services/messaging/__init__.py
"""Realtime messaging gateway: connection map, envelopes and publishers."""

from .connection_manager import ConnectionManager, connection_manager, conversation_room, user_room

__all__ = ["ConnectionManager", "connection_manager", "conversation_room", "user_room"]
