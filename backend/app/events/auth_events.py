"""Account domain events."""
from dataclasses import dataclass
from typing import ClassVar, Optional

from .base import DomainEvent


@dataclass
class CoachRegistered(DomainEvent):
    """Fired after a coach account is created."""

    name: ClassVar[str] = "auth.coach.registered"

    user_id: str
    email: str
    first_name: str


@dataclass
class ClientRegistered(DomainEvent):
    name: ClassVar[str] = "auth.client.registered"

    user_id: str
    email: str
    first_name: str
    coach_id: Optional[str] = None


@dataclass
class ClientConnected(DomainEvent):
    """Fired when a client is linked to a coach (added directly or via invite)."""

    name: ClassVar[str] = "auth.client.connected"

    client_id: str
    coach_id: str
    via_invite: bool = False
