"""Lead pipeline events. ``owner_id`` is the coach for coach leads and None for platform leads."""
from dataclasses import dataclass
from typing import ClassVar, Optional

from .base import DomainEvent


@dataclass
class LeadCreated(DomainEvent):
    name: ClassVar[str] = "lead.created"

    lead_id: str
    lead_type: str
    owner_id: Optional[str] = None


@dataclass
class LeadStatusUpdated(DomainEvent):
    name: ClassVar[str] = "lead.status.updated"

    lead_id: str
    lead_type: str
    old_status: str
    new_status: str
    owner_id: Optional[str] = None


@dataclass
class LandingSubmitted(DomainEvent):
    """A prospective coach filled in the public landing form."""

    name: ClassVar[str] = "lead.landing.submitted"

    lead_id: str
    email: str
    name_on_form: str
    qualified: bool
    phone: Optional[str] = None
