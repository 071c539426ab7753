"""Named domain events, the in-process bus, and the default handlers."""

from .auth_events import ClientConnected, ClientRegistered, CoachRegistered
from .base import DomainEvent
from .billing_events import PaymentCompleted, SubscriptionCanceled, SubscriptionCreated
from .bus import EventBus, event_bus
from .community_events import CommentCreated, PostCreated
from .course_events import EnrollmentCompleted, EnrollmentCreated
from .lead_events import LandingSubmitted, LeadCreated, LeadStatusUpdated
from .message_events import MessageCreated

__all__ = [
    "DomainEvent",
    "EventBus",
    "event_bus",
    # Accounts
    "CoachRegistered",
    "ClientRegistered",
    "ClientConnected",
    # Leads
    "LeadCreated",
    "LeadStatusUpdated",
    "LandingSubmitted",
    # Billing
    "PaymentCompleted",
    "SubscriptionCreated",
    "SubscriptionCanceled",
    # Courses
    "EnrollmentCreated",
    "EnrollmentCompleted",
    # Communities
    "PostCreated",
    "CommentCreated",
    # Messaging
    "MessageCreated",
]
