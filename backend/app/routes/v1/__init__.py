# backend/app/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1, one router per domain.
"""

from . import (
    analytics,
    auth,
    clients,
    coaches,
    communities,
    content,
    conversations,
    courses,
    health,
    integrations,
    leads,
    messages,
    messaging_ws,
    notifications,
    payment_requests,
    plans,
    prometheus,
    sequences,
    subscriptions,
    transactions,
)

__all__ = [
    "analytics",
    "auth",
    "clients",
    "coaches",
    "communities",
    "content",
    "conversations",
    "courses",
    "health",
    "integrations",
    "leads",
    "messages",
    "messaging_ws",
    "notifications",
    "payment_requests",
    "plans",
    "prometheus",
    "sequences",
    "subscriptions",
    "transactions",
]
