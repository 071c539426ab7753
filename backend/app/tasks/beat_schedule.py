# backend/app/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for CoachDesk.

Periodic maintenance for the lead pipeline, billing and integrations.
"""

from datetime import timedelta
from typing import Any, Dict

from celery.schedules import crontab

CELERYBEAT_SCHEDULE: Dict[str, Dict[str, Any]] = {
    # Sequence emails whose time has come
    "send-due-sequence-emails": {
        "task": "app.tasks.sequences.send_due_emails",
        "schedule": timedelta(minutes=5),
        "options": {"queue": "email", "priority": 6},
    },
    # Canceled or lapsed subscriptions move to expired
    "expire-lapsed-subscriptions": {
        "task": "app.tasks.billing.expire_lapsed_subscriptions",
        "schedule": crontab(minute=5),
        "options": {"queue": "billing", "priority": 5},
    },
    # Open payment requests past their expiry
    "expire-payment-requests": {
        "task": "app.tasks.billing.expire_payment_requests",
        "schedule": crontab(minute=35),
        "options": {"queue": "billing", "priority": 3},
    },
    # OAuth tokens about to expire
    "refresh-integration-tokens": {
        "task": "app.tasks.integrations.refresh_expiring_tokens",
        "schedule": timedelta(minutes=30),
        "options": {"queue": "integrations", "priority": 4},
    },
    # Contacted leads that went quiet
    "mark-unresponsive-leads": {
        "task": "app.tasks.leads.mark_unresponsive_leads",
        "schedule": crontab(hour=3, minute=0),
        "options": {"queue": "celery", "priority": 2},
    },
}


def get_beat_schedule() -> Dict[str, Dict[str, Any]]:
    return dict(CELERYBEAT_SCHEDULE)
