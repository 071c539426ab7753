# backend/app/tasks/__init__.py
"""
Celery tasks package for CoachDesk.

This package contains the background work:
- Queued domain event dispatch
- Lead sequence email delivery
- Subscription and payment request expiry
- Integration token refresh
- Lead pipeline maintenance

Run a worker with: celery -A app.tasks worker
"""

from app.tasks.billing import expire_lapsed_subscriptions, expire_payment_requests
from app.tasks.celery_app import BaseTask, celery_app
from app.tasks.events import dispatch_event
from app.tasks.integrations import refresh_expiring_tokens
from app.tasks.leads import mark_unresponsive_leads
from app.tasks.sequences import send_due_emails

__all__ = [
    "celery_app",
    "BaseTask",
    "dispatch_event",
    "send_due_emails",
    "expire_lapsed_subscriptions",
    "expire_payment_requests",
    "refresh_expiring_tokens",
    "mark_unresponsive_leads",
]
