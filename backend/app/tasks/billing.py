# backend/app/tasks/billing.py
"""Subscription and payment request housekeeping."""

from celery.utils.log import get_task_logger

from app.database import get_db_session
from app.services.payment_request_service import PaymentRequestService
from app.services.subscription_service import SubscriptionService
from app.tasks.celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(name="app.tasks.billing.expire_lapsed_subscriptions")
def expire_lapsed_subscriptions() -> int:
    with get_db_session() as db:
        expired = SubscriptionService(db).expire_lapsed()
    if expired:
        logger.info("Expired %d subscriptions", expired)
    return expired


@celery_app.task(name="app.tasks.billing.expire_payment_requests")
def expire_payment_requests() -> int:
    with get_db_session() as db:
        expired = PaymentRequestService(db).expire_overdue()
    if expired:
        logger.info("Expired %d payment requests", expired)
    return expired
