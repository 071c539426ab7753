# backend/app/tasks/events.py
"""Queue-backed delivery of domain events when EVENT_DISPATCH_MODE=celery."""

from typing import Any, Dict

from celery.utils.log import get_task_logger

from app.events.bus import event_bus
from app.tasks.celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(name="app.tasks.events.dispatch_event", max_retries=0)
def dispatch_event(event_name: str, payload: Dict[str, Any]) -> int:
    """
    Run the handlers subscribed to ``event_name`` in this worker.

    Handler failures are logged by the bus and not retried.
    """
    handled = event_bus.dispatch(event_name, payload)
    logger.info("Dispatched %s to %d handlers", event_name, handled)
    return handled
