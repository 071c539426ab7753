# backend/app/tasks/sequences.py
"""Lead sequence email delivery."""

from typing import Dict

from celery.utils.log import get_task_logger

from app.database import get_db_session
from app.services.email_sequence_service import EmailSequenceService
from app.tasks.celery_app import celery_app

logger = get_task_logger(__name__)

BATCH_SIZE = 100


@celery_app.task(name="app.tasks.sequences.send_due_emails")
def send_due_emails(limit: int = BATCH_SIZE) -> Dict[str, int]:
    """Send scheduled sequence emails that are due. Each email commits on its own."""
    with get_db_session() as db:
        result = EmailSequenceService(db).send_due(limit=limit)
    if result["sent"] or result["failed"]:
        logger.info("Sequence emails: %(sent)d sent, %(failed)d failed", result)
    return result
