# backend/app/tasks/leads.py
"""Lead pipeline housekeeping."""

from celery.utils.log import get_task_logger

from app.database import get_db_session
from app.services.lead_service import LeadService
from app.tasks.celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(name="app.tasks.leads.mark_unresponsive_leads")
def mark_unresponsive_leads() -> int:
    with get_db_session() as db:
        count = LeadService(db).mark_unresponsive()
    logger.info("Marked %d leads unresponsive", count)
    return count
