# backend/app/tasks/integrations.py
"""OAuth token maintenance for connected platforms."""

from typing import Dict

from celery.utils.log import get_task_logger

from app.database import get_db_session
from app.services.integration_service import IntegrationService
from app.tasks.celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(name="app.tasks.integrations.refresh_expiring_tokens")
def refresh_expiring_tokens() -> Dict[str, int]:
    """Refresh tokens expiring within the configured margin. Failures are recorded per integration."""
    with get_db_session() as db:
        result = IntegrationService(db).refresh_expiring()
    if result["failed"]:
        logger.warning("Token refresh: %(refreshed)d refreshed, %(failed)d failed", result)
    return result
