"""Beat schedule wiring and task bodies run in-process."""

from datetime import timedelta

from sqlalchemy.orm import Session

from app.core.enums import LeadStatus
from app.models.lead import Lead
from app.models.types import utcnow
from app.models.user import User
from app.schemas.lead import LeadCreate
from app.services.lead_service import LeadService
from app.tasks import billing, events, integrations, leads, sequences  # noqa: F401
from app.tasks.beat_schedule import get_beat_schedule
from app.tasks.celery_app import celery_app


def test_every_scheduled_task_is_registered():
    for entry in get_beat_schedule().values():
        assert entry["task"] in celery_app.tasks


def test_mark_unresponsive_leads_task(db: Session, test_coach: User):
    lead = LeadService(db).create_lead(test_coach, LeadCreate(name="Pat Prospect", email="pat@example.com"))
    lead.last_contacted_at = utcnow() - timedelta(days=20)
    db.commit()

    assert leads.mark_unresponsive_leads() == 1

    db.expire_all()
    assert db.get(Lead, lead.id).status == LeadStatus.UNRESPONSIVE.value


def test_quiet_tasks_return_zero_counts(db: Session):
    assert sequences.send_due_emails() == {"sent": 0, "failed": 0}
    assert billing.expire_lapsed_subscriptions() == 0
    assert billing.expire_payment_requests() == 0
    assert integrations.refresh_expiring_tokens() == {"refreshed": 0, "failed": 0}
