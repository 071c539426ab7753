# backend/app/services/email_sequence_service.py
"""
Email sequences for the lead pipeline.

Starting a sequence for a lead renders every step up front (Jinja2 against
the lead) and stores one ScheduledEmail per step; step delays accumulate.
The beat task sends whatever is due. Pausing freezes the remaining emails
and resuming shifts them by the time spent paused.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import LeadType, ScheduledEmailStatus, SequenceTrigger
from ..core.exceptions import ConflictException, NotFoundException, ServiceException
from ..models.lead import EmailSequence, Lead, ScheduledEmail
from ..models.types import utcnow
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.lead import SequenceCreate, SequenceUpdate
from .base import BaseService
from .email import EmailService
from .lead_service import LeadService
from .template_service import TemplateService

logger = logging.getLogger(__name__)

PENDING_STATUSES = (ScheduledEmailStatus.SCHEDULED, ScheduledEmailStatus.PAUSED)


class EmailSequenceService(BaseService):
    def __init__(
        self,
        db: Session,
        email_service: Optional[EmailService] = None,
        template_service: Optional[TemplateService] = None,
    ):
        super().__init__(db)
        self._email_service = email_service
        self.templates = template_service or TemplateService()
        self.sequence_repository = RepositoryFactory.create_email_sequence_repository(db)
        self.scheduled_repository = RepositoryFactory.create_scheduled_email_repository(db)
        self.lead_repository = RepositoryFactory.create_lead_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    @property
    def email_service(self) -> EmailService:
        if self._email_service is None:
            self._email_service = EmailService(self.db, template_service=self.templates)
        return self._email_service

    # Sequence CRUD

    def get_sequence(self, owner_id: str, sequence_id: str) -> EmailSequence:
        sequence = self.sequence_repository.get_by_id(sequence_id)
        if sequence is None or sequence.owner_id != owner_id:
            raise NotFoundException("Sequence not found", code="SEQUENCE_NOT_FOUND")
        return sequence

    def list_sequences(self, owner_id: str) -> List[EmailSequence]:
        return self.sequence_repository.list_for_owner(owner_id)

    @BaseService.measure_operation("create_sequence")
    def create_sequence(self, owner_id: str, data: SequenceCreate) -> EmailSequence:
        with self.transaction():
            sequence = self.sequence_repository.create(
                owner_id=owner_id,
                name=data.name,
                description=data.description,
                trigger=data.trigger.value,
                target_status=data.target_status.value if data.target_status else None,
                is_active=data.is_active,
            )
            self.sequence_repository.replace_steps(sequence, [step.model_dump() for step in data.steps])
        return sequence

    @BaseService.measure_operation("update_sequence")
    def update_sequence(self, owner_id: str, sequence_id: str, data: SequenceUpdate) -> EmailSequence:
        """Update fields; ``steps`` replaces every step, cancels pending emails and keeps every scheduled row."""
        sequence = self.get_sequence(owner_id, sequence_id)
        changes = data.model_dump(exclude_unset=True, exclude={"steps"})
        with self.transaction():
            for key, value in changes.items():
                setattr(sequence, key, value.value if hasattr(value, "value") else value)
            if data.steps is not None:
                self._cancel_where(sequence_id=sequence.id)
                self.sequence_repository.replace_steps(sequence, [step.model_dump() for step in data.steps])
        return sequence

    def delete_sequence(self, owner_id: str, sequence_id: str) -> None:
        sequence = self.get_sequence(owner_id, sequence_id)
        with self.transaction():
            self.db.delete(sequence)

    # Scheduling

    def lead_context(self, lead: Lead) -> Dict[str, Any]:
        first_name = (lead.name or "").split(" ")[0]
        context: Dict[str, Any] = {
            "lead_name": lead.name,
            "first_name": first_name,
            "email": lead.email,
            "phone": lead.phone,
            "meeting_date": lead.meeting_date,
            "meeting_time": lead.meeting_time,
        }
        if lead.coach_id:
            coach = self.user_repository.get_by_id(lead.coach_id, load_relationships=False)
            if coach is not None:
                context["coach_name"] = coach.full_name
                context["business_name"] = coach.business_name
        return context

    @BaseService.measure_operation("start_sequence")
    def start_for_lead(self, actor: User, sequence_id: str, lead_id: str) -> List[ScheduledEmail]:
        sequence = self.get_sequence(actor.id, sequence_id)
        lead = LeadService(self.db).get_lead(actor, lead_id)
        with self.transaction():
            scheduled = self.schedule(sequence, lead)
        return scheduled

    def schedule(self, sequence: EmailSequence, lead: Lead, now: Optional[datetime] = None) -> List[ScheduledEmail]:
        """
        Create one scheduled email per step. Caller commits.

        Raises:
            ConflictException: The lead already has pending emails from this sequence
        """
        if self.scheduled_repository.list_for_lead(lead.id, sequence_id=sequence.id, statuses=PENDING_STATUSES):
            raise ConflictException("Sequence already running for this lead", code="SEQUENCE_ACTIVE")
        start = now or utcnow()
        context = self.lead_context(lead)
        created: List[ScheduledEmail] = []
        delay = 0
        for step in sorted(sequence.steps, key=lambda s: s.order_index):
            delay += step.delay_days
            created.append(
                self.scheduled_repository.create(
                    lead_id=lead.id,
                    sequence_id=sequence.id,
                    step_id=step.id,
                    to_email=lead.email,
                    subject=self.templates.render_string(step.subject, context),
                    body=self.templates.render_string(step.body, context),
                    scheduled_for=start + timedelta(days=delay),
                    status=ScheduledEmailStatus.SCHEDULED.value,
                )
            )
        self.log_operation("sequence_scheduled", sequence_id=sequence.id, lead_id=lead.id, emails=len(created))
        return created

    def start_triggered(
        self, lead: Lead, trigger: SequenceTrigger, target_status: Optional[str] = None
    ) -> List[ScheduledEmail]:
        """Start every matching active sequence the lead is not already in. Caller commits."""
        owner_id = lead.coach_id if lead.lead_type == LeadType.COACH_LEAD.value else None
        created: List[ScheduledEmail] = []
        for sequence in self.sequence_repository.list_triggered(owner_id, trigger, target_status):
            try:
                created.extend(self.schedule(sequence, lead))
            except ConflictException:
                self.logger.info("Sequence %s already running for lead %s", sequence.id, lead.id)
        return created

    def list_for_lead(self, actor: User, lead_id: str) -> List[ScheduledEmail]:
        lead = LeadService(self.db).get_lead(actor, lead_id)
        return self.scheduled_repository.list_for_lead(lead.id)

    def pause(self, actor: User, sequence_id: str, lead_id: str) -> List[ScheduledEmail]:
        sequence = self.get_sequence(actor.id, sequence_id)
        lead = LeadService(self.db).get_lead(actor, lead_id)
        now = utcnow()
        with self.transaction():
            emails = self.scheduled_repository.list_for_lead(
                lead.id, sequence_id=sequence.id, statuses=(ScheduledEmailStatus.SCHEDULED,)
            )
            for email in emails:
                email.status = ScheduledEmailStatus.PAUSED.value
                email.paused_at = now
        return emails

    def resume(self, actor: User, sequence_id: str, lead_id: str) -> List[ScheduledEmail]:
        """Reschedule paused emails, pushed back by however long they were paused."""
        sequence = self.get_sequence(actor.id, sequence_id)
        lead = LeadService(self.db).get_lead(actor, lead_id)
        now = utcnow()
        with self.transaction():
            emails = self.scheduled_repository.list_for_lead(
                lead.id, sequence_id=sequence.id, statuses=(ScheduledEmailStatus.PAUSED,)
            )
            for email in emails:
                if email.paused_at is not None:
                    email.scheduled_for = email.scheduled_for + (now - email.paused_at)
                email.status = ScheduledEmailStatus.SCHEDULED.value
                email.paused_at = None
        return emails

    def cancel(self, actor: User, sequence_id: str, lead_id: str) -> int:
        sequence = self.get_sequence(actor.id, sequence_id)
        lead = LeadService(self.db).get_lead(actor, lead_id)
        with self.transaction():
            count = self._cancel_where(lead_id=lead.id, sequence_id=sequence.id)
        return count

    def cancel_pending_for_lead(self, lead_id: str) -> int:
        """Cancel every pending email of the lead. Caller commits."""
        return self._cancel_where(lead_id=lead_id)

    def _cancel_where(self, *, lead_id: Optional[str] = None, sequence_id: Optional[str] = None) -> int:
        query = self.db.query(ScheduledEmail).filter(
            ScheduledEmail.status.in_([status.value for status in PENDING_STATUSES])
        )
        if lead_id:
            query = query.filter(ScheduledEmail.lead_id == lead_id)
        if sequence_id:
            query = query.filter(ScheduledEmail.sequence_id == sequence_id)
        emails = query.all()
        for email in emails:
            email.status = ScheduledEmailStatus.CANCELLED.value
        self.db.flush()
        return len(emails)

    # Delivery

    @BaseService.measure_operation("send_due_emails")
    def send_due(self, now: Optional[datetime] = None, limit: int = 100) -> Dict[str, int]:
        """Send due emails, committing each outcome so one failure never blocks the batch."""
        current = now or utcnow()
        sent = failed = 0
        for email in self.scheduled_repository.list_due(current, limit=limit):
            sender_name = None
            if email.sequence is not None:
                owner = self.user_repository.get_by_id(email.sequence.owner_id, load_relationships=False)
                if owner is not None and owner.is_coach:
                    sender_name = owner.business_name or owner.full_name
            try:
                self.email_service.send_sequence_email(email.to_email, email.subject, email.body, from_name=sender_name)
            except ServiceException as exc:
                with self.transaction():
                    email.status = ScheduledEmailStatus.FAILED.value
                    email.error = exc.message
                failed += 1
                continue
            with self.transaction():
                email.status = ScheduledEmailStatus.SENT.value
                email.sent_at = utcnow()
                email.error = None
            sent += 1
        if sent or failed:
            self.log_operation("sequence_emails_sent", sent=sent, failed=failed)
        return {"sent": sent, "failed": failed}
