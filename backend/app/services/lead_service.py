# backend/app/services/lead_service.py
"""
Lead Service for CoachDesk.

Two pipelines share one table: platform leads (prospective coaches captured
by the public landing page, managed by admins) and coach leads (prospective
clients a coach tracks). Coaches only ever see their own leads.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import LeadStatus, LeadType, UserType
from ..core.exceptions import ConflictException, ForbiddenException, NotFoundException
from ..events.lead_events import LandingSubmitted, LeadCreated, LeadStatusUpdated
from ..models.lead import Lead
from ..models.types import utcnow
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..repositories.user_repository import normalize_email
from ..schemas.lead import LandingSubmission, LeadCreate, LeadStatusUpdate, LeadUpdate
from .base import BaseService

logger = logging.getLogger(__name__)


def lead_scope(actor: User) -> Tuple[Optional[str], LeadType]:
    """(coach_id, lead_type) visible to the actor."""
    if actor.user_type == UserType.ADMIN.value:
        return None, LeadType.ADMIN_LEAD
    if actor.user_type == UserType.COACH.value:
        return actor.id, LeadType.COACH_LEAD
    raise ForbiddenException("Clients cannot manage leads", code="FORBIDDEN")


def lead_owner_id(lead: Lead) -> Optional[str]:
    return lead.coach_id if lead.lead_type == LeadType.COACH_LEAD.value else None


class LeadService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.lead_repository = RepositoryFactory.create_lead_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    # Public landing page

    @BaseService.measure_operation("submit_landing")
    def submit_landing(self, data: LandingSubmission) -> Lead:
        """
        Record a landing-page submission as a platform lead.

        A repeat submission inside the dedupe window is rejected; an older
        lead with the same email is refreshed in place.

        Raises:
            ConflictException: Recently submitted, or a qualified email that
                already belongs to a coach
        """
        email = normalize_email(data.email)
        now = utcnow()
        if data.qualified and self.user_repository.get_by_email(email, UserType.COACH) is not None:
            raise ConflictException("An account with this email already exists", code="ACCOUNT_EXISTS")

        existing = self.lead_repository.get_latest_by_email(email, LeadType.ADMIN_LEAD)
        window_start = now - timedelta(days=settings.lead_dedupe_window_days)
        if existing is not None and existing.submitted_at >= window_start:
            raise ConflictException(
                "We already received your application. We'll be in touch soon.",
                code="LEAD_RECENTLY_SUBMITTED",
            )

        fields: Dict[str, Any] = {
            "name": data.name,
            "phone": data.phone,
            "source": data.source,
            "answers": data.answers,
            "qualified": data.qualified,
            "marketing_opt_in": data.marketing_opt_in,
            "meeting_date": data.meeting_date,
            "meeting_time": data.meeting_time,
        }
        with self.transaction():
            if existing is not None:
                lead = existing
                for key, value in fields.items():
                    setattr(lead, key, value)
                lead.status = LeadStatus.CONTACTED.value
                lead.submitted_at = now
                lead.converted_at = None
            else:
                lead = self.lead_repository.create(
                    lead_type=LeadType.ADMIN_LEAD.value,
                    email=email,
                    status=LeadStatus.CONTACTED.value,
                    submitted_at=now,
                    **fields,
                )
                self.publish_after_commit(LeadCreated(lead_id=lead.id, lead_type=lead.lead_type))
            self.publish_after_commit(
                LandingSubmitted(
                    lead_id=lead.id,
                    email=email,
                    name_on_form=data.name,
                    qualified=data.qualified,
                    phone=data.phone,
                )
            )
        self.log_operation("landing_submitted", lead_id=lead.id, refreshed=existing is not None)
        return lead

    # Pipeline management

    def get_lead(self, actor: User, lead_id: str) -> Lead:
        coach_id, lead_type = lead_scope(actor)
        lead = self.lead_repository.get_by_id(lead_id, load_relationships=False)
        if lead is None or lead.lead_type != lead_type.value or (coach_id and lead.coach_id != coach_id):
            raise NotFoundException("Lead not found", code="LEAD_NOT_FOUND")
        return lead

    @BaseService.measure_operation("create_lead")
    def create_lead(self, actor: User, data: LeadCreate) -> Lead:
        coach_id, lead_type = lead_scope(actor)
        now = utcnow()
        values = data.model_dump()
        values["email"] = normalize_email(values["email"])
        values["status"] = data.status.value
        with self.transaction():
            lead = self.lead_repository.create(
                lead_type=lead_type.value,
                coach_id=coach_id,
                submitted_at=now,
                last_contacted_at=now if data.status == LeadStatus.CONTACTED else None,
                converted_at=now if data.status == LeadStatus.CONVERTED else None,
                **values,
            )
            self.publish_after_commit(LeadCreated(lead_id=lead.id, lead_type=lead.lead_type, owner_id=coach_id))
        return lead

    def list_leads(
        self,
        actor: User,
        *,
        status: Optional[LeadStatus] = None,
        source: Optional[str] = None,
        search: Optional[str] = None,
        submitted_from: Optional[datetime] = None,
        submitted_to: Optional[datetime] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Lead], int]:
        coach_id, lead_type = lead_scope(actor)
        return self.lead_repository.list_leads(
            coach_id=coach_id,
            lead_type=lead_type,
            status=status,
            source=source,
            search=search,
            submitted_from=submitted_from,
            submitted_to=submitted_to,
            page=page,
            per_page=per_page,
        )

    def update_lead(self, actor: User, lead_id: str, data: LeadUpdate) -> Lead:
        lead = self.get_lead(actor, lead_id)
        with self.transaction():
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(lead, key, value)
        return lead

    def delete_lead(self, actor: User, lead_id: str) -> None:
        lead = self.get_lead(actor, lead_id)
        with self.transaction():
            self.db.delete(lead)

    @BaseService.measure_operation("update_lead_status")
    def update_status(self, actor: User, lead_id: str, data: LeadStatusUpdate) -> Lead:
        lead = self.get_lead(actor, lead_id)
        with self.transaction():
            self._set_status(lead, data.status)
            if data.notes:
                lead.notes = f"{lead.notes}\n\n{data.notes}" if lead.notes else data.notes
        return lead

    def _set_status(self, lead: Lead, status: LeadStatus) -> None:
        """Apply a status change inside the caller's transaction."""
        old_status = lead.status
        now = utcnow()
        lead.status = status.value
        if status == LeadStatus.CONVERTED:
            lead.converted_at = now
        elif status == LeadStatus.CONTACTED:
            lead.last_contacted_at = now
        if old_status != status.value:
            self.publish_after_commit(
                LeadStatusUpdated(
                    lead_id=lead.id,
                    lead_type=lead.lead_type,
                    old_status=old_status,
                    new_status=status.value,
                    owner_id=lead_owner_id(lead),
                )
            )

    def lead_stats(self, actor: User) -> Dict[str, Any]:
        coach_id, lead_type = lead_scope(actor)
        return self.stats_for(coach_id, lead_type)

    def stats_for(self, coach_id: Optional[str], lead_type: LeadType) -> Dict[str, Any]:
        counts = self.lead_repository.count_by_status(coach_id=coach_id, lead_type=lead_type)
        by_status = {status.value: counts.get(status.value, 0) for status in LeadStatus}
        total = sum(by_status.values())
        converted = by_status[LeadStatus.CONVERTED.value]
        return {
            "total": total,
            "by_status": by_status,
            "conversion_rate": round(converted / total * 100, 2) if total else 0.0,
        }

    @BaseService.measure_operation("mark_unresponsive_leads")
    def mark_unresponsive(self, now: Optional[datetime] = None) -> int:
        """Contacted leads with no progress after the cutoff become unresponsive."""
        cutoff = (now or utcnow()) - timedelta(days=settings.lead_unresponsive_after_days)
        with self.transaction():
            stale = self.lead_repository.list_stale_contacted(cutoff)
            for lead in stale:
                self._set_status(lead, LeadStatus.UNRESPONSIVE)
        if stale:
            self.log_operation("leads_marked_unresponsive", count=len(stale))
        return len(stale)
