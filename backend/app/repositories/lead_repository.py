# backend/app/repositories/lead_repository.py
"""
Lead pipeline data access: leads, email sequences and scheduled emails.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from ..core.enums import LeadStatus, LeadType, ScheduledEmailStatus, SequenceTrigger, UserType
from ..models.lead import EmailSequence, EmailSequenceStep, Lead, ScheduledEmail
from ..models.user import User
from .base_repository import BaseRepository
from .user_repository import normalize_email


class LeadRepository(BaseRepository[Lead]):
    def __init__(self, db: Session):
        super().__init__(db, Lead)

    def _scope(self, query, coach_id: Optional[str], lead_type: Optional[LeadType]):  # type: ignore[no-untyped-def]
        """Coach leads are scoped by owner; admin leads have no coach."""
        if coach_id:
            query = query.filter(Lead.coach_id == coach_id)
        if lead_type is not None:
            query = query.filter(Lead.lead_type == lead_type.value)
        return query

    def get_latest_by_email(self, email: str, lead_type: LeadType) -> Optional[Lead]:
        return (
            self.db.query(Lead)
            .filter(Lead.email == normalize_email(email), Lead.lead_type == lead_type.value)
            .order_by(Lead.submitted_at.desc())
            .first()
        )

    def list_leads(
        self,
        *,
        coach_id: Optional[str] = None,
        lead_type: Optional[LeadType] = None,
        status: Optional[LeadStatus] = None,
        source: Optional[str] = None,
        search: Optional[str] = None,
        submitted_from: Optional[datetime] = None,
        submitted_to: Optional[datetime] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Lead], int]:
        query = self._scope(self.db.query(Lead), coach_id, lead_type)
        if status is not None:
            query = query.filter(Lead.status == status.value)
        if source:
            query = query.filter(Lead.source == source)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(Lead.name).like(pattern),
                    func.lower(Lead.email).like(pattern),
                    func.lower(func.coalesce(Lead.phone, "")).like(pattern),
                )
            )
        if submitted_from is not None:
            query = query.filter(Lead.submitted_at >= submitted_from)
        if submitted_to is not None:
            query = query.filter(Lead.submitted_at <= submitted_to)
        return self._paginate(query.order_by(Lead.submitted_at.desc()), page, per_page)

    def count_by_status(self, *, coach_id: Optional[str] = None, lead_type: Optional[LeadType] = None) -> Dict[str, int]:
        query = self._scope(self.db.query(Lead.status, func.count(Lead.id)), coach_id, lead_type)
        return {status: int(count) for status, count in self._execute_query(query.group_by(Lead.status))}

    def list_stale_contacted(self, cutoff: datetime) -> List[Lead]:
        """Contacted leads whose last contact (or submission) is older than ``cutoff``."""
        query = self.db.query(Lead).filter(
            Lead.status == LeadStatus.CONTACTED.value,
            func.coalesce(Lead.last_contacted_at, Lead.submitted_at) < cutoff,
        )
        return self._execute_query(query)


class EmailSequenceRepository(BaseRepository[EmailSequence]):
    def __init__(self, db: Session):
        super().__init__(db, EmailSequence)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(selectinload(EmailSequence.steps))

    def list_for_owner(self, owner_id: str) -> List[EmailSequence]:
        return self._execute_query(
            self._apply_eager_loading(self.db.query(EmailSequence))
            .filter(EmailSequence.owner_id == owner_id)
            .order_by(EmailSequence.created_at.desc())
        )

    def list_triggered(
        self, owner_id: Optional[str], trigger: SequenceTrigger, target_status: Optional[str] = None
    ) -> List[EmailSequence]:
        """Active sequences for a trigger. ``owner_id=None`` means sequences owned by any admin."""
        query = self._apply_eager_loading(self.db.query(EmailSequence))
        if owner_id is None:
            query = query.join(User, User.id == EmailSequence.owner_id).filter(User.user_type == UserType.ADMIN.value)
        else:
            query = query.filter(EmailSequence.owner_id == owner_id)
        query = query.filter(
            EmailSequence.trigger == trigger.value,
            EmailSequence.is_active.is_(True),
        )
        if target_status is not None:
            query = query.filter(EmailSequence.target_status == target_status)
        return self._execute_query(query.order_by(EmailSequence.created_at.asc()))

    def replace_steps(self, sequence: EmailSequence, steps: Sequence[Dict]) -> None:
        sequence.steps.clear()
        self.db.flush()
        for index, step in enumerate(steps):
            sequence.steps.append(EmailSequenceStep(order_index=index, **step))
        self.db.flush()


class ScheduledEmailRepository(BaseRepository[ScheduledEmail]):
    def __init__(self, db: Session):
        super().__init__(db, ScheduledEmail)

    def list_for_lead(
        self,
        lead_id: str,
        *,
        sequence_id: Optional[str] = None,
        statuses: Sequence[ScheduledEmailStatus] = (),
    ) -> List[ScheduledEmail]:
        query = self.db.query(ScheduledEmail).filter(ScheduledEmail.lead_id == lead_id)
        if sequence_id:
            query = query.filter(ScheduledEmail.sequence_id == sequence_id)
        if statuses:
            query = query.filter(ScheduledEmail.status.in_([s.value for s in statuses]))
        return self._execute_query(query.order_by(ScheduledEmail.scheduled_for.asc()))

    def list_due(self, now: datetime, limit: int = 100) -> List[ScheduledEmail]:
        query = (
            self.db.query(ScheduledEmail)
            .options(joinedload(ScheduledEmail.sequence))
            .filter(
                ScheduledEmail.status == ScheduledEmailStatus.SCHEDULED.value,
                ScheduledEmail.scheduled_for <= now,
            )
            .order_by(ScheduledEmail.scheduled_for.asc())
            .limit(limit)
        )
        return self._execute_query(query)
