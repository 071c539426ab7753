# backend/app/models/lead.py
"""
Lead pipeline models.

Leads move through a status pipeline; email sequences schedule one
``ScheduledEmail`` per step which a periodic task sends when due.
"""

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..core.enums import LeadStatus, LeadType, ScheduledEmailStatus, SequenceTrigger
from ..database import Base
from .types import TimestampMixin, UTCDateTime, ulid_pk, utcnow


class Lead(TimestampMixin, Base):
    """
    A prospective coach (admin lead) or prospective client (coach lead).

    Admin leads have no ``coach_id``; coach leads belong to one coach.
    """

    __tablename__ = "leads"

    id = ulid_pk()
    lead_type = Column(String(20), nullable=False, default=LeadType.COACH_LEAD.value, index=True)
    coach_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(30), nullable=True)
    source = Column(String(50), nullable=True)
    status = Column(String(20), nullable=False, default=LeadStatus.CONTACTED.value, index=True)
    notes = Column(Text, nullable=True)
    answers = Column(JSON, nullable=True)
    qualified = Column(Boolean, nullable=False, default=False)
    marketing_opt_in = Column(Boolean, nullable=False, default=False)
    meeting_date = Column(String(20), nullable=True)
    meeting_time = Column(String(20), nullable=True)
    last_contacted_at = Column(UTCDateTime, nullable=True)
    converted_at = Column(UTCDateTime, nullable=True)
    submitted_at = Column(UTCDateTime, nullable=False, default=utcnow)

    coach = relationship("User", foreign_keys=[coach_id])
    scheduled_emails = relationship(
        "ScheduledEmail", back_populates="lead", cascade="all, delete-orphan"
    )


class EmailSequence(TimestampMixin, Base):
    __tablename__ = "email_sequences"

    id = ulid_pk()
    owner_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    trigger = Column(String(20), nullable=False, default=SequenceTrigger.MANUAL.value)
    target_status = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    steps = relationship(
        "EmailSequenceStep",
        back_populates="sequence",
        cascade="all, delete-orphan",
        order_by="EmailSequenceStep.order_index",
    )


class EmailSequenceStep(Base):
    __tablename__ = "email_sequence_steps"

    id = ulid_pk()
    sequence_id = Column(
        String(26), ForeignKey("email_sequences.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_index = Column(Integer, nullable=False, default=0)
    subject = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    delay_days = Column(Integer, nullable=False, default=0)

    sequence = relationship("EmailSequence", back_populates="steps")


class ScheduledEmail(TimestampMixin, Base):
    __tablename__ = "scheduled_emails"

    id = ulid_pk()
    lead_id = Column(String(26), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence_id = Column(
        String(26), ForeignKey("email_sequences.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # history outlives the step it was rendered from
    step_id = Column(
        String(26), ForeignKey("email_sequence_steps.id", ondelete="SET NULL"), nullable=True
    )
    to_email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    scheduled_for = Column(UTCDateTime, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ScheduledEmailStatus.SCHEDULED.value, index=True)
    paused_at = Column(UTCDateTime, nullable=True)
    sent_at = Column(UTCDateTime, nullable=True)
    error = Column(Text, nullable=True)

    lead = relationship("Lead", back_populates="scheduled_emails")
    sequence = relationship("EmailSequence")
