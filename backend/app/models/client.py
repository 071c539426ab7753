# backend/app/models/client.py
"""
Coach/client relationships and client invitations.
"""

from sqlalchemy import Boolean, Column, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.enums import ClientCoachStatus
from ..database import Base
from .types import TimestampMixin, UTCDateTime, ulid_pk


class ClientCoach(TimestampMixin, Base):
    """A client appears at most once per coach."""

    __tablename__ = "client_coaches"
    __table_args__ = (UniqueConstraint("client_id", "coach_id", name="uq_client_coach_pair"),)

    id = ulid_pk()
    client_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    coach_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ClientCoachStatus.ACTIVE.value)
    is_primary = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)

    client = relationship("User", foreign_keys=[client_id])
    coach = relationship("User", foreign_keys=[coach_id])


class ClientInvite(TimestampMixin, Base):
    __tablename__ = "client_invites"

    id = ulid_pk()
    coach_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=True)
    message = Column(Text, nullable=True)
    token = Column(String(128), nullable=False, unique=True, index=True)
    expires_at = Column(UTCDateTime, nullable=False)
    accepted_at = Column(UTCDateTime, nullable=True)

    coach = relationship("User", foreign_keys=[coach_id])
