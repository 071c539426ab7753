# backend/app/models/integration.py

from sqlalchemy import JSON, Boolean, Column, ForeignKey, String, Text, UniqueConstraint

from ..database import Base
from .types import TimestampMixin, UTCDateTime, ulid_pk


class Integration(TimestampMixin, Base):
    """
    A coach's connection to a third-party platform.

    OAuth platforms store access/refresh tokens; course platforms store their
    API credentials in ``config``. Tokens never leave the API unmasked.
    """

    __tablename__ = "integrations"
    __table_args__ = (UniqueConstraint("coach_id", "platform_name", name="uq_integration_platform"),)

    id = ulid_pk()
    coach_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    integration_type = Column(String(20), nullable=False)
    platform_name = Column(String(30), nullable=False)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(UTCDateTime, nullable=True, index=True)
    scope = Column(String(500), nullable=True)
    profile_data = Column(JSON, nullable=True)
    config = Column(JSON, nullable=True)
    sync_settings = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_sync_at = Column(UTCDateTime, nullable=True)
    sync_error = Column(Text, nullable=True)
