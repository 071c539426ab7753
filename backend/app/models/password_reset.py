# backend/app/models/password_reset.py

from sqlalchemy import Boolean, Column, ForeignKey, String
from sqlalchemy.orm import relationship

from ..database import Base
from .types import UTCDateTime, ulid_pk, utcnow


class PasswordResetToken(Base):
    """Single-use password reset token."""

    __tablename__ = "password_reset_tokens"

    id = ulid_pk()
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = Column(String(128), unique=True, nullable=False, index=True)
    expires_at = Column(UTCDateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="password_reset_tokens")

    def __repr__(self) -> str:
        return f"<PasswordResetToken {self.token[:8]}... for user {self.user_id}>"
