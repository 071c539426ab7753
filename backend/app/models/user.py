# backend/app/models/user.py
"""
User model for the CoachDesk platform.

Admins, coaches and clients share one table, told apart by ``user_type``.
The same email may hold one account per user type, so uniqueness is on
(email, user_type).

Classes:
    User: Authentication and profile data for every account type
"""

from typing import Optional

from sqlalchemy import Boolean, Column, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.enums import UserType
from ..database import Base
from .types import TimestampMixin, UTCDateTime, ulid_pk


class User(TimestampMixin, Base):
    """
    Account row for admins, coaches and clients.

    Attributes:
        email: Login email, unique per user type
        hashed_password: Bcrypt hash
        user_type: admin | coach | client
        business_name: Coach business name (coaches only)
        is_active: Inactive accounts cannot log in
        deleted_at: Soft-delete marker; deleted accounts are hidden everywhere
        last_login_at: Updated on each successful login
    """

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", "user_type", name="uq_users_email_type"),)

    id = ulid_pk()
    email = Column(String(255), nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    user_type = Column(String(20), nullable=False, index=True)
    phone = Column(String(30), nullable=True)
    business_name = Column(String(200), nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String(500), nullable=True)
    timezone = Column(String(50), nullable=False, default="UTC")
    is_active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    marketing_opt_in = Column(Boolean, nullable=False, default=False)
    last_login_at = Column(UTCDateTime, nullable=True)
    deleted_at = Column(UTCDateTime, nullable=True)

    password_reset_tokens = relationship(
        "PasswordResetToken", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN.value

    @property
    def is_coach(self) -> bool:
        return self.user_type == UserType.COACH.value

    @property
    def is_client(self) -> bool:
        return self.user_type == UserType.CLIENT.value

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def display_name(self) -> Optional[str]:
        return self.business_name or self.full_name

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.user_type})>"
