# backend/app/services/auth_service.py
"""
Authentication Service for CoachDesk.

Registration, login and profile maintenance for admins, coaches and
clients. Accounts are keyed by (email, user_type), so the same person may
hold a coach and a client account.
"""

from datetime import timedelta
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ..auth import create_access_token, generate_secure_token, get_password_hash, verify_password
from ..core.config import settings
from ..core.enums import ClientCoachStatus, UserType
from ..core.exceptions import (
    ConflictException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from ..events.auth_events import ClientConnected, ClientRegistered, CoachRegistered
from ..models.types import utcnow
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..repositories.user_repository import normalize_email
from ..schemas.auth import ClientRegister, CoachRegister, PasswordChange, ProfileUpdate
from .base import BaseService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def build_token_claims(user: User) -> dict:
    return {
        "sub": user.id,
        "type": user.user_type,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
    }


class AuthService(BaseService):
    """Service for handling authentication operations."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.client_coach_repository = RepositoryFactory.create_client_coach_repository(db)
        self.invite_repository = RepositoryFactory.create_client_invite_repository(db)

    # Registration

    @BaseService.measure_operation("register_coach")
    def register_coach(self, data: CoachRegister) -> User:
        """
        Register a new coach account.

        Raises:
            ConflictException: If the email already has a coach account
        """
        self.log_operation("register_coach", email=data.email)
        if self.user_repository.get_by_email(data.email, UserType.COACH):
            raise ConflictException("Email already registered as a coach", code="EMAIL_EXISTS")

        with self.transaction():
            user = self.user_repository.create(
                email=normalize_email(data.email),
                hashed_password=get_password_hash(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
                user_type=UserType.COACH.value,
                phone=data.phone,
                business_name=data.business_name,
                bio=data.bio,
                timezone=data.timezone,
                marketing_opt_in=data.marketing_opt_in,
            )
            self.publish_after_commit(
                CoachRegistered(user_id=user.id, email=user.email, first_name=user.first_name)
            )
        return user

    @BaseService.measure_operation("register_client")
    def register_client(self, data: ClientRegister) -> User:
        """
        Register a client, optionally linking them to a coach directly or
        through an invite token.

        Raises:
            ConflictException: If the email already has a client account
            NotFoundException: If the coach does not exist
            ValidationException: If the invite is invalid or for another email
        """
        self.log_operation("register_client", email=data.email, coach_id=data.coach_id)
        if self.user_repository.get_by_email(data.email, UserType.CLIENT):
            raise ConflictException("Email already registered as a client", code="EMAIL_EXISTS")

        invite = None
        coach_id = data.coach_id
        if data.invite_token:
            invite = self.invite_repository.get_by_token(data.invite_token)
            if invite is None or invite.accepted_at is not None or invite.expires_at < utcnow():
                raise ValidationException("Invite is invalid or has expired", code="INVALID_INVITE")
            if invite.email != normalize_email(data.email):
                raise ValidationException("Invite was sent to a different email", code="INVITE_EMAIL_MISMATCH")
            coach_id = invite.coach_id
        if coach_id:
            coach = self.user_repository.get_coach(coach_id)
            if coach is None or not coach.is_active:
                raise NotFoundException("Coach not found")

        with self.transaction():
            user = self.user_repository.create(
                email=normalize_email(data.email),
                hashed_password=get_password_hash(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
                user_type=UserType.CLIENT.value,
                phone=data.phone,
                timezone=data.timezone,
                marketing_opt_in=data.marketing_opt_in,
            )
            if coach_id:
                self.client_coach_repository.create(
                    client_id=user.id,
                    coach_id=coach_id,
                    status=ClientCoachStatus.ACTIVE.value,
                    is_primary=True,
                )
                self.publish_after_commit(
                    ClientConnected(client_id=user.id, coach_id=coach_id, via_invite=invite is not None)
                )
            if invite is not None:
                invite.accepted_at = utcnow()
            self.publish_after_commit(
                ClientRegistered(user_id=user.id, email=user.email, first_name=user.first_name, coach_id=coach_id)
            )
        return user

    def create_user_with_random_password(
        self, *, email: str, first_name: str, last_name: str, user_type: UserType, **extra: object
    ) -> User:
        """Create an account the owner activates through a reset link. Caller commits."""
        return self.user_repository.create(
            email=normalize_email(email),
            hashed_password=get_password_hash(generate_secure_token(24)),
            first_name=first_name,
            last_name=last_name,
            user_type=user_type.value,
            **extra,
        )

    # Login

    @BaseService.measure_operation("authenticate_user")
    def authenticate_user(self, email: str, password: str, user_type: UserType) -> User:
        """
        Raises:
            UnauthorizedException: Unknown email, bad password, inactive or deleted account
        """
        user = self.user_repository.get_by_email(email, user_type)
        if user is None or not verify_password(password, user.hashed_password):
            self.logger.info("Failed login for %s (%s)", normalize_email(email), user_type.value)
            raise UnauthorizedException(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")
        if user.is_deleted or not user.is_active:
            raise UnauthorizedException("Account is inactive", code="ACCOUNT_INACTIVE")
        return user

    @BaseService.measure_operation("login")
    def login(self, email: str, password: str, user_type: UserType) -> Tuple[str, User]:
        user = self.authenticate_user(email, password, user_type)
        with self.transaction():
            user.last_login_at = utcnow()
        return self.issue_token(user), user

    def issue_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        return create_access_token(build_token_claims(user), expires_delta=expires_delta)

    @staticmethod
    def token_ttl_seconds() -> int:
        return settings.access_token_expire_minutes * 60

    # Profile

    @BaseService.measure_operation("update_profile")
    def update_profile(self, user: User, data: ProfileUpdate) -> User:
        changes = data.model_dump(exclude_unset=True)
        if "business_name" in changes and not user.is_coach:
            changes.pop("business_name")
        with self.transaction():
            for key, value in changes.items():
                setattr(user, key, value)
        return user

    @BaseService.measure_operation("change_password")
    def change_password(self, user: User, data: PasswordChange) -> None:
        if not verify_password(data.current_password, user.hashed_password):
            raise ValidationException("Current password is incorrect", code="INVALID_PASSWORD")
        if data.current_password == data.new_password:
            raise ValidationException("New password must differ from the current password")
        with self.transaction():
            user.hashed_password = get_password_hash(data.new_password)
        self.log_operation("password_changed", user_id=user.id)
