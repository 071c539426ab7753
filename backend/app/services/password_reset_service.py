# backend/app/services/password_reset_service.py
"""
Password Reset Service for CoachDesk.

Issues single-use reset tokens, emails reset links, and completes resets.
The same token flow doubles as first-time account setup for coach accounts
created from qualified leads and clients added by their coach.
"""

from datetime import timedelta
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ..auth import generate_secure_token, get_password_hash
from ..core.config import settings
from ..core.enums import UserType
from ..core.exceptions import ValidationException
from ..models.types import utcnow
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .email import EmailService

logger = logging.getLogger(__name__)


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if len(local) > 2:
        return f"{local[:2]}***@{domain}"
    return f"***@{domain}"


class PasswordResetService(BaseService):
    """Service for handling password reset operations."""

    def __init__(self, db: Session, email_service: Optional[EmailService] = None):
        super().__init__(db)
        self.email_service = email_service or EmailService(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.token_repository = RepositoryFactory.create_password_reset_repository(db)

    @BaseService.measure_operation("request_password_reset")
    def request_password_reset(self, email: str, user_type: UserType) -> bool:
        """
        Request a password reset for the given account.

        Always returns True so callers cannot probe which emails exist.
        """
        self.log_operation("request_password_reset", email=mask_email(email), user_type=user_type.value)

        user = self.user_repository.get_by_email(email, user_type)
        if user is None or user.is_deleted or not user.is_active:
            self.logger.warning("Password reset requested for unknown or inactive account: %s", mask_email(email))
            return True

        try:
            self.send_reset_link(user)
        except Exception as e:
            self.logger.error("Error creating password reset token: %s", e)
        return True

    def send_reset_link(self, user: User, *, setup: bool = False) -> str:
        """Invalidate older tokens, issue a new one and email the link. Returns the token."""
        with self.transaction():
            self.token_repository.invalidate_for_user(user.id)
            token = self._generate_reset_token(user.id)

        reset_url = f"{settings.frontend_url}/reset-password?token={token}"
        self.email_service.send_password_reset_email(
            to_email=user.email, reset_url=reset_url, user_name=user.first_name, setup=setup
        )
        self.logger.info("Password reset token created for user %s", user.id)
        return token

    @BaseService.measure_operation("verify_reset_token")
    def verify_reset_token(self, token: str) -> Tuple[bool, Optional[str]]:
        """Returns (is_valid, masked_email)."""
        reset_token = self.token_repository.get_by_token(token)
        if reset_token is None or reset_token.used or utcnow() > reset_token.expires_at:
            return False, None
        user = self.user_repository.get_by_id(reset_token.user_id, load_relationships=False)
        if user is None:
            return False, None
        return True, mask_email(user.email)

    @BaseService.measure_operation("confirm_password_reset")
    def confirm_password_reset(self, token: str, new_password: str) -> bool:
        """
        Complete password reset with token and new password.

        Raises:
            ValidationException: If token is invalid, expired, or already used
        """
        reset_token = self.token_repository.get_by_token(token)
        if reset_token is None:
            self.logger.warning("Invalid password reset token: %s...", token[:8])
            raise ValidationException("Invalid or expired reset token")
        if reset_token.used:
            raise ValidationException("This reset link has already been used")
        if utcnow() > reset_token.expires_at:
            raise ValidationException("This reset link has expired")

        user = self.user_repository.get_by_id(reset_token.user_id, load_relationships=False)
        if user is None or user.is_deleted:
            raise ValidationException("Invalid reset token")

        with self.transaction():
            user.hashed_password = get_password_hash(new_password)
            user.is_verified = True
            reset_token.used = True
            self.token_repository.invalidate_for_user(user.id)

        try:
            self.email_service.send_password_reset_confirmation(to_email=user.email, user_name=user.first_name)
        except Exception as e:
            self.logger.error("Password reset confirmation email failed for %s: %s", user.id, e)

        self.logger.info("Password successfully reset for user %s", user.id)
        return True

    def _generate_reset_token(self, user_id: str) -> str:
        token = generate_secure_token()
        self.token_repository.create(
            user_id=user_id,
            token=token,
            expires_at=utcnow() + timedelta(minutes=settings.password_reset_expire_minutes),
            used=False,
        )
        return token
