# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Tests override these
to swap in fakes (for example an ``httpx.MockTransport`` for integrations).
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.auth_service import AuthService
from ...services.client_service import ClientService
from ...services.coach_admin_service import CoachAdminService
from ...services.conversation_service import ConversationService
from ...services.email import EmailService
from ...services.email_sequence_service import EmailSequenceService
from ...services.integration_service import IntegrationService
from ...services.message_service import MessageService
from ...services.password_reset_service import PasswordResetService
from ...services.payment_request_service import PaymentRequestService
from ...services.template_service import TemplateService
from .database import get_db

logger = logging.getLogger(__name__)


def get_template_service() -> TemplateService:
    return TemplateService()


def get_email_service(
    db: Session = Depends(get_db), template_service: TemplateService = Depends(get_template_service)
) -> EmailService:
    """Get EmailService instance with proper dependencies."""
    return EmailService(db, template_service)


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


def get_password_reset_service(
    db: Session = Depends(get_db), email_service: EmailService = Depends(get_email_service)
) -> PasswordResetService:
    return PasswordResetService(db, email_service)


def get_client_service(
    db: Session = Depends(get_db), email_service: EmailService = Depends(get_email_service)
) -> ClientService:
    return ClientService(db, email_service)


def get_coach_admin_service(
    db: Session = Depends(get_db), email_service: EmailService = Depends(get_email_service)
) -> CoachAdminService:
    return CoachAdminService(db, email_service)


def get_payment_request_service(
    db: Session = Depends(get_db), email_service: EmailService = Depends(get_email_service)
) -> PaymentRequestService:
    return PaymentRequestService(db, email_service)


def get_email_sequence_service(
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    template_service: TemplateService = Depends(get_template_service),
) -> EmailSequenceService:
    return EmailSequenceService(db, email_service, template_service)


def get_integration_service(db: Session = Depends(get_db)) -> IntegrationService:
    """
    Get integration service instance.

    The live service talks to platforms over the default httpx transport.
    """
    return IntegrationService(db)


def get_conversation_service(db: Session = Depends(get_db)) -> ConversationService:
    return ConversationService(db)


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    return MessageService(db)
