# backend/app/services/email.py
"""
Email Service for CoachDesk.

Sends transactional email through Resend, or logs it when the console
provider is configured (local development and tests). Domain helpers
render a registered template and pick the subject.
"""

from datetime import datetime
import logging
import re
from typing import Any, Dict, List, Optional

import resend
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics
from .base import BaseService
from .email_subjects import EmailSubject
from .template_registry import TemplateRegistry
from .template_service import TemplateService

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def html_to_text(html_content: str) -> str:
    """Plain-text fallback derived from the HTML body."""
    return _WS_RE.sub(" ", _TAG_RE.sub(" ", html_content)).strip()


def split_paragraphs(text: str) -> List[str]:
    return [chunk.strip() for chunk in re.split(r"\n\s*\n", text or "") if chunk.strip()]


class EmailService(BaseService):
    """Outbound email with template rendering and provider selection."""

    def __init__(self, db: Session, template_service: Optional[TemplateService] = None):
        super().__init__(db)
        self.provider = settings.email_provider
        self.from_email = settings.from_email
        self.templates = template_service or TemplateService()
        if self.provider == "resend":
            if not settings.resend_api_key:
                raise ServiceException("Resend API key not configured")
            resend.api_key = settings.resend_api_key

    @BaseService.measure_operation("send_email")
    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        from_name: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send one email.

        Raises:
            ServiceException: If the provider rejects the message
        """
        sender = f"{from_name} <{self.from_email.split('<')[-1].rstrip('>')}>" if from_name else self.from_email
        email_data: Dict[str, Any] = {
            "from": sender,
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "text": text_content or html_to_text(html_content),
        }
        if reply_to:
            email_data["reply_to"] = reply_to

        if self.provider == "console":
            self.logger.info("[EMAIL:console] to=%s subject=%s", to_email, subject)
            self.logger.debug("[EMAIL:console] body=%s", email_data["text"])
            prometheus_metrics.record_email("console", "sent")
            return {"id": f"console-{datetime.now().timestamp()}", "provider": "console"}

        try:
            response = resend.Emails.send(email_data)  # type: ignore[arg-type]
        except Exception as e:
            prometheus_metrics.record_email("resend", "failed")
            self.logger.error("Failed to send email to %s: %s", to_email, e)
            raise ServiceException(f"Email sending failed: {e}") from e

        prometheus_metrics.record_email("resend", "sent")
        self.log_operation("email_sent", to_email=to_email, subject=subject)
        return dict(response)

    def send_template(
        self,
        to_email: str,
        template: TemplateRegistry,
        subject: str,
        context: Dict[str, Any],
        **kwargs: Any,
    ) -> Dict[str, Any]:
        html_content = self.templates.render_template(template, context)
        return self.send_email(to_email=to_email, subject=subject, html_content=html_content, **kwargs)

    # Account emails

    def send_welcome_email(self, to_email: str, user_name: str, user_type: str, coach_name: Optional[str] = None) -> None:
        template = (
            TemplateRegistry.AUTH_WELCOME_COACH if user_type == "coach" else TemplateRegistry.AUTH_WELCOME_CLIENT
        )
        self.send_template(
            to_email, template, EmailSubject.welcome(), {"user_name": user_name, "coach_name": coach_name}
        )

    def send_password_reset_email(
        self, to_email: str, reset_url: str, user_name: Optional[str] = None, *, setup: bool = False
    ) -> None:
        """Reset link email; ``setup`` words it as first-time account setup."""
        context = {
            "reset_url": reset_url,
            "user_name": user_name,
            "expires_minutes": settings.password_reset_expire_minutes,
        }
        if setup:
            self.send_template(to_email, TemplateRegistry.AUTH_ACCOUNT_SETUP, EmailSubject.account_setup(), context)
        else:
            self.send_template(to_email, TemplateRegistry.AUTH_PASSWORD_RESET, EmailSubject.password_reset(), context)

    def send_password_reset_confirmation(self, to_email: str, user_name: Optional[str] = None) -> None:
        self.send_template(
            to_email,
            TemplateRegistry.AUTH_PASSWORD_RESET_CONFIRMATION,
            EmailSubject.password_reset_confirmation(),
            {"user_name": user_name},
        )

    # Clients

    def send_client_invite(
        self,
        to_email: str,
        coach_name: str,
        invite_url: str,
        expires_at: datetime,
        first_name: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        self.send_template(
            to_email,
            TemplateRegistry.CLIENT_INVITE,
            EmailSubject.client_invite(coach_name),
            {
                "coach_name": coach_name,
                "invite_url": invite_url,
                "expires_at": expires_at,
                "first_name": first_name,
                "message": message,
            },
        )

    def send_client_connected(self, to_email: str, client_name: str, coach_name: str) -> None:
        self.send_template(
            to_email,
            TemplateRegistry.CLIENT_CONNECTED,
            EmailSubject.client_connected(coach_name),
            {"client_name": client_name, "coach_name": coach_name},
        )

    def send_direct_message(self, to_email: str, user_name: str, subject: str, body: str) -> None:
        """Free-form message from the platform team to one user."""
        self.send_template(
            to_email,
            TemplateRegistry.COACH_DIRECT_MESSAGE,
            subject,
            {"user_name": user_name, "paragraphs": split_paragraphs(body)},
        )

    # Billing

    def send_payment_receipt(
        self,
        to_email: str,
        user_name: str,
        invoice_number: str,
        amount: int,
        currency: str,
        paid_at: datetime,
        plan_name: Optional[str] = None,
    ) -> None:
        self.send_template(
            to_email,
            TemplateRegistry.BILLING_PAYMENT_RECEIPT,
            EmailSubject.payment_receipt(invoice_number),
            {
                "user_name": user_name,
                "invoice_number": invoice_number,
                "amount": amount,
                "currency": currency,
                "paid_at": paid_at,
                "plan_name": plan_name,
            },
        )

    def send_payment_request(
        self,
        to_email: str,
        payer_name: str,
        requester_name: str,
        amount: int,
        currency: str,
        pay_url: str,
        expires_at: datetime,
        description: Optional[str] = None,
    ) -> None:
        self.send_template(
            to_email,
            TemplateRegistry.BILLING_PAYMENT_REQUEST,
            EmailSubject.payment_request(requester_name),
            {
                "payer_name": payer_name,
                "requester_name": requester_name,
                "amount": amount,
                "currency": currency,
                "pay_url": pay_url,
                "expires_at": expires_at,
                "description": description,
            },
        )

    # Leads / courses / communities

    def send_sequence_email(self, to_email: str, subject: str, body: str, from_name: Optional[str] = None) -> Dict[str, Any]:
        html_content = self.templates.render_template(
            TemplateRegistry.LEAD_SEQUENCE_STEP, {"paragraphs": split_paragraphs(body)}
        )
        return self.send_email(to_email=to_email, subject=subject, html_content=html_content, from_name=from_name)

    def send_course_enrolled(
        self,
        to_email: str,
        client_name: str,
        course_title: str,
        coach_name: str,
        course_id: str,
        is_drip_enabled: bool,
    ) -> None:
        self.send_template(
            to_email,
            TemplateRegistry.COURSE_ENROLLED,
            EmailSubject.course_enrolled(course_title),
            {
                "client_name": client_name,
                "course_title": course_title,
                "coach_name": coach_name,
                "course_url": f"{settings.frontend_url}/client/courses/{course_id}",
                "is_drip_enabled": is_drip_enabled,
            },
        )

    def send_community_post(
        self, to_email: str, community_name: str, author_name: str, excerpt: str, post_url: str
    ) -> None:
        self.send_template(
            to_email,
            TemplateRegistry.COMMUNITY_NEW_POST,
            EmailSubject.community_new_post(community_name),
            {
                "community_name": community_name,
                "author_name": author_name,
                "excerpt": excerpt,
                "post_url": post_url,
            },
        )
