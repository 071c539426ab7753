# backend/app/services/client_service.py
"""
Client Service for CoachDesk.

Coaches manage their client roster here: add clients by email, invite
them, update or remove the relationship. Removing a relationship never
deletes the client account.
"""

from datetime import timedelta
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..auth import generate_secure_token
from ..core.config import settings
from ..core.constants import CLIENT_INVITE_EXPIRE_DAYS
from ..core.enums import ClientCoachStatus, UserType
from ..core.exceptions import (
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..events.auth_events import ClientConnected
from ..models.client import ClientCoach, ClientInvite
from ..models.types import utcnow
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..repositories.user_repository import normalize_email
from ..schemas.coach import ClientAdd, ClientInviteCreate, ClientRelationshipUpdate
from .base import BaseService
from .email import EmailService

logger = logging.getLogger(__name__)


class ClientService(BaseService):
    def __init__(self, db: Session, email_service: Optional[EmailService] = None):
        super().__init__(db)
        self._email_service = email_service
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.client_coach_repository = RepositoryFactory.create_client_coach_repository(db)
        self.invite_repository = RepositoryFactory.create_client_invite_repository(db)

    @property
    def email_service(self) -> EmailService:
        if self._email_service is None:
            self._email_service = EmailService(self.db)
        return self._email_service

    def _get_link(self, coach_id: str, client_id: str) -> ClientCoach:
        link = self.client_coach_repository.get_link(coach_id, client_id)
        if link is None:
            raise NotFoundException("Client not found", code="CLIENT_NOT_FOUND")
        return link

    # Roster

    @BaseService.measure_operation("list_clients")
    def list_clients(
        self,
        coach_id: str,
        *,
        search: Optional[str] = None,
        status: Optional[ClientCoachStatus] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[ClientCoach], int]:
        return self.client_coach_repository.list_for_coach(
            coach_id, search=search, status=status, page=page, per_page=per_page
        )

    def get_client(self, coach_id: str, client_id: str) -> ClientCoach:
        return self._get_link(coach_id, client_id)

    @BaseService.measure_operation("add_client")
    def add_client(self, coach: User, data: ClientAdd) -> ClientCoach:
        """
        Link a client to the coach, creating the client account if needed.

        New accounts get a random password and an account-setup email.

        Raises:
            ConflictException: If the client is already on this coach's roster
        """
        client = self.user_repository.get_by_email(data.email, UserType.CLIENT)
        if client is not None and client.is_deleted:
            raise BusinessRuleException("This client account has been deleted", code="CLIENT_DELETED")
        if client is not None and self.client_coach_repository.get_link(coach.id, client.id):
            raise ConflictException("Client is already on your roster", code="CLIENT_EXISTS")

        created = client is None
        with self.transaction():
            if client is None:
                from .auth_service import AuthService

                client = AuthService(self.db).create_user_with_random_password(
                    email=data.email,
                    first_name=data.first_name,
                    last_name=data.last_name,
                    user_type=UserType.CLIENT,
                    phone=data.phone,
                )
            link = self.client_coach_repository.create(
                client_id=client.id,
                coach_id=coach.id,
                status=ClientCoachStatus.ACTIVE.value,
                is_primary=not self.client_coach_repository.list_coach_ids_for_client(client.id),
                notes=data.notes,
            )
            self.publish_after_commit(ClientConnected(client_id=client.id, coach_id=coach.id))

        if created:
            from .password_reset_service import PasswordResetService

            try:
                PasswordResetService(self.db, self.email_service).send_reset_link(client, setup=True)
            except Exception as e:
                self.logger.error("Account setup email failed for client %s: %s", client.id, e)
        self.log_operation("client_added", coach_id=coach.id, client_id=client.id, created=created)
        return link

    @BaseService.measure_operation("update_client_relationship")
    def update_relationship(self, coach_id: str, client_id: str, data: ClientRelationshipUpdate) -> ClientCoach:
        link = self._get_link(coach_id, client_id)
        changes = data.model_dump(exclude_unset=True)
        if "status" in changes and changes["status"] is not None:
            changes["status"] = ClientCoachStatus(changes["status"]).value
        with self.transaction():
            for key, value in changes.items():
                setattr(link, key, value)
        return link

    @BaseService.measure_operation("remove_client")
    def remove_client(self, coach_id: str, client_id: str) -> None:
        link = self._get_link(coach_id, client_id)
        with self.transaction():
            self.client_coach_repository.delete(link.id)
        self.log_operation("client_removed", coach_id=coach_id, client_id=client_id)

    def list_coach_ids(self, client_id: str) -> List[str]:
        return self.client_coach_repository.list_coach_ids_for_client(client_id)

    def ensure_linked(self, coach_id: str, client_id: str) -> None:
        if not self.client_coach_repository.is_linked(coach_id, client_id):
            raise ForbiddenException("Client is not linked to this coach", code="NOT_LINKED")

    # Invites

    @BaseService.measure_operation("invite_client")
    def invite_client(self, coach: User, data: ClientInviteCreate) -> ClientInvite:
        """Create (or refresh) an invite and email the join link."""
        email = normalize_email(data.email)
        existing_client = self.user_repository.get_by_email(email, UserType.CLIENT)
        if existing_client and self.client_coach_repository.get_link(coach.id, existing_client.id):
            raise ConflictException("Client is already on your roster", code="CLIENT_EXISTS")

        now = utcnow()
        expires_at = now + timedelta(days=CLIENT_INVITE_EXPIRE_DAYS)
        with self.transaction():
            invite = self.invite_repository.get_open_invite(coach.id, email, now)
            if invite is None:
                invite = self.invite_repository.create(
                    coach_id=coach.id,
                    email=email,
                    first_name=data.first_name,
                    message=data.message,
                    token=generate_secure_token(),
                    expires_at=expires_at,
                )
            else:
                invite.token = generate_secure_token()
                invite.expires_at = expires_at
                invite.first_name = data.first_name or invite.first_name
                invite.message = data.message or invite.message

        self.email_service.send_client_invite(
            to_email=email,
            coach_name=coach.display_name or coach.full_name,
            invite_url=f"{settings.frontend_url}/join?invite={invite.token}",
            expires_at=invite.expires_at,
            first_name=invite.first_name,
            message=invite.message,
        )
        self.log_operation("client_invited", coach_id=coach.id, invite_id=invite.id)
        return invite

    def list_invites(self, coach_id: str, include_accepted: bool = False) -> List[ClientInvite]:
        return self.invite_repository.list_for_coach(coach_id, include_accepted=include_accepted)

    @BaseService.measure_operation("accept_invite")
    def accept_invite(self, client: User, token: str) -> ClientCoach:
        """
        Link an already registered client to the inviting coach.

        Raises:
            ValidationException: Unknown, expired, used, or someone else's invite
        """
        invite = self.invite_repository.get_by_token(token)
        if invite is None or invite.accepted_at is not None or invite.expires_at < utcnow():
            raise ValidationException("Invite is invalid or has expired", code="INVALID_INVITE")
        if invite.email != normalize_email(client.email):
            raise ValidationException("Invite was sent to a different email", code="INVITE_EMAIL_MISMATCH")

        with self.transaction():
            link = self.client_coach_repository.get_link(invite.coach_id, client.id)
            if link is None:
                link = self.client_coach_repository.create(
                    client_id=client.id,
                    coach_id=invite.coach_id,
                    status=ClientCoachStatus.ACTIVE.value,
                    is_primary=not self.client_coach_repository.list_coach_ids_for_client(client.id),
                )
            else:
                link.status = ClientCoachStatus.ACTIVE.value
            invite.accepted_at = utcnow()
            self.publish_after_commit(
                ClientConnected(client_id=client.id, coach_id=invite.coach_id, via_invite=True)
            )
        return link
