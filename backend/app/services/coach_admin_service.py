# backend/app/services/coach_admin_service.py
"""
Coach administration for platform admins.

Lists and inspects coach accounts, toggles their access, soft-deletes them,
finds coaches that stopped logging in, and emails individual coaches.
"""

from datetime import timedelta
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.constants import INACTIVE_COACH_DEFAULT_DAYS
from ..core.enums import CoachAccountStatus, ClientCoachStatus
from ..core.exceptions import BusinessRuleException, NotFoundException
from ..models.types import utcnow
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.coach import CoachAdminUpdate
from .base import BaseService
from .email import EmailService

logger = logging.getLogger(__name__)


class CoachAdminService(BaseService):
    def __init__(self, db: Session, email_service: Optional[EmailService] = None):
        super().__init__(db)
        self._email_service = email_service
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.client_coach_repository = RepositoryFactory.create_client_coach_repository(db)
        self.subscription_repository = RepositoryFactory.create_subscription_repository(db)

    @property
    def email_service(self) -> EmailService:
        if self._email_service is None:
            self._email_service = EmailService(self.db)
        return self._email_service

    def _get_coach(self, coach_id: str, *, include_deleted: bool = False) -> User:
        coach = self.user_repository.get_coach(coach_id, include_deleted=include_deleted)
        if coach is None:
            raise NotFoundException("Coach not found", code="COACH_NOT_FOUND")
        return coach

    @BaseService.measure_operation("list_coaches")
    def list_coaches(
        self,
        *,
        search: Optional[str] = None,
        status: Optional[CoachAccountStatus] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[User], int]:
        return self.user_repository.list_coaches(search=search, status=status, page=page, per_page=per_page)

    @BaseService.measure_operation("get_coach_detail")
    def get_coach_detail(self, coach_id: str) -> Dict[str, Any]:
        coach = self._get_coach(coach_id, include_deleted=True)
        return {
            "coach": coach,
            "client_count": self.client_coach_repository.count_for_coach(
                coach.id, status=ClientCoachStatus.ACTIVE
            ),
            "active_subscription": self.subscription_repository.get_live_for_coach(coach.id),
        }

    @BaseService.measure_operation("update_coach")
    def update_coach(self, coach_id: str, data: CoachAdminUpdate) -> User:
        coach = self._get_coach(coach_id)
        with self.transaction():
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(coach, key, value)
        return coach

    @BaseService.measure_operation("deactivate_coach")
    def deactivate_coach(self, coach_id: str, reason: Optional[str] = None) -> User:
        coach = self._get_coach(coach_id)
        with self.transaction():
            coach.is_active = False
        self.log_operation("coach_deactivated", coach_id=coach.id, reason=reason)
        return coach

    @BaseService.measure_operation("reactivate_coach")
    def reactivate_coach(self, coach_id: str) -> User:
        coach = self._get_coach(coach_id, include_deleted=True)
        if coach.is_deleted:
            raise BusinessRuleException("Deleted coaches cannot be reactivated", code="COACH_DELETED")
        with self.transaction():
            coach.is_active = True
        self.log_operation("coach_reactivated", coach_id=coach.id)
        return coach

    @BaseService.measure_operation("delete_coach")
    def delete_coach(self, coach_id: str) -> User:
        """Soft delete: the row stays for billing history but is hidden everywhere."""
        coach = self._get_coach(coach_id)
        with self.transaction():
            coach.deleted_at = utcnow()
            coach.is_active = False
        self.log_operation("coach_deleted", coach_id=coach.id)
        return coach

    @BaseService.measure_operation("list_inactive_coaches")
    def list_inactive_coaches(self, days: int = INACTIVE_COACH_DEFAULT_DAYS) -> List[User]:
        """Active coaches with no login in the last ``days`` days."""
        return self.user_repository.list_inactive_coaches(utcnow() - timedelta(days=days))

    @BaseService.measure_operation("email_coach")
    def send_email_to_coach(self, coach_id: str, subject: str, body: str) -> None:
        coach = self._get_coach(coach_id)
        self.email_service.send_direct_message(coach.email, coach.first_name, subject, body)
        self.log_operation("coach_emailed", coach_id=coach.id, subject=subject)
