# backend/app/repositories/user_repository.py
"""
User Repository for CoachDesk.

Lookups are always scoped by ``user_type`` because one email may own a coach
account and a client account at the same time.
"""

from datetime import datetime
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import CoachAccountStatus, UserType
from ..core.exceptions import RepositoryException
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def apply_user_search(query, search: Optional[str]):  # type: ignore[no-untyped-def]
    if not search:
        return query
    pattern = f"%{search.strip().lower()}%"
    return query.filter(
        or_(
            func.lower(User.email).like(pattern),
            func.lower(User.first_name).like(pattern),
            func.lower(User.last_name).like(pattern),
            func.lower(func.coalesce(User.business_name, "")).like(pattern),
        )
    )


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_email(self, email: str, user_type: UserType | str) -> Optional[User]:
        """Exact (case-insensitive) lookup, including soft-deleted accounts."""
        kind = user_type.value if isinstance(user_type, UserType) else user_type
        try:
            return (
                self.db.query(User)
                .filter(User.email == normalize_email(email), User.user_type == kind)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error("Error getting user by email: %s", e)
            raise RepositoryException(f"Failed to look up user: {e}") from e

    def get_by_ids(self, user_ids: Sequence[str]) -> List[User]:
        if not user_ids:
            return []
        return self._execute_query(self.db.query(User).filter(User.id.in_(list(user_ids))))

    def get_coach(self, coach_id: str, include_deleted: bool = False) -> Optional[User]:
        query = self.db.query(User).filter(User.id == coach_id, User.user_type == UserType.COACH.value)
        if not include_deleted:
            query = query.filter(User.deleted_at.is_(None))
        return query.first()

    def list_coaches(
        self,
        *,
        search: Optional[str] = None,
        status: Optional[CoachAccountStatus] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[User], int]:
        query = self.db.query(User).filter(User.user_type == UserType.COACH.value)
        if status == CoachAccountStatus.DELETED:
            query = query.filter(User.deleted_at.isnot(None))
        else:
            query = query.filter(User.deleted_at.is_(None))
            if status == CoachAccountStatus.ACTIVE:
                query = query.filter(User.is_active.is_(True))
            elif status == CoachAccountStatus.INACTIVE:
                query = query.filter(User.is_active.is_(False))
        query = apply_user_search(query, search).order_by(User.created_at.desc())
        return self._paginate(query, page, per_page)

    def list_inactive_coaches(self, cutoff: datetime) -> List[User]:
        """Active coaches that have not logged in since ``cutoff`` (or never)."""
        query = (
            self.db.query(User)
            .filter(
                User.user_type == UserType.COACH.value,
                User.deleted_at.is_(None),
                User.is_active.is_(True),
                or_(User.last_login_at.is_(None), User.last_login_at < cutoff),
            )
            .order_by(User.last_login_at.asc())
        )
        return self._execute_query(query)

    def count_by_type(
        self,
        user_type: UserType,
        *,
        active_only: bool = False,
        created_since: Optional[datetime] = None,
    ) -> int:
        query = self.db.query(func.count(User.id)).filter(
            User.user_type == user_type.value, User.deleted_at.is_(None)
        )
        if active_only:
            query = query.filter(User.is_active.is_(True))
        if created_since is not None:
            query = query.filter(User.created_at >= created_since)
        return int(self._execute_scalar(query) or 0)
