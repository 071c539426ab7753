# backend/app/repositories/client_repository.py
"""
Coach/client relationship and invite data access.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..core.enums import ClientCoachStatus
from ..models.client import ClientCoach, ClientInvite
from ..models.user import User
from .base_repository import BaseRepository
from .user_repository import apply_user_search, normalize_email


class ClientCoachRepository(BaseRepository[ClientCoach]):
    def __init__(self, db: Session):
        super().__init__(db, ClientCoach)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(joinedload(ClientCoach.client), joinedload(ClientCoach.coach))

    def get_link(self, coach_id: str, client_id: str) -> Optional[ClientCoach]:
        return (
            self._apply_eager_loading(self.db.query(ClientCoach))
            .filter(ClientCoach.coach_id == coach_id, ClientCoach.client_id == client_id)
            .first()
        )

    def is_linked(self, coach_id: str, client_id: str, *, active_only: bool = True) -> bool:
        query = self.db.query(ClientCoach.id).filter(
            ClientCoach.coach_id == coach_id, ClientCoach.client_id == client_id
        )
        if active_only:
            query = query.filter(ClientCoach.status == ClientCoachStatus.ACTIVE.value)
        return query.first() is not None

    def list_for_coach(
        self,
        coach_id: str,
        *,
        search: Optional[str] = None,
        status: Optional[ClientCoachStatus] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[ClientCoach], int]:
        query = (
            self.db.query(ClientCoach)
            .join(User, User.id == ClientCoach.client_id)
            .options(joinedload(ClientCoach.client))
            .filter(ClientCoach.coach_id == coach_id, User.deleted_at.is_(None))
        )
        if status is not None:
            query = query.filter(ClientCoach.status == status.value)
        query = apply_user_search(query, search).order_by(ClientCoach.created_at.desc())
        return self._paginate(query, page, per_page)

    def list_coach_ids_for_client(self, client_id: str) -> List[str]:
        rows = (
            self.db.query(ClientCoach.coach_id)
            .filter(
                ClientCoach.client_id == client_id,
                ClientCoach.status == ClientCoachStatus.ACTIVE.value,
            )
            .all()
        )
        return [row[0] for row in rows]

    def count_for_coach(
        self, coach_id: str, *, status: Optional[ClientCoachStatus] = None, since: Optional[datetime] = None
    ) -> int:
        query = self.db.query(func.count(ClientCoach.id)).filter(ClientCoach.coach_id == coach_id)
        if status is not None:
            query = query.filter(ClientCoach.status == status.value)
        if since is not None:
            query = query.filter(ClientCoach.created_at >= since)
        return int(self._execute_scalar(query) or 0)


class ClientInviteRepository(BaseRepository[ClientInvite]):
    def __init__(self, db: Session):
        super().__init__(db, ClientInvite)

    def get_by_token(self, token: str) -> Optional[ClientInvite]:
        return self.find_one_by(token=token)

    def get_open_invite(self, coach_id: str, email: str, now: datetime) -> Optional[ClientInvite]:
        return (
            self.db.query(ClientInvite)
            .filter(
                ClientInvite.coach_id == coach_id,
                ClientInvite.email == normalize_email(email),
                ClientInvite.accepted_at.is_(None),
                ClientInvite.expires_at > now,
            )
            .first()
        )

    def list_for_coach(self, coach_id: str, *, include_accepted: bool = False) -> List[ClientInvite]:
        query = self.db.query(ClientInvite).filter(ClientInvite.coach_id == coach_id)
        if not include_accepted:
            query = query.filter(ClientInvite.accepted_at.is_(None))
        return self._execute_query(query.order_by(ClientInvite.created_at.desc()))
