# backend/app/repositories/password_reset_repository.py

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models.password_reset import PasswordResetToken
from .base_repository import BaseRepository


class PasswordResetRepository(BaseRepository[PasswordResetToken]):
    def __init__(self, db: Session):
        super().__init__(db, PasswordResetToken)

    def get_by_token(self, token: str) -> Optional[PasswordResetToken]:
        return self.find_one_by(token=token)

    def invalidate_for_user(self, user_id: str) -> int:
        """Mark every outstanding token for the user as used."""
        count = (
            self.db.query(PasswordResetToken)
            .filter(PasswordResetToken.user_id == user_id, PasswordResetToken.used.is_(False))
            .update({PasswordResetToken.used: True}, synchronize_session=False)
        )
        self.db.flush()
        return int(count)

    def delete_expired(self, now: datetime) -> int:
        count = (
            self.db.query(PasswordResetToken)
            .filter(PasswordResetToken.expires_at < now)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return int(count)
