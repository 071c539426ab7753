# backend/app/repositories/integration_repository.py

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.integration import Integration
from .base_repository import BaseRepository


class IntegrationRepository(BaseRepository[Integration]):
    def __init__(self, db: Session):
        super().__init__(db, Integration)

    def get_for_platform(self, coach_id: str, platform_name: str) -> Optional[Integration]:
        return self.find_one_by(coach_id=coach_id, platform_name=platform_name)

    def list_for_coach(self, coach_id: str) -> List[Integration]:
        return self._execute_query(
            self.db.query(Integration)
            .filter(Integration.coach_id == coach_id)
            .order_by(Integration.platform_name.asc())
        )

    def list_expiring(self, until: datetime) -> List[Integration]:
        """Active integrations with a refresh token whose access token expires before ``until``."""
        query = self.db.query(Integration).filter(
            Integration.is_active.is_(True),
            Integration.refresh_token.isnot(None),
            Integration.token_expires_at.isnot(None),
            Integration.token_expires_at <= until,
        )
        return self._execute_query(query.order_by(Integration.token_expires_at.asc()))
