# backend/app/repositories/content_repository.py

from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ..core.enums import ContentStatus
from ..models.content import ContentCategory, ContentPiece
from .base_repository import BaseRepository


class ContentCategoryRepository(BaseRepository[ContentCategory]):
    def __init__(self, db: Session):
        super().__init__(db, ContentCategory)

    def list_for_coach(self, coach_id: str) -> List[ContentCategory]:
        return self._execute_query(
            self.db.query(ContentCategory)
            .filter(ContentCategory.coach_id == coach_id)
            .order_by(ContentCategory.name.asc())
        )

    def get_by_name(self, coach_id: str, name: str) -> Optional[ContentCategory]:
        return (
            self.db.query(ContentCategory)
            .filter(
                ContentCategory.coach_id == coach_id,
                func.lower(ContentCategory.name) == name.strip().lower(),
            )
            .first()
        )

    def stats_for_coach(self, coach_id: str) -> List[Tuple[Optional[str], Optional[str], int, int]]:
        """(category_id, category_name, piece_count, total_views); uncategorised rows have None."""
        query = (
            self.db.query(
                ContentPiece.category_id,
                ContentCategory.name,
                func.count(ContentPiece.id),
                func.coalesce(func.sum(ContentPiece.views), 0),
            )
            .outerjoin(ContentCategory, ContentCategory.id == ContentPiece.category_id)
            .filter(ContentPiece.coach_id == coach_id)
            .group_by(ContentPiece.category_id, ContentCategory.name)
            .order_by(ContentCategory.name.asc())
        )
        return [(row[0], row[1], int(row[2]), int(row[3])) for row in self._execute_query(query)]


class ContentPieceRepository(BaseRepository[ContentPiece]):
    def __init__(self, db: Session):
        super().__init__(db, ContentPiece)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(joinedload(ContentPiece.category))

    def list_for_coach(
        self,
        coach_id: str,
        *,
        category_id: Optional[str] = None,
        platform: Optional[str] = None,
        status: Optional[ContentStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[ContentPiece], int]:
        query = self._apply_eager_loading(self.db.query(ContentPiece)).filter(ContentPiece.coach_id == coach_id)
        if category_id:
            query = query.filter(ContentPiece.category_id == category_id)
        if platform:
            query = query.filter(ContentPiece.platform == platform)
        if status is not None:
            query = query.filter(ContentPiece.status == status.value)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(ContentPiece.title).like(pattern),
                    func.lower(func.coalesce(ContentPiece.description, "")).like(pattern),
                )
            )
        return self._paginate(query.order_by(ContentPiece.created_at.desc()), page, per_page)

    def top_performing(self, coach_id: str, limit: int) -> List[ContentPiece]:
        return self._execute_query(
            self.db.query(ContentPiece)
            .filter(ContentPiece.coach_id == coach_id)
            .order_by(ContentPiece.engagement_rate.desc(), ContentPiece.views.desc())
            .limit(limit)
        )

    def totals_for_coach(self, coach_id: str) -> Dict[str, float]:
        count, views, avg_engagement = (
            self.db.query(
                func.count(ContentPiece.id),
                func.coalesce(func.sum(ContentPiece.views), 0),
                func.coalesce(func.avg(ContentPiece.engagement_rate), 0),
            )
            .filter(ContentPiece.coach_id == coach_id)
            .one()
        )
        return {
            "total_pieces": int(count or 0),
            "total_views": int(views or 0),
            "average_engagement_rate": round(float(avg_engagement or 0), 2),
        }

    def detach_category(self, category_id: str) -> None:
        self.db.query(ContentPiece).filter(ContentPiece.category_id == category_id).update(
            {ContentPiece.category_id: None}, synchronize_session=False
        )
        self.db.flush()
