# backend/app/services/content_service.py
"""Coach content library: categories, pieces and engagement metrics."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.constants import TOP_CONTENT_DEFAULT_LIMIT
from ..core.enums import ContentStatus
from ..core.exceptions import ConflictException, NotFoundException
from ..models.content import ContentCategory, ContentPiece
from ..models.types import utcnow
from ..repositories.base_repository import column_value
from ..repositories.factory import RepositoryFactory
from ..schemas.content import (
    CategoryCreate,
    CategoryUpdate,
    ContentCreate,
    ContentMetricsUpdate,
    ContentUpdate,
)
from .base import BaseService

logger = logging.getLogger(__name__)


def engagement_rate(views: int, likes: int, comments: int, shares: int) -> float:
    """(likes + comments + shares) / views x 100, rounded to 2 places; 0 without views."""
    if not views:
        return 0.0
    return round((likes + comments + shares) / views * 100, 2)


class ContentService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.category_repository = RepositoryFactory.create_content_category_repository(db)
        self.content_repository = RepositoryFactory.create_content_piece_repository(db)

    # Categories

    def _get_category(self, coach_id: str, category_id: str) -> ContentCategory:
        category = self.category_repository.get_by_id(category_id, load_relationships=False)
        if category is None or category.coach_id != coach_id:
            raise NotFoundException("Category not found", code="CATEGORY_NOT_FOUND")
        return category

    def list_categories(self, coach_id: str) -> List[ContentCategory]:
        return self.category_repository.list_for_coach(coach_id)

    @BaseService.measure_operation("create_category")
    def create_category(self, coach_id: str, data: CategoryCreate) -> ContentCategory:
        if self.category_repository.get_by_name(coach_id, data.name):
            raise ConflictException(f"Category '{data.name}' already exists", code="CATEGORY_EXISTS")
        with self.transaction():
            category = self.category_repository.create(coach_id=coach_id, **data.model_dump())
        return category

    def update_category(self, coach_id: str, category_id: str, data: CategoryUpdate) -> ContentCategory:
        category = self._get_category(coach_id, category_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name"):
            clash = self.category_repository.get_by_name(coach_id, changes["name"])
            if clash is not None and clash.id != category.id:
                raise ConflictException(f"Category '{changes['name']}' already exists", code="CATEGORY_EXISTS")
        with self.transaction():
            for key, value in changes.items():
                setattr(category, key, value)
        return category

    def delete_category(self, coach_id: str, category_id: str) -> None:
        """Delete a category; its pieces become uncategorised."""
        category = self._get_category(coach_id, category_id)
        with self.transaction():
            self.content_repository.detach_category(category.id)
            self.db.delete(category)

    def category_stats(self, coach_id: str) -> List[Dict[str, Any]]:
        return [
            {
                "category_id": category_id,
                "category_name": name or "Uncategorized",
                "content_count": count,
                "total_views": views,
            }
            for category_id, name, count, views in self.category_repository.stats_for_coach(coach_id)
        ]

    # Pieces

    def get_content(self, coach_id: str, content_id: str) -> ContentPiece:
        piece = self.content_repository.get_by_id(content_id)
        if piece is None or piece.coach_id != coach_id:
            raise NotFoundException("Content not found", code="CONTENT_NOT_FOUND")
        return piece

    def list_content(
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
        return self.content_repository.list_for_coach(
            coach_id,
            category_id=category_id,
            platform=platform,
            status=status,
            search=search,
            page=page,
            per_page=per_page,
        )

    @BaseService.measure_operation("create_content")
    def create_content(self, coach_id: str, data: ContentCreate) -> ContentPiece:
        if data.category_id:
            self._get_category(coach_id, data.category_id)
        values = data.model_dump()
        if data.status == ContentStatus.PUBLISHED and values.get("published_at") is None:
            values["published_at"] = utcnow()
        with self.transaction():
            piece = self.content_repository.create(coach_id=coach_id, **values)
        return piece

    def update_content(self, coach_id: str, content_id: str, data: ContentUpdate) -> ContentPiece:
        piece = self.get_content(coach_id, content_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("category_id"):
            self._get_category(coach_id, changes["category_id"])
        with self.transaction():
            for key, value in changes.items():
                setattr(piece, key, column_value(value))
            if piece.status == ContentStatus.PUBLISHED.value and piece.published_at is None:
                piece.published_at = utcnow()
        return piece

    def delete_content(self, coach_id: str, content_id: str) -> None:
        piece = self.get_content(coach_id, content_id)
        with self.transaction():
            self.db.delete(piece)

    @BaseService.measure_operation("update_content_metrics")
    def update_metrics(self, coach_id: str, content_id: str, data: ContentMetricsUpdate) -> ContentPiece:
        piece = self.get_content(coach_id, content_id)
        with self.transaction():
            for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
                setattr(piece, key, column_value(value))
            piece.engagement_rate = engagement_rate(piece.views, piece.likes, piece.comments, piece.shares)
        return piece

    def top_performing(self, coach_id: str, limit: int = TOP_CONTENT_DEFAULT_LIMIT) -> List[ContentPiece]:
        return self.content_repository.top_performing(coach_id, limit)
