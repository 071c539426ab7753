# backend/app/routes/v1/content.py
"""
Content library routes - API v1

Mounted under /api/v1/content. Everything is scoped to the calling coach.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...api.dependencies.auth import require_coach
from ...core.constants import TOP_CONTENT_DEFAULT_LIMIT
from ...core.enums import ContentStatus
from ...database import get_db
from ...models.user import User
from ...schemas.base_responses import DeleteResponse, PaginatedResponse
from ...schemas.content import (
    CategoryCreate,
    CategoryResponse,
    CategoryStats,
    CategoryUpdate,
    ContentCreate,
    ContentMetricsUpdate,
    ContentResponse,
    ContentUpdate,
)
from ...services.content_service import ContentService

router = APIRouter(tags=["content-v1"])


# Categories

@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> List[CategoryResponse]:
    return [CategoryResponse.model_validate(c) for c in ContentService(db).list_categories(current_user.id)]


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> CategoryResponse:
    return CategoryResponse.model_validate(ContentService(db).create_category(current_user.id, payload))


@router.get("/categories/stats", response_model=List[CategoryStats])
def category_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> List[CategoryStats]:
    return [CategoryStats.model_validate(row) for row in ContentService(db).category_stats(current_user.id)]


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> CategoryResponse:
    category = ContentService(db).update_category(current_user.id, category_id, payload)
    return CategoryResponse.model_validate(category)


@router.delete("/categories/{category_id}", response_model=DeleteResponse)
def delete_category(
    category_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> DeleteResponse:
    ContentService(db).delete_category(current_user.id, category_id)
    return DeleteResponse(message="Category deleted")


# Pieces

@router.get("", response_model=PaginatedResponse[ContentResponse])
def list_content(
    category_id: Optional[str] = Query(None),
    platform: Optional[str] = Query(None, max_length=50),
    status_filter: Optional[ContentStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> PaginatedResponse[ContentResponse]:
    items, total = ContentService(db).list_content(
        current_user.id,
        category_id=category_id,
        platform=platform,
        status=status_filter,
        search=search,
        page=page,
        per_page=per_page,
    )
    return PaginatedResponse[ContentResponse].build(
        [ContentResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.post("", response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
def create_content(
    payload: ContentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> ContentResponse:
    return ContentResponse.model_validate(ContentService(db).create_content(current_user.id, payload))


@router.get("/top", response_model=List[ContentResponse])
def top_performing(
    limit: int = Query(TOP_CONTENT_DEFAULT_LIMIT, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> List[ContentResponse]:
    """Highest engagement rate first, views break ties."""
    pieces = ContentService(db).top_performing(current_user.id, limit)
    return [ContentResponse.model_validate(piece) for piece in pieces]


@router.get("/{content_id}", response_model=ContentResponse)
def get_content(
    content_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> ContentResponse:
    return ContentResponse.model_validate(ContentService(db).get_content(current_user.id, content_id))


@router.patch("/{content_id}", response_model=ContentResponse)
def update_content(
    content_id: str,
    payload: ContentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> ContentResponse:
    return ContentResponse.model_validate(ContentService(db).update_content(current_user.id, content_id, payload))


@router.put("/{content_id}/metrics", response_model=ContentResponse)
def update_metrics(
    content_id: str,
    payload: ContentMetricsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> ContentResponse:
    return ContentResponse.model_validate(ContentService(db).update_metrics(current_user.id, content_id, payload))


@router.delete("/{content_id}", response_model=DeleteResponse)
def delete_content(
    content_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach),
) -> DeleteResponse:
    ContentService(db).delete_content(current_user.id, content_id)
    return DeleteResponse(message="Content deleted")
