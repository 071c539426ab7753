"""Content library schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..core.enums import ContentStatus, ContentType
from ._strict_base import ORMResponse, StrictRequestModel


class CategoryCreate(StrictRequestModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryUpdate(StrictRequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryResponse(ORMResponse):
    id: str
    coach_id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    created_at: datetime


class ContentCreate(StrictRequestModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    category_id: Optional[str] = Field(default=None, min_length=26, max_length=26)
    content_type: ContentType = ContentType.TEXT
    platform: Optional[str] = Field(default=None, max_length=30)
    platform_id: Optional[str] = Field(default=None, max_length=100)
    url: Optional[str] = Field(default=None, max_length=500)
    thumbnail_url: Optional[str] = Field(default=None, max_length=500)
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    tags: List[str] = Field(default_factory=list)
    status: ContentStatus = ContentStatus.DRAFT
    published_at: Optional[datetime] = None


class ContentUpdate(StrictRequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category_id: Optional[str] = Field(default=None, min_length=26, max_length=26)
    content_type: Optional[ContentType] = None
    platform: Optional[str] = Field(default=None, max_length=30)
    platform_id: Optional[str] = Field(default=None, max_length=100)
    url: Optional[str] = Field(default=None, max_length=500)
    thumbnail_url: Optional[str] = Field(default=None, max_length=500)
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    tags: Optional[List[str]] = None
    status: Optional[ContentStatus] = None
    published_at: Optional[datetime] = None


class ContentMetricsUpdate(StrictRequestModel):
    views: Optional[int] = Field(default=None, ge=0)
    likes: Optional[int] = Field(default=None, ge=0)
    comments: Optional[int] = Field(default=None, ge=0)
    shares: Optional[int] = Field(default=None, ge=0)


class ContentResponse(ORMResponse):
    id: str
    coach_id: str
    category_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    content_type: ContentType
    platform: Optional[str] = None
    platform_id: Optional[str] = None
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[int] = None
    tags: List[str]
    status: ContentStatus
    views: int
    likes: int
    comments: int
    shares: int
    engagement_rate: float
    published_at: Optional[datetime] = None
    created_at: datetime


class CategoryStats(ORMResponse):
    category_id: Optional[str] = None
    category_name: str
    content_count: int
    total_views: int
