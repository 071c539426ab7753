# backend/app/models/content.py

from sqlalchemy import JSON, Column, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..core.enums import ContentStatus, ContentType
from ..database import Base
from .types import TimestampMixin, UTCDateTime, ulid_pk


class ContentCategory(TimestampMixin, Base):
    __tablename__ = "content_categories"

    id = ulid_pk()
    coach_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(7), nullable=True)

    pieces = relationship("ContentPiece", back_populates="category")


class ContentPiece(TimestampMixin, Base):
    """A piece of published or planned social content with engagement metrics."""

    __tablename__ = "content_pieces"

    id = ulid_pk()
    coach_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(
        String(26), ForeignKey("content_categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    content_type = Column(String(20), nullable=False, default=ContentType.TEXT.value)
    platform = Column(String(30), nullable=True, index=True)
    platform_id = Column(String(100), nullable=True)
    url = Column(String(500), nullable=True)
    thumbnail_url = Column(String(500), nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default=ContentStatus.DRAFT.value)
    views = Column(Integer, nullable=False, default=0)
    likes = Column(Integer, nullable=False, default=0)
    comments = Column(Integer, nullable=False, default=0)
    shares = Column(Integer, nullable=False, default=0)
    engagement_rate = Column(Float, nullable=False, default=0.0)
    published_at = Column(UTCDateTime, nullable=True)

    category = relationship("ContentCategory", back_populates="pieces")
