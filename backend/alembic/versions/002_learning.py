# backend/alembic/versions/002_learning.py
"""Learning - courses, chapters, lessons, enrollments, progress, content library

Revision ID: 002_learning
Revises: 001_accounts
Create Date: 2026-09-01 00:10:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "002_learning"
down_revision: Union[str, None] = "001_accounts"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TS = sa.DateTime(timezone=True)


def _fk_user(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=nullable)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "courses",
        sa.Column("id", sa.String(26), primary_key=True),
        _fk_user("coach_id"),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("difficulty", sa.String(20), nullable=True),
        sa.Column("thumbnail_url", sa.String(500), nullable=True),
        sa.Column("pricing_type", sa.String(20), nullable=False, server_default="free"),
        sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("allow_installments", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("installment_count", sa.Integer(), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("published_at", TS, nullable=True),
        sa.Column("is_drip_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("drip_interval", sa.String(10), nullable=False, server_default="day"),
        sa.Column("drip_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("estimated_duration_hours", sa.Float(), nullable=True),
        sa.Column("total_enrollments", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_courses_coach_id", "courses", ["coach_id"])

    op.create_table(
        "course_chapters",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("course_id", sa.String(26), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_course_chapters_course_id", "course_chapters", ["course_id"])

    op.create_table(
        "course_lessons",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "chapter_id", sa.String(26), sa.ForeignKey("course_chapters.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("lesson_type", sa.String(10), nullable=False, server_default="text"),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("video_url", sa.String(500), nullable=True),
        sa.Column("pdf_url", sa.String(500), nullable=True),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("drip_delay", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("estimated_minutes", sa.Integer(), nullable=True),
        sa.Column("is_preview", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_course_lessons_chapter_id", "course_lessons", ["chapter_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("course_id", sa.String(26), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        _fk_user("client_id"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("enrolled_at", TS, nullable=False),
        sa.Column("completed_at", TS, nullable=True),
        sa.Column("progress_percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("last_accessed_at", TS, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("course_id", "client_id", name="uq_enrollment_course_client"),
    )
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])
    op.create_index("ix_enrollments_client_id", "enrollments", ["client_id"])

    op.create_table(
        "lesson_progress",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "enrollment_id", sa.String(26), sa.ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "lesson_id", sa.String(26), sa.ForeignKey("course_lessons.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("completed_at", TS, nullable=False),
        sa.UniqueConstraint("enrollment_id", "lesson_id", name="uq_progress_lesson"),
    )
    op.create_index("ix_lesson_progress_enrollment_id", "lesson_progress", ["enrollment_id"])

    op.create_table(
        "content_categories",
        sa.Column("id", sa.String(26), primary_key=True),
        _fk_user("coach_id"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(7), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_content_categories_coach_id", "content_categories", ["coach_id"])

    op.create_table(
        "content_pieces",
        sa.Column("id", sa.String(26), primary_key=True),
        _fk_user("coach_id"),
        sa.Column(
            "category_id",
            sa.String(26),
            sa.ForeignKey("content_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content_type", sa.String(20), nullable=False, server_default="text"),
        sa.Column("platform", sa.String(30), nullable=True),
        sa.Column("platform_id", sa.String(100), nullable=True),
        sa.Column("url", sa.String(500), nullable=True),
        sa.Column("thumbnail_url", sa.String(500), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comments", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("shares", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("engagement_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("published_at", TS, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_content_pieces_coach_id", "content_pieces", ["coach_id"])
    op.create_index("ix_content_pieces_category_id", "content_pieces", ["category_id"])
    op.create_index("ix_content_pieces_platform", "content_pieces", ["platform"])


def downgrade() -> None:
    op.drop_table("content_pieces")
    op.drop_table("content_categories")
    op.drop_table("lesson_progress")
    op.drop_table("enrollments")
    op.drop_table("course_lessons")
    op.drop_table("course_chapters")
    op.drop_table("courses")
