# backend/alembic/versions/005_communities.py
"""Communities - communities, members, posts, comments, reactions, moderation flags

Revision ID: 005_communities
Revises: 004_leads
Create Date: 2026-09-01 00:40:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "005_communities"
down_revision: Union[str, None] = "004_leads"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TS = sa.DateTime(timezone=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "communities",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("owner_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("slug", sa.String(180), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("community_type", sa.String(20), nullable=False, server_default="coach_client"),
        sa.Column("visibility", sa.String(20), nullable=False, server_default="private"),
        sa.Column("course_id", sa.String(26), sa.ForeignKey("courses.id", ondelete="SET NULL"), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("cover_url", sa.String(500), nullable=True),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("post_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_communities_owner_id", "communities", ["owner_id"])
    op.create_index("ix_communities_slug", "communities", ["slug"], unique=True)

    op.create_table(
        "community_members",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "community_id", sa.String(26), sa.ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("user_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_type", sa.String(20), nullable=False),
        sa.Column("user_name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("joined_at", TS, nullable=False),
        sa.Column("last_active_at", TS, nullable=True),
        sa.UniqueConstraint("community_id", "user_id", name="uq_community_member"),
    )
    op.create_index("ix_community_members_community_id", "community_members", ["community_id"])
    op.create_index("ix_community_members_user_id", "community_members", ["user_id"])

    op.create_table(
        "community_posts",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "community_id", sa.String(26), sa.ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "member_id", sa.String(26), sa.ForeignKey("community_members.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("post_type", sa.String(20), nullable=False, server_default="text"),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("media_urls", sa.JSON(), nullable=False),
        sa.Column("link_url", sa.String(500), nullable=True),
        sa.Column("is_pinned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pinned_at", TS, nullable=True),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reaction_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comment_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_community_posts_community_id", "community_posts", ["community_id"])
    op.create_index("ix_community_posts_member_id", "community_posts", ["member_id"])

    op.create_table(
        "community_comments",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "post_id", sa.String(26), sa.ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "member_id", sa.String(26), sa.ForeignKey("community_members.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "parent_comment_id",
            sa.String(26),
            sa.ForeignKey("community_comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reaction_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reply_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_community_comments_post_id", "community_comments", ["post_id"])
    op.create_index("ix_community_comments_parent_comment_id", "community_comments", ["parent_comment_id"])

    op.create_table(
        "community_reactions",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "post_id", sa.String(26), sa.ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=True
        ),
        sa.Column(
            "comment_id", sa.String(26), sa.ForeignKey("community_comments.id", ondelete="CASCADE"), nullable=True
        ),
        sa.Column("user_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reaction_type", sa.String(20), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.UniqueConstraint("post_id", "comment_id", "user_id", name="uq_reaction_target_user"),
    )
    op.create_index("ix_community_reactions_post_id", "community_reactions", ["post_id"])
    op.create_index("ix_community_reactions_comment_id", "community_reactions", ["comment_id"])

    op.create_table(
        "community_moderation_flags",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "community_id", sa.String(26), sa.ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "post_id", sa.String(26), sa.ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=True
        ),
        sa.Column(
            "comment_id", sa.String(26), sa.ForeignKey("community_comments.id", ondelete="CASCADE"), nullable=True
        ),
        sa.Column("reporter_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("resolved_by_id", sa.String(26), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("resolved_at", TS, nullable=True),
        sa.Column("resolution_note", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_community_moderation_flags_community_id", "community_moderation_flags", ["community_id"]
    )
    op.create_index("ix_community_moderation_flags_status", "community_moderation_flags", ["status"])


def downgrade() -> None:
    op.drop_table("community_moderation_flags")
    op.drop_table("community_reactions")
    op.drop_table("community_comments")
    op.drop_table("community_posts")
    op.drop_table("community_members")
    op.drop_table("communities")
