# backend/app/models/community.py
"""
Community ("vault") models: communities, members, posts, reactions,
comments and moderation flags.

Counters (member_count, post_count, reaction_count, comment_count,
reply_count) are maintained by the community service.
"""

from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..core.enums import (
    CommunityType,
    CommunityVisibility,
    FlagStatus,
    MemberRole,
    MemberStatus,
    PostType,
)
from ..database import Base
from .types import TimestampMixin, UTCDateTime, ulid_pk, utcnow


class Community(TimestampMixin, Base):
    __tablename__ = "communities"

    id = ulid_pk()
    owner_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    slug = Column(String(180), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    community_type = Column(String(20), nullable=False, default=CommunityType.COACH_CLIENT.value)
    visibility = Column(String(20), nullable=False, default=CommunityVisibility.PRIVATE.value)
    course_id = Column(String(26), ForeignKey("courses.id", ondelete="SET NULL"), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    cover_url = Column(String(500), nullable=True)
    settings = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    member_count = Column(Integer, nullable=False, default=0)
    post_count = Column(Integer, nullable=False, default=0)

    owner = relationship("User", foreign_keys=[owner_id])
    members = relationship("CommunityMember", back_populates="community", cascade="all, delete-orphan")


class CommunityMember(Base):
    __tablename__ = "community_members"
    __table_args__ = (UniqueConstraint("community_id", "user_id", name="uq_community_member"),)

    id = ulid_pk()
    community_id = Column(
        String(26), ForeignKey("communities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_type = Column(String(20), nullable=False)
    user_name = Column(String(200), nullable=False)
    role = Column(String(20), nullable=False, default=MemberRole.MEMBER.value)
    status = Column(String(20), nullable=False, default=MemberStatus.ACTIVE.value)
    joined_at = Column(UTCDateTime, nullable=False, default=utcnow)
    last_active_at = Column(UTCDateTime, nullable=True)

    community = relationship("Community", back_populates="members")
    user = relationship("User")

    @property
    def is_active_member(self) -> bool:
        return self.status == MemberStatus.ACTIVE.value

    def has_role_at_least(self, role: MemberRole) -> bool:
        return MemberRole(self.role).rank >= role.rank


class Post(TimestampMixin, Base):
    __tablename__ = "community_posts"

    id = ulid_pk()
    community_id = Column(
        String(26), ForeignKey("communities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    member_id = Column(
        String(26), ForeignKey("community_members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    post_type = Column(String(20), nullable=False, default=PostType.TEXT.value)
    title = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    media_urls = Column(JSON, nullable=False, default=list)
    link_url = Column(String(500), nullable=True)
    is_pinned = Column(Boolean, nullable=False, default=False)
    pinned_at = Column(UTCDateTime, nullable=True)
    is_hidden = Column(Boolean, nullable=False, default=False)
    is_edited = Column(Boolean, nullable=False, default=False)
    reaction_count = Column(Integer, nullable=False, default=0)
    comment_count = Column(Integer, nullable=False, default=0)

    community = relationship("Community")
    author = relationship("CommunityMember")
    comments = relationship("PostComment", back_populates="post", cascade="all, delete-orphan")
    reactions = relationship("PostReaction", back_populates="post", cascade="all, delete-orphan")

    @property
    def author_name(self) -> Optional[str]:
        return self.author.user_name if self.author is not None else None


class PostComment(TimestampMixin, Base):
    __tablename__ = "community_comments"

    id = ulid_pk()
    post_id = Column(
        String(26), ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    member_id = Column(
        String(26), ForeignKey("community_members.id", ondelete="CASCADE"), nullable=False
    )
    parent_comment_id = Column(
        String(26), ForeignKey("community_comments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    content = Column(Text, nullable=False)
    is_hidden = Column(Boolean, nullable=False, default=False)
    reaction_count = Column(Integer, nullable=False, default=0)
    reply_count = Column(Integer, nullable=False, default=0)

    post = relationship("Post", back_populates="comments")
    author = relationship("CommunityMember")

    @property
    def author_name(self) -> Optional[str]:
        return self.author.user_name if self.author is not None else None


class PostReaction(Base):
    """One reaction per user per target (post or comment)."""

    __tablename__ = "community_reactions"
    __table_args__ = (
        UniqueConstraint("post_id", "comment_id", "user_id", name="uq_reaction_target_user"),
    )

    id = ulid_pk()
    post_id = Column(
        String(26), ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=True, index=True
    )
    comment_id = Column(
        String(26), ForeignKey("community_comments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reaction_type = Column(String(20), nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    post = relationship("Post", back_populates="reactions")


class ModerationFlag(TimestampMixin, Base):
    __tablename__ = "community_moderation_flags"

    id = ulid_pk()
    community_id = Column(
        String(26), ForeignKey("communities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    post_id = Column(String(26), ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=True)
    comment_id = Column(
        String(26), ForeignKey("community_comments.id", ondelete="CASCADE"), nullable=True
    )
    reporter_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=FlagStatus.PENDING.value, index=True)
    resolved_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    resolved_at = Column(UTCDateTime, nullable=True)
    resolution_note = Column(Text, nullable=True)
