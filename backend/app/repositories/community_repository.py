# backend/app/repositories/community_repository.py
"""
Community data access.

Counter columns are adjusted by the service; these repositories only read
and write rows.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..core.enums import FlagStatus, MemberStatus
from ..models.community import (
    Community,
    CommunityMember,
    ModerationFlag,
    Post,
    PostComment,
    PostReaction,
)
from .base_repository import BaseRepository


class CommunityRepository(BaseRepository[Community]):
    def __init__(self, db: Session):
        super().__init__(db, Community)

    def slug_exists(self, slug: str) -> bool:
        return self.db.query(Community.id).filter(Community.slug == slug).first() is not None

    def get_by_slug(self, slug: str) -> Optional[Community]:
        return self.find_one_by(slug=slug)

    def list_for_user(self, user_id: str, *, include_inactive: bool = False) -> List[Community]:
        query = (
            self.db.query(Community)
            .join(CommunityMember, CommunityMember.community_id == Community.id)
            .filter(
                CommunityMember.user_id == user_id,
                CommunityMember.status.in_([MemberStatus.ACTIVE.value, MemberStatus.PENDING.value]),
            )
        )
        if not include_inactive:
            query = query.filter(Community.is_active.is_(True))
        return self._execute_query(query.order_by(Community.created_at.desc()))

    def list_owned(self, owner_id: str) -> List[Community]:
        return self._execute_query(
            self.db.query(Community).filter(Community.owner_id == owner_id).order_by(Community.created_at.desc())
        )


class CommunityMemberRepository(BaseRepository[CommunityMember]):
    def __init__(self, db: Session):
        super().__init__(db, CommunityMember)

    def get_membership(self, community_id: str, user_id: str) -> Optional[CommunityMember]:
        return (
            self.db.query(CommunityMember)
            .filter(CommunityMember.community_id == community_id, CommunityMember.user_id == user_id)
            .first()
        )

    def list_members(
        self, community_id: str, *, status: Optional[MemberStatus] = None
    ) -> List[CommunityMember]:
        query = self.db.query(CommunityMember).filter(CommunityMember.community_id == community_id)
        if status is not None:
            query = query.filter(CommunityMember.status == status.value)
        return self._execute_query(query.order_by(CommunityMember.joined_at.asc()))

    def count_active(self, community_id: str) -> int:
        query = self.db.query(func.count(CommunityMember.id)).filter(
            CommunityMember.community_id == community_id,
            CommunityMember.status == MemberStatus.ACTIVE.value,
        )
        return int(self._execute_scalar(query) or 0)

    def count_by_role(self, community_id: str) -> Dict[str, int]:
        query = (
            self.db.query(CommunityMember.role, func.count(CommunityMember.id))
            .filter(
                CommunityMember.community_id == community_id,
                CommunityMember.status == MemberStatus.ACTIVE.value,
            )
            .group_by(CommunityMember.role)
        )
        return {role: int(count) for role, count in self._execute_query(query)}


class PostRepository(BaseRepository[Post]):
    def __init__(self, db: Session):
        super().__init__(db, Post)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(joinedload(Post.author))

    def list_feed(
        self, community_id: str, *, include_hidden: bool = False, page: int = 1, per_page: int = 20
    ) -> Tuple[List[Post], int]:
        """Pinned posts first, then newest first."""
        query = self._apply_eager_loading(self.db.query(Post)).filter(Post.community_id == community_id)
        if not include_hidden:
            query = query.filter(Post.is_hidden.is_(False))
        query = query.order_by(Post.is_pinned.desc(), Post.created_at.desc(), Post.id.desc())
        return self._paginate(query, page, per_page)

    def count_since(self, community_id: str, since: datetime) -> int:
        query = self.db.query(func.count(Post.id)).filter(
            Post.community_id == community_id, Post.created_at >= since
        )
        return int(self._execute_scalar(query) or 0)

    def top_posters(self, community_id: str, since: datetime, limit: int) -> List[Tuple[str, str, int]]:
        """(member_id, user_name, post_count) ordered by post count."""
        query = (
            self.db.query(CommunityMember.id, CommunityMember.user_name, func.count(Post.id))
            .join(Post, Post.member_id == CommunityMember.id)
            .filter(Post.community_id == community_id, Post.created_at >= since)
            .group_by(CommunityMember.id, CommunityMember.user_name)
            .order_by(func.count(Post.id).desc(), CommunityMember.user_name.asc())
            .limit(limit)
        )
        return [(row[0], row[1], int(row[2])) for row in self._execute_query(query)]


class PostCommentRepository(BaseRepository[PostComment]):
    def __init__(self, db: Session):
        super().__init__(db, PostComment)

    def _apply_eager_loading(self, query):  # type: ignore[no-untyped-def]
        return query.options(joinedload(PostComment.author))

    def list_top_level(self, post_id: str, *, include_hidden: bool = False) -> List[PostComment]:
        query = self._apply_eager_loading(self.db.query(PostComment)).filter(
            PostComment.post_id == post_id, PostComment.parent_comment_id.is_(None)
        )
        if not include_hidden:
            query = query.filter(PostComment.is_hidden.is_(False))
        return self._execute_query(query.order_by(PostComment.created_at.asc()))

    def list_replies(self, comment_id: str) -> List[PostComment]:
        return self._execute_query(
            self._apply_eager_loading(self.db.query(PostComment))
            .filter(PostComment.parent_comment_id == comment_id, PostComment.is_hidden.is_(False))
            .order_by(PostComment.created_at.asc())
        )

    def count_since(self, community_id: str, since: datetime) -> int:
        query = (
            self.db.query(func.count(PostComment.id))
            .join(Post, Post.id == PostComment.post_id)
            .filter(Post.community_id == community_id, PostComment.created_at >= since)
        )
        return int(self._execute_scalar(query) or 0)


class PostReactionRepository(BaseRepository[PostReaction]):
    def __init__(self, db: Session):
        super().__init__(db, PostReaction)

    def get_for_target(
        self, user_id: str, *, post_id: Optional[str] = None, comment_id: Optional[str] = None
    ) -> Optional[PostReaction]:
        query = self.db.query(PostReaction).filter(PostReaction.user_id == user_id)
        if comment_id:
            query = query.filter(PostReaction.comment_id == comment_id)
        else:
            query = query.filter(PostReaction.post_id == post_id, PostReaction.comment_id.is_(None))
        return query.first()

    def user_reactions_for_posts(self, user_id: str, post_ids: Sequence[str]) -> Dict[str, str]:
        if not post_ids:
            return {}
        rows = (
            self.db.query(PostReaction.post_id, PostReaction.reaction_type)
            .filter(
                PostReaction.user_id == user_id,
                PostReaction.post_id.in_(list(post_ids)),
                PostReaction.comment_id.is_(None),
            )
            .all()
        )
        return {post_id: reaction for post_id, reaction in rows}


class ModerationFlagRepository(BaseRepository[ModerationFlag]):
    def __init__(self, db: Session):
        super().__init__(db, ModerationFlag)

    def list_for_community(
        self, community_id: str, status: FlagStatus = FlagStatus.PENDING
    ) -> List[ModerationFlag]:
        return self._execute_query(
            self.db.query(ModerationFlag)
            .filter(ModerationFlag.community_id == community_id, ModerationFlag.status == status.value)
            .order_by(ModerationFlag.created_at.asc())
        )

    def has_open_flag(self, reporter_id: str, *, post_id: Optional[str], comment_id: Optional[str]) -> bool:
        query = self.db.query(ModerationFlag.id).filter(
            ModerationFlag.reporter_id == reporter_id,
            ModerationFlag.status == FlagStatus.PENDING.value,
        )
        if comment_id:
            query = query.filter(ModerationFlag.comment_id == comment_id)
        else:
            query = query.filter(ModerationFlag.post_id == post_id, ModerationFlag.comment_id.is_(None))
        return query.first() is not None
