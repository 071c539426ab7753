# backend/app/services/community_service.py
"""
Community Service for CoachDesk.

Communities (the coach's "vault") are feeds of posts, comments and
reactions scoped to members. Roles rank member < moderator < admin < owner:
moderators pin, hide and moderate; admins also manage members; only the
owner changes roles. Counter columns are kept in step here.
"""

from datetime import timedelta
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import COMMUNITY_ANALYTICS_DEFAULT_DAYS, TOP_POSTERS_LIMIT
from ..core.enums import (
    CommunityVisibility,
    FlagStatus,
    MemberRole,
    MemberStatus,
    ReactionType,
    UserType,
)
from ..core.exceptions import (
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..events.community_events import CommentCreated, PostCreated
from ..models.community import Community, CommunityMember, ModerationFlag, Post, PostComment
from ..models.types import utcnow
from ..models.user import User
from ..repositories.base_repository import column_value
from ..repositories.factory import RepositoryFactory
from ..schemas.community import (
    CommentCreate,
    CommunityCreate,
    CommunityUpdate,
    FlagCreate,
    MemberAdd,
    PostCreate,
    PostUpdate,
)
from .base import BaseService

logger = logging.getLogger(__name__)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    slug = _SLUG_STRIP.sub("-", name.lower()).strip("-")
    return slug[:150] or "community"


class CommunityService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.community_repository = RepositoryFactory.create_community_repository(db)
        self.member_repository = RepositoryFactory.create_community_member_repository(db)
        self.post_repository = RepositoryFactory.create_post_repository(db)
        self.comment_repository = RepositoryFactory.create_post_comment_repository(db)
        self.reaction_repository = RepositoryFactory.create_post_reaction_repository(db)
        self.flag_repository = RepositoryFactory.create_moderation_flag_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    # Lookups and permission checks

    def unique_slug(self, name: str) -> str:
        """Slug from the name; ``-2``, ``-3``... appended until unused."""
        base = slugify(name)
        slug, suffix = base, 2
        while self.community_repository.slug_exists(slug):
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    def get_community(self, community_id: str) -> Community:
        community = self.community_repository.get_by_id(community_id, load_relationships=False)
        if community is None:
            raise NotFoundException("Community not found", code="COMMUNITY_NOT_FOUND")
        return community

    def get_visible_community(self, community_id: str, user: User) -> Community:
        """Public communities are visible to everyone; others to members."""
        community = self.get_community(community_id)
        if community.visibility == CommunityVisibility.PUBLIC.value and community.is_active:
            return community
        membership = self.member_repository.get_membership(community.id, user.id)
        if membership is None or membership.status in (MemberStatus.BANNED.value,):
            raise NotFoundException("Community not found", code="COMMUNITY_NOT_FOUND")
        return community

    def require_member(
        self, community_id: str, user: User, min_role: MemberRole = MemberRole.MEMBER
    ) -> CommunityMember:
        membership = self.member_repository.get_membership(community_id, user.id)
        if membership is None or not membership.is_active_member:
            raise ForbiddenException("You are not an active member of this community", code="NOT_MEMBER")
        if not membership.has_role_at_least(min_role):
            raise ForbiddenException(
                f"Requires the {min_role.value} role or higher", code="INSUFFICIENT_ROLE"
            )
        return membership

    def _get_member(self, community_id: str, member_id: str) -> CommunityMember:
        member = self.member_repository.get_by_id(member_id, load_relationships=False)
        if member is None or member.community_id != community_id:
            raise NotFoundException("Member not found", code="MEMBER_NOT_FOUND")
        return member

    def _get_post(self, post_id: str) -> Post:
        post = self.post_repository.get_by_id(post_id)
        if post is None:
            raise NotFoundException("Post not found", code="POST_NOT_FOUND")
        return post

    def _get_comment(self, comment_id: str) -> PostComment:
        comment = self.comment_repository.get_by_id(comment_id)
        if comment is None:
            raise NotFoundException("Comment not found", code="COMMENT_NOT_FOUND")
        return comment

    def _refresh_member_count(self, community: Community) -> None:
        self.db.flush()
        community.member_count = self.member_repository.count_active(community.id)

    # Communities

    @BaseService.measure_operation("create_community")
    def create_community(self, owner: User, data: CommunityCreate) -> Community:
        if owner.user_type == UserType.CLIENT.value:
            raise ForbiddenException("Clients cannot create communities", code="FORBIDDEN")
        values = data.model_dump()
        with self.transaction():
            community = self.community_repository.create(
                owner_id=owner.id, slug=self.unique_slug(data.name), member_count=1, **values
            )
            self.member_repository.create(
                community_id=community.id,
                user_id=owner.id,
                user_type=owner.user_type,
                user_name=owner.full_name,
                role=MemberRole.OWNER.value,
                status=MemberStatus.ACTIVE.value,
                joined_at=utcnow(),
            )
        self.log_operation("community_created", community_id=community.id, slug=community.slug)
        return community

    def list_for_user(self, user: User) -> List[Community]:
        return self.community_repository.list_for_user(user.id)

    def update_community(self, user: User, community_id: str, data: CommunityUpdate) -> Community:
        community = self.get_community(community_id)
        self.require_member(community.id, user, MemberRole.ADMIN)
        with self.transaction():
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(community, key, column_value(value))
        return community

    def deactivate_community(self, user: User, community_id: str) -> Community:
        community = self.get_community(community_id)
        self.require_member(community.id, user, MemberRole.OWNER)
        with self.transaction():
            community.is_active = False
        return community

    # Membership

    def list_members(self, user: User, community_id: str, status: Optional[MemberStatus] = None) -> List[CommunityMember]:
        self.require_member(community_id, user)
        return self.member_repository.list_members(community_id, status=status)

    @BaseService.measure_operation("join_community")
    def join(self, user: User, community_id: str) -> CommunityMember:
        """Public communities admit directly; private ones queue a pending request."""
        community = self.get_community(community_id)
        if not community.is_active:
            raise BusinessRuleException("Community is inactive", code="COMMUNITY_INACTIVE")
        if community.visibility == CommunityVisibility.INVITE_ONLY.value:
            raise ForbiddenException("This community is invite only", code="INVITE_ONLY")
        existing = self.member_repository.get_membership(community.id, user.id)
        if existing is not None:
            if existing.status == MemberStatus.BANNED.value:
                raise ForbiddenException("You are banned from this community", code="BANNED")
            raise ConflictException("Already a member", code="ALREADY_MEMBER")
        status = (
            MemberStatus.ACTIVE if community.visibility == CommunityVisibility.PUBLIC.value else MemberStatus.PENDING
        )
        with self.transaction():
            member = self.member_repository.create(
                community_id=community.id,
                user_id=user.id,
                user_type=user.user_type,
                user_name=user.full_name,
                role=MemberRole.MEMBER.value,
                status=status.value,
                joined_at=utcnow(),
            )
            self._refresh_member_count(community)
        return member

    def leave(self, user: User, community_id: str) -> None:
        community = self.get_community(community_id)
        membership = self.member_repository.get_membership(community.id, user.id)
        if membership is None:
            raise NotFoundException("Not a member", code="NOT_MEMBER")
        if membership.role == MemberRole.OWNER.value:
            raise BusinessRuleException("The owner cannot leave the community", code="OWNER_CANNOT_LEAVE")
        if membership.status in (MemberStatus.BANNED.value, MemberStatus.SUSPENDED.value):
            # The row is what keeps a restricted member out on rejoin
            raise ForbiddenException("Restricted members cannot leave the community", code="MEMBERSHIP_RESTRICTED")
        with self.transaction():
            self.db.delete(membership)
            self._refresh_member_count(community)

    def add_member(self, actor: User, community_id: str, data: MemberAdd) -> CommunityMember:
        community = self.get_community(community_id)
        self.require_member(community.id, actor, MemberRole.ADMIN)
        if data.role == MemberRole.OWNER:
            raise ValidationException("A community has exactly one owner", code="INVALID_ROLE")
        user = self.user_repository.get_by_id(data.user_id, load_relationships=False)
        if user is None or user.is_deleted:
            raise NotFoundException("User not found", code="USER_NOT_FOUND")
        existing = self.member_repository.get_membership(community.id, user.id)
        with self.transaction():
            if existing is not None:
                if existing.is_active_member:
                    raise ConflictException("Already a member", code="ALREADY_MEMBER")
                existing.status = MemberStatus.ACTIVE.value
                existing.role = data.role.value
                member = existing
            else:
                member = self.member_repository.create(
                    community_id=community.id,
                    user_id=user.id,
                    user_type=user.user_type,
                    user_name=user.full_name,
                    role=data.role.value,
                    status=MemberStatus.ACTIVE.value,
                    joined_at=utcnow(),
                )
            self._refresh_member_count(community)
        return member

    def approve_member(self, actor: User, community_id: str, member_id: str) -> CommunityMember:
        community = self.get_community(community_id)
        self.require_member(community.id, actor, MemberRole.MODERATOR)
        member = self._get_member(community.id, member_id)
        if member.status != MemberStatus.PENDING.value:
            raise BusinessRuleException("Member is not pending approval", code="NOT_PENDING")
        with self.transaction():
            member.status = MemberStatus.ACTIVE.value
            member.joined_at = utcnow()
            self._refresh_member_count(community)
        return member

    def change_role(self, actor: User, community_id: str, member_id: str, role: MemberRole) -> CommunityMember:
        community = self.get_community(community_id)
        self.require_member(community.id, actor, MemberRole.OWNER)
        member = self._get_member(community.id, member_id)
        if member.role == MemberRole.OWNER.value or role == MemberRole.OWNER:
            raise BusinessRuleException("The owner role cannot be changed", code="OWNER_ROLE_FIXED")
        with self.transaction():
            member.role = role.value
        return member

    def _check_outranks(self, acting: CommunityMember, target: CommunityMember) -> None:
        if target.role == MemberRole.OWNER.value or MemberRole(target.role).rank >= MemberRole(acting.role).rank:
            raise ForbiddenException("Cannot moderate a member of equal or higher role", code="INSUFFICIENT_ROLE")

    def suspend_member(self, actor: User, community_id: str, member_id: str, *, ban: bool = False) -> CommunityMember:
        community = self.get_community(community_id)
        acting = self.require_member(community.id, actor, MemberRole.MODERATOR)
        member = self._get_member(community.id, member_id)
        self._check_outranks(acting, member)
        with self.transaction():
            member.status = (MemberStatus.BANNED if ban else MemberStatus.SUSPENDED).value
            self._refresh_member_count(community)
        return member

    def remove_member(self, actor: User, community_id: str, member_id: str) -> None:
        community = self.get_community(community_id)
        acting = self.require_member(community.id, actor, MemberRole.ADMIN)
        member = self._get_member(community.id, member_id)
        self._check_outranks(acting, member)
        with self.transaction():
            self.db.delete(member)
            self._refresh_member_count(community)

    # Posts

    @BaseService.measure_operation("create_post")
    def create_post(self, user: User, community_id: str, data: PostCreate) -> Post:
        community = self.get_community(community_id)
        if not community.is_active:
            raise BusinessRuleException("Community is inactive", code="COMMUNITY_INACTIVE")
        member = self.require_member(community.id, user)
        if len(data.content) > settings.max_post_length:
            raise ValidationException(
                f"Posts are limited to {settings.max_post_length} characters", code="POST_TOO_LONG"
            )
        with self.transaction():
            post = self.post_repository.create(
                community_id=community.id,
                member_id=member.id,
                post_type=data.post_type.value,
                title=data.title,
                content=data.content,
                media_urls=data.media_urls,
                link_url=data.link_url,
            )
            community.post_count = (community.post_count or 0) + 1
            member.last_active_at = utcnow()
            self.publish_after_commit(
                PostCreated(post_id=post.id, community_id=community.id, author_user_id=user.id)
            )
        return post

    def list_feed(
        self, user: User, community_id: str, *, page: int = 1, per_page: int = 20
    ) -> Tuple[List[Post], int, Dict[str, str]]:
        """Feed page plus the caller's reaction per post id."""
        self.require_member(community_id, user)
        posts, total = self.post_repository.list_feed(community_id, page=page, per_page=per_page)
        reactions = self.reaction_repository.user_reactions_for_posts(user.id, [post.id for post in posts])
        return posts, total, reactions

    def get_post(self, user: User, post_id: str) -> Tuple[Post, List[PostComment], Optional[str]]:
        post = self._get_post(post_id)
        membership = self.require_member(post.community_id, user)
        if post.is_hidden and not membership.has_role_at_least(MemberRole.MODERATOR):
            raise NotFoundException("Post not found", code="POST_NOT_FOUND")
        comments = self.comment_repository.list_top_level(post.id)
        reaction = self.reaction_repository.get_for_target(user.id, post_id=post.id)
        return post, comments, reaction.reaction_type if reaction else None

    def update_post(self, user: User, post_id: str, data: PostUpdate) -> Post:
        post = self._get_post(post_id)
        membership = self.require_member(post.community_id, user)
        if post.member_id != membership.id and not membership.has_role_at_least(MemberRole.MODERATOR):
            raise ForbiddenException("Cannot edit another member's post", code="NOT_AUTHOR")
        changes = data.model_dump(exclude_unset=True)
        if changes.get("content") and len(changes["content"]) > settings.max_post_length:
            raise ValidationException(
                f"Posts are limited to {settings.max_post_length} characters", code="POST_TOO_LONG"
            )
        with self.transaction():
            for key, value in changes.items():
                setattr(post, key, value)
            post.is_edited = True
        return post

    def delete_post(self, user: User, post_id: str) -> None:
        post = self._get_post(post_id)
        membership = self.require_member(post.community_id, user)
        if post.member_id != membership.id and not membership.has_role_at_least(MemberRole.MODERATOR):
            raise ForbiddenException("Cannot delete another member's post", code="NOT_AUTHOR")
        community = self.get_community(post.community_id)
        with self.transaction():
            self.db.delete(post)
            community.post_count = max((community.post_count or 0) - 1, 0)

    def set_pinned(self, user: User, post_id: str, pinned: bool) -> Post:
        post = self._get_post(post_id)
        self.require_member(post.community_id, user, MemberRole.MODERATOR)
        with self.transaction():
            post.is_pinned = pinned
            post.pinned_at = utcnow() if pinned else None
        return post

    # Reactions

    @BaseService.measure_operation("react")
    def react(
        self,
        user: User,
        reaction_type: ReactionType,
        *,
        post_id: Optional[str] = None,
        comment_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Toggle a reaction on a post or comment.

        The same type again removes it; a different type switches it.
        Returns the caller's resulting reaction and the target's count.
        """
        if comment_id:
            target = self._get_comment(comment_id)
            community_id = target.post.community_id
            post_ref = target.post_id
        elif post_id:
            target = self._get_post(post_id)
            community_id = target.community_id
            post_ref = target.id
        else:
            raise ValidationException("A post or comment is required", code="TARGET_REQUIRED")
        self.require_member(community_id, user)

        existing = self.reaction_repository.get_for_target(user.id, post_id=post_ref, comment_id=comment_id)
        result: Optional[str]
        with self.transaction():
            if existing is None:
                self.reaction_repository.create(
                    post_id=post_ref, comment_id=comment_id, user_id=user.id, reaction_type=reaction_type.value
                )
                target.reaction_count = (target.reaction_count or 0) + 1
                result = reaction_type.value
            elif existing.reaction_type == reaction_type.value:
                self.db.delete(existing)
                target.reaction_count = max((target.reaction_count or 0) - 1, 0)
                result = None
            else:
                existing.reaction_type = reaction_type.value
                result = reaction_type.value
        return {"reaction_type": result, "reaction_count": target.reaction_count}

    # Comments

    @BaseService.measure_operation("create_comment")
    def add_comment(self, user: User, post_id: str, data: CommentCreate) -> PostComment:
        """Comment on a post, or reply to a top-level comment (one level deep)."""
        post = self._get_post(post_id)
        member = self.require_member(post.community_id, user)
        if post.is_hidden:
            raise NotFoundException("Post not found", code="POST_NOT_FOUND")
        if len(data.content) > settings.max_comment_length:
            raise ValidationException(
                f"Comments are limited to {settings.max_comment_length} characters", code="COMMENT_TOO_LONG"
            )
        parent: Optional[PostComment] = None
        if data.parent_comment_id:
            parent = self._get_comment(data.parent_comment_id)
            if parent.post_id != post.id:
                raise ValidationException("Parent comment belongs to another post", code="INVALID_PARENT")
            if parent.parent_comment_id is not None:
                raise BusinessRuleException("Replies can only be one level deep", code="REPLY_DEPTH")

        with self.transaction():
            comment = self.comment_repository.create(
                post_id=post.id,
                member_id=member.id,
                parent_comment_id=parent.id if parent else None,
                content=data.content,
            )
            post.comment_count = (post.comment_count or 0) + 1
            if parent is not None:
                parent.reply_count = (parent.reply_count or 0) + 1
            member.last_active_at = utcnow()
            self.publish_after_commit(
                CommentCreated(
                    comment_id=comment.id,
                    post_id=post.id,
                    community_id=post.community_id,
                    author_user_id=user.id,
                    parent_comment_id=comment.parent_comment_id,
                )
            )
        return comment

    def list_replies(self, user: User, comment_id: str) -> List[PostComment]:
        comment = self._get_comment(comment_id)
        self.require_member(comment.post.community_id, user)
        return self.comment_repository.list_replies(comment.id)

    def delete_comment(self, user: User, comment_id: str) -> None:
        comment = self._get_comment(comment_id)
        post = comment.post
        membership = self.require_member(post.community_id, user)
        if comment.member_id != membership.id and not membership.has_role_at_least(MemberRole.MODERATOR):
            raise ForbiddenException("Cannot delete another member's comment", code="NOT_AUTHOR")
        removed = 1 + (comment.reply_count or 0)
        with self.transaction():
            if comment.parent_comment_id:
                parent = self._get_comment(comment.parent_comment_id)
                parent.reply_count = max((parent.reply_count or 0) - 1, 0)
            self.db.delete(comment)
            post.comment_count = max((post.comment_count or 0) - removed, 0)

    # Moderation

    def flag(self, user: User, data: FlagCreate) -> ModerationFlag:
        if bool(data.post_id) == bool(data.comment_id):
            raise ValidationException("Flag exactly one post or comment", code="INVALID_FLAG_TARGET")
        if data.comment_id:
            community_id = self._get_comment(data.comment_id).post.community_id
        else:
            community_id = self._get_post(data.post_id).community_id
        self.require_member(community_id, user)
        if self.flag_repository.has_open_flag(user.id, post_id=data.post_id, comment_id=data.comment_id):
            raise ConflictException("You already reported this", code="ALREADY_FLAGGED")
        with self.transaction():
            flag = self.flag_repository.create(
                community_id=community_id,
                post_id=None if data.comment_id else data.post_id,
                comment_id=data.comment_id,
                reporter_id=user.id,
                reason=data.reason,
                status=FlagStatus.PENDING.value,
            )
        return flag

    def list_flags(self, user: User, community_id: str, status: FlagStatus = FlagStatus.PENDING) -> List[ModerationFlag]:
        self.require_member(community_id, user, MemberRole.MODERATOR)
        return self.flag_repository.list_for_community(community_id, status)

    def resolve_flag(self, user: User, flag_id: str, *, dismiss: bool = False, note: Optional[str] = None) -> ModerationFlag:
        """Resolving hides the flagged post or comment; dismissing leaves it visible."""
        flag = self.flag_repository.get_by_id(flag_id, load_relationships=False)
        if flag is None:
            raise NotFoundException("Flag not found", code="FLAG_NOT_FOUND")
        self.require_member(flag.community_id, user, MemberRole.MODERATOR)
        if flag.status != FlagStatus.PENDING.value:
            raise BusinessRuleException("Flag already handled", code="FLAG_CLOSED")
        with self.transaction():
            flag.status = (FlagStatus.DISMISSED if dismiss else FlagStatus.RESOLVED).value
            flag.resolved_by_id = user.id
            flag.resolved_at = utcnow()
            flag.resolution_note = note
            if not dismiss:
                if flag.comment_id:
                    self._get_comment(flag.comment_id).is_hidden = True
                elif flag.post_id:
                    self._get_post(flag.post_id).is_hidden = True
        return flag

    # Analytics

    def analytics(self, user: User, community_id: str, days: int = COMMUNITY_ANALYTICS_DEFAULT_DAYS) -> Dict[str, Any]:
        community = self.get_community(community_id)
        self.require_member(community.id, user, MemberRole.MODERATOR)
        since = utcnow() - timedelta(days=days)
        by_role = self.member_repository.count_by_role(community.id)
        return {
            "community_id": community.id,
            "days": days,
            "member_count": sum(by_role.values()),
            "members_by_role": {role.value: by_role.get(role.value, 0) for role in MemberRole},
            "posts": self.post_repository.count_since(community.id, since),
            "comments": self.comment_repository.count_since(community.id, since),
            "top_posters": [
                {"member_id": member_id, "user_name": name, "post_count": count}
                for member_id, name, count in self.post_repository.top_posters(community.id, since, TOP_POSTERS_LIMIT)
            ],
        }
