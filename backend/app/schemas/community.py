"""Community ("vault") schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..core.enums import (
    CommunityType,
    CommunityVisibility,
    FlagStatus,
    MemberRole,
    MemberStatus,
    PostType,
    ReactionType,
)
from ._strict_base import ORMResponse, StrictRequestModel


class CommunityCreate(StrictRequestModel):
    name: str = Field(min_length=1, max_length=150)
    description: Optional[str] = None
    community_type: CommunityType = CommunityType.COACH_CLIENT
    visibility: CommunityVisibility = CommunityVisibility.PRIVATE
    course_id: Optional[str] = Field(default=None, min_length=26, max_length=26)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    cover_url: Optional[str] = Field(default=None, max_length=500)
    settings: Dict[str, Any] = Field(default_factory=dict)


class CommunityUpdate(StrictRequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    description: Optional[str] = None
    visibility: Optional[CommunityVisibility] = None
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    cover_url: Optional[str] = Field(default=None, max_length=500)
    settings: Optional[Dict[str, Any]] = None


class CommunityResponse(ORMResponse):
    id: str
    owner_id: str
    name: str
    slug: str
    description: Optional[str] = None
    community_type: CommunityType
    visibility: CommunityVisibility
    course_id: Optional[str] = None
    avatar_url: Optional[str] = None
    cover_url: Optional[str] = None
    settings: Dict[str, Any]
    is_active: bool
    member_count: int
    post_count: int
    created_at: datetime


class MemberAdd(StrictRequestModel):
    user_id: str = Field(min_length=26, max_length=26)
    role: MemberRole = MemberRole.MEMBER


class MemberRoleUpdate(StrictRequestModel):
    role: MemberRole


class MemberResponse(ORMResponse):
    id: str
    community_id: str
    user_id: str
    user_type: str
    user_name: str
    role: MemberRole
    status: MemberStatus
    joined_at: datetime


class PostCreate(StrictRequestModel):
    post_type: PostType = PostType.TEXT
    title: Optional[str] = Field(default=None, max_length=255)
    content: str = Field(min_length=1)
    media_urls: List[str] = Field(default_factory=list)
    link_url: Optional[str] = Field(default=None, max_length=500)


class PostUpdate(StrictRequestModel):
    title: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)
    media_urls: Optional[List[str]] = None
    link_url: Optional[str] = Field(default=None, max_length=500)


class PostResponse(ORMResponse):
    id: str
    community_id: str
    member_id: str
    author_name: Optional[str] = None
    post_type: PostType
    title: Optional[str] = None
    content: str
    media_urls: List[str]
    link_url: Optional[str] = None
    is_pinned: bool
    is_hidden: bool
    is_edited: bool
    reaction_count: int
    comment_count: int
    my_reaction: Optional[ReactionType] = None
    created_at: datetime


class CommentCreate(StrictRequestModel):
    content: str = Field(min_length=1)
    parent_comment_id: Optional[str] = Field(default=None, min_length=26, max_length=26)


class CommentResponse(ORMResponse):
    id: str
    post_id: str
    member_id: str
    author_name: Optional[str] = None
    parent_comment_id: Optional[str] = None
    content: str
    reaction_count: int
    reply_count: int
    created_at: datetime


class PostDetailResponse(PostResponse):
    comments: List[CommentResponse] = Field(default_factory=list)


class ReactionRequest(StrictRequestModel):
    reaction_type: ReactionType


class ReactionResult(ORMResponse):
    reaction_type: Optional[ReactionType] = None
    reaction_count: int


class FlagCreate(StrictRequestModel):
    post_id: Optional[str] = Field(default=None, min_length=26, max_length=26)
    comment_id: Optional[str] = Field(default=None, min_length=26, max_length=26)
    reason: str = Field(min_length=1, max_length=2000)


class FlagResolve(StrictRequestModel):
    note: Optional[str] = Field(default=None, max_length=2000)


class FlagResponse(ORMResponse):
    id: str
    community_id: str
    post_id: Optional[str] = None
    comment_id: Optional[str] = None
    reporter_id: str
    reason: str
    status: FlagStatus
    resolved_by_id: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_note: Optional[str] = None
    created_at: datetime


class TopPoster(ORMResponse):
    member_id: str
    user_name: str
    post_count: int


class CommunityAnalytics(ORMResponse):
    community_id: str
    days: int
    member_count: int
    members_by_role: Dict[str, int]
    posts: int
    comments: int
    top_posters: List[TopPoster]
