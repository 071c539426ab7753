# backend/app/routes/v1/communities.py
"""
Community routes - API v1

Mounted under /api/v1/communities: communities, membership, the post feed,
comments, reactions, moderation flags and community analytics.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...api.dependencies.auth import get_current_active_user, require_coach_or_admin
from ...core.constants import COMMUNITY_ANALYTICS_DEFAULT_DAYS
from ...core.enums import FlagStatus, MemberStatus, ReactionType
from ...database import get_db
from ...models.community import Post
from ...models.user import User
from ...schemas.base_responses import DeleteResponse, PaginatedResponse
from ...schemas.community import (
    CommentCreate,
    CommentResponse,
    CommunityAnalytics,
    CommunityCreate,
    CommunityResponse,
    CommunityUpdate,
    FlagCreate,
    FlagResolve,
    FlagResponse,
    MemberAdd,
    MemberResponse,
    MemberRoleUpdate,
    PostCreate,
    PostDetailResponse,
    PostResponse,
    PostUpdate,
    ReactionRequest,
    ReactionResult,
)
from ...services.community_service import CommunityService

router = APIRouter(tags=["communities-v1"])


def _post_response(post: Post, reaction: Optional[str] = None) -> PostResponse:
    response = PostResponse.model_validate(post)
    response.my_reaction = ReactionType(reaction) if reaction else None
    return response


# Communities

@router.get("", response_model=List[CommunityResponse])
def list_communities(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> List[CommunityResponse]:
    """Communities the caller owns or belongs to."""
    return [CommunityResponse.model_validate(c) for c in CommunityService(db).list_for_user(current_user)]


@router.post("", response_model=CommunityResponse, status_code=status.HTTP_201_CREATED)
def create_community(
    payload: CommunityCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> CommunityResponse:
    return CommunityResponse.model_validate(CommunityService(db).create_community(current_user, payload))


@router.get("/{community_id}", response_model=CommunityResponse)
def get_community(
    community_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CommunityResponse:
    return CommunityResponse.model_validate(CommunityService(db).get_visible_community(community_id, current_user))


@router.patch("/{community_id}", response_model=CommunityResponse)
def update_community(
    community_id: str,
    payload: CommunityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CommunityResponse:
    community = CommunityService(db).update_community(current_user, community_id, payload)
    return CommunityResponse.model_validate(community)


@router.post("/{community_id}/deactivate", response_model=CommunityResponse)
def deactivate_community(
    community_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CommunityResponse:
    community = CommunityService(db).deactivate_community(current_user, community_id)
    return CommunityResponse.model_validate(community)


@router.get("/{community_id}/analytics", response_model=CommunityAnalytics)
def community_analytics(
    community_id: str,
    days: int = Query(COMMUNITY_ANALYTICS_DEFAULT_DAYS, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CommunityAnalytics:
    return CommunityAnalytics.model_validate(CommunityService(db).analytics(current_user, community_id, days))


# Membership

@router.get("/{community_id}/members", response_model=List[MemberResponse])
def list_members(
    community_id: str,
    status_filter: Optional[MemberStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> List[MemberResponse]:
    members = CommunityService(db).list_members(current_user, community_id, status_filter)
    return [MemberResponse.model_validate(member) for member in members]


@router.post("/{community_id}/join", response_model=MemberResponse)
def join_community(
    community_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MemberResponse:
    """Public communities admit immediately; private ones queue the request for approval."""
    return MemberResponse.model_validate(CommunityService(db).join(current_user, community_id))


@router.post("/{community_id}/leave", response_model=DeleteResponse)
def leave_community(
    community_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> DeleteResponse:
    CommunityService(db).leave(current_user, community_id)
    return DeleteResponse(message="Left community")


@router.post("/{community_id}/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
def add_member(
    community_id: str,
    payload: MemberAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MemberResponse:
    return MemberResponse.model_validate(CommunityService(db).add_member(current_user, community_id, payload))


@router.post("/{community_id}/members/{member_id}/approve", response_model=MemberResponse)
def approve_member(
    community_id: str,
    member_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MemberResponse:
    member = CommunityService(db).approve_member(current_user, community_id, member_id)
    return MemberResponse.model_validate(member)


@router.put("/{community_id}/members/{member_id}/role", response_model=MemberResponse)
def change_member_role(
    community_id: str,
    member_id: str,
    payload: MemberRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MemberResponse:
    member = CommunityService(db).change_role(current_user, community_id, member_id, payload.role)
    return MemberResponse.model_validate(member)


@router.post("/{community_id}/members/{member_id}/suspend", response_model=MemberResponse)
def suspend_member(
    community_id: str,
    member_id: str,
    ban: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MemberResponse:
    member = CommunityService(db).suspend_member(current_user, community_id, member_id, ban=ban)
    return MemberResponse.model_validate(member)


@router.delete("/{community_id}/members/{member_id}", response_model=DeleteResponse)
def remove_member(
    community_id: str,
    member_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> DeleteResponse:
    CommunityService(db).remove_member(current_user, community_id, member_id)
    return DeleteResponse(message="Member removed")


# Feed

@router.get("/{community_id}/posts", response_model=PaginatedResponse[PostResponse])
def list_posts(
    community_id: str,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PaginatedResponse[PostResponse]:
    """Pinned posts first, then newest first."""
    posts, total, reactions = CommunityService(db).list_feed(
        current_user, community_id, page=page, per_page=per_page
    )
    return PaginatedResponse[PostResponse].build(
        [_post_response(post, reactions.get(post.id)) for post in posts], total, page, per_page
    )


@router.post("/{community_id}/posts", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def create_post(
    community_id: str,
    payload: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PostResponse:
    return _post_response(CommunityService(db).create_post(current_user, community_id, payload))


@router.get("/{community_id}/flags", response_model=List[FlagResponse])
def list_flags(
    community_id: str,
    status_filter: FlagStatus = Query(FlagStatus.PENDING, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> List[FlagResponse]:
    flags = CommunityService(db).list_flags(current_user, community_id, status_filter)
    return [FlagResponse.model_validate(flag) for flag in flags]


@router.get("/posts/{post_id}", response_model=PostDetailResponse)
def get_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PostDetailResponse:
    post, comments, reaction = CommunityService(db).get_post(current_user, post_id)
    detail = PostDetailResponse.model_validate(post)
    detail.my_reaction = ReactionType(reaction) if reaction else None
    detail.comments = [CommentResponse.model_validate(comment) for comment in comments]
    return detail


@router.patch("/posts/{post_id}", response_model=PostResponse)
def update_post(
    post_id: str,
    payload: PostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PostResponse:
    return _post_response(CommunityService(db).update_post(current_user, post_id, payload))


@router.delete("/posts/{post_id}", response_model=DeleteResponse)
def delete_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> DeleteResponse:
    CommunityService(db).delete_post(current_user, post_id)
    return DeleteResponse(message="Post deleted")


@router.post("/posts/{post_id}/pin", response_model=PostResponse)
def pin_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PostResponse:
    return _post_response(CommunityService(db).set_pinned(current_user, post_id, True))


@router.post("/posts/{post_id}/unpin", response_model=PostResponse)
def unpin_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PostResponse:
    return _post_response(CommunityService(db).set_pinned(current_user, post_id, False))


@router.post("/posts/{post_id}/reactions", response_model=ReactionResult)
def react_to_post(
    post_id: str,
    payload: ReactionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ReactionResult:
    """Same reaction again removes it; a different one replaces it."""
    result = CommunityService(db).react(current_user, payload.reaction_type, post_id=post_id)
    return ReactionResult.model_validate(result)


@router.post("/posts/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def add_comment(
    post_id: str,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CommentResponse:
    return CommentResponse.model_validate(CommunityService(db).add_comment(current_user, post_id, payload))


# Comments

@router.get("/comments/{comment_id}/replies", response_model=List[CommentResponse])
def list_replies(
    comment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> List[CommentResponse]:
    return [CommentResponse.model_validate(c) for c in CommunityService(db).list_replies(current_user, comment_id)]


@router.post("/comments/{comment_id}/reactions", response_model=ReactionResult)
def react_to_comment(
    comment_id: str,
    payload: ReactionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ReactionResult:
    result = CommunityService(db).react(current_user, payload.reaction_type, comment_id=comment_id)
    return ReactionResult.model_validate(result)


@router.delete("/comments/{comment_id}", response_model=DeleteResponse)
def delete_comment(
    comment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> DeleteResponse:
    CommunityService(db).delete_comment(current_user, comment_id)
    return DeleteResponse(message="Comment deleted")


# Moderation

@router.post("/flags", response_model=FlagResponse, status_code=status.HTTP_201_CREATED)
def flag_content(
    payload: FlagCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> FlagResponse:
    return FlagResponse.model_validate(CommunityService(db).flag(current_user, payload))


@router.post("/flags/{flag_id}/resolve", response_model=FlagResponse)
def resolve_flag(
    flag_id: str,
    payload: FlagResolve,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> FlagResponse:
    """Resolve hides the flagged post or comment."""
    flag = CommunityService(db).resolve_flag(current_user, flag_id, note=payload.note)
    return FlagResponse.model_validate(flag)


@router.post("/flags/{flag_id}/dismiss", response_model=FlagResponse)
def dismiss_flag(
    flag_id: str,
    payload: FlagResolve,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> FlagResponse:
    flag = CommunityService(db).resolve_flag(current_user, flag_id, dismiss=True, note=payload.note)
    return FlagResponse.model_validate(flag)
