"""Community feed events."""
from dataclasses import dataclass
from typing import ClassVar, Optional

from .base import DomainEvent


@dataclass
class PostCreated(DomainEvent):
    name: ClassVar[str] = "community.post.created"

    post_id: str
    community_id: str
    author_user_id: str


@dataclass
class CommentCreated(DomainEvent):
    name: ClassVar[str] = "community.comment.created"

    comment_id: str
    post_id: str
    community_id: str
    author_user_id: str
    parent_comment_id: Optional[str] = None
