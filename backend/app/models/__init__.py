"""
Database models for the CoachDesk platform.

Importing this package registers every table on ``Base.metadata``.
"""

from .billing import PaymentRequest, Plan, Subscription, Transaction
from .client import ClientCoach, ClientInvite
from .community import (
    Community,
    CommunityMember,
    ModerationFlag,
    Post,
    PostComment,
    PostReaction,
)
from .content import ContentCategory, ContentPiece
from .conversation import Conversation, ConversationParticipant
from .course import Course, CourseChapter, CourseLesson, Enrollment, LessonProgress
from .integration import Integration
from .lead import EmailSequence, EmailSequenceStep, Lead, ScheduledEmail
from .message import Message
from .notification import Notification
from .password_reset import PasswordResetToken
from .user import User

__all__ = [
    "ClientCoach",
    "ClientInvite",
    "Community",
    "CommunityMember",
    "ContentCategory",
    "ContentPiece",
    "Conversation",
    "ConversationParticipant",
    "Course",
    "CourseChapter",
    "CourseLesson",
    "EmailSequence",
    "EmailSequenceStep",
    "Enrollment",
    "Integration",
    "Lead",
    "LessonProgress",
    "Message",
    "ModerationFlag",
    "Notification",
    "PasswordResetToken",
    "PaymentRequest",
    "Plan",
    "Post",
    "PostComment",
    "PostReaction",
    "ScheduledEmail",
    "Subscription",
    "Transaction",
    "User",
]
