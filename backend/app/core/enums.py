# backend/app/core/enums.py
"""
Core enums for the CoachDesk platform.

All enums persisted to the database inherit from (str, Enum) so the stored
value is the lowercase string shown here and comparisons against raw strings
keep working.
"""

from enum import Enum


class UserType(str, Enum):
    ADMIN = "admin"
    COACH = "coach"
    CLIENT = "client"


class ClientCoachStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CoachAccountStatus(str, Enum):
    """Filter values for admin coach listings."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


# Billing


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    CANCELED = "canceled"
    EXPIRED = "expired"
    PAST_DUE = "past_due"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentRequestType(str, Enum):
    PLAN_PAYMENT = "plan_payment"
    COURSE_PAYMENT = "course_payment"
    CUSTOM = "custom"


class PaymentRequestStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELED = "canceled"
    EXPIRED = "expired"


# Courses


class PricingType(str, Enum):
    FREE = "free"
    ONE_TIME = "one_time"
    INSTALLMENT = "installment"
    SUBSCRIPTION = "subscription"


class DripInterval(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class LessonType(str, Enum):
    TEXT = "text"
    VIDEO = "video"
    PDF = "pdf"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


# Content


class ContentType(str, Enum):
    VIDEO = "video"
    IMAGE = "image"
    TEXT = "text"
    CAROUSEL = "carousel"
    REEL = "reel"
    STORY = "story"


class ContentStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# Leads


class LeadType(str, Enum):
    ADMIN_LEAD = "admin_lead"
    COACH_LEAD = "coach_lead"


class LeadStatus(str, Enum):
    CONTACTED = "contacted"
    SCHEDULED = "scheduled"
    CONVERTED = "converted"
    UNRESPONSIVE = "unresponsive"
    NOT_CONVERTED = "not_converted"


class SequenceTrigger(str, Enum):
    MANUAL = "manual"
    LEAD_CREATED = "lead_created"
    STATUS_CHANGE = "status_change"


class ScheduledEmailStatus(str, Enum):
    SCHEDULED = "scheduled"
    SENT = "sent"
    FAILED = "failed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


# Communities


class CommunityType(str, Enum):
    COACH_CLIENT = "coach_client"
    COACH_TO_COACH = "coach_to_coach"
    PRIVATE = "private"
    COURSE = "course"


class CommunityVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    INVITE_ONLY = "invite_only"


class MemberRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MODERATOR = "moderator"
    MEMBER = "member"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]


_ROLE_RANK = {
    MemberRole.MEMBER: 0,
    MemberRole.MODERATOR: 1,
    MemberRole.ADMIN: 2,
    MemberRole.OWNER: 3,
}


class MemberStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"
    BANNED = "banned"


class PostType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    LINK = "link"
    POLL = "poll"
    EVENT = "event"


class ReactionType(str, Enum):
    LIKE = "like"
    LOVE = "love"
    LAUGH = "laugh"
    CELEBRATE = "celebrate"
    SUPPORT = "support"
    INSIGHTFUL = "insightful"


class FlagStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


# Messaging


class ConversationType(str, Enum):
    DIRECT = "direct"
    GROUP = "group"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


# Notifications


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class NotificationType(str, Enum):
    CLIENT_CONNECTED = "client_connected"
    NEW_MESSAGE = "new_message"
    COMMUNITY_POST = "community_post"
    COMMUNITY_COMMENT = "community_comment"
    COURSE_ENROLLMENT = "course_enrollment"
    COURSE_COMPLETED = "course_completed"
    PAYMENT_COMPLETED = "payment_completed"
    SUBSCRIPTION_CHANGED = "subscription_changed"


# Integrations


class IntegrationType(str, Enum):
    SOCIAL = "social"
    APP = "app"
    COURSE = "course"