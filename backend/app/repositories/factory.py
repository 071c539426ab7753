# backend/app/repositories/factory.py
"""
Repository Factory for CoachDesk.

Centralizes repository creation so services never import concrete
repository modules at call sites and tests can patch one place.
"""

from typing import TYPE_CHECKING, Any, Type

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

if TYPE_CHECKING:
    from .billing_repository import (
        PaymentRequestRepository,
        PlanRepository,
        SubscriptionRepository,
        TransactionRepository,
    )
    from .client_repository import ClientCoachRepository, ClientInviteRepository
    from .community_repository import (
        CommunityMemberRepository,
        CommunityRepository,
        ModerationFlagRepository,
        PostCommentRepository,
        PostReactionRepository,
        PostRepository,
    )
    from .content_repository import ContentCategoryRepository, ContentPieceRepository
    from .conversation_repository import ConversationRepository
    from .course_repository import (
        CourseChapterRepository,
        CourseLessonRepository,
        CourseRepository,
        EnrollmentRepository,
        LessonProgressRepository,
    )
    from .integration_repository import IntegrationRepository
    from .lead_repository import EmailSequenceRepository, LeadRepository, ScheduledEmailRepository
    from .message_repository import MessageRepository
    from .notification_repository import NotificationRepository
    from .password_reset_repository import PasswordResetRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_base_repository(db: Session, model: Type[Any]) -> BaseRepository:
        return BaseRepository(db, model)

    # Accounts

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_password_reset_repository(db: Session) -> "PasswordResetRepository":
        from .password_reset_repository import PasswordResetRepository

        return PasswordResetRepository(db)

    @staticmethod
    def create_client_coach_repository(db: Session) -> "ClientCoachRepository":
        from .client_repository import ClientCoachRepository

        return ClientCoachRepository(db)

    @staticmethod
    def create_client_invite_repository(db: Session) -> "ClientInviteRepository":
        from .client_repository import ClientInviteRepository

        return ClientInviteRepository(db)

    # Billing

    @staticmethod
    def create_plan_repository(db: Session) -> "PlanRepository":
        from .billing_repository import PlanRepository

        return PlanRepository(db)

    @staticmethod
    def create_subscription_repository(db: Session) -> "SubscriptionRepository":
        from .billing_repository import SubscriptionRepository

        return SubscriptionRepository(db)

    @staticmethod
    def create_transaction_repository(db: Session) -> "TransactionRepository":
        from .billing_repository import TransactionRepository

        return TransactionRepository(db)

    @staticmethod
    def create_payment_request_repository(db: Session) -> "PaymentRequestRepository":
        from .billing_repository import PaymentRequestRepository

        return PaymentRequestRepository(db)

    # Courses

    @staticmethod
    def create_course_repository(db: Session) -> "CourseRepository":
        from .course_repository import CourseRepository

        return CourseRepository(db)

    @staticmethod
    def create_chapter_repository(db: Session) -> "CourseChapterRepository":
        from .course_repository import CourseChapterRepository

        return CourseChapterRepository(db)

    @staticmethod
    def create_lesson_repository(db: Session) -> "CourseLessonRepository":
        from .course_repository import CourseLessonRepository

        return CourseLessonRepository(db)

    @staticmethod
    def create_enrollment_repository(db: Session) -> "EnrollmentRepository":
        from .course_repository import EnrollmentRepository

        return EnrollmentRepository(db)

    @staticmethod
    def create_lesson_progress_repository(db: Session) -> "LessonProgressRepository":
        from .course_repository import LessonProgressRepository

        return LessonProgressRepository(db)

    # Content

    @staticmethod
    def create_content_category_repository(db: Session) -> "ContentCategoryRepository":
        from .content_repository import ContentCategoryRepository

        return ContentCategoryRepository(db)

    @staticmethod
    def create_content_piece_repository(db: Session) -> "ContentPieceRepository":
        from .content_repository import ContentPieceRepository

        return ContentPieceRepository(db)

    # Leads

    @staticmethod
    def create_lead_repository(db: Session) -> "LeadRepository":
        from .lead_repository import LeadRepository

        return LeadRepository(db)

    @staticmethod
    def create_email_sequence_repository(db: Session) -> "EmailSequenceRepository":
        from .lead_repository import EmailSequenceRepository

        return EmailSequenceRepository(db)

    @staticmethod
    def create_scheduled_email_repository(db: Session) -> "ScheduledEmailRepository":
        from .lead_repository import ScheduledEmailRepository

        return ScheduledEmailRepository(db)

    # Communities

    @staticmethod
    def create_community_repository(db: Session) -> "CommunityRepository":
        from .community_repository import CommunityRepository

        return CommunityRepository(db)

    @staticmethod
    def create_community_member_repository(db: Session) -> "CommunityMemberRepository":
        from .community_repository import CommunityMemberRepository

        return CommunityMemberRepository(db)

    @staticmethod
    def create_post_repository(db: Session) -> "PostRepository":
        from .community_repository import PostRepository

        return PostRepository(db)

    @staticmethod
    def create_post_comment_repository(db: Session) -> "PostCommentRepository":
        from .community_repository import PostCommentRepository

        return PostCommentRepository(db)

    @staticmethod
    def create_post_reaction_repository(db: Session) -> "PostReactionRepository":
        from .community_repository import PostReactionRepository

        return PostReactionRepository(db)

    @staticmethod
    def create_moderation_flag_repository(db: Session) -> "ModerationFlagRepository":
        from .community_repository import ModerationFlagRepository

        return ModerationFlagRepository(db)

    # Messaging / notifications / integrations

    @staticmethod
    def create_conversation_repository(db: Session) -> "ConversationRepository":
        from .conversation_repository import ConversationRepository

        return ConversationRepository(db)

    @staticmethod
    def create_message_repository(db: Session) -> "MessageRepository":
        from .message_repository import MessageRepository

        return MessageRepository(db)

    @staticmethod
    def create_notification_repository(db: Session) -> "NotificationRepository":
        from .notification_repository import NotificationRepository

        return NotificationRepository(db)

    @staticmethod
    def create_integration_repository(db: Session) -> "IntegrationRepository":
        from .integration_repository import IntegrationRepository

        return IntegrationRepository(db)
