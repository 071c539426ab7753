"""
Default domain event handlers.

Each handler receives the event payload and a fresh session from the bus.
Handlers call services directly; a handler that raises is logged by the bus
and does not stop the others subscribed to the same event.
"""
import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.enums import (
    LeadStatus,
    MemberStatus,
    NotificationPriority,
    NotificationType,
    SequenceTrigger,
    UserType,
)
from app.repositories.factory import RepositoryFactory
from app.services.auth_service import AuthService
from app.services.email import EmailService
from app.services.email_sequence_service import EmailSequenceService
from app.services.notification_service import NotificationService, Recipient
from app.services.password_reset_service import PasswordResetService

from .bus import EventBus

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 120


def _excerpt(text: str, length: int = PREVIEW_LENGTH) -> str:
    text = (text or "").strip()
    return text if len(text) <= length else text[: length - 1].rstrip() + "…"


def _split_name(full_name: str) -> tuple[str, str]:
    parts = (full_name or "").strip().split(" ", 1)
    return parts[0] or full_name, parts[1] if len(parts) > 1 else ""


# Accounts


def send_coach_welcome(payload: Dict[str, Any], db: Session) -> None:
    EmailService(db).send_welcome_email(payload["email"], payload["first_name"], UserType.COACH.value)


def send_client_welcome(payload: Dict[str, Any], db: Session) -> None:
    coach_name = None
    if payload.get("coach_id"):
        coach = RepositoryFactory.create_user_repository(db).get_by_id(payload["coach_id"], load_relationships=False)
        coach_name = coach.display_name if coach else None
    EmailService(db).send_welcome_email(
        payload["email"], payload["first_name"], UserType.CLIENT.value, coach_name=coach_name
    )


def handle_client_connected(payload: Dict[str, Any], db: Session) -> None:
    """Tell the client who they are now working with and tell the coach they have a new client."""
    users = RepositoryFactory.create_user_repository(db)
    client = users.get_by_id(payload["client_id"], load_relationships=False)
    coach = users.get_by_id(payload["coach_id"], load_relationships=False)
    if client is None or coach is None:
        logger.warning("[EVENTS] client link %s/%s no longer exists", payload["coach_id"], payload["client_id"])
        return
    EmailService(db).send_client_connected(client.email, client.first_name, coach.display_name or coach.full_name)
    NotificationService(db).notify(
        [Recipient(coach.id, coach.user_type)],
        NotificationType.CLIENT_CONNECTED,
        "New client",
        f"{client.full_name} joined your client list",
        action_url=f"/coach/clients/{client.id}",
        metadata={"client_id": client.id, "via_invite": payload.get("via_invite", False)},
    )


# Leads


def start_lead_created_sequences(payload: Dict[str, Any], db: Session) -> None:
    lead = RepositoryFactory.create_lead_repository(db).get_by_id(payload["lead_id"], load_relationships=False)
    if lead is None:
        return
    service = EmailSequenceService(db)
    with service.transaction():
        scheduled = service.start_triggered(lead, SequenceTrigger.LEAD_CREATED)
    logger.info("[EVENTS] lead %s: %d sequence emails scheduled", lead.id, len(scheduled))


def handle_lead_status_updated(payload: Dict[str, Any], db: Session) -> None:
    """Converted leads drop out of every running sequence; then status sequences start."""
    lead = RepositoryFactory.create_lead_repository(db).get_by_id(payload["lead_id"], load_relationships=False)
    if lead is None:
        return
    service = EmailSequenceService(db)
    new_status = payload["new_status"]
    with service.transaction():
        if new_status == LeadStatus.CONVERTED.value:
            cancelled = service.cancel_pending_for_lead(lead.id)
            if cancelled:
                logger.info("[EVENTS] lead %s converted: %d pending emails cancelled", lead.id, cancelled)
        service.start_triggered(lead, SequenceTrigger.STATUS_CHANGE, new_status)


def onboard_qualified_lead(payload: Dict[str, Any], db: Session) -> None:
    """
    Turn a qualified landing lead into a coach account.

    The new coach sets a password through a setup link. A coach who already
    exists only gets a reset link.
    """
    if not payload.get("qualified"):
        return
    users = RepositoryFactory.create_user_repository(db)
    reset_service = PasswordResetService(db)
    existing = users.get_by_email(payload["email"], UserType.COACH)
    if existing is not None:
        logger.info("[EVENTS] qualified lead %s already has a coach account", payload["lead_id"])
        reset_service.send_reset_link(existing)
        return

    lead = RepositoryFactory.create_lead_repository(db).get_by_id(payload["lead_id"], load_relationships=False)
    first_name, last_name = _split_name(payload["name_on_form"])
    auth_service = AuthService(db)
    with auth_service.transaction():
        coach = auth_service.create_user_with_random_password(
            email=payload["email"],
            first_name=first_name,
            last_name=last_name,
            user_type=UserType.COACH,
            phone=payload.get("phone"),
            marketing_opt_in=bool(lead.marketing_opt_in) if lead is not None else False,
        )
    logger.info("[EVENTS] coach %s created from landing lead %s", coach.id, payload["lead_id"])
    reset_service.send_reset_link(coach, setup=True)


# Billing


def send_payment_receipt(payload: Dict[str, Any], db: Session) -> None:
    transaction = RepositoryFactory.create_transaction_repository(db).get_by_id(payload["transaction_id"])
    if transaction is None or transaction.coach is None:
        return
    coach = transaction.coach
    EmailService(db).send_payment_receipt(
        to_email=coach.email,
        user_name=coach.first_name,
        invoice_number=transaction.invoice_number,
        amount=transaction.amount,
        currency=transaction.currency,
        paid_at=transaction.paid_at,
        plan_name=transaction.plan.name if transaction.plan else None,
    )


def notify_payment_completed(payload: Dict[str, Any], db: Session) -> None:
    amount = payload["amount"] / 100
    NotificationService(db).notify(
        [Recipient(payload["coach_id"], UserType.COACH.value)],
        NotificationType.PAYMENT_COMPLETED,
        "Payment received",
        f"Payment of {amount:.2f} {payload['currency']} completed (invoice {payload['invoice_number']})",
        action_url="/coach/billing",
        metadata={"transaction_id": payload["transaction_id"]},
    )


def notify_subscription_changed(payload: Dict[str, Any], db: Session) -> None:
    canceled = "immediate" in payload
    if canceled:
        message = "Your subscription was canceled" if payload["immediate"] else (
            "Your subscription will end at the close of the current period"
        )
    else:
        message = f"Your subscription is now {payload['status']}"
    NotificationService(db).notify(
        [Recipient(payload["coach_id"], UserType.COACH.value)],
        NotificationType.SUBSCRIPTION_CHANGED,
        "Subscription updated",
        message,
        action_url="/coach/billing",
        metadata={"subscription_id": payload["subscription_id"]},
        priority=NotificationPriority.HIGH if canceled else NotificationPriority.NORMAL,
    )


# Courses


def handle_enrollment_created(payload: Dict[str, Any], db: Session) -> None:
    enrollment = RepositoryFactory.create_enrollment_repository(db).get_by_id(payload["enrollment_id"])
    if enrollment is None:
        return
    course, client = enrollment.course, enrollment.client
    coach = course.coach
    EmailService(db).send_course_enrolled(
        to_email=client.email,
        client_name=client.first_name,
        course_title=course.title,
        coach_name=coach.display_name or coach.full_name,
        course_id=course.id,
        is_drip_enabled=course.is_drip_enabled,
    )
    NotificationService(db).notify(
        [Recipient(coach.id, coach.user_type)],
        NotificationType.COURSE_ENROLLMENT,
        "New enrollment",
        f"{client.full_name} enrolled in {course.title}",
        action_url=f"/coach/courses/{course.id}",
        metadata={"enrollment_id": enrollment.id, "course_id": course.id},
    )


def notify_enrollment_completed(payload: Dict[str, Any], db: Session) -> None:
    enrollment = RepositoryFactory.create_enrollment_repository(db).get_by_id(payload["enrollment_id"])
    if enrollment is None:
        return
    NotificationService(db).notify(
        [Recipient(payload["coach_id"], UserType.COACH.value)],
        NotificationType.COURSE_COMPLETED,
        "Course completed",
        f"{enrollment.client.full_name} completed {enrollment.course.title}",
        action_url=f"/coach/courses/{payload['course_id']}",
        metadata={"enrollment_id": enrollment.id},
    )


# Communities


def notify_post_created(payload: Dict[str, Any], db: Session) -> None:
    post = RepositoryFactory.create_post_repository(db).get_by_id(payload["post_id"])
    if post is None:
        return
    members = RepositoryFactory.create_community_member_repository(db).list_members(
        payload["community_id"], status=MemberStatus.ACTIVE
    )
    recipients = [
        Recipient(member.user_id, member.user_type)
        for member in members
        if member.user_id != payload["author_user_id"]
    ]
    NotificationService(db).notify(
        recipients,
        NotificationType.COMMUNITY_POST,
        f"New post in {post.community.name}",
        f"{post.author_name}: {_excerpt(post.content)}",
        action_url=f"/communities/{post.community_id}/posts/{post.id}",
        metadata={"post_id": post.id, "community_id": post.community_id},
        priority=NotificationPriority.LOW,
    )


def notify_comment_created(payload: Dict[str, Any], db: Session) -> None:
    """The post author hears about comments; a parent comment's author hears about replies."""
    comments = RepositoryFactory.create_post_comment_repository(db)
    comment = comments.get_by_id(payload["comment_id"])
    if comment is None:
        return
    targets: List[Recipient] = []
    seen = {payload["author_user_id"]}
    authors = [comment.post.author]
    if payload.get("parent_comment_id"):
        parent = comments.get_by_id(payload["parent_comment_id"])
        if parent is not None:
            authors.insert(0, parent.author)
    for author in authors:
        if author is not None and author.user_id not in seen:
            seen.add(author.user_id)
            targets.append(Recipient(author.user_id, author.user_type))
    NotificationService(db).notify(
        targets,
        NotificationType.COMMUNITY_COMMENT,
        "New reply" if payload.get("parent_comment_id") else "New comment",
        f"{comment.author_name}: {_excerpt(comment.content)}",
        action_url=f"/communities/{payload['community_id']}/posts/{payload['post_id']}",
        metadata={"comment_id": comment.id, "post_id": payload["post_id"]},
    )


# Messaging


def notify_message_recipients(payload: Dict[str, Any], db: Session) -> None:
    message = RepositoryFactory.create_message_repository(db).get_by_id(payload["message_id"])
    if message is None or not payload.get("recipient_ids"):
        return
    users = RepositoryFactory.create_user_repository(db).get_by_ids(payload["recipient_ids"])
    sender_name = message.sender.full_name if message.sender else "Someone"
    NotificationService(db).notify(
        [Recipient(user.id, user.user_type) for user in users],
        NotificationType.NEW_MESSAGE,
        f"New message from {sender_name}",
        _excerpt(message.content),
        action_url=f"/messages/{message.conversation_id}",
        metadata={"conversation_id": message.conversation_id, "message_id": message.id},
    )


DEFAULT_SUBSCRIPTIONS = {
    "auth.coach.registered": [send_coach_welcome],
    "auth.client.registered": [send_client_welcome],
    "auth.client.connected": [handle_client_connected],
    "lead.created": [start_lead_created_sequences],
    "lead.status.updated": [handle_lead_status_updated],
    "lead.landing.submitted": [onboard_qualified_lead],
    "billing.payment.completed": [send_payment_receipt, notify_payment_completed],
    "billing.subscription.created": [notify_subscription_changed],
    "billing.subscription.canceled": [notify_subscription_changed],
    "course.enrollment.created": [handle_enrollment_created],
    "course.enrollment.completed": [notify_enrollment_completed],
    "community.post.created": [notify_post_created],
    "community.comment.created": [notify_comment_created],
    "message.created": [notify_message_recipients],
}


def register_default_handlers(bus: EventBus) -> None:
    for event_name, handlers in DEFAULT_SUBSCRIPTIONS.items():
        for handler in handlers:
            bus.subscribe(event_name, handler)
    logger.info(
        "[EVENTS] %d handlers registered (dispatch=%s)",
        sum(len(handlers) for handlers in DEFAULT_SUBSCRIPTIONS.values()),
        settings.event_dispatch_mode,
    )
