"""
Centralized email subject builders.

Subjects stay in code for versioning and logging; bodies live in Jinja
templates.
"""

from app.core.constants import BRAND_NAME


class EmailSubject:
    @staticmethod
    def welcome() -> str:
        return f"Welcome to {BRAND_NAME}!"

    @staticmethod
    def password_reset() -> str:
        return f"Reset Your {BRAND_NAME} Password"

    @staticmethod
    def password_reset_confirmation() -> str:
        return f"Your {BRAND_NAME} Password Has Been Reset"

    @staticmethod
    def account_setup() -> str:
        return f"Set up your {BRAND_NAME} coach account"

    @staticmethod
    def client_invite(coach_name: str) -> str:
        safe_name = coach_name.strip() or "Your coach"
        return f"{safe_name} invited you to {BRAND_NAME}"

    @staticmethod
    def client_connected(coach_name: str) -> str:
        return f"You're now connected with {coach_name.strip() or 'your coach'}"

    @staticmethod
    def payment_receipt(invoice_number: str) -> str:
        return f"Payment received: {invoice_number}"

    @staticmethod
    def payment_request(requester_name: str) -> str:
        return f"{requester_name.strip() or BRAND_NAME} sent you a payment request"

    @staticmethod
    def course_enrolled(course_title: str) -> str:
        return f"You're enrolled in {course_title}"

    @staticmethod
    def community_new_post(community_name: str) -> str:
        return f"New post in {community_name}"
