"""
Template registry for strongly-typed access to Jinja templates.

Use with TemplateService to avoid stringly-typed paths.
"""

from enum import Enum


class TemplateRegistry(str, Enum):
    # Auth / Account
    AUTH_WELCOME_COACH = "email/auth/welcome_coach.html"
    AUTH_WELCOME_CLIENT = "email/auth/welcome_client.html"
    AUTH_PASSWORD_RESET = "email/auth/password_reset.html"
    AUTH_PASSWORD_RESET_CONFIRMATION = "email/auth/password_reset_confirmation.html"
    AUTH_ACCOUNT_SETUP = "email/auth/account_setup.html"

    # Clients
    CLIENT_INVITE = "email/clients/invite.html"
    CLIENT_CONNECTED = "email/clients/connected.html"
    COACH_DIRECT_MESSAGE = "email/clients/admin_message.html"

    # Billing
    BILLING_PAYMENT_RECEIPT = "email/billing/payment_receipt.html"
    BILLING_PAYMENT_REQUEST = "email/billing/payment_request.html"

    # Leads
    LEAD_SEQUENCE_STEP = "email/leads/sequence_step.html"

    # Courses
    COURSE_ENROLLED = "email/courses/enrolled.html"

    # Communities
    COMMUNITY_NEW_POST = "email/community/new_post.html"
