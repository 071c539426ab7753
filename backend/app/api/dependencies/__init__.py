# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import (
    get_current_active_user,
    get_current_user,
    get_current_user_optional,
    require_admin,
    require_client,
    require_coach,
    require_coach_or_admin,
    require_roles,
)
from .database import get_db
from .services import (
    get_auth_service,
    get_client_service,
    get_coach_admin_service,
    get_conversation_service,
    get_email_sequence_service,
    get_email_service,
    get_integration_service,
    get_message_service,
    get_password_reset_service,
    get_payment_request_service,
)

__all__ = [
    # Auth
    "get_current_user",
    "get_current_user_optional",
    "get_current_active_user",
    "require_roles",
    "require_admin",
    "require_coach",
    "require_client",
    "require_coach_or_admin",
    # Database
    "get_db",
    # Services
    "get_auth_service",
    "get_client_service",
    "get_coach_admin_service",
    "get_conversation_service",
    "get_email_sequence_service",
    "get_email_service",
    "get_integration_service",
    "get_message_service",
    "get_password_reset_service",
    "get_payment_request_service",
]
