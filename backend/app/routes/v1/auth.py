# backend/app/routes/v1/auth.py
"""
Authentication routes - API v1

Versioned authentication endpoints under /api/v1/auth.

Endpoints:
    POST /register/coach                 → Coach sign-up
    POST /register/client                → Client sign-up (optional coach link or invite)
    POST /login                          → Email + password + account type login
    GET /me                              → Current user
    PATCH /me                            → Update current user profile
    POST /change-password                → Change password for authenticated user
    POST /password-reset/request         → Email a reset link (never reveals accounts)
    GET /password-reset/verify/{token}   → Check a reset token
    POST /password-reset/confirm         → Set a new password with a reset token
"""

import logging

from fastapi import APIRouter, Depends, status

from ...api.dependencies.auth import get_current_active_user
from ...api.dependencies.services import get_auth_service, get_password_reset_service
from ...models.user import User
from ...schemas.auth import (
    ClientRegister,
    CoachRegister,
    LoginRequest,
    PasswordChange,
    PasswordResetConfirm,
    PasswordResetRequest,
    ProfileUpdate,
    TokenResponse,
    UserResponse,
)
from ...schemas.base_responses import SuccessResponse
from ...services.auth_service import AuthService
from ...services.password_reset_service import PasswordResetService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth-v1"])


@router.post("/register/coach", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register_coach(
    payload: CoachRegister,
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Create a coach account."""
    user = auth_service.register_coach(payload)
    return UserResponse.model_validate(user)


@router.post("/register/client", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register_client(
    payload: ClientRegister,
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Create a client account, linked to a coach when a coach id or invite token is given."""
    user = auth_service.register_client(payload)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    token, user = auth_service.login(payload.email, payload.password, payload.user_type)
    return TokenResponse(
        access_token=token,
        expires_in=auth_service.token_ttl_seconds(),
        user_type=user.user_type,
    )


@router.get("/me", response_model=UserResponse)
def read_me(current_user: User = Depends(get_current_active_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
def update_me(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    user = auth_service.update_profile(current_user, payload)
    return UserResponse.model_validate(user)


@router.post("/change-password", response_model=SuccessResponse)
def change_password(
    payload: PasswordChange,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> SuccessResponse:
    auth_service.change_password(current_user, payload)
    return SuccessResponse(message="Password changed")


@router.post("/password-reset/request", response_model=SuccessResponse)
def request_password_reset(
    payload: PasswordResetRequest,
    reset_service: PasswordResetService = Depends(get_password_reset_service),
) -> SuccessResponse:
    """
    Request a password reset email.

    The response is identical whether or not the account exists.
    """
    reset_service.request_password_reset(payload.email, payload.user_type)
    return SuccessResponse(message="If an account exists for this email, a reset link has been sent")


@router.get("/password-reset/verify/{token}", response_model=SuccessResponse)
def verify_reset_token(
    token: str,
    reset_service: PasswordResetService = Depends(get_password_reset_service),
) -> SuccessResponse:
    valid, masked_email = reset_service.verify_reset_token(token)
    return SuccessResponse(
        success=valid,
        message="Token is valid" if valid else "Invalid or expired token",
        data={"email": masked_email} if valid else None,
    )


@router.post("/password-reset/confirm", response_model=SuccessResponse)
def confirm_password_reset(
    payload: PasswordResetConfirm,
    reset_service: PasswordResetService = Depends(get_password_reset_service),
) -> SuccessResponse:
    reset_service.confirm_password_reset(payload.token, payload.new_password)
    return SuccessResponse(message="Password has been reset")
