"""Account schemas: registration, login, profile and password flows."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from ..core.constants import MAX_BIO_LENGTH, MAX_NAME_LENGTH, MIN_PASSWORD_LENGTH
from ..core.enums import UserType
from ._strict_base import ORMResponse, StrictRequestModel


def _check_password(value: str) -> str:
    if not any(ch.isdigit() for ch in value) or not any(ch.isalpha() for ch in value):
        raise ValueError("Password must contain at least one letter and one number")
    return value


class UserRegisterBase(StrictRequestModel):
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)
    first_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    last_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    phone: Optional[str] = Field(default=None, max_length=30)
    timezone: str = Field(default="UTC", max_length=50)
    marketing_opt_in: bool = False

    validate_password = field_validator("password")(_check_password)


class CoachRegister(UserRegisterBase):
    business_name: Optional[str] = Field(default=None, max_length=200)
    bio: Optional[str] = Field(default=None, max_length=MAX_BIO_LENGTH)


class ClientRegister(UserRegisterBase):
    coach_id: Optional[str] = Field(default=None, min_length=26, max_length=26)
    invite_token: Optional[str] = None


class LoginRequest(StrictRequestModel):
    email: EmailStr
    password: str = Field(min_length=1)
    user_type: UserType


class TokenResponse(ORMResponse):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_type: UserType


class UserResponse(ORMResponse):
    id: str
    email: str
    first_name: str
    last_name: str
    user_type: UserType
    phone: Optional[str] = None
    business_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    timezone: str
    is_active: bool
    is_verified: bool
    marketing_opt_in: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime


class ProfileUpdate(StrictRequestModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    phone: Optional[str] = Field(default=None, max_length=30)
    business_name: Optional[str] = Field(default=None, max_length=200)
    bio: Optional[str] = Field(default=None, max_length=MAX_BIO_LENGTH)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    timezone: Optional[str] = Field(default=None, max_length=50)
    marketing_opt_in: Optional[bool] = None


class PasswordChange(StrictRequestModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)

    validate_password = field_validator("new_password")(_check_password)


class PasswordResetRequest(StrictRequestModel):
    email: EmailStr
    user_type: UserType


class PasswordResetConfirm(StrictRequestModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)

    validate_password = field_validator("new_password")(_check_password)
