# backend/app/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

``get_current_user`` resolves the bearer token to a live ``User`` row;
role guards layer on top of it.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from jwt import PyJWTError
from sqlalchemy.orm import Session

from ...auth import decode_access_token, oauth2_scheme, oauth2_scheme_optional
from ...core.enums import UserType
from ...models.user import User
from ...repositories.user_repository import UserRepository
from .database import get_db

logger = logging.getLogger(__name__)


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _resolve_user(token: str, db: Session) -> User:
    try:
        payload = decode_access_token(token)
    except PyJWTError as e:
        logger.info("JWT validation error: %s", e)
        raise _credentials_error()

    user_id = payload.get("sub")
    if not isinstance(user_id, str):
        logger.warning("Token payload missing 'sub' field")
        raise _credentials_error()

    user = UserRepository(db).get_by_id(user_id, load_relationships=False)
    if user is None or user.deleted_at is not None:
        raise _credentials_error()
    return user


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    return _resolve_user(token, db)


def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme_optional),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if not token:
        return None
    try:
        return _resolve_user(token, db)
    except HTTPException:
        return None


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")
    return current_user


def require_roles(*roles: UserType) -> Callable[..., User]:
    """Build a dependency admitting only the given account types."""
    allowed = {role.value for role in roles}

    def dependency(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.user_type not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of: {', '.join(sorted(allowed))}",
            )
        return current_user

    return dependency


require_admin = require_roles(UserType.ADMIN)
require_coach = require_roles(UserType.COACH)
require_client = require_roles(UserType.CLIENT)
require_coach_or_admin = require_roles(UserType.COACH, UserType.ADMIN)
