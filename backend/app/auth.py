"""
Password hashing and JWT helpers.

Access tokens carry the user id in ``sub`` plus the account type so the
WebSocket gateway can authorise a socket without a database round trip.
"""

import asyncio
from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import Any, Dict, Optional, cast

from fastapi.security import OAuth2PasswordBearer
import jwt
from jwt import PyJWTError
from passlib.context import CryptContext

from .core.config import settings
from .core.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")
oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

ACCESS_TOKEN_PURPOSE = "access"
OAUTH_STATE_PURPOSE = "oauth_state"


def _secret() -> str:
    return settings.secret_key.get_secret_value()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bool(pwd_context.verify(plain_password, hashed_password))
    except ValueError as e:
        logger.error("Error verifying password: %s", e)
        return False


def get_password_hash(password: str) -> str:
    return str(pwd_context.hash(password))


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    """Run bcrypt off the event loop."""
    return await asyncio.to_thread(verify_password, plain_password, hashed_password)


async def get_password_hash_async(password: str) -> str:
    return await asyncio.to_thread(get_password_hash, password)


def generate_secure_token(nbytes: int = 32) -> str:
    """URL-safe random token for reset links, invites and payment links."""
    return secrets.token_urlsafe(nbytes)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to encode; must include ``sub`` (user id) and ``type``
        expires_delta: Lifetime override; defaults to the configured TTL

    Returns:
        The encoded token
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode = {**data, "exp": expire, "iat": now, "purpose": ACCESS_TOKEN_PURPOSE}
    token = cast(str, jwt.encode(to_encode, _secret(), algorithm=settings.algorithm))
    logger.debug("Created access token for user: %s", data.get("sub"))
    return token


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and validate an access token; raises jwt.PyJWTError on failure."""
    payload = cast(
        Dict[str, Any], jwt.decode(token, _secret(), algorithms=[settings.algorithm])
    )
    if payload.get("purpose", ACCESS_TOKEN_PURPOSE) != ACCESS_TOKEN_PURPOSE:
        raise jwt.InvalidTokenError("Token is not an access token")
    return payload


def verify_token_claims(token: Optional[str]) -> Dict[str, Any]:
    """
    Validate a token and return its claims, raising UnauthorizedException.

    Used where there is no HTTP request to attach a 401 to (WebSocket
    handshakes, OAuth callbacks).
    """
    if not token:
        raise UnauthorizedException("Not authenticated", code="NOT_AUTHENTICATED")
    try:
        payload = decode_access_token(token)
    except PyJWTError as e:
        logger.info("JWT validation error: %s", e)
        raise UnauthorizedException("Could not validate credentials", code="INVALID_TOKEN") from e
    if not isinstance(payload.get("sub"), str) or not isinstance(payload.get("type"), str):
        raise UnauthorizedException("Could not validate credentials", code="INVALID_TOKEN")
    return payload


def create_signed_state(data: Dict[str, Any], *, expires_minutes: Optional[int] = None) -> str:
    """Short-lived signed blob used as the OAuth ``state`` parameter."""
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.oauth_state_expire_minutes
    )
    claims = {**data, "exp": expire, "purpose": OAUTH_STATE_PURPOSE, "nonce": secrets.token_hex(8)}
    return cast(str, jwt.encode(claims, _secret(), algorithm=settings.algorithm))


def decode_signed_state(state: str) -> Dict[str, Any]:
    try:
        claims = cast(Dict[str, Any], jwt.decode(state, _secret(), algorithms=[settings.algorithm]))
    except PyJWTError as e:
        raise UnauthorizedException("Invalid or expired OAuth state", code="INVALID_STATE") from e
    if claims.get("purpose") != OAUTH_STATE_PURPOSE:
        raise UnauthorizedException("Invalid or expired OAuth state", code="INVALID_STATE")
    return claims
