"""Signed session tokens.

A session is a short JWT (python-jose, HS256) carrying the signed-in user's
email as ``sub``, their display name, and optionally the Google access token
obtained at sign-in so Calendar calls can be made on their behalf.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from fastapi import HTTPException, status
from jose import JWTError, jwt
from pydantic import BaseModel

from src.app.config import get_settings

logger = structlog.get_logger(__name__)

SESSION_TOKEN_TYPE = "session"


class UserSession(BaseModel):
    """The authenticated caller, resolved from a session token."""

    user_id: str
    email: str
    name: str = ""
    google_access_token: str | None = None


# ── Token Creation ────────────────────────────────────────────────────────────


def create_session_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a session JWT.

    The data dict should contain at minimum:
    - sub: user email (str)
    and may contain ``name`` and ``google_access_token``.
    """
    settings = get_settings()
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.SESSION_EXPIRE_MINUTES))
    to_encode.update({
        "exp": expire,
        "iat": now,
        "type": SESSION_TOKEN_TYPE,
    })
    return jwt.encode(to_encode, settings.SESSION_SECRET_KEY, algorithm=settings.SESSION_ALGORITHM)


# ── Token Verification ────────────────────────────────────────────────────────


def decode_session_token(token: str) -> dict | None:
    """Decode a session token, returning None instead of raising."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.SESSION_SECRET_KEY,
            algorithms=[settings.SESSION_ALGORITHM],
        )
    except JWTError:
        return None
    if payload.get("type") != SESSION_TOKEN_TYPE or not payload.get("sub"):
        return None
    return payload


def verify_session_token(token: str) -> UserSession:
    """Validate a session token and build the UserSession.

    Raises:
        HTTPException(401): If the token is invalid, expired, or wrong type.
    """
    payload = decode_session_token(token)
    if payload is None:
        logger.info("session.invalid_token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    email = payload["sub"]
    return UserSession(
        user_id=email,
        email=email,
        name=payload.get("name") or email.split("@")[0],
        google_access_token=payload.get("google_access_token"),
    )
