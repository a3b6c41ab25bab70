"""FastAPI dependency injection for the session gate and shared resources.

These dependencies are used in endpoint function signatures to inject the
authenticated session and the key-value store.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from src.app.core.security import UserSession, verify_session_token
from src.app.core.store import KeyValueStore, get_store


async def get_kv_store(request: Request) -> KeyValueStore:
    """Store from app.state when the lifespan set one, else the singleton."""
    store = getattr(request.app.state, "store", None)
    return store if store is not None else get_store()


async def get_current_session(request: Request) -> UserSession:
    """Extract and validate the current session from the bearer token.

    Raises:
        HTTPException(401): If no valid session token is provided.
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return verify_session_token(auth_header[7:])

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_optional_session(request: Request) -> UserSession | None:
    """Session when a valid token is present, otherwise None."""
    try:
        return await get_current_session(request)
    except HTTPException:
        return None


# Alias for cleaner endpoint signatures
require_session = Depends(get_current_session)
