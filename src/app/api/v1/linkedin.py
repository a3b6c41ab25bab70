"""LinkedIn account connection endpoints.

/connect hands out the consent URL with a random one-time ``state`` and
remembers which user asked for it. LinkedIn redirects the browser to
/callback, which resolves the state back to that user, stores the grant and
sends the browser back to the web app with a success or error flag.

The browser redirect carries no bearer token, so the pending record written
by /connect is the only link between the callback and the user. It lives for
ten minutes and is consumed on first use.
"""

from __future__ import annotations

import secrets
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from src.app.api.deps import get_kv_store, get_optional_session, require_session
from src.app.config import get_settings
from src.app.core.errors import AppError, UpstreamError, success_response
from src.app.core.schemas import to_json
from src.app.core.security import UserSession
from src.app.core.store import KeyValueStore
from src.app.social.linkedin import LinkedInClient
from src.app.social.schemas import LinkedInProfile, StoreTokenRequest
from src.app.social.tokens import LinkedInTokenStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/linkedin", tags=["linkedin"])

PENDING_CONNECT_TTL_SECONDS = 600


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_linkedin_client(request: Request) -> LinkedInClient:
    """Retrieve LinkedInClient from app.state, 503 if not available."""
    client = getattr(request.app.state, "linkedin_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="LinkedIn client not initialized",
        )
    return client


def _get_token_store(request: Request) -> LinkedInTokenStore:
    """Retrieve LinkedInTokenStore from app.state, 503 if not available."""
    tokens = getattr(request.app.state, "linkedin_tokens", None)
    if tokens is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="LinkedIn token store not initialized",
        )
    return tokens


def _pending_key(state: str) -> str:
    return f"linkedin-connect:{state}"


def _demo_redirect(**params: str) -> RedirectResponse:
    base = get_settings().redirect_uri("/demo")
    return RedirectResponse(f"{base}?{urlencode(params)}", status_code=status.HTTP_302_FOUND)


def _error_redirect(message: str) -> RedirectResponse:
    logger.warning("linkedin.callback_failed", reason=message)
    return _demo_redirect(linkedin_error=message)


# ── OAuth ────────────────────────────────────────────────────────────────────


@router.get("/connect")
async def connect(
    request: Request,
    session: UserSession = require_session,
    store: KeyValueStore = Depends(get_kv_store),
) -> JSONResponse:
    """LinkedIn consent URL for the caller.

    Raises:
        AppError(500): LinkedIn client id is not configured.
    """
    if not get_settings().LINKEDIN_CLIENT_ID:
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "LinkedIn OAuth not configured",
            "LINKEDIN_NOT_CONFIGURED",
        )
    state = secrets.token_urlsafe(24)
    await store.set_json(
        _pending_key(state),
        {"email": session.email},
        ex=PENDING_CONNECT_TTL_SECONDS,
    )
    auth_url = _get_linkedin_client(request).build_auth_url(state=state)
    return success_response(
        {"authUrl": auth_url, "state": state}, message="LinkedIn OAuth URL generated"
    )


@router.get("/callback")
async def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    session: UserSession | None = Depends(get_optional_session),
    store: KeyValueStore = Depends(get_kv_store),
) -> RedirectResponse:
    """Store the LinkedIn grant and redirect back to the web app."""
    if error:
        return _error_redirect(error)
    if not code or not state:
        return _error_redirect("Missing authorization code or state")

    pending = await store.get_json(_pending_key(state))
    if pending is None:
        return _error_redirect("Invalid session or state mismatch")
    await store.delete(_pending_key(state))
    email = pending["email"]
    if session is not None and session.email != email:
        return _error_redirect("Invalid session or state mismatch")

    settings = get_settings()
    if not settings.linkedin_configured:
        return _error_redirect("LinkedIn OAuth not configured")

    client = _get_linkedin_client(request)
    try:
        grant = await client.exchange_code(code)
    except UpstreamError:
        return _error_redirect("Failed to exchange code for token")
    try:
        profile = await client.get_userinfo(grant.access_token)
    except UpstreamError:
        return _error_redirect("Failed to fetch LinkedIn profile")

    await _get_token_store(request).save(
        email,
        grant.access_token,
        grant.expires_in,
        profile,
        refresh_token=grant.refresh_token or "",
    )
    logger.info("linkedin.connected", user_id=email, profile_id=profile.id)
    return _demo_redirect(linkedin_success="1", profile_name=profile.name)


# ── Connection State ─────────────────────────────────────────────────────────


@router.get("/status")
async def connection_status(
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    token = await _get_token_store(request).get(session.email)
    if token is None or not token.is_valid:
        return success_response(
            {
                "connected": False,
                "message": "LinkedIn not connected or token expired",
                "hasTokenStore": token is not None,
            }
        )
    return success_response(
        {
            "connected": True,
            "profile": to_json(token.profile),
            "token": {"expiresAt": token.expires_at, "isExpired": not token.is_valid},
            "source": "token-store",
        }
    )


@router.post("/disconnect")
async def disconnect(
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    await _get_token_store(request).remove(session.email)
    return success_response({"connected": False, "message": "LinkedIn disconnected"})


@router.post("/store-token")
async def store_token(
    body: StoreTokenRequest,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Store a LinkedIn access token obtained outside the callback.

    Raises:
        AppError(400): No ``accessToken`` in the body.
    """
    if not body.access_token:
        raise AppError(status.HTTP_400_BAD_REQUEST, "Access token is required", "MISSING_ACCESS_TOKEN")

    profile = body.profile or LinkedInProfile(id="linkedin-user", email=session.email)
    token = await _get_token_store(request).save(
        session.email, body.access_token, body.expires_in, profile
    )
    return success_response(
        {
            "message": "LinkedIn token stored successfully",
            "profile": to_json(token.profile),
            "expiresAt": token.expires_at,
        }
    )
