"""Authentication API endpoints.

Sign-in is Google OAuth: /google/login hands out the consent URL,
/google/callback exchanges the code and returns a session token carrying
the Google access token for Calendar calls. /session issues tokens directly
only when explicitly enabled outside production.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from src.app.api.deps import get_kv_store, require_session
from src.app.config import Environment, get_settings
from src.app.core.errors import AppError, success_response
from src.app.core.schemas import CamelModel
from src.app.core.security import UserSession, create_session_token
from src.app.core.store import KeyValueStore
from src.app.core.text import is_valid_email
from src.app.services.gsuite import GoogleOAuthClient, issue_oauth_state, state_key
from src.app.social.tokens import SocialTokenService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

GOOGLE_CALENDAR_PLATFORM = "google_calendar"


class SessionRequest(CamelModel):
    email: str
    name: str = ""
    google_access_token: str | None = None


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_google_oauth(request: Request) -> GoogleOAuthClient:
    """Retrieve GoogleOAuthClient from app.state, 503 if not available."""
    client = getattr(request.app.state, "google_oauth", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google OAuth client not initialized",
        )
    return client


def _require_google_configured() -> None:
    if not get_settings().google_configured:
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Google OAuth not configured",
            "GOOGLE_NOT_CONFIGURED",
        )


def _session_payload(token: str, email: str, name: str) -> dict:
    settings = get_settings()
    return {
        "token": token,
        "tokenType": "bearer",
        "expiresIn": settings.SESSION_EXPIRE_MINUTES * 60,
        "user": {"id": email, "email": email, "name": name},
    }


# ── Google Sign-in ───────────────────────────────────────────────────────────


@router.get("/google/login")
async def google_login(
    request: Request,
    store: KeyValueStore = Depends(get_kv_store),
) -> JSONResponse:
    """Consent URL with a one-time ``state`` remembered for ten minutes."""
    _require_google_configured()
    state = await issue_oauth_state(store)
    auth_url = _get_google_oauth(request).build_auth_url(state=state)
    return success_response({"authUrl": auth_url, "state": state})


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    store: KeyValueStore = Depends(get_kv_store),
) -> JSONResponse:
    """Exchange the authorization code and issue a session token.

    The refresh token (when Google returns one) is kept in the social token
    store under the ``google_calendar`` platform.

    Raises:
        AppError(400): Google returned an error, or the code/state is missing
            or unknown.
    """
    if error:
        raise AppError(status.HTTP_400_BAD_REQUEST, f"Google sign-in failed: {error}", "OAUTH_ERROR")
    if not code or not state:
        raise AppError(
            status.HTTP_400_BAD_REQUEST, "Missing authorization code or state", "MISSING_CODE"
        )
    if await store.get_json(state_key(state)) is None:
        raise AppError(status.HTTP_400_BAD_REQUEST, "Invalid or expired state", "INVALID_STATE")
    await store.delete(state_key(state))

    oauth = _get_google_oauth(request)
    tokens = await oauth.exchange_code(code)
    profile = await oauth.get_profile(tokens.access_token)

    social_tokens: SocialTokenService | None = getattr(request.app.state, "social_tokens", None)
    if social_tokens is not None:
        await social_tokens.store_token(
            profile.email,
            GOOGLE_CALENDAR_PLATFORM,
            tokens.access_token,
            expires_in=tokens.expires_in,
            refresh_token=tokens.refresh_token,
            scope=tokens.scope.split(),
        )

    name = profile.name or profile.email.split("@")[0]
    token = create_session_token(
        {"sub": profile.email, "name": name, "google_access_token": tokens.access_token}
    )
    logger.info("auth.google_sign_in", user_id=profile.email)
    return success_response(_session_payload(token, profile.email, name))


# ── Sessions ─────────────────────────────────────────────────────────────────


@router.post("/session")
async def create_session(body: SessionRequest) -> JSONResponse:
    """Issue a session token without Google.

    Only available when DEV_SESSIONS_ENABLED is set and the environment is
    development or test.

    Raises:
        HTTPException(404): Disabled, or in production and staging.
        AppError(400): Malformed email.
    """
    settings = get_settings()
    dev_environment = settings.ENVIRONMENT in (Environment.development, Environment.test)
    if not (settings.DEV_SESSIONS_ENABLED and dev_environment):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    if not is_valid_email(body.email):
        raise AppError(status.HTTP_400_BAD_REQUEST, "Invalid email address", "INVALID_EMAIL")

    name = body.name or body.email.split("@")[0]
    claims = {"sub": body.email, "name": name}
    if body.google_access_token:
        claims["google_access_token"] = body.google_access_token
    logger.info("auth.dev_session_issued", user_id=body.email)
    return success_response(_session_payload(create_session_token(claims), body.email, name))


@router.get("/session")
async def get_session(session: UserSession = require_session) -> JSONResponse:
    return success_response(
        {
            "user": {"id": session.user_id, "email": session.email, "name": session.name},
            "hasGoogleAccess": bool(session.google_access_token),
        }
    )


@router.get("/verify-config")
async def verify_config() -> JSONResponse:
    """Which integrations are configured; secrets are never echoed."""
    settings = get_settings()
    return success_response(
        {
            "environment": settings.ENVIRONMENT.value,
            "googleOAuth": settings.google_configured,
            "linkedinOAuth": settings.linkedin_configured,
            "openai": settings.llm_configured,
            "recallAi": settings.recall_configured,
            "redis": bool(settings.REDIS_URL),
            "sessionSecretIsDefault": settings.SESSION_SECRET_KEY.startswith("CHANGE-ME"),
            "appBaseUrl": settings.APP_BASE_URL,
        }
    )
