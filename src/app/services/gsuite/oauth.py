"""Google OAuth 2.0 authorization-code flow over plain HTTP.

Builds the consent URL, exchanges the returned code for tokens and reads the
OpenID userinfo document. Used by sign-in (which turns the result into a
session token) and by the calendar connect action.
"""

from __future__ import annotations

import secrets
from urllib.parse import urlencode

import httpx
import structlog

from src.app.core.errors import UpstreamError
from src.app.core.monitoring import record_external_call
from src.app.core.store import KeyValueStore
from src.app.services.gsuite.calendar import CALENDAR_SCOPES
from src.app.services.gsuite.models import GoogleProfile, GoogleTokens

logger = structlog.get_logger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

SIGN_IN_SCOPES = ["openid", *CALENDAR_SCOPES]

OAUTH_STATE_TTL_SECONDS = 600


def state_key(state: str) -> str:
    return f"oauth-state:{state}"


async def issue_oauth_state(store: KeyValueStore, **data: str) -> str:
    """Random one-time ``state``, remembered for ten minutes.

    The callback accepts only states issued here and deletes them on use.
    """
    state = secrets.token_urlsafe(24)
    await store.set_json(state_key(state), {"provider": "google", **data}, ex=OAUTH_STATE_TTL_SECONDS)
    return state


class GoogleOAuthClient:
    """Google OAuth client for one redirect URI.

    Args:
        client_id: OAuth client ID.
        client_secret: OAuth client secret.
        redirect_uri: Callback URL registered with Google.
    """

    TIMEOUT = 10.0

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri

    def build_auth_url(self, state: str, scopes: list[str] | None = None) -> str:
        """Consent URL requesting offline access (refresh token) every time."""
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes or SIGN_IN_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> GoogleTokens:
        """Exchange an authorization code for tokens.

        Raises:
            UpstreamError: If Google rejects the code.
        """
        async with httpx.AsyncClient(timeout=self.TIMEOUT) as client:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "redirect_uri": self._redirect_uri,
                },
            )
        if response.status_code != 200:
            record_external_call("google", "token_exchange", "error")
            logger.warning("google.token_exchange_failed", status_code=response.status_code)
            raise UpstreamError("Google", response.text, response.status_code)

        record_external_call("google", "token_exchange")
        return GoogleTokens.model_validate(response.json())

    async def get_profile(self, access_token: str) -> GoogleProfile:
        """Read the userinfo document for ``access_token``."""
        async with httpx.AsyncClient(timeout=self.TIMEOUT) as client:
            response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        if response.status_code != 200:
            record_external_call("google", "userinfo", "error")
            raise UpstreamError("Google", response.text, response.status_code)

        record_external_call("google", "userinfo")
        return GoogleProfile.model_validate(response.json())
