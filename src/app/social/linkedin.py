"""LinkedIn OAuth, publishing and content helpers.

LinkedInClient wraps the handful of REST calls the app makes: the OAuth
code/refresh exchanges, the OpenID userinfo document, UGC post creation and
post statistics. Transient network failures are retried with tenacity;
HTTP errors surface as UpstreamError.

The module also holds the pure helpers the publishing path uses: content
optimisation, refresh timing, error classification and a per-user hourly
rate limiter.
"""

from __future__ import annotations

import re
import time
from urllib.parse import urlencode

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.app.core.dates import epoch_ms, now_iso
from src.app.core.errors import UpstreamError
from src.app.core.monitoring import record_external_call
from src.app.social.schemas import (
    LinkedInErrorInfo,
    LinkedInProfile,
    LinkedInTokenGrant,
    OptimizedContent,
    PostEngagement,
    PublishedPost,
)

logger = structlog.get_logger(__name__)

LINKEDIN_AUTH_URL = "https://www.linkedin.com/oauth/v2/authorization"
LINKEDIN_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
LINKEDIN_API_BASE = "https://api.linkedin.com/v2"

LINKEDIN_SCOPES = ["openid", "profile", "email", "w_member_social"]

MAX_CONTENT_LENGTH = 3000
MAX_HASHTAGS = 10
POSTS_PER_HOUR = 25
RATE_LIMIT_WINDOW_SECONDS = 60 * 60
REFRESH_WINDOW_MS = 7 * 24 * 60 * 60 * 1000

_linkedin_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    reraise=True,
)


class LinkedInClient:
    """Async client for the LinkedIn OAuth and REST endpoints.

    Args:
        client_id: LinkedIn app client ID.
        client_secret: LinkedIn app client secret.
        redirect_uri: OAuth callback registered with LinkedIn.
    """

    TIMEOUT = 15.0

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri

    def build_auth_url(self, state: str, scopes: list[str] | None = None) -> str:
        params = {
            "response_type": "code",
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "scope": " ".join(scopes or LINKEDIN_SCOPES),
            "state": state,
        }
        return f"{LINKEDIN_AUTH_URL}?{urlencode(params)}"

    @staticmethod
    def _check(response: httpx.Response, operation: str) -> None:
        if response.is_error:
            record_external_call("linkedin", operation, "error")
            logger.warning(
                "linkedin.request_failed",
                operation=operation,
                status_code=response.status_code,
            )
            raise UpstreamError("LinkedIn", response.text, response.status_code)
        record_external_call("linkedin", operation)

    @staticmethod
    def _auth_headers(access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    # ── OAuth ───────────────────────────────────────────────────────────

    @_linkedin_retry
    async def exchange_code(self, code: str) -> LinkedInTokenGrant:
        """Exchange an authorization code for an access token.

        Raises:
            UpstreamError: If LinkedIn rejects the code.
        """
        async with httpx.AsyncClient(timeout=self.TIMEOUT) as client:
            response = await client.post(
                LINKEDIN_TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "redirect_uri": self._redirect_uri,
                },
            )
        self._check(response, "token_exchange")
        return LinkedInTokenGrant.model_validate(response.json())

    @_linkedin_retry
    async def refresh_token(self, refresh_token: str) -> LinkedInTokenGrant:
        """Refresh an access token, keeping the old refresh token if none is returned."""
        async with httpx.AsyncClient(timeout=self.TIMEOUT) as client:
            response = await client.post(
                LINKEDIN_TOKEN_URL,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
            )
        self._check(response, "token_refresh")
        grant = LinkedInTokenGrant.model_validate(response.json())
        if not grant.refresh_token:
            grant.refresh_token = refresh_token
        return grant

    # ── Profile ─────────────────────────────────────────────────────────

    @_linkedin_retry
    async def get_userinfo(self, access_token: str) -> LinkedInProfile:
        """Read the OpenID Connect userinfo document."""
        async with httpx.AsyncClient(timeout=self.TIMEOUT) as client:
            response = await client.get(
                f"{LINKEDIN_API_BASE}/userinfo",
                headers=self._auth_headers(access_token),
            )
        self._check(response, "userinfo")
        data = response.json()
        name = (
            data.get("name")
            or f"{data.get('given_name', '')} {data.get('family_name', '')}".strip()
            or "LinkedIn User"
        )
        return LinkedInProfile(
            id=data.get("sub") or data.get("id") or "",
            name=name,
            email=data.get("email") or data.get("emailAddress"),
        )

    async def validate_token(self, access_token: str) -> bool:
        try:
            await self.get_userinfo(access_token)
        except (UpstreamError, httpx.HTTPError):
            return False
        return True

    # ── Publishing ──────────────────────────────────────────────────────

    async def publish_post(
        self,
        access_token: str,
        author_id: str,
        text: str,
        hashtags: list[str] | None = None,
        link_url: str | None = None,
    ) -> PublishedPost:
        """Publish a public post to the member's feed via ``/ugcPosts``.

        Args:
            access_token: Member access token with ``w_member_social``.
            author_id: Member id (userinfo ``sub``).
            text: Post body.
            hashtags: Tags appended on a final line, ``#`` added as needed.
            link_url: Optional article link attached to the post.

        Raises:
            UpstreamError: If LinkedIn rejects the post.
        """
        if hashtags:
            text = f"{text}\n\n" + " ".join(f"#{tag.replace('#', '')}" for tag in hashtags)

        share_content: dict = {
            "shareCommentary": {"text": text},
            "shareMediaCategory": "ARTICLE" if link_url else "NONE",
        }
        if link_url:
            share_content["media"] = [{"status": "READY", "originalUrl": link_url}]

        payload = {
            "author": f"urn:li:person:{author_id}",
            "lifecycleState": "PUBLISHED",
            "specificContent": {"com.linkedin.ugc.ShareContent": share_content},
            "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
        }

        async with httpx.AsyncClient(timeout=self.TIMEOUT) as client:
            response = await client.post(
                f"{LINKEDIN_API_BASE}/ugcPosts",
                json=payload,
                headers={
                    **self._auth_headers(access_token),
                    "X-Restli-Protocol-Version": "2.0.0",
                },
            )
        self._check(response, "publish")

        post_id = response.json().get("id") or response.headers.get("x-restli-id", "")
        logger.info("linkedin.post_published", post_id=post_id, author_id=author_id)
        return PublishedPost(
            post_id=post_id,
            post_url=f"https://www.linkedin.com/feed/update/{post_id}",
            published_at=now_iso(),
        )

    async def get_post_analytics(self, access_token: str, post_id: str) -> PostEngagement:
        """Post statistics; all zeros when LinkedIn has none or the call fails."""
        try:
            async with httpx.AsyncClient(timeout=self.TIMEOUT) as client:
                response = await client.get(
                    f"{LINKEDIN_API_BASE}/socialActions/{post_id}/statistics",
                    headers=self._auth_headers(access_token),
                )
        except httpx.HTTPError as exc:
            logger.warning("linkedin.analytics_failed", post_id=post_id, error=str(exc))
            return PostEngagement()

        if response.is_error:
            return PostEngagement()
        data = response.json()
        return PostEngagement(
            likes=data.get("numLikes", 0),
            comments=data.get("numComments", 0),
            shares=data.get("numShares", 0),
            clicks=data.get("numClicks", 0),
            saves=data.get("numSaves", 0),
        )


def create_mock_post() -> tuple[PublishedPost, PostEngagement]:
    """Simulated publish used when real publishing is disabled."""
    post_id = f"mock-linkedin-post-{epoch_ms()}"
    return (
        PublishedPost(
            post_id=post_id,
            post_url=f"https://www.linkedin.com/feed/update/urn:li:activity:{post_id}",
            published_at=now_iso(),
        ),
        PostEngagement(),
    )


# ── Content helpers ─────────────────────────────────────────────────────────


def optimize_content_for_linkedin(
    text: str, hashtags: list[str] | None = None
) -> OptimizedContent:
    """Fit a post to LinkedIn's limits.

    Truncates to 3000 characters (ending in "..."), keeps at most ten
    hashtags stripped to alphanumerics, and splits a single block of text
    into two paragraphs after the second sentence.
    """
    warnings: list[str] = []
    optimized = text
    tags = list(hashtags or [])

    if len(optimized) > MAX_CONTENT_LENGTH:
        optimized = optimized[: MAX_CONTENT_LENGTH - 3] + "..."
        warnings.append(f"Content truncated to {MAX_CONTENT_LENGTH} characters")

    if len(tags) > MAX_HASHTAGS:
        tags = tags[:MAX_HASHTAGS]
        warnings.append(f"Hashtags limited to {MAX_HASHTAGS}")

    tags = [re.sub(r"[^a-zA-Z0-9]", "", tag) for tag in tags]

    if "\n\n" not in optimized:
        sentences = optimized.split(". ")
        if len(sentences) > 2:
            optimized = ". ".join(sentences[:2]) + ".\n\n" + ". ".join(sentences[2:])

    return OptimizedContent(
        optimized_text=optimized,
        hashtags=tags,
        character_count=len(optimized),
        warnings=warnings,
    )


def should_refresh_token(expires_at_ms: int, now_ms: int | None = None) -> bool:
    """True when the token expires within the next seven days."""
    now_ms = epoch_ms() if now_ms is None else now_ms
    return expires_at_ms < now_ms + REFRESH_WINDOW_MS


def classify_linkedin_error(
    status_code: int | None, message: str = "", attempt: int = 0
) -> LinkedInErrorInfo:
    """Decide whether a failed LinkedIn call is worth retrying, and when.

    Rate limits back off 2^attempt minutes, network errors 2^attempt
    seconds; both give up after three attempts.
    """
    if status_code == 429:
        return LinkedInErrorInfo(
            should_retry=attempt < 3,
            retry_after_ms=2**attempt * 60_000,
            error_type="rate_limit",
        )
    if status_code in (401, 403):
        return LinkedInErrorInfo(should_retry=False, retry_after_ms=0, error_type="auth_error")
    if status_code == 400 and "content" in message:
        return LinkedInErrorInfo(
            should_retry=False, retry_after_ms=0, error_type="content_rejected"
        )
    if not status_code or status_code >= 500:
        return LinkedInErrorInfo(
            should_retry=attempt < 3,
            retry_after_ms=2**attempt * 1000,
            error_type="network_error",
        )
    return LinkedInErrorInfo(should_retry=False, retry_after_ms=0, error_type="unknown")


class LinkedInRateLimiter:
    """Per-user publish counter over a fixed one-hour window.

    The window starts at the first check after the previous one expired.
    State is process-local.
    """

    def __init__(
        self,
        limit: int = POSTS_PER_HOUR,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
    ) -> None:
        self._limit = limit
        self._window = window_seconds
        self._counts: dict[str, tuple[int, float]] = {}

    def can_make_request(self, user_id: str) -> bool:
        now = time.monotonic()
        entry = self._counts.get(user_id)
        if entry is None or now > entry[1]:
            self._counts[user_id] = (0, now + self._window)
            return True
        return entry[0] < self._limit

    def record_request(self, user_id: str) -> None:
        entry = self._counts.get(user_id)
        if entry is not None:
            self._counts[user_id] = (entry[0] + 1, entry[1])

    def reset_in(self, user_id: str) -> float:
        """Seconds until the user's window resets."""
        entry = self._counts.get(user_id)
        if entry is None:
            return 0.0
        return max(0.0, entry[1] - time.monotonic())
