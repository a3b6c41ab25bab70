"""Social publishing endpoints.

Real LinkedIn publishing only happens when SOCIAL_PUBLISHING_ENABLED is on
and the caller has a valid stored LinkedIn grant. Otherwise /social/post
answers with a demo-mode 400 and /social/linkedin simulates the publish.
"""

from __future__ import annotations

import math
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from src.app.api.deps import require_session
from src.app.compliance import score_content_risk
from src.app.config import get_settings
from src.app.core.errors import AppError, UpstreamError, success_response
from src.app.core.schemas import to_json
from src.app.core.security import UserSession
from src.app.social.linkedin import (
    LinkedInClient,
    LinkedInRateLimiter,
    classify_linkedin_error,
    create_mock_post,
    optimize_content_for_linkedin,
    should_refresh_token,
)
from src.app.social.schemas import LinkedInActionRequest, LinkedInToken, SocialPostRequest
from src.app.social.tokens import LinkedInTokenStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/social", tags=["social"])

SUPPORTED_PLATFORMS = ("linkedin", "facebook")
LINKEDIN_ACTIONS = ("publish", "validate", "optimize")


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _state(request: Request, name: str, label: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not initialized",
        )
    return value


def _get_linkedin_client(request: Request) -> LinkedInClient:
    """Retrieve LinkedInClient from app.state, 503 if not available."""
    return _state(request, "linkedin_client", "LinkedIn client")


def _get_token_store(request: Request) -> LinkedInTokenStore:
    """Retrieve LinkedInTokenStore from app.state, 503 if not available."""
    return _state(request, "linkedin_tokens", "LinkedIn token store")


def _get_rate_limiter(request: Request) -> LinkedInRateLimiter:
    """Retrieve LinkedInRateLimiter from app.state, 503 if not available."""
    return _state(request, "linkedin_rate_limiter", "LinkedIn rate limiter")


# ── Publishing Helpers ───────────────────────────────────────────────────────


async def _fresh_token(
    request: Request, email: str, token: LinkedInToken
) -> LinkedInToken:
    """Refresh a grant close to expiry when LinkedIn gave us a refresh token."""
    if not token.refresh_token or not should_refresh_token(token.expires_at):
        return token
    try:
        grant = await _get_linkedin_client(request).refresh_token(token.refresh_token)
    except UpstreamError as exc:
        logger.warning("linkedin.refresh_failed", user_id=email, error=exc.message)
        return token
    return await _get_token_store(request).save(
        email,
        grant.access_token,
        grant.expires_in,
        token.profile,
        refresh_token=grant.refresh_token or token.refresh_token,
    )


async def _publish(
    request: Request,
    user_id: str,
    token: LinkedInToken,
    text: str,
    hashtags: list[str],
    link_url: str | None,
) -> dict:
    """Publish for real and return the post with its engagement counters.

    Raises:
        AppError(429): The caller is over the hourly publish limit.
        AppError(502): LinkedIn rejected the post.
    """
    limiter = _get_rate_limiter(request)
    if not limiter.can_make_request(user_id):
        raise AppError(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "LinkedIn rate limit exceeded. Please try again later.",
            "RATE_LIMITED",
            extra={"retryAfter": math.ceil(limiter.reset_in(user_id))},
        )

    token = await _fresh_token(request, user_id, token)
    client = _get_linkedin_client(request)
    try:
        post = await client.publish_post(
            token.access_token, token.profile.id, text, hashtags, link_url
        )
    except UpstreamError as exc:
        info = classify_linkedin_error(exc.status_code, exc.message)
        logger.error(
            "linkedin.publish_failed",
            user_id=user_id,
            error_type=info.error_type,
            status_code=exc.status_code,
        )
        raise AppError(
            status.HTTP_502_BAD_GATEWAY,
            "LinkedIn rejected the post",
            "LINKEDIN_PUBLISH_FAILED",
            extra={"errorInfo": to_json(info)},
        ) from exc

    limiter.record_request(user_id)
    engagement = await client.get_post_analytics(token.access_token, post.post_id)
    return {**to_json(post), "engagement": to_json(engagement)}


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/post")
async def post_to_platform(
    body: SocialPostRequest,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Publish to a connected network, or explain why it is demo-only.

    Raises:
        AppError(400): Missing fields, unsupported platform, or demo mode.
    """
    if not body.platform or not body.content:
        raise AppError(
            status.HTTP_400_BAD_REQUEST,
            "Platform and content are required",
            "MISSING_REQUIRED_FIELDS",
        )

    if body.platform == "linkedin":
        token = None
        if get_settings().SOCIAL_PUBLISHING_ENABLED:
            token = await _get_token_store(request).get_valid(session.email)
        if token is None:
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                "LinkedIn Business Account required for publishing.",
                "LINKEDIN_DEMO_MODE",
                extra={"demo": True},
            )
        result = await _publish(
            request, session.email, token, body.content, body.hashtags, body.link_url
        )
        return success_response(result, platform="linkedin")

    if body.platform == "facebook":
        raise AppError(
            status.HTTP_400_BAD_REQUEST,
            "Meta for Developers is not available in this location.",
            "FACEBOOK_DEMO_MODE",
            extra={"demo": True},
        )

    raise AppError(
        status.HTTP_400_BAD_REQUEST,
        f"Unsupported platform. Supported platforms: {', '.join(SUPPORTED_PLATFORMS)}",
        "UNSUPPORTED_PLATFORM",
    )


@router.post("/linkedin")
async def linkedin_action(
    body: LinkedInActionRequest,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """``publish``, ``validate`` or ``optimize`` a LinkedIn post.

    Raises:
        AppError(429): Hourly publish limit reached.
        AppError(400): Content failed validation, or unknown action.
        AppError(401): Real publishing requested without a LinkedIn connection.
    """
    if body.action == "validate":
        return success_response(to_json(score_content_risk(body.content)))

    if body.action == "optimize":
        return success_response(to_json(optimize_content_for_linkedin(body.content, body.hashtags)))

    if body.action != "publish":
        raise AppError(
            status.HTTP_400_BAD_REQUEST,
            f"Invalid action. Supported actions: {', '.join(LINKEDIN_ACTIONS)}",
            "INVALID_ACTION",
        )

    limiter = _get_rate_limiter(request)
    if not limiter.can_make_request(session.email):
        raise AppError(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Rate limit exceeded. Please try again later.",
            "RATE_LIMIT_EXCEEDED",
            extra={"retryAfter": math.ceil(limiter.reset_in(session.email))},
        )

    validation = score_content_risk(body.content)
    if not validation.is_valid:
        raise AppError(
            status.HTTP_400_BAD_REQUEST,
            "Content validation failed",
            "CONTENT_VALIDATION_FAILED",
            extra={"details": validation.issues, "riskScore": validation.risk_score},
        )

    optimized = optimize_content_for_linkedin(body.content, body.hashtags)
    optimizations = {
        "warnings": optimized.warnings,
        "characterCount": optimized.character_count,
        "hashtags": optimized.hashtags,
    }
    validation_summary = {"riskScore": validation.risk_score, "issues": validation.issues}

    if not get_settings().SOCIAL_PUBLISHING_ENABLED:
        post, engagement = create_mock_post()
        limiter.record_request(session.email)
        logger.info("linkedin.mock_publish", user_id=session.email, post_id=post.post_id)
        return success_response(
            {
                **to_json(post),
                "engagement": to_json(engagement),
                "optimizations": optimizations,
                "validation": validation_summary,
                "mock": True,
            }
        )

    token = await _get_token_store(request).get_valid(session.email)
    if token is None:
        raise AppError(
            status.HTTP_401_UNAUTHORIZED,
            "LinkedIn account not connected",
            "LINKEDIN_NOT_CONNECTED",
        )
    result = await _publish(
        request,
        session.email,
        token,
        optimized.optimized_text,
        optimized.hashtags,
        body.link_url,
    )
    return success_response(
        {
            **result,
            "optimizations": optimizations,
            "validation": validation_summary,
            "mock": False,
        }
    )
