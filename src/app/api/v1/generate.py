"""Content generation endpoints: social posts and follow-up emails.

Both take a meeting transcript plus optional meeting context. Generated
posts are registered in the approval queue so an advisor reviews them
before anything is published.
"""

from __future__ import annotations

import asyncio
import time

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from src.app.api.deps import require_session
from src.app.content.approval import ApprovalRepository
from src.app.content.generator import MOCK_MODEL, ContentGenerationError, ContentService
from src.app.content.schemas import (
    GeneratedPost,
    GenerateEmailRequest,
    GeneratePostsRequest,
    GenerationMode,
    GenerationSettings,
    MeetingContext,
)
from src.app.content.templates import generate_template_posts
from src.app.core.dates import epoch_ms, now_iso
from src.app.core.errors import AppError, success_response
from src.app.core.schemas import to_json
from src.app.core.security import UserSession
from src.app.core.text import word_count

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["content"])

RECOMMENDED_POSTING_TIME = "Tuesday-Thursday, 8-10 AM"


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_content_service(request: Request) -> ContentService:
    """Retrieve ContentService from app.state, 503 if not available."""
    service = getattr(request.app.state, "content_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Content service not initialized",
        )
    return service


def _get_approvals(request: Request) -> ApprovalRepository:
    """Retrieve ApprovalRepository from app.state, 503 if not available."""
    repo = getattr(request.app.state, "approvals", None)
    if repo is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Approval queue not initialized",
        )
    return repo


def _require_transcript(transcript: str | None) -> str:
    if not transcript or not transcript.strip():
        raise AppError(status.HTTP_400_BAD_REQUEST, "Transcript is required", "MISSING_TRANSCRIPT")
    return transcript


def _generation_failed(what: str, exc: Exception) -> AppError:
    if isinstance(exc, asyncio.TimeoutError):
        return AppError(
            status.HTTP_504_GATEWAY_TIMEOUT,
            f"Timed out generating {what}",
            "GENERATION_TIMEOUT",
        )
    return AppError(
        status.HTTP_502_BAD_GATEWAY,
        f"Failed to generate {what}",
        "GENERATION_FAILED",
    )


def _generation_note(mode: GenerationMode, used_mock: bool) -> str:
    if mode == GenerationMode.TEMPLATE:
        return "Generated from meeting topics"
    if used_mock:
        return "Using mock data: AI provider unavailable or rate limited"
    return "Generated with AI provider"


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/generate-posts")
async def generate_posts(
    body: GeneratePostsRequest,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Draft social posts and queue them for approval.

    The default ``ai`` mode drafts from the transcript. ``template`` mode
    fills the topic template from ``meetingContext.topics`` without a model.

    Raises:
        AppError(400): Missing transcript, or no topics in template mode.
        AppError(502/504): The model response was unusable or timed out.
    """
    context = body.meeting_context or MeetingContext()
    settings = body.automation_settings or GenerationSettings()

    if body.mode == GenerationMode.TEMPLATE:
        if not context.topics:
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                "Meeting topics are required for template generation",
                "MISSING_TOPICS",
            )
        result, used_mock = generate_template_posts(context.topics, settings), False
    else:
        transcript = _require_transcript(body.transcript)
        service = _get_content_service(request)
        try:
            result, used_mock = await service.generate_social_posts(transcript, settings)
        except (ContentGenerationError, asyncio.TimeoutError) as exc:
            logger.error("content.posts_failed", user_id=session.user_id, error=str(exc))
            raise _generation_failed("social media posts", exc) from exc

    approvals = _get_approvals(request)
    stamp = epoch_ms()
    posts = []
    for idx, draft in enumerate(result.posts, start=1):
        post = GeneratedPost.from_draft(draft, post_id=f"post-{stamp}-{idx}")
        await approvals.add_content_for_approval(post.id, post.content, post.platform.value)
        posts.append(post)

    logger.info(
        "content.posts_served",
        user_id=session.user_id,
        count=len(posts),
        mock=used_mock,
    )
    return success_response(
        {
            "posts": to_json(posts),
            "metadata": {
                **to_json(result.metadata),
                "totalPosts": len(posts),
                "platforms": [p.platform.value for p in posts],
                "totalWordCount": sum(p.word_count for p in posts),
                "totalHashtags": sum(len(p.hashtags) for p in posts),
                "averageEngagement": "High",
                "recommendedPostingTime": RECOMMENDED_POSTING_TIME,
                "usingMockData": used_mock,
                "note": _generation_note(body.mode, used_mock),
            },
            "meetingContext": to_json(context),
            "generatedAt": now_iso(),
        }
    )


@router.post("/generate-email")
async def generate_email(
    body: GenerateEmailRequest,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Draft a follow-up email for the meeting attendees."""
    transcript = _require_transcript(body.transcript)
    context = body.meeting_context or MeetingContext()

    service = _get_content_service(request)
    started = time.perf_counter()
    try:
        email, used_mock = await service.generate_follow_up_email(transcript, context)
    except (ContentGenerationError, asyncio.TimeoutError) as exc:
        logger.error("content.email_failed", user_id=session.user_id, error=str(exc))
        raise _generation_failed("follow-up email", exc) from exc

    email_settings = body.email_settings or {}
    return success_response(
        to_json(email),
        processingTimeMs=int((time.perf_counter() - started) * 1000),
        model=MOCK_MODEL if used_mock else service.model_name,
        wordCount=word_count(email.content),
        characterCount=len(email.content),
        tone=email_settings.get("tone", "professional"),
        includesActionItems=bool(email.action_items),
        includesMeetingSummary=email_settings.get("includeSummary", True),
        usingMockData=used_mock,
    )
