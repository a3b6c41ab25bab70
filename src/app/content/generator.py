"""ContentService -- social posts and follow-up emails from meeting transcripts.

Calls the LLMService "content" model group in JSON mode and validates the
returned document against the content schemas. When no provider key is
configured, or the provider answers with a rate limit, the canned mock
content is returned instead so demos keep working; any other provider
failure propagates.

Exports:
    ContentService: Generation service used by the API.
    ContentGenerationError: Raised when the model returns an unusable document.
    generate_mock_posts / generate_mock_email: Canned content.
"""

from __future__ import annotations

import asyncio
import json
import time

import structlog
from pydantic import ValidationError

from src.app.config import get_settings
from src.app.content.prompts import SYSTEM_PROMPT, build_email_prompt, build_post_prompt
from src.app.content.schemas import (
    DraftPost,
    FollowUpEmail,
    GeneratedPosts,
    GenerationMetadata,
    GenerationSettings,
    MeetingContext,
    SocialPlatform,
)
from src.app.core.monitoring import track_llm_call
from src.app.services.llm import LLMService, is_rate_limit_error

logger = structlog.get_logger(__name__)

MOCK_MODEL = "gpt-4-mock"

MOCK_POSTS: tuple[DraftPost, ...] = (
    DraftPost(
        platform=SocialPlatform.LINKEDIN,
        content=(
            "Just wrapped up an insightful client meeting discussing portfolio "
            "diversification strategies. Key takeaway: The importance of balancing "
            "growth potential with risk management in today's market. Remember, "
            "successful investing isn't about timing the market, it's about time in "
            "the market. 📈"
        ),
        hashtags=["#FinancialPlanning", "#InvestmentStrategy", "#WealthManagement"],
        reasoning=(
            "This post focuses on educational content while highlighting expertise in "
            "portfolio management, perfect for LinkedIn's professional audience."
        ),
    ),
    DraftPost(
        platform=SocialPlatform.LINKEDIN,
        content=(
            "Today's client conversation reinforced why regular portfolio reviews are "
            "crucial. Markets evolve, life changes, and so should your investment "
            "strategy. A well-timed adjustment can make all the difference in achieving "
            "your financial goals. What questions should you be asking your advisor? 🤔"
        ),
        hashtags=["#FinancialAdvisor", "#PortfolioReview", "#ClientSuccess"],
        reasoning=(
            "Engages the audience with a question while demonstrating the value of "
            "ongoing financial advice and relationship management."
        ),
    ),
    DraftPost(
        platform=SocialPlatform.LINKEDIN,
        content=(
            "Grateful for another productive meeting with a long-term client. Watching "
            "their financial confidence grow over the years never gets old. It's not "
            "just about the numbers, it's about peace of mind and achieving life goals. "
            "This is why I love what I do. 💼✨"
        ),
        hashtags=["#ClientRelationships", "#FinancialConfidence", "#PurposeDriven"],
        reasoning=(
            "Personal and emotional appeal that showcases the human side of financial "
            "advising while maintaining professionalism."
        ),
    ),
)


class ContentGenerationError(Exception):
    """The model response could not be turned into posts or an email."""


def generate_mock_posts(settings: GenerationSettings | None = None) -> GeneratedPosts:
    max_posts = settings.max_posts if settings else 3
    return GeneratedPosts(
        posts=[p.model_copy() for p in MOCK_POSTS[:max_posts]],
        metadata=GenerationMetadata(tokens_used=450, processing_time_ms=1500, model=MOCK_MODEL),
    )


def generate_mock_email(attendees: list[str], meeting_title: str) -> FollowUpEmail:
    return FollowUpEmail(
        subject=f"Follow-up: {meeting_title}",
        content=(
            f"Dear {', '.join(attendees)},\n\n"
            "Thank you for taking the time to meet with me today. I wanted to follow up "
            "on our discussion and provide a summary of the key points we covered.\n\n"
            "During our meeting, we discussed your current financial situation and "
            "explored several strategies to help you achieve your long-term goals. I was "
            "particularly impressed by your thoughtful questions about portfolio "
            "diversification and risk management.\n\n"
            "Based on our conversation, I believe we've identified some excellent "
            "opportunities to optimize your investment strategy while maintaining an "
            "appropriate risk profile for your situation.\n\n"
            "I look forward to continuing our partnership and helping you build the "
            "financial future you envision.\n\n"
            "Best regards,\nYour Financial Advisor"
        ),
        action_items=[
            "Review updated portfolio allocation proposal",
            "Schedule quarterly review meeting",
            "Provide additional documentation for account setup",
            "Research tax-advantaged investment options",
        ],
        next_steps=(
            "I'll prepare the detailed portfolio recommendations we discussed and send "
            "them to you by Friday. We can schedule a follow-up call next week to review "
            "everything in detail."
        ),
    )


def _parse_json(raw: str | None) -> dict:
    if not raw:
        raise ContentGenerationError("No content received from model")
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ContentGenerationError(f"Model returned invalid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ContentGenerationError("Model returned a non-object JSON document")
    return parsed


class ContentService:
    """Turns meeting transcripts into draft posts and follow-up emails.

    Args:
        llm_service: LLMService routing to the configured providers.
        timeout: Seconds allowed per completion, on top of router retries.
        force_mock: Always answer with the canned content.
    """

    def __init__(
        self,
        llm_service: LLMService,
        timeout: float | None = None,
        force_mock: bool = False,
    ) -> None:
        self._llm = llm_service
        self._timeout = timeout if timeout is not None else get_settings().LLM_TIMEOUT
        self._force_mock = force_mock

    @property
    def mock_mode(self) -> bool:
        return self._force_mock or not self._llm.available

    @property
    def model_name(self) -> str:
        return self._llm.default_model

    # ── Posts ───────────────────────────────────────────────────────────

    async def generate_social_posts(
        self,
        transcript: str,
        settings: GenerationSettings | None = None,
    ) -> tuple[GeneratedPosts, bool]:
        """Generate LinkedIn drafts for a transcript.

        Posts are generated for LinkedIn only; the other requested
        platforms are accepted but not yet drafted.

        Returns:
            Tuple of (posts, used_mock).

        Raises:
            ContentGenerationError: If the model response is not a posts document.
        """
        settings = settings or GenerationSettings()
        if self.mock_mode:
            logger.info("content.posts_mock", reason="no_api_key")
            return generate_mock_posts(settings), True

        started = time.perf_counter()
        prompt = build_post_prompt(
            transcript,
            SocialPlatform.LINKEDIN,
            settings.tone,
            settings.length,
            settings.include_hashtags,
            settings.include_emojis,
        )
        try:
            response = await self._complete(prompt, "social_posts", max_tokens=1000, temperature=0.7)
        except Exception as exc:
            if is_rate_limit_error(exc):
                logger.warning("content.posts_rate_limited", error=str(exc))
                return generate_mock_posts(settings), True
            raise

        parsed = _parse_json(response["content"])
        posts = parsed.get("posts")
        if not isinstance(posts, list):
            raise ContentGenerationError("Invalid response format from model")
        try:
            drafts = [DraftPost.model_validate(p) for p in posts]
        except ValidationError as exc:
            raise ContentGenerationError(f"Invalid post in model response: {exc}") from exc

        result = GeneratedPosts(
            posts=drafts[: settings.max_posts],
            metadata=GenerationMetadata(
                tokens_used=response["usage"].get("total_tokens", 0),
                processing_time_ms=int((time.perf_counter() - started) * 1000),
                model=response["model"] or self._llm.default_model,
            ),
        )
        logger.info(
            "content.posts_generated",
            count=len(result.posts),
            tokens=result.metadata.tokens_used,
        )
        return result, False

    # ── Follow-up email ─────────────────────────────────────────────────

    async def generate_follow_up_email(
        self,
        transcript: str,
        context: MeetingContext | None = None,
    ) -> tuple[FollowUpEmail, bool]:
        """Draft a follow-up email for the meeting attendees.

        Returns:
            Tuple of (email, used_mock).

        Raises:
            ContentGenerationError: If the model response has no ``email`` object.
        """
        context = context or MeetingContext()
        if self.mock_mode:
            logger.info("content.email_mock", reason="no_api_key")
            return generate_mock_email(context.attendees, context.title), True

        prompt = build_email_prompt(transcript, context.attendees, context.title)
        try:
            response = await self._complete(prompt, "follow_up_email", max_tokens=800, temperature=0.5)
        except Exception as exc:
            if is_rate_limit_error(exc):
                logger.warning("content.email_rate_limited", error=str(exc))
                return generate_mock_email(context.attendees, context.title), True
            raise

        parsed = _parse_json(response["content"])
        email = parsed.get("email")
        if not isinstance(email, dict):
            raise ContentGenerationError("Invalid email response format from model")
        try:
            result = FollowUpEmail.model_validate(email)
        except ValidationError as exc:
            raise ContentGenerationError(f"Invalid email in model response: {exc}") from exc

        logger.info("content.email_generated", subject=result.subject)
        return result, False

    async def _complete(
        self, prompt: str, purpose: str, max_tokens: int, temperature: float
    ) -> dict:
        async with track_llm_call(self._llm.default_model, purpose) as tracker:
            response = await asyncio.wait_for(
                self._llm.completion(
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    max_tokens=max_tokens,
                    temperature=temperature,
                    json_mode=True,
                    metadata={"purpose": purpose},
                ),
                timeout=self._timeout,
            )
            tracker["prompt_tokens"] = response["usage"].get("prompt_tokens", 0)
            tracker["completion_tokens"] = response["usage"].get("completion_tokens", 0)
        return response
