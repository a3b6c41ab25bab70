"""Tests for ContentService, the prompt builders and the template generator.

Uses a stand-in LLMService: ``available`` controls mock mode and
``completion`` is an AsyncMock returning LiteLLM-shaped dicts.
"""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from litellm.exceptions import RateLimitError

from src.app.content.generator import (
    MOCK_MODEL,
    ContentGenerationError,
    ContentService,
    generate_mock_email,
)
from src.app.content.prompts import build_email_prompt, build_post_prompt
from src.app.content.schemas import (
    ContentLength,
    ContentTone,
    DraftPost,
    GeneratedPost,
    GenerationSettings,
    MeetingContext,
    SocialPlatform,
)
from src.app.content.templates import BASE_HASHTAGS, build_hashtags, generate_post
from src.app.services.llm import is_rate_limit_error

TRANSCRIPT = "Advisor: We reviewed the retirement plan.\nClient: Sounds good."


# ── Fixtures ─────────────────────────────────────────────────────────────────


def _llm(content: str | None = None, **completion_kwargs) -> MagicMock:
    llm = MagicMock()
    llm.available = True
    llm.default_model = "openai/gpt-4o-mini"
    llm.completion = AsyncMock(
        return_value={
            "content": content,
            "model": "gpt-4o-mini",
            "usage": {"prompt_tokens": 120, "completion_tokens": 80, "total_tokens": 200},
        },
        **completion_kwargs,
    )
    return llm


def _posts_document(count: int) -> str:
    return json.dumps(
        {
            "posts": [
                {
                    "platform": "linkedin",
                    "content": f"Draft number {i}",
                    "hashtags": ["#Planning"],
                    "reasoning": "Educational",
                }
                for i in range(count)
            ]
        }
    )


# ── Mock mode ────────────────────────────────────────────────────────────────


class TestMockMode:
    """No provider key, or force_mock: canned content."""

    async def test_posts_without_provider(self):
        service = ContentService(SimpleNamespace(available=False, default_model="m"), timeout=5)

        result, used_mock = await service.generate_social_posts(TRANSCRIPT)

        assert used_mock is True
        assert len(result.posts) == 3
        assert result.metadata.model == MOCK_MODEL
        assert result.metadata.tokens_used == 450

    async def test_max_posts_limits_mock_posts(self):
        service = ContentService(SimpleNamespace(available=False, default_model="m"), timeout=5)

        result, _ = await service.generate_social_posts(
            TRANSCRIPT, GenerationSettings(max_posts=1)
        )

        assert len(result.posts) == 1

    async def test_force_mock_skips_provider(self):
        llm = _llm(_posts_document(2))
        service = ContentService(llm, timeout=5, force_mock=True)

        _, used_mock = await service.generate_social_posts(TRANSCRIPT)

        assert used_mock is True
        llm.completion.assert_not_awaited()

    async def test_mock_email_addresses_attendees(self):
        service = ContentService(SimpleNamespace(available=False, default_model="m"), timeout=5)
        context = MeetingContext(title="Quarterly Review", attendees=["Ann", "Bo"])

        email, used_mock = await service.generate_follow_up_email(TRANSCRIPT, context)

        assert used_mock is True
        assert email.subject == "Follow-up: Quarterly Review"
        assert email.content.startswith("Dear Ann, Bo,")
        assert len(email.action_items) == 4


# ── Provider path ────────────────────────────────────────────────────────────


class TestProviderGeneration:
    async def test_posts_are_parsed_and_truncated(self):
        llm = _llm(_posts_document(5))
        service = ContentService(llm, timeout=5)

        result, used_mock = await service.generate_social_posts(
            TRANSCRIPT, GenerationSettings(max_posts=2)
        )

        assert used_mock is False
        assert [p.content for p in result.posts] == ["Draft number 0", "Draft number 1"]
        assert result.metadata.tokens_used == 200
        assert result.metadata.model == "gpt-4o-mini"

        kwargs = llm.completion.await_args.kwargs
        assert kwargs["json_mode"] is True
        assert kwargs["messages"][0]["role"] == "system"
        assert TRANSCRIPT in kwargs["messages"][1]["content"]

    async def test_rate_limit_falls_back_to_mock(self):
        llm = _llm(side_effect=RateLimitError("quota", "openai", "gpt-4o-mini"))
        service = ContentService(llm, timeout=5)

        result, used_mock = await service.generate_social_posts(TRANSCRIPT)

        assert used_mock is True
        assert result.metadata.model == MOCK_MODEL

    async def test_invalid_json_raises(self):
        service = ContentService(_llm("not json at all"), timeout=5)

        with pytest.raises(ContentGenerationError, match="invalid JSON"):
            await service.generate_social_posts(TRANSCRIPT)

    async def test_missing_posts_key_raises(self):
        service = ContentService(_llm(json.dumps({"drafts": []})), timeout=5)

        with pytest.raises(ContentGenerationError, match="Invalid response format"):
            await service.generate_social_posts(TRANSCRIPT)

    async def test_empty_response_raises(self):
        service = ContentService(_llm(None), timeout=5)

        with pytest.raises(ContentGenerationError, match="No content"):
            await service.generate_social_posts(TRANSCRIPT)

    async def test_other_provider_errors_propagate(self):
        service = ContentService(_llm(side_effect=RuntimeError("provider down")), timeout=5)

        with pytest.raises(RuntimeError, match="provider down"):
            await service.generate_social_posts(TRANSCRIPT)

    async def test_timeout_propagates(self):
        async def _slow(**kwargs):
            await asyncio.sleep(1)

        llm = _llm()
        llm.completion = AsyncMock(side_effect=_slow)
        service = ContentService(llm, timeout=0.01)

        with pytest.raises(asyncio.TimeoutError):
            await service.generate_social_posts(TRANSCRIPT)

    async def test_email_document(self):
        document = {
            "email": {
                "subject": "Next steps",
                "content": "Thanks for meeting.",
                "actionItems": ["Send forms"],
                "nextSteps": "Call next week",
            }
        }
        service = ContentService(_llm(json.dumps(document)), timeout=5)

        email, used_mock = await service.generate_follow_up_email(TRANSCRIPT)

        assert used_mock is False
        assert email.subject == "Next steps"
        assert email.action_items == ["Send forms"]

    async def test_email_without_email_object_raises(self):
        service = ContentService(_llm(json.dumps({"subject": "x"})), timeout=5)

        with pytest.raises(ContentGenerationError):
            await service.generate_follow_up_email(TRANSCRIPT)


def test_rate_limit_detection():
    assert is_rate_limit_error(RateLimitError("quota", "openai", "gpt-4o-mini")) is True
    assert is_rate_limit_error(RuntimeError("HTTP 429 Too Many Requests")) is True
    assert is_rate_limit_error(RuntimeError("boom")) is False


# ── Schemas & prompts ────────────────────────────────────────────────────────


class TestGeneratedPost:
    def test_from_draft_counts_words_and_characters(self):
        draft = DraftPost(content="Three word post", hashtags=["#A"])
        post = GeneratedPost.from_draft(draft, post_id="post-1-1")

        assert post.id == "post-1-1"
        assert post.word_count == 3
        assert post.character_count == len("Three word post")
        assert post.estimated_engagement == "High"

    def test_settings_accept_camel_case(self):
        settings = GenerationSettings.model_validate(
            {"tone": "casual", "includeHashtags": False, "maxPosts": 2}
        )
        assert settings.tone == ContentTone.CASUAL
        assert settings.include_hashtags is False
        assert settings.max_posts == 2


class TestPrompts:
    def test_post_prompt_includes_transcript_and_tone(self):
        prompt = build_post_prompt(
            TRANSCRIPT,
            SocialPlatform.LINKEDIN,
            ContentTone.PROFESSIONAL,
            ContentLength.SHORT,
            True,
            False,
        )
        assert TRANSCRIPT in prompt
        assert "Tone: Formal, authoritative, industry-focused" in prompt
        assert "Include Emojis: No" in prompt

    def test_email_prompt_names_attendees(self):
        prompt = build_email_prompt(TRANSCRIPT, ["Ann", "Bo"], "Quarterly Review")
        assert "Ann" in prompt
        assert "Quarterly Review" in prompt


def test_generate_mock_email_subject():
    assert generate_mock_email(["A"], "Kickoff").subject == "Follow-up: Kickoff"


# ── Template generator ───────────────────────────────────────────────────────


class TestTemplates:
    def test_hashtags_start_with_base_tags_and_dedupe(self):
        tags = build_hashtags(["retirement planning", "Financial Planning"])
        assert tags[: len(BASE_HASHTAGS)] == list(BASE_HASHTAGS)
        assert tags.count("FinancialPlanning") == 1
        assert "RetirementPlanning" in tags

    def test_linkedin_post_lists_topics_and_is_scored(self):
        post = generate_post(["portfolio review", "market outlook"])

        assert "• portfolio review" in post.content
        assert "does not constitute investment advice" in post.content
        assert "PortfolioReview" in post.hashtags
        # The template disclaimer does not contain the exact "not investment advice" phrase
        assert "Investment-related content requires disclaimer" in post.issues
        assert post.risk_score >= 25

    def test_other_platforms_get_raw_draft(self):
        post = generate_post(["budgeting"], platform="facebook", tone=ContentTone.CASUAL)

        assert post.content.startswith("Great discussion with a client about:")
        assert post.risk_score == 0
        assert post.issues == []

    def test_hashtags_can_be_disabled(self):
        assert generate_post(["budgeting"], include_hashtags=False).hashtags == []
