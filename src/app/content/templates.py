"""Template-based post drafts built from meeting topics, no LLM involved."""

from __future__ import annotations

from src.app.compliance.checks import score_content_risk
from src.app.content.schemas import (
    ContentTone,
    DraftPost,
    GeneratedPosts,
    GenerationMetadata,
    GenerationSettings,
    SocialPlatform,
    TemplatePost,
)
from src.app.core.text import to_pascal_case
from src.app.social.linkedin import optimize_content_for_linkedin

BASE_HASHTAGS = ("FinancialPlanning", "WealthManagement", "FinancialAdvisor")

TEMPLATE_MODEL = "template"

DISCLAIMER = (
    "Note: This post is for informational purposes only and does not constitute "
    "investment advice."
)


def build_hashtags(topics: list[str]) -> list[str]:
    """Base tags followed by PascalCase topics, first occurrence wins."""
    return list(dict.fromkeys([*BASE_HASHTAGS, *(to_pascal_case(t) for t in topics)]))


def build_content(topics: list[str], tone: ContentTone | str) -> str:
    intro = (
        "Just wrapped up an insightful client meeting discussing:"
        if tone == ContentTone.PROFESSIONAL
        else "Great discussion with a client about:"
    )
    points = "\n".join(f"• {t}" for t in topics)
    return f"{intro}\n\n{points}\n\n{DISCLAIMER}"


def generate_post(
    meeting_topics: list[str],
    platform: SocialPlatform | str = SocialPlatform.LINKEDIN,
    tone: ContentTone | str = ContentTone.PROFESSIONAL,
    include_hashtags: bool = True,
) -> TemplatePost:
    """Draft a post listing the topics discussed.

    LinkedIn drafts are optimised for the platform and carry the publishing
    risk score; other platforms get the raw draft with a zero score.
    """
    content = build_content(meeting_topics, tone)
    hashtags = build_hashtags(meeting_topics) if include_hashtags else []

    if platform != SocialPlatform.LINKEDIN:
        return TemplatePost(content=content, hashtags=hashtags)

    risk = score_content_risk(content)
    optimized = optimize_content_for_linkedin(content, hashtags)
    return TemplatePost(
        content=optimized.optimized_text,
        hashtags=optimized.hashtags,
        risk_score=risk.risk_score,
        issues=risk.issues,
    )


def generate_template_posts(topics: list[str], settings: GenerationSettings) -> GeneratedPosts:
    """One template draft per requested platform, up to ``max_posts``."""
    drafts = []
    for platform in settings.platforms[: settings.max_posts]:
        post = generate_post(topics, platform, settings.tone, settings.include_hashtags)
        reasoning = f"Template draft from {len(topics)} meeting topics"
        if post.issues:
            reasoning += f"; risk score {post.risk_score}: {'; '.join(post.issues)}"
        drafts.append(
            DraftPost(
                platform=platform,
                content=post.content,
                hashtags=post.hashtags,
                reasoning=reasoning,
            )
        )
    return GeneratedPosts(posts=drafts, metadata=GenerationMetadata(model=TEMPLATE_MODEL))
