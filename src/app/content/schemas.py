"""Pydantic v2 schemas for generated content and the approval queue."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from src.app.core.schemas import CamelModel


class SocialPlatform(str, Enum):
    LINKEDIN = "linkedin"
    FACEBOOK = "facebook"
    TWITTER = "twitter"
    INSTAGRAM = "instagram"


class ContentTone(str, Enum):
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    ENTHUSIASTIC = "enthusiastic"
    INFORMATIVE = "informative"


class ContentLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class ApprovalStatus(str, Enum):
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    PENDING_CHANGES = "pending_changes"


class GenerationMode(str, Enum):
    AI = "ai"
    TEMPLATE = "template"


# ── Requests ────────────────────────────────────────────────────────────────


class MeetingContext(CamelModel):
    title: str = "Meeting Discussion"
    attendees: list[str] = Field(default_factory=lambda: ["Meeting Participants"])
    duration: int = 30
    platform: str = "zoom"
    topics: list[str] = Field(default_factory=list)


class GenerationSettings(CamelModel):
    """Per-request knobs for post generation."""

    tone: ContentTone = ContentTone.PROFESSIONAL
    length: ContentLength = ContentLength.MEDIUM
    include_hashtags: bool = True
    include_emojis: bool = True
    platforms: list[SocialPlatform] = Field(
        default_factory=lambda: [
            SocialPlatform.LINKEDIN,
            SocialPlatform.TWITTER,
            SocialPlatform.INSTAGRAM,
        ]
    )
    max_posts: int = Field(default=3, ge=1, le=10)


class GeneratePostsRequest(CamelModel):
    transcript: str | None = None
    meeting_context: MeetingContext | None = None
    automation_settings: GenerationSettings | None = None
    mode: GenerationMode = GenerationMode.AI


class GenerateEmailRequest(CamelModel):
    transcript: str | None = None
    meeting_context: MeetingContext | None = None
    email_settings: dict | None = None


# ── Results ─────────────────────────────────────────────────────────────────


class DraftPost(CamelModel):
    """A post as returned by the model, before enrichment."""

    platform: SocialPlatform = SocialPlatform.LINKEDIN
    content: str
    hashtags: list[str] = Field(default_factory=list)
    reasoning: str = ""


class GenerationMetadata(CamelModel):
    tokens_used: int = 0
    processing_time_ms: int = 0
    model: str


class GeneratedPosts(CamelModel):
    posts: list[DraftPost]
    metadata: GenerationMetadata


class GeneratedPost(CamelModel):
    """A post enriched with counts and posting guidance for the API."""

    id: str | None = None
    platform: SocialPlatform
    content: str
    hashtags: list[str] = Field(default_factory=list)
    reasoning: str = ""
    word_count: int
    character_count: int
    estimated_engagement: str = "High"
    best_time_to_post: str = "Tuesday-Thursday, 8-10 AM or 1-3 PM"

    @classmethod
    def from_draft(cls, draft: DraftPost, post_id: str | None = None) -> GeneratedPost:
        return cls(
            id=post_id,
            platform=draft.platform,
            content=draft.content,
            hashtags=draft.hashtags,
            reasoning=draft.reasoning,
            word_count=len(draft.content.split(" ")),
            character_count=len(draft.content),
        )


class FollowUpEmail(CamelModel):
    subject: str
    content: str
    action_items: list[str] = Field(default_factory=list)
    next_steps: str = ""


class TemplatePost(CamelModel):
    """Result of the template generator, with LinkedIn risk data when relevant."""

    content: str
    hashtags: list[str] = Field(default_factory=list)
    risk_score: int = 0
    issues: list[str] = Field(default_factory=list)


# ── Approval ────────────────────────────────────────────────────────────────


class ApprovalItem(CamelModel):
    id: str
    content: str
    platform: str
    status: ApprovalStatus = ApprovalStatus.PENDING_APPROVAL
    created_at: str
    approved_at: str | None = None
    approved_by: str | None = None
    changes: str | None = None
    reason: str | None = None


class ApprovalRequest(CamelModel):
    action: str
    content_id: str | None = None
    changes: str | None = None
    reason: str | None = None


class ValidateContentRequest(CamelModel):
    content: str
    advisor_id: str | None = None
    meeting_id: str | None = None
