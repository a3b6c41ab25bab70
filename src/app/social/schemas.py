"""Pydantic v2 schemas for LinkedIn and generic social tokens."""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.app.core.dates import epoch_ms
from src.app.core.schemas import CamelModel


class LinkedInProfile(CamelModel):
    id: str
    name: str = "LinkedIn User"
    email: str | None = None


class LinkedInToken(CamelModel):
    """A stored LinkedIn grant, keyed by the session email."""

    access_token: str = Field(exclude=True)
    refresh_token: str = Field(default="", exclude=True)
    expires_at: int  # epoch milliseconds
    profile: LinkedInProfile

    @property
    def is_valid(self) -> bool:
        return self.expires_at > epoch_ms()


class LinkedInTokenGrant(BaseModel):
    """Token endpoint response."""

    access_token: str
    expires_in: int
    refresh_token: str | None = None
    scope: str = ""


class PublishedPost(CamelModel):
    post_id: str
    post_url: str
    published_at: str


class PostEngagement(CamelModel):
    likes: int = 0
    comments: int = 0
    shares: int = 0
    clicks: int = 0
    saves: int = 0


class OptimizedContent(CamelModel):
    optimized_text: str
    hashtags: list[str] = Field(default_factory=list)
    character_count: int
    warnings: list[str] = Field(default_factory=list)


class LinkedInErrorInfo(CamelModel):
    should_retry: bool
    retry_after_ms: int
    error_type: str


class SocialToken(BaseModel):
    """Generic per-user, per-platform token record."""

    access_token: str
    refresh_token: str | None = None
    expires_at: int  # epoch milliseconds
    scope: list[str] = Field(default_factory=list)
    platform_details: dict = Field(default_factory=dict)


# ── Requests ────────────────────────────────────────────────────────────────


class SocialPostRequest(CamelModel):
    platform: str | None = None
    content: str | None = None
    hashtags: list[str] = Field(default_factory=list)
    link_url: str | None = None
    image_url: str | None = None


class LinkedInActionRequest(CamelModel):
    action: str | None = None
    content: str = ""
    hashtags: list[str] = Field(default_factory=list)
    link_url: str | None = None
    meeting_id: str | None = None


class StoreTokenRequest(CamelModel):
    access_token: str | None = None
    expires_in: int = 5_184_000  # 60 days
    profile: LinkedInProfile | None = None
