"""Schemas for per-user automation and social-connection preferences."""

from __future__ import annotations

from pydantic import Field

from src.app.core.schemas import CamelModel

AUTOMATION_PLATFORMS = ("linkedin", "facebook")
AUTOMATION_TONES = ("Professional", "Casual", "Educational", "Promotional")
AUTOMATION_FREQUENCIES = ("Every meeting", "Daily", "Weekly", "Manual only")


class AutomationSetting(CamelModel):
    """How drafts are produced for one platform."""

    tone: str
    frequency: str
    auto_generate: bool = False
    updated_at: str | None = None


class SocialConnection(CamelModel):
    """Connection state of one social platform for a user."""

    platform: str
    connected: bool = False
    username: str | None = None
    last_sync: str | None = None
    access_token: str | None = Field(None, exclude=True)
    refresh_token: str | None = Field(None, exclude=True)


def default_social_connections() -> list[SocialConnection]:
    return [SocialConnection(platform=p) for p in AUTOMATION_PLATFORMS]
