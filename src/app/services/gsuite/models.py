"""Pydantic schemas for Google Calendar events and OAuth results."""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.app.core.schemas import CamelModel


class EventAttendee(CamelModel):
    """An event attendee as shown to the caller."""

    email: str
    name: str
    response_status: str | None = None
    is_organizer: bool = False


class CalendarEvent(CamelModel):
    """A calendar event normalized from the Google Calendar v3 format."""

    id: str
    title: str
    description: str = ""
    start_time: str
    end_time: str
    attendees: list[EventAttendee] = Field(default_factory=list)
    location: str = ""
    meeting_url: str = ""
    provider: str = "google"
    calendar_id: str = "primary"
    is_recurring: bool = False
    status: str | None = None
    visibility: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class CalendarInfo(CamelModel):
    """Entry from the user's calendar list."""

    id: str
    summary: str = ""
    primary: bool = False
    access_role: str | None = None
    time_zone: str | None = None


class GoogleTokens(BaseModel):
    """Result of a Google OAuth authorization-code exchange."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int = 3600
    scope: str = ""
    id_token: str | None = None


class GoogleProfile(BaseModel):
    """Subset of the OpenID userinfo document."""

    sub: str
    email: str
    name: str = ""
    picture: str | None = None
