"""Google integration services for sign-in and Calendar.

Provides the OAuth code-exchange client and an async-wrapped Calendar v3
service acting with the signed-in user's access token.
"""

from src.app.services.gsuite.calendar import (
    GoogleCalendarService,
    event_from_google,
    extract_meeting_url,
    mock_calendar_events,
    parse_google_date,
)
from src.app.services.gsuite.models import CalendarEvent, GoogleProfile, GoogleTokens
from src.app.services.gsuite.oauth import GoogleOAuthClient, issue_oauth_state, state_key

__all__ = [
    "CalendarEvent",
    "GoogleCalendarService",
    "GoogleOAuthClient",
    "GoogleProfile",
    "GoogleTokens",
    "event_from_google",
    "extract_meeting_url",
    "issue_oauth_state",
    "mock_calendar_events",
    "parse_google_date",
    "state_key",
]
