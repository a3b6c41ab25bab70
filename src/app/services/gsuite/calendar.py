"""Google Calendar service acting on behalf of the signed-in user.

Wraps the Calendar API v3 (googleapiclient) with the user's OAuth access
token. Google API calls are blocking, so every call is wrapped in
asyncio.to_thread().

Also holds the pure helpers for turning raw Google events into CalendarEvent
records (meeting-link extraction, date parsing) and the canned events served
in mock mode.
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timedelta
from typing import Any

import structlog
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from src.app.core.dates import parse_to_iso, to_iso, utcnow
from src.app.services.gsuite.models import CalendarEvent, CalendarInfo, EventAttendee

logger = structlog.get_logger(__name__)

CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

# Order matters: the first pattern with a match wins.
_MEETING_URL_PATTERNS = [
    re.compile(r"https://(?:us\d+\.)?zoom\.us/j/\d+(?:\?[^\s]*)?", re.IGNORECASE),
    re.compile(r"https://meet\.google\.com/[a-z-]+", re.IGNORECASE),
    re.compile(r"https://teams\.microsoft\.com/[^\s]*", re.IGNORECASE),
    re.compile(r"https://[^\s]*\.webex\.com/[^\s]*", re.IGNORECASE),
]


# ── Pure helpers ────────────────────────────────────────────────────────────


def extract_meeting_url(description: str) -> str:
    """Return the first Zoom/Meet/Teams/Webex link in ``description``, or ""."""
    for pattern in _MEETING_URL_PATTERNS:
        match = pattern.search(description or "")
        if match:
            return match.group(0)
    return ""


def parse_google_date(field: dict | None) -> str:
    """Read a Google ``start``/``end`` object as an ISO string.

    Timed events carry ``dateTime``; all-day events carry ``date``.

    Raises:
        ValueError: If neither is present.
    """
    if field:
        if field.get("dateTime"):
            return parse_to_iso(field["dateTime"])
        if field.get("date"):
            return parse_to_iso(field["date"])
    raise ValueError("Invalid date format from Google Calendar")


def event_from_google(event: dict, calendar_id: str = "primary") -> CalendarEvent:
    """Normalize a raw Calendar v3 event."""
    attendees = [
        EventAttendee(
            email=a.get("email", ""),
            name=a.get("displayName") or (a["email"].split("@")[0] if a.get("email") else "Unknown"),
            response_status=a.get("responseStatus"),
            is_organizer=bool(a.get("organizer", False)),
        )
        for a in event.get("attendees", [])
    ]
    description = event.get("description") or ""
    return CalendarEvent(
        id=event["id"],
        title=event.get("summary") or "Untitled Meeting",
        description=description,
        start_time=parse_google_date(event.get("start")),
        end_time=parse_google_date(event.get("end")),
        attendees=attendees,
        location=event.get("location") or "",
        meeting_url=extract_meeting_url(description) or _conference_url(event),
        calendar_id=(event.get("organizer") or {}).get("email") or calendar_id,
        is_recurring=bool(event.get("recurringEventId")),
        status=event.get("status"),
        visibility=event.get("visibility"),
        created_at=event.get("created"),
        updated_at=event.get("updated"),
    )


def _conference_url(event: dict) -> str:
    """Video entry point from conferenceData (Meet links added by Calendar)."""
    for ep in (event.get("conferenceData") or {}).get("entryPoints", []):
        if ep.get("entryPointType") == "video":
            return ep.get("uri", "")
    return ""


def _time_body(value: datetime) -> dict:
    return {"dateTime": to_iso(value), "timeZone": "UTC"}


# ── Mock data ───────────────────────────────────────────────────────────────


def mock_calendar_events(now: datetime | None = None) -> list[dict]:
    """Three upcoming advisor meetings in raw Google format, relative to ``now``."""
    now = now or utcnow()
    advisor = {
        "email": "advisor@example.com",
        "displayName": "Financial Advisor",
        "responseStatus": "accepted",
        "organizer": True,
    }

    def _event(idx: int, summary: str, description: str, days: int, minutes: int,
               guest: dict, location: str) -> dict:
        start = now + timedelta(days=days)
        return {
            "id": f"event-{idx}",
            "summary": summary,
            "description": description,
            "start": {"dateTime": to_iso(start), "timeZone": "America/New_York"},
            "end": {"dateTime": to_iso(start + timedelta(minutes=minutes)), "timeZone": "America/New_York"},
            "attendees": [advisor, {**guest, "responseStatus": "accepted"}],
            "location": location,
            "status": "confirmed",
        }

    return [
        _event(
            1,
            "Client Portfolio Review - John Smith",
            "Quarterly portfolio review and investment strategy discussion. "
            "Zoom link: https://zoom.us/j/123456789",
            1, 60,
            {"email": "john.smith@example.com", "displayName": "John Smith"},
            "Zoom Meeting",
        ),
        _event(
            2,
            "Investment Strategy Meeting - Sarah Johnson",
            "Discussing retirement planning and 401k optimization. "
            "Teams link: https://teams.microsoft.com/l/meetup-join/123456789",
            2, 45,
            {"email": "sarah.johnson@example.com", "displayName": "Sarah Johnson"},
            "Microsoft Teams",
        ),
        _event(
            3,
            "Market Update Call - Team Meeting",
            "Weekly market analysis and client communication strategy. "
            "Google Meet: https://meet.google.com/abc-defg-hij",
            3, 30,
            {"email": "team@example.com", "displayName": "Team Members"},
            "Google Meet",
        ),
    ]


# ── Service ─────────────────────────────────────────────────────────────────


class GoogleCalendarService:
    """Google Calendar API v3 client for one user's access token.

    Args:
        access_token: OAuth access token obtained at Google sign-in.
    """

    def __init__(self, access_token: str) -> None:
        self._credentials = Credentials(token=access_token, scopes=CALENDAR_SCOPES)
        self._service: Any = None

    def get_calendar_service(self) -> Any:
        """Build (once) and return the Calendar API Resource object."""
        if self._service is None:
            self._service = build(
                "calendar", "v3", credentials=self._credentials, cache_discovery=False
            )
        return self._service

    async def list_upcoming_events(
        self,
        max_results: int = 20,
        time_min: datetime | None = None,
        time_max: datetime | None = None,
        calendar_id: str = "primary",
    ) -> list[CalendarEvent]:
        """Fetch upcoming single events ordered by start time.

        Args:
            max_results: Maximum events to return.
            time_min: Start of window (defaults to now).
            time_max: Optional end of window.
            calendar_id: Calendar to query.

        Returns:
            Normalized CalendarEvent list.
        """
        params: dict[str, Any] = {
            "calendarId": calendar_id,
            "timeMin": to_iso(time_min or utcnow()),
            "maxResults": max_results,
            "singleEvents": True,
            "orderBy": "startTime",
        }
        if time_max:
            params["timeMax"] = to_iso(time_max)

        def _list() -> dict:
            return self.get_calendar_service().events().list(**params).execute()

        result = await asyncio.to_thread(_list)
        items = result.get("items", [])
        logger.info("calendar.events_listed", count=len(items), calendar_id=calendar_id)
        return [event_from_google(e, calendar_id) for e in items]

    async def create_event(
        self,
        title: str,
        start_time: datetime,
        end_time: datetime,
        description: str = "",
        attendees: list[str] | None = None,
        location: str = "",
        calendar_id: str = "primary",
    ) -> CalendarEvent:
        """Insert an event with UTC start/end times."""
        body = {
            "summary": title,
            "description": description,
            "start": _time_body(start_time),
            "end": _time_body(end_time),
            "attendees": [{"email": email} for email in attendees or []],
            "location": location,
        }

        def _insert() -> dict:
            return self.get_calendar_service().events().insert(
                calendarId=calendar_id, body=body
            ).execute()

        event = await asyncio.to_thread(_insert)
        logger.info("calendar.event_created", event_id=event.get("id"))
        return event_from_google(event, calendar_id)

    async def update_event(
        self,
        event_id: str,
        updates: dict[str, Any],
        calendar_id: str = "primary",
    ) -> CalendarEvent:
        """Patch only the fields present in ``updates``.

        Recognised keys: title, description, location, start_time, end_time,
        attendees (list of emails).
        """
        body: dict[str, Any] = {}
        if updates.get("title") is not None:
            body["summary"] = updates["title"]
        if updates.get("description") is not None:
            body["description"] = updates["description"]
        if updates.get("location") is not None:
            body["location"] = updates["location"]
        if updates.get("start_time"):
            body["start"] = _time_body(updates["start_time"])
        if updates.get("end_time"):
            body["end"] = _time_body(updates["end_time"])
        if updates.get("attendees") is not None:
            body["attendees"] = [{"email": email} for email in updates["attendees"]]

        def _patch() -> dict:
            return self.get_calendar_service().events().patch(
                calendarId=calendar_id, eventId=event_id, body=body
            ).execute()

        event = await asyncio.to_thread(_patch)
        logger.info("calendar.event_updated", event_id=event_id, fields=sorted(body))
        return event_from_google(event, calendar_id)

    async def delete_event(self, event_id: str, calendar_id: str = "primary") -> None:
        def _delete() -> None:
            self.get_calendar_service().events().delete(
                calendarId=calendar_id, eventId=event_id
            ).execute()

        await asyncio.to_thread(_delete)
        logger.info("calendar.event_deleted", event_id=event_id)

    async def list_calendars(self) -> list[CalendarInfo]:
        def _list() -> dict:
            return self.get_calendar_service().calendarList().list().execute()

        result = await asyncio.to_thread(_list)
        return [
            CalendarInfo(
                id=c["id"],
                summary=c.get("summary", ""),
                primary=bool(c.get("primary", False)),
                access_role=c.get("accessRole"),
                time_zone=c.get("timeZone"),
            )
            for c in result.get("items", [])
        ]

    async def validate_access(self) -> bool:
        """True if the token can read the calendar list."""
        try:
            await self.list_calendars()
        except Exception as exc:
            logger.warning("calendar.access_invalid", error=str(exc))
            return False
        return True
