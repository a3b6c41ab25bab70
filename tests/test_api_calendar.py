"""Tests for the calendar helpers and the /api/calendar endpoints.

Calendar v3 calls are replaced by AsyncMocks on GoogleCalendarService; the
googleapiclient discovery client is never built.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from googleapiclient.errors import HttpError

from src.app.api.deps import get_current_session
from src.app.config import Settings
from src.app.core.security import UserSession
from src.app.services.gsuite import (
    CalendarEvent,
    GoogleCalendarService,
    GoogleOAuthClient,
    GoogleProfile,
    GoogleTokens,
    event_from_google,
    extract_meeting_url,
    mock_calendar_events,
    parse_google_date,
)

GOOGLE_SESSION = UserSession(
    user_id="advisor@example.com",
    email="advisor@example.com",
    name="Advisor",
    google_access_token="g-token",
)


def _event(event_id: str = "evt-1") -> CalendarEvent:
    return CalendarEvent(
        id=event_id,
        title="Portfolio review",
        start_time="2026-03-01T10:00:00.000Z",
        end_time="2026-03-01T11:00:00.000Z",
    )


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def google_app(app):
    """The conftest app with a session that carries a Google access token."""
    app.dependency_overrides[get_current_session] = lambda: GOOGLE_SESSION
    return app


# ── Helpers ──────────────────────────────────────────────────────────────────


class TestExtractMeetingUrl:
    @pytest.mark.parametrize(
        "description, expected",
        [
            ("Join https://us02.zoom.us/j/123456?pwd=abc now", "https://us02.zoom.us/j/123456?pwd=abc"),
            ("Meet: https://meet.google.com/abc-defg-hij", "https://meet.google.com/abc-defg-hij"),
            ("https://teams.microsoft.com/l/meetup-join/xyz", "https://teams.microsoft.com/l/meetup-join/xyz"),
            ("Call https://acme.webex.com/meet/jo", "https://acme.webex.com/meet/jo"),
            ("No link here", ""),
            ("", ""),
        ],
    )
    def test_patterns(self, description, expected):
        assert extract_meeting_url(description) == expected

    def test_zoom_wins_over_meet(self):
        text = "https://meet.google.com/abc-defg-hij or https://zoom.us/j/42"
        assert extract_meeting_url(text) == "https://zoom.us/j/42"


class TestParseGoogleDate:
    def test_timed_event(self):
        assert parse_google_date({"dateTime": "2026-03-01T10:00:00-05:00"}) == "2026-03-01T15:00:00.000Z"

    def test_all_day_event(self):
        assert parse_google_date({"date": "2026-03-01"}) == "2026-03-01T00:00:00.000Z"

    @pytest.mark.parametrize("field", [None, {}, {"timeZone": "UTC"}])
    def test_missing_date_raises(self, field):
        with pytest.raises(ValueError, match="Invalid date format"):
            parse_google_date(field)


class TestEventFromGoogle:
    def test_normalizes_raw_event(self):
        event = event_from_google(
            {
                "id": "e1",
                "description": "Agenda",
                "start": {"dateTime": "2026-03-01T10:00:00Z"},
                "end": {"dateTime": "2026-03-01T11:00:00Z"},
                "attendees": [{"email": "ann@example.com"}, {"displayName": "Bo"}],
                "conferenceData": {
                    "entryPoints": [{"entryPointType": "video", "uri": "https://meet.google.com/x-y-z"}]
                },
                "recurringEventId": "r1",
            }
        )

        assert event.title == "Untitled Meeting"
        assert event.meeting_url == "https://meet.google.com/x-y-z"
        assert event.is_recurring is True
        assert event.attendees[0].name == "ann"
        assert event.attendees[1].name == "Bo"

    def test_mock_events_are_upcoming_and_have_links(self):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        events = [event_from_google(e) for e in mock_calendar_events(now)]

        assert [e.id for e in events] == ["event-1", "event-2", "event-3"]
        assert events[0].meeting_url == "https://zoom.us/j/123456789"
        assert events[0].start_time == "2026-03-02T00:00:00.000Z"
        assert all(e.meeting_url for e in events)


# ── Endpoints ────────────────────────────────────────────────────────────────


class TestEventsEndpoint:
    async def test_mock_events_without_google_token(self, client):
        response = await client.get("/api/calendar/events")

        body = response.json()
        assert response.status_code == 200
        assert body["metadata"]["usingMockData"] is True
        assert body["metadata"]["totalEvents"] == 3
        assert body["data"][0]["meetingUrl"].startswith("https://zoom.us/j/")

    async def test_public_demo_events(self, anon_client):
        response = await anon_client.get("/api/calendar/events-demo")
        assert response.json()["metadata"]["totalEvents"] == 3

    async def test_events_need_session(self, anon_client):
        response = await anon_client.get("/api/calendar/events")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_real_events_with_google_token(self, google_app, client):
        with patch.object(
            GoogleCalendarService,
            "list_upcoming_events",
            AsyncMock(return_value=[_event()]),
        ) as list_events:
            response = await client.get("/api/calendar/events", params={"maxResults": 5})

        body = response.json()
        assert body["metadata"]["usingMockData"] is False
        assert body["data"][0]["id"] == "evt-1"
        assert list_events.await_args.kwargs["max_results"] == 5

    async def test_google_error_becomes_upstream_error(self, google_app, client):
        error = HttpError(SimpleNamespace(status=500, reason="Backend Error"), b"{}")
        with patch.object(
            GoogleCalendarService, "list_upcoming_events", AsyncMock(side_effect=error)
        ):
            response = await client.get("/api/calendar/events")

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "UPSTREAM_ERROR"
        assert response.json()["error"]["message"] == "Google Calendar request failed"


class TestEventMutations:
    async def test_create_requires_google_token(self, client):
        response = await client.post(
            "/api/calendar/events",
            json={
                "title": "Review",
                "startTime": "2026-03-01T10:00:00Z",
                "endTime": "2026-03-01T11:00:00Z",
            },
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "GOOGLE_TOKEN_MISSING"

    async def test_create_rejects_inverted_range(self, google_app, client):
        response = await client.post(
            "/api/calendar/events",
            json={
                "title": "Review",
                "startTime": "2026-03-01T11:00:00Z",
                "endTime": "2026-03-01T10:00:00Z",
            },
        )
        assert response.json()["error"]["code"] == "INVALID_TIME_RANGE"

    async def test_create(self, google_app, client):
        with patch.object(
            GoogleCalendarService, "create_event", AsyncMock(return_value=_event("new"))
        ) as create:
            response = await client.post(
                "/api/calendar/events",
                json={
                    "title": "Review",
                    "startTime": "2026-03-01T10:00:00Z",
                    "endTime": "2026-03-01T11:00:00Z",
                    "attendees": ["ann@example.com"],
                },
            )

        assert response.status_code == 201
        assert response.json()["data"]["id"] == "new"
        assert create.await_args.kwargs["attendees"] == ["ann@example.com"]

    async def test_update_sends_only_present_fields(self, google_app, client):
        with patch.object(
            GoogleCalendarService, "update_event", AsyncMock(return_value=_event())
        ) as update:
            await client.patch("/api/calendar/events/evt-1", json={"title": "Renamed"})

        assert update.await_args.args == ("evt-1", {"title": "Renamed"})

    async def test_delete(self, google_app, client):
        with patch.object(GoogleCalendarService, "delete_event", AsyncMock(return_value=None)):
            response = await client.delete("/api/calendar/events/evt-1")

        assert response.json()["data"] == {"eventId": "evt-1", "deleted": True}

    async def test_missing_event_is_404(self, google_app, client):
        error = HttpError(SimpleNamespace(status=404, reason="Not Found"), b"{}")
        with patch.object(GoogleCalendarService, "delete_event", AsyncMock(side_effect=error)):
            response = await client.delete("/api/calendar/events/missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestCalendarOAuth:
    async def test_status(self, google_app, client):
        response = await client.get("/api/calendar/oauth")

        assert response.json()["data"] == {
            "connected": True,
            "hasStoredToken": False,
            "hasSessionToken": True,
        }

    async def test_status_with_stored_token(self, app, client):
        await app.state.social_tokens.store_token(
            "advisor@example.com", "google_calendar", "g-token", 3600
        )

        response = await client.get("/api/calendar/oauth", params={"action": "status"})

        assert response.json()["data"]["hasStoredToken"] is True
        assert response.json()["data"]["connected"] is True

    async def test_connect(self, client, store):
        settings = Settings(GOOGLE_CLIENT_ID="g-id", GOOGLE_CLIENT_SECRET="g-secret")
        with patch("src.app.api.v1.calendar.get_settings", return_value=settings):
            response = await client.get("/api/calendar/oauth", params={"action": "connect"})

        data = response.json()["data"]
        assert data["authUrl"].startswith("https://accounts.google.com/")
        assert f"state={data['state']}" in data["authUrl"]
        assert "advisor%40example.com" not in data["authUrl"]
        assert await store.get_json(f"oauth-state:{data['state']}") == {
            "provider": "google",
            "email": "advisor@example.com",
        }

    async def test_connect_state_is_accepted_by_google_callback(self, client):
        settings = Settings(GOOGLE_CLIENT_ID="g-id", GOOGLE_CLIENT_SECRET="g-secret")
        with patch("src.app.api.v1.calendar.get_settings", return_value=settings):
            connect = await client.get("/api/calendar/oauth", params={"action": "connect"})
        state = connect.json()["data"]["state"]

        tokens = GoogleTokens(access_token="g-access", refresh_token="g-refresh", expires_in=3600)
        profile = GoogleProfile(sub="1", email="advisor@example.com", name="Advisor")
        with (
            patch.object(GoogleOAuthClient, "exchange_code", AsyncMock(return_value=tokens)),
            patch.object(GoogleOAuthClient, "get_profile", AsyncMock(return_value=profile)),
        ):
            callback = await client.get(
                "/api/auth/google/callback", params={"code": "c1", "state": state}
            )

        assert callback.status_code == 200
        assert callback.json()["data"]["user"]["email"] == "advisor@example.com"
        status = await client.get("/api/calendar/oauth", params={"action": "status"})
        assert status.json()["data"]["hasStoredToken"] is True

    async def test_connect_not_configured(self, client):
        with patch("src.app.api.v1.calendar.get_settings", return_value=Settings(GOOGLE_CLIENT_ID="")):
            response = await client.get("/api/calendar/oauth", params={"action": "connect"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "GOOGLE_NOT_CONFIGURED"

    async def test_invalid_action(self, client):
        response = await client.get("/api/calendar/oauth", params={"action": "sync"})
        assert response.json()["error"]["code"] == "INVALID_ACTION"

    async def test_store_token(self, app, client):
        response = await client.post(
            "/api/calendar/oauth",
            json={
                "action": "store_token",
                "accessToken": "g-stored",
                "refreshToken": "g-refresh",
                "expiresIn": 3600,
                "scope": ["calendar.readonly"],
            },
        )

        assert response.json()["data"] == {
            "stored": True,
            "platform": "GOOGLE_CALENDAR",
            "userId": "advisor@example.com",
        }
        social_tokens = app.state.social_tokens
        assert await social_tokens.get_token("advisor@example.com", "google_calendar") == "g-stored"
        assert await social_tokens.has_valid_token("advisor@example.com", "google_calendar") is True

    async def test_store_token_unknown_action(self, client):
        response = await client.post(
            "/api/calendar/oauth", json={"action": "revoke", "accessToken": "g-stored"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ACTION"

    async def test_store_token_requires_access_token(self, client):
        response = await client.post("/api/calendar/oauth", json={"action": "store_token"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_ACCESS_TOKEN"
