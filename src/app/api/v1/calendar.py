"""Google Calendar endpoints.

Events are read with the Google access token carried in the caller's
session. Without one (or with MOCK_MODE on) the three mock advisor meetings
are returned so the dashboard always has something to show.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from googleapiclient.errors import HttpError
from pydantic import Field

from src.app.api.deps import get_kv_store, require_session
from src.app.config import get_settings
from src.app.core.errors import AppError, UpstreamError, success_response
from src.app.core.schemas import CamelModel, to_json
from src.app.core.security import UserSession
from src.app.core.store import KeyValueStore
from src.app.services.gsuite import (
    GoogleCalendarService,
    GoogleOAuthClient,
    event_from_google,
    issue_oauth_state,
    mock_calendar_events,
)
from src.app.social.tokens import SocialTokenService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/calendar", tags=["calendar"])

GOOGLE_CALENDAR_PLATFORM = "google_calendar"


# ── Request Schemas ──────────────────────────────────────────────────────────


class CreateEventRequest(CamelModel):
    title: str
    start_time: datetime
    end_time: datetime
    description: str = ""
    attendees: list[str] = Field(default_factory=list)
    location: str = ""


class UpdateEventRequest(CamelModel):
    title: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    description: str | None = None
    attendees: list[str] | None = None
    location: str | None = None


class CalendarTokenRequest(CamelModel):
    action: str
    access_token: str = ""
    refresh_token: str | None = None
    expires_in: int = Field(3600, ge=0)
    scope: list[str] = Field(default_factory=list)


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_social_tokens(request: Request) -> SocialTokenService:
    """Retrieve SocialTokenService from app.state, 503 if not available."""
    tokens = getattr(request.app.state, "social_tokens", None)
    if tokens is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Social token service not initialized",
        )
    return tokens


def _get_google_oauth(request: Request) -> GoogleOAuthClient:
    """Retrieve GoogleOAuthClient from app.state, 503 if not available."""
    client = getattr(request.app.state, "google_oauth", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google OAuth client not initialized",
        )
    return client


def _calendar_for(session: UserSession) -> GoogleCalendarService:
    if not session.google_access_token:
        raise AppError(
            status.HTTP_400_BAD_REQUEST,
            "Google Calendar access token not found. Please sign in with Google again.",
            "GOOGLE_TOKEN_MISSING",
        )
    return GoogleCalendarService(session.google_access_token)


async def _google_call(coro: Any) -> Any:
    """Await a Calendar API call, converting HttpError to UpstreamError."""
    try:
        return await coro
    except HttpError as exc:
        raise UpstreamError("Google Calendar", str(exc), exc.resp.status) from exc


# ── Events ───────────────────────────────────────────────────────────────────


@router.get("/events")
async def list_events(
    max_results: int = Query(20, alias="maxResults", ge=1, le=250),
    time_min: datetime | None = Query(None, alias="timeMin"),
    time_max: datetime | None = Query(None, alias="timeMax"),
    session: UserSession = require_session,
) -> JSONResponse:
    """Upcoming events from the caller's primary calendar, or mock events."""
    if session.google_access_token and not get_settings().MOCK_MODE:
        service = GoogleCalendarService(session.google_access_token)
        events = await _google_call(
            service.list_upcoming_events(
                max_results=max_results, time_min=time_min, time_max=time_max
            )
        )
        using_mock = False
    else:
        events = [event_from_google(e) for e in mock_calendar_events()]
        using_mock = True

    logger.info(
        "calendar.events_served",
        user_id=session.user_id,
        count=len(events),
        mock=using_mock,
    )
    return success_response(
        to_json(events),
        totalEvents=len(events),
        usingMockData=using_mock,
    )


@router.get("/events-demo")
async def list_demo_events() -> JSONResponse:
    """Mock events without a session, for the public demo page."""
    events = [event_from_google(e) for e in mock_calendar_events()]
    return success_response(to_json(events), totalEvents=len(events), usingMockData=True)


@router.post("/events", status_code=status.HTTP_201_CREATED)
async def create_event(
    body: CreateEventRequest,
    session: UserSession = require_session,
) -> JSONResponse:
    if body.end_time <= body.start_time:
        raise AppError(
            status.HTTP_400_BAD_REQUEST, "End time must be after start time", "INVALID_TIME_RANGE"
        )
    event = await _google_call(
        _calendar_for(session).create_event(
            title=body.title,
            start_time=body.start_time,
            end_time=body.end_time,
            description=body.description,
            attendees=body.attendees,
            location=body.location,
        )
    )
    return success_response(to_json(event), status_code=status.HTTP_201_CREATED)


@router.patch("/events/{event_id}")
async def update_event(
    event_id: str,
    body: UpdateEventRequest,
    session: UserSession = require_session,
) -> JSONResponse:
    """Patch only the fields present in the request."""
    service = _calendar_for(session)
    event = await _google_call(
        service.update_event(event_id, body.model_dump(exclude_none=True))
    )
    return success_response(to_json(event))


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    session: UserSession = require_session,
) -> JSONResponse:
    await _google_call(_calendar_for(session).delete_event(event_id))
    return success_response({"eventId": event_id, "deleted": True})


@router.get("/calendars")
async def list_calendars(session: UserSession = require_session) -> JSONResponse:
    calendars = await _google_call(_calendar_for(session).list_calendars())
    return success_response(to_json(calendars), totalCalendars=len(calendars))


# ── OAuth ────────────────────────────────────────────────────────────────────


@router.get("/oauth")
async def calendar_oauth(
    request: Request,
    action: str = "status",
    session: UserSession = require_session,
    store: KeyValueStore = Depends(get_kv_store),
) -> JSONResponse:
    """Calendar connection status, or a consent URL to (re)connect.

    The consent URL carries a one-time state that /auth/google/callback
    accepts, the same as a regular Google sign-in.

    Raises:
        AppError(400): Unknown ``action``.
    """
    if action == "status":
        tokens = _get_social_tokens(request)
        stored = await tokens.has_valid_token(session.user_id, GOOGLE_CALENDAR_PLATFORM)
        return success_response(
            {
                "connected": stored or bool(session.google_access_token),
                "hasStoredToken": stored,
                "hasSessionToken": bool(session.google_access_token),
            }
        )

    if action == "connect":
        if not get_settings().google_configured:
            raise AppError(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Google OAuth not configured",
                "GOOGLE_NOT_CONFIGURED",
            )
        state = await issue_oauth_state(store, email=session.email)
        auth_url = _get_google_oauth(request).build_auth_url(state=state)
        return success_response({"authUrl": auth_url, "state": state})

    raise AppError(
        status.HTTP_400_BAD_REQUEST,
        "Invalid action. Supported actions: status, connect",
        "INVALID_ACTION",
    )


@router.post("/oauth")
async def calendar_oauth_action(
    body: CalendarTokenRequest,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Store a Google Calendar token obtained by the web app.

    Raises:
        AppError(400): Unknown ``action`` or no ``accessToken``.
    """
    if body.action != "store_token":
        raise AppError(
            status.HTTP_400_BAD_REQUEST, f"Unknown action: {body.action}", "INVALID_ACTION"
        )
    if not body.access_token:
        raise AppError(status.HTTP_400_BAD_REQUEST, "Access token is required", "MISSING_ACCESS_TOKEN")

    await _get_social_tokens(request).store_token(
        session.user_id,
        GOOGLE_CALENDAR_PLATFORM,
        body.access_token,
        expires_in=body.expires_in,
        refresh_token=body.refresh_token,
        scope=body.scope,
        platform_details={"provider": "google", "service": "calendar"},
    )
    return success_response(
        {"stored": True, "platform": "GOOGLE_CALENDAR", "userId": session.user_id}
    )
