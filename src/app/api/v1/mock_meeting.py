"""Canned completed meeting for the demo dashboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.app.api.deps import get_optional_session
from src.app.core.errors import success_response
from src.app.core.security import UserSession
from src.app.meetings.mock import build_mock_meeting

router = APIRouter(tags=["meetings"])


@router.get("/mock-meeting")
async def mock_meeting(
    session: UserSession | None = Depends(get_optional_session),
) -> JSONResponse:
    """Public; the caller's email is filled in when a session is present."""
    meeting = build_mock_meeting(session.email) if session else build_mock_meeting()
    return success_response(meeting, usingMockData=True)
