"""REST endpoints for Recall.ai meeting bots.

Covers the low-level bot lifecycle (schedule, status, transcript, cancel,
list) and per-user scheduling against calendar events, which applies the
caller's BotSettings and concurrency limit.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import Field

from src.app.api.deps import require_session
from src.app.core.dates import now_iso
from src.app.core.errors import AppError, success_response
from src.app.core.schemas import CamelModel, to_json
from src.app.core.security import UserSession
from src.app.meetings.bot.manager import BotManager

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/recall/bots", tags=["recall"])

BOT_ACTIONS = ("schedule", "cancel", "status", "transcript")

# camelCase request config keys -> Recall.ai create-bot fields
_CONFIG_FIELDS = {
    "botName": "bot_name",
    "recordAudio": "record_audio",
    "recordVideo": "record_video",
    "recordScreen": "record_screen",
    "webhookUrl": "webhook_url",
}


# ── Request Schemas ──────────────────────────────────────────────────────────


class BotActionRequest(CamelModel):
    action: str | None = None
    meeting_url: str | None = None
    bot_id: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class ScheduleBotRequest(CamelModel):
    event_id: str
    meeting_url: str
    join_minutes_before: int | None = Field(None, ge=1, le=30)


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_bot_manager(request: Request) -> BotManager:
    """Retrieve BotManager from app.state, 503 if not available."""
    mgr = getattr(request.app.state, "bot_manager", None)
    if mgr is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Bot manager not initialized",
        )
    return mgr


def _bot_overrides(config: dict[str, Any]) -> dict[str, Any]:
    return {
        field: config[key]
        for key, field in _CONFIG_FIELDS.items()
        if config.get(key) is not None
    }


def _require_bot_id(bot_id: str | None) -> str:
    if not bot_id:
        raise AppError(status.HTTP_400_BAD_REQUEST, "Bot ID is required", "MISSING_BOT_ID")
    return bot_id


# ── Bot Lifecycle ────────────────────────────────────────────────────────────


@router.get("")
async def get_bots(
    request: Request,
    bot_id: str | None = Query(None, alias="botId"),
    action: str | None = None,
    limit: int = Query(20, ge=1, le=100),
    bot_status: str | None = Query(None, alias="status"),
    session: UserSession = require_session,
) -> JSONResponse:
    """Bot status, bot transcript, or the bot list depending on the query."""
    manager = _get_bot_manager(request)

    if bot_id and not action:
        return success_response(to_json(await manager.get_bot_status(bot_id)))
    if bot_id and action == "transcript":
        return success_response(to_json(await manager.get_transcript(bot_id)))

    bots = await manager.list_bots(limit=limit, status=bot_status)
    return success_response(
        {
            "bots": to_json(bots),
            "totalCount": len(bots),
            "filters": {"limit": limit, "status": bot_status},
        },
        usingMockData=manager.mock_mode,
    )


@router.post("")
async def bot_action(
    body: BotActionRequest,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Dispatch ``schedule``, ``cancel``, ``status`` or ``transcript``."""
    manager = _get_bot_manager(request)

    if body.action == "schedule":
        if not body.meeting_url:
            raise AppError(
                status.HTTP_400_BAD_REQUEST, "Meeting URL is required", "MISSING_MEETING_URL"
            )
        bot = await manager.schedule_bot(body.meeting_url, _bot_overrides(body.config))
        logger.info("recall.bot_created", bot_id=bot.external_bot_id, user_id=session.user_id)
        return success_response(to_json(bot), action="schedule")

    if body.action == "cancel":
        bot_id = _require_bot_id(body.bot_id)
        await manager.cancel_user_bot(session.user_id, bot_id)
        return success_response({"botId": bot_id, "cancelled": True}, action="cancel")

    if body.action == "status":
        bot = await manager.get_bot_status(_require_bot_id(body.bot_id))
        return success_response(to_json(bot), action="status")

    if body.action == "transcript":
        transcript = await manager.get_transcript(_require_bot_id(body.bot_id))
        return success_response(to_json(transcript), action="transcript")

    raise AppError(
        status.HTTP_400_BAD_REQUEST,
        f"Invalid action. Supported actions: {', '.join(BOT_ACTIONS)}",
        "INVALID_ACTION",
    )


@router.delete("")
async def delete_bot(
    request: Request,
    bot_id: str | None = Query(None, alias="botId"),
    session: UserSession = require_session,
) -> JSONResponse:
    bot_id = _require_bot_id(bot_id)
    await _get_bot_manager(request).cancel_user_bot(session.user_id, bot_id)
    return success_response({"botId": bot_id, "cancelled": True})


# ── Per-user Scheduling ──────────────────────────────────────────────────────


@router.post("/schedule")
async def schedule_for_event(
    body: ScheduleBotRequest,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Send a bot to a calendar event with the caller's bot settings.

    Raises:
        AppError(409): The caller already has ``maxConcurrentBots`` active bots.
    """
    result = await _get_bot_manager(request).schedule_with_user_settings(
        session.user_id,
        body.event_id,
        body.meeting_url,
        body.join_minutes_before,
    )
    if not result.success:
        raise AppError(
            status.HTTP_409_CONFLICT,
            result.error or "Bot could not be scheduled",
            "BOT_LIMIT_REACHED",
        )
    return success_response(to_json(result.data))


@router.get("/status")
async def user_bot_status(
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Map of calendar event id to the bot scheduled for it."""
    schedules = await _get_bot_manager(request).get_user_schedules(session.user_id)
    return success_response(schedules, totalMeetings=len(schedules))


@router.get("/{bot_id}/status")
async def poll_bot_status(
    bot_id: str,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Flattened bot status with media availability flags."""
    bot = await _get_bot_manager(request).get_bot_status(bot_id)
    outputs = bot.outputs
    return success_response(
        {
            "botId": bot.id,
            "externalBotId": bot.external_bot_id,
            "status": bot.status,
            "meetingUrl": bot.meeting_url,
            "scheduledAt": bot.scheduled_at,
            "joinedAt": bot.joined_at,
            "startedRecordingAt": bot.started_recording_at,
            "endedAt": bot.ended_at,
            "outputs": to_json(outputs),
            "hasRecording": bool(outputs.recording_url),
            "hasTranscript": bool(outputs.transcript_url),
            "hasSummary": bool(outputs.summary_url),
            "participantCount": outputs.participant_count,
            "transcriptWordCount": outputs.transcript_word_count,
            "config": to_json(bot.config),
        },
        polledAt=now_iso(),
    )
