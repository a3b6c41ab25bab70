"""Recall.ai webhook receiver.

Recall.ai posts bot lifecycle events here. Events are logged per type and
acknowledged; nothing is acted on. When RECALL_AI_WEBHOOK_TOKEN is set the
``X-Recall-Token`` header must match it.

NOTE: This endpoint does NOT require a session -- Recall.ai calls it
directly.
"""

from __future__ import annotations

import json

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.app.config import get_settings
from src.app.core.dates import now_iso
from src.app.core.errors import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


# ── Event Logging ────────────────────────────────────────────────────────────


def _log_status_change(bot_id: str, data: dict) -> None:
    bot_status = data.get("status")
    logger.info("webhook.bot_status_changed", bot_id=bot_id, status=bot_status)
    if bot_status == "in_call_recording":
        logger.info("webhook.bot_recording_started", bot_id=bot_id)
    elif bot_status == "done":
        logger.info(
            "webhook.bot_done",
            bot_id=bot_id,
            recording_url=data.get("recording_url"),
            transcript_url=data.get("transcript_url"),
        )
    elif bot_status == "fatal":
        logger.error("webhook.bot_fatal", bot_id=bot_id, errors=data.get("errors"))


def _log_event(event: str, bot_id: str, data: dict) -> None:
    if event == "bot.status_changed":
        _log_status_change(bot_id, data)
    elif event == "bot.transcript_ready":
        logger.info(
            "webhook.transcript_ready",
            bot_id=bot_id,
            transcript_url=data.get("transcript_url"),
        )
    elif event == "bot.recording_ready":
        logger.info(
            "webhook.recording_ready",
            bot_id=bot_id,
            recording_url=data.get("recording_url"),
        )
    elif event == "bot.error":
        logger.error("webhook.bot_error", bot_id=bot_id, error=data.get("error"))
    else:
        logger.warning("webhook.unknown_event", event=event, bot_id=bot_id)


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/recall")
async def receive_recall_webhook(request: Request) -> JSONResponse:
    """Acknowledge a Recall.ai event after logging it.

    Raises:
        AppError(401): Shared token configured and the header does not match.
        AppError(400): Body is not a JSON object.
    """
    webhook_token = get_settings().RECALL_AI_WEBHOOK_TOKEN
    if webhook_token and request.headers.get("X-Recall-Token", "") != webhook_token:
        logger.warning("webhook.invalid_token")
        raise AppError(status.HTTP_401_UNAUTHORIZED, "Invalid webhook token", "UNAUTHORIZED")

    try:
        payload = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise AppError(
            status.HTTP_400_BAD_REQUEST, "Invalid webhook payload", "INVALID_PAYLOAD"
        ) from exc
    if not isinstance(payload, dict):
        raise AppError(status.HTTP_400_BAD_REQUEST, "Invalid webhook payload", "INVALID_PAYLOAD")

    event = str(payload.get("event", ""))
    bot_id = str(payload.get("bot_id", ""))
    data = payload.get("data")
    _log_event(event, bot_id, data if isinstance(data, dict) else {})

    return JSONResponse({"success": True, "message": "Webhook processed successfully"})


@router.get("/recall")
async def recall_webhook_health() -> dict:
    return {"status": "healthy", "service": "recall-webhook", "timestamp": now_iso()}
