"""Per-user settings endpoints: bot behaviour, automations and social connections."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from src.app.api.deps import require_session
from src.app.core.errors import success_response
from src.app.core.schemas import to_json
from src.app.core.security import UserSession
from src.app.meetings.schemas import BotSettings
from src.app.preferences.repository import PreferencesRepository
from src.app.preferences.schemas import AutomationSetting, SocialConnection

router = APIRouter(prefix="/settings", tags=["settings"])


def _get_preferences(request: Request) -> PreferencesRepository:
    """Retrieve PreferencesRepository from app.state, 503 if not available."""
    repo = getattr(request.app.state, "preferences", None)
    if repo is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Preferences repository not initialized",
        )
    return repo


# ── Bot ──────────────────────────────────────────────────────────────────────


@router.get("/bot")
async def get_bot_settings(
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    settings = await _get_preferences(request).get_bot_settings(session.email)
    return success_response(to_json(settings))


@router.post("/bot")
async def update_bot_settings(
    body: BotSettings,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    saved = await _get_preferences(request).save_bot_settings(session.email, body)
    return success_response(to_json(saved))


# ── Automations ──────────────────────────────────────────────────────────────


@router.get("/automations")
async def get_automations(
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    automations = await _get_preferences(request).get_automations(session.email)
    return success_response(to_json(automations))


@router.post("/automations")
async def update_automations(
    body: dict[str, AutomationSetting],
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Replace the automation settings, keyed by platform."""
    saved = await _get_preferences(request).save_automations(session.email, body)
    return success_response(to_json(saved))


# ── Social Connections ───────────────────────────────────────────────────────


@router.get("/social")
async def get_social_connections(
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    connections = await _get_preferences(request).get_social_connections(session.email)
    return success_response(to_json(connections))


@router.post("/social")
async def update_social_connection(
    body: SocialConnection,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    connections = await _get_preferences(request).update_social_connection(session.email, body)
    return success_response(to_json(connections))
