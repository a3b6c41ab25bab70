"""V1 API router -- aggregates all endpoint routers under /api."""

from __future__ import annotations

from fastapi import APIRouter

from src.app.api.v1 import (
    auth,
    calendar,
    content,
    generate,
    health,
    linkedin,
    mock_meeting,
    recall,
    settings,
    social,
    webhooks,
)

router = APIRouter(prefix="/api")

router.include_router(health.router)
router.include_router(auth.router)
router.include_router(calendar.router)
router.include_router(recall.router)
router.include_router(webhooks.router)
router.include_router(generate.router)
router.include_router(content.router)
router.include_router(linkedin.router)
router.include_router(social.router)
router.include_router(settings.router)
router.include_router(mock_meeting.router)
