"""Health check endpoints.

/health is the liveness check with per-service configuration state and
feature flags. /health/ready also pings the key-value store so load
balancers stop routing to an instance that lost Redis.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from src.app.api.deps import get_kv_store
from src.app.config import get_settings
from src.app.core.dates import now_iso
from src.app.core.store import KeyValueStore

router = APIRouter(tags=["health"])


def _configured(flag: bool) -> str:
    return "configured" if flag else "not_configured"


@router.get("/health")
async def health_check() -> dict:
    """Basic liveness check; no external dependencies are called."""
    settings = get_settings()
    publishing = "active" if settings.SOCIAL_PUBLISHING_ENABLED else "mocked"
    return {
        "status": "healthy",
        "timestamp": now_iso(),
        "environment": settings.ENVIRONMENT.value,
        "version": settings.APP_VERSION,
        "services": {
            "google": _configured(settings.google_configured),
            "linkedin": _configured(settings.linkedin_configured),
            "openai": _configured(settings.llm_configured),
            "recall": _configured(settings.recall_configured),
        },
        "features": {
            "calendarIntegration": "mocked" if settings.MOCK_MODE else "active",
            "contentGeneration": "mocked" if settings.MOCK_MODE else "active",
            "socialPublishing": publishing,
            "botScheduling": "mocked" if settings.MOCK_MODE else "active",
            "emailGeneration": "active",
            "complianceValidation": "active",
        },
    }


@router.get("/health/ready")
async def readiness_check(store: KeyValueStore = Depends(get_kv_store)) -> JSONResponse:
    """Readiness check: 503 when the key-value store does not answer."""
    checks = {"store": "ok"}
    try:
        if not await store.ping():
            checks["store"] = "error"
    except Exception as exc:
        checks["store"] = "error"
        checks["store_error"] = str(exc)

    ready = checks["store"] == "ok"
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if ready else "not_ready", "checks": checks},
    )
