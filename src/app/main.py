"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, Sentry,
the envelope exception handlers, a lifespan that wires the services onto
app.state, and the /api router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.app.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.app.api.v1.router import router as api_router
from src.app.compliance import ComplianceEngine
from src.app.config import Settings, get_settings
from src.app.content.approval import ApprovalRepository
from src.app.content.generator import ContentService
from src.app.core.errors import install_exception_handlers
from src.app.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.app.core.store import close_store, get_store
from src.app.meetings.bot.manager import BotManager
from src.app.meetings.bot.recall_client import RecallClient
from src.app.meetings.repository import BotScheduleRepository
from src.app.preferences.repository import PreferencesRepository
from src.app.services.gsuite import GoogleOAuthClient
from src.app.services.llm import get_llm_service
from src.app.social.linkedin import LinkedInClient, LinkedInRateLimiter
from src.app.social.tokens import LinkedInTokenStore, SocialTokenService


def _linkedin_refresher(client: LinkedInClient):
    """SocialTokenService refresher backed by the LinkedIn token endpoint."""

    async def _refresh(refresh_token: str) -> tuple[str, str | None, int]:
        grant = await client.refresh_token(refresh_token)
        return grant.access_token, grant.refresh_token, grant.expires_in

    return _refresh


def _build_bot_manager(
    settings: Settings,
    schedules: BotScheduleRepository,
    preferences: PreferencesRepository,
) -> BotManager:
    recall = None
    if settings.recall_configured and not settings.MOCK_MODE:
        recall = RecallClient(settings.RECALL_AI_API_KEY, settings.RECALL_AI_REGION)
    return BotManager(
        recall,
        schedules,
        preferences,
        bot_name=settings.MEETING_BOT_NAME,
        webhook_url=settings.redirect_uri("/api/webhooks/recall"),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: wire services on startup, close the store on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    # Initialize Sentry if DSN is configured
    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    # ── Storage ─────────────────────────────────────────────────────────
    store = get_store()
    app.state.store = store
    app.state.preferences = PreferencesRepository(store)
    app.state.bot_schedules = BotScheduleRepository(store)
    app.state.approvals = ApprovalRepository(store)
    app.state.linkedin_tokens = LinkedInTokenStore(store)

    # ── Integrations ────────────────────────────────────────────────────
    app.state.google_oauth = GoogleOAuthClient(
        settings.GOOGLE_CLIENT_ID,
        settings.GOOGLE_CLIENT_SECRET,
        settings.redirect_uri("/api/auth/google/callback"),
    )
    linkedin_client = LinkedInClient(
        settings.LINKEDIN_CLIENT_ID,
        settings.LINKEDIN_CLIENT_SECRET,
        settings.redirect_uri("/api/linkedin/callback"),
    )
    app.state.linkedin_client = linkedin_client
    app.state.linkedin_rate_limiter = LinkedInRateLimiter()
    app.state.social_tokens = SocialTokenService(
        store, refreshers={"linkedin": _linkedin_refresher(linkedin_client)}
    )
    app.state.bot_manager = _build_bot_manager(
        settings, app.state.bot_schedules, app.state.preferences
    )

    # ── Content ─────────────────────────────────────────────────────────
    app.state.content_service = ContentService(
        get_llm_service(), timeout=settings.LLM_TIMEOUT, force_mock=settings.MOCK_MODE
    )
    app.state.compliance_engine = ComplianceEngine()

    log.info(
        "app.started",
        environment=settings.ENVIRONMENT.value,
        mock_mode=settings.MOCK_MODE,
        recall_mock=app.state.bot_manager.mock_mode,
        content_mock=app.state.content_service.mock_mode,
        store=type(store).__name__,
    )

    yield

    # ── Shutdown ────────────────────────────────────────────────────────
    await close_store()
    log.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Post-Meeting Content API",
        version=settings.APP_VERSION,
        description="Meeting bots, AI social posts and compliance review for financial advisors",
        lifespan=lifespan,
    )

    install_exception_handlers(app)

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(api_router)

    # Prometheus metrics endpoint (infrastructure route, outside /api)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
