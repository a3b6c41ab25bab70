"""Shared fixtures for the API and service tests.

Provides:
- A process-local MemoryStore per test
- The signed-in advisor session used by the API tests
- A minimal FastAPI app with the /api router, envelope handlers and every
  service wired on app.state the way the lifespan does, in mock mode
- Async HTTP clients with and without the session override
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from types import SimpleNamespace

# Settings are cached on first use; pin the test environment before any import reads them.
os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_URL"] = ""
os.environ["MOCK_MODE"] = "false"
os.environ["SOCIAL_PUBLISHING_ENABLED"] = "false"
os.environ["RECALL_AI_WEBHOOK_TOKEN"] = ""
os.environ["DEV_SESSIONS_ENABLED"] = "true"

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.app.compliance import ComplianceEngine
from src.app.content.approval import ApprovalRepository
from src.app.content.generator import ContentService
from src.app.core.errors import install_exception_handlers
from src.app.core.security import UserSession, create_session_token
from src.app.core.store import MemoryStore
from src.app.meetings.bot.manager import BotManager
from src.app.meetings.repository import BotScheduleRepository
from src.app.preferences.repository import PreferencesRepository
from src.app.services.gsuite import GoogleOAuthClient
from src.app.social.linkedin import LinkedInClient, LinkedInRateLimiter
from src.app.social.tokens import LinkedInTokenStore, SocialTokenService

ADVISOR_EMAIL = "advisor@example.com"


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def advisor() -> UserSession:
    return UserSession(user_id=ADVISOR_EMAIL, email=ADVISOR_EMAIL, name="Advisor")


@pytest.fixture
def session_token() -> str:
    """A real signed session token for the advisor."""
    return create_session_token({"sub": ADVISOR_EMAIL, "name": "Advisor"})


def offline_llm() -> SimpleNamespace:
    """LLMService stand-in with no provider configured."""
    return SimpleNamespace(available=False, default_model="openai/gpt-4o-mini")


def _make_mock_app(store: MemoryStore) -> FastAPI:
    """Create a minimal app with the /api router and mock-mode services."""
    from src.app.api.v1.router import router

    app = FastAPI()
    install_exception_handlers(app)
    app.include_router(router)

    preferences = PreferencesRepository(store)
    schedules = BotScheduleRepository(store)

    app.state.store = store
    app.state.preferences = preferences
    app.state.bot_schedules = schedules
    app.state.approvals = ApprovalRepository(store)
    app.state.linkedin_tokens = LinkedInTokenStore(store)
    app.state.google_oauth = GoogleOAuthClient(
        "google-id", "google-secret", "http://test/api/auth/google/callback"
    )
    app.state.linkedin_client = LinkedInClient(
        "linkedin-id", "linkedin-secret", "http://test/api/linkedin/callback"
    )
    app.state.linkedin_rate_limiter = LinkedInRateLimiter()
    app.state.social_tokens = SocialTokenService(store)
    app.state.bot_manager = BotManager(None, schedules, preferences)
    app.state.content_service = ContentService(offline_llm(), timeout=5)
    app.state.compliance_engine = ComplianceEngine()
    return app


@pytest.fixture
def app(store: MemoryStore, advisor: UserSession) -> FastAPI:
    """App with the session dependency overridden to the advisor."""
    from src.app.api.deps import get_current_session

    application = _make_mock_app(store)
    application.dependency_overrides[get_current_session] = lambda: advisor
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def anon_client(store: MemoryStore) -> AsyncGenerator[AsyncClient, None]:
    """Client against an app with the real bearer-token session gate."""
    transport = ASGITransport(app=_make_mock_app(store))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
