"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    test = "test"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development
    APP_VERSION: str = "0.1.0"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Public base URL of the web app (OAuth redirects land here)
    APP_BASE_URL: str = "http://localhost:3000"

    # Key-value store. Empty means process memory only.
    REDIS_URL: str = ""

    # Session tokens
    SESSION_SECRET_KEY: str = "CHANGE-ME-IN-PRODUCTION-use-openssl-rand-hex-32"
    SESSION_ALGORITHM: str = "HS256"
    SESSION_EXPIRE_MINUTES: int = 60 * 24 * 30

    # CORS
    CORS_ALLOWED_ORIGINS: str = "*"

    # Google OAuth (sign-in and Calendar access)
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""

    # LinkedIn OAuth
    LINKEDIN_CLIENT_ID: str = ""
    LINKEDIN_CLIENT_SECRET: str = ""

    # LLM Providers
    OPENAI_API_KEY: str = ""
    ANTHROPIC_API_KEY: str = ""
    LLM_MODEL: str = "openai/gpt-4o-mini"
    LLM_TIMEOUT: int = 30
    LLM_MAX_RETRIES: int = 3

    # Recall.ai meeting bots
    RECALL_AI_API_KEY: str = ""
    RECALL_AI_REGION: str = "us-east-1"
    RECALL_AI_WEBHOOK_TOKEN: str = ""  # Optional webhook validation token
    MEETING_BOT_NAME: str = "Post-Meeting Content Bot"

    # Feature flags
    MOCK_MODE: bool = False  # Force canned calendar/bot/AI data
    SOCIAL_PUBLISHING_ENABLED: bool = False  # Real LinkedIn publishing
    DEV_SESSIONS_ENABLED: bool = False  # POST /api/auth/session outside production

    # Monitoring
    SENTRY_DSN: str = ""

    @property
    def google_configured(self) -> bool:
        return bool(self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_SECRET)

    @property
    def linkedin_configured(self) -> bool:
        return bool(self.LINKEDIN_CLIENT_ID and self.LINKEDIN_CLIENT_SECRET)

    @property
    def llm_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY or self.ANTHROPIC_API_KEY)

    @property
    def recall_configured(self) -> bool:
        return bool(self.RECALL_AI_API_KEY)

    def redirect_uri(self, path: str) -> str:
        """Build an absolute callback URL under APP_BASE_URL."""
        return f"{self.APP_BASE_URL.rstrip('/')}{path}"


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
