"""Per-user preference storage on the key-value store.

Each document lives under ``<kind>:<email>`` and is replaced wholesale on
save. Validation of user input happens here so handlers stay thin.
"""

from __future__ import annotations

import structlog

from src.app.core.dates import now_iso
from src.app.core.errors import AppError
from src.app.core.store import KeyValueStore
from src.app.meetings.schemas import BotSettings
from src.app.preferences.schemas import (
    AUTOMATION_FREQUENCIES,
    AUTOMATION_PLATFORMS,
    AUTOMATION_TONES,
    AutomationSetting,
    SocialConnection,
    default_social_connections,
)

logger = structlog.get_logger(__name__)


def validate_bot_settings(settings: BotSettings) -> None:
    """Raises AppError(400) when a value is out of range."""
    if not 1 <= settings.join_minutes_before <= 30:
        raise AppError(400, "Join minutes must be between 1 and 30", "INVALID_BOT_SETTINGS")
    if not 1 <= settings.max_concurrent_bots <= 10:
        raise AppError(400, "Max concurrent bots must be between 1 and 10", "INVALID_BOT_SETTINGS")


def validate_automations(automations: dict[str, AutomationSetting]) -> None:
    """Raises AppError(400) for an unknown platform, tone or frequency."""
    for platform, setting in automations.items():
        if platform not in AUTOMATION_PLATFORMS:
            raise AppError(400, f"Invalid platform: {platform}", "INVALID_AUTOMATION_SETTINGS")
        if setting.tone not in AUTOMATION_TONES:
            raise AppError(400, f"Invalid tone: {setting.tone}", "INVALID_AUTOMATION_SETTINGS")
        if setting.frequency not in AUTOMATION_FREQUENCIES:
            raise AppError(
                400, f"Invalid frequency: {setting.frequency}", "INVALID_AUTOMATION_SETTINGS"
            )


class PreferencesRepository:
    """Reads and writes bot, automation and social-connection preferences.

    Args:
        store: Key-value store holding the JSON documents.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    # ── Bot settings ────────────────────────────────────────────────────

    async def get_bot_settings(self, email: str) -> BotSettings:
        raw = await self._store.get_json(f"bot-settings:{email}")
        return BotSettings.model_validate(raw) if raw else BotSettings()

    async def save_bot_settings(self, email: str, settings: BotSettings) -> BotSettings:
        validate_bot_settings(settings)
        saved = settings.model_copy(update={"updated_at": now_iso()})
        await self._store.set_json(f"bot-settings:{email}", saved.model_dump(mode="json"))
        logger.info("preferences.bot_settings_saved", user_id=email)
        return saved

    # ── Automations ─────────────────────────────────────────────────────

    async def get_automations(self, email: str) -> dict[str, AutomationSetting]:
        raw = await self._store.get_json(f"automation-settings:{email}") or {}
        return {p: AutomationSetting.model_validate(s) for p, s in raw.items()}

    async def save_automations(
        self, email: str, automations: dict[str, AutomationSetting]
    ) -> dict[str, AutomationSetting]:
        validate_automations(automations)
        stamp = now_iso()
        saved = {p: s.model_copy(update={"updated_at": stamp}) for p, s in automations.items()}
        await self._store.set_json(
            f"automation-settings:{email}",
            {p: s.model_dump(mode="json") for p, s in saved.items()},
        )
        logger.info("preferences.automations_saved", user_id=email, platforms=sorted(saved))
        return saved

    # ── Social connections ──────────────────────────────────────────────

    async def get_social_connections(self, email: str) -> list[SocialConnection]:
        raw = await self._store.get_json(f"social-connections:{email}")
        if not raw:
            return default_social_connections()
        return [SocialConnection.model_validate(c) for c in raw]

    async def update_social_connection(
        self, email: str, update: SocialConnection
    ) -> list[SocialConnection]:
        """Replace the entry for ``update.platform``; unknown platforms are ignored."""
        connections = [
            update if conn.platform == update.platform else conn
            for conn in await self.get_social_connections(email)
        ]
        # Tokens are excluded from dumps, so store them explicitly
        await self._store.set_json(
            f"social-connections:{email}",
            [
                {
                    **c.model_dump(mode="json"),
                    "access_token": c.access_token,
                    "refresh_token": c.refresh_token,
                }
                for c in connections
            ],
        )
        logger.info(
            "preferences.social_connection_updated",
            user_id=email,
            platform=update.platform,
            connected=update.connected,
        )
        return connections
