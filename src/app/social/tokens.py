"""Token storage for connected social accounts.

LinkedInTokenStore holds the LinkedIn grant created by the OAuth callback,
keyed by the session email. SocialTokenService is the generic per-platform
manager used for other networks; expired access tokens are refreshed
through a platform-specific refresher when one is registered.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from src.app.core.dates import epoch_ms
from src.app.core.store import KeyValueStore
from src.app.social.schemas import LinkedInProfile, LinkedInToken, SocialToken

logger = structlog.get_logger(__name__)

# Refresher: (refresh_token) -> (access_token, refresh_token | None, expires_in seconds)
TokenRefresher = Callable[[str], Awaitable[tuple[str, str | None, int]]]


class LinkedInTokenStore:
    """LinkedIn grants under ``linkedin-token:<email>``."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @staticmethod
    def _key(email: str) -> str:
        return f"linkedin-token:{email}"

    async def save(
        self,
        email: str,
        access_token: str,
        expires_in: int,
        profile: LinkedInProfile,
        refresh_token: str = "",
    ) -> LinkedInToken:
        token = LinkedInToken(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=epoch_ms() + expires_in * 1000,
            profile=profile,
        )
        await self._store.set_json(
            self._key(email),
            {
                **token.model_dump(mode="json"),
                "access_token": access_token,
                "refresh_token": refresh_token,
            },
        )
        logger.info("linkedin.token_stored", user_id=email, profile_id=profile.id)
        return token

    async def get(self, email: str) -> LinkedInToken | None:
        raw = await self._store.get_json(self._key(email))
        return LinkedInToken.model_validate(raw) if raw else None

    async def get_valid(self, email: str) -> LinkedInToken | None:
        token = await self.get(email)
        return token if token is not None and token.is_valid else None

    async def remove(self, email: str) -> None:
        await self._store.delete(self._key(email))
        logger.info("linkedin.token_removed", user_id=email)


class SocialTokenService:
    """Generic token manager for ``(user, platform)`` pairs.

    Args:
        store: Key-value store for token documents.
        refreshers: Optional per-platform refresh callables.
    """

    def __init__(
        self,
        store: KeyValueStore,
        refreshers: dict[str, TokenRefresher] | None = None,
    ) -> None:
        self._store = store
        self._refreshers = refreshers or {}

    @staticmethod
    def _key(user_id: str, platform: str) -> str:
        return f"social-token:{user_id}:{platform}"

    async def _load(self, user_id: str, platform: str) -> SocialToken | None:
        raw = await self._store.get_json(self._key(user_id, platform))
        return SocialToken.model_validate(raw) if raw else None

    async def store_token(
        self,
        user_id: str,
        platform: str,
        access_token: str,
        expires_in: int,
        refresh_token: str | None = None,
        scope: list[str] | None = None,
        platform_details: dict | None = None,
    ) -> SocialToken:
        token = SocialToken(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=epoch_ms() + expires_in * 1000,
            scope=scope or [],
            platform_details=platform_details or {},
        )
        await self._store.set_json(self._key(user_id, platform), token.model_dump(mode="json"))
        logger.info("social.token_stored", user_id=user_id, platform=platform)
        return token

    async def get_token(
        self, user_id: str, platform: str, token_type: str = "access"
    ) -> str | None:
        """Return the requested token, refreshing an expired access token if possible."""
        token = await self._load(user_id, platform)
        if token is None:
            logger.warning("social.token_missing", user_id=user_id, platform=platform)
            return None

        if token.expires_at < epoch_ms():
            logger.warning("social.token_expired", user_id=user_id, platform=platform)
            if token_type == "access" and token.refresh_token:
                return await self.refresh_token(user_id, platform)
            return None

        return token.access_token if token_type == "access" else token.refresh_token

    async def refresh_token(self, user_id: str, platform: str) -> str | None:
        """Refresh through the platform refresher; None if that is not possible."""
        token = await self._load(user_id, platform)
        if token is None or not token.refresh_token:
            logger.warning("social.refresh_token_missing", user_id=user_id, platform=platform)
            return None

        refresher = self._refreshers.get(platform)
        if refresher is None:
            return None

        access_token, refresh_token, expires_in = await refresher(token.refresh_token)
        await self.store_token(
            user_id,
            platform,
            access_token,
            expires_in,
            refresh_token=refresh_token or token.refresh_token,
            scope=token.scope,
            platform_details=token.platform_details,
        )
        logger.info("social.token_refreshed", user_id=user_id, platform=platform)
        return access_token

    async def has_valid_token(self, user_id: str, platform: str) -> bool:
        return await self.get_token(user_id, platform) is not None

    async def delete_token(self, user_id: str, platform: str) -> None:
        await self._store.delete(self._key(user_id, platform))
        logger.info("social.token_deleted", user_id=user_id, platform=platform)
