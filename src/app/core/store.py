"""Key-value blob store for settings, tokens, schedules and approvals.

Values are JSON documents. When REDIS_URL is configured the store is backed by
redis.asyncio; otherwise a process-local dict is used, which loses everything
on restart and is not shared between workers.

Keys are namespaced with a ``pmc:`` prefix so the store can share a Redis
database with other applications.
"""

from __future__ import annotations

import json
import time
from typing import Any, Protocol

import redis.asyncio as aioredis
import structlog

from src.app.config import get_settings

logger = structlog.get_logger(__name__)

KEY_PREFIX = "pmc:"


class KeyValueStore(Protocol):
    async def get_json(self, key: str) -> Any | None: ...

    async def set_json(self, key: str, value: Any, ex: int | None = None) -> None: ...

    async def delete(self, key: str) -> int: ...

    async def keys(self, prefix: str = "") -> list[str]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


# ── Redis Store ─────────────────────────────────────────────────────────────


class RedisStore:
    """Store backed by a Redis connection pool, auto-prefixing all keys."""

    def __init__(self, redis_client: aioredis.Redis) -> None:
        self._redis = redis_client

    def _key(self, key: str) -> str:
        return f"{KEY_PREFIX}{key}"

    async def get_json(self, key: str) -> Any | None:
        raw = await self._redis.get(self._key(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def set_json(self, key: str, value: Any, ex: int | None = None) -> None:
        """Store ``value`` as JSON with optional TTL (seconds)."""
        await self._redis.set(self._key(key), json.dumps(value, default=str), ex=ex)

    async def delete(self, key: str) -> int:
        return await self._redis.delete(self._key(key))

    async def keys(self, prefix: str = "") -> list[str]:
        """List keys under ``prefix`` with the namespace stripped."""
        found = [k async for k in self._redis.scan_iter(match=f"{self._key(prefix)}*")]
        return sorted(k[len(KEY_PREFIX):] for k in found)

    async def ping(self) -> bool:
        return bool(await self._redis.ping())

    async def close(self) -> None:
        await self._redis.aclose()


# ── Memory Store ────────────────────────────────────────────────────────────


class MemoryStore:
    """Process-local store with the same interface as RedisStore."""

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, float | None]] = {}

    def _live(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self._data[key]
            return None
        return raw

    async def get_json(self, key: str) -> Any | None:
        raw = self._live(key)
        return None if raw is None else json.loads(raw)

    async def set_json(self, key: str, value: Any, ex: int | None = None) -> None:
        expires_at = time.monotonic() + ex if ex else None
        self._data[key] = (json.dumps(value, default=str), expires_at)

    async def delete(self, key: str) -> int:
        return 1 if self._data.pop(key, None) is not None else 0

    async def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in list(self._data) if k.startswith(prefix) and self._live(k) is not None)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._data.clear()


# ── Module-level store (lazy init) ──────────────────────────────────────────

_store: RedisStore | MemoryStore | None = None


def get_store() -> RedisStore | MemoryStore:
    """Get or create the store singleton."""
    global _store
    if _store is None:
        settings = get_settings()
        if settings.REDIS_URL:
            _store = RedisStore(aioredis.from_url(settings.REDIS_URL, decode_responses=True))
            logger.info("store.redis_selected")
        else:
            _store = MemoryStore()
            logger.info("store.memory_selected")
    return _store


async def close_store() -> None:
    """Close the store and drop the singleton."""
    global _store
    if _store is not None:
        await _store.close()
        _store = None
