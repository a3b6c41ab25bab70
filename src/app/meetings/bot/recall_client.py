"""Async HTTP client wrapper for Recall.ai REST API.

Provides RecallClient with retry logic (tenacity, 3 attempts, exponential
backoff 1-10s). All methods are async and log with structlog.

Methods cover the bot lifecycle used by this service: create, inspect,
list, transcript retrieval and deletion.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.app.core.monitoring import record_external_call

logger = structlog.get_logger(__name__)

_recall_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    reraise=True,
)


class RecallClient:
    """Async client for Recall.ai REST API.

    Handles bot creation, monitoring, listing, transcript retrieval and
    deletion. Uses httpx.AsyncClient with configurable timeouts per
    operation type.

    Args:
        api_key: Recall.ai API token.
        region: Recall.ai region (default: us-east-1).
    """

    # Timeouts per operation type
    TIMEOUT_MUTATE = 30.0  # create/delete operations
    TIMEOUT_READ = 10.0    # get/list operations

    def __init__(self, api_key: str, region: str = "us-east-1") -> None:
        self._api_key = api_key
        self._base_url = f"https://{region}.recall.ai/api/v1"
        self._headers = {
            "Authorization": f"Token {api_key}",
            "Content-Type": "application/json",
        }

    @property
    def base_url(self) -> str:
        return self._base_url

    def _client(self, timeout: float) -> httpx.AsyncClient:
        """Create a new httpx client with specified timeout."""
        return httpx.AsyncClient(
            headers=self._headers,
            timeout=timeout,
        )

    @staticmethod
    def _check(response: httpx.Response, operation: str) -> None:
        """Raise HTTPStatusError on 4xx/5xx, counting the outcome."""
        outcome = "error" if response.is_error else "success"
        record_external_call("recall", operation, outcome)
        response.raise_for_status()

    @_recall_retry
    async def create_bot(self, config: dict) -> dict:
        """Create a new meeting bot.

        POST /bot/ with meeting_url, bot_name and recording options.

        Args:
            config: Complete bot creation configuration dict.

        Returns:
            Bot creation response with bot id and status.
        """
        async with self._client(self.TIMEOUT_MUTATE) as client:
            response = await client.post(
                f"{self._base_url}/bot/",
                json=config,
            )
            self._check(response, "create_bot")
            data = response.json()
            logger.info(
                "recall.bot_created",
                bot_id=data.get("id"),
                meeting_url=config.get("meeting_url"),
            )
            return data

    @_recall_retry
    async def get_bot(self, bot_id: str) -> dict:
        """Get full bot details.

        GET /bot/{bot_id}/ returns complete bot state including
        status_changes, recordings and configuration.
        """
        async with self._client(self.TIMEOUT_READ) as client:
            response = await client.get(
                f"{self._base_url}/bot/{bot_id}/",
            )
            self._check(response, "get_bot")
            return response.json()

    async def get_bot_status(self, bot_id: str) -> str:
        """Get current bot status code.

        Uses the top-level ``status`` when present, otherwise the latest
        status_changes[-1].code.

        Returns:
            Status code string (e.g., 'ready', 'joining_call', 'done').
        """
        bot_data = await self.get_bot(bot_id)
        return extract_status(bot_data)

    @_recall_retry
    async def list_bots(
        self,
        limit: int | None = None,
        status: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
    ) -> list[dict]:
        """List bots visible to the API key.

        GET /bot/ with optional filters. Recall.ai paginates; only the first
        page is returned.
        """
        params: dict[str, Any] = {}
        if limit:
            params["limit"] = limit
        if status:
            params["status"] = status
        if created_after:
            params["created_after"] = created_after
        if created_before:
            params["created_before"] = created_before

        async with self._client(self.TIMEOUT_READ) as client:
            response = await client.get(f"{self._base_url}/bot/", params=params)
            self._check(response, "list_bots")
            data = response.json()
            results = data.get("results", []) if isinstance(data, dict) else data
            logger.info("recall.bots_listed", count=len(results))
            return results

    @_recall_retry
    async def get_transcript(self, bot_id: str) -> Any:
        """Get full transcript after meeting ends.

        GET /bot/{bot_id}/transcript/ returns either a transcript document or
        a list of per-speaker entries depending on the account's API version.
        """
        async with self._client(self.TIMEOUT_READ) as client:
            response = await client.get(
                f"{self._base_url}/bot/{bot_id}/transcript/",
            )
            self._check(response, "get_transcript")
            data = response.json()
            logger.info(
                "recall.transcript_retrieved",
                bot_id=bot_id,
                entry_count=len(data) if isinstance(data, list) else 1,
            )
            return data

    @_recall_retry
    async def download_transcript(self, download_url: str) -> str:
        """Fetch a transcript artifact and join all words into plain text.

        The artifact is a list of ``{"participant", "words": [{"text"}]}``
        entries. The download URL is pre-signed, so no auth header is sent.
        """
        async with httpx.AsyncClient(timeout=self.TIMEOUT_READ) as client:
            response = await client.get(download_url)
            self._check(response, "download_transcript")
            entries = response.json()
        words = [
            word.get("text", "")
            for entry in entries or []
            for word in entry.get("words", [])
        ]
        return " ".join(w for w in words if w)

    @_recall_retry
    async def delete_bot(self, bot_id: str) -> None:
        """Delete a bot and clean up resources.

        DELETE /bot/{bot_id}/
        """
        async with self._client(self.TIMEOUT_MUTATE) as client:
            response = await client.delete(
                f"{self._base_url}/bot/{bot_id}/",
            )
            self._check(response, "delete_bot")
            logger.info(
                "recall.bot_deleted",
                bot_id=bot_id,
            )


def extract_status(bot_data: dict) -> str:
    """Current status code of a raw bot payload, or "unknown"."""
    status = bot_data.get("status")
    if isinstance(status, dict):
        status = status.get("code")
    if status:
        return str(status)
    status_changes = bot_data.get("status_changes") or []
    if not status_changes:
        return "unknown"
    return status_changes[-1].get("code", "unknown")


def transcript_download_url(bot_data: dict) -> str | None:
    """recordings[0].media_shortcuts.transcript.data.download_url, if any."""
    recordings = bot_data.get("recordings") or []
    if not recordings:
        return None
    shortcut = ((recordings[0].get("media_shortcuts") or {}).get("transcript") or {})
    return (shortcut.get("data") or {}).get("download_url")
