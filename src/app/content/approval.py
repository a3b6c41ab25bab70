"""Approval queue for generated content.

Generated posts are registered as ``pending_approval``; an advisor then
approves, rejects or requests changes. Items live in the key-value store
under ``approval:<content_id>``.
"""

from __future__ import annotations

import structlog

from src.app.content.schemas import ApprovalItem, ApprovalStatus
from src.app.core.dates import now_iso
from src.app.core.errors import AppError
from src.app.core.store import KeyValueStore

logger = structlog.get_logger(__name__)


class ApprovalRepository:
    """Async access to ApprovalItems.

    Args:
        store: Key-value store holding one document per item.
    """

    PREFIX = "approval:"

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def _key(self, content_id: str) -> str:
        return f"{self.PREFIX}{content_id}"

    async def add_content_for_approval(
        self, content_id: str, content: str, platform: str
    ) -> ApprovalItem:
        item = ApprovalItem(
            id=content_id,
            content=content,
            platform=platform,
            created_at=now_iso(),
        )
        await self._save(item)
        logger.info("approval.content_added", content_id=content_id, platform=platform)
        return item

    async def get(self, content_id: str) -> ApprovalItem | None:
        raw = await self._store.get_json(self._key(content_id))
        return ApprovalItem.model_validate(raw) if raw else None

    async def list_pending(self) -> list[ApprovalItem]:
        items = []
        for key in await self._store.keys(self.PREFIX):
            raw = await self._store.get_json(key)
            if raw and raw.get("status") == ApprovalStatus.PENDING_APPROVAL.value:
                items.append(ApprovalItem.model_validate(raw))
        return sorted(items, key=lambda i: i.created_at)

    async def approve(self, content_id: str, approved_by: str) -> ApprovalItem:
        item = await self._require(content_id)
        item.status = ApprovalStatus.APPROVED
        item.approved_at = now_iso()
        item.approved_by = approved_by
        await self._save(item)
        logger.info("approval.content_approved", content_id=content_id, user_id=approved_by)
        return item

    async def reject(self, content_id: str, user_id: str, reason: str | None) -> ApprovalItem:
        item = await self._require(content_id)
        item.status = ApprovalStatus.REJECTED
        item.reason = reason
        await self._save(item)
        logger.info("approval.content_rejected", content_id=content_id, user_id=user_id)
        return item

    async def request_changes(
        self, content_id: str, user_id: str, changes: str, reason: str | None
    ) -> ApprovalItem:
        item = await self._require(content_id)
        item.status = ApprovalStatus.PENDING_CHANGES
        item.changes = changes
        item.reason = reason
        await self._save(item)
        logger.info("approval.changes_requested", content_id=content_id, user_id=user_id)
        return item

    async def _require(self, content_id: str) -> ApprovalItem:
        item = await self.get(content_id)
        if item is None:
            raise AppError(404, "Content not found", "CONTENT_NOT_FOUND")
        return item

    async def _save(self, item: ApprovalItem) -> None:
        await self._store.set_json(self._key(item.id), item.model_dump(mode="json"))
