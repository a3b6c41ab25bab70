"""Bot schedule repository on the key-value store.

A schedule is stored per (user, calendar event) under
``bot-schedule:<email>:<event_id>``. Loading and saving go through Pydantic
``model_dump(mode="json")`` / ``model_validate()``.
"""

from __future__ import annotations

import structlog

from src.app.core.store import KeyValueStore
from src.app.meetings.schemas import BotSchedule

logger = structlog.get_logger(__name__)

# Statuses after which a bot no longer counts toward the concurrency limit
FINISHED_STATUSES = frozenset({"done", "call_ended", "fatal", "cancelled", "analysis_done"})


class BotScheduleRepository:
    """Async CRUD for BotSchedule records.

    Args:
        store: Key-value store holding schedule documents.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @staticmethod
    def _key(user_id: str, event_id: str = "") -> str:
        return f"bot-schedule:{user_id}:{event_id}"

    async def save(self, schedule: BotSchedule) -> BotSchedule:
        await self._store.set_json(
            self._key(schedule.user_id, schedule.event_id),
            schedule.model_dump(mode="json"),
        )
        logger.info(
            "bot_schedule.saved",
            user_id=schedule.user_id,
            event_id=schedule.event_id,
            bot_id=schedule.bot_id,
        )
        return schedule

    async def get(self, user_id: str, event_id: str) -> BotSchedule | None:
        raw = await self._store.get_json(self._key(user_id, event_id))
        return BotSchedule.model_validate(raw) if raw else None

    async def list_for_user(self, user_id: str) -> list[BotSchedule]:
        schedules = []
        for key in await self._store.keys(self._key(user_id)):
            raw = await self._store.get_json(key)
            if raw:
                schedules.append(BotSchedule.model_validate(raw))
        return schedules

    async def count_active(self, user_id: str) -> int:
        return sum(
            1 for s in await self.list_for_user(user_id) if s.status not in FINISHED_STATUSES
        )

    async def mark_cancelled(self, user_id: str, external_bot_id: str) -> None:
        """Flag the schedule owning ``external_bot_id`` as cancelled, if any."""
        for schedule in await self.list_for_user(user_id):
            if schedule.external_bot_id == external_bot_id:
                await self.save(schedule.model_copy(update={"status": "cancelled"}))
                return
