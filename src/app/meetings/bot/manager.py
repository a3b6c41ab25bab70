"""BotManager for meeting bot lifecycle management.

Handles the Recall.ai bot lifecycle used by the API: creating a bot for a
meeting URL, polling status (downloading the transcript text once
available), listing, cancelling and reading transcripts. Scheduling on
behalf of a user applies their BotSettings and the concurrent-bot limit and
records a BotSchedule per calendar event.

When no Recall.ai key is configured (or MOCK_MODE is on) the manager runs
against an in-process set of mock bots so the rest of the API behaves the
same way.
"""

from __future__ import annotations

import itertools
from typing import Any

import httpx
import structlog

from src.app.core.dates import now_iso
from src.app.core.errors import UpstreamError
from src.app.meetings.bot.mapping import (
    bot_from_api,
    detect_meeting_platform,
    meeting_id_for,
    transcript_from_api,
)
from src.app.meetings.bot.recall_client import RecallClient
from src.app.meetings.repository import BotScheduleRepository
from src.app.meetings.schemas import (
    BotConfig,
    BotSchedule,
    MeetingTranscript,
    RecallBot,
    ScheduleResult,
)
from src.app.preferences.repository import PreferencesRepository

logger = structlog.get_logger(__name__)

DEFAULT_BOT_NAME = "Post-Meeting Content Bot"

# Recording defaults sent with every bot
DEFAULT_BOT_CONFIG: dict[str, Any] = {
    "record_audio": True,
    "record_video": False,
    "record_screen": False,
    "transcription_options": {"provider": "assembly_ai", "language": "en"},
}

MOCK_TRANSCRIPT = (
    "Advisor: Thanks for joining today's portfolio review.\n"
    "Client: Happy to be here. I wanted to talk about retirement timing.\n"
    "Advisor: We looked at diversification and how your allocation has drifted.\n"
    "Client: That makes sense. What should we review next quarter?\n"
    "Advisor: Let's revisit your risk tolerance and the education savings plan."
)


class BotManager:
    """Manages Recall.ai meeting bots for the API layer.

    Args:
        recall_client: RecallClient for Recall.ai API calls, or None to run
            on mock bots.
        schedules: Repository of per-event bot schedules.
        preferences: Repository holding each user's BotSettings.
        bot_name: Display name the bot joins with.
        webhook_url: Optional status-change webhook sent with each bot.
    """

    def __init__(
        self,
        recall_client: RecallClient | None,
        schedules: BotScheduleRepository,
        preferences: PreferencesRepository,
        bot_name: str = DEFAULT_BOT_NAME,
        webhook_url: str | None = None,
    ) -> None:
        self._recall = recall_client
        self._schedules = schedules
        self._preferences = preferences
        self._bot_name = bot_name
        self._webhook_url = webhook_url
        self._mock_bots: dict[str, RecallBot] = {}
        self._mock_ids = itertools.count(1)

    @property
    def mock_mode(self) -> bool:
        return self._recall is None

    # ── Low-level lifecycle ─────────────────────────────────────────────

    async def schedule_bot(
        self,
        meeting_url: str,
        config: dict | None = None,
        join_minutes_before: int = 5,
    ) -> RecallBot:
        """Create a bot that joins ``meeting_url``.

        Args:
            meeting_url: Zoom/Meet/Teams/Webex join URL.
            config: Extra Recall.ai bot options merged over the defaults.
            join_minutes_before: Recorded on the returned bot's config.

        Raises:
            UpstreamError: If Recall.ai rejects the request.
        """
        overrides = dict(config or {})
        bot_name = overrides.pop("bot_name", None) or self._bot_name
        payload = {
            **DEFAULT_BOT_CONFIG,
            **overrides,
            "meeting_url": meeting_url,
            "bot_name": bot_name,
        }
        if self._webhook_url and "webhook_url" not in payload:
            payload["webhook_url"] = self._webhook_url

        if self._recall is None:
            bot = self._create_mock_bot(meeting_url, bot_name, join_minutes_before)
        else:
            data = await self._call(self._recall.create_bot(payload))
            bot = bot_from_api(
                {**data, "meeting_url": data.get("meeting_url") or meeting_url},
                bot_name=bot_name,
                join_minutes_before=join_minutes_before,
            )
            bot.config.record_audio = payload["record_audio"]
            bot.config.record_video = payload["record_video"]
            bot.config.record_screen = payload["record_screen"]

        logger.info(
            "bot_manager.bot_scheduled",
            bot_id=bot.external_bot_id,
            platform=bot.meeting_platform.value,
            mock=self.mock_mode,
        )
        return bot

    async def get_bot_status(self, bot_id: str) -> RecallBot:
        """Fetch a bot, downloading its transcript text when one exists.

        A failed transcript download leaves ``transcript_text`` empty rather
        than failing the status call.
        """
        if self._recall is None:
            return self._get_mock_bot(bot_id)

        data = await self._call(self._recall.get_bot(bot_id))
        bot = bot_from_api(data, bot_name=self._bot_name)
        if bot.transcript_url:
            try:
                bot.transcript_text = await self._recall.download_transcript(bot.transcript_url)
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning(
                    "bot_manager.transcript_download_failed",
                    bot_id=bot_id,
                    error=str(exc),
                )
        return bot

    async def cancel_bot(self, bot_id: str) -> None:
        if self._recall is None:
            self._get_mock_bot(bot_id).status = "cancelled"
        else:
            await self._call(self._recall.delete_bot(bot_id))
        logger.info("bot_manager.bot_cancelled", bot_id=bot_id)

    async def list_bots(
        self,
        limit: int = 20,
        status: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
    ) -> list[RecallBot]:
        if self._recall is None:
            bots = [b for b in self._mock_bots.values() if not status or b.status == status]
            return bots[:limit]

        results = await self._call(
            self._recall.list_bots(
                limit=limit,
                status=status,
                created_after=created_after,
                created_before=created_before,
            )
        )
        return [bot_from_api(r, bot_name=self._bot_name) for r in results]

    async def get_transcript(self, bot_id: str) -> MeetingTranscript:
        if self._recall is None:
            self._get_mock_bot(bot_id)
            return transcript_from_api(
                bot_id,
                {"transcript": MOCK_TRANSCRIPT, "speakers": ["Advisor", "Client"],
                 "word_count": len(MOCK_TRANSCRIPT.split())},
            )
        data = await self._call(self._recall.get_transcript(bot_id))
        return transcript_from_api(bot_id, data)

    # ── User-level scheduling ───────────────────────────────────────────

    async def schedule_with_user_settings(
        self,
        user_id: str,
        event_id: str,
        meeting_url: str,
        join_minutes_before: int | None = None,
    ) -> ScheduleResult:
        """Send a bot to a calendar event using the user's BotSettings.

        Refuses (``success=False``) when the user already has
        ``max_concurrent_bots`` active schedules.
        """
        settings = await self._preferences.get_bot_settings(user_id)
        active = await self._schedules.count_active(user_id)
        if active >= settings.max_concurrent_bots:
            logger.info(
                "bot_manager.concurrency_limit",
                user_id=user_id,
                active=active,
                limit=settings.max_concurrent_bots,
            )
            return ScheduleResult(
                success=False,
                error=(
                    f"Maximum concurrent bots limit reached ({settings.max_concurrent_bots}). "
                    "Please wait for some bots to complete."
                ),
            )

        minutes = join_minutes_before
        if minutes is None:
            minutes = settings.join_minutes_before
        bot = await self.schedule_bot(meeting_url, join_minutes_before=minutes)
        schedule = BotSchedule(
            bot_id=bot.id,
            external_bot_id=bot.external_bot_id,
            event_id=event_id,
            user_id=user_id,
            scheduled_at=now_iso(),
            meeting_url=meeting_url,
            join_minutes_before=minutes,
            status=bot.status,
            recall_response=bot.model_dump(mode="json", by_alias=True),
            settings_used=settings,
        )
        await self._schedules.save(schedule)
        return ScheduleResult(success=True, data=schedule)

    async def get_user_schedules(self, user_id: str) -> dict[str, dict]:
        """Map of event id to the bot scheduled for it."""
        return {
            s.event_id: {
                "botScheduled": True,
                "botId": s.external_bot_id,
                "scheduledAt": s.scheduled_at,
                "status": s.status,
            }
            for s in await self._schedules.list_for_user(user_id)
        }

    async def cancel_user_bot(self, user_id: str, bot_id: str) -> None:
        await self.cancel_bot(bot_id)
        await self._schedules.mark_cancelled(user_id, bot_id)

    # ── Internals ───────────────────────────────────────────────────────

    @staticmethod
    async def _call(coro: Any) -> Any:
        """Await a RecallClient call, converting HTTP failures to UpstreamError."""
        try:
            return await coro
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(
                "Recall.ai", exc.response.text, exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError("Recall.ai", str(exc) or type(exc).__name__) from exc

    def _create_mock_bot(self, meeting_url: str, bot_name: str, minutes: int) -> RecallBot:
        external_id = f"mock-bot-{next(self._mock_ids)}"
        bot = RecallBot(
            id=f"bot_{external_id}",
            external_bot_id=external_id,
            meeting_id=meeting_id_for(meeting_url),
            meeting_url=meeting_url,
            status="ready",
            scheduled_at=now_iso(),
            meeting_platform=detect_meeting_platform(meeting_url),
            config=BotConfig(join_minutes_before=minutes, bot_name=bot_name),
        )
        self._mock_bots[external_id] = bot
        return bot

    def _get_mock_bot(self, bot_id: str) -> RecallBot:
        bot = self._mock_bots.get(bot_id)
        if bot is None:
            raise UpstreamError("Recall.ai", f"Bot {bot_id} not found", 404)
        return bot
