"""Tests for the meeting-bot layer.

Covers Recall.ai payload mapping, RecallClient (mocked httpx), BotManager in
mock mode and against a mocked RecallClient, per-user scheduling with the
concurrency limit, and the BotScheduleRepository.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.app.core.errors import UpstreamError
from src.app.meetings.bot.manager import BotManager
from src.app.meetings.bot.mapping import (
    bot_from_api,
    detect_meeting_platform,
    meeting_id_for,
    resolve_meeting_url,
    transcript_from_api,
)
from src.app.meetings.bot.recall_client import (
    RecallClient,
    extract_status,
    transcript_download_url,
)
from src.app.meetings.repository import BotScheduleRepository
from src.app.meetings.schemas import BotSchedule, BotSettings, MeetingPlatform
from src.app.preferences.repository import PreferencesRepository

ZOOM_URL = "https://zoom.us/j/123456789"

RECALL_BOT = {
    "id": "abc-123",
    "meeting_url": {"meeting_id": "abc-defg-hij", "platform": "google_meet"},
    "status_changes": [{"code": "joining_call"}, {"code": "done"}],
    "created_at": "2026-03-01T10:00:00Z",
    "recordings": [
        {
            "media_shortcuts": {
                "transcript": {"data": {"download_url": "https://files.recall.ai/t.json"}}
            }
        }
    ],
}


def _response(status_code: int, json, method: str = "GET") -> httpx.Response:
    return httpx.Response(
        status_code,
        json=json,
        request=httpx.Request(method, "https://us-east-1.recall.ai/api/v1/bot/"),
    )


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def schedules(store) -> BotScheduleRepository:
    return BotScheduleRepository(store)


@pytest.fixture
def preferences(store) -> PreferencesRepository:
    return PreferencesRepository(store)


@pytest.fixture
def mock_manager(schedules, preferences) -> BotManager:
    return BotManager(None, schedules, preferences, bot_name="Test Bot")


@pytest.fixture
def recall() -> MagicMock:
    client = MagicMock(spec=RecallClient)
    client.create_bot = AsyncMock(return_value={"id": "ext-1", "status": {"code": "ready"}})
    client.get_bot = AsyncMock(return_value=RECALL_BOT)
    client.download_transcript = AsyncMock(return_value="hello from the meeting")
    client.delete_bot = AsyncMock(return_value=None)
    client.list_bots = AsyncMock(return_value=[RECALL_BOT])
    client.get_transcript = AsyncMock(
        return_value=[
            {
                "speaker": "Advisor",
                "words": [
                    {"text": "Hello", "start_time": 0.5, "end_time": 0.9},
                    {"text": "there", "start_time": 1.0, "end_time": 1.4},
                ],
            },
            {"participant": {"name": "Client"}, "words": [{"text": "Hi", "end_time": 2.0}]},
        ]
    )
    return client


@pytest.fixture
def real_manager(recall, schedules, preferences) -> BotManager:
    return BotManager(
        recall,
        schedules,
        preferences,
        bot_name="Test Bot",
        webhook_url="http://test/api/webhooks/recall",
    )


# ── Mapping ──────────────────────────────────────────────────────────────────


class TestMapping:
    @pytest.mark.parametrize(
        "url, platform",
        [
            (ZOOM_URL, MeetingPlatform.ZOOM),
            ("https://meet.google.com/abc-defg-hij", MeetingPlatform.GOOGLE_MEET),
            ("https://teams.microsoft.com/l/meetup-join/1", MeetingPlatform.MICROSOFT_TEAMS),
            ("https://acme.webex.com/meet/x", MeetingPlatform.WEBEX),
            ("https://example.com/call", MeetingPlatform.OTHER),
            (None, MeetingPlatform.OTHER),
        ],
    )
    def test_detect_platform(self, url, platform):
        assert detect_meeting_platform(url) == platform

    def test_resolve_meeting_url_object_form(self):
        assert resolve_meeting_url({"meeting_id": "9", "platform": "zoom"}) == "https://zoom.us/j/9"
        assert resolve_meeting_url(ZOOM_URL) == ZOOM_URL
        assert resolve_meeting_url(None) == "unknown"

    def test_meeting_id_for(self):
        assert meeting_id_for(ZOOM_URL) == "zoom.us/j/123456789"

    def test_bot_from_api(self):
        bot = bot_from_api(RECALL_BOT, bot_name="Test Bot")

        assert bot.id == "bot_abc-123"
        assert bot.external_bot_id == "abc-123"
        assert bot.meeting_url == "https://meet.google.com/abc-defg-hij"
        assert bot.meeting_platform == MeetingPlatform.GOOGLE_MEET
        assert bot.status == "done"
        assert bot.transcript_url == "https://files.recall.ai/t.json"
        assert bot.scheduled_at == "2026-03-01T10:00:00.000Z"
        assert bot.config.bot_name == "Test Bot"

    def test_extract_status(self):
        assert extract_status({"status": {"code": "in_call_recording"}}) == "in_call_recording"
        assert extract_status({"status_changes": [{"code": "ready"}]}) == "ready"
        assert extract_status({}) == "unknown"

    def test_transcript_download_url_missing(self):
        assert transcript_download_url({"recordings": []}) is None

    def test_transcript_list_shape(self):
        transcript = transcript_from_api(
            "b1",
            [
                {"speaker": "Advisor", "words": [{"text": "Good", "start_time": 1.0}, {"text": "morning", "end_time": 2.5}]},
                {"speaker": "Client", "words": []},
            ],
        )
        assert transcript.content == "Advisor: Good morning\nClient: "
        assert transcript.speakers == ["Advisor", "Client"]
        assert transcript.segments[0].start_time == 1.0
        assert transcript.segments[0].end_time == 2.5

    def test_transcript_document_shape(self):
        transcript = transcript_from_api(
            "b1", {"transcript": "Hello there", "speakers": ["A"], "word_count": 2}
        )
        assert transcript.content == "Hello there"
        assert transcript.word_count == 2
        assert transcript.language == "en"


# ── RecallClient ─────────────────────────────────────────────────────────────


class TestRecallClient:
    def test_base_url_uses_region(self):
        assert RecallClient("key", "eu-central-1").base_url == "https://eu-central-1.recall.ai/api/v1"

    async def test_create_bot(self):
        client = RecallClient("key")
        response = _response(201, {"id": "bot-1"}, "POST")
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=response) as mock_post:
            data = await client.create_bot({"meeting_url": ZOOM_URL, "bot_name": "B"})

        assert data["id"] == "bot-1"
        assert mock_post.await_args.args[0] == "https://us-east-1.recall.ai/api/v1/bot/"
        assert mock_post.await_args.kwargs["json"]["meeting_url"] == ZOOM_URL

    async def test_get_bot_error_raises(self):
        client = RecallClient("key")
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(404, {})):
            with pytest.raises(httpx.HTTPStatusError):
                await client.get_bot("missing")

    async def test_list_bots_reads_results_page(self):
        client = RecallClient("key")
        response = _response(200, {"results": [{"id": "a"}, {"id": "b"}]})
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=response) as mock_get:
            bots = await client.list_bots(limit=5, status="done")

        assert [b["id"] for b in bots] == ["a", "b"]
        assert mock_get.await_args.kwargs["params"] == {"limit": 5, "status": "done"}

    async def test_download_transcript_joins_words(self):
        client = RecallClient("key")
        entries = [
            {"participant": {"name": "A"}, "words": [{"text": "Hello"}, {"text": "world"}]},
            {"participant": {"name": "B"}, "words": [{"text": ""}, {"text": "bye"}]},
        ]
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(200, entries)):
            text = await client.download_transcript("https://files.recall.ai/t.json")

        assert text == "Hello world bye"


# ── BotManager (mock mode) ───────────────────────────────────────────────────


class TestBotManagerMockMode:
    async def test_schedule_creates_ready_mock_bot(self, mock_manager):
        bot = await mock_manager.schedule_bot(ZOOM_URL, join_minutes_before=7)

        assert mock_manager.mock_mode is True
        assert bot.external_bot_id == "mock-bot-1"
        assert bot.id == "bot_mock-bot-1"
        assert bot.status == "ready"
        assert bot.meeting_platform == MeetingPlatform.ZOOM
        assert bot.config.join_minutes_before == 7
        assert bot.config.bot_name == "Test Bot"

    async def test_status_list_cancel_transcript(self, mock_manager):
        bot = await mock_manager.schedule_bot(ZOOM_URL)

        assert (await mock_manager.get_bot_status(bot.external_bot_id)).status == "ready"
        assert len(await mock_manager.list_bots()) == 1

        transcript = await mock_manager.get_transcript(bot.external_bot_id)
        assert transcript.speakers == ["Advisor", "Client"]
        assert transcript.word_count > 0

        await mock_manager.cancel_bot(bot.external_bot_id)
        assert await mock_manager.list_bots(status="ready") == []

    async def test_unknown_bot_is_upstream_404(self, mock_manager):
        with pytest.raises(UpstreamError) as exc_info:
            await mock_manager.get_bot_status("nope")
        assert exc_info.value.status_code == 404


# ── BotManager (Recall.ai) ───────────────────────────────────────────────────


class TestBotManagerRecall:
    async def test_schedule_sends_defaults_and_overrides(self, real_manager, recall):
        bot = await real_manager.schedule_bot(
            ZOOM_URL, config={"bot_name": "Custom", "record_video": True}
        )

        payload = recall.create_bot.await_args.args[0]
        assert payload["meeting_url"] == ZOOM_URL
        assert payload["bot_name"] == "Custom"
        assert payload["record_audio"] is True
        assert payload["record_video"] is True
        assert payload["webhook_url"] == "http://test/api/webhooks/recall"
        assert payload["transcription_options"]["provider"] == "assembly_ai"
        assert bot.external_bot_id == "ext-1"
        assert bot.meeting_url == ZOOM_URL
        assert bot.config.record_video is True

    async def test_status_downloads_transcript(self, real_manager, recall):
        bot = await real_manager.get_bot_status("abc-123")

        recall.download_transcript.assert_awaited_once_with("https://files.recall.ai/t.json")
        assert bot.transcript_text == "hello from the meeting"

    async def test_failed_download_leaves_text_empty(self, real_manager, recall):
        recall.download_transcript.side_effect = httpx.ConnectError("down")

        bot = await real_manager.get_bot_status("abc-123")

        assert bot.transcript_text is None
        assert bot.status == "done"

    async def test_http_errors_become_upstream_errors(self, real_manager, recall):
        response = _response(404, {"detail": "Not found"})
        recall.get_bot.side_effect = httpx.HTTPStatusError(
            "404", request=response.request, response=response
        )

        with pytest.raises(UpstreamError) as exc_info:
            await real_manager.get_bot_status("missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.service == "Recall.ai"

    async def test_transcript_list_shape(self, real_manager):
        transcript = await real_manager.get_transcript("abc-123")

        assert transcript.speakers == ["Advisor", "Client"]
        assert transcript.content == "Advisor: Hello there\nClient: Hi"
        assert transcript.duration == 2.0

    async def test_cancel_deletes_bot(self, real_manager, recall):
        await real_manager.cancel_bot("abc-123")
        recall.delete_bot.assert_awaited_once_with("abc-123")


# ── Per-user scheduling ──────────────────────────────────────────────────────


class TestUserScheduling:
    async def test_schedule_uses_user_settings(self, mock_manager, preferences):
        await preferences.save_bot_settings("a@example.com", BotSettings(join_minutes_before=10))

        result = await mock_manager.schedule_with_user_settings("a@example.com", "event-1", ZOOM_URL)

        assert result.success is True
        assert result.data.join_minutes_before == 10
        assert result.data.settings_used.join_minutes_before == 10
        schedules = await mock_manager.get_user_schedules("a@example.com")
        assert schedules["event-1"]["botScheduled"] is True
        assert schedules["event-1"]["botId"] == "mock-bot-1"

    async def test_explicit_minutes_override_settings(self, mock_manager):
        result = await mock_manager.schedule_with_user_settings(
            "a@example.com", "event-1", ZOOM_URL, join_minutes_before=2
        )
        assert result.data.join_minutes_before == 2

    async def test_explicit_minutes_win_over_saved_settings(self, mock_manager, preferences):
        await preferences.save_bot_settings("a@example.com", BotSettings(join_minutes_before=10))

        result = await mock_manager.schedule_with_user_settings(
            "a@example.com", "event-1", ZOOM_URL, join_minutes_before=1
        )

        assert result.data.join_minutes_before == 1
        assert result.data.settings_used.join_minutes_before == 10

    async def test_concurrency_limit(self, mock_manager, preferences):
        await preferences.save_bot_settings("a@example.com", BotSettings(max_concurrent_bots=1))
        await mock_manager.schedule_with_user_settings("a@example.com", "event-1", ZOOM_URL)

        result = await mock_manager.schedule_with_user_settings("a@example.com", "event-2", ZOOM_URL)

        assert result.success is False
        assert "Maximum concurrent bots limit reached (1)" in result.error

    async def test_cancelled_bots_free_a_slot(self, mock_manager, preferences):
        await preferences.save_bot_settings("a@example.com", BotSettings(max_concurrent_bots=1))
        first = await mock_manager.schedule_with_user_settings("a@example.com", "event-1", ZOOM_URL)

        await mock_manager.cancel_user_bot("a@example.com", first.data.external_bot_id)
        result = await mock_manager.schedule_with_user_settings("a@example.com", "event-2", ZOOM_URL)

        assert result.success is True


class TestBotScheduleRepository:
    def _schedule(self, event_id: str, status: str) -> BotSchedule:
        return BotSchedule(
            bot_id=f"bot_{event_id}",
            external_bot_id=event_id,
            event_id=event_id,
            user_id="a@example.com",
            scheduled_at="2026-03-01T10:00:00.000Z",
            meeting_url=ZOOM_URL,
            join_minutes_before=5,
            status=status,
            settings_used=BotSettings(),
        )

    async def test_count_active_skips_finished(self, schedules):
        await schedules.save(self._schedule("e1", "ready"))
        await schedules.save(self._schedule("e2", "done"))
        await schedules.save(self._schedule("e3", "fatal"))

        assert await schedules.count_active("a@example.com") == 1
        assert await schedules.count_active("other@example.com") == 0

    async def test_get_round_trip(self, schedules):
        await schedules.save(self._schedule("e1", "ready"))
        loaded = await schedules.get("a@example.com", "e1")
        assert loaded.status == "ready"
        assert await schedules.get("a@example.com", "missing") is None
