"""Integration tests for the Recall.ai bot endpoints and webhook receiver.

The conftest app runs BotManager without a Recall.ai client, so bots are
in-process mock bots.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from src.app.config import Settings

ZOOM_URL = "https://zoom.us/j/123456789"


# ── Bot lifecycle ────────────────────────────────────────────────────────────


class TestBotActions:
    async def test_schedule_then_status_and_transcript(self, client):
        created = await client.post(
            "/api/recall/bots",
            json={"action": "schedule", "meetingUrl": ZOOM_URL, "config": {"botName": "Notes"}},
        )

        assert created.status_code == 200
        body = created.json()
        assert body["metadata"]["action"] == "schedule"
        bot = body["data"]
        assert bot["externalBotId"] == "mock-bot-1"
        assert bot["meetingPlatform"] == "zoom"
        assert bot["config"]["botName"] == "Notes"

        status = await client.post(
            "/api/recall/bots", json={"action": "status", "botId": "mock-bot-1"}
        )
        assert status.json()["data"]["status"] == "ready"

        transcript = await client.get(
            "/api/recall/bots", params={"botId": "mock-bot-1", "action": "transcript"}
        )
        assert transcript.json()["data"]["speakers"] == ["Advisor", "Client"]

    async def test_schedule_requires_meeting_url(self, client):
        response = await client.post("/api/recall/bots", json={"action": "schedule"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_MEETING_URL"

    async def test_status_requires_bot_id(self, client):
        response = await client.post("/api/recall/bots", json={"action": "status"})
        assert response.json()["error"]["code"] == "MISSING_BOT_ID"

    async def test_invalid_action(self, client):
        response = await client.post("/api/recall/bots", json={"action": "explode"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ACTION"

    async def test_cancel(self, client):
        await client.post("/api/recall/bots", json={"action": "schedule", "meetingUrl": ZOOM_URL})

        response = await client.post(
            "/api/recall/bots", json={"action": "cancel", "botId": "mock-bot-1"}
        )

        assert response.json()["data"] == {"botId": "mock-bot-1", "cancelled": True}

    async def test_unknown_bot_is_404(self, client):
        response = await client.get("/api/recall/bots", params={"botId": "missing"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_list_bots(self, client):
        await client.post("/api/recall/bots", json={"action": "schedule", "meetingUrl": ZOOM_URL})

        response = await client.get("/api/recall/bots", params={"limit": 5})

        body = response.json()
        assert body["data"]["totalCount"] == 1
        assert body["data"]["filters"] == {"limit": 5, "status": None}
        assert body["metadata"]["usingMockData"] is True

    async def test_list_limit_is_bounded(self, client):
        response = await client.get("/api/recall/bots", params={"limit": 500})
        assert response.status_code == 400

    async def test_poll_status_flattens_outputs(self, client):
        await client.post("/api/recall/bots", json={"action": "schedule", "meetingUrl": ZOOM_URL})

        response = await client.get("/api/recall/bots/mock-bot-1/status")

        body = response.json()
        assert body["data"]["botId"] == "bot_mock-bot-1"
        assert body["data"]["hasRecording"] is False
        assert body["data"]["hasTranscript"] is False
        assert "polledAt" in body["metadata"]


# ── Per-user scheduling ──────────────────────────────────────────────────────


class TestUserScheduling:
    async def test_schedule_for_event_and_list(self, client):
        response = await client.post(
            "/api/recall/bots/schedule",
            json={"eventId": "event-1", "meetingUrl": ZOOM_URL},
        )

        assert response.status_code == 200
        schedule = response.json()["data"]
        assert schedule["eventId"] == "event-1"
        assert schedule["userId"] == "advisor@example.com"
        assert schedule["joinMinutesBefore"] == 5

        listing = await client.get("/api/recall/bots/status")
        body = listing.json()
        assert body["metadata"]["totalMeetings"] == 1
        assert body["data"]["event-1"]["botScheduled"] is True

    async def test_concurrency_limit_is_409(self, client):
        await client.post("/api/settings/bot", json={"joinMinutesBefore": 5, "maxConcurrentBots": 1})
        await client.post(
            "/api/recall/bots/schedule", json={"eventId": "event-1", "meetingUrl": ZOOM_URL}
        )

        response = await client.post(
            "/api/recall/bots/schedule", json={"eventId": "event-2", "meetingUrl": ZOOM_URL}
        )

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "BOT_LIMIT_REACHED"
        assert "Maximum concurrent bots limit reached (1)" in error["message"]

    async def test_cancel_action_frees_a_slot(self, client):
        await client.post("/api/settings/bot", json={"joinMinutesBefore": 5, "maxConcurrentBots": 1})
        await client.post(
            "/api/recall/bots/schedule", json={"eventId": "event-1", "meetingUrl": ZOOM_URL}
        )

        await client.post("/api/recall/bots", json={"action": "cancel", "botId": "mock-bot-1"})
        response = await client.post(
            "/api/recall/bots/schedule", json={"eventId": "event-2", "meetingUrl": ZOOM_URL}
        )

        assert response.status_code == 200
        listing = await client.get("/api/recall/bots/status")
        assert listing.json()["data"]["event-1"]["status"] == "cancelled"

    async def test_explicit_join_minutes(self, client):
        response = await client.post(
            "/api/recall/bots/schedule",
            json={"eventId": "event-1", "meetingUrl": ZOOM_URL, "joinMinutesBefore": 12},
        )

        assert response.json()["data"]["joinMinutesBefore"] == 12

    @pytest.mark.parametrize("minutes", [-500, 0, 31])
    async def test_join_minutes_out_of_range(self, client, minutes):
        response = await client.post(
            "/api/recall/bots/schedule",
            json={"eventId": "event-1", "meetingUrl": ZOOM_URL, "joinMinutesBefore": minutes},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        listing = await client.get("/api/recall/bots/status")
        assert listing.json()["metadata"]["totalMeetings"] == 0

    async def test_delete_cancels_user_bot(self, client):
        await client.post(
            "/api/recall/bots/schedule", json={"eventId": "event-1", "meetingUrl": ZOOM_URL}
        )

        response = await client.delete("/api/recall/bots", params={"botId": "mock-bot-1"})

        assert response.json()["data"]["cancelled"] is True
        listing = await client.get("/api/recall/bots/status")
        assert listing.json()["data"]["event-1"]["status"] == "cancelled"

    async def test_delete_requires_bot_id(self, client):
        response = await client.delete("/api/recall/bots")
        assert response.json()["error"]["code"] == "MISSING_BOT_ID"

    async def test_manager_not_initialized(self, app, client):
        app.state.bot_manager = None

        response = await client.get("/api/recall/bots")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"


# ── Webhooks ─────────────────────────────────────────────────────────────────


class TestRecallWebhook:
    async def test_event_is_acknowledged(self, client):
        response = await client.post(
            "/api/webhooks/recall",
            json={"event": "bot.status_changed", "bot_id": "b1", "data": {"status": "done"}},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Webhook processed successfully"}

    async def test_unknown_event_is_acknowledged(self, client):
        response = await client.post("/api/webhooks/recall", json={"event": "bot.something"})
        assert response.status_code == 200

    async def test_invalid_json(self, client):
        response = await client.post(
            "/api/webhooks/recall",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PAYLOAD"

    async def test_non_object_payload(self, client):
        response = await client.post("/api/webhooks/recall", json=["a", "b"])
        assert response.json()["error"]["code"] == "INVALID_PAYLOAD"

    async def test_token_is_checked_when_configured(self, client):
        settings = Settings(RECALL_AI_WEBHOOK_TOKEN="shared-secret")
        with patch("src.app.api.v1.webhooks.get_settings", return_value=settings):
            rejected = await client.post(
                "/api/webhooks/recall",
                json={"event": "bot.error"},
                headers={"X-Recall-Token": "wrong"},
            )
            accepted = await client.post(
                "/api/webhooks/recall",
                json={"event": "bot.error"},
                headers={"X-Recall-Token": "shared-secret"},
            )

        assert rejected.status_code == 401
        assert rejected.json()["error"]["code"] == "UNAUTHORIZED"
        assert accepted.status_code == 200

    async def test_webhook_needs_no_session(self, anon_client):
        response = await anon_client.post("/api/webhooks/recall", json={"event": "bot.error"})
        assert response.status_code == 200

    async def test_health(self, anon_client):
        response = await anon_client.get("/api/webhooks/recall")

        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == "recall-webhook"
