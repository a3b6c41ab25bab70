"""Pydantic v2 schemas for the meeting-bot domain.

Defines the data contracts for Recall.ai bots, transcripts, per-user bot
settings and the schedules recorded when a bot is sent to a calendar event.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from src.app.core.schemas import CamelModel


# ── Enums ────────────────────────────────────────────────────────────────────


class MeetingPlatform(str, Enum):
    """Video platform inferred from a meeting URL."""

    ZOOM = "zoom"
    GOOGLE_MEET = "google_meet"
    MICROSOFT_TEAMS = "microsoft_teams"
    WEBEX = "webex"
    OTHER = "other"


class BotStatus(str, Enum):
    """Recall.ai bot status codes surfaced to callers."""

    READY = "ready"
    JOINING_CALL = "joining_call"
    IN_WAITING_ROOM = "in_waiting_room"
    IN_CALL_NOT_RECORDING = "in_call_not_recording"
    IN_CALL_RECORDING = "in_call_recording"
    CALL_ENDED = "call_ended"
    DONE = "done"
    FATAL = "fatal"
    UNKNOWN = "unknown"


# ── Bot Models ───────────────────────────────────────────────────────────────


class BotOutputs(CamelModel):
    """Artifacts available once a bot has recorded a meeting."""

    recording_url: str | None = None
    transcript_url: str | None = None
    summary_url: str | None = None
    participant_count: int | None = None
    recording_size: int | None = None
    transcript_word_count: int | None = None


class BotConfig(CamelModel):
    """Effective recording configuration of a bot."""

    record_audio: bool = True
    record_video: bool = False
    record_screen: bool = False
    transcription_enabled: bool = True
    real_time_transcription: bool = False
    join_minutes_before: int = 5
    bot_name: str = "Post-Meeting Content Bot"
    webhook_url: str | None = None


class RecallBot(CamelModel):
    """A meeting bot as seen by this service."""

    id: str
    external_bot_id: str
    meeting_id: str
    meeting_url: str
    status: str = BotStatus.UNKNOWN.value
    scheduled_at: str
    joined_at: str | None = None
    started_recording_at: str | None = None
    ended_at: str | None = None
    outputs: BotOutputs = Field(default_factory=BotOutputs)
    meeting_platform: MeetingPlatform = MeetingPlatform.OTHER
    errors: list[str] = Field(default_factory=list)
    config: BotConfig = Field(default_factory=BotConfig)
    transcript_url: str | None = None
    transcript_text: str | None = None


class TranscriptSegment(CamelModel):
    speaker: str
    text: str
    start_time: float = 0.0
    end_time: float = 0.0
    confidence: float = 0.95


class MeetingTranscript(CamelModel):
    """Transcript of a completed bot recording."""

    bot_id: str
    meeting_id: str | None = None
    content: str = ""
    speakers: list[str] = Field(default_factory=list)
    segments: list[TranscriptSegment] = Field(default_factory=list)
    summary: str | None = None
    key_points: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    duration: float = 0
    word_count: int = 0
    language: str = "en"
    created_at: str | None = None


# ── Per-user Settings & Schedules ────────────────────────────────────────────


class BotSettings(CamelModel):
    """Per-user bot preferences."""

    join_minutes_before: int = Field(5, description="Minutes before start the bot joins (1-30)")
    auto_schedule: bool = False
    max_concurrent_bots: int = Field(3, description="Active schedules allowed at once (1-10)")
    updated_at: str | None = None


class BotSchedule(CamelModel):
    """Record of a bot sent to a calendar event."""

    bot_id: str
    external_bot_id: str
    event_id: str
    user_id: str
    scheduled_at: str
    meeting_url: str
    join_minutes_before: int
    status: str
    recall_response: dict = Field(default_factory=dict)
    settings_used: BotSettings


class ScheduleResult(CamelModel):
    """Outcome of scheduling with user settings; ``error`` set on refusal."""

    success: bool
    data: BotSchedule | None = None
    error: str | None = None
