"""Translate raw Recall.ai payloads into RecallBot / MeetingTranscript."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from src.app.core.dates import now_iso, parse_to_iso
from src.app.meetings.bot.recall_client import extract_status, transcript_download_url
from src.app.meetings.schemas import (
    BotConfig,
    BotOutputs,
    MeetingPlatform,
    MeetingTranscript,
    RecallBot,
    TranscriptSegment,
)

_PLATFORM_HOSTS: list[tuple[MeetingPlatform, tuple[str, ...]]] = [
    (MeetingPlatform.ZOOM, ("zoom.us", "zoom.com")),
    (MeetingPlatform.GOOGLE_MEET, ("meet.google.com", "google.com/meet")),
    (MeetingPlatform.MICROSOFT_TEAMS, ("teams.microsoft.com", "teams.live.com")),
    (MeetingPlatform.WEBEX, ("webex.com", "cisco.com")),
]


def detect_meeting_platform(meeting_url: str | None) -> MeetingPlatform:
    """Infer the video platform from a meeting URL by substring match."""
    if not meeting_url:
        return MeetingPlatform.OTHER
    url = meeting_url.lower()
    for platform, needles in _PLATFORM_HOSTS:
        if any(needle in url for needle in needles):
            return platform
    return MeetingPlatform.OTHER


def resolve_meeting_url(value: Any) -> str:
    """Normalize Recall's ``meeting_url`` field into a URL string.

    Recall returns either the URL as given or an object
    ``{"meeting_id", "platform"}``; the object form is rebuilt into the
    platform's canonical join URL.
    """
    if isinstance(value, str) and value:
        return value
    if isinstance(value, dict) and value.get("meeting_id") and value.get("platform"):
        meeting_id = value["meeting_id"]
        platform = value["platform"]
        if platform == MeetingPlatform.GOOGLE_MEET.value:
            return f"https://meet.google.com/{meeting_id}"
        if platform == MeetingPlatform.ZOOM.value:
            return f"https://zoom.us/j/{meeting_id}"
        if platform == MeetingPlatform.MICROSOFT_TEAMS.value:
            return f"https://teams.microsoft.com/l/meetup-join/{meeting_id}"
        return str(meeting_id)
    return "unknown"


def meeting_id_for(meeting_url: str) -> str:
    """Stable meeting identifier derived from the join URL."""
    parsed = urlparse(meeting_url)
    if parsed.netloc:
        return f"{parsed.netloc}{parsed.path}".rstrip("/")
    return meeting_url


def _iso_or_none(value: Any) -> str | None:
    if not value:
        return None
    try:
        return parse_to_iso(value)
    except ValueError:
        return None


def bot_from_api(
    payload: dict,
    bot_name: str = "Meeting Bot",
    join_minutes_before: int = 5,
    transcript_text: str | None = None,
) -> RecallBot:
    """Map a Recall.ai bot object into a RecallBot."""
    external_id = payload.get("id") or "unknown"
    meeting_url = resolve_meeting_url(payload.get("meeting_url"))
    started = _iso_or_none(payload.get("started_at") or payload.get("join_at"))
    transcript_url = payload.get("transcript_url") or transcript_download_url(payload)

    return RecallBot(
        id=f"bot_{external_id}",
        external_bot_id=external_id,
        meeting_id=meeting_id_for(meeting_url),
        meeting_url=meeting_url,
        status=extract_status(payload),
        scheduled_at=_iso_or_none(payload.get("created_at")) or now_iso(),
        joined_at=started,
        started_recording_at=started,
        ended_at=_iso_or_none(payload.get("ended_at")),
        outputs=BotOutputs(
            recording_url=payload.get("recording_url"),
            transcript_url=transcript_url,
            participant_count=payload.get("participant_count"),
            transcript_word_count=payload.get("transcript_word_count"),
        ),
        meeting_platform=detect_meeting_platform(meeting_url),
        config=BotConfig(
            record_audio=payload.get("record_audio", True),
            record_video=payload.get("record_video", False),
            record_screen=payload.get("record_screen", False),
            join_minutes_before=join_minutes_before,
            bot_name=payload.get("bot_name") or bot_name,
            webhook_url=payload.get("webhook_url"),
        ),
        transcript_url=transcript_url,
        transcript_text=transcript_text,
    )


def transcript_from_api(bot_id: str, payload: Any) -> MeetingTranscript:
    """Map either transcript shape Recall returns into a MeetingTranscript.

    The document shape carries ``transcript``/``segments``; the list shape is
    ``[{"speaker", "words": [{"text", "start_time", "end_time"}]}]``.
    """
    if isinstance(payload, list):
        segments = []
        for entry in payload:
            words = entry.get("words", [])
            speaker = entry.get("speaker") or (entry.get("participant") or {}).get("name") or "Unknown"
            segments.append(
                TranscriptSegment(
                    speaker=speaker,
                    text=" ".join(w.get("text", "") for w in words).strip(),
                    start_time=words[0].get("start_time", 0.0) if words else 0.0,
                    end_time=words[-1].get("end_time", 0.0) if words else 0.0,
                )
            )
        content = "\n".join(f"{s.speaker}: {s.text}" for s in segments)
        return MeetingTranscript(
            bot_id=bot_id,
            content=content,
            speakers=list(dict.fromkeys(s.speaker for s in segments)),
            segments=segments,
            duration=segments[-1].end_time if segments else 0,
            word_count=len(content.split()),
            created_at=now_iso(),
        )

    payload = payload or {}
    return MeetingTranscript(
        bot_id=bot_id,
        meeting_id=payload.get("meeting_id"),
        content=payload.get("transcript") or "",
        speakers=payload.get("speakers") or [],
        segments=[
            TranscriptSegment(
                speaker=s.get("speaker", "Unknown"),
                text=s.get("text", ""),
                start_time=s.get("start_time", 0.0),
                end_time=s.get("end_time", 0.0),
                confidence=s.get("confidence") or 0.95,
            )
            for s in payload.get("segments") or []
        ],
        summary=payload.get("summary"),
        key_points=payload.get("key_points") or [],
        action_items=payload.get("action_items") or [],
        duration=payload.get("duration") or 0,
        word_count=payload.get("word_count") or 0,
        language=payload.get("language") or "en",
        created_at=_iso_or_none(payload.get("created_at")) or now_iso(),
    )
