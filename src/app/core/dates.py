"""ISO-8601 date helpers shared by handlers and services.

All timestamps leaving the API are UTC ISO strings with a trailing ``Z``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Render an aware or naive (assumed UTC) datetime as ``...Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return to_iso(utcnow())


def parse_datetime(value: str | int | float | datetime) -> datetime:
    """Parse an ISO string, epoch milliseconds or datetime into an aware datetime.

    Raises:
        ValueError: If ``value`` is not a recognisable date.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    text = value.strip()
    if not text:
        raise ValueError("Empty date string")
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Invalid date: {value!r}") from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_to_iso(value: str | int | float | datetime) -> str:
    return to_iso(parse_datetime(value))


def future_iso(hours: float = 1) -> str:
    return to_iso(utcnow() + timedelta(hours=hours))


def past_iso(hours: float = 1) -> str:
    return to_iso(utcnow() - timedelta(hours=hours))


def add_minutes(value: datetime, minutes: int) -> datetime:
    return value + timedelta(minutes=minutes)


def is_future_date(value: str | datetime) -> bool:
    return parse_datetime(value) > utcnow()


def epoch_ms(value: datetime | None = None) -> int:
    return int((value or utcnow()).timestamp() * 1000)


def format_relative_time(value: str | datetime, now: datetime | None = None) -> str:
    """Describe ``value`` relative to now ("just now", "5 minutes ago", ...)."""
    then = parse_datetime(value)
    seconds = int(((now or utcnow()) - then).total_seconds())

    if seconds < 60:
        return "just now"

    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            if unit == "day" and count >= 7:
                return then.strftime("%b %d, %Y")
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "just now"
