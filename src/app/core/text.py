"""Small string and collection helpers."""

from __future__ import annotations

import re
from collections.abc import Callable, Hashable, Iterable
from typing import TypeVar
from urllib.parse import urlparse

T = TypeVar("T")

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value or ""))


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_non_empty_string(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def truncate(text: str, max_length: int, suffix: str = "...") -> str:
    """Cut ``text`` to ``max_length`` characters including ``suffix``."""
    if len(text) <= max_length:
        return text
    return text[: max(max_length - len(suffix), 0)] + suffix


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:].lower() if text else text


def to_kebab_case(text: str) -> str:
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", text)
    return re.sub(r"[\s_]+", "-", text).lower()


def to_camel_case(text: str) -> str:
    words = [w for w in re.split(r"[\s_\-]+", text) if w]
    if not words:
        return ""
    return words[0].lower() + "".join(capitalize(w) for w in words[1:])


def to_pascal_case(text: str) -> str:
    return "".join(capitalize(w) for w in re.split(r"[\s_\-]+", text) if w)


def get_initials(name: str) -> str:
    return "".join(part[0] for part in name.split() if part).upper()[:2]


def word_count(text: str) -> int:
    return len(text.split())


def unique_by(items: Iterable[T], key: Callable[[T], Hashable]) -> list[T]:
    """Keep the first item for each key, preserving order."""
    seen: set[Hashable] = set()
    result: list[T] = []
    for item in items:
        k = key(item)
        if k not in seen:
            seen.add(k)
            result.append(item)
    return result


def chunk(items: list[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive lists of at most ``size``.

    Raises:
        ValueError: If ``size`` is not positive.
    """
    if size <= 0:
        raise ValueError("Chunk size must be positive")
    return [items[i : i + size] for i in range(0, len(items), size)]
