"""LLM provider abstraction via LiteLLM Router.

Provides the text-generation service used for social posts and follow-up
emails:
- OpenAI (gpt-4o-mini by default) as the primary content model
- Claude as fallback when an Anthropic key is configured
- Prompt injection detection and sanitization of transcript text
- JSON-mode completions for structured drafts
"""

from __future__ import annotations

import re

import structlog
from litellm import Router
from litellm.exceptions import RateLimitError

from src.app.config import get_settings

logger = structlog.get_logger(__name__)

CONTENT_MODEL_GROUP = "content"

# ── Prompt Injection Detection ────────────────────────────────────────────────

# Transcripts are user-supplied; speakers can say anything.
_INJECTION_PATTERNS: list[tuple[str, re.Pattern]] = [
    (
        "instruction_override",
        re.compile(
            r"ignore\s+(all\s+)?previous\s+instructions|"
            r"disregard\s+(all\s+)?(your\s+)?instructions|"
            r"forget\s+(all\s+)?(your\s+)?instructions|"
            r"override\s+(all\s+)?(your\s+)?instructions",
            re.IGNORECASE,
        ),
    ),
    (
        "system_prompt_exfiltration",
        re.compile(
            r"(reveal|show|display|output|print|repeat)\s+(your\s+)?(system\s+prompt|instructions)|"
            r"repeat\s+everything\s+above|"
            r"what\s+are\s+your\s+instructions",
            re.IGNORECASE,
        ),
    ),
    (
        "control_characters",
        re.compile(
            r"[\x00-\x08\x0b\x0c\x0e-\x1f]{3,}",  # 3+ control chars in sequence
        ),
    ),
]


def detect_prompt_injection(text: str) -> tuple[bool, str | None]:
    """Check text for common prompt injection patterns.

    Args:
        text: The text to analyze.

    Returns:
        Tuple of (is_injection, pattern_name) where pattern_name identifies
        which pattern matched, or None if no injection detected.
    """
    for pattern_name, pattern in _INJECTION_PATTERNS:
        if pattern.search(text):
            logger.warning(
                "llm.prompt_injection_detected",
                pattern=pattern_name,
                text_preview=text[:100],
            )
            return True, pattern_name
    return False, None


def sanitize_messages(messages: list[dict]) -> list[dict]:
    """Strip injection patterns from non-system messages.

    System messages are trusted and passed through unchanged.
    """
    sanitized = []
    for msg in messages:
        content = msg.get("content", "")
        if msg.get("role") == "system" or not content:
            sanitized.append(msg)
            continue

        is_injection, pattern_name = detect_prompt_injection(content)
        if not is_injection:
            sanitized.append(msg)
            continue

        cleaned = content
        for _, pattern in _INJECTION_PATTERNS:
            cleaned = pattern.sub("[removed]", cleaned)
        logger.warning(
            "llm.prompt_injection_sanitized",
            role=msg.get("role"),
            pattern=pattern_name,
            original_length=len(content),
            cleaned_length=len(cleaned),
        )
        sanitized.append({**msg, "content": cleaned})

    return sanitized


def is_rate_limit_error(exc: BaseException) -> bool:
    """True for provider quota / 429 failures, which callers answer with mock data."""
    if isinstance(exc, RateLimitError):
        return True
    return getattr(exc, "status_code", None) == 429 or "429" in str(exc)


# ── LLM Service ──────────────────────────────────────────────────────────────


class LLMService:
    """LLM provider abstraction with LiteLLM Router.

    The "content" model group routes to the configured OpenAI model first and
    falls back to Claude when both keys are present.
    """

    def __init__(self) -> None:
        settings = get_settings()
        self.default_model = settings.LLM_MODEL

        model_list = []

        if settings.OPENAI_API_KEY:
            model_list.append({
                "model_name": CONTENT_MODEL_GROUP,
                "litellm_params": {
                    "model": settings.LLM_MODEL,
                    "api_key": settings.OPENAI_API_KEY,
                },
            })

        if settings.ANTHROPIC_API_KEY:
            model_list.append({
                "model_name": CONTENT_MODEL_GROUP,
                "litellm_params": {
                    "model": "anthropic/claude-3-5-haiku-20241022",
                    "api_key": settings.ANTHROPIC_API_KEY,
                },
            })

        if not model_list:
            logger.warning("llm.no_api_keys", hint="content generation will use mock data")
            self.router = None
            return

        self.router = Router(
            model_list=model_list,
            num_retries=settings.LLM_MAX_RETRIES,
            timeout=settings.LLM_TIMEOUT,
            allowed_fails=3,
            cooldown_time=30,
        )

    @property
    def available(self) -> bool:
        return self.router is not None

    async def completion(
        self,
        messages: list[dict],
        model: str = CONTENT_MODEL_GROUP,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        json_mode: bool = False,
        metadata: dict | None = None,
    ) -> dict:
        """Execute a completion call through the LiteLLM Router.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model group name.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature (0-2).
            json_mode: Ask the provider for a JSON object response.
            metadata: Additional metadata to include in the call.

        Returns:
            Dict with content, model, and usage.

        Raises:
            RuntimeError: If no LLM API keys are configured.
        """
        if not self.router:
            raise RuntimeError("No LLM API keys configured")

        kwargs: dict = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self.router.acompletion(
            model=model,
            messages=sanitize_messages(messages),
            max_tokens=max_tokens,
            temperature=temperature,
            metadata=metadata or {},
            **kwargs,
        )

        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return {
            "content": response.choices[0].message.content,
            "model": response.model,
            "usage": usage,
        }


# ── Singleton ─────────────────────────────────────────────────────────────────

_llm_service: LLMService | None = None


def get_llm_service() -> LLMService:
    """Get or create the LLM service singleton."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
