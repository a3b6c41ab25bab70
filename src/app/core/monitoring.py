"""Prometheus metrics, Sentry integration, and LLM call tracking.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- init_sentry(): Initialize Sentry with user-tagging before_send callback
- track_llm_call(): Context manager for LLM call metrics
- record_external_call(): Counter for Recall.ai / LinkedIn / Google calls
- get_metrics_response(): Prometheus exposition for /metrics
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import sentry_sdk
from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── LLM Metrics ──────────────────────────────────────────────────────────────

llm_requests_total = Counter(
    "llm_requests_total",
    "Total LLM API requests",
    ["model", "purpose", "status"],
)

llm_request_duration_seconds = Histogram(
    "llm_request_duration_seconds",
    "LLM API request duration in seconds",
    ["model", "purpose"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

llm_tokens_used_total = Counter(
    "llm_tokens_used_total",
    "Total LLM tokens consumed",
    ["model", "token_type"],
)

# ── Integration Metrics ──────────────────────────────────────────────────────

external_calls_total = Counter(
    "external_calls_total",
    "Calls made to third-party APIs",
    ["service", "operation", "outcome"],
)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that records Prometheus metrics for every HTTP request.

    Records request count and duration per method/route. Uses the matched
    route template (``/api/recall/bots/{bot_id}/status``) when available to
    keep label cardinality bounded. Skips the /metrics endpoint itself.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        route = request.scope.get("route")
        endpoint = getattr(route, "path", None) or request.url.path

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()

        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# ── LLM Metrics Helper ──────────────────────────────────────────────────────


@asynccontextmanager
async def track_llm_call(
    model: str,
    purpose: str,
) -> AsyncGenerator[dict[str, Any], None]:
    """Context manager that tracks LLM call metrics.

    Usage:
        async with track_llm_call("fast", "social_posts") as tracker:
            result = await llm.completion(...)
            tracker["prompt_tokens"] = result["usage"]["prompt_tokens"]

    Records duration, request count (success/error) and token usage if the
    caller fills in the tracker dict.
    """
    tracker: dict[str, Any] = {
        "prompt_tokens": 0,
        "completion_tokens": 0,
    }
    start_time = time.perf_counter()
    status = "success"

    try:
        yield tracker
    except Exception:
        status = "error"
        raise
    finally:
        duration = time.perf_counter() - start_time

        llm_requests_total.labels(model=model, purpose=purpose, status=status).inc()
        llm_request_duration_seconds.labels(model=model, purpose=purpose).observe(duration)

        if tracker.get("prompt_tokens"):
            llm_tokens_used_total.labels(model=model, token_type="prompt").inc(
                tracker["prompt_tokens"]
            )
        if tracker.get("completion_tokens"):
            llm_tokens_used_total.labels(model=model, token_type="completion").inc(
                tracker["completion_tokens"]
            )


def record_external_call(service: str, operation: str, outcome: str = "success") -> None:
    external_calls_total.labels(service=service, operation=operation, outcome=outcome).inc()


# ── Sentry Integration ───────────────────────────────────────────────────────


def _strip_tokens(event: dict, hint: dict) -> dict:
    """Drop bearer tokens from captured request headers."""
    headers = event.get("request", {}).get("headers")
    if isinstance(headers, dict):
        for name in list(headers):
            if name.lower() in ("authorization", "x-recall-token", "cookie"):
                headers[name] = "[filtered]"
    return event


def init_sentry(dsn: str, environment: str) -> None:
    """Initialize Sentry SDK.

    Args:
        dsn: Sentry DSN string.
        environment: Deployment environment (development, staging, production).
    """
    traces_sample_rate = 0.1 if environment == "production" else 1.0

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            StarletteIntegration(),
            FastApiIntegration(),
        ],
        before_send=_strip_tokens,
    )


# ── Metrics Endpoint ─────────────────────────────────────────────────────────


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
