"""JSON envelope helpers and application error handling.

Every handler answers with one of two shapes:

    {"success": true,  "data": ..., "metadata": {"timestamp", "requestId", ...}}
    {"success": false, "error": {"message", "code", "timestamp"}}

AppError carries a status code and a machine-readable code. The exception
handlers registered by install_exception_handlers() render AppError,
HTTPException, request validation errors and unhandled exceptions into the
error envelope so callers never see FastAPI's default {"detail": ...} body.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.app.core.dates import now_iso

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Error raised by handlers and services, rendered as an error envelope.

    Args:
        status_code: HTTP status to answer with.
        message: Human readable message.
        code: Stable machine readable code (e.g. ``MISSING_BOT_ID``).
        extra: Additional top-level fields merged into the envelope.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        code: str = "ERROR",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.extra = extra or {}


class UpstreamError(Exception):
    """An external API (Recall.ai, LinkedIn, Google) answered with an error."""

    def __init__(self, service: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{service} API error ({status_code}): {message}")
        self.service = service
        self.message = message
        self.status_code = status_code


# ── Envelopes ───────────────────────────────────────────────────────────────


def request_id() -> str:
    return str(uuid.uuid4())


def success_response(
    data: Any,
    status_code: int = status.HTTP_200_OK,
    **metadata: Any,
) -> JSONResponse:
    """Wrap ``data`` in the success envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": True,
            "data": data,
            "metadata": {
                "timestamp": now_iso(),
                "requestId": request_id(),
                **metadata,
            },
        },
    )


def error_body(message: str, code: str) -> dict[str, Any]:
    return {
        "success": False,
        "error": {
            "message": message,
            "code": code,
            "timestamp": now_iso(),
        },
    }


def error_response(
    status_code: int,
    message: str,
    code: str,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    body = error_body(message, code)
    if extra:
        body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def error_details(exc: BaseException | object) -> dict[str, str]:
    """Normalize anything raised into ``{"message", "code"}``."""
    if isinstance(exc, AppError):
        return {"message": exc.message, "code": exc.code}
    if isinstance(exc, BaseException):
        return {"message": str(exc) or type(exc).__name__, "code": "UNKNOWN_ERROR"}
    return {"message": "An unknown error occurred", "code": "UNKNOWN_ERROR"}


# ── Exception Handlers ──────────────────────────────────────────────────────

_HTTP_CODES = {
    status.HTTP_400_BAD_REQUEST: "BAD_REQUEST",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    status.HTTP_409_CONFLICT: "CONFLICT",
    status.HTTP_429_TOO_MANY_REQUESTS: "RATE_LIMITED",
    status.HTTP_503_SERVICE_UNAVAILABLE: "SERVICE_UNAVAILABLE",
}


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.info(
        "request.app_error",
        path=request.url.path,
        status_code=exc.status_code,
        code=exc.code,
    )
    return error_response(exc.status_code, exc.message, exc.code, exc.extra)


async def _upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    """404 from the vendor stays 404; anything else is a 502."""
    logger.warning(
        "request.upstream_error",
        path=request.url.path,
        service=exc.service,
        upstream_status=exc.status_code,
        error=exc.message,
    )
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return error_response(status.HTTP_404_NOT_FOUND, exc.message, "NOT_FOUND")
    return error_response(
        status.HTTP_502_BAD_GATEWAY,
        f"{exc.service} request failed",
        "UPSTREAM_ERROR",
    )


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    response = error_response(
        exc.status_code,
        message,
        _HTTP_CODES.get(exc.status_code, "HTTP_ERROR"),
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"Invalid request: {field} {first.get('msg', '')}".strip()
    return error_response(status.HTTP_400_BAD_REQUEST, message, "VALIDATION_ERROR")


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request.unhandled_error",
        path=request.url.path,
        error=str(exc),
        exc_info=exc,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "INTERNAL_ERROR",
    )


def install_exception_handlers(app: FastAPI) -> None:
    """Register envelope-rendering handlers on ``app``."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(UpstreamError, _upstream_error_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
