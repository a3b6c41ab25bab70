"""Compliance validation and the content approval queue."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from src.app.api.deps import require_session
from src.app.compliance import (
    ComplianceEngine,
    generate_compliance_disclaimers,
    quick_compliance_check,
)
from src.app.content.approval import ApprovalRepository
from src.app.content.schemas import ApprovalItem, ApprovalRequest, ValidateContentRequest
from src.app.core.errors import AppError, success_response
from src.app.core.schemas import to_json
from src.app.core.security import UserSession

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/content", tags=["content"])


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_compliance_engine(request: Request) -> ComplianceEngine:
    """Retrieve ComplianceEngine from app.state, 503 if not available."""
    engine = getattr(request.app.state, "compliance_engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Compliance engine not initialized",
        )
    return engine


def _get_approvals(request: Request) -> ApprovalRepository:
    """Retrieve ApprovalRepository from app.state, 503 if not available."""
    repo = getattr(request.app.state, "approvals", None)
    if repo is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Approval queue not initialized",
        )
    return repo


def _pending_payload(items: list[ApprovalItem]) -> dict:
    return {
        "pendingContent": [
            {
                "id": i.id,
                "content": i.content,
                "platform": i.platform,
                "status": i.status.value,
                "createdAt": i.created_at,
            }
            for i in items
        ],
        "count": len(items),
    }


# ── Compliance ───────────────────────────────────────────────────────────────


@router.post("/validate")
async def validate_content(
    body: ValidateContentRequest,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Full pre-publication review plus the quick check and disclaimers.

    ``advisorId`` defaults to the caller.
    """
    engine = _get_compliance_engine(request)
    validation = engine.validate_content(
        body.content,
        body.advisor_id or session.user_id,
        body.meeting_id,
    )
    return success_response(
        {
            "validation": to_json(validation),
            "quickCheck": to_json(quick_compliance_check(body.content)),
            "disclaimers": generate_compliance_disclaimers(body.content),
        },
        validationId=validation.id,
    )


@router.post("/validate/quick")
async def validate_content_quick(
    body: ValidateContentRequest,
    session: UserSession = require_session,
) -> JSONResponse:
    return success_response(to_json(quick_compliance_check(body.content)))


# ── Approval Queue ───────────────────────────────────────────────────────────


@router.get("/approval")
async def list_pending(
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    return success_response(_pending_payload(await _get_approvals(request).list_pending()))


@router.post("/approval")
async def approval_action(
    body: ApprovalRequest,
    request: Request,
    session: UserSession = require_session,
) -> JSONResponse:
    """Approve, reject or request changes on queued content.

    Raises:
        AppError(400): Missing content id, missing changes, or unknown action.
        AppError(404): Unknown content id.
    """
    approvals = _get_approvals(request)

    if body.action == "get_pending":
        return success_response(_pending_payload(await approvals.list_pending()))

    if body.action == "request_changes":
        if not body.content_id or not body.changes:
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                "Content ID and changes are required",
                "MISSING_REQUIRED_FIELDS",
            )
        item = await approvals.request_changes(
            body.content_id, session.user_id, body.changes, body.reason
        )
        return success_response(
            {
                "contentId": item.id,
                "status": item.status.value,
                "changes": item.changes,
                "reason": item.reason,
            }
        )

    if body.action == "approve":
        if not body.content_id:
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                "Content ID is required for approval",
                "MISSING_CONTENT_ID",
            )
        item = await approvals.approve(body.content_id, session.user_id)
        return success_response(
            {
                "contentId": item.id,
                "status": item.status.value,
                "approvedAt": item.approved_at,
                "approvedBy": item.approved_by,
            }
        )

    if body.action == "reject":
        if not body.content_id:
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                "Content ID is required for rejection",
                "MISSING_CONTENT_ID",
            )
        item = await approvals.reject(body.content_id, session.user_id, body.reason)
        return success_response(
            {"contentId": item.id, "status": item.status.value, "reason": item.reason}
        )

    raise AppError(status.HTTP_400_BAD_REQUEST, f"Unknown action: {body.action}", "INVALID_ACTION")
