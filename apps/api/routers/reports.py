"""User report endpoints for the report-submission UI and the dashboard."""

import logging
import uuid

import redis.asyncio as redis
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import client_ip, get_db, get_redis_client, require_reviewer
from apps.moderation import file_user_report, list_reports, update_report_status
from apps.moderation.schemas import ReportTarget, ReportView
from core.auth import actor_auth
from models.moderation import ModerationStatus, ReportReason

router = APIRouter(prefix="/reports", tags=["reports"])
logger = logging.getLogger(__name__)


class ReportIn(BaseModel):
    """Input model for filing a report."""

    reason: ReportReason
    description: str | None = None
    user_id: uuid.UUID | None = None
    post_id: uuid.UUID | None = None
    comment_id: uuid.UUID | None = None


class ReportStatusIn(BaseModel):
    status: ModerationStatus


@router.post("", status_code=201)
async def create_report(
    body: ReportIn,
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis_client),
    caller: uuid.UUID = Depends(actor_auth),
) -> dict[str, bool | str]:
    """
    File a report about a user, post or comment.

    Returns:
        {"ok": True, "message": ..., "report_id": ...}
    """
    target = ReportTarget(user_id=body.user_id, post_id=body.post_id, comment_id=body.comment_id)
    report = await file_user_report(db, redis_client, caller, body.reason, body.description, target)
    return {
        "ok": True,
        "message": "Report submitted. Thank you for helping keep VibeBaze safe!",
        "report_id": str(report.id),
    }


@router.get("", response_model=list[ReportView])
async def get_reports(
    status: str | None = None,
    limit: int | None = None,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_reviewer),
) -> list[ReportView]:
    """List reports, newest first. ``status=all`` or no status returns every report."""
    return await list_reports(db, status, limit)


@router.patch("/{report_id}")
async def patch_report(
    report_id: uuid.UUID,
    body: ReportStatusIn,
    request: Request,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_reviewer),
) -> dict[str, bool | str]:
    """Set a report's status without touching its flag."""
    await update_report_status(db, report_id, body.status, caller, ip_address=client_ip(request))
    return {"ok": True, "message": f"Report marked as {body.status.value}"}
