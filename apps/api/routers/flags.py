"""Content flag endpoints: review queue, classifier intake and dispositions."""

import logging
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import client_ip, get_db, require_reviewer
from apps.moderation import (
    delete_flagged_content,
    fetch_moderation_stats,
    flag_content,
    ingest_automated_flag,
    list_flags,
    review_flag,
)
from apps.moderation.schemas import ClassifierSignal, FlagView, ModerationStats, ReportTarget
from core.auth import service_auth
from models.moderation import ModerationAction, ReportReason

router = APIRouter(prefix="/flags", tags=["flags"])
logger = logging.getLogger(__name__)


class FlagIn(BaseModel):
    """Input model for an admin-raised flag."""

    reason: ReportReason
    description: str | None = None
    urgency_level: int | None = None
    user_id: uuid.UUID | None = None
    post_id: uuid.UUID | None = None
    comment_id: uuid.UUID | None = None


class ReviewIn(BaseModel):
    decision: Literal["reviewed", "actioned", "dismissed"]
    notes: str | None = None
    action_taken: ModerationAction | None = None


class DeleteContentIn(BaseModel):
    content_type: Literal["post", "comment"]
    content_id: uuid.UUID


@router.get("", response_model=list[FlagView])
async def get_flags(
    status: str | None = None,
    limit: int | None = None,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_reviewer),
) -> list[FlagView]:
    """Review queue, most urgent first. ``status=all`` or no status returns every flag."""
    return await list_flags(db, status, limit)


@router.get("/stats", response_model=ModerationStats)
async def get_stats(
    db: AsyncSession = Depends(get_db), caller: uuid.UUID = Depends(require_reviewer)
) -> ModerationStats:
    return await fetch_moderation_stats(db)


@router.post("", status_code=201)
async def create_flag(
    body: FlagIn,
    request: Request,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_reviewer),
) -> dict[str, bool | str]:
    target = ReportTarget(user_id=body.user_id, post_id=body.post_id, comment_id=body.comment_id)
    flag = await flag_content(
        db, caller, body.reason, target, body.description, body.urgency_level, ip_address=client_ip(request)
    )
    return {"ok": True, "message": "Content flagged for review", "flag_id": str(flag.id)}


@router.post("/automated", status_code=201, dependencies=[Depends(service_auth)])
async def create_automated_flag(signal: ClassifierSignal, db: AsyncSession = Depends(get_db)) -> dict[str, bool | str]:
    """Classifier intake. Authenticated by request signature only, there is no acting user."""
    flag = await ingest_automated_flag(db, signal)
    return {"ok": True, "message": "Flag queued", "flag_id": str(flag.id)}


@router.post("/{flag_id}/review")
async def post_review(
    flag_id: uuid.UUID,
    body: ReviewIn,
    request: Request,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_reviewer),
) -> dict[str, bool | str]:
    await review_flag(db, flag_id, body.decision, caller, body.notes, body.action_taken, ip_address=client_ip(request))
    return {"ok": True, "message": f"Flag marked as {body.decision}"}


@router.post("/{flag_id}/delete-content")
async def post_delete_content(
    flag_id: uuid.UUID,
    body: DeleteContentIn,
    request: Request,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_reviewer),
) -> dict[str, bool | str]:
    await delete_flagged_content(
        db, flag_id, body.content_type, body.content_id, caller, ip_address=client_ip(request)
    )
    return {"ok": True, "message": f"{body.content_type.capitalize()} deleted successfully"}
