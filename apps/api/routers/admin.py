"""Admin endpoints: audit log and user sanctions."""

import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import client_ip, get_db, require_admin
from apps.moderation import fetch_logs, log_action
from apps.moderation.schemas import AdminLogView, UserModerationView
from apps.moderation.users import (
    SanctionFilter,
    ban_user,
    list_moderated_users,
    suspend_user,
    unban_user,
    unsuspend_user,
    warn_user,
)


router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


class LogActionIn(BaseModel):
    """A privileged change made elsewhere in the admin panel (e.g. adjust_likes)."""

    action_type: str = Field(min_length=1, max_length=32)
    target_type: str = Field(min_length=1, max_length=16)
    target_id: str | None = None
    old_value: dict[str, Any] | None = None
    new_value: dict[str, Any] | None = None
    reason: str | None = None


class ReasonIn(BaseModel):
    reason: str = Field(min_length=1)


class SuspendIn(ReasonIn):
    duration_hours: int = Field(gt=0)


@router.get("/logs", response_model=list[AdminLogView])
async def get_logs(
    limit: int = 100,
    action_type: str | None = None,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_admin),
) -> list[AdminLogView]:
    return await fetch_logs(db, limit, action_type)


@router.post("/logs")
async def post_log(
    body: LogActionIn,
    request: Request,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_admin),
) -> dict[str, bool]:
    """Append an audit entry. A dropped entry is reported as ``logged: false``, never as an error."""
    logged = await log_action(
        db,
        caller,
        body.action_type,
        body.target_type,
        body.target_id,
        old_value=body.old_value,
        new_value=body.new_value,
        reason=body.reason,
        ip_address=client_ip(request),
    )
    return {"ok": True, "logged": logged}


@router.get("/users", response_model=list[UserModerationView])
async def get_moderated_users(
    filter: SanctionFilter | None = None,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_admin),
) -> list[UserModerationView]:
    return await list_moderated_users(db, filter)


@router.post("/users/{user_id}/warn")
async def post_warn(
    user_id: uuid.UUID,
    body: ReasonIn,
    request: Request,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_admin),
) -> dict[str, bool | str]:
    record = await warn_user(db, caller, user_id, body.reason, ip_address=client_ip(request))
    return {"ok": True, "message": f"Warning issued ({record.warning_count} total)"}


@router.post("/users/{user_id}/suspend")
async def post_suspend(
    user_id: uuid.UUID,
    body: SuspendIn,
    request: Request,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_admin),
) -> dict[str, bool | str]:
    await suspend_user(db, caller, user_id, body.reason, body.duration_hours, ip_address=client_ip(request))
    return {"ok": True, "message": "User suspended successfully"}


@router.post("/users/{user_id}/unsuspend")
async def post_unsuspend(
    user_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_admin),
) -> dict[str, bool | str]:
    await unsuspend_user(db, caller, user_id, ip_address=client_ip(request))
    return {"ok": True, "message": "User unsuspended"}


@router.post("/users/{user_id}/ban")
async def post_ban(
    user_id: uuid.UUID,
    body: ReasonIn,
    request: Request,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_admin),
) -> dict[str, bool | str]:
    await ban_user(db, caller, user_id, body.reason, ip_address=client_ip(request))
    return {"ok": True, "message": "User banned"}


@router.post("/users/{user_id}/unban")
async def post_unban(
    user_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    caller: uuid.UUID = Depends(require_admin),
) -> dict[str, bool | str]:
    await unban_user(db, caller, user_id, ip_address=client_ip(request))
    return {"ok": True, "message": "User unbanned"}
