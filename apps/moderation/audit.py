"""Append-only audit trail of privileged actions.

Audit writes are a side channel: a failed write is logged and counted but
never raised, so it cannot turn a committed moderation action into an error
for the caller. ``audit_log_failures_total`` must be alerted on, since a
dropped row means an action without a trail.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from apps.moderation.lookup import load_profiles
from apps.moderation.schemas import AdminLogView
from core.errors import ValidationError
from core.metrics import audit_log_failures_total
from models.admin_log import AdminLog

logger = logging.getLogger(__name__)

MAX_LOG_LIMIT = 500


async def _write(db: AsyncSession, entry: AdminLog) -> None:
    # Own session: a failed audit write must not roll back or expire the caller's objects
    async with AsyncSession(bind=db.bind, expire_on_commit=False) as audit_db:
        audit_db.add(entry)
        await audit_db.commit()


async def log_action(
    db: AsyncSession,
    admin_id: uuid.UUID | None,
    action_type: str,
    target_type: str,
    target_id: uuid.UUID | str | None = None,
    *,
    old_value: dict[str, Any] | None = None,
    new_value: dict[str, Any] | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
) -> bool:
    """
    Append one AdminLog row in its own session and transaction.

    Call it after the primary action has been committed.

    Returns:
        True if the row was written, False if it was dropped
    """
    if admin_id is None:
        logger.error(f"Audit entry dropped, no admin identity: action={action_type}, target={target_type}:{target_id}")
        audit_log_failures_total.labels(action_type=action_type).inc()
        return False

    entry = AdminLog(
        admin_id=admin_id,
        action_type=action_type,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        old_value=old_value,
        new_value=new_value,
        reason=reason,
        ip_address=ip_address,
    )
    try:
        await _write(db, entry)
    except Exception:
        audit_log_failures_total.labels(action_type=action_type).inc()
        logger.exception(f"Failed to write audit entry: admin={admin_id}, action={action_type}, target={target_id}")
        return False

    logger.info(f"Audit: admin={admin_id} {action_type} {target_type}:{target_id}")
    return True


async def fetch_logs(db: AsyncSession, limit: int = 100, action_type: str | None = None) -> list[AdminLogView]:
    """Newest entries first, each with the acting admin's profile when it still exists."""
    if limit < 1:
        raise ValidationError("limit must be positive")

    stmt = select(AdminLog).order_by(AdminLog.created_at.desc()).limit(min(limit, MAX_LOG_LIMIT))
    if action_type:
        stmt = stmt.where(AdminLog.action_type == action_type)

    logs = list((await db.execute(stmt)).scalars())
    profiles = await load_profiles(db, (log.admin_id for log in logs))

    views = []
    for log in logs:
        view = AdminLogView.model_validate(log)
        view.admin_profile = profiles.get(log.admin_id)
        views.append(view)
    return views
