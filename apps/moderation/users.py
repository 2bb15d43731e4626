"""User sanctions: warnings, suspensions and bans, each with an audit entry."""

import logging
import uuid
from datetime import timedelta
from typing import Literal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.moderation.audit import log_action
from apps.moderation.lookup import load_profiles
from apps.moderation.schemas import UserModerationView
from core.errors import DependencyFailure, NotFound, Unauthorized, ValidationError
from core.metrics import user_sanctions_total
from models.moderation import UserModeration, utcnow

logger = logging.getLogger(__name__)

SanctionFilter = Literal["suspended", "banned", "warned"]


async def _get_record(db: AsyncSession, user_id: uuid.UUID) -> UserModeration | None:
    result = await db.execute(select(UserModeration).where(UserModeration.user_id == user_id))
    return result.scalar_one_or_none()


async def _get_or_create(db: AsyncSession, user_id: uuid.UUID) -> UserModeration:
    record = await _get_record(db, user_id)
    if record is None:
        record = UserModeration(user_id=user_id, warning_count=0, is_banned=False, is_suspended=False)
        db.add(record)
    return record


async def _commit(db: AsyncSession, action: str, user_id: uuid.UUID) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to {action} user {user_id}: {e}")
        raise DependencyFailure(f"Failed to {action.replace('_', ' ')} user") from e
    user_sanctions_total.labels(action=action).inc()


def _require_admin(admin_id: uuid.UUID | None) -> uuid.UUID:
    if admin_id is None:
        raise Unauthorized()
    return admin_id


async def warn_user(
    db: AsyncSession, admin_id: uuid.UUID | None, user_id: uuid.UUID, reason: str, ip_address: str | None = None
) -> UserModeration:
    admin_id = _require_admin(admin_id)
    record = await _get_or_create(db, user_id)
    record.warning_count = (record.warning_count or 0) + 1
    record.last_warning_at = utcnow()
    await _commit(db, "warn", user_id)

    await log_action(
        db,
        admin_id,
        "warn_user",
        "user",
        user_id,
        new_value={"reason": reason, "warning_number": record.warning_count},
        reason=reason,
        ip_address=ip_address,
    )
    return record


async def suspend_user(
    db: AsyncSession,
    admin_id: uuid.UUID | None,
    user_id: uuid.UUID,
    reason: str,
    duration_hours: int,
    ip_address: str | None = None,
) -> UserModeration:
    """Suspend a user for ``duration_hours`` hours."""
    admin_id = _require_admin(admin_id)
    if duration_hours <= 0:
        raise ValidationError("duration_hours must be positive")

    record = await _get_or_create(db, user_id)
    record.is_suspended = True
    record.suspension_reason = reason
    record.suspended_until = utcnow() + timedelta(hours=duration_hours)
    record.suspended_by = admin_id
    await _commit(db, "suspend", user_id)

    await log_action(
        db,
        admin_id,
        "suspend_user",
        "user",
        user_id,
        new_value={"reason": reason, "duration_hours": duration_hours},
        reason=reason,
        ip_address=ip_address,
    )
    return record


async def unsuspend_user(
    db: AsyncSession, admin_id: uuid.UUID | None, user_id: uuid.UUID, ip_address: str | None = None
) -> UserModeration:
    admin_id = _require_admin(admin_id)
    record = await _get_record(db, user_id)
    if record is None or not record.is_suspended:
        raise NotFound("User is not suspended")

    old_value = {"suspension_reason": record.suspension_reason}
    record.is_suspended = False
    record.suspension_reason = None
    record.suspended_until = None
    await _commit(db, "unsuspend", user_id)

    await log_action(db, admin_id, "unsuspend_user", "user", user_id, old_value=old_value, ip_address=ip_address)
    return record


async def ban_user(
    db: AsyncSession, admin_id: uuid.UUID | None, user_id: uuid.UUID, reason: str, ip_address: str | None = None
) -> UserModeration:
    admin_id = _require_admin(admin_id)
    record = await _get_or_create(db, user_id)
    record.is_banned = True
    record.banned_reason = reason
    record.banned_at = utcnow()
    record.banned_by = admin_id
    await _commit(db, "ban", user_id)

    await log_action(
        db, admin_id, "ban_user", "user", user_id, new_value={"reason": reason}, reason=reason, ip_address=ip_address
    )
    return record


async def unban_user(
    db: AsyncSession, admin_id: uuid.UUID | None, user_id: uuid.UUID, ip_address: str | None = None
) -> UserModeration:
    admin_id = _require_admin(admin_id)
    record = await _get_record(db, user_id)
    if record is None or not record.is_banned:
        raise NotFound("User is not banned")

    old_value = {"banned_reason": record.banned_reason}
    record.is_banned = False
    record.banned_reason = None
    record.banned_at = None
    await _commit(db, "unban", user_id)

    await log_action(db, admin_id, "unban_user", "user", user_id, old_value=old_value, ip_address=ip_address)
    return record


async def list_moderated_users(
    db: AsyncSession, sanction: SanctionFilter | None = None
) -> list[UserModerationView]:
    """Sanction records, most recently changed first, with each user's profile attached."""
    stmt = select(UserModeration).order_by(UserModeration.updated_at.desc())
    if sanction == "suspended":
        stmt = stmt.where(UserModeration.is_suspended.is_(True))
    elif sanction == "banned":
        stmt = stmt.where(UserModeration.is_banned.is_(True))
    elif sanction == "warned":
        stmt = stmt.where(UserModeration.warning_count > 0)
    elif sanction is not None:
        raise ValidationError("filter must be one of: suspended, banned, warned")

    records = list((await db.execute(stmt)).scalars())
    profiles = await load_profiles(db, (r.user_id for r in records))

    views = []
    for record in records:
        view = UserModerationView.model_validate(record)
        view.user_profile = profiles.get(record.user_id)
        views.append(view)
    return views
