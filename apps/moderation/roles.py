"""Role lookups for privileged moderation actions."""

import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.role import AppRole, UserRole

REVIEWER_ROLES = (AppRole.ADMIN, AppRole.MODERATOR)
ADMIN_ROLES = (AppRole.ADMIN,)


async def has_role(db: AsyncSession, user_id: uuid.UUID, roles: Iterable[AppRole]) -> bool:
    """True if the user holds at least one of ``roles``."""
    wanted = [role.value for role in roles]
    result = await db.execute(
        select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role.in_(wanted)).limit(1)
    )
    return result.first() is not None
