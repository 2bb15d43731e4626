"""FastAPI dependencies."""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable

import redis.asyncio as redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from apps.moderation.roles import ADMIN_ROLES, REVIEWER_ROLES, has_role
from core.auth import actor_auth
from core.db import get_db as _get_db
from core.errors import Forbidden
from core.redis import get_redis as _get_redis
from models.role import AppRole


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in _get_db():
        yield session


async def get_redis_client() -> redis.Redis:
    """Get Redis client dependency."""
    return await _get_redis()


def require_role(*roles: AppRole, message: str | None = None) -> Callable[..., Awaitable[uuid.UUID]]:
    """
    Build a dependency that admits actors holding one of ``roles``.

    Returns the actor id; raises Forbidden (403) otherwise.
    """

    async def _check(db: AsyncSession = Depends(get_db), caller: uuid.UUID = Depends(actor_auth)) -> uuid.UUID:
        if not await has_role(db, caller, roles):
            raise Forbidden(message)
        return caller

    return _check


require_reviewer = require_role(*REVIEWER_ROLES, message="Moderator access required")
require_admin = require_role(*ADMIN_ROLES)


def client_ip(request: Request) -> str | None:
    """Originating address recorded on audit entries."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
