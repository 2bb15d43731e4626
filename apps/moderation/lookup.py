"""Batched read-side joins for moderation views.

Related rows may have been deleted since a flag or log entry was written.
Missing rows are simply absent from the returned maps, and a failing lookup
degrades to an empty map instead of failing the caller's query.
"""

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.moderation.schemas import PostSummary, ProfileSummary
from models.content import Post, Profile

logger = logging.getLogger(__name__)


def _unique(ids: Iterable[uuid.UUID | None]) -> set[uuid.UUID]:
    return {i for i in ids if i is not None}


async def load_profiles(db: AsyncSession, ids: Iterable[uuid.UUID | None]) -> dict[uuid.UUID, ProfileSummary]:
    wanted = _unique(ids)
    if not wanted:
        return {}
    try:
        result = await db.execute(select(Profile).where(Profile.id.in_(wanted)))
    except SQLAlchemyError as e:
        logger.warning(f"Profile lookup failed for {len(wanted)} ids: {e}")
        return {}
    return {p.id: ProfileSummary.model_validate(p) for p in result.scalars()}


async def load_posts(db: AsyncSession, ids: Iterable[uuid.UUID | None]) -> dict[uuid.UUID, PostSummary]:
    wanted = _unique(ids)
    if not wanted:
        return {}
    try:
        result = await db.execute(select(Post).where(Post.id.in_(wanted)))
    except SQLAlchemyError as e:
        logger.warning(f"Post lookup failed for {len(wanted)} ids: {e}")
        return {}
    return {p.id: PostSummary.model_validate(p) for p in result.scalars()}
