"""Review queue: ordered flag listing, report listing and status counters."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from apps.moderation.lookup import load_posts, load_profiles
from apps.moderation.schemas import FlagView, ModerationStats, ReportView, parse_choice
from core.config import settings
from core.errors import ValidationError
from models.moderation import ContentFlag, ModerationStatus, UserReport

logger = logging.getLogger(__name__)

ALL = "all"


def _status_filter(status: ModerationStatus | str | None) -> ModerationStatus | None:
    if status is None or status == ALL:
        return None
    return parse_choice(ModerationStatus, status, "status")


def _clamp_limit(limit: int | None) -> int:
    if limit is None:
        return settings.queue_default_limit
    if limit < 1:
        raise ValidationError("limit must be positive")
    return min(limit, settings.queue_max_limit)


async def list_flags(
    db: AsyncSession, status: ModerationStatus | str | None = None, limit: int | None = None
) -> list[FlagView]:
    """
    Return flags for review, most urgent first.

    Ordering: urgency_level descending with NULLs after every ranked flag,
    then newest first.

    Args:
        db: Database session
        status: Restrict to one status; None or "all" returns every status
        limit: Maximum rows (default settings.queue_default_limit)

    Returns:
        FlagView rows with post, flagged_user and reporter attached when they exist
    """
    wanted = _status_filter(status)
    stmt = (
        select(ContentFlag)
        .order_by(
            ContentFlag.urgency_level.is_(None),
            ContentFlag.urgency_level.desc(),
            ContentFlag.created_at.desc(),
        )
        .limit(_clamp_limit(limit))
    )
    if wanted is not None:
        stmt = stmt.where(ContentFlag.status == wanted.value)

    flags = list((await db.execute(stmt)).scalars())
    if not flags:
        return []

    posts = await load_posts(db, (f.post_id for f in flags))
    profiles = await load_profiles(db, [f.user_id for f in flags] + [f.flagged_by for f in flags])

    views = []
    for flag in flags:
        view = FlagView.model_validate(flag)
        view.post = posts.get(flag.post_id) if flag.post_id else None
        view.flagged_user = profiles.get(flag.user_id) if flag.user_id else None
        view.reporter = profiles.get(flag.flagged_by) if flag.flagged_by else None
        views.append(view)
    return views


async def fetch_moderation_stats(db: AsyncSession) -> ModerationStats:
    """Count flags per status. Statuses outside the known four are ignored."""
    result = await db.execute(select(ContentFlag.status, func.count()).group_by(ContentFlag.status))

    counts = ModerationStats()
    known = set(ModerationStats.model_fields)
    for status, count in result.all():
        if status in known:
            setattr(counts, status, int(count))
    return counts


async def list_reports(
    db: AsyncSession, status: ModerationStatus | str | None = None, limit: int | None = None
) -> list[ReportView]:
    """Return user reports newest first, with reporter, reported user and post attached."""
    wanted = _status_filter(status)
    stmt = select(UserReport).order_by(UserReport.created_at.desc()).limit(_clamp_limit(limit))
    if wanted is not None:
        stmt = stmt.where(UserReport.status == wanted.value)

    reports = list((await db.execute(stmt)).scalars())
    if not reports:
        return []

    profiles = await load_profiles(db, [r.reporter_id for r in reports] + [r.reported_user_id for r in reports])
    posts = await load_posts(db, (r.reported_post_id for r in reports))

    views = []
    for report in reports:
        view = ReportView.model_validate(report)
        view.reporter = profiles.get(report.reporter_id)
        view.reported_user = profiles.get(report.reported_user_id) if report.reported_user_id else None
        view.reported_post = posts.get(report.reported_post_id) if report.reported_post_id else None
        views.append(view)
    return views
