"""Flag ingestion: user reports, classifier signals and admin flags become ContentFlag rows."""

import logging
import time
import uuid
from typing import Any

import redis.asyncio as redis
from pydantic import ValidationError as SchemaError
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.moderation import rate_limit
from apps.moderation.audit import log_action
from apps.moderation.schemas import ClassifierSignal, ReportTarget, parse_choice
from core.config import settings
from core.errors import DependencyFailure, RateLimitExceeded, Unauthorized, ValidationError
from core.metrics import flags_ingested_total, reports_latency_seconds, reports_rate_limited_total, reports_total
from models.moderation import ContentFlag, FlagSource, ModerationStatus, ReportReason, UserReport

logger = logging.getLogger(__name__)

REPORT_ACTION = "report"


def _clean(description: str | None) -> str | None:
    if description is None:
        return None
    return description.strip() or None


async def file_user_report(
    db: AsyncSession,
    redis_client: redis.Redis,
    reporter_id: uuid.UUID | None,
    reason: ReportReason | str,
    description: str | None,
    target: ReportTarget,
) -> UserReport:
    """
    File a report from a user and open the matching ContentFlag for review.

    Validates:
    - Reporter is authenticated
    - Reason is in the stored vocabulary
    - At least one of user/post/comment is targeted
    - Rate limit: report_rate_limit_max reports per report_rate_limit_window_hours

    The report and its flag are written in one transaction. If that write
    fails the rate-limit unit is given back.

    Returns:
        The created UserReport (content_flag_id set)

    Raises:
        Unauthorized, ValidationError, RateLimitExceeded, DependencyFailure
    """
    t0 = time.perf_counter()
    try:
        if reporter_id is None:
            raise Unauthorized("Please log in to report content")

        reason = parse_choice(ReportReason, reason, "reason")
        if target.is_empty:
            raise ValidationError("A report must reference a user, post or comment")

        try:
            allowed = await rate_limit.try_consume(
                redis_client,
                reporter_id,
                REPORT_ACTION,
                settings.report_rate_limit_max,
                settings.report_rate_limit_window_hours,
            )
        except RedisError as e:
            logger.error(f"Rate limiter unavailable for reporter={reporter_id}: {e}")
            raise DependencyFailure("Failed to submit report") from e

        if not allowed:
            reports_rate_limited_total.inc()
            raise RateLimitExceeded()

        description = _clean(description)
        try:
            flag = ContentFlag(
                post_id=target.post_id,
                comment_id=target.comment_id,
                user_id=target.user_id,
                flagged_by=reporter_id,
                source=FlagSource.USER_REPORT.value,
                reason=reason.value,
                description=description,
                status=ModerationStatus.PENDING.value,
            )
            db.add(flag)
            await db.flush()

            report = UserReport(
                reporter_id=reporter_id,
                reported_user_id=target.user_id,
                reported_post_id=target.post_id,
                reported_comment_id=target.comment_id,
                reason=reason.value,
                description=description,
                status=ModerationStatus.PENDING.value,
                content_flag_id=flag.id,
            )
            db.add(report)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            await rate_limit.refund(redis_client, reporter_id, REPORT_ACTION)
            logger.error(f"Failed to store report from {reporter_id}: {e}")
            raise DependencyFailure("Failed to submit report") from e

        reports_total.labels(reason=reason.value).inc()
        flags_ingested_total.labels(source=FlagSource.USER_REPORT.value, reason=reason.value).inc()
        logger.info(f"Report created: id={report.id}, reporter={reporter_id}, reason={reason.value}, flag={flag.id}")
        return report

    finally:
        reports_latency_seconds.observe(time.perf_counter() - t0)


async def ingest_automated_flag(db: AsyncSession, signal: ClassifierSignal | dict[str, Any]) -> ContentFlag:
    """
    Create a pending ContentFlag from a classifier signal.

    Only the signal's shape is checked; the classification itself is trusted.
    A category that is also a report reason becomes the flag's reason,
    anything else is filed as ``other`` with the raw label kept in ai_category.
    """
    if not isinstance(signal, ClassifierSignal):
        try:
            signal = ClassifierSignal.model_validate(signal)
        except SchemaError as e:
            raise ValidationError(f"Malformed classifier signal: {e.errors()[0]['msg']}") from None

    category = signal.category.strip().lower()
    try:
        reason = ReportReason(category)
    except ValueError:
        reason = ReportReason.OTHER

    flag = ContentFlag(
        post_id=signal.post_id,
        comment_id=signal.comment_id,
        user_id=signal.user_id,
        flagged_by=None,
        source=FlagSource.AUTOMATED_CLASSIFIER.value,
        reason=reason.value,
        description=_clean(signal.description),
        ai_category=signal.category,
        ai_confidence=signal.confidence,
        urgency_level=signal.urgency_level,
        status=ModerationStatus.PENDING.value,
    )
    try:
        db.add(flag)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to store classifier flag ({signal.category}): {e}")
        raise DependencyFailure("Failed to store flag") from e

    flags_ingested_total.labels(source=FlagSource.AUTOMATED_CLASSIFIER.value, reason=reason.value).inc()
    logger.info(
        f"Automated flag created: id={flag.id}, category={signal.category}, "
        f"confidence={signal.confidence:.2f}, urgency={signal.urgency_level}"
    )
    return flag


async def flag_content(
    db: AsyncSession,
    admin_id: uuid.UUID | None,
    reason: ReportReason | str,
    target: ReportTarget,
    description: str | None = None,
    urgency_level: int | None = None,
    ip_address: str | None = None,
) -> ContentFlag:
    """Raise a flag directly from the admin panel (source ``admin_flag``)."""
    if admin_id is None:
        raise Unauthorized()
    reason = parse_choice(ReportReason, reason, "reason")
    if target.is_empty:
        raise ValidationError("A flag must reference a user, post or comment")
    if urgency_level is not None and urgency_level < 0:
        raise ValidationError("urgency_level must not be negative")

    flag = ContentFlag(
        post_id=target.post_id,
        comment_id=target.comment_id,
        user_id=target.user_id,
        flagged_by=admin_id,
        source=FlagSource.ADMIN_FLAG.value,
        reason=reason.value,
        description=_clean(description),
        urgency_level=urgency_level,
        status=ModerationStatus.PENDING.value,
    )
    try:
        db.add(flag)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to store admin flag from {admin_id}: {e}")
        raise DependencyFailure("Failed to store flag") from e

    flags_ingested_total.labels(source=FlagSource.ADMIN_FLAG.value, reason=reason.value).inc()
    await log_action(
        db,
        admin_id,
        "flag_content",
        "flag",
        flag.id,
        new_value={"reason": reason.value, "urgency_level": urgency_level, **_target_snapshot(target)},
        ip_address=ip_address,
    )
    return flag


def _target_snapshot(target: ReportTarget) -> dict[str, str]:
    return {key: str(value) for key, value in target.model_dump().items() if value is not None}
