"""Disposition engine: applies reviewer decisions to flags and reports.

Flag status moves once, from ``pending`` to ``reviewed``, ``actioned`` or
``dismissed``. The move is a conditional UPDATE guarded on ``pending``, so
a second review of the same flag (concurrent or later) is refused with
InvalidTransition rather than overwriting the first decision.
"""

import logging
import time
import uuid
from typing import Any, Protocol

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.moderation.audit import log_action
from apps.moderation.schemas import parse_choice
from core.errors import DependencyFailure, InvalidTransition, ModerationError, NotFound, Unauthorized, ValidationError
from core.metrics import content_deletions_total, flag_reviews_total, review_latency_seconds
from models.content import Comment, Post
from models.moderation import ContentFlag, ModerationAction, ModerationStatus, UserReport, utcnow

logger = logging.getLogger(__name__)

DECISIONS = frozenset({ModerationStatus.REVIEWED, ModerationStatus.ACTIONED, ModerationStatus.DISMISSED})
CONTENT_TYPES = {"post": Post, "comment": Comment}


class ContentDeleter(Protocol):
    """Removes a post or comment. Cascades to likes/replies are the deleter's job."""

    async def delete(self, db: AsyncSession, content_type: str, content_id: uuid.UUID) -> None: ...


class SqlContentDeleter:
    """Deletes content rows through the moderation session, inside the disposition transaction."""

    async def delete(self, db: AsyncSession, content_type: str, content_id: uuid.UUID) -> None:
        model = CONTENT_TYPES[content_type]
        result = await db.execute(delete(model).where(model.id == content_id))
        if result.rowcount == 0:
            raise NotFound(f"{content_type.capitalize()} not found")


def _snapshot(flag: ContentFlag) -> dict[str, Any]:
    return {
        "status": flag.status,
        "reviewed_by": str(flag.reviewed_by) if flag.reviewed_by else None,
        "action_taken": flag.action_taken,
        "action_notes": flag.action_notes,
    }


def _parse_decision(decision: ModerationStatus | str) -> ModerationStatus:
    parsed = parse_choice(ModerationStatus, decision, "decision")
    if parsed not in DECISIONS:
        raise ValidationError("Decision must be one of: reviewed, actioned, dismissed")
    return parsed


async def _load_pending(db: AsyncSession, flag_id: uuid.UUID) -> ContentFlag:
    flag = await db.get(ContentFlag, flag_id, populate_existing=True)
    if flag is None:
        raise NotFound("Flag not found")
    if not flag.is_pending:
        raise InvalidTransition(f"Flag has already been {flag.status}")
    return flag


async def _apply_decision(
    db: AsyncSession,
    flag: ContentFlag,
    decision: ModerationStatus,
    reviewer_id: uuid.UUID,
    notes: str | None,
    action_taken: ModerationAction | None,
) -> None:
    result = await db.execute(
        update(ContentFlag)
        .where(ContentFlag.id == flag.id, ContentFlag.status == ModerationStatus.PENDING.value)
        .values(
            status=decision.value,
            reviewed_by=reviewer_id,
            reviewed_at=utcnow(),
            action_notes=notes or None,
            action_taken=action_taken.value if action_taken else None,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidTransition()

    # Linked report follows its flag
    await db.execute(
        update(UserReport)
        .where(UserReport.content_flag_id == flag.id)
        .values(status=decision.value)
        .execution_options(synchronize_session=False)
    )


async def review_flag(
    db: AsyncSession,
    flag_id: uuid.UUID,
    decision: ModerationStatus | str,
    reviewer_id: uuid.UUID | None,
    notes: str | None = None,
    action_taken: ModerationAction | str | None = None,
    ip_address: str | None = None,
) -> ContentFlag:
    """
    Record a reviewer's decision on a pending flag.

    Args:
        db: Database session
        flag_id: Flag to review
        decision: reviewed | actioned | dismissed
        reviewer_id: Authenticated reviewer
        notes: Optional reviewer notes
        action_taken: Optional moderation action vocabulary value
        ip_address: Reviewer address for the audit entry

    Returns:
        The updated flag

    Raises:
        Unauthorized, ValidationError, NotFound, InvalidTransition, DependencyFailure
    """
    if reviewer_id is None:
        raise Unauthorized()
    parsed = _parse_decision(decision)
    action = parse_choice(ModerationAction, action_taken, "action_taken") if action_taken else None

    t0 = time.perf_counter()
    try:
        flag = await _load_pending(db, flag_id)
        old_value = _snapshot(flag)
        try:
            await _apply_decision(db, flag, parsed, reviewer_id, notes, action)
            await db.commit()
        except ModerationError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to review flag {flag_id}: {e}")
            raise DependencyFailure("Failed to update flag") from e

        await db.refresh(flag)
    finally:
        review_latency_seconds.observe(time.perf_counter() - t0)

    flag_reviews_total.labels(decision=parsed.value).inc()
    logger.info(f"Flag {flag_id} marked {parsed.value} by {reviewer_id}")

    await log_action(
        db,
        reviewer_id,
        "review_flag",
        "flag",
        flag.id,
        old_value=old_value,
        new_value=_snapshot(flag),
        reason=notes,
        ip_address=ip_address,
    )
    return flag


async def delete_flagged_content(
    db: AsyncSession,
    flag_id: uuid.UUID,
    content_type: str,
    content_id: uuid.UUID,
    reviewer_id: uuid.UUID | None,
    deleter: ContentDeleter | None = None,
    ip_address: str | None = None,
) -> ContentFlag:
    """
    Delete the flagged post or comment and mark the flag ``actioned``.

    ``content_id`` must be the post or comment the flag itself references.
    With the default SqlContentDeleter both writes commit together; if the
    content is missing or the deletion fails, nothing is written and the flag
    stays pending. A deleter that talks to another service cannot join the
    transaction: if the flag write fails after such a deletion the
    inconsistency is logged at ERROR for reconciliation.

    Raises:
        Unauthorized, ValidationError, NotFound, InvalidTransition, DependencyFailure
    """
    if reviewer_id is None:
        raise Unauthorized()
    if content_type not in CONTENT_TYPES:
        raise ValidationError("content_type must be 'post' or 'comment'")
    deleter = deleter or SqlContentDeleter()
    notes = f"{content_type} deleted"

    t0 = time.perf_counter()
    try:
        flag = await _load_pending(db, flag_id)
        flagged_id = flag.post_id if content_type == "post" else flag.comment_id
        if flagged_id is None or content_id != flagged_id:
            raise ValidationError(f"Flag does not reference this {content_type}")
        old_value = _snapshot(flag)

        try:
            await deleter.delete(db, content_type, content_id)
        except ModerationError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to delete {content_type} {content_id}: {e}")
            raise DependencyFailure(f"Failed to delete {content_type}") from e

        try:
            await _apply_decision(
                db, flag, ModerationStatus.ACTIONED, reviewer_id, notes, ModerationAction.CONTENT_REMOVAL
            )
            await db.commit()
        except (ModerationError, SQLAlchemyError) as e:
            await db.rollback()
            if not isinstance(deleter, SqlContentDeleter):
                logger.error(
                    f"Reconcile: {content_type} {content_id} deleted but flag {flag_id} not marked actioned: {e}"
                )
            if isinstance(e, ModerationError):
                raise
            raise DependencyFailure("Failed to update flag") from e

        await db.refresh(flag)
    finally:
        review_latency_seconds.observe(time.perf_counter() - t0)

    content_deletions_total.labels(content_type=content_type).inc()
    flag_reviews_total.labels(decision=ModerationStatus.ACTIONED.value).inc()
    logger.info(f"{content_type} {content_id} deleted for flag {flag_id} by {reviewer_id}")

    await log_action(
        db,
        reviewer_id,
        "delete_content",
        content_type,
        content_id,
        old_value=old_value,
        new_value={**_snapshot(flag), "flag_id": str(flag.id)},
        reason=notes,
        ip_address=ip_address,
    )
    return flag


async def update_report_status(
    db: AsyncSession,
    report_id: uuid.UUID,
    status: ModerationStatus | str,
    admin_id: uuid.UUID | None,
    ip_address: str | None = None,
) -> UserReport:
    """Set a report's status on its own. The linked flag is not touched."""
    if admin_id is None:
        raise Unauthorized()
    parsed = parse_choice(ModerationStatus, status, "status")

    report = await db.get(UserReport, report_id, populate_existing=True)
    if report is None:
        raise NotFound("Report not found")

    old_status = report.status
    try:
        report.status = parsed.value
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to update report {report_id}: {e}")
        raise DependencyFailure("Failed to update report") from e

    logger.info(f"Report {report_id} marked {parsed.value} by {admin_id}")
    await log_action(
        db,
        admin_id,
        "update_report",
        "report",
        report.id,
        old_value={"status": old_status},
        new_value={"status": parsed.value},
        ip_address=ip_address,
    )
    return report
