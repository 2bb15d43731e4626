"""Tests for reviewer decisions, content deletion and report status updates."""

import logging
import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from apps.moderation import (
    delete_flagged_content,
    disposition,
    file_user_report,
    ingest_automated_flag,
    review_flag,
    update_report_status,
)
from apps.moderation.schemas import ClassifierSignal, ReportTarget
from core.errors import DependencyFailure, InvalidTransition, NotFound, Unauthorized, ValidationError
from models import AdminLog, ContentFlag, Post, UserReport

pytestmark = pytest.mark.asyncio


async def _classifier_flag(db, post_id=None) -> ContentFlag:
    return await ingest_automated_flag(
        db, ClassifierSignal(post_id=post_id or uuid.uuid4(), category="spam", confidence=0.7, urgency_level=2)
    )


async def test_report_then_dismiss_scenario(db, fake_redis):
    reporter, reviewer, post_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

    report = await file_user_report(db, fake_redis, reporter, "spam", None, ReportTarget(post_id=post_id))
    assert await fake_redis.get(f"rl:report:{reporter}") == "1"

    flag = await review_flag(db, report.content_flag_id, "dismissed", reviewer)

    assert flag.status == "dismissed"
    assert flag.reviewed_by == reviewer
    assert flag.reviewed_at is not None

    await db.refresh(report)
    assert report.status == "dismissed"

    entry = (await db.execute(select(AdminLog))).scalar_one()
    assert entry.action_type == "review_flag"
    assert entry.admin_id == reviewer
    assert entry.target_id == str(flag.id)
    assert entry.old_value["status"] == "pending"
    assert entry.new_value["status"] == "dismissed"


async def test_review_records_notes_and_action(db):
    flag = await _classifier_flag(db)
    reviewed = await review_flag(db, flag.id, "actioned", uuid.uuid4(), notes="repeat offender", action_taken="warning")
    assert reviewed.action_notes == "repeat offender"
    assert reviewed.action_taken == "warning"


async def test_second_review_is_rejected(db):
    flag = await _classifier_flag(db)
    first = uuid.uuid4()
    await review_flag(db, flag.id, "reviewed", first)

    with pytest.raises(InvalidTransition):
        await review_flag(db, flag.id, "actioned", uuid.uuid4())

    stored = await db.get(ContentFlag, flag.id)
    await db.refresh(stored)
    assert stored.status == "reviewed"
    assert stored.reviewed_by == first


async def test_review_errors(db):
    flag = await _classifier_flag(db)

    with pytest.raises(Unauthorized):
        await review_flag(db, flag.id, "dismissed", None)
    with pytest.raises(ValidationError):
        await review_flag(db, flag.id, "pending", uuid.uuid4())
    with pytest.raises(ValidationError):
        await review_flag(db, flag.id, "closed", uuid.uuid4())
    with pytest.raises(NotFound):
        await review_flag(db, uuid.uuid4(), "dismissed", uuid.uuid4())

    assert (await db.get(ContentFlag, flag.id)).status == "pending"


async def test_delete_post_marks_flag_actioned(db, post):
    flag = await _classifier_flag(db, post_id=post.id)
    reviewer = uuid.uuid4()

    result = await delete_flagged_content(db, flag.id, "post", post.id, reviewer)

    assert result.status == "actioned"
    assert result.action_notes == "post deleted"
    assert result.action_taken == "content_removal"
    assert (await db.execute(select(Post).where(Post.id == post.id))).scalar_one_or_none() is None

    entry = (await db.execute(select(AdminLog))).scalar_one()
    assert entry.action_type == "delete_content"
    assert entry.target_type == "post"
    assert entry.new_value["flag_id"] == str(flag.id)


async def test_delete_missing_post_leaves_flag_pending(db):
    flag = await _classifier_flag(db)
    flag_id, post_id = flag.id, flag.post_id

    with pytest.raises(NotFound):
        await delete_flagged_content(db, flag_id, "post", post_id, uuid.uuid4())

    stored = await db.get(ContentFlag, flag_id, populate_existing=True)
    assert stored.status == "pending"
    assert stored.reviewed_by is None
    assert (await db.execute(select(AdminLog))).first() is None


async def test_failed_external_deletion_leaves_flag_pending(db, post):
    post_id = post.id
    flag_id = (await _classifier_flag(db, post_id=post_id)).id

    class UnreachableStorage:
        async def delete(self, db, content_type, content_id):
            raise NotFound("Post not found")

    with pytest.raises(NotFound):
        await delete_flagged_content(db, flag_id, "post", post_id, uuid.uuid4(), deleter=UnreachableStorage())

    assert (await db.get(ContentFlag, flag_id, populate_existing=True)).status == "pending"


async def test_delete_refuses_content_the_flag_does_not_reference(db, profiles, post):
    flag_id = (await _classifier_flag(db, post_id=post.id)).id
    other = Post(id=uuid.uuid4(), user_id=profiles["alice"].id, caption="sunset", type="text")
    db.add(other)
    await db.commit()
    other_id = other.id

    with pytest.raises(ValidationError):
        await delete_flagged_content(db, flag_id, "post", other_id, uuid.uuid4())
    with pytest.raises(ValidationError):
        await delete_flagged_content(db, flag_id, "comment", post.id, uuid.uuid4())

    assert (await db.get(Post, other_id, populate_existing=True)) is not None
    assert (await db.get(ContentFlag, flag_id, populate_existing=True)).status == "pending"
    assert (await db.execute(select(AdminLog))).first() is None


async def test_flag_write_failure_after_external_deletion_is_logged_for_reconciliation(db, monkeypatch, caplog):
    post_id = uuid.uuid4()
    flag_id = (await _classifier_flag(db, post_id=post_id)).id
    deleted = []

    class MediaService:
        async def delete(self, db, content_type, content_id):
            deleted.append((content_type, content_id))

    async def broken_apply(*args, **kwargs):
        raise OperationalError("UPDATE content_flags", {}, Exception("connection lost"))

    monkeypatch.setattr(disposition, "_apply_decision", broken_apply)
    caplog.set_level(logging.ERROR, logger="apps.moderation.disposition")

    with pytest.raises(DependencyFailure):
        await delete_flagged_content(db, flag_id, "post", post_id, uuid.uuid4(), deleter=MediaService())

    assert deleted == [("post", post_id)]
    assert (await db.get(ContentFlag, flag_id, populate_existing=True)).status == "pending"
    assert any(
        r.levelno == logging.ERROR and r.getMessage().startswith("Reconcile:") and str(post_id) in r.getMessage()
        for r in caplog.records
    )


async def test_delete_rejects_unknown_content_type(db):
    flag = await _classifier_flag(db)
    with pytest.raises(ValidationError):
        await delete_flagged_content(db, flag.id, "story", uuid.uuid4(), uuid.uuid4())


async def test_update_report_status_does_not_touch_flag(db, fake_redis):
    report = await file_user_report(db, fake_redis, uuid.uuid4(), "hate_speech", None, ReportTarget(user_id=uuid.uuid4()))

    updated = await update_report_status(db, report.id, "reviewed", uuid.uuid4())

    assert updated.status == "reviewed"
    flag = await db.get(ContentFlag, report.content_flag_id)
    await db.refresh(flag)
    assert flag.status == "pending"

    entry = (await db.execute(select(AdminLog))).scalar_one()
    assert entry.action_type == "update_report"
    assert entry.old_value == {"status": "pending"}


async def test_update_missing_report(db):
    with pytest.raises(NotFound):
        await update_report_status(db, uuid.uuid4(), "reviewed", uuid.uuid4())


async def test_reports_without_flag_are_unaffected_by_other_reviews(db, fake_redis):
    a = await file_user_report(db, fake_redis, uuid.uuid4(), "spam", None, ReportTarget(post_id=uuid.uuid4()))
    b = await file_user_report(db, fake_redis, uuid.uuid4(), "spam", None, ReportTarget(post_id=uuid.uuid4()))

    await review_flag(db, a.content_flag_id, "actioned", uuid.uuid4())

    statuses = dict((await db.execute(select(UserReport.id, UserReport.status))).all())
    assert statuses[a.id] == "actioned"
    assert statuses[b.id] == "pending"
