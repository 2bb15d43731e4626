"""Tests for the audit trail."""

import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from apps.moderation import audit, fetch_logs, ingest_automated_flag, log_action, review_flag
from apps.moderation.schemas import ClassifierSignal
from models import AdminLog

pytestmark = pytest.mark.asyncio


async def _broken_write(db, entry):
    raise OperationalError("INSERT INTO admin_logs", {}, Exception("disk full"))


async def test_log_action_appends_entry(db):
    admin = uuid.uuid4()
    ok = await log_action(
        db,
        admin,
        "adjust_likes",
        "post",
        uuid.uuid4(),
        old_value={"likes": 10},
        new_value={"likes": 0},
        reason="bot likes",
        ip_address="203.0.113.7",
    )

    assert ok is True
    entry = (await db.execute(select(AdminLog))).scalar_one()
    assert entry.admin_id == admin
    assert entry.old_value == {"likes": 10}
    assert entry.new_value == {"likes": 0}
    assert entry.ip_address == "203.0.113.7"


async def test_log_action_without_admin_is_dropped(db):
    assert await log_action(db, None, "ban_user", "user", uuid.uuid4()) is False
    assert (await db.execute(select(func.count()).select_from(AdminLog))).scalar_one() == 0


async def test_store_failure_is_swallowed(db, monkeypatch):
    monkeypatch.setattr(audit, "_write", _broken_write)
    assert await log_action(db, uuid.uuid4(), "ban_user", "user", uuid.uuid4()) is False


async def test_review_succeeds_when_audit_write_fails(db, monkeypatch):
    flag = await ingest_automated_flag(
        db, ClassifierSignal(post_id=uuid.uuid4(), category="violence", confidence=0.81, urgency_level=8)
    )
    monkeypatch.setattr(audit, "_write", _broken_write)

    reviewed = await review_flag(db, flag.id, "actioned", uuid.uuid4(), notes="graphic")

    assert reviewed.status == "actioned"
    assert reviewed.action_notes == "graphic"
    assert (await db.execute(select(func.count()).select_from(AdminLog))).scalar_one() == 0


async def test_fetch_logs_newest_first_with_filter_and_profile(db, profiles):
    rita = profiles["rita"]
    base = datetime(2026, 10, 1, 9, 0, 0)
    db.add_all(
        [
            AdminLog(admin_id=rita.id, action_type="ban_user", target_type="user", created_at=base),
            AdminLog(admin_id=rita.id, action_type="review_flag", target_type="flag", created_at=base + timedelta(1)),
            AdminLog(admin_id=uuid.uuid4(), action_type="ban_user", target_type="user", created_at=base + timedelta(2)),
        ]
    )
    await db.commit()

    logs = await fetch_logs(db)
    assert [log.created_at for log in logs] == sorted((log.created_at for log in logs), reverse=True)
    assert logs[0].admin_profile is None
    assert logs[1].admin_profile.username == "rita"

    bans = await fetch_logs(db, 10, "ban_user")
    assert len(bans) == 2
    assert all(log.action_type == "ban_user" for log in bans)

    assert len(await fetch_logs(db, 1)) == 1
