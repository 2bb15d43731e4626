"""Tests for role lookups."""

import uuid

import pytest

from apps.moderation import has_role
from apps.moderation.roles import ADMIN_ROLES, REVIEWER_ROLES
from models.role import AppRole

pytestmark = pytest.mark.asyncio


async def test_has_role(db, grant_role):
    moderator = await grant_role(uuid.uuid4(), AppRole.MODERATOR)
    member = await grant_role(uuid.uuid4(), AppRole.USER)

    assert await has_role(db, moderator, REVIEWER_ROLES)
    assert not await has_role(db, moderator, ADMIN_ROLES)
    assert not await has_role(db, member, REVIEWER_ROLES)
    assert not await has_role(db, uuid.uuid4(), REVIEWER_ROLES)
