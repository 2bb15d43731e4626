"""Tests for the Redis-backed action budgets."""

import asyncio
import uuid

import pytest

from apps.moderation import rate_limit

pytestmark = pytest.mark.asyncio


async def test_try_consume_allows_up_to_cap(fake_redis):
    actor = uuid.uuid4()
    results = [await rate_limit.try_consume(fake_redis, actor, "report", 3, 24) for _ in range(4)]
    assert results == [True, True, True, False]
    # Refused attempt is not counted
    assert await fake_redis.get(f"rl:report:{actor}") == "3"


async def test_concurrent_consumers_never_exceed_cap(fake_redis):
    actor = uuid.uuid4()
    results = await asyncio.gather(*(rate_limit.try_consume(fake_redis, actor, "report", 10, 24) for _ in range(15)))
    assert results.count(True) == 10


async def test_window_ttl_set_on_first_action_only(fake_redis):
    actor = uuid.uuid4()
    await rate_limit.try_consume(fake_redis, actor, "report", 10, 24)
    fake_redis.advance(3600)
    await rate_limit.try_consume(fake_redis, actor, "report", 10, 24)
    assert await fake_redis.ttl(f"rl:report:{actor}") == 23 * 3600


async def test_budget_resets_after_window(fake_redis):
    actor = uuid.uuid4()
    for _ in range(2):
        assert await rate_limit.try_consume(fake_redis, actor, "report", 2, 1)
    assert not await rate_limit.try_consume(fake_redis, actor, "report", 2, 1)

    fake_redis.advance(3601)
    assert await rate_limit.try_consume(fake_redis, actor, "report", 2, 1)


async def test_budgets_are_per_actor_and_action(fake_redis):
    a, b = uuid.uuid4(), uuid.uuid4()
    assert await rate_limit.try_consume(fake_redis, a, "report", 1, 24)
    assert not await rate_limit.try_consume(fake_redis, a, "report", 1, 24)
    assert await rate_limit.try_consume(fake_redis, b, "report", 1, 24)
    assert await rate_limit.try_consume(fake_redis, a, "flag", 1, 24)


async def test_check_and_increment(fake_redis):
    actor = uuid.uuid4()
    assert await rate_limit.check_rate_limit(fake_redis, actor, "report", 2, 24)
    assert await rate_limit.increment_rate_limit(fake_redis, actor, "report", 24) == 1
    assert await rate_limit.increment_rate_limit(fake_redis, actor, "report", 24) == 2
    assert not await rate_limit.check_rate_limit(fake_redis, actor, "report", 2, 24)


async def test_refund_after_expiry_leaves_no_negative_key(fake_redis):
    actor = uuid.uuid4()
    await rate_limit.try_consume(fake_redis, actor, "report", 5, 1)
    fake_redis.advance(3601)
    await rate_limit.refund(fake_redis, actor, "report")
    assert await fake_redis.get(f"rl:report:{actor}") is None


async def test_refusal_after_expiry_leaves_no_negative_key(fake_redis, monkeypatch):
    actor = uuid.uuid4()
    key = f"rl:report:{actor}"
    assert await rate_limit.try_consume(fake_redis, actor, "report", 1, 1)

    real_decr = fake_redis.decr

    async def decr_after_expiry(name):
        # Window runs out between the counting pipeline and the give-back
        fake_redis.advance(3601)
        return await real_decr(name)

    monkeypatch.setattr(fake_redis, "decr", decr_after_expiry)

    assert not await rate_limit.try_consume(fake_redis, actor, "report", 1, 1)
    assert await fake_redis.get(key) is None
    monkeypatch.undo()
    assert await rate_limit.try_consume(fake_redis, actor, "report", 1, 1)
    assert await fake_redis.ttl(key) > 0
