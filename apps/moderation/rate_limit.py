"""Per-actor action budgets backed by Redis counters.

Each (action_type, actor) pair owns one key, ``rl:<action_type>:<actor_id>``.
The first increment in a window starts the TTL; the window resets when the
key expires.
"""

import logging
import uuid

import redis.asyncio as redis

logger = logging.getLogger(__name__)


def _key(actor_id: uuid.UUID | str, action_type: str) -> str:
    return f"rl:{action_type}:{actor_id}"


async def _incr_in_window(client: redis.Redis, key: str, window_hours: int) -> int:
    # Fixed window anchored at the first counted action, not a rolling 24h log.
    # INCR and the NX expire run as one MULTI block so a key never outlives its window
    async with client.pipeline(transaction=True) as pipe:
        pipe.incr(key)
        pipe.expire(key, window_hours * 3600, nx=True)
        count, _ = await pipe.execute()
    return int(count)


async def _give_back(client: redis.Redis, key: str) -> None:
    remaining = await client.decr(key)
    if remaining < 0:
        # Window expired in between; DECR recreated the key without a TTL
        await client.delete(key)


async def check_rate_limit(
    client: redis.Redis, actor_id: uuid.UUID | str, action_type: str, max_actions: int, window_hours: int = 24
) -> bool:
    """Return True if the actor may still perform ``action_type`` in the current window.

    This is a read-only peek. Use :func:`try_consume` when the caller is about
    to perform the action, otherwise two concurrent requests can both pass.
    """
    raw = await client.get(_key(actor_id, action_type))
    return int(raw or 0) < max_actions


async def increment_rate_limit(
    client: redis.Redis, actor_id: uuid.UUID | str, action_type: str, window_hours: int = 24
) -> int:
    """Record one action unconditionally and return the new count."""
    return await _incr_in_window(client, _key(actor_id, action_type), window_hours)


async def try_consume(
    client: redis.Redis, actor_id: uuid.UUID | str, action_type: str, max_actions: int, window_hours: int = 24
) -> bool:
    """
    Atomically take one unit of the actor's budget.

    Args:
        client: Redis client
        actor_id: Acting user
        action_type: Budget name, e.g. "report"
        max_actions: Cap per window
        window_hours: Window length

    Returns:
        True if the action is allowed and has been counted, False if the cap is reached
    """
    key = _key(actor_id, action_type)
    count = await _incr_in_window(client, key, window_hours)
    if count > max_actions:
        await _give_back(client, key)
        logger.info(f"Rate limit hit: actor={actor_id}, action={action_type}, max={max_actions}")
        return False
    return True


async def refund(client: redis.Redis, actor_id: uuid.UUID | str, action_type: str) -> None:
    """Give back a unit taken by :func:`try_consume` when the action itself failed."""
    await _give_back(client, _key(actor_id, action_type))
