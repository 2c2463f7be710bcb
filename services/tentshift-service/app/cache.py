"""
Availability view cache.

Every tent has a generation counter. A cached view is stored under the
generation the reader saw before it queried the database, and invalidation
bumps the counter. A reader that raced a submission therefore writes its view
under a generation nobody reads any more, instead of over the fresh one.
"""
import logging
import uuid

from redis.exceptions import RedisError

from .config import AVAILABILITY_VIEW_TTL
from .redis_client import redis_client

logger = logging.getLogger(__name__)


def availability_generation_key(tent_id: uuid.UUID) -> str:
    return f"availability_view_gen:{tent_id}"


def availability_view_key(tent_id: uuid.UUID, generation: int) -> str:
    return f"availability_view:{tent_id}:{generation}"


async def get_view_generation(tent_id: uuid.UUID) -> int | None:
    """Current generation of the tent's view, or None when the cache is unusable."""
    if redis_client is None:
        return None
    try:
        raw = await redis_client.get(availability_generation_key(tent_id))
    except RedisError as e:
        logger.warning("availability view generation read failed for tent %s: %s", tent_id, e)
        return None
    return int(raw) if raw else 0


async def get_availability_view(tent_id: uuid.UUID, generation: int) -> str | None:
    if redis_client is None:
        return None
    try:
        return await redis_client.get(availability_view_key(tent_id, generation))
    except RedisError as e:
        logger.warning("availability view cache read failed for tent %s: %s", tent_id, e)
        return None


async def set_availability_view(
    tent_id: uuid.UUID,
    generation: int,
    value: str,
    ttl_seconds: int = AVAILABILITY_VIEW_TTL,
):
    if redis_client is None:
        return
    try:
        await redis_client.set(availability_view_key(tent_id, generation), value, ex=ttl_seconds)
    except RedisError as e:
        logger.warning("availability view cache write failed for tent %s: %s", tent_id, e)


async def invalidate_availability_view(tent_id: uuid.UUID) -> int | None:
    """
    Move the tent to a new generation so the next read goes to the database.
    Returns the new generation, or None when the cache is off or unreachable.
    """
    if redis_client is None:
        return None
    try:
        generation = await redis_client.incr(availability_generation_key(tent_id))
    except RedisError as e:
        logger.error("availability view invalidation failed for tent %s: %s", tent_id, e)
        return None
    return int(generation)
