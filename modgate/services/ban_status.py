"""Ban status – cached "is this user banned" checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from modgate.db.engine import async_session
from modgate.db.repositories.ban_repo import BanRepo
from modgate.utils.enums import BanType

logger = logging.getLogger(__name__)

BAN_CACHE_TTL = 300  # 5 minutes


@dataclass(frozen=True)
class BanStatus:
    ban_type: BanType
    expires_at: datetime | None = None  # None = permanent


def _cache_key(user_id: str) -> str:
    return f"ban:{user_id}"


def _encode(status: BanStatus | None) -> str:
    if status is None:
        return "none"
    expires = status.expires_at.isoformat() if status.expires_at else ""
    return f"{status.ban_type.value}|{expires}"


def _decode(value: str) -> BanStatus | None:
    if value == "none":
        return None
    ban_type, _, expires = value.partition("|")
    return BanStatus(
        ban_type=BanType(ban_type),
        expires_at=datetime.fromisoformat(expires) if expires else None,
    )


async def is_user_banned(redis_client: aioredis.Redis, user_id: str) -> BanStatus | None:
    """Return the user's current ban, or ``None``.

    A ban counts while it is active and either permanent or not yet expired.
    Uses a Redis cache (``ban:{user_id}``) with a 5-min TTL; a cached ban
    whose expiry has passed is treated as a miss. Redis errors fall through
    to the database.
    """
    now = datetime.now(timezone.utc)
    cache_key = _cache_key(user_id)
    try:
        cached = await redis_client.get(cache_key)
    except RedisError as e:
        logger.warning("Ban cache read failed for %s: %s", user_id, e)
        cached = None
    if cached is not None:
        val = cached if isinstance(cached, str) else cached.decode()
        status = _decode(val)
        if status is None or status.expires_at is None or status.expires_at > now:
            return status

    async with async_session() as session:
        ban = await BanRepo(session).get_active_ban(user_id, now)

    status = None
    if ban is not None:
        expires_at = ban.expires_at
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        status = BanStatus(ban_type=BanType(ban.ban_type), expires_at=expires_at)

    try:
        await redis_client.set(cache_key, _encode(status), ex=BAN_CACHE_TTL)
    except RedisError as e:
        logger.warning("Ban cache write failed for %s: %s", user_id, e)
    return status


async def invalidate_ban_cache(redis_client: aioredis.Redis, user_id: str) -> None:
    """Delete the ban cache key after a ban is issued or lifted."""
    await redis_client.delete(_cache_key(user_id))
