"""Ban escalation – turns repeated violations into growing ban durations."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from modgate.db.engine import async_session
from modgate.db.repositories.ban_repo import BanRepo
from modgate.services.ban_status import invalidate_ban_cache
from modgate.services.config_store import BanTierSettings
from modgate.utils.enums import BanType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BanOutcome:
    ban_type: BanType
    ban_duration_days: int
    violation_count: int
    expires_at: datetime | None


def resolve_ban(ordinal: int, tiers: BanTierSettings) -> tuple[BanType, int]:
    """Map an escalation ordinal to ``(ban_type, duration_days)``.

    Only the ordinal matters, not which categories were violated.
    """
    duration = tiers.duration_for(ordinal)
    if duration >= tiers.max_ban_days:
        return BanType.PERMANENT_BAN, duration
    return BanType.SHADOW_BAN, duration


class BanEscalator:
    """Records a violation and issues the next ban in the user's ladder.

    The ordinal is the number of history rows inside the reset window plus
    one. Two concurrent violations for one user may read the same count and
    land on the same tier; rows are only ever inserted, so nothing is lost.
    """

    def __init__(
        self,
        tiers: BanTierSettings,
        redis: aioredis.Redis | None = None,
    ) -> None:
        self._tiers = tiers
        self._redis = redis

    async def record_violation(
        self,
        user_id: str,
        violations: Sequence[str],
        raw_score: Any,
        now: datetime | None = None,
    ) -> BanOutcome | None:
        """Write a ban + history pair. Returns ``None`` if nothing was written.

        Persistence errors are logged and swallowed.
        """
        if not violations:
            return None
        now = now or datetime.now(timezone.utc)
        window_start = now - timedelta(days=self._tiers.reset_window_days)

        try:
            async with async_session() as session:
                repo = BanRepo(session)
                prior = await repo.count_history_since(user_id, window_start)
                ordinal = prior + 1
                ban_type, duration = resolve_ban(ordinal, self._tiers)
                permanent = ban_type is BanType.PERMANENT_BAN
                expires_at = None if permanent else now + timedelta(days=duration)

                await repo.create_ban_with_history(
                    user_id=user_id,
                    ban_type=ban_type.value,
                    violation_count=ordinal,
                    ban_duration_days=None if permanent else duration,
                    history_duration_days=duration,
                    expires_at=expires_at,
                    reason=", ".join(violations),
                    violation_type=",".join(violations),
                    moderation_score=raw_score,
                    created_at=now,
                )
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            logger.error("Failed to record violation for user %s: %s", user_id, e)
            return None

        logger.info(
            "User %s: violation #%d in %dd window -> %s (%dd)",
            user_id,
            ordinal,
            self._tiers.reset_window_days,
            ban_type.value,
            duration,
        )

        if self._redis is not None:
            try:
                await invalidate_ban_cache(self._redis, user_id)
            except RedisError as e:
                logger.warning("Failed to invalidate ban cache for %s: %s", user_id, e)

        return BanOutcome(
            ban_type=ban_type,
            ban_duration_days=duration,
            violation_count=ordinal,
            expires_at=expires_at,
        )
