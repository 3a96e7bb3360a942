"""Ban repository – user_bans and user_ban_history reads and inserts."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from modgate.models.user_ban import UserBan
from modgate.models.user_ban_history import UserBanHistory


class BanRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._s = session

    async def get_active_ban(self, user_id: str, now: datetime) -> UserBan | None:
        """Return the newest active ban that has not expired yet."""
        result = await self._s.execute(
            select(UserBan)
            .where(
                UserBan.user_id == user_id,
                UserBan.is_active == True,  # noqa: E712
                or_(UserBan.expires_at.is_(None), UserBan.expires_at > now),
            )
            .order_by(UserBan.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def count_history_since(self, user_id: str, since: datetime) -> int:
        """Count violation history rows for a user created at or after *since*."""
        result = await self._s.execute(
            select(func.count())
            .select_from(UserBanHistory)
            .where(
                UserBanHistory.user_id == user_id,
                UserBanHistory.created_at >= since,
            )
        )
        return result.scalar_one()

    async def create_ban_with_history(
        self,
        *,
        user_id: str,
        ban_type: str,
        violation_count: int,
        ban_duration_days: int | None,
        history_duration_days: int,
        expires_at: datetime | None,
        reason: str,
        violation_type: str,
        moderation_score: Any,
        created_at: datetime,
        created_by: str | None = None,
    ) -> UserBan:
        """Insert a ban and its history entry in one transaction.

        Earlier bans are left as they are; the expiry sweep retires them.
        """
        ban = UserBan(
            user_id=user_id,
            ban_type=ban_type,
            violation_count=violation_count,
            ban_duration_days=ban_duration_days,
            expires_at=expires_at,
            reason=reason,
            is_active=True,
            created_at=created_at,
            created_by=created_by,
        )
        history = UserBanHistory(
            user_id=user_id,
            violation_type=violation_type,
            ban_duration_days=history_duration_days,
            moderation_score=moderation_score,
            created_at=created_at,
        )
        self._s.add(ban)
        self._s.add(history)
        await self._s.commit()
        return ban

    async def expire_bans(self, now: datetime) -> int:
        """Deactivate active bans whose expiry has passed.

        Permanent bans (``expires_at IS NULL``) are never touched.
        Returns the number of rows deactivated.
        """
        result = await self._s.execute(
            update(UserBan)
            .where(
                UserBan.is_active == True,  # noqa: E712
                UserBan.expires_at.is_not(None),
                UserBan.expires_at <= now,
            )
            .values(is_active=False)
        )
        await self._s.commit()
        return result.rowcount or 0

    async def count_active_bans(self, now: datetime) -> dict[str, int]:
        """Count active bans grouped by type.

        Returns e.g. {"shadow_ban": 4, "permanent_ban": 1}. Expired bans that
        the sweep has not reached yet are excluded.
        """
        result = await self._s.execute(
            select(UserBan.ban_type, func.count())
            .where(
                UserBan.is_active == True,  # noqa: E712
                or_(UserBan.expires_at.is_(None), UserBan.expires_at > now),
            )
            .group_by(UserBan.ban_type)
        )
        counts: dict[str, int] = {}
        for ban_type, cnt in result.all():
            counts[ban_type] = cnt
        return counts
