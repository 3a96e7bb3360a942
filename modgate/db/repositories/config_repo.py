"""Config repositories – app_config key/values and moderation_config rules."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from modgate.models.app_config import AppConfig
from modgate.models.moderation_config import ModerationConfig


class ConfigRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._s = session

    async def set_value(
        self,
        key: str,
        value: str,
        category: str = "general",
        description: str | None = None,
    ) -> None:
        """Upsert a config value."""
        stmt = (
            pg_insert(AppConfig)
            .values(key=key, value=value, category=category, description=description)
            .on_conflict_do_update(
                index_elements=["key"],
                set_={"value": value, "updated_at": func.now()},
            )
        )
        await self._s.execute(stmt)
        await self._s.commit()

    async def get_category(self, category: str) -> dict[str, str]:
        """Get all config values in one category as a dict."""
        result = await self._s.execute(
            select(AppConfig).where(AppConfig.category == category)
        )
        return {row.key: row.value for row in result.scalars().all()}


class ModerationConfigRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._s = session

    async def list_rules(self) -> list[ModerationConfig]:
        """Return every configured moderation rule."""
        result = await self._s.execute(
            select(ModerationConfig).order_by(ModerationConfig.id)
        )
        return list(result.scalars().all())

    async def count_rules(self) -> int:
        result = await self._s.execute(
            select(func.count()).select_from(ModerationConfig)
        )
        return result.scalar_one()

    async def upsert_rule(
        self,
        category: str,
        threshold: float,
        auto_action: str,
        applies_to: str = "both",
    ) -> None:
        """Insert or replace the rule for ``(category, applies_to)``."""
        stmt = (
            pg_insert(ModerationConfig)
            .values(
                category=category,
                threshold=threshold,
                auto_action=auto_action,
                applies_to=applies_to,
            )
            .on_conflict_do_update(
                index_elements=["category", "applies_to"],
                set_={
                    "threshold": threshold,
                    "auto_action": auto_action,
                    "updated_at": func.now(),
                },
            )
        )
        await self._s.execute(stmt)
        await self._s.commit()
