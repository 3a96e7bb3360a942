"""Application setup – ensures tables, seeds config, runs background workers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import redis.asyncio as aioredis

from modgate.config import settings
from modgate.services.ban_sweeper import BanExpirySweeper
from modgate.services.classifier import OpenAIModerationClassifier
from modgate.services.gate import ContentGate

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Long-lived collaborators shared by the content-creation handlers."""

    redis: aioredis.Redis
    classifier: OpenAIModerationClassifier
    gate: ContentGate
    sweeper: BanExpirySweeper


async def _on_startup(ctx: AppContext) -> None:
    """Create tables if needed, seed defaults, start the sweeper."""
    from modgate.db.base import Base
    from modgate.db.engine import async_session, engine

    # Import models so they register on metadata
    from modgate.models.app_config import AppConfig  # noqa: F401
    from modgate.models.content import Comment, Post  # noqa: F401
    from modgate.models.moderation_config import ModerationConfig  # noqa: F401
    from modgate.models.moderation_log import ModerationLog  # noqa: F401
    from modgate.models.user_ban import UserBan  # noqa: F401
    from modgate.models.user_ban_history import UserBanHistory  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables ensured.")

    from modgate.services.config_store import seed_defaults

    async with async_session() as session:
        if await seed_defaults(session):
            logger.info("Seeded default moderation configuration.")

    await ctx.sweeper.start()

    from datetime import datetime, timezone

    from modgate.db.repositories.ban_repo import BanRepo

    async with async_session() as session:
        counts = await BanRepo(session).count_active_bans(datetime.now(timezone.utc))
    logger.info(
        "Moderation worker started (active bans: %s).",
        ", ".join(f"{k}={v}" for k, v in sorted(counts.items())) or "none",
    )


async def _on_shutdown(ctx: AppContext) -> None:
    """Graceful shutdown – stop the sweeper, close pools."""
    logger.info("Shutting down…")
    await ctx.sweeper.stop()
    await ctx.classifier.close()
    await ctx.redis.close()

    from modgate.db.engine import engine

    await engine.dispose()
    logger.info("Shutdown complete.")


def build_context() -> AppContext:
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    classifier = OpenAIModerationClassifier()
    return AppContext(
        redis=redis,
        classifier=classifier,
        gate=ContentGate(classifier, redis=redis),
        sweeper=BanExpirySweeper(),
    )


async def main() -> None:
    """Entry point."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    ctx = build_context()
    await _on_startup(ctx)
    try:
        # Keep running until interrupted
        await asyncio.Event().wait()
    finally:
        await _on_shutdown(ctx)
