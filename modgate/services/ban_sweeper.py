"""Ban expiry sweeper – periodically deactivates shadow bans past their expiry."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from modgate.config import settings
from modgate.db.engine import async_session
from modgate.db.repositories.ban_repo import BanRepo

logger = logging.getLogger(__name__)


class BanExpirySweeper:
    """Background task flipping ``is_active`` off on expired bans."""

    def __init__(self, interval: float | None = None) -> None:
        self._interval = interval if interval is not None else settings.BAN_SWEEP_INTERVAL
        self._task: asyncio.Task | None = None
        self._running = False

    async def start(self) -> None:
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="ban-expiry-sweeper")
        logger.info("Ban expiry sweeper started (every %ss).", self._interval)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Ban expiry sweeper stopped.")

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.sweep()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Ban expiry sweep error: %s", e)
            await asyncio.sleep(self._interval)

    async def sweep(self) -> int:
        """Run one pass. Returns the number of bans deactivated."""
        now = datetime.now(timezone.utc)
        async with async_session() as session:
            expired = await BanRepo(session).expire_bans(now)
        if expired:
            logger.info("Deactivated %d expired bans.", expired)
        return expired
