"""ModerationLog repository – append-only writes to moderation_logs."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from modgate.models.moderation_log import ModerationLog


class ModerationLogRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._s = session

    async def add(
        self,
        content_type: str,
        content_id: int,
        content_text: str,
        classifier_response: Any,
        flagged: bool,
        action_taken: str,
    ) -> ModerationLog:
        """Append one audit row. Rows are never updated afterwards."""
        entry = ModerationLog(
            content_type=content_type,
            content_id=content_id,
            content_text=content_text,
            classifier_response=classifier_response,
            flagged=flagged,
            action_taken=action_taken,
        )
        self._s.add(entry)
        await self._s.commit()
        return entry
