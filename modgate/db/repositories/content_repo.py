"""Content repository – visibility updates and hard deletes for posts/comments."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from modgate.models.content import Comment, Post
from modgate.utils.enums import ContentType

_MODELS: dict[ContentType, type[Post] | type[Comment]] = {
    ContentType.POST: Post,
    ContentType.COMMENT: Comment,
}


class ContentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._s = session

    async def set_visibility(
        self,
        content_type: ContentType,
        content_id: int,
        *,
        is_flagged: bool,
        moderation_score: Any,
    ) -> bool:
        """Set ``is_flagged`` and attach the classifier snapshot.

        Returns True if the row existed.
        """
        model = _MODELS[content_type]
        result = await self._s.execute(
            update(model)
            .where(model.id == content_id)
            .values(is_flagged=is_flagged, moderation_score=moderation_score)
        )
        await self._s.commit()
        return (result.rowcount or 0) > 0

    async def delete(self, content_type: ContentType, content_id: int) -> bool:
        """Hard-delete a content row. Returns True if a row was removed."""
        model = _MODELS[content_type]
        result = await self._s.execute(delete(model).where(model.id == content_id))
        await self._s.commit()
        return (result.rowcount or 0) > 0
