"""Content gate – runs new posts and comments through moderation.

Content arrives already persisted with ``is_flagged=True`` so nothing is
visible before a decision exists. The gate classifies the text, evaluates
it, applies the decision to the row and, when categories were violated,
escalates the author's ban ladder. Escalation is best-effort: its failures
never undo or block the content decision.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import redis.asyncio as aioredis
from sqlalchemy.exc import SQLAlchemyError

from modgate.db.engine import async_session
from modgate.db.repositories.content_repo import ContentRepo
from modgate.services.classifier import Classifier
from modgate.services.config_store import ConfigStore, load_config_store
from modgate.services.escalation import BanEscalator
from modgate.services.moderation import (
    ContentItem,
    ModerationDecision,
    ModerationEngine,
    evaluate_failure,
)
from modgate.utils.enums import ContentType, ModerationAction, SubmissionStatus
from modgate.utils.errors import ClassifierError

logger = logging.getLogger(__name__)

# Never names categories, scores or ban details.
_MESSAGES: dict[SubmissionStatus, str] = {
    SubmissionStatus.PUBLISHED: "{kind} published successfully",
    SubmissionStatus.PENDING_REVIEW: "{kind} created but requires review before publishing",
    SubmissionStatus.REJECTED: "{kind} violates community guidelines and was rejected",
}

_STATUS_FOR_ACTION: dict[ModerationAction, SubmissionStatus] = {
    ModerationAction.APPROVED: SubmissionStatus.PUBLISHED,
    ModerationAction.MANUAL_REVIEW: SubmissionStatus.PENDING_REVIEW,
    ModerationAction.REMOVED: SubmissionStatus.REJECTED,
}


@dataclass(frozen=True)
class SubmissionResult:
    status: SubmissionStatus
    message: str
    content_id: int | None = None  # omitted for rejected content

    @property
    def success(self) -> bool:
        return self.status is not SubmissionStatus.REJECTED


def submission_message(content_type: ContentType, status: SubmissionStatus) -> str:
    return _MESSAGES[status].format(kind=content_type.value.capitalize())


def _log_detached_failure(task: asyncio.Future, item: ContentItem) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "Moderation of %s %d failed after caller left: %s",
            item.content_type.value,
            item.content_id,
            exc,
        )


class ContentGate:
    def __init__(
        self,
        classifier: Classifier,
        redis: aioredis.Redis | None = None,
    ) -> None:
        self._classifier = classifier
        self._redis = redis

    async def submit(self, item: ContentItem) -> SubmissionResult:
        """Moderate one freshly created content row.

        The pipeline is shielded: if the caller is cancelled, the decision and
        any ban still complete in the background.
        """
        if not item.text or not item.text.strip():
            raise ValueError("content text cannot be empty")
        task = asyncio.ensure_future(self._process(item))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # Nobody awaits the task any more; surface its failure here.
            task.add_done_callback(lambda t: _log_detached_failure(t, item))
            raise

    async def _process(self, item: ContentItem) -> SubmissionResult:
        decision, config = await self._moderate(item)
        status = await self._apply(item, decision)

        if decision.violations and not decision.service_error and config is not None:
            await self._escalate(item, decision, config)

        return SubmissionResult(
            status=status,
            message=submission_message(item.content_type, status),
            content_id=None if status is SubmissionStatus.REJECTED else item.content_id,
        )

    async def _moderate(
        self, item: ContentItem
    ) -> tuple[ModerationDecision, ConfigStore | None]:
        try:
            async with async_session() as session:
                config = await load_config_store(session)
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            return await evaluate_failure(item, f"config unavailable: {e}"), None

        try:
            result = await self._classifier.classify(item.text)
        except ClassifierError as e:
            return await evaluate_failure(item, str(e)), None

        return await ModerationEngine(config).evaluate(item, result), config

    async def _apply(
        self, item: ContentItem, decision: ModerationDecision
    ) -> SubmissionStatus:
        status = _STATUS_FOR_ACTION[decision.action]
        async with async_session() as session:
            repo = ContentRepo(session)
            if status is SubmissionStatus.PUBLISHED:
                await repo.set_visibility(
                    item.content_type,
                    item.content_id,
                    is_flagged=False,
                    moderation_score=decision.raw_response,
                )
            elif status is SubmissionStatus.PENDING_REVIEW:
                await repo.set_visibility(
                    item.content_type,
                    item.content_id,
                    is_flagged=True,
                    moderation_score=decision.raw_response,
                )
            else:
                await repo.delete(item.content_type, item.content_id)
        return status

    async def _escalate(
        self, item: ContentItem, decision: ModerationDecision, config: ConfigStore
    ) -> None:
        if item.user_id is None:
            logger.warning(
                "No author for %s %d; skipping ban escalation.",
                item.content_type.value,
                item.content_id,
            )
            return
        escalator = BanEscalator(config.ban_tiers, redis=self._redis)
        try:
            await escalator.record_violation(
                item.user_id, decision.violations, decision.raw_response
            )
        except Exception as e:
            logger.error("Ban escalation failed for user %s: %s", item.user_id, e)
