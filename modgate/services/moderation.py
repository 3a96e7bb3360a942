"""Moderation engine – threshold rules over classifier scores, audit logging."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from modgate.db.engine import async_session
from modgate.db.repositories.moderation_log_repo import ModerationLogRepo
from modgate.services.classifier import ClassifierResult
from modgate.services.config_store import ConfigStore
from modgate.utils.enums import ContentType, ModerationAction

logger = logging.getLogger(__name__)

SERVICE_ERROR_VIOLATION = "moderation_service_error"


@dataclass(frozen=True)
class ContentItem:
    content_type: ContentType
    content_id: int
    text: str
    user_id: str | None = None


@dataclass(frozen=True)
class ModerationDecision:
    content_type: ContentType
    content_id: int
    flagged: bool
    action: ModerationAction
    violations: tuple[str, ...] = ()
    raw_response: Any = None
    service_error: bool = False  # True for the fail-safe decision
    error_detail: str | None = field(default=None, compare=False)

    @property
    def approved(self) -> bool:
        return self.action is ModerationAction.APPROVED


class ModerationEngine:
    """Evaluates one content item's classifier result against a config snapshot."""

    def __init__(self, config: ConfigStore) -> None:
        self._config = config

    def decide(self, item: ContentItem, result: ClassifierResult) -> ModerationDecision:
        """Pure rule evaluation; no I/O.

        Every category meeting its threshold is a violation. The action is the
        most severe ``auto_action`` among violations and never moves down.
        """
        action = ModerationAction.APPROVED
        flagged = result.flagged
        violations: list[str] = []

        for category, score in result.category_scores.items():
            rule = self._config.rule_for(category, item.content_type)
            if rule is None:
                continue
            if score >= rule.threshold:
                if category not in violations:
                    violations.append(category)
                flagged = True
                action = action.escalate(rule.auto_action)

        return ModerationDecision(
            content_type=item.content_type,
            content_id=item.content_id,
            flagged=flagged,
            action=action,
            violations=tuple(violations),
            raw_response=result.raw,
        )

    async def evaluate(
        self, item: ContentItem, result: ClassifierResult
    ) -> ModerationDecision:
        """Decide and write exactly one audit row, whatever the outcome."""
        decision = self.decide(item, result)
        logger.info(
            "Moderated %s %d: action=%s flagged=%s violations=%s",
            item.content_type.value,
            item.content_id,
            decision.action.value,
            decision.flagged,
            ",".join(decision.violations) or "-",
        )
        await write_audit_log(item, decision)
        return decision


def fail_safe_decision(item: ContentItem, detail: str | None = None) -> ModerationDecision:
    """Decision used when the classifier or config is unavailable: hold for review."""
    return ModerationDecision(
        content_type=item.content_type,
        content_id=item.content_id,
        flagged=True,
        action=ModerationAction.MANUAL_REVIEW,
        violations=(SERVICE_ERROR_VIOLATION,),
        raw_response=None,
        service_error=True,
        error_detail=detail,
    )


async def evaluate_failure(item: ContentItem, detail: str) -> ModerationDecision:
    """Build the fail-safe decision and audit it like any other."""
    logger.warning(
        "Moderation unavailable for %s %d, holding for review: %s",
        item.content_type.value,
        item.content_id,
        detail,
    )
    decision = fail_safe_decision(item, detail)
    await write_audit_log(item, decision)
    return decision


async def write_audit_log(item: ContentItem, decision: ModerationDecision) -> bool:
    """Append a moderation_logs row. Failures are logged, never raised.

    Returns True if the row was written.
    """
    response = decision.raw_response
    if decision.service_error:
        response = {"error": decision.error_detail or SERVICE_ERROR_VIOLATION}
    try:
        async with async_session() as session:
            await ModerationLogRepo(session).add(
                content_type=item.content_type.value,
                content_id=item.content_id,
                content_text=item.text,
                classifier_response=response,
                flagged=decision.flagged,
                action_taken=decision.action.value,
            )
    except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
        logger.error(
            "Failed to write moderation log for %s %d: %s",
            item.content_type.value,
            item.content_id,
            e,
        )
        return False
    return True
