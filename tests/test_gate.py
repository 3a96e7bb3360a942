"""Tests for the content gate – end-to-end decision handling per submission."""

from __future__ import annotations

import asyncio
import logging
from contextlib import ExitStack
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from modgate.services.config_store import load_config_store
from modgate.services.gate import ContentGate, submission_message
from modgate.services.moderation import ContentItem
from modgate.utils.enums import ContentType, ModerationAction, SubmissionStatus
from modgate.utils.errors import ClassifierError


@pytest.fixture
def gate_env(session_factory, config_store):
    """Patch persistence around the gate and expose the mocks."""
    content_repo = MagicMock()
    content_repo.set_visibility = AsyncMock(return_value=True)
    content_repo.delete = AsyncMock(return_value=True)

    escalator = MagicMock()
    escalator.record_violation = AsyncMock(return_value=None)

    classifier = MagicMock()
    classifier.classify = AsyncMock()

    with ExitStack() as stack:
        stack.enter_context(patch("modgate.services.gate.async_session", session_factory))
        load_config = stack.enter_context(
            patch(
                "modgate.services.gate.load_config_store",
                new=AsyncMock(return_value=config_store),
            )
        )
        stack.enter_context(
            patch("modgate.services.gate.ContentRepo", return_value=content_repo)
        )
        escalator_cls = stack.enter_context(
            patch("modgate.services.gate.BanEscalator", return_value=escalator)
        )
        audit_log = stack.enter_context(
            patch("modgate.services.moderation.write_audit_log", new=AsyncMock(return_value=True))
        )
        yield SimpleNamespace(
            gate=ContentGate(classifier),
            classifier=classifier,
            content_repo=content_repo,
            escalator=escalator,
            escalator_cls=escalator_cls,
            audit_log=audit_log,
            load_config=load_config,
        )


def _post(text: str = "hello campus", user_id: str | None = "author-1") -> ContentItem:
    return ContentItem(ContentType.POST, 42, text, user_id=user_id)


# ── Decision branches ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_clean_post_is_published_without_escalation(gate_env, make_result):
    result = make_result()
    gate_env.classifier.classify.return_value = result

    outcome = await gate_env.gate.submit(_post())

    assert outcome.status is SubmissionStatus.PUBLISHED
    assert outcome.content_id == 42
    assert outcome.success
    assert outcome.message == "Post published successfully"
    gate_env.content_repo.set_visibility.assert_awaited_once_with(
        ContentType.POST, 42, is_flagged=False, moderation_score=result.raw
    )
    gate_env.content_repo.delete.assert_not_awaited()
    gate_env.escalator.record_violation.assert_not_awaited()
    gate_env.audit_log.assert_awaited_once()


@pytest.mark.asyncio
async def test_hate_threatening_post_is_removed_and_author_escalated(gate_env, make_result):
    result = make_result(scores={"hate/threatening": 0.75})
    gate_env.classifier.classify.return_value = result

    outcome = await gate_env.gate.submit(_post())

    assert outcome.status is SubmissionStatus.REJECTED
    assert outcome.content_id is None
    assert not outcome.success
    gate_env.content_repo.delete.assert_awaited_once_with(ContentType.POST, 42)
    gate_env.content_repo.set_visibility.assert_not_awaited()
    gate_env.escalator.record_violation.assert_awaited_once_with(
        "author-1", ("hate/threatening",), result.raw
    )
    gate_env.audit_log.assert_awaited_once()
    _, decision = gate_env.audit_log.await_args.args
    assert decision.action is ModerationAction.REMOVED


@pytest.mark.asyncio
async def test_manual_review_keeps_hidden_and_escalates(gate_env, make_result):
    result = make_result(scores={"harassment": 0.8})
    gate_env.classifier.classify.return_value = result

    outcome = await gate_env.gate.submit(_post())

    assert outcome.status is SubmissionStatus.PENDING_REVIEW
    assert outcome.content_id == 42
    gate_env.content_repo.set_visibility.assert_awaited_once_with(
        ContentType.POST, 42, is_flagged=True, moderation_score=result.raw
    )
    gate_env.escalator.record_violation.assert_awaited_once()


@pytest.mark.asyncio
async def test_approved_rule_violation_still_escalates(gate_env, make_result):
    gate_env.classifier.classify.return_value = make_result(scores={"spam": 0.9})

    outcome = await gate_env.gate.submit(_post())

    assert outcome.status is SubmissionStatus.PUBLISHED
    gate_env.escalator.record_violation.assert_awaited_once()


@pytest.mark.asyncio
async def test_escalator_built_from_snapshot_tiers(gate_env, make_result, config_store):
    gate_env.classifier.classify.return_value = make_result(scores={"hate": 0.9})

    await gate_env.gate.submit(_post())

    gate_env.escalator_cls.assert_called_once_with(config_store.ban_tiers, redis=None)


@pytest.mark.asyncio
async def test_comment_uses_comment_copy(gate_env, make_result):
    gate_env.classifier.classify.return_value = make_result()
    item = ContentItem(ContentType.COMMENT, 7, "nice", user_id="author-1")

    outcome = await gate_env.gate.submit(item)

    assert outcome.message == "Comment published successfully"
    gate_env.content_repo.set_visibility.assert_awaited_once()
    assert gate_env.content_repo.set_visibility.await_args.args[0] is ContentType.COMMENT


# ── Failure handling ─────────────────────────────────────────────────


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        ClassifierError("classifier timed out after 10.0s"),
        ClassifierError("classifier returned HTTP 503: unavailable"),
    ],
)
async def test_classifier_failure_holds_for_review(gate_env, error):
    gate_env.classifier.classify.side_effect = error

    outcome = await gate_env.gate.submit(_post())

    assert outcome.status is SubmissionStatus.PENDING_REVIEW
    gate_env.content_repo.delete.assert_not_awaited()
    gate_env.content_repo.set_visibility.assert_awaited_once()
    assert gate_env.content_repo.set_visibility.await_args.kwargs["is_flagged"] is True
    gate_env.escalator.record_violation.assert_not_awaited()
    gate_env.audit_log.assert_awaited_once()
    _, decision = gate_env.audit_log.await_args.args
    assert decision.flagged is True
    assert decision.action is ModerationAction.MANUAL_REVIEW
    assert decision.service_error is True


@pytest.mark.asyncio
async def test_config_failure_holds_for_review(gate_env, make_result):
    gate_env.load_config.side_effect = OperationalError("SELECT", {}, Exception("db down"))
    gate_env.classifier.classify.return_value = make_result(scores={"hate": 0.99})

    outcome = await gate_env.gate.submit(_post())

    assert outcome.status is SubmissionStatus.PENDING_REVIEW
    gate_env.classifier.classify.assert_not_awaited()
    gate_env.escalator.record_violation.assert_not_awaited()


@pytest.mark.asyncio
async def test_escalation_failure_does_not_change_decision(gate_env, make_result):
    gate_env.classifier.classify.return_value = make_result(scores={"hate": 0.99})
    gate_env.escalator.record_violation.side_effect = RuntimeError("boom")

    outcome = await gate_env.gate.submit(_post())

    assert outcome.status is SubmissionStatus.REJECTED
    gate_env.content_repo.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_audit_log_failure_does_not_block_decision(gate_env, make_result):
    gate_env.audit_log.return_value = False
    gate_env.classifier.classify.return_value = make_result()

    outcome = await gate_env.gate.submit(_post())

    assert outcome.status is SubmissionStatus.PUBLISHED


@pytest.mark.asyncio
async def test_missing_author_skips_escalation(gate_env, make_result):
    gate_env.classifier.classify.return_value = make_result(scores={"hate": 0.99})

    outcome = await gate_env.gate.submit(_post(user_id=None))

    assert outcome.status is SubmissionStatus.REJECTED
    gate_env.escalator.record_violation.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   \n"])
async def test_empty_text_rejected_before_classifier(gate_env, text):
    with pytest.raises(ValueError):
        await gate_env.gate.submit(_post(text=text))
    gate_env.classifier.classify.assert_not_awaited()
    gate_env.audit_log.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_abort_decision(gate_env, make_result):
    result = make_result()

    async def slow_classify(text):
        await asyncio.sleep(0.05)
        return result

    gate_env.classifier.classify.side_effect = slow_classify

    task = asyncio.create_task(gate_env.gate.submit(_post()))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    await asyncio.sleep(0.1)
    gate_env.content_repo.set_visibility.assert_awaited_once()


@pytest.mark.asyncio
async def test_failure_after_caller_cancelled_is_logged(gate_env, make_result, caplog):
    result = make_result()

    async def slow_classify(text):
        await asyncio.sleep(0.05)
        return result

    gate_env.classifier.classify.side_effect = slow_classify
    gate_env.content_repo.set_visibility.side_effect = OperationalError(
        "UPDATE", {}, Exception("db down")
    )

    task = asyncio.create_task(gate_env.gate.submit(_post()))
    await asyncio.sleep(0.01)
    task.cancel()
    with caplog.at_level(logging.ERROR, logger="modgate.services.gate"):
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0.1)

    assert "failed after caller left" in caplog.text


@pytest.mark.asyncio
async def test_overflowing_tier_value_falls_back_to_default(gate_env, make_result):
    """An out-of-range app_config value must not break submission."""
    gate_env.load_config.side_effect = load_config_store
    gate_env.classifier.classify.return_value = make_result(scores={"hate": 0.99})

    with patch("modgate.services.config_store.ModerationConfigRepo") as MockRules, patch(
        "modgate.services.config_store.ConfigRepo"
    ) as MockConfig:
        MockRules.return_value.list_rules = AsyncMock(
            return_value=[
                SimpleNamespace(
                    category="hate", threshold=0.8, auto_action="removed", applies_to="both"
                )
            ]
        )
        MockConfig.return_value.get_category = AsyncMock(
            return_value={"max_ban_days": "1e400", "first_ban_days": "inf"}
        )
        outcome = await gate_env.gate.submit(_post())

    assert outcome.status is SubmissionStatus.REJECTED
    gate_env.audit_log.assert_awaited_once()
    (tiers,), _ = gate_env.escalator_cls.call_args
    assert tiers.max_ban_days == 180
    assert tiers.ladder[0] == 7


# ── Messages ─────────────────────────────────────────────────────────


def test_messages_are_category_agnostic():
    for status in SubmissionStatus:
        for content_type in ContentType:
            msg = submission_message(content_type, status)
            assert content_type.value.capitalize() in msg
            assert "hate" not in msg and "ban" not in msg


def test_review_and_reject_copy():
    assert (
        submission_message(ContentType.POST, SubmissionStatus.PENDING_REVIEW)
        == "Post created but requires review before publishing"
    )
    assert (
        submission_message(ContentType.COMMENT, SubmissionStatus.REJECTED)
        == "Comment violates community guidelines and was rejected"
    )
