"""Shared fixtures for modgate tests."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock

# Ensure the classifier key is set before any module triggers Settings validation
os.environ.setdefault("CLASSIFIER_API_KEY", "test-key")

import pytest

from modgate.services.classifier import ClassifierResult
from modgate.services.config_store import BanTierSettings, ConfigStore, ModerationRule
from modgate.utils.enums import AppliesTo, ModerationAction


@pytest.fixture
def fake_redis():
    """In-memory mock that behaves like redis.asyncio.Redis for the subset we use."""

    store: dict[str, str] = {}

    redis = AsyncMock()

    async def _set(key, value, ex=None, nx=False):
        if nx and key in store:
            return None  # Key already exists
        store[key] = value
        return True

    async def _get(key):
        return store.get(key)

    async def _delete(*keys):
        count = 0
        for k in keys:
            if k in store:
                del store[k]
                count += 1
        return count

    redis.set = AsyncMock(side_effect=_set)
    redis.get = AsyncMock(side_effect=_get)
    redis.delete = AsyncMock(side_effect=_delete)

    redis._store = store  # Expose for assertions
    return redis


@pytest.fixture
def fake_session():
    """AsyncSession stand-in: async execute/commit, sync add."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def session_factory(fake_session):
    """Callable usable as ``async with factory() as session``."""
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=fake_session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


@pytest.fixture
def config_store():
    """A small rule set covering every action and both scope styles."""
    return ConfigStore(
        rules=(
            ModerationRule("harassment", 0.70, ModerationAction.MANUAL_REVIEW),
            ModerationRule("hate", 0.80, ModerationAction.REMOVED),
            ModerationRule("hate/threatening", 0.60, ModerationAction.REMOVED),
            ModerationRule("violence", 0.60, ModerationAction.MANUAL_REVIEW),
            ModerationRule("spam", 0.50, ModerationAction.APPROVED),
            ModerationRule(
                "sexual", 0.90, ModerationAction.MANUAL_REVIEW, AppliesTo.POST
            ),
            ModerationRule("sexual", 0.40, ModerationAction.REMOVED, AppliesTo.BOTH),
        ),
        ban_tiers=BanTierSettings(),
    )


@pytest.fixture
def make_result():
    """Factory for classifier results; unspecified categories score 0.10."""

    categories = (
        "harassment",
        "hate",
        "hate/threatening",
        "violence",
        "spam",
        "sexual",
        "self-harm",
    )

    def _make(flagged: bool = False, scores: dict[str, float] | None = None) -> ClassifierResult:
        merged = {c: 0.10 for c in categories}
        merged.update(scores or {})
        scores = merged
        raw = {"id": "modr-test", "results": [{"flagged": flagged, "category_scores": scores}]}
        return ClassifierResult(flagged=flagged, category_scores=scores, raw=raw)

    return _make
