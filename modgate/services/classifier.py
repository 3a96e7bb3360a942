"""Classifier client – per-category abuse scores for a piece of text."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import aiohttp

from modgate.config import settings
from modgate.utils.errors import ClassifierError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassifierResult:
    flagged: bool
    category_scores: dict[str, float] = field(default_factory=dict)
    raw: Any = None  # full response body, stored verbatim for audit


class Classifier(Protocol):
    async def classify(self, text: str) -> ClassifierResult: ...


def parse_moderation_response(body: Any) -> ClassifierResult:
    """Turn an OpenAI-style ``/moderations`` body into a result.

    Raises ``ClassifierError`` when the body does not have the expected shape.
    """
    try:
        result = body["results"][0]
        flagged = bool(result["flagged"])
        scores = {
            str(category): float(score)
            for category, score in result["category_scores"].items()
        }
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
        raise ClassifierError(f"malformed classifier response: {e!r}") from e
    return ClassifierResult(flagged=flagged, category_scores=scores, raw=body)


class OpenAIModerationClassifier:
    """Calls an OpenAI-compatible moderation endpoint over HTTP.

    There are no retries: any failure surfaces as ``ClassifierError`` and
    the caller falls back to holding the content for review.
    """

    def __init__(
        self,
        api_key: str | None = None,
        url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._api_key = api_key or settings.CLASSIFIER_API_KEY
        self._url = url or settings.CLASSIFIER_URL
        self._model = model or settings.CLASSIFIER_MODEL
        self._timeout = aiohttp.ClientTimeout(
            total=timeout if timeout is not None else settings.CLASSIFIER_TIMEOUT
        )
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def classify(self, text: str) -> ClassifierResult:
        session = await self._get_session()
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        payload = {"model": self._model, "input": text}
        try:
            async with session.post(
                self._url, json=payload, headers=headers, timeout=self._timeout
            ) as resp:
                if resp.status >= 300:
                    detail = await resp.text()
                    raise ClassifierError(
                        f"classifier returned HTTP {resp.status}: {detail[:200]}"
                    )
                body = await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise ClassifierError(
                f"classifier timed out after {self._timeout.total}s"
            ) from e
        except aiohttp.ClientError as e:
            raise ClassifierError(f"classifier request failed: {e}") from e
        except ValueError as e:
            raise ClassifierError(f"classifier returned invalid JSON: {e}") from e

        return parse_moderation_response(body)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
