"""Exception types raised by the moderation pipeline."""

from __future__ import annotations


class ModerationError(Exception):
    """Base class for moderation pipeline errors."""


class ClassifierError(ModerationError):
    """The content classifier could not produce a usable result.

    Covers connection errors, timeouts, non-2xx responses and malformed
    bodies alike; callers treat all of them as one fail-safe path.
    """
