"""Enums used across the moderation service."""

from __future__ import annotations

from enum import Enum


class ContentType(str, Enum):
    POST = "post"
    COMMENT = "comment"


class AppliesTo(str, Enum):
    POST = "post"
    COMMENT = "comment"
    BOTH = "both"

    @classmethod
    def parse(cls, value: str) -> AppliesTo:
        """Accept the singular or plural scope spelling ("posts" -> POST)."""
        value = value.strip().lower()
        if value.endswith("s") and value[:-1] in (cls.POST.value, cls.COMMENT.value):
            value = value[:-1]
        return cls(value)


class ModerationAction(str, Enum):
    APPROVED = "approved"
    MANUAL_REVIEW = "manual_review"
    REMOVED = "removed"

    @property
    def severity(self) -> int:
        return _ACTION_SEVERITY[self]

    def escalate(self, other: ModerationAction) -> ModerationAction:
        """Return whichever action is more severe; ties keep ``self``."""
        return other if other.severity > self.severity else self


# Total order: REMOVED > MANUAL_REVIEW > APPROVED
_ACTION_SEVERITY: dict[ModerationAction, int] = {
    ModerationAction.APPROVED: 0,
    ModerationAction.MANUAL_REVIEW: 1,
    ModerationAction.REMOVED: 2,
}


class BanType(str, Enum):
    SHADOW_BAN = "shadow_ban"
    PERMANENT_BAN = "permanent_ban"


class SubmissionStatus(str, Enum):
    PUBLISHED = "published"
    PENDING_REVIEW = "pending_review"
    REJECTED = "rejected"
