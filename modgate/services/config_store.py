"""Config store – immutable snapshot of moderation rules and ban tiers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from modgate.db.repositories.config_repo import ConfigRepo, ModerationConfigRepo
from modgate.utils.enums import AppliesTo, ContentType, ModerationAction

logger = logging.getLogger(__name__)

BAN_CONFIG_CATEGORY = "moderation"

# ── Defaults ──────────────────────────────────────────────────────────

# Ordered: position i holds the duration for the (i+1)-th violation.
TIER_KEYS: tuple[str, ...] = (
    "first_ban_days",
    "second_ban_days",
    "third_ban_days",
    "fourth_ban_days",
)
DEFAULT_TIER_DAYS: tuple[int, ...] = (7, 14, 28, 56)
DEFAULT_MAX_BAN_DAYS = 180
DEFAULT_RESET_WINDOW_DAYS = 90

DEFAULT_BAN_CONFIG: dict[str, tuple[str, str]] = {
    "first_ban_days": ("7", "Duration of first shadow ban in days"),
    "second_ban_days": ("14", "Duration of second shadow ban in days"),
    "third_ban_days": ("28", "Duration of third shadow ban in days"),
    "fourth_ban_days": ("56", "Duration of fourth shadow ban in days"),
    "max_ban_days": ("180", "Maximum ban duration before permanent (6 months)"),
    "ban_escalation_reset_days": ("90", "Days after which violation count resets"),
}

DEFAULT_MODERATION_RULES: tuple[tuple[str, float, ModerationAction], ...] = (
    ("harassment", 0.70, ModerationAction.MANUAL_REVIEW),
    ("harassment/threatening", 0.60, ModerationAction.REMOVED),
    ("hate", 0.80, ModerationAction.REMOVED),
    ("hate/threatening", 0.60, ModerationAction.REMOVED),
    ("violence", 0.60, ModerationAction.MANUAL_REVIEW),
    ("violence/graphic", 0.50, ModerationAction.REMOVED),
    ("sexual", 0.80, ModerationAction.REMOVED),
    ("sexual/minors", 0.30, ModerationAction.REMOVED),
    ("self-harm", 0.50, ModerationAction.MANUAL_REVIEW),
    ("self-harm/intent", 0.40, ModerationAction.REMOVED),
    ("self-harm/instructions", 0.30, ModerationAction.REMOVED),
    ("illicit", 0.70, ModerationAction.MANUAL_REVIEW),
    ("illicit/violent", 0.50, ModerationAction.REMOVED),
)


# ── Snapshot types ────────────────────────────────────────────────────


@dataclass(frozen=True)
class ModerationRule:
    category: str
    threshold: float
    auto_action: ModerationAction
    applies_to: AppliesTo = AppliesTo.BOTH


@dataclass(frozen=True)
class BanTierSettings:
    ladder: tuple[int, ...] = DEFAULT_TIER_DAYS
    max_ban_days: int = DEFAULT_MAX_BAN_DAYS
    reset_window_days: int = DEFAULT_RESET_WINDOW_DAYS

    def duration_for(self, ordinal: int) -> int:
        """Ban length in days for the *ordinal*-th violation in the window.

        Ordinals past the last explicit tier clamp to ``max_ban_days``.
        """
        if ordinal < 1:
            raise ValueError(f"ordinal must be >= 1, got {ordinal}")
        if ordinal <= len(self.ladder):
            return self.ladder[ordinal - 1]
        return self.max_ban_days


@dataclass(frozen=True)
class ConfigStore:
    rules: tuple[ModerationRule, ...] = ()
    ban_tiers: BanTierSettings = field(default_factory=BanTierSettings)
    _index: dict[tuple[str, AppliesTo], ModerationRule] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        index: dict[tuple[str, AppliesTo], ModerationRule] = {}
        for rule in self.rules:
            key = (rule.category, rule.applies_to)
            if key in index:
                logger.warning(
                    "Duplicate moderation rule for %s/%s – keeping the first.",
                    rule.category,
                    rule.applies_to.value,
                )
                continue
            index[key] = rule
        object.__setattr__(self, "_index", index)

    def rule_for(self, category: str, content_type: ContentType) -> ModerationRule | None:
        """Return the rule for *category* scoped to *content_type*.

        A type-specific rule wins over a ``both``-scoped one; ``None`` means
        the category is not moderated for this content type.
        """
        rule = self._index.get((category, AppliesTo(content_type.value)))
        if rule is None:
            rule = self._index.get((category, AppliesTo.BOTH))
        return rule


# ── Loading ───────────────────────────────────────────────────────────


def _parse_days(raw: dict[str, str], key: str, default: int) -> int:
    value = raw.get(key)
    if value is None:
        return default
    try:
        days = int(float(value.strip().strip('"')))
    except (ValueError, OverflowError):
        logger.warning("Invalid %s=%r in app_config, using %d.", key, value, default)
        return default
    if days <= 0:
        logger.warning("Non-positive %s=%r in app_config, using %d.", key, value, default)
        return default
    return days


def parse_ban_tiers(raw: dict[str, str]) -> BanTierSettings:
    """Build tier settings from raw ``app_config`` values, filling defaults."""
    ladder = tuple(
        _parse_days(raw, key, default)
        for key, default in zip(TIER_KEYS, DEFAULT_TIER_DAYS)
    )
    return BanTierSettings(
        ladder=ladder,
        max_ban_days=_parse_days(raw, "max_ban_days", DEFAULT_MAX_BAN_DAYS),
        reset_window_days=_parse_days(
            raw, "ban_escalation_reset_days", DEFAULT_RESET_WINDOW_DAYS
        ),
    )


async def load_config_store(session: AsyncSession) -> ConfigStore:
    """Read moderation rules and ban tiers into a snapshot.

    Rows with an unknown action or scope are skipped with a warning.
    """
    rules: list[ModerationRule] = []
    for row in await ModerationConfigRepo(session).list_rules():
        try:
            rules.append(
                ModerationRule(
                    category=row.category,
                    threshold=float(row.threshold),
                    auto_action=ModerationAction(row.auto_action),
                    applies_to=AppliesTo.parse(row.applies_to),
                )
            )
        except ValueError:
            logger.warning("Skipping invalid moderation rule: %r", row)

    raw = await ConfigRepo(session).get_category(BAN_CONFIG_CATEGORY)
    return ConfigStore(rules=tuple(rules), ban_tiers=parse_ban_tiers(raw))


async def seed_defaults(session: AsyncSession) -> bool:
    """Seed default moderation rules and ban tiers into empty tables.

    Returns True if anything was written.
    """
    seeded = False
    rule_repo = ModerationConfigRepo(session)
    if await rule_repo.count_rules() == 0:
        for category, threshold, action in DEFAULT_MODERATION_RULES:
            await rule_repo.upsert_rule(category, threshold, action.value, AppliesTo.BOTH.value)
        seeded = True

    config_repo = ConfigRepo(session)
    existing = await config_repo.get_category(BAN_CONFIG_CATEGORY)
    for key, (value, description) in DEFAULT_BAN_CONFIG.items():
        if key not in existing:
            await config_repo.set_value(key, value, BAN_CONFIG_CATEGORY, description)
            seeded = True
    return seeded
