"""ModerationConfig model – per-category classifier thresholds and actions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Float,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from modgate.db.base import Base


class ModerationConfig(Base):
    __tablename__ = "moderation_config"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    threshold: Mapped[float] = mapped_column(Float, nullable=False)
    auto_action: Mapped[str] = mapped_column(
        String(20), default="manual_review", nullable=False
    )  # "approved", "manual_review" or "removed"
    applies_to: Mapped[str] = mapped_column(
        String(10), default="both", nullable=False
    )  # "post", "comment" or "both"
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("category", "applies_to", name="uq_moderation_config_scope"),
        CheckConstraint("threshold >= 0 AND threshold <= 1", name="ck_moderation_threshold"),
    )

    def __repr__(self) -> str:
        return (
            f"<ModerationConfig {self.category} >= {self.threshold} "
            f"-> {self.auto_action} ({self.applies_to})>"
        )
