"""UserBanHistory model – immutable violation ledger used for escalation."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from modgate.db.base import Base


class UserBanHistory(Base):
    __tablename__ = "user_ban_history"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    violation_type: Mapped[str] = mapped_column(Text, nullable=False)  # comma-joined categories
    ban_duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    moderation_score: Mapped[Any] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_user_ban_history_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserBanHistory user={self.user_id} type={self.violation_type!r} "
            f"days={self.ban_duration_days}>"
        )
