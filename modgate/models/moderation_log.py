"""ModerationLog model – append-only audit trail of moderation decisions."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, Boolean, DateTime, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from modgate.db.base import Base


class ModerationLog(Base):
    __tablename__ = "moderation_logs"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    content_type: Mapped[str] = mapped_column(String(10), nullable=False)
    content_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content_text: Mapped[str] = mapped_column(Text, nullable=False)
    classifier_response: Mapped[Any] = mapped_column(JSONB, nullable=True)
    flagged: Mapped[bool] = mapped_column(Boolean, nullable=False)
    action_taken: Mapped[str] = mapped_column(String(20), nullable=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_moderation_logs_content", "content_type", "content_id"),
        Index("idx_moderation_logs_processed_at", "processed_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ModerationLog {self.content_type}:{self.content_id} "
            f"action={self.action_taken} flagged={self.flagged}>"
        )
