"""UserBan model – shadow / permanent ban records issued by escalation."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from modgate.db.base import Base


class UserBan(Base):
    __tablename__ = "user_bans"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    ban_type: Mapped[str] = mapped_column(String(20), nullable=False)  # "shadow_ban" or "permanent_ban"
    violation_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    ban_duration_days: Mapped[int | None] = mapped_column(Integer, nullable=True)  # NULL = permanent
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )  # NULL = permanent
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)  # NULL = system

    __table_args__ = (
        Index("idx_user_bans_user", "user_id"),
        Index("idx_user_bans_expires_at", "expires_at"),
        Index(
            "idx_user_bans_active",
            "is_active",
            postgresql_where=(is_active == True),  # noqa: E712
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<UserBan user={self.user_id} type={self.ban_type} "
            f"n={self.violation_count} active={self.is_active}>"
        )
