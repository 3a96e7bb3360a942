"""Post / Comment models – the slice of user content the gate touches."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from modgate.db.base import Base


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # Rows are inserted hidden and only unflagged by an Approved decision.
    is_flagged: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    moderation_score: Mapped[Any] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_posts_user", "user_id"),
        Index(
            "idx_posts_flagged",
            "is_flagged",
            postgresql_where=(is_flagged == True),  # noqa: E712
        ),
    )

    def __repr__(self) -> str:
        return f"<Post {self.id} user={self.user_id} flagged={self.is_flagged}>"


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_flagged: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    moderation_score: Mapped[Any] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_comments_post", "post_id"),
        Index("idx_comments_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Comment {self.id} post={self.post_id} flagged={self.is_flagged}>"
