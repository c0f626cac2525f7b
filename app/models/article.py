from __future__ import annotations

import datetime as dt

from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from app.core.db import Base, utc_now

class Article(Base):
    __tablename__ = "articles"
    __table_args__ = (
        Index("ix_articles_archived_created", "archived", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)

    # Request that produced the article
    topic: Mapped[str | None] = mapped_column(Text, nullable=True)
    length: Mapped[str | None] = mapped_column(String, nullable=True)

    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_key: Mapped[str | None] = mapped_column(String, nullable=True)
    image_expires_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)

    # Either a data: URL or a signed object-store URL
    audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    audio_key: Mapped[str | None] = mapped_column(String, nullable=True)
    audio_expires_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)

    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    # Bumped explicitly by archive changes; media URL refreshes leave it alone
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=utc_now)

    def __repr__(self) -> str:
        return f"<Article(id={self.id}, title={self.title!r}, archived={self.archived})>"
