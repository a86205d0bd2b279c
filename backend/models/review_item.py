"""Review item model: one learnable word or phrase with its SM-2 state."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin


class ReviewItem(Base, TimestampMixin):
    """A word or phrase owned by one learner, scheduled for review."""

    __tablename__ = "review_items"
    __table_args__ = (
        Index("ix_review_items_location", "owner_id", "document_id", "page"),
        Index("ix_review_items_owner_due", "owner_id", "next_review_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    document_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    page: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default="word")  # word, phrase
    text: Mapped[str] = mapped_column(Text, nullable=False)  # Target-language text
    translation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    language: Mapped[str] = mapped_column(String(10), nullable=False, default="en")
    mastery: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0-100
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=2.5)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_review_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)  # Tombstone

    history: Mapped[list["ReviewHistory"]] = relationship(back_populates="item")  # type: ignore[name-defined] # noqa: F821
