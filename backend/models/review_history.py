from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.config import utcnow
from backend.models.base import Base


class ReviewHistory(Base):
    __tablename__ = "review_history"
    __table_args__ = (Index("ix_review_history_owner_reviewed", "owner_id", "reviewed_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    item_id: Mapped[str] = mapped_column(ForeignKey("review_items.id"), nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)  # 0-100
    time_spent_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reviewed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    item: Mapped["ReviewItem"] = relationship(back_populates="history")  # type: ignore[name-defined] # noqa: F821
