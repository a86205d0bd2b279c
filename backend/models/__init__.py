"""SQLAlchemy ORM models for the review database."""

from backend.models.base import Base
from backend.models.review_history import ReviewHistory
from backend.models.review_item import ReviewItem

__all__ = ["Base", "ReviewHistory", "ReviewItem"]
