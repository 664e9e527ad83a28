"""
Reviews participants leave each other once an exchange is completed.
"""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from skillswap.kernel.models.base import Base, TimestampMixin, generate_uuid

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 500


class Review(Base, TimestampMixin):
    """One participant's rating of the other side of an exchange."""

    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    exchange_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("exchanges.id", ondelete="CASCADE"),
        nullable=False,
    )
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=False,
    )
    reviewee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=False,
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(String(MAX_COMMENT_LENGTH), nullable=True)

    __table_args__ = (
        UniqueConstraint("exchange_id", "reviewer_id", name="uq_reviews_exchange_reviewer"),
        Index("ix_reviews_reviewee", "reviewee_id"),
    )

    def __repr__(self) -> str:
        return f"<Review {self.exchange_id} {self.rating}/{MAX_RATING}>"
