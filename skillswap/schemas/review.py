"""
Review schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from skillswap.kernel.models.review import MAX_COMMENT_LENGTH, MAX_RATING, MIN_RATING


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING)
    comment: Optional[str] = Field(None, max_length=MAX_COMMENT_LENGTH)


class ReviewResponse(BaseModel):
    """Review response."""

    id: uuid.UUID
    exchange_id: uuid.UUID
    reviewer_id: uuid.UUID
    reviewee_id: uuid.UUID
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReviewListResponse(BaseModel):
    reviews: List[ReviewResponse]
    total: int


class MyReviewResponse(BaseModel):
    """Whether the caller has reviewed the exchange yet."""

    has_reviewed: bool
    review: Optional[ReviewResponse] = None
