"""
Review service: participants rate each other after a completed exchange.
"""

import uuid
from typing import Any, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.kernel.events.event_store import EventStore
from skillswap.kernel.models.base import enum_value
from skillswap.kernel.models.event_log import EventType
from skillswap.kernel.models.exchange import Exchange, ExchangeRole, ExchangeStatus
from skillswap.kernel.models.review import MAX_COMMENT_LENGTH, MAX_RATING, MIN_RATING, Review
from skillswap.kernel.models.user import User
from skillswap.kernel.permissions.permission_service import PermissionService
from skillswap.logging_config import get_logger

logger = get_logger(__name__)


class DuplicateReviewError(ValueError):
    """The reviewer already reviewed this exchange."""


class ReviewService:
    """Creating and listing reviews, and keeping user ratings in step."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def list_for_exchange(self, exchange_id: uuid.UUID) -> List[Review]:
        """Reviews on an exchange, newest first."""
        result = await self.session.execute(
            select(Review)
            .where(Review.exchange_id == exchange_id)
            .order_by(Review.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_reviewer(self, exchange_id: uuid.UUID, reviewer_id: uuid.UUID) -> Optional[Review]:
        result = await self.session.execute(
            select(Review).where(
                Review.exchange_id == exchange_id,
                Review.reviewer_id == reviewer_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _validate_rating(value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
        if not MIN_RATING <= value <= MAX_RATING:
            raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
        return value

    async def create_review(
        self,
        exchange: Exchange,
        reviewer: User,
        rating: Any,
        comment: Optional[str] = None,
    ) -> Review:
        """
        Review the other participant of a completed exchange.

        The reviewee's average rating and review count are recomputed from
        all of their reviews.

        Raises:
            ValueError: Bad rating, or the exchange is not completed
            PermissionError: Reviewer is not a participant
            DuplicateReviewError: Reviewer already reviewed this exchange
        """
        rating = self._validate_rating(rating)
        if enum_value(exchange.status) != ExchangeStatus.COMPLETED:
            raise ValueError("Can only review completed exchanges")

        side = PermissionService.participant_side(exchange, reviewer.supabase_id)
        if side is None:
            raise PermissionError("You are not part of this exchange")
        reviewee_id = exchange.recipient_id if side == ExchangeRole.INITIATOR else exchange.initiator_id

        if await self.get_by_reviewer(exchange.id, reviewer.id) is not None:
            raise DuplicateReviewError("You have already reviewed this exchange")

        review = Review(
            exchange_id=exchange.id,
            reviewer_id=reviewer.id,
            reviewee_id=reviewee_id,
            rating=rating,
            comment=(comment or "").strip()[:MAX_COMMENT_LENGTH] or None,
        )
        self.session.add(review)
        await self.session.flush()

        reviewee = await self.refresh_rating(reviewee_id)

        await self.event_store.log(
            event_type=EventType.REVIEW_CREATED,
            entity_type="review",
            entity_id=review.id,
            user_id=reviewer.id,
            exchange_id=exchange.id,
            payload={"reviewee_id": reviewee_id, "rating": rating},
        )
        logger.info(
            "Review submitted",
            extra={
                "exchange_id": str(exchange.id),
                "reviewee_id": str(reviewee_id),
                "review_count": reviewee.review_count if reviewee else None,
            },
        )
        return review

    async def refresh_rating(self, user_id: uuid.UUID) -> Optional[User]:
        """Set the user's rating to their review average, one decimal place."""
        row = (
            await self.session.execute(
                select(func.avg(Review.rating), func.count(Review.id)).where(Review.reviewee_id == user_id)
            )
        ).one()
        average, count = row

        user = await self.session.get(User, user_id)
        if user is None:
            return None
        user.rating = round(float(average), 1) if count else 0.0
        user.review_count = count
        await self.session.flush()
        return user
