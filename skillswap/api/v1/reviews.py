"""
Review endpoints, nested under an exchange.
"""

import uuid

from fastapi import APIRouter, HTTPException, status

from skillswap.api.deps import CurrentUser, DbSession, Participant, load_exchange
from skillswap.engines.reviews.review_service import DuplicateReviewError, ReviewService
from skillswap.schemas.review import (
    MyReviewResponse,
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
)

router = APIRouter()


@router.get("", response_model=ReviewListResponse)
async def list_reviews(
    exchange_id: uuid.UUID,
    user: CurrentUser,
    db: DbSession,
):
    """Reviews left on an exchange, newest first."""
    exchange = await load_exchange(exchange_id, db)
    reviews = await ReviewService(db).list_for_exchange(exchange.id)
    return ReviewListResponse(
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        total=len(reviews),
    )


@router.get("/mine", response_model=MyReviewResponse)
async def get_my_review(participant: Participant, db: DbSession):
    """The caller's review of this exchange, if any."""
    review = await ReviewService(db).get_by_reviewer(participant.exchange.id, participant.user.id)
    return MyReviewResponse(
        has_reviewed=review is not None,
        review=ReviewResponse.model_validate(review) if review else None,
    )


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    data: ReviewCreate,
    participant: Participant,
    db: DbSession,
):
    """Rate the other participant of a completed exchange."""
    try:
        review = await ReviewService(db).create_review(
            participant.exchange, participant.user, data.rating, data.comment,
        )
    except DuplicateReviewError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ReviewResponse.model_validate(review)
