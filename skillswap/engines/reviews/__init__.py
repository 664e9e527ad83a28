"""
Review Engine - Post-completion ratings and reviewee reputation.
"""

from skillswap.engines.reviews.review_service import DuplicateReviewError, ReviewService

__all__ = [
    "DuplicateReviewError",
    "ReviewService",
]
