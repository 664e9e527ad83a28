"""
API v1 routes.
"""

from fastapi import APIRouter

from skillswap.api.v1 import admin, disputes, exchanges, negotiation, reviews, skills, users
from skillswap.schemas.common import ERROR_RESPONSES

router = APIRouter(responses=ERROR_RESPONSES)

router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(skills.router, prefix="/skills", tags=["Skills"])
# Nested exchange routers before exchanges so /exchanges/{id}/... is matched first
router.include_router(
    negotiation.router,
    prefix="/exchanges/{exchange_id}/negotiation",
    tags=["Negotiation"],
)
router.include_router(
    reviews.router,
    prefix="/exchanges/{exchange_id}/reviews",
    tags=["Reviews"],
)
router.include_router(exchanges.router, prefix="/exchanges", tags=["Exchanges"])
router.include_router(disputes.router, prefix="/disputes", tags=["Disputes"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
