"""
Dispute endpoints for participants.
"""

from typing import Optional

from fastapi import APIRouter, Query

from skillswap.api.deps import CurrentUser, DbSession
from skillswap.engines.disputes.dispute_service import DisputeService
from skillswap.schemas.dispute import DisputeResponse, DisputeWithMetadata, MyDisputesResponse

router = APIRouter()


@router.get("/mine", response_model=MyDisputesResponse)
async def list_my_disputes(
    user: CurrentUser,
    db: DbSession,
    status_filter: Optional[str] = Query("all", alias="status", pattern="^(all|open|resolved)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
):
    """Disputes the caller raised or that concern their exchanges."""
    items, total, stats = await DisputeService(db).list_for_user(
        user, status=status_filter, page=page, page_size=page_size,
    )
    return MyDisputesResponse(
        disputes=[
            DisputeWithMetadata(
                dispute=DisputeResponse.model_validate(item["dispute"]),
                metadata=item["metadata"],
            )
            for item in items
        ],
        stats=stats,
        total=total,
        page=page,
        page_size=page_size,
        has_more=(page * page_size) < total,
    )
