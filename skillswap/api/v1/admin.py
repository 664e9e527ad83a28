"""
Admin endpoints: user moderation, dispute resolution and dashboard counts.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import func, select

from skillswap.api.deps import AdminUser, CurrentUser, DbSession, load_exchange
from skillswap.engines.disputes.dispute_service import DisputeService
from skillswap.kernel.events.event_store import EventStore
from skillswap.kernel.identity.identity_service import IdentityService
from skillswap.kernel.models.dispute import Dispute, DisputeStatus
from skillswap.kernel.models.exchange import ACTIVE_EXCHANGE_STATUSES, Exchange, ExchangeStatus
from skillswap.kernel.models.user import User
from skillswap.schemas.common import PaginatedResponse
from skillswap.schemas.dispute import DisputeResolveRequest, DisputeResolveResponse, DisputeResponse
from skillswap.schemas.exchange import ExchangeEventResponse, ExchangeHistoryResponse
from skillswap.schemas.user import (
    AdminCheckResponse,
    AdminDashboardResponse,
    AdminToggleResponse,
    UserResponse,
)

router = APIRouter()


@router.get("/check", response_model=AdminCheckResponse)
async def check_admin(user: CurrentUser):
    """Whether the caller has admin rights."""
    return AdminCheckResponse(is_admin=bool(user.is_admin))


@router.get("/users", response_model=PaginatedResponse[UserResponse])
async def list_users(
    _: AdminUser,
    db: DbSession,
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    users, total = await IdentityService(db).list_users(search=search, page=page, page_size=page_size)
    return PaginatedResponse.create(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/users/{user_id}/toggle-admin", response_model=AdminToggleResponse)
async def toggle_admin(user_id: uuid.UUID, admin: AdminUser, db: DbSession):
    """Promote or demote another user."""
    identity_service = IdentityService(db)
    target = await identity_service.get_user_by_id(user_id)
    if not target:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    try:
        target = await identity_service.set_admin(admin, target, not target.is_admin)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return AdminToggleResponse(
        user_id=target.id,
        is_admin=target.is_admin,
        message=f"User {'promoted to' if target.is_admin else 'removed from'} admin",
    )


@router.get("/disputes", response_model=PaginatedResponse[DisputeResponse])
async def list_disputes(
    _: AdminUser,
    db: DbSession,
    status_filter: Optional[str] = Query("all", alias="status", pattern="^(all|open|resolved)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    disputes, total = await DisputeService(db).list_all(status=status_filter, page=page, page_size=page_size)
    return PaginatedResponse.create(
        items=[DisputeResponse.model_validate(d) for d in disputes],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/disputes/{dispute_id}/resolve", response_model=DisputeResolveResponse)
async def resolve_dispute(
    dispute_id: uuid.UUID,
    data: DisputeResolveRequest,
    admin: AdminUser,
    db: DbSession,
):
    """Resolve a dispute; the contested deliverable is confirmed."""
    service = DisputeService(db)
    dispute = await service.get_dispute(dispute_id)
    if not dispute:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dispute not found")

    try:
        dispute, has_open = await service.resolve(dispute, admin, data.decision, data.reasoning)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return DisputeResolveResponse(
        message="Dispute resolved successfully",
        dispute=DisputeResponse.model_validate(dispute),
        has_open_disputes=has_open,
    )


@router.get("/exchanges/{exchange_id}/history", response_model=ExchangeHistoryResponse)
async def exchange_history(exchange_id: uuid.UUID, _: AdminUser, db: DbSession):
    """Audit trail of an exchange, its negotiation and disputes, oldest first."""
    exchange = await load_exchange(exchange_id, db)
    events = await EventStore(db).exchange_timeline(exchange.id)
    return ExchangeHistoryResponse(
        exchange_id=exchange.id,
        reference=exchange.reference,
        events=[ExchangeEventResponse.model_validate(e) for e in events],
    )


async def _count(db, model, *criteria) -> int:
    result = await db.execute(select(func.count(model.id)).where(*criteria))
    return result.scalar() or 0


@router.get("/dashboard", response_model=AdminDashboardResponse)
async def dashboard(_: AdminUser, db: DbSession):
    """Headline counts across users, exchanges and disputes."""
    return AdminDashboardResponse(
        total_users=await _count(db, User),
        active_users=await _count(db, User, User.is_active.is_(True)),
        admin_users=await _count(db, User, User.is_admin.is_(True)),
        total_exchanges=await _count(db, Exchange),
        active_exchanges=await _count(db, Exchange, Exchange.status.in_(ACTIVE_EXCHANGE_STATUSES)),
        completed_exchanges=await _count(db, Exchange, Exchange.status == ExchangeStatus.COMPLETED),
        open_disputes=await _count(db, Dispute, Dispute.status == DisputeStatus.OPEN),
        resolved_disputes=await _count(db, Dispute, Dispute.status == DisputeStatus.RESOLVED),
    )
