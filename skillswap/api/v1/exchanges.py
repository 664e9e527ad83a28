"""
Exchange endpoints.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from skillswap.api.deps import (
    CurrentUser,
    DbSession,
    Participant,
    get_client_ip,
    load_exchange,
)
from skillswap.engines.exchange.exchange_service import ExchangeConflictError, ExchangeService
from skillswap.engines.negotiation.negotiation_service import NegotiationService
from skillswap.kernel.models.base import as_utc, enum_value
from skillswap.kernel.models.exchange import ExchangeStatus
from skillswap.kernel.permissions.permission_service import PermissionService
from skillswap.schemas.exchange import (
    AcceptanceStatusResponse,
    ExchangeCreate,
    ExchangeListResponse,
    ExchangeResponse,
    ExchangeStatusUpdate,
    ExchangeTimelineResponse,
    RoleResponse,
)

router = APIRouter()


@router.get("", response_model=List[ExchangeResponse])
async def find_exchanges(
    user: CurrentUser,
    db: DbSession,
    skill_id: uuid.UUID = Query(..., description="Skill referenced by either offer"),
    other_user_id: str = Query(..., min_length=1, description="Other participant's identity provider id"),
):
    """Recent exchanges between the caller and another user for a skill."""
    exchanges = await ExchangeService(db).find_between(user, other_user_id, skill_id)
    return [ExchangeResponse.model_validate(e) for e in exchanges]


@router.get("/mine", response_model=ExchangeListResponse)
async def list_my_exchanges(
    user: CurrentUser,
    db: DbSession,
    status_filter: Optional[ExchangeStatus] = Query(None, alias="status"),
):
    """Exchanges the caller takes part in."""
    exchanges = await ExchangeService(db).list_for_user(user, status_filter)
    return ExchangeListResponse(
        exchanges=[ExchangeResponse.model_validate(e) for e in exchanges],
        total=len(exchanges),
    )


@router.post("", response_model=ExchangeResponse, status_code=status.HTTP_201_CREATED)
async def create_exchange(
    request: Request,
    data: ExchangeCreate,
    user: CurrentUser,
    db: DbSession,
):
    """Propose an exchange for another user's skill."""
    service = ExchangeService(db)
    try:
        exchange = await service.create_exchange(
            initiator=user,
            recipient_supabase_id=data.recipient_id,
            recipient_skill_id=data.skill_id,
            exchange_type=data.exchange_type,
            initiator_offer=data.initiator_offer.model_dump(),
            recipient_offer=data.recipient_offer.model_dump(),
            ip_address=get_client_ip(request),
        )
    except ExchangeConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ExchangeResponse.model_validate(exchange)


@router.get("/{exchange_id}", response_model=ExchangeResponse)
async def get_exchange(
    exchange_id: uuid.UUID,
    user: CurrentUser,
    db: DbSession,
):
    """Exchange details, for participants and admins."""
    exchange = await load_exchange(exchange_id, db)
    if not PermissionService.can_view_exchange(exchange, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view this exchange",
        )
    return ExchangeResponse.model_validate(exchange)


@router.patch("/{exchange_id}", response_model=ExchangeResponse)
async def update_exchange_status(
    data: ExchangeStatusUpdate,
    participant: Participant,
    db: DbSession,
):
    """Start, complete or cancel an exchange."""
    exchange = participant.exchange
    negotiation = await NegotiationService(db).get_for_exchange(exchange.id)
    try:
        await ExchangeService(db).update_status(exchange, participant.user, data.status, negotiation)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await db.flush()
    return ExchangeResponse.model_validate(exchange)


@router.get("/{exchange_id}/role", response_model=RoleResponse)
async def get_my_role(participant: Participant):
    """The caller's exchange and business roles, with the terms they may edit."""
    resolution = participant.resolution
    return RoleResponse(
        **resolution.as_dict(),
        editable_fields=list(resolution.editable_fields),
    )


def _acceptance_response(exchange) -> AcceptanceStatusResponse:
    return AcceptanceStatusResponse(
        **ExchangeService.acceptance_status(exchange),
        status=enum_value(exchange.status),
    )


@router.get("/{exchange_id}/accept", response_model=AcceptanceStatusResponse)
async def get_acceptance_status(participant: Participant):
    """Which sides have accepted."""
    return _acceptance_response(participant.exchange)


@router.post("/{exchange_id}/accept", response_model=AcceptanceStatusResponse)
async def accept_exchange(participant: Participant, db: DbSession):
    """Accept the agreed terms. Both sides accepting starts the exchange."""
    exchange = participant.exchange
    negotiation_service = NegotiationService(db)
    negotiation = await negotiation_service.get_for_exchange(exchange.id)
    try:
        await ExchangeService(db).accept(exchange, participant.user, negotiation)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if exchange.status == ExchangeStatus.ACCEPTED:
        await negotiation_service.start_execution(negotiation)

    return _acceptance_response(exchange)


@router.get("/{exchange_id}/timeline", response_model=ExchangeTimelineResponse)
async def get_timeline(participant: Participant, db: DbSession):
    """Execution start (or proposal time) and the agreed deadline."""
    exchange = participant.exchange
    negotiation = await NegotiationService(db).get_for_exchange(exchange.id)
    if negotiation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Negotiation not found")

    return ExchangeTimelineResponse(
        start_date=as_utc(negotiation.execution_started_at or exchange.created_at),
        deadline=as_utc(negotiation.deadline),
    )


@router.post("/{exchange_id}/cancel", response_model=ExchangeResponse)
async def cancel_exchange(participant: Participant, db: DbSession):
    """Withdraw from an exchange that has not finished."""
    try:
        exchange = await ExchangeService(db).cancel(participant.exchange, participant.user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await db.flush()
    return ExchangeResponse.model_validate(exchange)
