"""
Negotiation endpoints: terms, agreement and deliverables.

Every route runs behind the participant dependency, so the role resolver only
ever sees actual participants.
"""

from fastapi import APIRouter, HTTPException, status

from skillswap.api.deps import DbSession, Participant
from skillswap.engines.disputes.dispute_service import DisputeService
from skillswap.engines.exchange.exchange_service import ExchangeService
from skillswap.engines.negotiation.negotiation_service import NegotiationService
from skillswap.kernel.models.base import enum_value
from skillswap.kernel.models.negotiation import NegotiationSession, NegotiationStatus
from skillswap.logging_config import get_logger
from skillswap.schemas.negotiation import (
    AgreementStatusResponse,
    DeliverableActionRequest,
    DeliverableActionResponse,
    DeliverableCompletionRequest,
    DeliverableResponse,
    DeliverablesResponse,
    FieldUpdate,
    FieldUpdateResponse,
    NegotiationResponse,
    OfferViewResponse,
)

logger = get_logger(__name__)

router = APIRouter()


async def _existing_negotiation(participant: Participant, db: DbSession) -> NegotiationSession:
    negotiation = await NegotiationService(db).get_for_exchange(participant.exchange.id)
    if not negotiation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Negotiation not found",
        )
    await ExchangeService(db).expire_if_past_deadline(participant.exchange, negotiation)
    return negotiation


@router.get("/offer", response_model=OfferViewResponse)
async def get_offer(participant: Participant, db: DbSession):
    """Current terms, opening a negotiation on first visit."""
    service = NegotiationService(db)
    negotiation = await service.get_or_create(participant.exchange, participant.user)
    await ExchangeService(db).expire_if_past_deadline(participant.exchange, negotiation)

    resolution = participant.resolution
    return OfferViewResponse(
        negotiation=NegotiationResponse.model_validate(negotiation),
        exchange_role=resolution.exchange_role.value,
        business_role=resolution.business_role.value,
        editable_fields=list(resolution.editable_fields),
        can_edit=service.can_edit(negotiation),
    )


@router.patch("/offer", response_model=FieldUpdateResponse)
async def update_offer(data: FieldUpdate, participant: Participant, db: DbSession):
    """Edit one term; both agreements are withdrawn."""
    negotiation = await _existing_negotiation(participant, db)
    try:
        negotiation = await NegotiationService(db).update_field(
            negotiation,
            participant.exchange,
            participant.resolution,
            data.field_name,
            data.field_value,
            participant.user,
        )
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return FieldUpdateResponse(
        negotiation=NegotiationResponse.model_validate(negotiation),
        field_updated=data.field_name,
        message=f"{data.field_name} updated successfully",
    )


@router.get("/agreement", response_model=AgreementStatusResponse)
async def get_agreement(participant: Participant, db: DbSession):
    negotiation = await _existing_negotiation(participant, db)
    return NegotiationService.agreement_status(negotiation, participant.resolution)


@router.post("/agreement", response_model=AgreementStatusResponse)
async def agree(participant: Participant, db: DbSession):
    """Agree to the current terms."""
    negotiation = await _existing_negotiation(participant, db)
    try:
        await NegotiationService(db).mark_agreement(
            negotiation,
            participant.exchange,
            participant.resolution,
            participant.user,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return NegotiationService.agreement_status(negotiation, participant.resolution)


@router.get("/deliverables", response_model=DeliverablesResponse)
async def get_deliverables(participant: Participant, db: DbSession):
    """Deliverables and progress for both sides."""
    negotiation = await _existing_negotiation(participant, db)
    return DeliverablesResponse(
        deliverables=[DeliverableResponse.model_validate(d) for d in negotiation.deliverables],
        progress_report=NegotiationService.progress_report(negotiation),
        user_role=participant.resolution.exchange_role.value,
        negotiation_status=enum_value(negotiation.status),
    )


@router.patch("/deliverables", response_model=DeliverableResponse)
async def set_deliverable_completion(
    data: DeliverableCompletionRequest,
    participant: Participant,
    db: DbSession,
):
    """Mark one of the caller's own deliverables complete or incomplete."""
    negotiation = await _existing_negotiation(participant, db)
    try:
        deliverable = await NegotiationService(db).set_completion(
            negotiation,
            participant.exchange,
            participant.resolution.exchange_role,
            data.deliverable_index,
            data.completed,
            participant.user,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return DeliverableResponse.model_validate(deliverable)


@router.post("/deliverables", response_model=DeliverableActionResponse)
async def act_on_deliverable(
    data: DeliverableActionRequest,
    participant: Participant,
    db: DbSession,
):
    """Confirm or dispute one of the other side's deliverables."""
    negotiation = await _existing_negotiation(participant, db)
    side = participant.resolution.exchange_role

    if data.action == "confirm":
        try:
            await NegotiationService(db).confirm_deliverable(
                negotiation, participant.exchange, side, data.deliverable_index, participant.user,
            )
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        return DeliverableActionResponse(
            message="Deliverable confirmed successfully",
            progress_report=NegotiationService.progress_report(negotiation),
            all_completed=negotiation.status == NegotiationStatus.COMPLETED,
        )

    try:
        dispute = await DisputeService(db).raise_dispute(
            participant.exchange,
            negotiation,
            participant.user,
            side,
            data.deliverable_index,
            data.reason or "",
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return DeliverableActionResponse(
        message="Dispute raised successfully",
        progress_report=NegotiationService.progress_report(negotiation),
        dispute_id=dispute.id,
        dispute_reference=dispute.reference,
    )
