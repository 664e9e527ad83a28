"""
Exchange schemas.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from skillswap.kernel.models.exchange import Currency, ExchangeStatus, ExchangeType, OfferType


class OfferInput(BaseModel):
    """One side's proposed contribution."""

    offer_type: OfferType = OfferType.SKILL
    skill_id: Optional[uuid.UUID] = None
    monetary_amount: Optional[float] = Field(None, ge=0)
    currency: Currency = Currency.USD
    description: Optional[str] = Field(None, max_length=1000)
    estimated_hours: Optional[float] = Field(None, ge=0, le=100)
    delivery_date: Optional[datetime] = None
    delivery_method: Optional[str] = Field(None, max_length=50)


class ExchangeCreate(BaseModel):
    """Exchange proposal request."""

    recipient_id: str = Field(..., min_length=1, description="Recipient's identity provider id")
    skill_id: uuid.UUID = Field(..., description="The recipient's skill being requested")
    exchange_type: ExchangeType
    initiator_offer: OfferInput = OfferInput()
    recipient_offer: OfferInput = OfferInput()


class OfferResponse(BaseModel):
    side: str
    offer_type: str
    skill_id: Optional[uuid.UUID] = None
    skill_title: Optional[str] = None
    monetary_amount: Optional[float] = None
    currency: str
    description: Optional[str] = None
    estimated_hours: Optional[float] = None
    delivery_date: Optional[datetime] = None
    delivery_method: Optional[str] = None

    class Config:
        from_attributes = True


class ExchangeResponse(BaseModel):
    """Exchange response."""

    id: uuid.UUID
    reference: str
    initiator_id: uuid.UUID
    initiator_supabase_id: str
    recipient_id: uuid.UUID
    recipient_supabase_id: str
    exchange_type: str
    status: str
    initiator_accepted: bool
    recipient_accepted: bool
    fully_accepted_at: Optional[datetime] = None
    negotiation_completed: bool
    has_dispute: bool
    expires_at: Optional[datetime] = None
    status_changed_at: Optional[datetime] = None
    offers: List[OfferResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RoleResponse(BaseModel):
    """Caller's resolved roles and the terms they may edit."""

    exchange_role: str
    business_role: str
    is_initiator: bool
    editable_fields: List[str]


class AcceptanceStatusResponse(BaseModel):
    initiator_accepted: bool
    recipient_accepted: bool
    both_accepted: bool
    pending_side: Optional[str] = None
    status: str


class ExchangeStatusUpdate(BaseModel):
    """Requested status change (in_progress, completed or cancelled)."""

    status: ExchangeStatus


class ExchangeListResponse(BaseModel):
    exchanges: List[ExchangeResponse]
    total: int


class ExchangeEventResponse(BaseModel):
    """One audit entry on an exchange's timeline."""

    event_type: str
    entity_type: str
    entity_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    payload: Dict[str, Any] = {}
    created_at: datetime

    class Config:
        from_attributes = True


class ExchangeHistoryResponse(BaseModel):
    exchange_id: uuid.UUID
    reference: str
    events: List[ExchangeEventResponse]


class ExchangeTimelineResponse(BaseModel):
    """When execution started (or the exchange was proposed) and when it is due."""

    start_date: datetime
    deadline: Optional[datetime] = None
