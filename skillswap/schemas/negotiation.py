"""
Negotiation schemas.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class DeliverableResponse(BaseModel):
    id: uuid.UUID
    side: str
    position: int
    title: str
    completed: bool
    completed_at: Optional[datetime] = None
    confirmed_by: Optional[uuid.UUID] = None
    confirmed_at: Optional[datetime] = None
    dispute_raised: bool
    dispute_reason: Optional[str] = None

    class Config:
        from_attributes = True


class NegotiationResponse(BaseModel):
    """Negotiation session response."""

    id: uuid.UUID
    exchange_id: uuid.UUID
    initiator_description: Optional[str] = None
    recipient_description: Optional[str] = None
    initiator_skill_id: Optional[uuid.UUID] = None
    recipient_skill_id: Optional[uuid.UUID] = None
    initiator_hours: float
    recipient_hours: float
    total_hours: float
    deadline: Optional[datetime] = None
    amount: float
    currency: str
    payment_timeline: str
    payment_method: str
    method: str
    initiator_agreed: bool
    recipient_agreed: bool
    both_agreed: bool
    execution_started_at: Optional[datetime] = None
    contact_shared: bool
    status: str
    last_modified_by: Optional[str] = None
    deliverables: List[DeliverableResponse] = []
    updated_at: datetime

    class Config:
        from_attributes = True


class OfferViewResponse(BaseModel):
    """Negotiation as seen by one participant."""

    negotiation: NegotiationResponse
    exchange_role: str
    business_role: str
    editable_fields: List[str]
    can_edit: bool


class FieldUpdate(BaseModel):
    """Single-term edit request."""

    field_name: str = Field(..., min_length=1)
    field_value: Any = None


class FieldUpdateResponse(BaseModel):
    negotiation: NegotiationResponse
    field_updated: str
    message: str


class AgreementStatusResponse(BaseModel):
    initiator_agreed: bool
    recipient_agreed: bool
    both_agreed: bool
    user_agreed: bool
    other_agreed: bool
    status: str


class DeliverablesResponse(BaseModel):
    deliverables: List[DeliverableResponse]
    progress_report: Dict[str, Dict[str, int]]
    user_role: str
    negotiation_status: str


class DeliverableCompletionRequest(BaseModel):
    deliverable_index: int = Field(..., ge=0)
    completed: bool


class DeliverableActionRequest(BaseModel):
    """Confirm or dispute one of the other side's deliverables."""

    action: Literal["confirm", "dispute"]
    deliverable_index: int = Field(..., ge=0)
    reason: Optional[str] = Field(None, max_length=1000)


class DeliverableActionResponse(BaseModel):
    message: str
    progress_report: Dict[str, Dict[str, int]]
    all_completed: bool = False
    dispute_id: Optional[uuid.UUID] = None
    dispute_reference: Optional[str] = None
