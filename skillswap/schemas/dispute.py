"""
Dispute schemas.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DisputeResponse(BaseModel):
    """Dispute response."""

    id: uuid.UUID
    reference: str
    exchange_id: uuid.UUID
    raised_by: uuid.UUID
    description: str
    evidence: Optional[str] = None
    deliverable_side: Optional[str] = None
    deliverable_position: Optional[int] = None
    status: str
    resolved_by: Optional[uuid.UUID] = None
    decision: Optional[str] = None
    reasoning: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class DisputeWithMetadata(BaseModel):
    dispute: DisputeResponse
    metadata: Dict[str, Any]


class MyDisputesResponse(BaseModel):
    """Disputes involving the caller."""

    disputes: List[DisputeWithMetadata]
    stats: Dict[str, int]
    total: int
    page: int
    page_size: int
    has_more: bool


class DisputeResolveRequest(BaseModel):
    decision: str = Field(..., min_length=1, max_length=2000)
    reasoning: str = Field(..., min_length=1, max_length=5000)


class DisputeResolveResponse(BaseModel):
    message: str
    dispute: DisputeResponse
    has_open_disputes: bool
