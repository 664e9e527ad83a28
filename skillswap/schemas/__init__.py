"""
Pydantic schemas for API request/response validation.
"""

from skillswap.schemas.common import (
    ERROR_RESPONSES,
    ErrorResponse,
    ValidationErrorResponse,
    SuccessResponse,
    PaginatedResponse,
    HealthResponse,
)
from skillswap.schemas.user import (
    UserResponse,
    PublicUserResponse,
    UserSyncResponse,
    UserProfileUpdate,
)
from skillswap.schemas.skill import (
    SkillCreate,
    SkillUpdate,
    SkillResponse,
)
from skillswap.schemas.exchange import (
    OfferInput,
    ExchangeCreate,
    ExchangeResponse,
    RoleResponse,
    AcceptanceStatusResponse,
    ExchangeStatusUpdate,
    ExchangeHistoryResponse,
    ExchangeTimelineResponse,
)
from skillswap.schemas.negotiation import (
    NegotiationResponse,
    DeliverableResponse,
    FieldUpdate,
    DeliverableCompletionRequest,
    DeliverableActionRequest,
)
from skillswap.schemas.dispute import (
    DisputeResponse,
    DisputeResolveRequest,
)
from skillswap.schemas.review import (
    ReviewCreate,
    ReviewResponse,
)

__all__ = [
    "ERROR_RESPONSES",
    "ErrorResponse",
    "ValidationErrorResponse",
    "SuccessResponse",
    "PaginatedResponse",
    "HealthResponse",
    "UserResponse",
    "PublicUserResponse",
    "UserSyncResponse",
    "UserProfileUpdate",
    "SkillCreate",
    "SkillUpdate",
    "SkillResponse",
    "OfferInput",
    "ExchangeCreate",
    "ExchangeResponse",
    "RoleResponse",
    "AcceptanceStatusResponse",
    "ExchangeStatusUpdate",
    "ExchangeHistoryResponse",
    "ExchangeTimelineResponse",
    "NegotiationResponse",
    "DeliverableResponse",
    "FieldUpdate",
    "DeliverableCompletionRequest",
    "DeliverableActionRequest",
    "DisputeResponse",
    "DisputeResolveRequest",
    "ReviewCreate",
    "ReviewResponse",
]
