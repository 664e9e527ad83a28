"""
Response envelopes shared by every router.
"""

import math
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx response."""

    detail: str
    request_id: Optional[str] = None


class ValidationErrorResponse(ErrorResponse):
    """422 body: one entry per rejected field."""

    errors: List[Dict[str, str]] = []


class SuccessResponse(BaseModel):
    message: str
    data: Optional[Any] = None


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of a listing plus enough to fetch the next."""

    items: List[T]
    total: int
    page: int = 1
    page_size: int = 20
    total_pages: int = 0
    has_more: bool = False

    @classmethod
    def create(
        cls,
        items: List[T],
        total: int,
        page: int = 1,
        page_size: int = 20,
    ) -> "PaginatedResponse[T]":
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if page_size else 0,
            has_more=(page * page_size) < total,
        )


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    environment: str
    database: str = "connected"


# Documented on every router; the handlers in main.py produce these shapes
ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid input or state"},
    401: {"model": ErrorResponse, "description": "Missing or invalid access token"},
    403: {"model": ErrorResponse, "description": "Not a participant, not permitted, or not an admin"},
    404: {"model": ErrorResponse, "description": "Not found"},
    422: {"model": ValidationErrorResponse, "description": "Request body or query failed validation"},
}
