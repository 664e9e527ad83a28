"""
Skill schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from skillswap.kernel.models.skill import DeliveryMethod, SkillCategory, SkillLevel


class SkillCreate(BaseModel):
    """Skill creation request."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    category: SkillCategory
    level: SkillLevel
    tags: List[str] = []
    location: Optional[str] = Field(None, max_length=100)
    delivery_method: DeliveryMethod = DeliveryMethod.BOTH
    estimated_duration: Optional[str] = Field(None, max_length=100)


class SkillUpdate(BaseModel):
    """Skill update request."""

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    category: Optional[SkillCategory] = None
    level: Optional[SkillLevel] = None
    tags: Optional[List[str]] = None
    location: Optional[str] = Field(None, max_length=100)
    delivery_method: Optional[DeliveryMethod] = None
    estimated_duration: Optional[str] = Field(None, max_length=100)
    is_available: Optional[bool] = None


class SkillResponse(BaseModel):
    """Skill response."""

    id: uuid.UUID
    owner_id: uuid.UUID
    owner_supabase_id: str
    title: str
    description: str
    category: str
    level: str
    tags: List[str] = []
    location: Optional[str] = None
    delivery_method: str
    estimated_duration: Optional[str] = None
    is_available: bool
    exchange_count: int = 0
    view_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
