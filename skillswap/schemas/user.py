"""
User schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    """Own profile, including moderation fields."""

    id: uuid.UUID
    supabase_id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    is_active: bool
    rating: float = 0
    review_count: int = 0
    successful_exchanges: int = 0
    is_admin: bool = False
    last_active: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PublicUserResponse(BaseModel):
    """What other users may see of a profile."""

    id: uuid.UUID
    supabase_id: str
    name: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    rating: float = 0
    review_count: int = 0
    successful_exchanges: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class UserSyncResponse(BaseModel):
    """Result of syncing the identity provider account."""

    user: UserResponse
    created: bool


class UserProfileUpdate(BaseModel):
    """Profile update request."""

    name: Optional[str] = Field(None, min_length=1, max_length=60)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=1000)


class AdminCheckResponse(BaseModel):
    is_admin: bool


class AdminToggleResponse(BaseModel):
    """Admin flag change result."""

    user_id: uuid.UUID
    is_admin: bool
    message: str


class AdminDashboardResponse(BaseModel):
    """Headline counts for the admin console."""

    total_users: int
    active_users: int
    admin_users: int
    total_exchanges: int
    active_exchanges: int
    completed_exchanges: int
    open_disputes: int
    resolved_disputes: int
