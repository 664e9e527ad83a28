"""
Local user profile linked to an identity provider account.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from skillswap.kernel.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from skillswap.kernel.models.skill import Skill


class User(Base, TimestampMixin):
    """
    Marketplace user.

    Credentials live with the identity provider; ``supabase_id`` is the
    provider's opaque subject id and the key every participancy check uses.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    supabase_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(60),
        nullable=False,
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(
        String(1000),
        nullable=True,
    )
    bio: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    location: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    last_active: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Reputation
    rating: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        nullable=False,
    )
    review_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    successful_exchanges: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    # Moderation
    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    disputes_handled: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    last_admin_activity: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    skills: Mapped[List["Skill"]] = relationship(
        "Skill",
        back_populates="owner",
        foreign_keys="Skill.owner_id",
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"
