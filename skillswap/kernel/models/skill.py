"""
Skill listings.
"""

import uuid
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, JSON, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from skillswap.kernel.models.base import Base, TimestampMixin, SoftDeleteMixin, generate_uuid

if TYPE_CHECKING:
    from skillswap.kernel.models.user import User


class SkillCategory(str, Enum):
    """Browse categories."""
    TECHNOLOGY = "Technology"
    DESIGN = "Design"
    BUSINESS = "Business"
    LANGUAGE = "Language"
    PHOTOGRAPHY = "Photography"
    MUSIC = "Music"
    HANDCRAFT = "Handcraft"
    EDUCATION = "Education"
    OTHER = "Other"


class SkillLevel(str, Enum):
    """Self-declared proficiency."""
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"


class DeliveryMethod(str, Enum):
    """How a skill or offer is delivered."""
    IN_PERSON = "In-person"
    ONLINE = "Online"
    BOTH = "Both"


class Skill(Base, TimestampMixin, SoftDeleteMixin):
    """A skill a user offers for exchange."""

    __tablename__ = "skills"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_supabase_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    category: Mapped[SkillCategory] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    level: Mapped[SkillLevel] = mapped_column(
        String(50),
        nullable=False,
    )
    tags: Mapped[List[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    location: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    delivery_method: Mapped[DeliveryMethod] = mapped_column(
        String(50),
        default=DeliveryMethod.BOTH,
        nullable=False,
    )
    estimated_duration: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    is_available: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    exchange_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    view_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="skills",
        foreign_keys=[owner_id],
    )

    def __repr__(self) -> str:
        return f"<Skill {self.title[:50]}>"
