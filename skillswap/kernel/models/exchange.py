"""
Exchange models: the negotiated transaction between two users and the
offer each side brings to it.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Boolean, DateTime, Float, ForeignKey, String, Text, UniqueConstraint, Uuid, Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from skillswap.kernel.models.base import Base, TimestampMixin, generate_uuid, generate_reference


class ExchangeType(str, Enum):
    """What each side contributes."""
    SKILL_FOR_SKILL = "skill_for_skill"
    SKILL_FOR_MONEY = "skill_for_money"


class OfferType(str, Enum):
    """Kind of contribution in a single offer."""
    SKILL = "skill"
    MONEY = "money"


class ExchangeRole(str, Enum):
    """Structural position of a participant."""
    INITIATOR = "initiator"
    RECIPIENT = "recipient"


class ExchangeStatus(str, Enum):
    """Exchange lifecycle."""
    PENDING = "pending"
    NEGOTIATING = "negotiating"
    PENDING_ACCEPTANCE = "pending_acceptance"  # one side accepted
    ACCEPTED = "accepted"  # both sides accepted
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class Currency(str, Enum):
    """Currencies an offer may be priced in."""
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    INR = "INR"


# Statuses that block opening a second exchange for the same pair and skill
ACTIVE_EXCHANGE_STATUSES = (
    ExchangeStatus.PENDING,
    ExchangeStatus.NEGOTIATING,
    ExchangeStatus.ACCEPTED,
    ExchangeStatus.IN_PROGRESS,
)

# Statuses a participant may move an exchange to by hand. Acceptance and
# expiry have their own paths.
STATUS_TRANSITIONS = {
    ExchangeStatus.PENDING: (ExchangeStatus.CANCELLED,),
    ExchangeStatus.NEGOTIATING: (ExchangeStatus.CANCELLED,),
    ExchangeStatus.PENDING_ACCEPTANCE: (ExchangeStatus.CANCELLED,),
    ExchangeStatus.ACCEPTED: (ExchangeStatus.IN_PROGRESS, ExchangeStatus.CANCELLED),
    ExchangeStatus.IN_PROGRESS: (ExchangeStatus.COMPLETED, ExchangeStatus.CANCELLED),
}

CANCELLABLE_STATUSES = tuple(
    status for status, targets in STATUS_TRANSITIONS.items() if ExchangeStatus.CANCELLED in targets
)


def _exchange_reference() -> str:
    return generate_reference("EXC")


class Exchange(Base, TimestampMixin):
    """A proposed or running exchange between an initiator and a recipient."""

    __tablename__ = "exchanges"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    reference: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        default=_exchange_reference,
    )

    # Participants
    initiator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    initiator_supabase_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    recipient_supabase_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    exchange_type: Mapped[ExchangeType] = mapped_column(
        String(50),
        nullable=False,
    )
    status: Mapped[ExchangeStatus] = mapped_column(
        String(50),
        default=ExchangeStatus.PENDING,
        nullable=False,
    )

    # Two-step acceptance
    initiator_accepted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recipient_accepted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    initiator_accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    recipient_accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    fully_accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Negotiation progress
    negotiation_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    negotiation_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    has_dispute: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status_changed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    offers: Mapped[List["ExchangeOffer"]] = relationship(
        "ExchangeOffer",
        back_populates="exchange",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_exchanges_pair", "initiator_supabase_id", "recipient_supabase_id"),
    )

    def offer_for(self, side: ExchangeRole) -> Optional["ExchangeOffer"]:
        """The offer contributed by ``side``, if one was recorded."""
        for offer in self.offers:
            if offer.side == side:
                return offer
        return None

    @property
    def initiator_offer(self) -> Optional["ExchangeOffer"]:
        return self.offer_for(ExchangeRole.INITIATOR)

    @property
    def recipient_offer(self) -> Optional["ExchangeOffer"]:
        return self.offer_for(ExchangeRole.RECIPIENT)

    def supabase_id_for(self, side: ExchangeRole) -> str:
        if side == ExchangeRole.INITIATOR:
            return self.initiator_supabase_id
        return self.recipient_supabase_id

    def __repr__(self) -> str:
        return f"<Exchange {self.reference} {self.exchange_type}>"


class ExchangeOffer(Base):
    """What one side of an exchange puts on the table."""

    __tablename__ = "exchange_offers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    exchange_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("exchanges.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    side: Mapped[ExchangeRole] = mapped_column(
        String(20),
        nullable=False,
    )
    offer_type: Mapped[OfferType] = mapped_column(
        String(20),
        default=OfferType.SKILL,
        nullable=False,
    )
    skill_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("skills.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    skill_title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    monetary_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    currency: Mapped[Currency] = mapped_column(
        String(3),
        default=Currency.USD,
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    estimated_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    delivery_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivery_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    exchange: Mapped["Exchange"] = relationship(
        "Exchange",
        back_populates="offers",
    )

    __table_args__ = (
        UniqueConstraint("exchange_id", "side", name="uq_exchange_offers_side"),
    )

    def __repr__(self) -> str:
        return f"<ExchangeOffer {self.side} {self.offer_type}>"
