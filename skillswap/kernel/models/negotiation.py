"""
Negotiation session: the terms both sides edit and agree to before an
exchange is accepted, plus the deliverables tracked during execution.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from skillswap.kernel.models.base import Base, TimestampMixin, generate_uuid
from skillswap.kernel.models.exchange import ExchangeRole


class NegotiationStatus(str, Enum):
    """Negotiation lifecycle."""
    DRAFTING = "drafting"
    NEGOTIATING = "negotiating"
    AGREED = "agreed"
    COMPLETED = "completed"


class PaymentTimeline(str, Enum):
    """When money changes hands."""
    UPFRONT = "upfront"
    COMPLETION = "completion"


class NegotiationMethod(str, Enum):
    """How the exchange will be carried out."""
    IN_PERSON = "in-person"
    ONLINE = "online"
    FLEXIBLE = "flexible"


EDITABLE_STATUSES = (NegotiationStatus.DRAFTING, NegotiationStatus.NEGOTIATING)

MAX_HOURS = 100


class NegotiationSession(Base, TimestampMixin):
    """Terms under negotiation for a single exchange."""

    __tablename__ = "negotiation_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    exchange_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("exchanges.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    # Per-side terms
    initiator_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    recipient_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    initiator_skill_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(), nullable=True)
    recipient_skill_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(), nullable=True)
    initiator_hours: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    recipient_hours: Mapped[float] = mapped_column(Float, default=0, nullable=False)

    # Shared terms
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    amount: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    payment_timeline: Mapped[PaymentTimeline] = mapped_column(
        String(20),
        default=PaymentTimeline.COMPLETION,
        nullable=False,
    )
    method: Mapped[NegotiationMethod] = mapped_column(
        String(20),
        default=NegotiationMethod.FLEXIBLE,
        nullable=False,
    )

    # Agreement tracking
    initiator_agreed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recipient_agreed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    initiator_agreed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    recipient_agreed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Execution
    execution_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    contact_shared: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    status: Mapped[NegotiationStatus] = mapped_column(
        String(20),
        default=NegotiationStatus.DRAFTING,
        nullable=False,
        index=True,
    )
    # Guards against double-counting successful exchanges
    stats_updated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_modified_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    deliverables: Mapped[List["Deliverable"]] = relationship(
        "Deliverable",
        back_populates="negotiation",
        cascade="all, delete-orphan",
        order_by="Deliverable.position",
        lazy="selectin",
    )

    @property
    def both_agreed(self) -> bool:
        return bool(self.initiator_agreed and self.recipient_agreed)

    @property
    def total_hours(self) -> float:
        return (self.initiator_hours or 0) + (self.recipient_hours or 0)

    @property
    def payment_method(self) -> str:
        """'none' when no money is involved, otherwise the payment timeline."""
        if not self.amount:
            return "none"
        return getattr(self.payment_timeline, "value", self.payment_timeline) or PaymentTimeline.COMPLETION.value

    def deliverables_for(self, side: ExchangeRole) -> List["Deliverable"]:
        return [d for d in self.deliverables if d.side == side]

    def has_agreed(self, side: ExchangeRole) -> bool:
        if side == ExchangeRole.INITIATOR:
            return self.initiator_agreed
        return self.recipient_agreed

    def reset_agreement(self) -> None:
        self.initiator_agreed = False
        self.recipient_agreed = False
        self.initiator_agreed_at = None
        self.recipient_agreed_at = None

    def __repr__(self) -> str:
        return f"<NegotiationSession exchange={self.exchange_id} {self.status}>"


class Deliverable(Base):
    """One promised piece of work by one side of the exchange."""

    __tablename__ = "deliverables"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    negotiation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("negotiation_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    side: Mapped[ExchangeRole] = mapped_column(String(20), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)

    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Peer confirmation (the other side, or an admin resolving a dispute)
    confirmed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(), nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    dispute_raised: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    dispute_reason: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    negotiation: Mapped["NegotiationSession"] = relationship(
        "NegotiationSession",
        back_populates="deliverables",
    )

    @property
    def is_confirmed(self) -> bool:
        return self.confirmed_by is not None

    def __repr__(self) -> str:
        return f"<Deliverable {self.side}#{self.position} {self.title[:30]}>"
