"""
Disputes raised against a deliverable and resolved by an administrator.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from skillswap.kernel.models.base import Base, TimestampMixin, generate_uuid, generate_reference
from skillswap.kernel.models.exchange import ExchangeRole


class DisputeStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


def _dispute_reference() -> str:
    return generate_reference("DISP")


class Dispute(Base, TimestampMixin):
    """A participant's objection to a deliverable the other side marked complete."""

    __tablename__ = "disputes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    reference: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        default=_dispute_reference,
    )
    exchange_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("exchanges.id", ondelete="CASCADE"),
        nullable=False,
    )
    raised_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    evidence: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Which deliverable is contested
    deliverable_side: Mapped[Optional[ExchangeRole]] = mapped_column(String(20), nullable=True)
    deliverable_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    status: Mapped[DisputeStatus] = mapped_column(
        String(20),
        default=DisputeStatus.OPEN,
        nullable=False,
    )

    # Resolution
    resolved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=True,
    )
    decision: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reasoning: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_disputes_status_created", "status", "created_at"),
        Index("ix_disputes_exchange", "exchange_id"),
        Index("ix_disputes_raised_by", "raised_by"),
    )

    def __repr__(self) -> str:
        return f"<Dispute {self.reference} {self.status}>"
