"""
Append-only audit log of marketplace actions.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, String, Text, func, Index, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from skillswap.kernel.models.base import Base, generate_uuid


class EventType(str, Enum):
    """Audited actions."""

    # Users
    USER_SYNCED = "user.synced"
    USER_UPDATED = "user.updated"
    USER_DEACTIVATED = "user.deactivated"
    USER_ADMIN_CHANGED = "user.admin_changed"

    # Skills
    SKILL_CREATED = "skill.created"
    SKILL_UPDATED = "skill.updated"
    SKILL_DELETED = "skill.deleted"

    # Exchanges
    EXCHANGE_CREATED = "exchange.created"
    EXCHANGE_ACCEPTED = "exchange.accepted"
    EXCHANGE_STARTED = "exchange.started"
    EXCHANGE_CANCELLED = "exchange.cancelled"
    EXCHANGE_EXPIRED = "exchange.expired"
    EXCHANGE_COMPLETED = "exchange.completed"

    # Negotiation
    NEGOTIATION_STARTED = "negotiation.started"
    NEGOTIATION_FIELD_UPDATED = "negotiation.field_updated"
    NEGOTIATION_AGREED = "negotiation.agreed"
    DELIVERABLE_COMPLETED = "deliverable.completed"
    DELIVERABLE_REOPENED = "deliverable.reopened"
    DELIVERABLE_CONFIRMED = "deliverable.confirmed"

    # Disputes
    DISPUTE_RAISED = "dispute.raised"
    DISPUTE_RESOLVED = "dispute.resolved"

    # Reviews
    REVIEW_CREATED = "review.created"


class EventLog(Base):
    """
    Immutable audit event.

    Rows are only ever inserted.
    """

    __tablename__ = "event_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    event_type: Mapped[EventType] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )
    # Set on every event that belongs to an exchange, so its timeline is one query
    exchange_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
        index=True,
    )
    # Null for system events such as expiry
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
        index=True,
    )
    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),  # IPv6 max length
        nullable=True,
    )
    user_agent: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_event_logs_entity", "entity_type", "entity_id"),
        Index("ix_event_logs_user_time", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        event_type = getattr(self.event_type, "value", self.event_type)
        return f"<EventLog {event_type} {self.entity_type}:{self.entity_id}>"
