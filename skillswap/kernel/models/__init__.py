"""
Kernel data models.

Importing this package registers every table on ``Base.metadata``.
"""

from skillswap.kernel.models.base import Base, TimestampMixin, SoftDeleteMixin, generate_uuid
from skillswap.kernel.models.user import User
from skillswap.kernel.models.skill import Skill, SkillCategory, SkillLevel, DeliveryMethod
from skillswap.kernel.models.exchange import (
    Exchange,
    ExchangeOffer,
    ExchangeType,
    ExchangeRole,
    ExchangeStatus,
    OfferType,
    Currency,
)
from skillswap.kernel.models.negotiation import (
    NegotiationSession,
    NegotiationStatus,
    NegotiationMethod,
    PaymentTimeline,
    Deliverable,
)
from skillswap.kernel.models.dispute import Dispute, DisputeStatus
from skillswap.kernel.models.review import Review
from skillswap.kernel.models.event_log import EventLog, EventType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    "generate_uuid",
    # Users & skills
    "User",
    "Skill",
    "SkillCategory",
    "SkillLevel",
    "DeliveryMethod",
    # Exchanges
    "Exchange",
    "ExchangeOffer",
    "ExchangeType",
    "ExchangeRole",
    "ExchangeStatus",
    "OfferType",
    "Currency",
    # Negotiation
    "NegotiationSession",
    "NegotiationStatus",
    "NegotiationMethod",
    "PaymentTimeline",
    "Deliverable",
    # Disputes
    "Dispute",
    "DisputeStatus",
    # Reviews
    "Review",
    # Audit
    "EventLog",
    "EventType",
]
