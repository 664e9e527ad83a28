"""
Exchange role resolution.

Every negotiation edit is gated in two steps: work out where the caller sits
in the exchange (initiator or recipient) and what they contribute (skill or
money), then look the field up in the static permission table for that
business role.

Both functions are pure. Callers must confirm the participant actually
belongs to the exchange first: an id matching neither side resolves as the
recipient.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Protocol, Tuple, Union

from skillswap.kernel.models.exchange import ExchangeRole, ExchangeType, OfferType


class BusinessRole(str, Enum):
    """What a participant contributes, independent of who proposed the exchange."""
    SKILL_PROVIDER = "skill_provider"
    MONEY_PROVIDER = "money_provider"


class OfferLike(Protocol):
    offer_type: Any


class ExchangeLike(Protocol):
    exchange_type: Any
    initiator_supabase_id: str

    @property
    def initiator_offer(self) -> Optional[OfferLike]: ...

    @property
    def recipient_offer(self) -> Optional[OfferLike]: ...


# Negotiation terms each business role may edit, in display order
ROLE_PERMISSIONS: Mapping[BusinessRole, Tuple[str, ...]] = MappingProxyType({
    BusinessRole.SKILL_PROVIDER: (
        "description",
        "deliverables",
        "hours",
        "deadline",
        "method",
        "skill_id",
    ),
    BusinessRole.MONEY_PROVIDER: (
        "description",
        "amount",
        "currency",
        "payment_timeline",
        "deliverables",
    ),
})


@dataclass(frozen=True)
class RoleResolution:
    """Where a participant sits in an exchange and what they may edit."""

    exchange_role: ExchangeRole
    business_role: BusinessRole

    @property
    def is_initiator(self) -> bool:
        return self.exchange_role == ExchangeRole.INITIATOR

    @property
    def other_role(self) -> ExchangeRole:
        if self.is_initiator:
            return ExchangeRole.RECIPIENT
        return ExchangeRole.INITIATOR

    @property
    def editable_fields(self) -> Tuple[str, ...]:
        return ROLE_PERMISSIONS[self.business_role]

    def as_dict(self) -> dict:
        return {
            "exchange_role": self.exchange_role.value,
            "business_role": self.business_role.value,
            "is_initiator": self.is_initiator,
        }


def _coerce(enum_cls: type, value: Any) -> Optional[Enum]:
    """Map a raw column value onto ``enum_cls``; None when it is not a member."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _offer_business_role(offer: Optional[OfferLike]) -> BusinessRole:
    offer_type = _coerce(OfferType, getattr(offer, "offer_type", None)) if offer is not None else None
    if offer_type == OfferType.MONEY:
        return BusinessRole.MONEY_PROVIDER
    # Skill offers, and offers with no recorded type, provide the skill
    return BusinessRole.SKILL_PROVIDER


def resolve_exchange_role(exchange: ExchangeLike, participant_id: str) -> RoleResolution:
    """
    Classify ``participant_id`` within ``exchange``.

    skill_for_skill: both sides are skill providers.
    skill_for_money: the side whose own offer is money is the money provider.
    Unknown exchange types fall back to skill provider.
    """
    is_initiator = exchange.initiator_supabase_id == participant_id
    exchange_role = ExchangeRole.INITIATOR if is_initiator else ExchangeRole.RECIPIENT

    exchange_type = _coerce(ExchangeType, exchange.exchange_type)
    if exchange_type == ExchangeType.SKILL_FOR_MONEY:
        own_offer = exchange.initiator_offer if is_initiator else exchange.recipient_offer
        business_role = _offer_business_role(own_offer)
    else:
        business_role = BusinessRole.SKILL_PROVIDER

    return RoleResolution(exchange_role=exchange_role, business_role=business_role)


def can_edit_field(business_role: Union[BusinessRole, str], field_name: str) -> bool:
    """True if ``business_role`` may edit ``field_name``; unknown roles may edit nothing."""
    role = _coerce(BusinessRole, business_role)
    if role is None:
        return False
    return field_name in ROLE_PERMISSIONS[role]
