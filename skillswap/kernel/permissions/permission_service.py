"""
Participancy and moderation checks.

The role resolver trusts that the caller belongs to the exchange; the
checks here are what every route runs first.
"""

from typing import Optional

from skillswap.kernel.models.exchange import Exchange, ExchangeRole
from skillswap.kernel.models.user import User
from skillswap.kernel.permissions.roles import RoleResolution, resolve_exchange_role


class PermissionService:
    """
    Stateless checks over already-loaded rows.

    - Participants: initiator or recipient of an exchange
    - Admins: users with ``is_admin`` set, may view any exchange
    """

    @staticmethod
    def participant_side(exchange: Exchange, supabase_id: str) -> Optional[ExchangeRole]:
        """The side ``supabase_id`` is on, or None for outsiders."""
        if exchange.initiator_supabase_id == supabase_id:
            return ExchangeRole.INITIATOR
        if exchange.recipient_supabase_id == supabase_id:
            return ExchangeRole.RECIPIENT
        return None

    @classmethod
    def is_participant(cls, exchange: Exchange, supabase_id: str) -> bool:
        return cls.participant_side(exchange, supabase_id) is not None

    @classmethod
    def can_view_exchange(cls, exchange: Exchange, user: User) -> bool:
        return user.is_admin or cls.is_participant(exchange, user.supabase_id)

    @classmethod
    def resolve_participant(cls, exchange: Exchange, supabase_id: str) -> Optional[RoleResolution]:
        """
        Resolve roles only for actual participants.

        Returns None instead of silently classifying an outsider as recipient.
        """
        if not cls.is_participant(exchange, supabase_id):
            return None
        return resolve_exchange_role(exchange, supabase_id)

    @staticmethod
    def other_side(side: ExchangeRole) -> ExchangeRole:
        if side == ExchangeRole.INITIATOR:
            return ExchangeRole.RECIPIENT
        return ExchangeRole.INITIATOR
