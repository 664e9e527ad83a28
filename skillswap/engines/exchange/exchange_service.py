"""
Exchange lifecycle: proposal, two-step acceptance, status changes, cancellation
and expiry.
"""

import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.config import get_settings
from skillswap.kernel.events.event_store import EventStore
from skillswap.kernel.models.base import as_utc, enum_value, utcnow
from skillswap.kernel.models.event_log import EventType
from skillswap.kernel.models.exchange import (
    ACTIVE_EXCHANGE_STATUSES,
    CANCELLABLE_STATUSES,
    STATUS_TRANSITIONS,
    Exchange,
    ExchangeOffer,
    ExchangeRole,
    ExchangeStatus,
    ExchangeType,
    OfferType,
)
from skillswap.kernel.models.negotiation import NegotiationSession
from skillswap.kernel.models.skill import Skill
from skillswap.kernel.models.user import User
from skillswap.kernel.permissions.permission_service import PermissionService
from skillswap.engines.negotiation.negotiation_service import NegotiationService
from skillswap.logging_config import get_logger

logger = get_logger(__name__)

# Offer attributes callers may set when proposing an exchange
OFFER_FIELDS = (
    "offer_type",
    "skill_id",
    "monetary_amount",
    "currency",
    "description",
    "estimated_hours",
    "delivery_date",
    "delivery_method",
)


class ExchangeConflictError(ValueError):
    """An active exchange already covers this pair of users and skill."""


class ExchangeService:
    """
    Exchange operations over an async session.

    Participancy is checked by the caller (see PermissionService) before any
    method that acts on behalf of a participant.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)
        self.settings = get_settings()

    async def get_exchange(self, exchange_id: uuid.UUID) -> Optional[Exchange]:
        result = await self.session.execute(select(Exchange).where(Exchange.id == exchange_id))
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        user: User,
        status: Optional[ExchangeStatus] = None,
    ) -> List[Exchange]:
        """Exchanges the user takes part in, newest first."""
        query = select(Exchange).where(
            or_(
                Exchange.initiator_supabase_id == user.supabase_id,
                Exchange.recipient_supabase_id == user.supabase_id,
            )
        )
        if status:
            query = query.where(Exchange.status == status)
        query = query.order_by(Exchange.created_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_between(
        self,
        user: User,
        other_supabase_id: str,
        skill_id: uuid.UUID,
    ) -> List[Exchange]:
        """Recent exchanges between two users that involve ``skill_id`` on either offer."""
        involves_skill = Exchange.offers.any(ExchangeOffer.skill_id == skill_id)
        query = (
            select(Exchange)
            .where(
                or_(
                    and_(
                        Exchange.initiator_supabase_id == user.supabase_id,
                        Exchange.recipient_supabase_id == other_supabase_id,
                    ),
                    and_(
                        Exchange.initiator_supabase_id == other_supabase_id,
                        Exchange.recipient_supabase_id == user.supabase_id,
                    ),
                ),
                involves_skill,
            )
            .order_by(Exchange.created_at.desc())
            .limit(self.settings.max_recent_exchanges)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def _find_active_duplicate(
        self,
        initiator_supabase_id: str,
        recipient_supabase_id: str,
        skill_id: uuid.UUID,
    ) -> Optional[Exchange]:
        """
        Active exchange for the same pair where the requested skill is the
        recipient's skill, in either direction.
        """
        same_direction = and_(
            Exchange.initiator_supabase_id == initiator_supabase_id,
            Exchange.recipient_supabase_id == recipient_supabase_id,
            Exchange.offers.any(and_(
                ExchangeOffer.side == ExchangeRole.RECIPIENT,
                ExchangeOffer.skill_id == skill_id,
            )),
        )
        reversed_direction = and_(
            Exchange.initiator_supabase_id == recipient_supabase_id,
            Exchange.recipient_supabase_id == initiator_supabase_id,
            Exchange.offers.any(and_(
                ExchangeOffer.side == ExchangeRole.INITIATOR,
                ExchangeOffer.skill_id == skill_id,
            )),
        )
        query = select(Exchange).where(
            or_(same_direction, reversed_direction),
            Exchange.status.in_(ACTIVE_EXCHANGE_STATUSES),
        ).limit(1)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    def _build_offer(side: ExchangeRole, data: Dict[str, Any]) -> ExchangeOffer:
        values = {key: data[key] for key in OFFER_FIELDS if data.get(key) is not None}
        values.setdefault("offer_type", OfferType.SKILL)
        return ExchangeOffer(side=side, **values)

    async def create_exchange(
        self,
        initiator: User,
        recipient_supabase_id: str,
        recipient_skill_id: uuid.UUID,
        exchange_type: Any,
        initiator_offer: Dict[str, Any],
        recipient_offer: Dict[str, Any],
        ip_address: Optional[str] = None,
    ) -> Exchange:
        """
        Propose an exchange for ``recipient_skill_id``.

        Raises:
            ValueError: Invalid exchange type, self-exchange, or unknown skill
            LookupError: Recipient has no local account
            ExchangeConflictError: An active exchange already exists
        """
        try:
            exchange_type = ExchangeType(enum_value(exchange_type))
        except ValueError:
            raise ValueError("Invalid exchange type")

        if initiator.supabase_id == recipient_supabase_id:
            raise ValueError("Cannot create exchange with yourself")

        result = await self.session.execute(
            select(User).where(User.supabase_id == recipient_supabase_id)
        )
        recipient = result.scalar_one_or_none()
        if not recipient:
            raise LookupError("Recipient not found")

        skill = await self.session.get(Skill, recipient_skill_id)
        if not skill or skill.deleted_at is not None or skill.owner_id != recipient.id:
            raise ValueError("Requested skill does not belong to the recipient")

        if await self._find_active_duplicate(initiator.supabase_id, recipient_supabase_id, skill.id):
            raise ExchangeConflictError(
                "Active exchange already exists between these users for this skill"
            )

        initiator_row = self._build_offer(ExchangeRole.INITIATOR, initiator_offer)
        if initiator_row.skill_id is not None:
            own_skill = await self.session.get(Skill, initiator_row.skill_id)
            initiator_row.skill_title = own_skill.title if own_skill else None

        recipient_row = self._build_offer(ExchangeRole.RECIPIENT, {**recipient_offer, "skill_id": skill.id})
        recipient_row.skill_title = skill.title

        now = utcnow()
        exchange = Exchange(
            initiator_id=initiator.id,
            initiator_supabase_id=initiator.supabase_id,
            recipient_id=recipient.id,
            recipient_supabase_id=recipient.supabase_id,
            exchange_type=exchange_type,
            status=ExchangeStatus.PENDING,
            expires_at=now + timedelta(days=self.settings.exchange_expiry_days),
            status_changed_at=now,
            offers=[initiator_row, recipient_row],
        )
        self.session.add(exchange)
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.EXCHANGE_CREATED,
            entity_type="exchange",
            entity_id=exchange.id,
            user_id=initiator.id,
            payload={
                "reference": exchange.reference,
                "exchange_type": exchange_type,
                "recipient_id": recipient.id,
                "skill_id": skill.id,
            },
            ip_address=ip_address,
        )
        logger.info(
            "Exchange proposed",
            extra={"exchange_id": str(exchange.id), "exchange_type": exchange_type.value},
        )
        return exchange

    @staticmethod
    def acceptance_status(exchange: Exchange) -> Dict[str, Any]:
        """Acceptance flags plus the first side still to accept."""
        initiator_accepted = bool(exchange.initiator_accepted)
        recipient_accepted = bool(exchange.recipient_accepted)
        if not initiator_accepted:
            pending_side = ExchangeRole.INITIATOR.value
        elif not recipient_accepted:
            pending_side = ExchangeRole.RECIPIENT.value
        else:
            pending_side = None
        return {
            "initiator_accepted": initiator_accepted,
            "recipient_accepted": recipient_accepted,
            "both_accepted": initiator_accepted and recipient_accepted,
            "pending_side": pending_side,
        }

    @staticmethod
    def has_accepted(exchange: Exchange, side: ExchangeRole) -> bool:
        if side == ExchangeRole.INITIATOR:
            return bool(exchange.initiator_accepted)
        return bool(exchange.recipient_accepted)

    def _set_status(self, exchange: Exchange, status: ExchangeStatus) -> None:
        exchange.status = status
        exchange.status_changed_at = utcnow()

    async def accept(
        self,
        exchange: Exchange,
        user: User,
        negotiation: Optional[NegotiationSession],
    ) -> Exchange:
        """
        Record the caller's acceptance.

        Both sides accepting moves the exchange to ``accepted``.

        Raises:
            ValueError: Terms not agreed, wrong status, or already accepted
        """
        if negotiation is None or not negotiation.both_agreed:
            raise ValueError(
                "Cannot accept exchange until negotiation terms are agreed by both parties"
            )

        now = utcnow()
        status = enum_value(exchange.status)
        if status == ExchangeStatus.NEGOTIATING:
            self._set_status(exchange, ExchangeStatus.PENDING_ACCEPTANCE)
            exchange.negotiation_completed = True
            exchange.negotiation_completed_at = now
        elif status != ExchangeStatus.PENDING_ACCEPTANCE:
            raise ValueError(f"Cannot accept exchange in current status: {status}")

        side = PermissionService.participant_side(exchange, user.supabase_id)
        if side is None:
            raise ValueError("Only participants can accept an exchange")
        if self.has_accepted(exchange, side):
            raise ValueError("You have already accepted this exchange")

        if side == ExchangeRole.INITIATOR:
            exchange.initiator_accepted = True
            exchange.initiator_accepted_at = now
        else:
            exchange.recipient_accepted = True
            exchange.recipient_accepted_at = now

        if exchange.initiator_accepted and exchange.recipient_accepted:
            self._set_status(exchange, ExchangeStatus.ACCEPTED)
            exchange.fully_accepted_at = now
        else:
            self._set_status(exchange, ExchangeStatus.PENDING_ACCEPTANCE)

        await self.event_store.log(
            event_type=EventType.EXCHANGE_ACCEPTED,
            entity_type="exchange",
            entity_id=exchange.id,
            user_id=user.id,
            payload={"side": side, "status": exchange.status},
        )
        return exchange

    async def update_status(
        self,
        exchange: Exchange,
        user: User,
        new_status: ExchangeStatus,
        negotiation: Optional[NegotiationSession] = None,
    ) -> Exchange:
        """
        Move the exchange to ``new_status`` along STATUS_TRANSITIONS.

        Completing closes the negotiation as well and is refused while any
        deliverable is still unfinished or unconfirmed.

        Raises:
            ValueError: Transition not allowed, or deliverables outstanding
        """
        current = enum_value(exchange.status)
        target = ExchangeStatus(enum_value(new_status))
        if target not in STATUS_TRANSITIONS.get(current, ()):
            raise ValueError(f"Cannot change status from {current} to {target.value}")

        if target == ExchangeStatus.CANCELLED:
            return await self.cancel(exchange, user)

        if target == ExchangeStatus.COMPLETED:
            negotiation_service = NegotiationService(self.session)
            if negotiation is None or negotiation_service.outstanding_deliverables(negotiation):
                raise ValueError(
                    "Cannot complete exchange until every deliverable is completed and confirmed"
                )
            await negotiation_service.close(negotiation, exchange, actor=user)
            return exchange

        self._set_status(exchange, target)
        await self.event_store.log(
            event_type=EventType.EXCHANGE_STARTED,
            entity_type="exchange",
            entity_id=exchange.id,
            user_id=user.id,
            payload={"from": current, "to": target},
        )
        logger.info(
            "Exchange status changed",
            extra={"exchange_id": str(exchange.id), "status": target.value},
        )
        return exchange

    async def cancel(self, exchange: Exchange, user: User) -> Exchange:
        """
        Withdraw from an exchange that has not finished.

        Raises:
            ValueError: If the exchange is completed, cancelled or expired
        """
        status = enum_value(exchange.status)
        if status not in CANCELLABLE_STATUSES:
            raise ValueError(f"Cannot cancel exchange in current status: {status}")

        self._set_status(exchange, ExchangeStatus.CANCELLED)
        await self.event_store.log(
            event_type=EventType.EXCHANGE_CANCELLED,
            entity_type="exchange",
            entity_id=exchange.id,
            user_id=user.id,
        )
        return exchange

    async def expire_if_past_deadline(
        self,
        exchange: Exchange,
        negotiation: Optional[NegotiationSession],
    ) -> bool:
        """
        Mark the exchange expired once the negotiated deadline has passed.

        Finished exchanges are left alone. Returns True if the status changed.
        """
        if negotiation is None or negotiation.deadline is None:
            return False
        status = enum_value(exchange.status)
        if status in (ExchangeStatus.COMPLETED, ExchangeStatus.CANCELLED, ExchangeStatus.EXPIRED):
            return False
        if as_utc(negotiation.deadline) >= utcnow():
            return False

        self._set_status(exchange, ExchangeStatus.EXPIRED)
        await self.event_store.log(
            event_type=EventType.EXCHANGE_EXPIRED,
            entity_type="exchange",
            entity_id=exchange.id,
            payload={"deadline": as_utc(negotiation.deadline)},
        )
        logger.info("Exchange expired", extra={"exchange_id": str(exchange.id)})
        return True
