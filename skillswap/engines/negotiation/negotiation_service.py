"""
Negotiation engine: editing terms under role permissions, mutual agreement,
and deliverable tracking through to completion.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.kernel.events.event_store import EventStore
from skillswap.kernel.models.base import enum_value, utcnow
from skillswap.kernel.models.event_log import EventType
from skillswap.kernel.models.exchange import (
    Currency,
    Exchange,
    ExchangeRole,
    ExchangeStatus,
    OfferType,
)
from skillswap.kernel.models.negotiation import (
    EDITABLE_STATUSES,
    MAX_HOURS,
    Deliverable,
    NegotiationMethod,
    NegotiationSession,
    NegotiationStatus,
    PaymentTimeline,
)
from skillswap.kernel.models.skill import Skill
from skillswap.kernel.models.user import User
from skillswap.kernel.permissions.permission_service import PermissionService
from skillswap.kernel.permissions.roles import RoleResolution, can_edit_field
from skillswap.logging_config import get_logger

logger = get_logger(__name__)


def _percent(part: int, total: int) -> int:
    """Whole percentage, halves rounded up."""
    if not total:
        return 0
    return int(part * 100 / total + 0.5)


class NegotiationService:
    """
    Negotiation sessions over an async session.

    Methods that take a ``RoleResolution`` expect it to come from
    ``PermissionService.resolve_participant``.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def get_for_exchange(self, exchange_id: uuid.UUID) -> Optional[NegotiationSession]:
        result = await self.session.execute(
            select(NegotiationSession).where(NegotiationSession.exchange_id == exchange_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, exchange: Exchange, user: User) -> NegotiationSession:
        """Load the exchange's session, opening one seeded from the offers if needed."""
        negotiation = await self.get_for_exchange(exchange.id)
        if negotiation:
            return negotiation

        initiator_offer = exchange.initiator_offer
        recipient_offer = exchange.recipient_offer
        negotiation = NegotiationSession(
            exchange_id=exchange.id,
            initiator_description=initiator_offer.description if initiator_offer else None,
            recipient_description=recipient_offer.description if recipient_offer else None,
            initiator_skill_id=initiator_offer.skill_id if initiator_offer else None,
            recipient_skill_id=recipient_offer.skill_id if recipient_offer else None,
            initiator_hours=0,
            recipient_hours=0,
            amount=0,
            currency=Currency.USD.value,
            payment_timeline=PaymentTimeline.COMPLETION,
            method=NegotiationMethod.FLEXIBLE,
            status=NegotiationStatus.DRAFTING,
            last_modified_by=user.supabase_id,
            deliverables=[],
        )
        self.session.add(negotiation)

        if exchange.status == ExchangeStatus.PENDING:
            exchange.status = ExchangeStatus.NEGOTIATING
            exchange.status_changed_at = utcnow()

        await self.session.flush()
        await self.event_store.log(
            event_type=EventType.NEGOTIATION_STARTED,
            entity_type="negotiation",
            entity_id=negotiation.id,
            user_id=user.id,
            exchange_id=exchange.id,
        )
        return negotiation

    @staticmethod
    def can_edit(negotiation: NegotiationSession) -> bool:
        return negotiation.status in EDITABLE_STATUSES

    # Field validation

    @staticmethod
    def _validate_description(value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("description must be a string")
        return value.strip()[:500] or None

    @staticmethod
    def _validate_hours(value: Any) -> float:
        try:
            hours = float(value)
        except (TypeError, ValueError):
            raise ValueError("hours must be a number")
        if hours < 0 or hours > MAX_HOURS:
            raise ValueError(f"hours must be between 0 and {MAX_HOURS}")
        return hours

    @staticmethod
    def _validate_amount(value: Any) -> float:
        try:
            amount = float(value)
        except (TypeError, ValueError):
            raise ValueError("amount must be a number")
        if amount < 0:
            raise ValueError("amount cannot be negative")
        return amount

    @staticmethod
    def _validate_choice(enum_cls: type, value: Any, field_name: str) -> str:
        try:
            return enum_cls(value).value
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            raise ValueError(f"{field_name} must be one of: {allowed}")

    @staticmethod
    def _validate_deadline(value: Any) -> Optional[datetime]:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValueError("deadline must be an ISO 8601 datetime")

    @staticmethod
    def _deliverable_titles(value: Any) -> List[str]:
        if not isinstance(value, list):
            raise ValueError("deliverables must be a list")
        titles = []
        for item in value:
            title = item.get("title") if isinstance(item, dict) else item
            if not isinstance(title, str) or not title.strip():
                raise ValueError("Each deliverable needs a title")
            titles.append(title.strip()[:500])
        return titles

    def _replace_deliverables(
        self,
        negotiation: NegotiationSession,
        side: ExchangeRole,
        titles: List[str],
    ) -> None:
        kept = [d for d in negotiation.deliverables if d.side != side]
        fresh = [
            Deliverable(side=side, position=position, title=title)
            for position, title in enumerate(titles)
        ]
        negotiation.deliverables = kept + fresh

    async def _apply_skill_selection(
        self,
        exchange: Exchange,
        negotiation: NegotiationSession,
        value: Any,
    ) -> uuid.UUID:
        try:
            skill_id = value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        except ValueError:
            raise ValueError("Selected skill not found")

        skill = await self.session.get(Skill, skill_id)
        if not skill or skill.deleted_at is not None:
            raise ValueError("Selected skill not found")

        negotiation.initiator_skill_id = skill.id
        offer = exchange.initiator_offer
        if offer is not None:
            offer.offer_type = OfferType.SKILL
            offer.skill_id = skill.id
            offer.skill_title = skill.title
        return skill.id

    async def update_field(
        self,
        negotiation: NegotiationSession,
        exchange: Exchange,
        resolution: RoleResolution,
        field_name: str,
        value: Any,
        actor: User,
    ) -> NegotiationSession:
        """
        Change one negotiated term on behalf of ``actor``.

        Any successful edit withdraws both agreements.

        Raises:
            ValueError: Session not editable, unknown field or bad value
            PermissionError: The caller's business role may not edit the field
        """
        if not self.can_edit(negotiation):
            raise ValueError(f"Cannot edit in current status: {enum_value(negotiation.status)}")

        if not can_edit_field(resolution.business_role, field_name):
            raise PermissionError(f"{resolution.business_role.value} cannot edit {field_name}")

        side = resolution.exchange_role
        if field_name == "description":
            setattr(negotiation, f"{side.value}_description", self._validate_description(value))
        elif field_name == "hours":
            setattr(negotiation, f"{side.value}_hours", self._validate_hours(value))
        elif field_name == "deliverables":
            self._replace_deliverables(negotiation, side, self._deliverable_titles(value))
        elif field_name == "deadline":
            negotiation.deadline = self._validate_deadline(value)
        elif field_name == "method":
            negotiation.method = self._validate_choice(NegotiationMethod, value, "method")
        elif field_name == "amount":
            negotiation.amount = self._validate_amount(value)
        elif field_name == "currency":
            negotiation.currency = self._validate_choice(Currency, value, "currency")
        elif field_name == "payment_timeline":
            negotiation.payment_timeline = self._validate_choice(
                PaymentTimeline, value, "payment_timeline"
            )
        elif field_name == "skill_id":
            if not resolution.is_initiator:
                raise PermissionError("Only the initiator can change the skill selection")
            value = await self._apply_skill_selection(exchange, negotiation, value)
        else:
            raise ValueError("Invalid field name")

        negotiation.reset_agreement()
        negotiation.status = NegotiationStatus.NEGOTIATING
        negotiation.last_modified_by = actor.supabase_id
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.NEGOTIATION_FIELD_UPDATED,
            entity_type="negotiation",
            entity_id=negotiation.id,
            user_id=actor.id,
            exchange_id=negotiation.exchange_id,
            payload={"field": field_name, "side": side},
        )
        return negotiation

    # Agreement

    @staticmethod
    def agreement_status(negotiation: NegotiationSession, resolution: RoleResolution) -> Dict[str, Any]:
        other = resolution.other_role
        return {
            "initiator_agreed": bool(negotiation.initiator_agreed),
            "recipient_agreed": bool(negotiation.recipient_agreed),
            "both_agreed": negotiation.both_agreed,
            "user_agreed": negotiation.has_agreed(resolution.exchange_role),
            "other_agreed": negotiation.has_agreed(other),
            "status": enum_value(negotiation.status),
        }

    async def mark_agreement(
        self,
        negotiation: NegotiationSession,
        exchange: Exchange,
        resolution: RoleResolution,
        actor: User,
    ) -> NegotiationSession:
        """
        Record the caller's agreement to the current terms.

        Raises:
            ValueError: Session not open for agreement, or already agreed
        """
        if not self.can_edit(negotiation):
            raise ValueError(f"Cannot agree in current status: {enum_value(negotiation.status)}")

        side = resolution.exchange_role
        if negotiation.has_agreed(side):
            raise ValueError("You have already agreed to these terms")

        now = utcnow()
        if side == ExchangeRole.INITIATOR:
            negotiation.initiator_agreed = True
            negotiation.initiator_agreed_at = now
        else:
            negotiation.recipient_agreed = True
            negotiation.recipient_agreed_at = now
        negotiation.last_modified_by = actor.supabase_id

        if negotiation.both_agreed:
            negotiation.status = NegotiationStatus.AGREED
            exchange.status = ExchangeStatus.PENDING_ACCEPTANCE
            exchange.status_changed_at = now
            exchange.negotiation_completed = True
            exchange.negotiation_completed_at = now

        await self.session.flush()
        await self.event_store.log(
            event_type=EventType.NEGOTIATION_AGREED,
            entity_type="negotiation",
            entity_id=negotiation.id,
            user_id=actor.id,
            exchange_id=negotiation.exchange_id,
            payload={"side": side, "both_agreed": negotiation.both_agreed},
        )
        return negotiation

    async def start_execution(
        self,
        negotiation: NegotiationSession,
        start: Optional[datetime] = None,
    ) -> NegotiationSession:
        """Stamp the execution start and share contact details."""
        negotiation.execution_started_at = start or utcnow()
        negotiation.contact_shared = True
        if negotiation.status not in (NegotiationStatus.AGREED, NegotiationStatus.COMPLETED):
            negotiation.status = NegotiationStatus.AGREED
        await self.session.flush()
        return negotiation

    # Deliverables

    @staticmethod
    def _deliverable_at(negotiation: NegotiationSession, side: ExchangeRole, index: int) -> Deliverable:
        items = negotiation.deliverables_for(side)
        if index < 0 or index >= len(items):
            raise ValueError("Invalid deliverable index")
        return items[index]

    async def set_completion(
        self,
        negotiation: NegotiationSession,
        exchange: Exchange,
        side: ExchangeRole,
        index: int,
        completed: bool,
        actor: User,
    ) -> Deliverable:
        """Mark one of ``side``'s own deliverables complete or incomplete."""
        deliverable = self._deliverable_at(negotiation, side, index)

        if completed:
            if not deliverable.completed:
                deliverable.completed = True
                deliverable.completed_at = utcnow()
                await self.complete_if_done(negotiation, exchange)
        else:
            deliverable.completed = False
            deliverable.completed_at = None
        negotiation.last_modified_by = actor.supabase_id

        await self.session.flush()
        await self.event_store.log(
            event_type=EventType.DELIVERABLE_COMPLETED if completed else EventType.DELIVERABLE_REOPENED,
            entity_type="deliverable",
            entity_id=deliverable.id,
            user_id=actor.id,
            exchange_id=negotiation.exchange_id,
            payload={"side": side, "position": index},
        )
        return deliverable

    async def confirm_deliverable(
        self,
        negotiation: NegotiationSession,
        exchange: Exchange,
        side: ExchangeRole,
        index: int,
        confirming_user: User,
    ) -> Deliverable:
        """
        Confirm the other side's deliverable at ``index``.

        ``side`` is the confirming participant's own side.

        Raises:
            ValueError: Bad index, or the deliverable is incomplete, already
                confirmed or under dispute
        """
        target_side = PermissionService.other_side(side)
        deliverable = self._deliverable_at(negotiation, target_side, index)

        if not deliverable.completed:
            raise ValueError("Deliverable must be completed before confirmation")
        if deliverable.is_confirmed:
            raise ValueError("Deliverable already confirmed")
        if deliverable.dispute_raised:
            raise ValueError("Cannot confirm disputed deliverable")

        deliverable.confirmed_by = confirming_user.id
        deliverable.confirmed_at = utcnow()
        await self.complete_if_done(negotiation, exchange)
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.DELIVERABLE_CONFIRMED,
            entity_type="deliverable",
            entity_id=deliverable.id,
            user_id=confirming_user.id,
            exchange_id=negotiation.exchange_id,
            payload={"side": target_side, "position": index},
        )
        return deliverable

    @staticmethod
    def outstanding_deliverables(negotiation: NegotiationSession) -> List[Deliverable]:
        """Deliverables not yet both completed and confirmed."""
        return [d for d in negotiation.deliverables if not (d.completed and d.is_confirmed)]

    async def complete_if_done(self, negotiation: NegotiationSession, exchange: Exchange) -> bool:
        """
        Close the session and exchange once every deliverable is completed
        and confirmed.
        """
        if not negotiation.deliverables or self.outstanding_deliverables(negotiation):
            return False
        if negotiation.status == NegotiationStatus.COMPLETED:
            return False
        await self.close(negotiation, exchange)
        return True

    async def close(
        self,
        negotiation: NegotiationSession,
        exchange: Exchange,
        actor: Optional[User] = None,
    ) -> None:
        """Mark session and exchange completed. Participant stats are bumped at most once."""
        negotiation.status = NegotiationStatus.COMPLETED
        exchange.status = ExchangeStatus.COMPLETED
        exchange.status_changed_at = utcnow()

        if not negotiation.stats_updated:
            for user_id in (exchange.initiator_id, exchange.recipient_id):
                participant = await self.session.get(User, user_id)
                if participant is not None:
                    participant.successful_exchanges = (participant.successful_exchanges or 0) + 1
            negotiation.stats_updated = True

        await self.event_store.log(
            event_type=EventType.EXCHANGE_COMPLETED,
            entity_type="exchange",
            entity_id=exchange.id,
            user_id=actor.id if actor else None,
            payload={"negotiation_id": negotiation.id},
        )
        logger.info("Exchange completed", extra={"exchange_id": str(exchange.id)})

    @staticmethod
    def progress_report(negotiation: NegotiationSession) -> Dict[str, Dict[str, int]]:
        """Completion and confirmation counts per side and overall."""

        def summarize(items: List[Deliverable]) -> Dict[str, int]:
            total = len(items)
            completed = sum(1 for d in items if d.completed)
            confirmed = sum(1 for d in items if d.completed and d.is_confirmed)
            return {
                "total": total,
                "completed": completed,
                "confirmed": confirmed,
                "percentage": _percent(completed, total),
                "confirmed_percentage": _percent(confirmed, total),
            }

        return {
            "initiator": summarize(negotiation.deliverables_for(ExchangeRole.INITIATOR)),
            "recipient": summarize(negotiation.deliverables_for(ExchangeRole.RECIPIENT)),
            "overall": summarize(list(negotiation.deliverables)),
        }
