"""
Dispute service: participants contest a deliverable, admins resolve it.
"""

import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.kernel.events.event_store import EventStore
from skillswap.kernel.models.base import enum_value, utcnow
from skillswap.kernel.models.dispute import Dispute, DisputeStatus
from skillswap.kernel.models.event_log import EventType
from skillswap.kernel.models.exchange import Exchange, ExchangeRole
from skillswap.kernel.models.negotiation import NegotiationSession
from skillswap.kernel.models.user import User
from skillswap.kernel.permissions.permission_service import PermissionService
from skillswap.engines.negotiation.negotiation_service import NegotiationService
from skillswap.logging_config import get_logger

logger = get_logger(__name__)


class DisputeService:
    """Raising, listing and resolving disputes."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def get_dispute(self, dispute_id: uuid.UUID) -> Optional[Dispute]:
        result = await self.session.execute(select(Dispute).where(Dispute.id == dispute_id))
        return result.scalar_one_or_none()

    async def raise_dispute(
        self,
        exchange: Exchange,
        negotiation: NegotiationSession,
        user: User,
        side: ExchangeRole,
        index: int,
        reason: str,
    ) -> Dispute:
        """
        Contest the other side's deliverable at ``index``.

        ``side`` is the disputing participant's own side.

        Raises:
            ValueError: Missing reason, bad index, or a deliverable that is
                incomplete, confirmed or already disputed
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValueError("Dispute reason required")

        other = PermissionService.other_side(side)
        targets = negotiation.deliverables_for(other)
        if index < 0 or index >= len(targets):
            raise ValueError("Invalid deliverable index")
        deliverable = targets[index]

        if not deliverable.completed:
            raise ValueError("Cannot dispute incomplete deliverable")
        if deliverable.is_confirmed:
            raise ValueError("Cannot dispute confirmed deliverable")
        if deliverable.dispute_raised:
            raise ValueError("Deliverable already disputed")

        completed_at = deliverable.completed_at.isoformat() if deliverable.completed_at else "unknown"
        dispute = Dispute(
            exchange_id=exchange.id,
            raised_by=user.id,
            description=f'Dispute regarding deliverable: "{deliverable.title}"\n\nReason: {reason}',
            evidence=(
                f"Deliverable Index: {index}\n"
                f"Deliverable Title: {deliverable.title}\n"
                f"Completed At: {completed_at}\n"
                f"User Role: {side.value}\n"
                f"Other Role: {other.value}"
            ),
            deliverable_side=other,
            deliverable_position=index,
            status=DisputeStatus.OPEN,
        )
        self.session.add(dispute)

        deliverable.dispute_raised = True
        deliverable.dispute_reason = reason[:1000]
        exchange.has_dispute = True
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.DISPUTE_RAISED,
            entity_type="dispute",
            entity_id=dispute.id,
            user_id=user.id,
            exchange_id=exchange.id,
            payload={"side": other, "position": index},
        )
        logger.info(
            "Dispute raised",
            extra={"dispute_id": str(dispute.id), "exchange_id": str(exchange.id)},
        )
        return dispute

    def _user_scope(self, user: User):
        """Disputes the user raised or that concern one of their exchanges."""
        own_exchanges = select(Exchange.id).where(
            or_(Exchange.initiator_id == user.id, Exchange.recipient_id == user.id)
        )
        return or_(Dispute.raised_by == user.id, Dispute.exchange_id.in_(own_exchanges))

    async def _count(self, *criteria) -> int:
        result = await self.session.execute(select(func.count(Dispute.id)).where(*criteria))
        return result.scalar() or 0

    async def list_for_user(
        self,
        user: User,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[Dict[str, Any]], int, Dict[str, int]]:
        """
        Disputes visible to ``user``, newest first.

        Returns:
            (items, total, stats) where each item carries the dispute and a
            ``metadata`` dict describing it from the user's point of view
        """
        scope = self._user_scope(user)
        criteria = [scope]
        if status and status != "all":
            criteria.append(Dispute.status == status)

        total = await self._count(*criteria)
        result = await self.session.execute(
            select(Dispute)
            .where(*criteria)
            .order_by(Dispute.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        disputes = list(result.scalars().all())

        exchange_ids = {d.exchange_id for d in disputes}
        exchanges: Dict[uuid.UUID, Exchange] = {}
        if exchange_ids:
            rows = await self.session.execute(select(Exchange).where(Exchange.id.in_(exchange_ids)))
            exchanges = {e.id: e for e in rows.scalars().all()}

        user_ids = set()
        for exchange in exchanges.values():
            user_ids.update((exchange.initiator_id, exchange.recipient_id))
        names: Dict[uuid.UUID, str] = {}
        if user_ids:
            rows = await self.session.execute(select(User.id, User.name).where(User.id.in_(user_ids)))
            names = {row.id: row.name for row in rows}

        items = []
        for dispute in disputes:
            exchange = exchanges.get(dispute.exchange_id)
            metadata: Dict[str, Any] = {"is_raised_by_user": dispute.raised_by == user.id}
            if exchange is not None:
                is_initiator = exchange.initiator_id == user.id
                initiator_offer = exchange.initiator_offer
                recipient_offer = exchange.recipient_offer
                metadata.update({
                    "user_role": ExchangeRole.INITIATOR.value if is_initiator else ExchangeRole.RECIPIENT.value,
                    "exchange_title": "{} ↔ {}".format(
                        (initiator_offer.skill_title if initiator_offer else None) or "Unknown",
                        (recipient_offer.skill_title if recipient_offer else None) or "Unknown",
                    ),
                    "other_party": names.get(
                        exchange.recipient_id if is_initiator else exchange.initiator_id
                    ),
                })
            items.append({"dispute": dispute, "metadata": metadata})

        raised = await self._count(Dispute.raised_by == user.id)
        received = await self._count(
            Dispute.exchange_id.in_(
                select(Exchange.id).where(
                    or_(Exchange.initiator_id == user.id, Exchange.recipient_id == user.id)
                )
            ),
            Dispute.raised_by != user.id,
        )
        stats = {
            "raised": raised,
            "received": received,
            "open": await self._count(scope, Dispute.status == DisputeStatus.OPEN),
            "resolved": await self._count(scope, Dispute.status == DisputeStatus.RESOLVED),
            "total": raised + received,
        }
        return items, total, stats

    async def list_all(
        self,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Dispute], int]:
        """Every dispute, for the admin console."""
        criteria = []
        if status and status != "all":
            criteria.append(Dispute.status == status)

        total = await self._count(*criteria)
        result = await self.session.execute(
            select(Dispute)
            .where(*criteria)
            .order_by(Dispute.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def resolve(
        self,
        dispute: Dispute,
        admin: User,
        decision: str,
        reasoning: str,
    ) -> Tuple[Dispute, bool]:
        """
        Close a dispute on an admin's decision.

        The contested deliverable is confirmed on the admin's authority and
        its dispute flag cleared.

        Returns:
            (dispute, has_open_disputes) for the dispute's exchange

        Raises:
            ValueError: Missing decision/reasoning, or dispute already resolved
        """
        if not (decision or "").strip() or not (reasoning or "").strip():
            raise ValueError("Decision and reasoning are required")
        if dispute.status == DisputeStatus.RESOLVED:
            raise ValueError("Dispute already resolved")

        now = utcnow()
        dispute.status = DisputeStatus.RESOLVED
        dispute.resolved_by = admin.id
        dispute.decision = decision.strip()
        dispute.reasoning = reasoning.strip()
        dispute.resolved_at = now

        exchange = await self.session.get(Exchange, dispute.exchange_id)
        negotiation_service = NegotiationService(self.session)
        negotiation = await negotiation_service.get_for_exchange(dispute.exchange_id)

        if negotiation is not None and dispute.deliverable_side is not None:
            targets = negotiation.deliverables_for(ExchangeRole(enum_value(dispute.deliverable_side)))
            position = dispute.deliverable_position
            if position is not None and 0 <= position < len(targets):
                deliverable = targets[position]
                deliverable.confirmed_by = admin.id
                deliverable.confirmed_at = now
                deliverable.dispute_raised = False
                deliverable.dispute_reason = None
                if exchange is not None:
                    await negotiation_service.complete_if_done(negotiation, exchange)
            else:
                logger.warning(
                    "Disputed deliverable no longer exists",
                    extra={"dispute_id": str(dispute.id)},
                )

        admin.disputes_handled = (admin.disputes_handled or 0) + 1
        admin.last_admin_activity = now
        await self.session.flush()

        open_count = await self._count(
            Dispute.exchange_id == dispute.exchange_id,
            Dispute.status == DisputeStatus.OPEN,
        )
        if open_count == 0 and exchange is not None:
            exchange.has_dispute = False
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.DISPUTE_RESOLVED,
            entity_type="dispute",
            entity_id=dispute.id,
            user_id=admin.id,
            exchange_id=dispute.exchange_id,
            payload={"decision": dispute.decision},
        )
        logger.info("Dispute resolved", extra={"dispute_id": str(dispute.id)})
        return dispute, open_count > 0
