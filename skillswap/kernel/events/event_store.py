"""
Append-only audit log.

Services record one event per state change, in the same transaction as the
change itself. Events that belong to an exchange (including its negotiation,
deliverables and disputes) carry ``exchange_id`` so admins can replay the
whole exchange in order.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.kernel.models.base import utcnow
from skillswap.kernel.models.event_log import EventLog, EventType
from skillswap.logging_config import get_logger

logger = get_logger(__name__)


def to_json_safe(value: Any) -> Any:
    """UUIDs and datetimes become strings, enums their values, recursively."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_safe(v) for v in value]
    return value


class EventStore:
    """
    Writes and reads the audit log for one session.

        await EventStore(session).log(
            event_type=EventType.EXCHANGE_ACCEPTED,
            entity_type="exchange",
            entity_id=exchange.id,
            user_id=user.id,
            payload={"side": "initiator"},
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def log(
        self,
        event_type: EventType,
        entity_type: str,
        entity_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
        exchange_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EventLog:
        """Stage an event on the session. Flushing is left to the caller."""
        if exchange_id is None and entity_type == "exchange":
            exchange_id = entity_id

        event = EventLog(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            exchange_id=exchange_id,
            payload=to_json_safe(payload or {}),
            ip_address=ip_address,
            user_agent=user_agent,
            # Stamped here: SQLite's CURRENT_TIMESTAMP only has whole seconds
            created_at=utcnow(),
        )
        self.session.add(event)
        logger.debug(
            "Audit %s on %s %s",
            event_type.value,
            entity_type,
            entity_id,
        )
        return event

    async def exchange_timeline(self, exchange_id: uuid.UUID, limit: int = 200) -> List[EventLog]:
        """Everything that happened to an exchange, oldest first."""
        result = await self.session.execute(
            select(EventLog)
            .where(EventLog.exchange_id == exchange_id)
            .order_by(EventLog.created_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: uuid.UUID,
        event_types: Optional[Iterable[EventType]] = None,
        limit: int = 100,
    ) -> List[EventLog]:
        """Events recorded against one entity, newest first."""
        query = select(EventLog).where(
            EventLog.entity_type == entity_type,
            EventLog.entity_id == entity_id,
        )
        if event_types:
            query = query.where(EventLog.event_type.in_([t.value for t in event_types]))

        result = await self.session.execute(query.order_by(EventLog.created_at.desc()).limit(limit))
        return list(result.scalars().all())
