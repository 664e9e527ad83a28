"""
Fixtures for service-level tests: two traders, their skills, and an
exchange between them.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.engines.exchange.exchange_service import ExchangeService
from skillswap.engines.negotiation.negotiation_service import NegotiationService
from skillswap.kernel.models.exchange import Exchange, ExchangeType, OfferType
from skillswap.kernel.models.user import User
from skillswap.kernel.permissions.permission_service import PermissionService


@pytest_asyncio.fixture
async def alice(make_user) -> User:
    return await make_user("alice")


@pytest_asyncio.fixture
async def bob(make_user) -> User:
    return await make_user("bob")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user("admin", is_admin=True)


@pytest_asyncio.fixture
async def alice_skill(make_skill, alice):
    return await make_skill(alice, "Logo design")


@pytest_asyncio.fixture
async def bob_skill(make_skill, bob):
    return await make_skill(bob, "Guitar lessons")


@pytest_asyncio.fixture
async def skill_exchange(db_session: AsyncSession, alice, bob, alice_skill, bob_skill) -> Exchange:
    """Alice offers logo design for Bob's guitar lessons."""
    return await ExchangeService(db_session).create_exchange(
        initiator=alice,
        recipient_supabase_id=bob.supabase_id,
        recipient_skill_id=bob_skill.id,
        exchange_type=ExchangeType.SKILL_FOR_SKILL,
        initiator_offer={"offer_type": OfferType.SKILL, "skill_id": alice_skill.id, "description": "Two logo drafts"},
        recipient_offer={"description": "Four lessons"},
    )


@pytest_asyncio.fixture
async def money_exchange(db_session: AsyncSession, alice, bob, bob_skill) -> Exchange:
    """Alice pays for Bob's guitar lessons."""
    return await ExchangeService(db_session).create_exchange(
        initiator=alice,
        recipient_supabase_id=bob.supabase_id,
        recipient_skill_id=bob_skill.id,
        exchange_type="skill_for_money",
        initiator_offer={"offer_type": OfferType.MONEY, "monetary_amount": 80.0},
        recipient_offer={"offer_type": OfferType.SKILL},
    )


@pytest.fixture
def roles():
    """Resolve a participant's roles the way the API does."""

    def _resolve(exchange: Exchange, user: User):
        return PermissionService.resolve_participant(exchange, user.supabase_id)

    return _resolve


@pytest.fixture
def run_to_execution(db_session: AsyncSession, alice, bob, roles):
    """
    Drive an exchange through negotiation and acceptance.

    Each side lists its deliverables, both agree, both accept.
    """

    async def _run(exchange: Exchange, initiator_items=("Logo",), recipient_items=("Lesson 1",)):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(exchange, alice)

        await service.update_field(
            negotiation, exchange, roles(exchange, alice), "deliverables", list(initiator_items), alice,
        )
        await service.update_field(
            negotiation, exchange, roles(exchange, bob), "deliverables", list(recipient_items), bob,
        )
        await service.mark_agreement(negotiation, exchange, roles(exchange, alice), alice)
        await service.mark_agreement(negotiation, exchange, roles(exchange, bob), bob)

        exchange_service = ExchangeService(db_session)
        await exchange_service.accept(exchange, alice, negotiation)
        await exchange_service.accept(exchange, bob, negotiation)
        await service.start_execution(negotiation)
        return negotiation

    return _run
