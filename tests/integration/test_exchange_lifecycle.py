"""
Exchange proposal, acceptance, status changes, cancellation and expiry
against SQLite.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from skillswap.engines.exchange.exchange_service import ExchangeConflictError, ExchangeService
from skillswap.engines.negotiation.negotiation_service import NegotiationService
from skillswap.kernel.models.base import as_utc, enum_value, utcnow
from skillswap.kernel.models.event_log import EventLog, EventType
from skillswap.kernel.models.exchange import ExchangeRole, ExchangeStatus, ExchangeType


async def propose(session, initiator, recipient, skill, **overrides):
    kwargs = {
        "initiator": initiator,
        "recipient_supabase_id": recipient.supabase_id,
        "recipient_skill_id": skill.id,
        "exchange_type": ExchangeType.SKILL_FOR_SKILL,
        "initiator_offer": {},
        "recipient_offer": {},
    }
    kwargs.update(overrides)
    return await ExchangeService(session).create_exchange(**kwargs)


class TestCreateExchange:
    """Tests for ExchangeService.create_exchange."""

    @pytest.mark.asyncio
    async def test_creates_pending_exchange_with_offers(self, db_session, skill_exchange, alice_skill, bob_skill):
        exchange = skill_exchange

        assert enum_value(exchange.status) == "pending"
        assert exchange.reference.startswith("EXC-")
        assert exchange.initiator_offer.skill_title == alice_skill.title
        assert exchange.recipient_offer.skill_id == bob_skill.id
        assert exchange.recipient_offer.skill_title == bob_skill.title
        assert exchange.recipient_offer.description == "Four lessons"

        expected_expiry = utcnow() + timedelta(days=30)
        assert abs((as_utc(exchange.expires_at) - expected_expiry).total_seconds()) < 60

        await db_session.flush()
        logged = await db_session.execute(
            select(func.count(EventLog.id)).where(EventLog.event_type == EventType.EXCHANGE_CREATED)
        )
        assert logged.scalar() == 1

    @pytest.mark.asyncio
    async def test_rejects_self_exchange(self, db_session, bob, bob_skill):
        with pytest.raises(ValueError, match="yourself"):
            await propose(db_session, bob, bob, bob_skill)

    @pytest.mark.asyncio
    async def test_rejects_invalid_type(self, db_session, alice, bob, bob_skill):
        with pytest.raises(ValueError, match="Invalid exchange type"):
            await propose(db_session, alice, bob, bob_skill, exchange_type="skill_for_hugs")

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, db_session, alice, bob_skill):
        with pytest.raises(LookupError):
            await ExchangeService(db_session).create_exchange(
                initiator=alice,
                recipient_supabase_id="sub-nobody",
                recipient_skill_id=bob_skill.id,
                exchange_type="skill_for_skill",
                initiator_offer={},
                recipient_offer={},
            )

    @pytest.mark.asyncio
    async def test_skill_must_belong_to_recipient(self, db_session, alice, bob, alice_skill):
        with pytest.raises(ValueError, match="does not belong"):
            await propose(db_session, alice, bob, alice_skill)

    @pytest.mark.asyncio
    async def test_duplicate_active_exchange(self, db_session, skill_exchange, alice, bob, bob_skill):
        with pytest.raises(ExchangeConflictError):
            await propose(db_session, alice, bob, bob_skill)

    @pytest.mark.asyncio
    async def test_duplicate_in_reverse_direction(self, db_session, skill_exchange, alice, bob, alice_skill):
        # Bob now asks for the logo design Alice already offered him
        with pytest.raises(ExchangeConflictError):
            await propose(db_session, bob, alice, alice_skill)

    @pytest.mark.asyncio
    async def test_cancelled_exchange_does_not_block(self, db_session, skill_exchange, alice, bob, bob_skill):
        await ExchangeService(db_session).cancel(skill_exchange, alice)
        await db_session.flush()

        second = await propose(db_session, alice, bob, bob_skill)

        assert second.id != skill_exchange.id


class TestFindExchanges:
    """Tests for listing and lookup."""

    @pytest.mark.asyncio
    async def test_find_between_either_direction(self, db_session, skill_exchange, alice, bob, bob_skill, alice_skill):
        service = ExchangeService(db_session)

        assert [e.id for e in await service.find_between(alice, bob.supabase_id, bob_skill.id)] == [skill_exchange.id]
        assert [e.id for e in await service.find_between(bob, alice.supabase_id, alice_skill.id)] == [skill_exchange.id]

    @pytest.mark.asyncio
    async def test_find_between_other_skill(self, db_session, skill_exchange, alice, bob, make_skill):
        other = await make_skill(bob, "Piano lessons")

        assert await ExchangeService(db_session).find_between(alice, bob.supabase_id, other.id) == []

    @pytest.mark.asyncio
    async def test_list_for_user_with_status(self, db_session, skill_exchange, alice, bob, admin):
        service = ExchangeService(db_session)

        assert len(await service.list_for_user(bob)) == 1
        assert len(await service.list_for_user(bob, ExchangeStatus.PENDING)) == 1
        assert await service.list_for_user(bob, ExchangeStatus.COMPLETED) == []
        assert await service.list_for_user(admin) == []


class TestAcceptance:
    """Two-step acceptance after agreed terms."""

    @pytest.mark.asyncio
    async def test_accept_requires_agreed_terms(self, db_session, skill_exchange, alice):
        negotiation = await NegotiationService(db_session).get_or_create(skill_exchange, alice)

        with pytest.raises(ValueError, match="agreed by both parties"):
            await ExchangeService(db_session).accept(skill_exchange, alice, negotiation)

    @pytest.mark.asyncio
    async def test_accept_without_negotiation(self, db_session, skill_exchange, alice):
        with pytest.raises(ValueError):
            await ExchangeService(db_session).accept(skill_exchange, alice, None)

    @pytest.mark.asyncio
    async def test_both_sides_accept(self, db_session, skill_exchange, alice, bob, roles):
        negotiation_service = NegotiationService(db_session)
        negotiation = await negotiation_service.get_or_create(skill_exchange, alice)
        await negotiation_service.mark_agreement(negotiation, skill_exchange, roles(skill_exchange, alice), alice)
        await negotiation_service.mark_agreement(negotiation, skill_exchange, roles(skill_exchange, bob), bob)
        service = ExchangeService(db_session)

        await service.accept(skill_exchange, alice, negotiation)
        status = service.acceptance_status(skill_exchange)
        assert enum_value(skill_exchange.status) == "pending_acceptance"
        assert status["pending_side"] == "recipient"

        with pytest.raises(ValueError, match="already accepted"):
            await service.accept(skill_exchange, alice, negotiation)

        await service.accept(skill_exchange, bob, negotiation)
        assert enum_value(skill_exchange.status) == "accepted"
        assert skill_exchange.fully_accepted_at is not None
        assert service.acceptance_status(skill_exchange)["both_accepted"] is True

    @pytest.mark.asyncio
    async def test_cancel_after_acceptance(self, db_session, skill_exchange, bob, run_to_execution):
        await run_to_execution(skill_exchange)

        await ExchangeService(db_session).cancel(skill_exchange, bob)

        assert enum_value(skill_exchange.status) == "cancelled"


class TestStatusTransitions:
    """Tests for ExchangeService.update_status."""

    @pytest.mark.asyncio
    async def test_start_then_complete(self, db_session, skill_exchange, alice, bob, run_to_execution):
        negotiation = await run_to_execution(skill_exchange)
        service = ExchangeService(db_session)

        await service.update_status(skill_exchange, alice, ExchangeStatus.IN_PROGRESS, negotiation)
        assert enum_value(skill_exchange.status) == "in_progress"

        with pytest.raises(ValueError, match="every deliverable"):
            await service.update_status(skill_exchange, alice, ExchangeStatus.COMPLETED, negotiation)

        for item in negotiation.deliverables:
            item.completed = True
            item.confirmed_by = bob.id if enum_value(item.side) == "initiator" else alice.id
        await service.update_status(skill_exchange, bob, "completed", negotiation)

        assert enum_value(skill_exchange.status) == "completed"
        assert enum_value(negotiation.status) == "completed"
        assert (alice.successful_exchanges, bob.successful_exchanges) == (1, 1)

    @pytest.mark.asyncio
    async def test_in_progress_counts_as_active(self, db_session, skill_exchange, alice, bob, bob_skill, run_to_execution):
        negotiation = await run_to_execution(skill_exchange)
        await ExchangeService(db_session).update_status(skill_exchange, alice, ExchangeStatus.IN_PROGRESS, negotiation)
        await db_session.flush()

        with pytest.raises(ExchangeConflictError):
            await propose(db_session, alice, bob, bob_skill)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [ExchangeStatus.IN_PROGRESS, ExchangeStatus.COMPLETED, ExchangeStatus.ACCEPTED])
    async def test_rejected_before_acceptance(self, db_session, skill_exchange, alice, target):
        with pytest.raises(ValueError, match="Cannot change status from pending"):
            await ExchangeService(db_session).update_status(skill_exchange, alice, target)

    @pytest.mark.asyncio
    async def test_cancel_while_in_progress(self, db_session, skill_exchange, alice, run_to_execution):
        negotiation = await run_to_execution(skill_exchange)
        service = ExchangeService(db_session)
        await service.update_status(skill_exchange, alice, ExchangeStatus.IN_PROGRESS, negotiation)

        await service.update_status(skill_exchange, alice, ExchangeStatus.CANCELLED, negotiation)

        assert enum_value(skill_exchange.status) == "cancelled"
        with pytest.raises(ValueError, match="from cancelled"):
            await service.update_status(skill_exchange, alice, ExchangeStatus.IN_PROGRESS, negotiation)

    @pytest.mark.asyncio
    async def test_completed_is_final(self, db_session, skill_exchange, alice, bob, run_to_execution):
        negotiation = await run_to_execution(skill_exchange)
        service = NegotiationService(db_session)
        await service.set_completion(negotiation, skill_exchange, ExchangeRole.INITIATOR, 0, True, alice)
        await service.set_completion(negotiation, skill_exchange, ExchangeRole.RECIPIENT, 0, True, bob)
        await service.confirm_deliverable(negotiation, skill_exchange, ExchangeRole.RECIPIENT, 0, bob)
        await service.confirm_deliverable(negotiation, skill_exchange, ExchangeRole.INITIATOR, 0, alice)
        assert enum_value(skill_exchange.status) == "completed"

        with pytest.raises(ValueError, match="Cannot cancel"):
            await ExchangeService(db_session).cancel(skill_exchange, alice)


class TestExpiry:
    """Tests for expire_if_past_deadline."""

    @pytest.mark.asyncio
    async def test_past_deadline_expires(self, db_session, skill_exchange, alice):
        negotiation = await NegotiationService(db_session).get_or_create(skill_exchange, alice)
        negotiation.deadline = utcnow() - timedelta(days=1)
        service = ExchangeService(db_session)

        assert await service.expire_if_past_deadline(skill_exchange, negotiation) is True
        assert enum_value(skill_exchange.status) == "expired"
        assert await service.expire_if_past_deadline(skill_exchange, negotiation) is False

    @pytest.mark.asyncio
    async def test_future_deadline_untouched(self, db_session, skill_exchange, alice):
        negotiation = await NegotiationService(db_session).get_or_create(skill_exchange, alice)
        negotiation.deadline = utcnow() + timedelta(days=1)

        assert await ExchangeService(db_session).expire_if_past_deadline(skill_exchange, negotiation) is False
        assert enum_value(skill_exchange.status) == "negotiating"

    @pytest.mark.asyncio
    async def test_no_deadline(self, db_session, skill_exchange):
        assert await ExchangeService(db_session).expire_if_past_deadline(skill_exchange, None) is False
