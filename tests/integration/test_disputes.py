"""
Disputes over deliverables and their resolution by an admin.
"""

import pytest

from skillswap.engines.disputes.dispute_service import DisputeService
from skillswap.engines.negotiation.negotiation_service import NegotiationService
from skillswap.kernel.models.base import enum_value
from skillswap.kernel.models.exchange import ExchangeRole


@pytest.fixture
def delivered(db_session, skill_exchange, alice, bob, run_to_execution):
    """Both sides have marked their single deliverable complete."""

    async def _setup():
        negotiation = await run_to_execution(skill_exchange)
        service = NegotiationService(db_session)
        await service.set_completion(negotiation, skill_exchange, ExchangeRole.INITIATOR, 0, True, alice)
        await service.set_completion(negotiation, skill_exchange, ExchangeRole.RECIPIENT, 0, True, bob)
        return negotiation

    return _setup


class TestRaiseDispute:
    """Tests for DisputeService.raise_dispute."""

    @pytest.mark.asyncio
    async def test_flags_deliverable_and_exchange(self, db_session, skill_exchange, alice, delivered):
        negotiation = await delivered()

        dispute = await DisputeService(db_session).raise_dispute(
            skill_exchange, negotiation, alice, ExchangeRole.INITIATOR, 0, "Only one lesson happened",
        )

        contested = negotiation.deliverables_for(ExchangeRole.RECIPIENT)[0]
        assert contested.dispute_raised is True
        assert contested.dispute_reason == "Only one lesson happened"
        assert skill_exchange.has_dispute is True
        assert dispute.reference.startswith("DISP-")
        assert enum_value(dispute.deliverable_side) == "recipient"
        assert dispute.deliverable_position == 0
        assert 'deliverable: "Lesson 1"' in dispute.description
        assert "User Role: initiator" in dispute.evidence

    @pytest.mark.asyncio
    async def test_reason_required(self, db_session, skill_exchange, alice, delivered):
        negotiation = await delivered()

        with pytest.raises(ValueError, match="reason required"):
            await DisputeService(db_session).raise_dispute(
                skill_exchange, negotiation, alice, ExchangeRole.INITIATOR, 0, "   ",
            )

    @pytest.mark.asyncio
    async def test_cannot_dispute_twice_or_confirm_disputed(self, db_session, skill_exchange, alice, delivered):
        negotiation = await delivered()
        service = DisputeService(db_session)
        await service.raise_dispute(skill_exchange, negotiation, alice, ExchangeRole.INITIATOR, 0, "Late")

        with pytest.raises(ValueError, match="already disputed"):
            await service.raise_dispute(skill_exchange, negotiation, alice, ExchangeRole.INITIATOR, 0, "Late")
        with pytest.raises(ValueError, match="disputed deliverable"):
            await NegotiationService(db_session).confirm_deliverable(
                negotiation, skill_exchange, ExchangeRole.INITIATOR, 0, alice,
            )

    @pytest.mark.asyncio
    async def test_cannot_dispute_confirmed(self, db_session, skill_exchange, alice, bob, delivered):
        negotiation = await delivered()
        await NegotiationService(db_session).confirm_deliverable(
            negotiation, skill_exchange, ExchangeRole.INITIATOR, 0, alice,
        )

        with pytest.raises(ValueError, match="confirmed deliverable"):
            await DisputeService(db_session).raise_dispute(
                skill_exchange, negotiation, alice, ExchangeRole.INITIATOR, 0, "Changed my mind",
            )


class TestListDisputes:
    """Tests for list_for_user and list_all."""

    @pytest.mark.asyncio
    async def test_views_from_both_sides(self, db_session, skill_exchange, alice, bob, admin, delivered):
        negotiation = await delivered()
        service = DisputeService(db_session)
        await service.raise_dispute(skill_exchange, negotiation, alice, ExchangeRole.INITIATOR, 0, "Late")

        items, total, stats = await service.list_for_user(bob)
        assert total == 1
        assert stats["received"] == 1
        assert stats["raised"] == 0
        assert stats["open"] == 1
        metadata = items[0]["metadata"]
        assert metadata["is_raised_by_user"] is False
        assert metadata["user_role"] == "recipient"
        assert metadata["other_party"] == "Alice"
        assert metadata["exchange_title"] == "Logo design ↔ Guitar lessons"

        _, _, alice_stats = await service.list_for_user(alice)
        assert alice_stats["raised"] == 1
        assert alice_stats["total"] == 1

        _, outsider_total, _ = await service.list_for_user(admin)
        assert outsider_total == 0

        disputes, all_total = await service.list_all(status="open")
        assert all_total == 1
        assert disputes[0].raised_by == alice.id
        assert (await service.list_all(status="resolved"))[1] == 0


class TestResolveDispute:
    """Tests for DisputeService.resolve."""

    @pytest.mark.asyncio
    async def test_resolution_confirms_and_completes(self, db_session, skill_exchange, alice, bob, admin, delivered):
        negotiation = await delivered()
        service = DisputeService(db_session)
        dispute = await service.raise_dispute(skill_exchange, negotiation, alice, ExchangeRole.INITIATOR, 0, "Late")
        await NegotiationService(db_session).confirm_deliverable(
            negotiation, skill_exchange, ExchangeRole.RECIPIENT, 0, bob,
        )

        dispute, has_open = await service.resolve(dispute, admin, "Delivered", "Lesson log shows attendance")

        contested = negotiation.deliverables_for(ExchangeRole.RECIPIENT)[0]
        assert has_open is False
        assert enum_value(dispute.status) == "resolved"
        assert dispute.resolved_by == admin.id
        assert contested.confirmed_by == admin.id
        assert contested.dispute_raised is False
        assert skill_exchange.has_dispute is False
        assert enum_value(skill_exchange.status) == "completed"
        assert admin.disputes_handled == 1
        assert admin.last_admin_activity is not None
        assert alice.successful_exchanges == 1

    @pytest.mark.asyncio
    async def test_resolve_twice(self, db_session, skill_exchange, alice, admin, delivered):
        negotiation = await delivered()
        service = DisputeService(db_session)
        dispute = await service.raise_dispute(skill_exchange, negotiation, alice, ExchangeRole.INITIATOR, 0, "Late")
        await service.resolve(dispute, admin, "Delivered", "Checked")

        with pytest.raises(ValueError, match="already resolved"):
            await service.resolve(dispute, admin, "Delivered", "Checked")

    @pytest.mark.asyncio
    async def test_decision_and_reasoning_required(self, db_session, skill_exchange, alice, admin, delivered):
        negotiation = await delivered()
        service = DisputeService(db_session)
        dispute = await service.raise_dispute(skill_exchange, negotiation, alice, ExchangeRole.INITIATOR, 0, "Late")

        with pytest.raises(ValueError, match="required"):
            await service.resolve(dispute, admin, "Delivered", "  ")
