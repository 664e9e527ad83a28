"""
Negotiation: role-gated edits, agreement, deliverables and completion.
"""

import pytest

from skillswap.engines.negotiation.negotiation_service import NegotiationService
from skillswap.kernel.models.base import enum_value
from skillswap.kernel.models.exchange import ExchangeRole


class TestOpenNegotiation:
    """Tests for get_or_create."""

    @pytest.mark.asyncio
    async def test_seeded_from_offers(self, db_session, skill_exchange, alice, alice_skill, bob_skill):
        negotiation = await NegotiationService(db_session).get_or_create(skill_exchange, alice)

        assert enum_value(negotiation.status) == "drafting"
        assert negotiation.initiator_description == "Two logo drafts"
        assert negotiation.initiator_skill_id == alice_skill.id
        assert negotiation.recipient_skill_id == bob_skill.id
        assert negotiation.payment_method == "none"
        assert enum_value(skill_exchange.status) == "negotiating"

    @pytest.mark.asyncio
    async def test_second_call_returns_same_session(self, db_session, skill_exchange, alice, bob):
        service = NegotiationService(db_session)
        first = await service.get_or_create(skill_exchange, alice)

        second = await service.get_or_create(skill_exchange, bob)

        assert first.id == second.id


class TestUpdateField:
    """Tests for role-gated term edits."""

    @pytest.mark.asyncio
    async def test_edit_resets_agreement(self, db_session, skill_exchange, alice, bob, roles):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(skill_exchange, alice)
        await service.mark_agreement(negotiation, skill_exchange, roles(skill_exchange, bob), bob)
        assert negotiation.recipient_agreed

        await service.update_field(negotiation, skill_exchange, roles(skill_exchange, alice), "hours", 6, alice)

        assert negotiation.initiator_hours == 6
        assert negotiation.recipient_hours == 0
        assert negotiation.total_hours == 6
        assert not negotiation.recipient_agreed
        assert negotiation.recipient_agreed_at is None
        assert enum_value(negotiation.status) == "negotiating"
        assert negotiation.last_modified_by == alice.supabase_id

    @pytest.mark.asyncio
    async def test_money_provider_cannot_edit_hours(self, db_session, money_exchange, alice, roles):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(money_exchange, alice)

        with pytest.raises(PermissionError, match="money_provider cannot edit hours"):
            await service.update_field(negotiation, money_exchange, roles(money_exchange, alice), "hours", 3, alice)

    @pytest.mark.asyncio
    async def test_money_provider_sets_price(self, db_session, money_exchange, alice, roles):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(money_exchange, alice)
        resolution = roles(money_exchange, alice)

        await service.update_field(negotiation, money_exchange, resolution, "amount", "120", alice)
        await service.update_field(negotiation, money_exchange, resolution, "currency", "EUR", alice)
        await service.update_field(negotiation, money_exchange, resolution, "payment_timeline", "upfront", alice)

        assert negotiation.amount == 120.0
        assert negotiation.currency == "EUR"
        assert negotiation.payment_method == "upfront"

    @pytest.mark.asyncio
    async def test_skill_provider_cannot_edit_amount(self, db_session, money_exchange, alice, bob, roles):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(money_exchange, alice)

        with pytest.raises(PermissionError):
            await service.update_field(negotiation, money_exchange, roles(money_exchange, bob), "amount", 10, bob)

    @pytest.mark.asyncio
    async def test_bad_values(self, db_session, skill_exchange, alice, roles):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(skill_exchange, alice)
        resolution = roles(skill_exchange, alice)

        with pytest.raises(ValueError):
            await service.update_field(negotiation, skill_exchange, resolution, "hours", 250, alice)
        with pytest.raises(ValueError):
            await service.update_field(negotiation, skill_exchange, resolution, "method", "carrier pigeon", alice)
        with pytest.raises(ValueError, match="description must be a string"):
            await service.update_field(negotiation, skill_exchange, resolution, "description", 123, alice)
        with pytest.raises(PermissionError):
            await service.update_field(negotiation, skill_exchange, resolution, "banana", 1, alice)

    @pytest.mark.asyncio
    async def test_only_initiator_changes_skill(self, db_session, skill_exchange, alice, bob, make_skill, roles):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(skill_exchange, alice)
        illustration = await make_skill(alice, "Illustration")

        with pytest.raises(PermissionError, match="Only the initiator"):
            await service.update_field(
                negotiation, skill_exchange, roles(skill_exchange, bob), "skill_id", str(illustration.id), bob,
            )

        await service.update_field(
            negotiation, skill_exchange, roles(skill_exchange, alice), "skill_id", str(illustration.id), alice,
        )
        assert negotiation.initiator_skill_id == illustration.id
        assert skill_exchange.initiator_offer.skill_title == "Illustration"

    @pytest.mark.asyncio
    async def test_unknown_skill_selection(self, db_session, skill_exchange, alice, roles):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(skill_exchange, alice)

        with pytest.raises(ValueError, match="Selected skill not found"):
            await service.update_field(
                negotiation, skill_exchange, roles(skill_exchange, alice), "skill_id", "not-a-uuid", alice,
            )

    @pytest.mark.asyncio
    async def test_deliverables_replaced_per_side(self, db_session, skill_exchange, alice, bob, roles):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(skill_exchange, alice)
        alice_roles = roles(skill_exchange, alice)

        await service.update_field(negotiation, skill_exchange, alice_roles, "deliverables", ["Sketches", "Final"], alice)
        await service.update_field(
            negotiation, skill_exchange, roles(skill_exchange, bob), "deliverables", [{"title": "Lesson"}], bob,
        )
        await service.update_field(negotiation, skill_exchange, alice_roles, "deliverables", ["Final only"], alice)

        assert [d.title for d in negotiation.deliverables_for(ExchangeRole.INITIATOR)] == ["Final only"]
        assert [d.title for d in negotiation.deliverables_for(ExchangeRole.RECIPIENT)] == ["Lesson"]


class TestAgreement:
    """Tests for mark_agreement."""

    @pytest.mark.asyncio
    async def test_both_agree(self, db_session, skill_exchange, alice, bob, roles):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(skill_exchange, alice)

        await service.mark_agreement(negotiation, skill_exchange, roles(skill_exchange, alice), alice)
        assert enum_value(negotiation.status) == "drafting"

        await service.mark_agreement(negotiation, skill_exchange, roles(skill_exchange, bob), bob)
        assert enum_value(negotiation.status) == "agreed"
        assert enum_value(skill_exchange.status) == "pending_acceptance"
        assert skill_exchange.negotiation_completed is True

    @pytest.mark.asyncio
    async def test_double_agreement_rejected(self, db_session, skill_exchange, alice, roles):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(skill_exchange, alice)
        await service.mark_agreement(negotiation, skill_exchange, roles(skill_exchange, alice), alice)

        with pytest.raises(ValueError, match="already agreed"):
            await service.mark_agreement(negotiation, skill_exchange, roles(skill_exchange, alice), alice)

    @pytest.mark.asyncio
    async def test_no_edits_after_agreement(self, db_session, skill_exchange, alice, bob, roles):
        service = NegotiationService(db_session)
        negotiation = await service.get_or_create(skill_exchange, alice)
        await service.mark_agreement(negotiation, skill_exchange, roles(skill_exchange, alice), alice)
        await service.mark_agreement(negotiation, skill_exchange, roles(skill_exchange, bob), bob)

        with pytest.raises(ValueError, match="Cannot edit"):
            await service.update_field(negotiation, skill_exchange, roles(skill_exchange, alice), "hours", 2, alice)
        assert not service.can_edit(negotiation)


class TestDeliverables:
    """Completion, confirmation and closing the exchange."""

    @pytest.mark.asyncio
    async def test_start_execution(self, skill_exchange, run_to_execution):
        negotiation = await run_to_execution(skill_exchange)

        assert negotiation.execution_started_at is not None
        assert negotiation.contact_shared is True
        assert enum_value(skill_exchange.status) == "accepted"

    @pytest.mark.asyncio
    async def test_confirm_requires_completion(self, db_session, skill_exchange, bob, run_to_execution):
        negotiation = await run_to_execution(skill_exchange)

        with pytest.raises(ValueError, match="must be completed"):
            await NegotiationService(db_session).confirm_deliverable(
                negotiation, skill_exchange, ExchangeRole.RECIPIENT, 0, bob,
            )

    @pytest.mark.asyncio
    async def test_invalid_index(self, db_session, skill_exchange, alice, run_to_execution):
        negotiation = await run_to_execution(skill_exchange)

        with pytest.raises(ValueError, match="Invalid deliverable index"):
            await NegotiationService(db_session).set_completion(
                negotiation, skill_exchange, ExchangeRole.INITIATOR, 3, True, alice,
            )

    @pytest.mark.asyncio
    async def test_reopen_clears_completion(self, db_session, skill_exchange, alice, run_to_execution):
        negotiation = await run_to_execution(skill_exchange)
        service = NegotiationService(db_session)

        await service.set_completion(negotiation, skill_exchange, ExchangeRole.INITIATOR, 0, True, alice)
        item = await service.set_completion(negotiation, skill_exchange, ExchangeRole.INITIATOR, 0, False, alice)

        assert item.completed is False
        assert item.completed_at is None

    @pytest.mark.asyncio
    async def test_full_completion_counts_once(self, db_session, skill_exchange, alice, bob, run_to_execution):
        negotiation = await run_to_execution(skill_exchange)
        service = NegotiationService(db_session)

        await service.set_completion(negotiation, skill_exchange, ExchangeRole.INITIATOR, 0, True, alice)
        confirmed = await service.confirm_deliverable(negotiation, skill_exchange, ExchangeRole.RECIPIENT, 0, bob)
        assert confirmed.confirmed_by == bob.id
        assert enum_value(skill_exchange.status) == "accepted"

        with pytest.raises(ValueError, match="already confirmed"):
            await service.confirm_deliverable(negotiation, skill_exchange, ExchangeRole.RECIPIENT, 0, bob)

        await service.set_completion(negotiation, skill_exchange, ExchangeRole.RECIPIENT, 0, True, bob)
        await service.confirm_deliverable(negotiation, skill_exchange, ExchangeRole.INITIATOR, 0, alice)

        assert enum_value(negotiation.status) == "completed"
        assert enum_value(skill_exchange.status) == "completed"
        assert negotiation.stats_updated is True
        assert alice.successful_exchanges == 1
        assert bob.successful_exchanges == 1

        assert await service.complete_if_done(negotiation, skill_exchange) is False
        assert alice.successful_exchanges == 1

        report = service.progress_report(negotiation)
        assert report["overall"]["confirmed_percentage"] == 100
