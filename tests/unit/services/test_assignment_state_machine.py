"""
Unit tests for AssignmentStateMachine.
"""

import asyncio
from dataclasses import replace
from datetime import timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
import pytest_asyncio

from src.application.services.assignment_state_machine import (
    ASSIGNMENT_LOST,
    DEFAULT_REASON,
    OFFER_WITHDRAWN,
)
from src.application.services.dispatch_policy import DispatchPolicy
from src.domain.value_objects.attempt_status import AttemptStatus
from src.domain.value_objects.exclusion_kind import ExclusionKind
from src.domain.value_objects.intervention_status import InterventionStatus
from src.infrastructure.dispatch_factory import build_dispatch_engine


@pytest_asyncio.fixture
async def dispatched(orchestrator, five_plumbers, mock_sender):
    """Five plumbers after the first round; the three closest hold offers."""
    intervention, technicians = five_plumbers
    await orchestrator.dispatch(intervention.id)
    mock_sender.reset_mock()
    return intervention, technicians


def attempt_of(store, intervention_id, technician_id):
    return [
        attempt
        for attempt in store.attempts_for(intervention_id)
        if attempt.technician_id == technician_id
    ][-1]


class TestAccept:
    """Test accept and go."""

    @pytest.mark.asyncio
    async def test_accept_assigns_and_cancels_siblings(
        self, state_machine, store, dispatched, mock_sender
    ):
        intervention, technicians = dispatched
        winner = technicians[0]

        result = await state_machine.accept(intervention.id, winner.id)

        assert result.success is True
        assert result.message == "Assignment accepted"
        assert result.status == "on_route"
        assert result.response_time_seconds == 120

        stored = store.interventions[intervention.id]
        assert stored.status == InterventionStatus.ON_ROUTE
        assert stored.technician_id == winner.id
        assert stored.response_time_seconds == 120

        statuses = [a.status for a in store.attempts_for(intervention.id)]
        assert statuses == [
            AttemptStatus.ACCEPTED,
            AttemptStatus.CANCELLED,
            AttemptStatus.CANCELLED,
        ]
        mock_sender.revoke_offer.assert_awaited_once_with(
            intervention.id, [technicians[1].id, technicians[2].id]
        )

    @pytest.mark.asyncio
    async def test_second_accept_by_winner_replays_success(
        self, state_machine, store, dispatched
    ):
        intervention, technicians = dispatched
        first = await state_machine.accept(intervention.id, technicians[0].id)

        second = await state_machine.accept(intervention.id, technicians[0].id)

        assert second.success is True
        assert second.message == first.message
        assert second.response_time_seconds == first.response_time_seconds
        accepted = [
            a for a in store.attempts_for(intervention.id)
            if a.status == AttemptStatus.ACCEPTED
        ]
        assert len(accepted) == 1

    @pytest.mark.asyncio
    async def test_late_accept_loses(self, state_machine, store, dispatched):
        intervention, technicians = dispatched
        a, b = technicians[0], technicians[1]

        b_result = await state_machine.accept(intervention.id, b.id)
        a_result = await state_machine.accept(intervention.id, a.id)

        assert b_result.success is True
        assert a_result.success is False
        assert a_result.message == ASSIGNMENT_LOST
        assert store.interventions[intervention.id].technician_id == b.id
        assert attempt_of(store, intervention.id, a.id).status == AttemptStatus.CANCELLED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("contenders", [2, 3, 5])
    async def test_exactly_one_concurrent_accept_wins(
        self, repositories, store, five_plumbers, mock_sender, clock, contenders
    ):
        intervention, technicians = five_plumbers
        engine = build_dispatch_engine(
            repositories,
            policy=DispatchPolicy(top_k=contenders),
            sender=mock_sender,
            clock=clock,
        )
        await engine.orchestrator.dispatch(intervention.id)

        results = await asyncio.gather(
            *(
                engine.state_machine.accept(intervention.id, technician.id)
                for technician in technicians[:contenders]
            )
        )

        winners = [result for result in results if result.success]
        assert len(winners) == 1
        assert len(results) - len(winners) == contenders - 1

        accepted = [
            a for a in store.attempts_for(intervention.id)
            if a.status == AttemptStatus.ACCEPTED
        ]
        assert len(accepted) == 1
        assert store.interventions[intervention.id].technician_id == winners[0].technician_id
        assert not any(
            a.status == AttemptStatus.PENDING for a in store.attempts_for(intervention.id)
        )

    @pytest.mark.asyncio
    async def test_accept_without_offer(self, state_machine, dispatched):
        intervention, technicians = dispatched

        result = await state_machine.accept(intervention.id, technicians[4].id)

        assert result.success is False
        assert result.message == "No offer found for this technician"

    @pytest.mark.asyncio
    async def test_go_claims_and_heads_out(self, state_machine, store, dispatched):
        intervention, technicians = dispatched

        result = await state_machine.go(intervention.id, technicians[2].id)

        assert result.success is True
        assert result.message == "En route to intervention"
        assert store.interventions[intervention.id].status == InterventionStatus.ON_ROUTE

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_acceptance(
        self, state_machine, store, dispatched, mock_sender
    ):
        intervention, technicians = dispatched
        mock_sender.revoke_offer.side_effect = RuntimeError("gateway timeout")

        result = await state_machine.accept(intervention.id, technicians[0].id)

        assert result.success is True
        assert store.interventions[intervention.id].technician_id == technicians[0].id

    @pytest.mark.asyncio
    async def test_superseded_offer_is_withdrawn_not_lost(
        self, state_machine, orchestrator, store, dispatched
    ):
        intervention, technicians = dispatched
        stale = attempt_of(store, intervention.id, technicians[0].id)
        await orchestrator.dispatch(intervention.id)

        with patch.object(
            state_machine.attempt_repository,
            "get_latest_for_technician",
            AsyncMock(return_value=stale),
        ):
            result = await state_machine.accept(intervention.id, technicians[0].id)

        assert result.success is False
        assert result.message == OFFER_WITHDRAWN
        stored = store.interventions[intervention.id]
        assert stored.status == InterventionStatus.NEW
        assert stored.technician_id is None
        assert attempt_of(store, intervention.id, technicians[0].id).round_number == 2
        assert attempt_of(store, intervention.id, technicians[0].id).is_open_offer


class TestRejectAndDecline:
    """Test reject and decline."""

    @pytest.mark.asyncio
    async def test_reject_while_round_open(self, state_machine, store, dispatched):
        intervention, technicians = dispatched

        result = await state_machine.reject(intervention.id, technicians[0].id)

        assert result.success is True
        assert result.message == "Awaiting responses from notified technicians"
        assert attempt_of(store, intervention.id, technicians[0].id).status == (
            AttemptStatus.REJECTED
        )
        assert store.exclusions == []

    @pytest.mark.asyncio
    async def test_reject_by_all_returns_to_pool(
        self, state_machine, store, dispatched, mock_sender
    ):
        intervention, technicians = dispatched

        for technician in technicians[:2]:
            await state_machine.reject(intervention.id, technician.id)
        result = await state_machine.reject(intervention.id, technicians[2].id)

        assert result.success is False
        assert result.message == "No more technicians available"
        assert result.requires_manual_assignment is True
        stored = store.interventions[intervention.id]
        assert stored.status == InterventionStatus.NEW
        assert stored.requires_manual_assignment is True
        mock_sender.notify_manual_assignment_required.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reject_without_pending_offer(self, state_machine, dispatched):
        intervention, technicians = dispatched

        result = await state_machine.reject(intervention.id, technicians[3].id)

        assert result.success is False
        assert result.message == "No pending offer for this technician"

    @pytest.mark.asyncio
    async def test_decline_records_default_reason(self, state_machine, store, dispatched):
        intervention, technicians = dispatched

        result = await state_machine.decline(intervention.id, technicians[0].id, "  ")

        assert result.success is True
        assert result.message == "Intervention declined"
        (record,) = store.exclusions
        assert record.kind == ExclusionKind.DECLINED
        assert record.reason == DEFAULT_REASON

    @pytest.mark.asyncio
    async def test_all_decline_then_redispatch_excludes_them(
        self, state_machine, orchestrator, store, dispatched
    ):
        intervention, technicians = dispatched

        for technician in technicians[:3]:
            result = await state_machine.decline(
                intervention.id, technician.id, "Not my speciality"
            )

        assert result.success is True
        assert result.requires_manual_assignment is True
        stored = store.interventions[intervention.id]
        assert stored.status == InterventionStatus.NEW
        assert stored.technician_id is None
        assert stored.requires_manual_assignment is True
        assert len(store.exclusions) == 3

        redispatch = await orchestrator.dispatch(intervention.id)

        assert redispatch.success is True
        assert [c.technician_id for c in redispatch.notified] == [
            technicians[3].id,
            technicians[4].id,
        ]
        assert store.interventions[intervention.id].requires_manual_assignment is False


class TestRefusalRaces:
    """Test refusals interleaving with acceptance and with each other."""

    @pytest.mark.asyncio
    async def test_reject_overtaken_by_accept_reports_settled(
        self, state_machine, store, dispatched, clock, mock_sender
    ):
        intervention, technicians = dispatched
        await state_machine.reject(intervention.id, technicians[2].id)
        attempts = state_machine.attempt_repository
        winner = attempt_of(store, intervention.id, technicians[0].id)

        async def accepted_meanwhile(intervention_id):
            await attempts.try_claim(
                winner.id, intervention_id, technicians[0].id, clock(), 120
            )
            return 0

        with patch.object(attempts, "count_open_offers", new=accepted_meanwhile):
            result = await state_machine.reject(intervention.id, technicians[1].id)

        assert result.success is True
        assert result.message == "Intervention already assigned"
        assert result.technician_id == technicians[0].id
        assert result.requires_manual_assignment is False
        stored = store.interventions[intervention.id]
        assert stored.status == InterventionStatus.ON_ROUTE
        assert stored.technician_id == technicians[0].id
        assert stored.requires_manual_assignment is False
        mock_sender.notify_manual_assignment_required.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_standby_not_promoted_after_accept(
        self, repositories, store, five_plumbers, mock_sender, clock
    ):
        intervention, technicians = five_plumbers
        engine = build_dispatch_engine(
            repositories,
            policy=DispatchPolicy(standby_depth=2),
            sender=mock_sender,
            clock=clock,
        )
        machine = engine.state_machine
        await engine.orchestrator.dispatch(intervention.id)
        await machine.reject(intervention.id, technicians[2].id)
        mock_sender.reset_mock()
        attempts = machine.attempt_repository
        winner = attempt_of(store, intervention.id, technicians[0].id)

        async def accepted_meanwhile(intervention_id):
            await attempts.try_claim(
                winner.id, intervention_id, technicians[0].id, clock(), 120
            )
            return 0

        with patch.object(attempts, "count_open_offers", new=accepted_meanwhile):
            result = await machine.reject(intervention.id, technicians[1].id)

        assert result.success is True
        assert result.message == "Intervention already assigned"
        stored = store.interventions[intervention.id]
        assert stored.status == InterventionStatus.ON_ROUTE
        assert stored.technician_id == technicians[0].id
        assert attempt_of(store, intervention.id, technicians[3].id).notified_at is None
        mock_sender.send_offer.assert_not_awaited()
        mock_sender.notify_manual_assignment_required.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_reject_and_accept(
        self, state_machine, store, dispatched, mock_sender
    ):
        intervention, technicians = dispatched
        await state_machine.reject(intervention.id, technicians[2].id)

        rejected, accepted = await asyncio.gather(
            state_machine.reject(intervention.id, technicians[1].id),
            state_machine.accept(intervention.id, technicians[0].id),
        )

        assert accepted.success is True
        assert rejected.message != "No more technicians available"
        stored = store.interventions[intervention.id]
        assert stored.status == InterventionStatus.ON_ROUTE
        assert stored.technician_id == technicians[0].id
        assert stored.requires_manual_assignment is False
        mock_sender.notify_manual_assignment_required.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_last_rejects_exhaust_once(
        self, state_machine, store, dispatched, mock_sender
    ):
        intervention, technicians = dispatched
        await state_machine.reject(intervention.id, technicians[2].id)

        results = await asyncio.gather(
            state_machine.reject(intervention.id, technicians[0].id),
            state_machine.reject(intervention.id, technicians[1].id),
        )

        assert sorted(result.message for result in results) == [
            "Awaiting responses from notified technicians",
            "No more technicians available",
        ]
        stored = store.interventions[intervention.id]
        assert stored.status == InterventionStatus.NEW
        assert stored.technician_id is None
        assert stored.requires_manual_assignment is True
        mock_sender.notify_manual_assignment_required.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refusal_waits_for_row_lock(self, state_machine, store, dispatched):
        intervention, technicians = dispatched
        await store.lock_intervention(intervention.id)

        pending = asyncio.create_task(
            state_machine.reject(intervention.id, technicians[0].id)
        )
        for _ in range(10):
            await asyncio.sleep(0)

        assert not pending.done()
        assert attempt_of(store, intervention.id, technicians[0].id).is_open_offer

        store.release_row_locks()
        result = await pending

        assert result.message == "Awaiting responses from notified technicians"
        assert attempt_of(store, intervention.id, technicians[0].id).status == (
            AttemptStatus.REJECTED
        )


class TestCancel:
    """Test cancellation by the assigned technician."""

    @pytest.mark.asyncio
    async def test_cancel_redispatches_without_canceller(
        self, state_machine, store, dispatched
    ):
        intervention, technicians = dispatched
        await state_machine.accept(intervention.id, technicians[0].id)

        result = await state_machine.cancel(
            intervention.id, technicians[0].id, "Vehicle breakdown"
        )

        assert result.success is True
        assert result.round_number == 2
        assert [c.technician_id for c in result.notified] == [
            technician.id for technician in technicians[1:4]
        ]
        (record,) = store.exclusions
        assert record.kind == ExclusionKind.CANCELLED
        assert record.reason == "Vehicle breakdown"
        assert attempt_of(store, intervention.id, technicians[0].id).status == (
            AttemptStatus.CANCELLED
        )
        stored = store.interventions[intervention.id]
        assert stored.status == InterventionStatus.NEW
        assert stored.technician_id is None

    @pytest.mark.asyncio
    async def test_decliner_stays_excluded_after_cancel(
        self, state_machine, store, dispatched
    ):
        intervention, technicians = dispatched
        await state_machine.decline(intervention.id, technicians[1].id, "Too far")
        await state_machine.accept(intervention.id, technicians[0].id)

        result = await state_machine.cancel(intervention.id, technicians[0].id)

        notified = [c.technician_id for c in result.notified]
        assert technicians[0].id not in notified
        assert technicians[1].id not in notified
        assert notified == [technician.id for technician in technicians[2:5]]

    @pytest.mark.asyncio
    async def test_cancel_by_other_technician(self, state_machine, dispatched):
        intervention, technicians = dispatched
        await state_machine.accept(intervention.id, technicians[0].id)

        result = await state_machine.cancel(intervention.id, technicians[1].id)

        assert result.success is False
        assert result.message == "Intervention is not assigned to this technician"


class TestTimeouts:
    """Test check_timeout and the waterfall."""

    @pytest.mark.asyncio
    async def test_nothing_expired(self, state_machine, dispatched, clock):
        intervention, _ = dispatched
        clock.advance(minutes=4)

        result = await state_machine.check_timeout(intervention.id)

        assert result.success is True
        assert result.message == "No timeouts to process"
        assert result.timed_out_count == 0

    @pytest.mark.asyncio
    async def test_expired_offers_time_out(
        self, state_machine, store, dispatched, clock, mock_sender
    ):
        intervention, technicians = dispatched
        clock.advance(minutes=6)

        result = await state_machine.check_timeout(intervention.id)

        assert result.timed_out_count == 3
        assert result.success is False
        assert result.message == "No more technicians available"
        assert all(
            a.status == AttemptStatus.TIMEOUT for a in store.attempts_for(intervention.id)
        )
        mock_sender.revoke_offer.assert_awaited_once_with(
            intervention.id, [technician.id for technician in technicians[:3]]
        )

        again = await state_machine.check_timeout(intervention.id)
        assert again.message == "No timeouts to process"

    @pytest.mark.asyncio
    async def test_timeout_promotes_standby(
        self, repositories, store, five_plumbers, mock_sender, clock
    ):
        intervention, technicians = five_plumbers
        engine = build_dispatch_engine(
            repositories,
            policy=DispatchPolicy(standby_depth=2),
            sender=mock_sender,
            clock=clock,
        )
        await engine.orchestrator.dispatch(intervention.id)
        now = clock.advance(minutes=6)

        result = await engine.state_machine.check_timeout(intervention.id)

        assert result.success is True
        assert result.message == "Reassigned to next technician"
        assert result.technician_id == technicians[3].id
        assert result.timeout_at == now + timedelta(minutes=5)
        stored = store.interventions[intervention.id]
        assert stored.status == InterventionStatus.ASSIGNED
        assert stored.technician_id == technicians[3].id

        accepted = await engine.state_machine.accept(intervention.id, technicians[3].id)
        assert accepted.success is True
        assert store.interventions[intervention.id].status == InterventionStatus.ON_ROUTE

    @pytest.mark.asyncio
    async def test_waterfall_until_exhausted(
        self, repositories, store, five_plumbers, mock_sender, clock
    ):
        intervention, technicians = five_plumbers
        engine = build_dispatch_engine(
            repositories,
            policy=DispatchPolicy(standby_depth=2),
            sender=mock_sender,
            clock=clock,
        )
        machine = engine.state_machine
        await engine.orchestrator.dispatch(intervention.id)

        for technician in technicians[:2]:
            await machine.reject(intervention.id, technician.id)
        promoted = await machine.reject(intervention.id, technicians[2].id)
        assert promoted.technician_id == technicians[3].id

        promoted = await machine.reject(intervention.id, technicians[3].id)
        assert promoted.technician_id == technicians[4].id

        exhausted = await machine.reject(intervention.id, technicians[4].id)
        assert exhausted.success is False
        assert exhausted.requires_manual_assignment is True
        stored = store.interventions[intervention.id]
        assert stored.technician_id is None
        assert stored.requires_manual_assignment is True

    @pytest.mark.asyncio
    async def test_reassign_to_next_with_round_open(self, state_machine, dispatched):
        intervention, _ = dispatched

        result = await state_machine.reassign_to_next(intervention.id)

        assert result.message == "Awaiting responses from notified technicians"


class TestAdvance:
    """Test the on-site progression."""

    @pytest.mark.asyncio
    async def test_progression(self, state_machine, store, dispatched):
        intervention, technicians = dispatched
        technician_id = technicians[0].id
        await state_machine.accept(intervention.id, technician_id)

        for target in ("arrived", "in_progress", "completed"):
            result = await state_machine.advance(
                intervention.id, technician_id, InterventionStatus(target)
            )
            assert result.success is True
            assert result.status == target

        assert store.interventions[intervention.id].status == InterventionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_cannot_skip_steps(self, state_machine, dispatched):
        intervention, technicians = dispatched
        await state_machine.accept(intervention.id, technicians[0].id)

        result = await state_machine.advance(
            intervention.id, technicians[0].id, InterventionStatus.COMPLETED
        )

        assert result.success is False
        assert result.message == "Cannot move from on_route to completed"

    @pytest.mark.asyncio
    async def test_only_holder_can_advance(self, state_machine, dispatched):
        intervention, technicians = dispatched
        await state_machine.accept(intervention.id, technicians[0].id)

        result = await state_machine.advance(
            intervention.id, uuid4(), InterventionStatus.ARRIVED
        )

        assert result.success is False
        assert result.message == "Intervention is not assigned to this technician"
