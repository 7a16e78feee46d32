"""
Unit tests for DispatchOrchestrator.
"""

import asyncio
from dataclasses import replace
from datetime import timedelta
from uuid import uuid4

import pytest

from src.application.services.dispatch_policy import DispatchPolicy
from src.domain.entities.exclusion_record import ExclusionRecord
from src.domain.entities.intervention import Intervention
from src.domain.exceptions.dispatch_error import InterventionNotFoundError
from src.domain.exceptions.validation_error import MissingLocationError
from src.domain.value_objects.attempt_status import AttemptStatus
from src.domain.value_objects.exclusion_kind import ExclusionKind
from src.domain.value_objects.intervention_status import InterventionStatus
from src.infrastructure.dispatch_factory import build_dispatch_engine


class TestDispatch:
    """Test a dispatch round."""

    @pytest.mark.asyncio
    async def test_notifies_three_closest(
        self, orchestrator, store, five_plumbers, mock_sender, clock
    ):
        intervention, technicians = five_plumbers

        result = await orchestrator.dispatch(intervention.id)

        assert result.success is True
        assert result.message == "Intervention dispatched to top 3 technicians"
        assert result.round_number == 1
        assert result.total_candidates == 5
        assert result.standby_count == 0
        assert result.timeout_at == clock.now + timedelta(minutes=5)
        assert [c.technician_id for c in result.notified] == [
            technician.id for technician in technicians[:3]
        ]
        assert [c.attempt_order for c in result.notified] == [1, 2, 3]

        attempts = store.attempts_for(intervention.id)
        assert len(attempts) == 3
        assert all(attempt.is_open_offer for attempt in attempts)
        assert round(attempts[0].score_breakdown["proximity"]) == 98

        stored = store.interventions[intervention.id]
        assert stored.status == InterventionStatus.NEW
        assert stored.technician_id is None

        mock_sender.send_offer.assert_awaited_once()
        _, notified_ids, timeout_at = mock_sender.send_offer.await_args.args
        assert notified_ids == [technician.id for technician in technicians[:3]]
        assert timeout_at == result.timeout_at

    @pytest.mark.asyncio
    @pytest.mark.parametrize("eligible", [1, 2, 3, 5])
    async def test_pending_attempts_equal_min_three_eligible(
        self, orchestrator, store, make_technician, make_intervention, eligible
    ):
        for km in range(1, eligible + 1):
            store.add_technician(make_technician(km))
        intervention = make_intervention()
        store.interventions[intervention.id] = intervention

        result = await orchestrator.dispatch(intervention.id)

        pending = [
            attempt
            for attempt in store.attempts_for(intervention.id)
            if attempt.status == AttemptStatus.PENDING
        ]
        assert len(pending) == min(3, eligible)
        assert len(result.notified) == min(3, eligible)

    @pytest.mark.asyncio
    async def test_already_assigned(self, orchestrator, store, mock_sender):
        technician_id = uuid4()
        intervention = Intervention(
            category="plumbing",
            latitude=0.0,
            longitude=0.0,
            status=InterventionStatus.ON_ROUTE,
            technician_id=technician_id,
        )
        store.interventions[intervention.id] = intervention

        result = await orchestrator.dispatch(intervention.id)

        assert result.success is False
        assert result.message == "Intervention already assigned"
        assert result.technician_id == technician_id
        assert store.attempts_for(intervention.id) == []
        mock_sender.send_offer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_final_status(self, orchestrator, store):
        intervention = Intervention(
            category="plumbing",
            latitude=0.0,
            longitude=0.0,
            status=InterventionStatus.CANCELLED,
        )
        store.interventions[intervention.id] = intervention

        result = await orchestrator.dispatch(intervention.id)

        assert result.success is False
        assert result.message == "Intervention is cancelled"

    @pytest.mark.asyncio
    async def test_unknown_intervention(self, orchestrator):
        with pytest.raises(InterventionNotFoundError):
            await orchestrator.dispatch(uuid4())

    @pytest.mark.asyncio
    async def test_missing_location(self, orchestrator, store):
        intervention = Intervention(category="plumbing")
        store.interventions[intervention.id] = intervention

        with pytest.raises(MissingLocationError):
            await orchestrator.dispatch(intervention.id)

    @pytest.mark.asyncio
    async def test_no_candidates(self, orchestrator, store, make_intervention, mock_sender):
        intervention = make_intervention()
        store.interventions[intervention.id] = intervention

        result = await orchestrator.dispatch(intervention.id)

        assert result.success is False
        assert result.message == "No available technicians"
        assert result.requires_manual_assignment is True
        assert result.total_candidates == 0
        assert store.interventions[intervention.id].status == InterventionStatus.NEW
        mock_sender.notify_manual_assignment_required.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redispatch_supersedes_previous_round(
        self, orchestrator, store, five_plumbers, mock_sender
    ):
        intervention, technicians = five_plumbers
        await orchestrator.dispatch(intervention.id)

        result = await orchestrator.dispatch(intervention.id)

        assert result.round_number == 2
        first_round = [a for a in store.attempts_for(intervention.id) if a.round_number == 1]
        assert all(a.status == AttemptStatus.CANCELLED for a in first_round)
        second_round = [a for a in store.attempts_for(intervention.id) if a.round_number == 2]
        assert all(a.is_open_offer for a in second_round)

        mock_sender.revoke_offer.assert_awaited_once_with(
            intervention.id, [technician.id for technician in technicians[:3]]
        )

    @pytest.mark.asyncio
    async def test_excluded_technicians_are_skipped(
        self, orchestrator, store, five_plumbers
    ):
        intervention, technicians = five_plumbers
        store.exclusions.append(
            ExclusionRecord(
                intervention_id=intervention.id,
                technician_id=technicians[0].id,
                kind=ExclusionKind.DECLINED,
                reason="Too far",
            )
        )

        result = await orchestrator.dispatch(intervention.id)

        assert [c.technician_id for c in result.notified] == [
            technician.id for technician in technicians[1:4]
        ]
        assert result.total_candidates == 4

    @pytest.mark.asyncio
    async def test_standby_candidates_are_not_notified(
        self, repositories, store, five_plumbers, mock_sender, clock
    ):
        intervention, technicians = five_plumbers
        engine = build_dispatch_engine(
            repositories,
            policy=DispatchPolicy(standby_depth=1),
            sender=mock_sender,
            clock=clock,
        )

        result = await engine.orchestrator.dispatch(intervention.id)

        assert result.standby_count == 1
        attempts = store.attempts_for(intervention.id)
        assert len(attempts) == 4
        assert attempts[3].technician_id == technicians[3].id
        assert attempts[3].is_standby

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_round(
        self, orchestrator, store, five_plumbers, mock_sender
    ):
        intervention, _ = five_plumbers
        mock_sender.send_offer.side_effect = ConnectionError("push gateway down")

        result = await orchestrator.dispatch(intervention.id)

        assert result.success is True
        assert len(store.attempts_for(intervention.id)) == 3


class TestConcurrentDispatch:
    """Test dispatch rounds racing each other and acceptance."""

    @pytest.mark.asyncio
    async def test_concurrent_dispatches_leave_one_live_round(
        self, orchestrator, store, five_plumbers
    ):
        intervention, _ = five_plumbers

        results = await asyncio.gather(
            orchestrator.dispatch(intervention.id),
            orchestrator.dispatch(intervention.id),
        )

        assert all(result.success for result in results)
        assert sorted(result.round_number for result in results) == [1, 2]

        attempts = store.attempts_for(intervention.id)
        pending = [a for a in attempts if a.status == AttemptStatus.PENDING]
        assert len(pending) == 3
        assert {a.round_number for a in pending} == {2}
        assert len({a.technician_id for a in pending}) == 3
        assert all(
            a.status == AttemptStatus.CANCELLED for a in attempts if a.round_number == 1
        )

    @pytest.mark.asyncio
    async def test_dispatch_waits_for_row_lock(
        self, orchestrator, store, five_plumbers, mock_sender
    ):
        intervention, technicians = five_plumbers
        await store.lock_intervention(intervention.id)

        pending = asyncio.create_task(orchestrator.dispatch(intervention.id))
        for _ in range(10):
            await asyncio.sleep(0)
        assert not pending.done()

        # Accepted while the round was queued behind the lock
        store.interventions[intervention.id] = replace(
            store.interventions[intervention.id],
            status=InterventionStatus.ON_ROUTE,
            technician_id=technicians[0].id,
        )
        store.release_row_locks()
        result = await pending

        assert result.success is False
        assert result.message == "Intervention already assigned"
        assert result.technician_id == technicians[0].id
        assert store.attempts_for(intervention.id) == []
        mock_sender.send_offer.assert_not_awaited()
