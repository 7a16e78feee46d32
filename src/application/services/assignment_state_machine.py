"""
Assignment state machine: technician actions against an in-flight round.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from src.application.interfaces.repositories import (
    DispatchAttemptRepositoryInterface,
    ExclusionRepositoryInterface,
    InterventionRepositoryInterface,
)
from src.application.interfaces.services import TransactionServiceInterface
from src.application.services.dispatch_orchestrator import DispatchOrchestrator
from src.application.services.dispatch_policy import DispatchPolicy
from src.application.services.dispatch_results import ActionResult
from src.application.services.offer_notifier import OfferNotifier
from src.config.logging import get_logger
from src.domain.entities.dispatch_attempt import DispatchAttempt
from src.domain.entities.exclusion_record import ExclusionRecord
from src.domain.entities.intervention import Intervention
from src.domain.value_objects.attempt_status import AttemptStatus
from src.domain.value_objects.exclusion_kind import ExclusionKind
from src.domain.value_objects.intervention_status import InterventionStatus
from src.domain.value_objects.timestamps import utc_now
from src.infrastructure.monitoring.metrics import (
    record_acceptance,
    record_assignment_action,
    record_offer_timeouts,
)

logger = get_logger(__name__)

DEFAULT_REASON = "No reason provided"
ASSIGNMENT_LOST = "Assignment lost: another technician accepted first"
OFFER_WITHDRAWN = "Offer is no longer pending"
NOT_ASSIGNED_TO_TECHNICIAN = "Intervention is not assigned to this technician"

_ACCEPTED_STATUSES = (
    InterventionStatus.ON_ROUTE,
    InterventionStatus.ARRIVED,
    InterventionStatus.IN_PROGRESS,
)


@dataclass
class _Reassignment:
    """What reassign-to-next decided inside the transaction."""

    outcome: str
    attempt: Optional[DispatchAttempt] = None
    timeout_at: Optional[datetime] = None


class AssignmentStateMachine:
    """
    Handles accept, reject, decline, cancel, go, timeout and field progress.

    Every transition is a guarded repository mutation. A failed guard comes
    back as ActionResult(success=False), never as an exception.
    """

    def __init__(
        self,
        intervention_repository: InterventionRepositoryInterface,
        attempt_repository: DispatchAttemptRepositoryInterface,
        exclusion_repository: ExclusionRepositoryInterface,
        orchestrator: DispatchOrchestrator,
        transaction_service: TransactionServiceInterface,
        notifier: OfferNotifier,
        policy: Optional[DispatchPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.intervention_repository = intervention_repository
        self.attempt_repository = attempt_repository
        self.exclusion_repository = exclusion_repository
        self.orchestrator = orchestrator
        self.transaction_service = transaction_service
        self.notifier = notifier
        self.policy = policy or DispatchPolicy()
        self.clock = clock or utc_now
        self.logger = logger

    # Acceptance

    async def accept(self, intervention_id: UUID, technician_id: UUID) -> ActionResult:
        """Accept a pending offer. Exactly one technician per round can win."""
        result = await self._claim(intervention_id, technician_id, "Assignment accepted")
        return self._finish("accept", result)

    async def go(self, intervention_id: UUID, technician_id: UUID) -> ActionResult:
        """Self-assignment fast path: claim and head out in one step."""
        result = await self._claim(
            intervention_id, technician_id, "En route to intervention"
        )
        return self._finish("go", result)

    async def _claim(
        self, intervention_id: UUID, technician_id: UUID, success_message: str
    ) -> ActionResult:
        intervention = await self.orchestrator.load_intervention(intervention_id)

        self.logger.info(
            "Technician claiming intervention",
            intervention_id=str(intervention_id),
            technician_id=str(technician_id),
        )

        # Repeated claim by the winner replays the original outcome
        if (
            intervention.is_held_by(technician_id)
            and intervention.status in _ACCEPTED_STATUSES
        ):
            return ActionResult(
                success=True,
                message=success_message,
                intervention_id=intervention.id,
                technician_id=technician_id,
                status=intervention.status.value,
                response_time_seconds=intervention.response_time_seconds,
            )

        if intervention.status.is_final():
            return self._rejected(
                intervention, f"Intervention is {intervention.status.value}"
            )

        if intervention.is_assigned() and not intervention.is_held_by(technician_id):
            if intervention.status in _ACCEPTED_STATUSES:
                return self._rejected(intervention, ASSIGNMENT_LOST)

        attempt = await self.attempt_repository.get_latest_for_technician(
            intervention_id, technician_id
        )
        if attempt is None:
            return self._rejected(intervention, "No offer found for this technician")
        if attempt.is_standby:
            return self._rejected(
                intervention, "Offer has not been sent to this technician yet"
            )
        if not attempt.is_open_offer:
            return self._rejected(
                intervention, f"{OFFER_WITHDRAWN} (status: {attempt.status.value})"
            )

        now = self.clock()
        response_time_seconds = intervention.response_time_at(now)
        siblings = [
            other.technician_id
            for other in await self.attempt_repository.get_by_intervention(intervention_id)
            if other.is_open_offer and other.id != attempt.id
        ]

        async def operation():
            await self.intervention_repository.lock_for_update(intervention_id)
            return await self.attempt_repository.try_claim(
                attempt.id, intervention_id, technician_id, now, response_time_seconds
            )

        claimed = await self.transaction_service.execute_in_transaction(operation)

        if not claimed:
            current = await self.orchestrator.load_intervention(intervention_id)
            lost = (
                current.is_assigned()
                and not current.is_held_by(technician_id)
                and current.status in _ACCEPTED_STATUSES
            )
            self.logger.info(
                "Claim lost" if lost else "Claim refused, offer withdrawn",
                intervention_id=str(intervention_id),
                technician_id=str(technician_id),
            )
            return self._rejected(current, ASSIGNMENT_LOST if lost else OFFER_WITHDRAWN)

        await self.notifier.revoke(intervention_id, siblings)
        record_acceptance(response_time_seconds)

        return ActionResult(
            success=True,
            message=success_message,
            intervention_id=intervention_id,
            technician_id=technician_id,
            status=InterventionStatus.ON_ROUTE.value,
            response_time_seconds=response_time_seconds,
        )

    # Refusal

    async def reject(self, intervention_id: UUID, technician_id: UUID) -> ActionResult:
        """Refuse a pending offer and move on to the next technician."""
        result = await self._refuse(intervention_id, technician_id, reason=None)
        return self._finish("reject", result)

    async def decline(
        self, intervention_id: UUID, technician_id: UUID, reason: Optional[str] = None
    ) -> ActionResult:
        """Refuse a pending offer and never be offered this intervention again."""
        result = await self._refuse(
            intervention_id, technician_id, reason=_reason_or_default(reason)
        )
        return self._finish("decline", result)

    async def _refuse(
        self, intervention_id: UUID, technician_id: UUID, reason: Optional[str]
    ) -> ActionResult:
        intervention = await self.orchestrator.load_intervention(intervention_id)

        self.logger.info(
            "Technician refusing offer",
            intervention_id=str(intervention_id),
            technician_id=str(technician_id),
            permanent=reason is not None,
            reason=reason,
        )

        attempt = await self.attempt_repository.get_latest_for_technician(
            intervention_id, technician_id
        )
        if attempt is None or not attempt.is_open_offer:
            return self._rejected(intervention, "No pending offer for this technician")

        now = self.clock()

        async def operation():
            await self.intervention_repository.lock_for_update(intervention_id)
            if not await self.attempt_repository.mark_responded(
                attempt.id, AttemptStatus.REJECTED, now
            ):
                return None
            if reason is not None:
                await self.exclusion_repository.add(
                    ExclusionRecord(
                        intervention_id=intervention_id,
                        technician_id=technician_id,
                        kind=ExclusionKind.DECLINED,
                        reason=reason,
                        created_at=now,
                    )
                )
            return await self._reassign(intervention_id, now)

        reassignment = await self.transaction_service.execute_in_transaction(operation)
        if reassignment is None:
            return self._rejected(intervention, "No pending offer for this technician")

        result = await self._reassignment_result(intervention_id, reassignment)
        if reason is None:
            return result

        result.success = True
        result.message = "Intervention declined"
        return result

    # Abandon

    async def cancel(
        self, intervention_id: UUID, technician_id: UUID, reason: Optional[str] = None
    ) -> ActionResult:
        """
        Abandon an accepted intervention.

        The technician is excluded for good, the intervention goes to
        'to_reassign' and a brand-new dispatch round is started.
        """
        reason = _reason_or_default(reason)
        intervention = await self.orchestrator.load_intervention(intervention_id)

        self.logger.info(
            "Technician cancelling assignment",
            intervention_id=str(intervention_id),
            technician_id=str(technician_id),
            reason=reason,
        )

        if not (
            intervention.is_held_by(technician_id)
            and intervention.status.is_active_assignment()
        ):
            return self._finish(
                "cancel", self._rejected(intervention, NOT_ASSIGNED_TO_TECHNICIAN)
            )

        now = self.clock()

        async def operation():
            await self.intervention_repository.lock_for_update(intervention_id)
            if not await self.intervention_repository.release_technician(
                intervention_id, technician_id, now
            ):
                return None
            await self.exclusion_repository.add(
                ExclusionRecord(
                    intervention_id=intervention_id,
                    technician_id=technician_id,
                    kind=ExclusionKind.CANCELLED,
                    reason=reason,
                    created_at=now,
                )
            )
            return await self.attempt_repository.cancel_live(intervention_id, now)

        cancelled = await self.transaction_service.execute_in_transaction(operation)
        if cancelled is None:
            return self._finish(
                "cancel", self._rejected(intervention, NOT_ASSIGNED_TO_TECHNICIAN)
            )

        await self.notifier.revoke(
            intervention_id,
            [
                attempt.technician_id
                for attempt in cancelled
                if attempt.technician_id != technician_id and attempt.is_notified
            ],
        )

        self.logger.info(
            "Assignment cancelled, re-dispatching",
            intervention_id=str(intervention_id),
            technician_id=str(technician_id),
        )
        record_assignment_action("cancel", True)
        return await self.orchestrator.dispatch(intervention_id)

    # Timeouts

    async def check_timeout(self, intervention_id: UUID) -> ActionResult:
        """Expire elapsed offers and reassign. Safe to call repeatedly."""
        await self.orchestrator.load_intervention(intervention_id)
        now = self.clock()

        async def operation():
            await self.intervention_repository.lock_for_update(intervention_id)
            expired = await self.attempt_repository.mark_timed_out(intervention_id, now)
            if not expired:
                return expired, None
            return expired, await self._reassign(intervention_id, now)

        expired, reassignment = await self.transaction_service.execute_in_transaction(
            operation
        )

        if not expired:
            return self._finish(
                "check_timeout",
                ActionResult(
                    success=True,
                    message="No timeouts to process",
                    intervention_id=intervention_id,
                    timed_out_count=0,
                ),
            )

        self.logger.info(
            "Offers timed out",
            intervention_id=str(intervention_id),
            technician_ids=[str(attempt.technician_id) for attempt in expired],
        )
        record_offer_timeouts(len(expired))
        await self.notifier.revoke(
            intervention_id, [attempt.technician_id for attempt in expired]
        )

        result = await self._reassignment_result(intervention_id, reassignment)
        result.timed_out_count = len(expired)
        return self._finish("check_timeout", result)

    # Waterfall

    async def reassign_to_next(self, intervention_id: UUID) -> ActionResult:
        """Offer the intervention to the next standby technician, if any."""
        await self.orchestrator.load_intervention(intervention_id)
        now = self.clock()

        async def operation():
            await self.intervention_repository.lock_for_update(intervention_id)
            return await self._reassign(intervention_id, now)

        reassignment = await self.transaction_service.execute_in_transaction(operation)
        result = await self._reassignment_result(intervention_id, reassignment)
        return self._finish("reassign_to_next", result)

    async def _reassign(self, intervention_id: UUID, now: datetime) -> _Reassignment:
        """Runs inside the caller's transaction."""
        intervention = await self.intervention_repository.get_by_id(intervention_id)
        if intervention.status in _ACCEPTED_STATUSES or intervention.status.is_final():
            return _Reassignment(outcome="settled")

        if await self.attempt_repository.count_open_offers(intervention_id) > 0:
            return _Reassignment(outcome="round_open")

        # A failed guard means a concurrent accept settled the intervention
        attempt = await self.attempt_repository.next_standby(intervention_id)
        if attempt is not None:
            timeout_at = now + self.policy.offer_window
            if not await self.intervention_repository.assign_pending(
                intervention_id, attempt.technician_id, now
            ):
                return _Reassignment(outcome="settled")
            if not await self.attempt_repository.notify_standby(
                attempt.id, now, timeout_at
            ):
                return _Reassignment(outcome="settled")
            attempt.mark_notified(now, self.policy.offer_window)
            return _Reassignment(outcome="promoted", attempt=attempt, timeout_at=timeout_at)

        if not await self.intervention_repository.return_to_pool(intervention_id, now):
            return _Reassignment(outcome="settled")
        return _Reassignment(outcome="exhausted")

    async def _reassignment_result(
        self, intervention_id: UUID, reassignment: _Reassignment
    ) -> ActionResult:
        """Send post-commit notifications and describe the outcome."""
        intervention = await self.orchestrator.load_intervention(intervention_id)

        if reassignment.outcome == "settled":
            return ActionResult(
                success=True,
                message="Intervention already assigned",
                intervention_id=intervention_id,
                technician_id=intervention.technician_id,
                status=intervention.status.value,
            )

        if reassignment.outcome == "round_open":
            return ActionResult(
                success=True,
                message="Awaiting responses from notified technicians",
                intervention_id=intervention_id,
                status=intervention.status.value,
            )

        if reassignment.outcome == "promoted":
            next_technician = reassignment.attempt.technician_id
            await self.notifier.offer(
                intervention, [next_technician], reassignment.timeout_at
            )
            self.logger.info(
                "Reassigned to next technician",
                intervention_id=str(intervention_id),
                technician_id=str(next_technician),
                attempt_order=reassignment.attempt.attempt_order,
            )
            return ActionResult(
                success=True,
                message="Reassigned to next technician",
                intervention_id=intervention_id,
                technician_id=next_technician,
                status=InterventionStatus.ASSIGNED.value,
                round_number=reassignment.attempt.round_number,
                timeout_at=reassignment.timeout_at,
            )

        self.logger.warning(
            "No more technicians available",
            intervention_id=str(intervention_id),
        )
        await self.notifier.manual_assignment_required(intervention)
        return ActionResult(
            success=False,
            message="No more technicians available",
            intervention_id=intervention_id,
            status=InterventionStatus.NEW.value,
            requires_manual_assignment=True,
        )

    # Field progress

    async def advance(
        self,
        intervention_id: UUID,
        technician_id: UUID,
        target: InterventionStatus,
    ) -> ActionResult:
        """Move on_route -> arrived -> in_progress -> completed, one step at a time."""
        target = InterventionStatus(target)
        intervention = await self.orchestrator.load_intervention(intervention_id)

        if not intervention.is_held_by(technician_id):
            return self._finish(
                "advance", self._rejected(intervention, NOT_ASSIGNED_TO_TECHNICIAN)
            )

        expected = intervention.status.next_field_status()
        if expected is None or target != expected:
            return self._finish(
                "advance",
                self._rejected(
                    intervention,
                    f"Cannot move from {intervention.status.value} to {target.value}",
                ),
            )

        now = self.clock()
        advanced = await self.transaction_service.execute_in_transaction(
            lambda: self.intervention_repository.advance(
                intervention_id, technician_id, intervention.status, target, now
            )
        )
        if not advanced:
            current = await self.orchestrator.load_intervention(intervention_id)
            return self._finish(
                "advance",
                self._rejected(current, "Intervention status changed, retry"),
            )

        return self._finish(
            "advance",
            ActionResult(
                success=True,
                message=f"Intervention {target.value}",
                intervention_id=intervention_id,
                technician_id=technician_id,
                status=target.value,
            ),
        )

    # Helpers

    def _rejected(self, intervention: Intervention, message: str) -> ActionResult:
        return ActionResult(
            success=False,
            message=message,
            intervention_id=intervention.id,
            technician_id=intervention.technician_id,
            status=intervention.status.value,
        )

    def _finish(self, action: str, result: ActionResult) -> ActionResult:
        self.logger.info(
            "Assignment action completed",
            action=action,
            intervention_id=str(result.intervention_id),
            success=result.success,
            message=result.message,
        )
        record_assignment_action(action, result.success)
        return result


def _reason_or_default(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        return DEFAULT_REASON
    return reason.strip()
