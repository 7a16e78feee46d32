"""
Dispatch orchestrator: runs one fan-out round for an intervention.
"""

from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from src.application.interfaces.repositories import (
    DispatchAttemptRepositoryInterface,
    ExclusionRepositoryInterface,
    InterventionRepositoryInterface,
)
from src.application.interfaces.services import TransactionServiceInterface
from src.application.services.candidate_filter import CandidateFilter
from src.application.services.dispatch_policy import DispatchPolicy
from src.application.services.dispatch_results import ActionResult, NotifiedCandidate
from src.application.services.offer_notifier import OfferNotifier
from src.application.services.technician_scorer import CandidateScore, TechnicianScorer
from src.config.logging import get_logger
from src.domain.entities.dispatch_attempt import DispatchAttempt
from src.domain.entities.intervention import Intervention
from src.domain.exceptions.dispatch_error import InterventionNotFoundError
from src.domain.exceptions.validation_error import MissingLocationError
from src.domain.value_objects.intervention_status import InterventionStatus
from src.domain.value_objects.timestamps import utc_now
from src.infrastructure.monitoring.metrics import record_dispatch_round

logger = get_logger(__name__)


class DispatchOrchestrator:
    """Filters, scores and offers an intervention to its top candidates."""

    def __init__(
        self,
        intervention_repository: InterventionRepositoryInterface,
        attempt_repository: DispatchAttemptRepositoryInterface,
        exclusion_repository: ExclusionRepositoryInterface,
        candidate_filter: CandidateFilter,
        scorer: TechnicianScorer,
        transaction_service: TransactionServiceInterface,
        notifier: OfferNotifier,
        policy: Optional[DispatchPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.intervention_repository = intervention_repository
        self.attempt_repository = attempt_repository
        self.exclusion_repository = exclusion_repository
        self.candidate_filter = candidate_filter
        self.scorer = scorer
        self.transaction_service = transaction_service
        self.notifier = notifier
        self.policy = policy or DispatchPolicy()
        self.clock = clock or utc_now
        self.logger = logger

    async def load_intervention(self, intervention_id: UUID) -> Intervention:
        intervention = await self.intervention_repository.get_by_id(intervention_id)
        if not intervention:
            raise InterventionNotFoundError(str(intervention_id))
        return intervention

    async def dispatch(self, intervention_id: UUID) -> ActionResult:
        """
        Run a dispatch round.

        Supersedes the previous round's pending offers, ranks eligible
        technicians and offers the intervention to the top K at once.
        The intervention stays unassigned until one of them accepts.

        Args:
            intervention_id: Intervention to dispatch

        Returns:
            ActionResult with the notified set, or success=False when the
            intervention is already taken or nobody is eligible

        Raises:
            InterventionNotFoundError: Unknown intervention
            MissingLocationError: Intervention was never geocoded
        """
        intervention = await self.load_intervention(intervention_id)

        self.logger.info(
            "Dispatching intervention",
            intervention_id=str(intervention_id),
            category=intervention.category,
            status=intervention.status.value,
        )

        unavailable = self._unavailable(intervention)
        if unavailable is not None:
            return unavailable

        origin = intervention.location
        if origin is None:
            raise MissingLocationError(str(intervention_id))

        now = self.clock()
        timeout_at = now + self.policy.offer_window
        state = {"superseded": []}

        async def run_round():
            current = await self.intervention_repository.lock_for_update(intervention.id)
            if current is None:
                raise InterventionNotFoundError(str(intervention.id))
            state["current"] = current
            if current.is_assigned() or current.status.is_final():
                return None

            state["superseded"] = await self.attempt_repository.supersede_pending(
                intervention.id, now
            )
            excluded_ids = await self.exclusion_repository.get_excluded_technician_ids(
                intervention.id
            )
            filter_result = await self.candidate_filter.find_candidates(
                current, excluded_ids
            )
            state["filter_result"] = filter_result
            if not filter_result.has_candidates:
                return None

            if not await self.intervention_repository.open_for_dispatch(
                intervention.id, now
            ):
                state["current"] = await self.intervention_repository.get_by_id(
                    intervention.id
                )
                state["refused"] = True
                return None

            ranked = self.scorer.rank(
                origin, intervention.category, filter_result.candidates
            )
            round_number = (
                await self.attempt_repository.get_latest_round_number(intervention.id)
                + 1
            )
            attempts = self._build_attempts(
                intervention.id, ranked, round_number, now, timeout_at
            )
            await self.attempt_repository.create_many(attempts)
            state["ranked"] = ranked
            return round_number

        round_number = await self.transaction_service.execute_in_transaction(run_round)

        superseded_ids = [
            attempt.technician_id
            for attempt in state["superseded"]
            if attempt.is_notified
        ]
        await self.notifier.revoke(intervention.id, superseded_ids)

        if round_number is None:
            # Taken or closed while this round waited for the lock
            current = state["current"]
            unavailable = self._unavailable(current)
            if unavailable is not None:
                return unavailable
            if state.get("refused"):
                record_dispatch_round("closed", 0)
                return ActionResult(
                    success=False,
                    message=f"Intervention is {current.status.value}",
                    intervention_id=intervention.id,
                    status=current.status.value,
                )

        filter_result = state["filter_result"]
        if round_number is None:
            self.logger.warning(
                "No available technicians for intervention",
                intervention_id=str(intervention.id),
                reason=filter_result.reason,
            )
            record_dispatch_round("no_candidates", 0)
            await self.notifier.manual_assignment_required(intervention)
            return ActionResult(
                success=False,
                message="No available technicians",
                intervention_id=intervention.id,
                status=intervention.status.value,
                total_candidates=0,
                requires_manual_assignment=True,
            )

        ranked: List[CandidateScore] = state["ranked"]
        offered = ranked[: self.policy.top_k]
        standby = ranked[self.policy.top_k : self.policy.top_k + self.policy.standby_depth]
        notified = [
            NotifiedCandidate.from_score(score, order)
            for order, score in enumerate(offered, start=1)
        ]

        intervention.status = InterventionStatus.NEW
        intervention.requires_manual_assignment = False
        await self.notifier.offer(
            intervention, [candidate.technician_id for candidate in notified], timeout_at
        )

        self.logger.info(
            "Intervention dispatched",
            intervention_id=str(intervention.id),
            round_number=round_number,
            notified=[str(candidate.technician_id) for candidate in notified],
            standby=len(standby),
            total_candidates=len(ranked),
        )
        record_dispatch_round("dispatched", len(ranked))

        return ActionResult(
            success=True,
            message=f"Intervention dispatched to top {len(notified)} technicians",
            intervention_id=intervention.id,
            status=InterventionStatus.NEW.value,
            round_number=round_number,
            notified=notified,
            standby_count=len(standby),
            total_candidates=len(ranked),
            timeout_at=timeout_at,
        )

    def _unavailable(self, intervention: Intervention) -> Optional[ActionResult]:
        """Refusal for an intervention that is already taken or closed."""
        if intervention.is_assigned():
            self.logger.info(
                "Intervention already assigned, skipping dispatch",
                intervention_id=str(intervention.id),
                technician_id=str(intervention.technician_id),
            )
            record_dispatch_round("already_assigned", 0)
            return ActionResult(
                success=False,
                message="Intervention already assigned",
                intervention_id=intervention.id,
                technician_id=intervention.technician_id,
                status=intervention.status.value,
            )

        if intervention.status.is_final():
            record_dispatch_round("closed", 0)
            return ActionResult(
                success=False,
                message=f"Intervention is {intervention.status.value}",
                intervention_id=intervention.id,
                status=intervention.status.value,
            )

        return None

    def _build_attempts(
        self,
        intervention_id: UUID,
        ranked: List[CandidateScore],
        round_number: int,
        now: datetime,
        timeout_at: datetime,
    ) -> List[DispatchAttempt]:
        """Notified attempts for the top K, standby attempts for the next ones."""
        limit = self.policy.top_k + self.policy.standby_depth
        attempts = []
        for order, score in enumerate(ranked[:limit], start=1):
            is_offered = order <= self.policy.top_k
            attempts.append(
                DispatchAttempt(
                    intervention_id=intervention_id,
                    technician_id=score.technician_id,
                    round_number=round_number,
                    attempt_order=order,
                    score=score.score,
                    score_breakdown=score.breakdown,
                    distance_km=score.distance_km,
                    estimated_travel_minutes=score.estimated_travel_minutes,
                    notified_at=now if is_offered else None,
                    timeout_at=timeout_at if is_offered else None,
                    created_at=now,
                )
            )
        return attempts
