"""Sweep use case: resolves expired offers across all interventions."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from src.application.interfaces.repositories import DispatchAttemptRepositoryInterface
from src.application.services.assignment_state_machine import AssignmentStateMachine
from src.config.logging import get_logger
from src.domain.value_objects.timestamps import utc_now

logger = get_logger(__name__)


@dataclass
class SweepResult:
    """Result of a timeout sweep."""

    processed: int = 0
    failed: int = 0
    results: List[Dict[str, Any]] = field(default_factory=list)
    processing_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "results": self.results,
            "processing_time": self.processing_time,
        }


class SweepDispatchTimeoutsUseCase:
    """Use case for the periodic check of expired dispatch offers."""

    def __init__(
        self,
        attempt_repository: DispatchAttemptRepositoryInterface,
        state_machine: AssignmentStateMachine,
        batch_size: int = 100,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.attempt_repository = attempt_repository
        self.state_machine = state_machine
        self.batch_size = batch_size
        self.clock = clock or utc_now

    async def execute(self) -> SweepResult:
        """Run check_timeout for every intervention holding an expired offer."""
        start_time = datetime.now(timezone.utc)
        result = SweepResult()

        intervention_ids = (
            await self.attempt_repository.find_interventions_with_expired_offers(
                self.clock(), self.batch_size
            )
        )

        if not intervention_ids:
            logger.debug("No expired dispatch offers found")
            return result

        logger.info(
            "Processing expired dispatch offers", interventions=len(intervention_ids)
        )

        for intervention_id in intervention_ids:
            try:
                outcome = await self.state_machine.check_timeout(intervention_id)
                result.processed += 1
                result.results.append(outcome.to_dict())
            except Exception as e:
                # One broken intervention must not stall the others
                result.failed += 1
                result.results.append(
                    {
                        "success": False,
                        "intervention_id": str(intervention_id),
                        "message": str(e),
                    }
                )
                logger.error(
                    "Timeout check failed",
                    intervention_id=str(intervention_id),
                    error=str(e),
                    exc_info=True,
                )

        result.processing_time = (
            datetime.now(timezone.utc) - start_time
        ).total_seconds()

        logger.info(
            "Timeout sweep completed",
            processed=result.processed,
            failed=result.failed,
            processing_time=result.processing_time,
        )
        return result
