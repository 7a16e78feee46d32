"""
In-memory repository implementations.
"""

from dataclasses import replace
from datetime import datetime
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set, TypeVar
from uuid import UUID

from src.application.interfaces.repositories import (
    DispatchAttemptRepositoryInterface,
    ExclusionRepositoryInterface,
    InterventionRepositoryInterface,
    RatingSourceInterface,
    TechnicianDirectoryInterface,
    WorkloadSourceInterface,
)
from src.application.interfaces.services import TransactionServiceInterface
from src.config.logging import get_logger
from src.domain.entities.dispatch_attempt import DispatchAttempt
from src.domain.entities.exclusion_record import ExclusionRecord
from src.domain.entities.intervention import Intervention
from src.domain.entities.technician import Technician
from src.domain.value_objects.attempt_status import AttemptStatus
from src.domain.value_objects.intervention_status import InterventionStatus
from src.infrastructure.memory.store import InMemoryStore, simulate_io

logger = get_logger(__name__)

T = TypeVar("T")

_RESERVABLE = (
    InterventionStatus.NEW,
    InterventionStatus.ASSIGNED,
    InterventionStatus.TO_REASSIGN,
)


class InMemoryInterventionRepository(InterventionRepositoryInterface):
    """Intervention repository over an InMemoryStore."""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def create(self, intervention: Intervention) -> Intervention:
        await simulate_io()
        self.store.interventions[intervention.id] = replace(intervention)
        return replace(intervention)

    async def get_by_id(self, intervention_id: UUID) -> Optional[Intervention]:
        await simulate_io()
        intervention = self.store.interventions.get(intervention_id)
        return replace(intervention) if intervention else None

    async def lock_for_update(self, intervention_id: UUID) -> Optional[Intervention]:
        await self.store.lock_intervention(intervention_id)
        return await self.get_by_id(intervention_id)

    async def open_for_dispatch(self, intervention_id: UUID, now: datetime) -> bool:
        return await self._guarded_update(
            intervention_id,
            lambda current: current.technician_id is None
            and current.status in (InterventionStatus.NEW, InterventionStatus.TO_REASSIGN),
            status=InterventionStatus.NEW,
            requires_manual_assignment=False,
            updated_at=now,
        )

    async def assign_pending(
        self, intervention_id: UUID, technician_id: UUID, now: datetime
    ) -> bool:
        return await self._guarded_update(
            intervention_id,
            lambda current: current.status in _RESERVABLE,
            technician_id=technician_id,
            status=InterventionStatus.ASSIGNED,
            requires_manual_assignment=False,
            updated_at=now,
        )

    async def return_to_pool(self, intervention_id: UUID, now: datetime) -> bool:
        return await self._guarded_update(
            intervention_id,
            lambda current: current.status in _RESERVABLE,
            technician_id=None,
            status=InterventionStatus.NEW,
            requires_manual_assignment=True,
            updated_at=now,
        )

    async def release_technician(
        self, intervention_id: UUID, technician_id: UUID, now: datetime
    ) -> bool:
        return await self._guarded_update(
            intervention_id,
            lambda current: current.technician_id == technician_id
            and current.status.is_active_assignment(),
            technician_id=None,
            status=InterventionStatus.TO_REASSIGN,
            updated_at=now,
        )

    async def advance(
        self,
        intervention_id: UUID,
        technician_id: UUID,
        from_status: InterventionStatus,
        to_status: InterventionStatus,
        now: datetime,
    ) -> bool:
        return await self._guarded_update(
            intervention_id,
            lambda current: current.technician_id == technician_id
            and current.status == from_status,
            status=to_status,
            updated_at=now,
        )

    async def _guarded_update(
        self, intervention_id: UUID, guard: Callable[[Intervention], bool], **values
    ) -> bool:
        await simulate_io()
        async with self.store.lock:
            current = self.store.interventions.get(intervention_id)
            if current is None or not guard(current):
                return False
            self.store.interventions[intervention_id] = replace(current, **values)
            return True


class InMemoryDispatchAttemptRepository(DispatchAttemptRepositoryInterface):
    """Attempt store over an InMemoryStore."""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def create_many(
        self, attempts: List[DispatchAttempt]
    ) -> List[DispatchAttempt]:
        await simulate_io()
        async with self.store.lock:
            for attempt in attempts:
                self.store.attempts[attempt.id] = replace(attempt)
        return [replace(attempt) for attempt in attempts]

    async def get_by_intervention(self, intervention_id: UUID) -> List[DispatchAttempt]:
        await simulate_io()
        return [replace(attempt) for attempt in self.store.attempts_for(intervention_id)]

    async def get_latest_round_number(self, intervention_id: UUID) -> int:
        await simulate_io()
        return max(
            (attempt.round_number for attempt in self.store.attempts_for(intervention_id)),
            default=0,
        )

    async def get_latest_for_technician(
        self, intervention_id: UUID, technician_id: UUID
    ) -> Optional[DispatchAttempt]:
        await simulate_io()
        offered = [
            attempt
            for attempt in self.store.attempts_for(intervention_id)
            if attempt.technician_id == technician_id
        ]
        return replace(offered[-1]) if offered else None

    async def supersede_pending(
        self, intervention_id: UUID, now: datetime
    ) -> List[DispatchAttempt]:
        return await self._close_matching(
            intervention_id,
            lambda attempt: attempt.status == AttemptStatus.PENDING,
            AttemptStatus.CANCELLED,
        )

    async def cancel_live(
        self, intervention_id: UUID, now: datetime
    ) -> List[DispatchAttempt]:
        return await self._close_matching(
            intervention_id,
            lambda attempt: attempt.status.is_live(),
            AttemptStatus.CANCELLED,
        )

    async def mark_timed_out(
        self, intervention_id: UUID, now: datetime
    ) -> List[DispatchAttempt]:
        return await self._close_matching(
            intervention_id,
            lambda attempt: attempt.has_expired(now),
            AttemptStatus.TIMEOUT,
        )

    async def mark_responded(
        self, attempt_id: UUID, status: AttemptStatus, now: datetime
    ) -> bool:
        await simulate_io()
        async with self.store.lock:
            attempt = self.store.attempts.get(attempt_id)
            if attempt is None or not attempt.is_open_offer:
                return False
            self.store.attempts[attempt_id] = replace(
                attempt, status=status, responded_at=now
            )
            return True

    async def try_claim(
        self,
        attempt_id: UUID,
        intervention_id: UUID,
        technician_id: UUID,
        now: datetime,
        response_time_seconds: int,
    ) -> bool:
        await simulate_io()
        async with self.store.lock:
            attempt = self.store.attempts.get(attempt_id)
            if attempt is None or not attempt.is_open_offer:
                return False

            intervention = self.store.interventions.get(intervention_id)
            if (
                intervention is None
                or not intervention.status.is_claimable()
                or intervention.technician_id not in (None, technician_id)
            ):
                self.store.attempts[attempt_id] = replace(
                    attempt, status=AttemptStatus.CANCELLED
                )
                return False

            self.store.attempts[attempt_id] = replace(
                attempt, status=AttemptStatus.ACCEPTED, responded_at=now
            )
            self.store.interventions[intervention_id] = replace(
                intervention,
                technician_id=technician_id,
                status=InterventionStatus.ON_ROUTE,
                accepted_at=now,
                response_time_seconds=response_time_seconds,
                requires_manual_assignment=False,
                updated_at=now,
            )
            for sibling in self.store.attempts_for(intervention_id):
                if sibling.id != attempt_id and sibling.status == AttemptStatus.PENDING:
                    self.store.attempts[sibling.id] = replace(
                        sibling, status=AttemptStatus.CANCELLED
                    )

        logger.info(
            "Intervention claimed",
            intervention_id=str(intervention_id),
            technician_id=str(technician_id),
        )
        return True

    async def count_open_offers(self, intervention_id: UUID) -> int:
        await simulate_io()
        return sum(
            1
            for attempt in self.store.attempts_for(intervention_id)
            if attempt.is_open_offer
        )

    async def next_standby(self, intervention_id: UUID) -> Optional[DispatchAttempt]:
        await simulate_io()
        standby = [
            attempt
            for attempt in self.store.attempts_for(intervention_id)
            if attempt.is_standby
        ]
        if not standby:
            return None
        latest_round = max(attempt.round_number for attempt in standby)
        return replace(
            min(
                (attempt for attempt in standby if attempt.round_number == latest_round),
                key=lambda attempt: attempt.attempt_order,
            )
        )

    async def notify_standby(
        self, attempt_id: UUID, now: datetime, timeout_at: datetime
    ) -> bool:
        await simulate_io()
        async with self.store.lock:
            attempt = self.store.attempts.get(attempt_id)
            if attempt is None or not attempt.is_standby:
                return False
            self.store.attempts[attempt_id] = replace(
                attempt, notified_at=now, timeout_at=timeout_at
            )
            return True

    async def find_interventions_with_expired_offers(
        self, now: datetime, limit: int = 100
    ) -> List[UUID]:
        await simulate_io()
        earliest: Dict[UUID, datetime] = {}
        for attempt in self.store.attempts.values():
            if attempt.has_expired(now):
                current = earliest.get(attempt.intervention_id)
                if current is None or attempt.timeout_at < current:
                    earliest[attempt.intervention_id] = attempt.timeout_at
        return sorted(earliest, key=earliest.get)[:limit]

    async def _close_matching(
        self,
        intervention_id: UUID,
        predicate: Callable[[DispatchAttempt], bool],
        new_status: AttemptStatus,
    ) -> List[DispatchAttempt]:
        await simulate_io()
        closed = []
        async with self.store.lock:
            for attempt in self.store.attempts_for(intervention_id):
                if predicate(attempt):
                    updated = replace(attempt, status=new_status)
                    self.store.attempts[attempt.id] = updated
                    closed.append(replace(updated))
        return closed


class InMemoryExclusionRepository(ExclusionRepositoryInterface):
    """Append-only exclusion ledger over an InMemoryStore."""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def add(self, record: ExclusionRecord) -> ExclusionRecord:
        await simulate_io()
        self.store.exclusions.append(record)
        return record

    async def get_excluded_technician_ids(self, intervention_id: UUID) -> Set[UUID]:
        await simulate_io()
        return {
            record.technician_id
            for record in self.store.exclusions
            if record.intervention_id == intervention_id
        }

    async def list_for_intervention(
        self, intervention_id: UUID
    ) -> List[ExclusionRecord]:
        await simulate_io()
        return [
            record
            for record in self.store.exclusions
            if record.intervention_id == intervention_id
        ]


class InMemoryTechnicianDirectory(TechnicianDirectoryInterface):
    """Technician directory over an InMemoryStore."""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_by_id(self, technician_id: UUID) -> Optional[Technician]:
        await simulate_io()
        return self.store.technicians.get(technician_id)

    async def find_dispatchable(self) -> List[Technician]:
        await simulate_io()
        return [
            technician
            for technician in sorted(
                self.store.technicians.values(), key=lambda technician: str(technician.id)
            )
            if technician.is_dispatchable()
        ]


class InMemoryWorkloadSource(WorkloadSourceInterface):
    """Active job counts computed from stored interventions."""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def count_active_jobs(
        self, technician_ids: Iterable[UUID]
    ) -> Dict[UUID, int]:
        await simulate_io()
        wanted = set(technician_ids)
        counts: Dict[UUID, int] = {}
        for intervention in self.store.interventions.values():
            if (
                intervention.technician_id in wanted
                and intervention.status.counts_as_workload()
            ):
                counts[intervention.technician_id] = (
                    counts.get(intervention.technician_id, 0) + 1
                )
        return counts


class InMemoryRatingSource(RatingSourceInterface):
    """Average ratings computed from stored ratings."""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_average_ratings(
        self, technician_ids: Iterable[UUID]
    ) -> Dict[UUID, float]:
        await simulate_io()
        averages = {}
        for technician_id in technician_ids:
            ratings = self.store.ratings.get(technician_id)
            if ratings:
                averages[technician_id] = sum(ratings) / len(ratings)
        return averages


class InMemoryTransactionService(TransactionServiceInterface):
    """
    Transaction boundary for the in-memory store.

    Each repository call applies immediately; a failed operation is logged
    and re-raised but earlier writes of that operation stay applied. Row
    locks taken during the operation are released when it ends.
    """

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def execute_in_transaction(self, operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await operation()
        except Exception as e:
            logger.error(
                "In-memory operation failed", error=str(e), exc_info=True
            )
            raise
        finally:
            self.store.release_row_locks()

    async def commit(self) -> None:
        self.store.release_row_locks()

    async def rollback(self) -> None:
        self.store.release_row_locks()
