"""
Repository interfaces for dependency inversion.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set
from uuid import UUID

from src.domain.entities.dispatch_attempt import DispatchAttempt
from src.domain.entities.exclusion_record import ExclusionRecord
from src.domain.entities.intervention import Intervention
from src.domain.entities.technician import Technician
from src.domain.value_objects.attempt_status import AttemptStatus
from src.domain.value_objects.intervention_status import InterventionStatus


class InterventionRepositoryInterface(ABC):
    """Intervention repository interface.

    Every mutation is guarded on the expected prior state and reports
    whether it applied.
    """

    @abstractmethod
    async def create(self, intervention: Intervention) -> Intervention:
        """Create a new intervention."""
        pass

    @abstractmethod
    async def get_by_id(self, intervention_id: UUID) -> Optional[Intervention]:
        """Get intervention by ID."""
        pass

    @abstractmethod
    async def lock_for_update(self, intervention_id: UUID) -> Optional[Intervention]:
        """
        Lock the intervention until the current transaction ends and return it.

        Dispatch rounds, claims and reassignments of one intervention run
        one after another under this lock.
        """
        pass

    @abstractmethod
    async def open_for_dispatch(self, intervention_id: UUID, now: datetime) -> bool:
        """Set an unassigned intervention back to 'new' and clear the manual flag."""
        pass

    @abstractmethod
    async def assign_pending(
        self, intervention_id: UUID, technician_id: UUID, now: datetime
    ) -> bool:
        """Reserve the intervention ('assigned') for a technician awaiting response."""
        pass

    @abstractmethod
    async def return_to_pool(self, intervention_id: UUID, now: datetime) -> bool:
        """Clear any pending reservation, status 'new', manual assignment required."""
        pass

    @abstractmethod
    async def release_technician(
        self, intervention_id: UUID, technician_id: UUID, now: datetime
    ) -> bool:
        """Drop the holding technician and mark the intervention 'to_reassign'."""
        pass

    @abstractmethod
    async def advance(
        self,
        intervention_id: UUID,
        technician_id: UUID,
        from_status: InterventionStatus,
        to_status: InterventionStatus,
        now: datetime,
    ) -> bool:
        """Move the holding technician one step along the field progression."""
        pass


class DispatchAttemptRepositoryInterface(ABC):
    """Attempt store: one record per technician per dispatch round."""

    @abstractmethod
    async def create_many(
        self, attempts: List[DispatchAttempt]
    ) -> List[DispatchAttempt]:
        """Persist the attempts of a new round."""
        pass

    @abstractmethod
    async def get_by_intervention(self, intervention_id: UUID) -> List[DispatchAttempt]:
        """Full attempt history ordered by round then attempt order."""
        pass

    @abstractmethod
    async def get_latest_round_number(self, intervention_id: UUID) -> int:
        """Highest round number recorded, 0 when never dispatched."""
        pass

    @abstractmethod
    async def get_latest_for_technician(
        self, intervention_id: UUID, technician_id: UUID
    ) -> Optional[DispatchAttempt]:
        """Most recent attempt offered to a technician."""
        pass

    @abstractmethod
    async def supersede_pending(
        self, intervention_id: UUID, now: datetime
    ) -> List[DispatchAttempt]:
        """Cancel every pending attempt (notified or standby). Returns the cancelled ones."""
        pass

    @abstractmethod
    async def cancel_live(
        self, intervention_id: UUID, now: datetime
    ) -> List[DispatchAttempt]:
        """Cancel pending and accepted attempts. Returns the cancelled ones."""
        pass

    @abstractmethod
    async def mark_responded(
        self, attempt_id: UUID, status: AttemptStatus, now: datetime
    ) -> bool:
        """Close a notified pending attempt with the technician's answer."""
        pass

    @abstractmethod
    async def try_claim(
        self,
        attempt_id: UUID,
        intervention_id: UUID,
        technician_id: UUID,
        now: datetime,
        response_time_seconds: int,
    ) -> bool:
        """Atomically accept an offer and take the intervention.

        Flips the attempt pending -> accepted, puts the intervention on route
        with the claimant, and cancels the sibling pending attempts. Returns
        False, leaving the claimant's attempt cancelled, when another
        technician got there first.
        """
        pass

    @abstractmethod
    async def mark_timed_out(
        self, intervention_id: UUID, now: datetime
    ) -> List[DispatchAttempt]:
        """Expire notified pending attempts whose window has elapsed."""
        pass

    @abstractmethod
    async def count_open_offers(self, intervention_id: UUID) -> int:
        """Count notified attempts still waiting for an answer."""
        pass

    @abstractmethod
    async def next_standby(self, intervention_id: UUID) -> Optional[DispatchAttempt]:
        """Lowest-order attempt that was ranked but never notified."""
        pass

    @abstractmethod
    async def notify_standby(
        self, attempt_id: UUID, now: datetime, timeout_at: datetime
    ) -> bool:
        """Open the offer window of a standby attempt."""
        pass

    @abstractmethod
    async def find_interventions_with_expired_offers(
        self, now: datetime, limit: int = 100
    ) -> List[UUID]:
        """Interventions holding at least one expired open offer."""
        pass


class ExclusionRepositoryInterface(ABC):
    """Append-only exclusion ledger."""

    @abstractmethod
    async def add(self, record: ExclusionRecord) -> ExclusionRecord:
        """Append an exclusion record."""
        pass

    @abstractmethod
    async def get_excluded_technician_ids(self, intervention_id: UUID) -> Set[UUID]:
        """Technicians who ever declined or abandoned the intervention."""
        pass

    @abstractmethod
    async def list_for_intervention(
        self, intervention_id: UUID
    ) -> List[ExclusionRecord]:
        """Exclusion records in insertion order."""
        pass


class TechnicianDirectoryInterface(ABC):
    """Technician directory interface."""

    @abstractmethod
    async def get_by_id(self, technician_id: UUID) -> Optional[Technician]:
        """Get technician by ID."""
        pass

    @abstractmethod
    async def find_dispatchable(self) -> List[Technician]:
        """Approved, active and geolocated technicians."""
        pass


class WorkloadSourceInterface(ABC):
    """Active job counts per technician."""

    @abstractmethod
    async def count_active_jobs(
        self, technician_ids: Iterable[UUID]
    ) -> Dict[UUID, int]:
        """Interventions currently held per technician. Missing ids count zero."""
        pass


class RatingSourceInterface(ABC):
    """Average customer rating per technician."""

    @abstractmethod
    async def get_average_ratings(
        self, technician_ids: Iterable[UUID]
    ) -> Dict[UUID, float]:
        """Average rating per technician. Technicians never rated are absent."""
        pass
