"""
Candidate filter: who may be offered an intervention.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set
from uuid import UUID

from src.application.interfaces.repositories import (
    RatingSourceInterface,
    TechnicianDirectoryInterface,
    WorkloadSourceInterface,
)
from src.application.services.dispatch_policy import DispatchPolicy
from src.config.logging import get_logger
from src.domain.entities.intervention import Intervention
from src.domain.entities.technician import CandidateView

logger = get_logger(__name__)


@dataclass
class CandidateFilterResult:
    """Eligible candidates, or the reason there are none."""

    candidates: List[CandidateView] = field(default_factory=list)
    reason: Optional[str] = None
    directory_size: int = 0
    excluded_count: int = 0
    unavailable_count: int = 0
    at_capacity_count: int = 0

    @property
    def has_candidates(self) -> bool:
        return bool(self.candidates)


class CandidateFilter:
    """Selects technicians eligible for an intervention."""

    def __init__(
        self,
        technician_directory: TechnicianDirectoryInterface,
        workload_source: WorkloadSourceInterface,
        rating_source: RatingSourceInterface,
        policy: Optional[DispatchPolicy] = None,
    ):
        self.technician_directory = technician_directory
        self.workload_source = workload_source
        self.rating_source = rating_source
        self.policy = policy or DispatchPolicy()
        self.logger = logger

    async def find_candidates(
        self, intervention: Intervention, excluded_ids: Set[UUID]
    ) -> CandidateFilterResult:
        """
        Build the candidate list for an intervention.

        Args:
            intervention: Intervention being dispatched
            excluded_ids: Technicians who ever declined or abandoned it

        Returns:
            CandidateFilterResult; an empty list is a normal outcome
        """
        result = CandidateFilterResult()

        technicians = [
            technician
            for technician in await self.technician_directory.find_dispatchable()
            if technician.is_dispatchable()
        ]
        result.directory_size = len(technicians)

        remaining = []
        for technician in technicians:
            if technician.id in excluded_ids:
                result.excluded_count += 1
            elif not technician.is_available:
                result.unavailable_count += 1
            else:
                remaining.append(technician)

        technician_ids = [technician.id for technician in remaining]
        workloads = await self.workload_source.count_active_jobs(technician_ids)
        ratings = await self.rating_source.get_average_ratings(technician_ids)

        for technician in remaining:
            max_jobs = (
                technician.max_concurrent_interventions
                or self.policy.default_max_concurrent_jobs
            )
            candidate = CandidateView(
                technician_id=technician.id,
                location=technician.location,
                skills=technician.skills,
                active_job_count=workloads.get(technician.id, 0),
                max_concurrent_jobs=max_jobs,
                average_rating=ratings.get(technician.id),
            )
            if not candidate.has_capacity:
                result.at_capacity_count += 1
                continue
            result.candidates.append(candidate)

        if not result.candidates:
            if result.directory_size == 0:
                result.reason = "No approved technicians with a known location"
            elif result.excluded_count == result.directory_size:
                result.reason = "Every technician declined or abandoned this intervention"
            else:
                result.reason = "No available technicians"

        self.logger.info(
            "Filtered dispatch candidates",
            intervention_id=str(intervention.id),
            directory_size=result.directory_size,
            excluded=result.excluded_count,
            unavailable=result.unavailable_count,
            at_capacity=result.at_capacity_count,
            eligible=len(result.candidates),
        )
        return result
