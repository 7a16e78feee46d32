"""
Technician scorer for ranking dispatch candidates.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import UUID

from src.application.services.dispatch_policy import DispatchPolicy
from src.config.logging import get_logger
from src.domain.entities.technician import CandidateView
from src.domain.value_objects.geo_point import GeoPoint

logger = get_logger(__name__)

WORKLOAD_PENALTY_PER_JOB = 33.33
PROXIMITY_PENALTY_PER_KM = 2.0


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for positive values, like Math.round."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class CandidateScore:
    """Score of one candidate for one intervention."""

    technician_id: UUID
    score: float
    proximity: float
    skills: float
    workload: float
    rating: float
    distance_km: float
    estimated_travel_minutes: int

    @property
    def breakdown(self) -> Dict[str, float]:
        return {
            "proximity": self.proximity,
            "skills": self.skills,
            "workload": self.workload,
            "rating": self.rating,
        }

    def sort_key(self) -> tuple:
        """Composite descending, then technician id ascending."""
        return (-self.score, str(self.technician_id))


class TechnicianScorer:
    """Pure, deterministic composite scoring of candidates."""

    def __init__(self, policy: Optional[DispatchPolicy] = None):
        self.policy = policy or DispatchPolicy()
        self.logger = logger

    def proximity_score(self, distance_km: float) -> float:
        return max(0.0, 100.0 - PROXIMITY_PENALTY_PER_KM * distance_km)

    def skills_score(self, category: str, skills) -> float:
        """Full marks on a direct or aliased match, soft penalty otherwise."""
        category_key = category.strip().lower()
        if category_key in skills or self.policy.required_skill(category) in skills:
            return 100.0
        return float(self.policy.skill_mismatch_score)

    def workload_score(self, active_job_count: int) -> float:
        return max(0.0, 100.0 - WORKLOAD_PENALTY_PER_JOB * active_job_count)

    def rating_score(self, average_rating: Optional[float]) -> float:
        if average_rating is None:
            average_rating = self.policy.cold_start_rating
        return average_rating / 5.0 * 100.0

    def score(
        self, origin: GeoPoint, category: str, candidate: CandidateView
    ) -> CandidateScore:
        """
        Score a single candidate against an intervention.

        Args:
            origin: Intervention location
            category: Intervention category (required skill)
            candidate: Candidate joined with workload and rating

        Returns:
            CandidateScore with rounded composite and breakdown
        """
        distance_km = origin.distance_km(candidate.location)

        proximity = self.proximity_score(distance_km)
        skills = self.skills_score(category, candidate.skills)
        workload = self.workload_score(candidate.active_job_count)
        rating = self.rating_score(candidate.average_rating)

        weights = self.policy.weights
        composite = (
            weights.proximity * proximity
            + weights.skills * skills
            + weights.workload * workload
            + weights.rating * rating
        )

        return CandidateScore(
            technician_id=candidate.technician_id,
            score=round_half_up(composite, 2),
            proximity=round_half_up(proximity, 2),
            skills=round_half_up(skills, 2),
            workload=round_half_up(workload, 2),
            rating=round_half_up(rating, 2),
            distance_km=round_half_up(distance_km, 1),
            estimated_travel_minutes=int(
                round_half_up(distance_km / self.policy.average_speed_kmh * 60)
            ),
        )

    def rank(
        self, origin: GeoPoint, category: str, candidates: List[CandidateView]
    ) -> List[CandidateScore]:
        """Score every candidate and sort best first with a stable tie-break."""
        scores = [self.score(origin, category, candidate) for candidate in candidates]
        scores.sort(key=CandidateScore.sort_key)

        self.logger.debug(
            "Ranked dispatch candidates",
            category=category,
            total_candidates=len(scores),
            top_score=scores[0].score if scores else 0,
        )
        return scores
