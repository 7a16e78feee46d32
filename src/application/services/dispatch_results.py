"""
Result types returned by dispatch and assignment actions.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from src.application.services.technician_scorer import CandidateScore


@dataclass(frozen=True)
class NotifiedCandidate:
    """A technician who received an offer in a round."""

    technician_id: UUID
    attempt_order: int
    score: float
    distance_km: float
    estimated_travel_minutes: int

    @classmethod
    def from_score(cls, score: CandidateScore, attempt_order: int) -> "NotifiedCandidate":
        return cls(
            technician_id=score.technician_id,
            attempt_order=attempt_order,
            score=score.score,
            distance_km=score.distance_km,
            estimated_travel_minutes=score.estimated_travel_minutes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "technician_id": str(self.technician_id),
            "attempt_order": self.attempt_order,
            "score": self.score,
            "distance_km": self.distance_km,
            "estimated_travel_minutes": self.estimated_travel_minutes,
        }


@dataclass
class ActionResult:
    """
    Outcome of a dispatch or assignment action.

    Business conflicts come back with success=False and a message; they
    are never raised.
    """

    success: bool
    message: str
    intervention_id: Optional[UUID] = None
    technician_id: Optional[UUID] = None
    status: Optional[str] = None
    round_number: Optional[int] = None
    notified: List[NotifiedCandidate] = field(default_factory=list)
    standby_count: int = 0
    total_candidates: Optional[int] = None
    timeout_at: Optional[datetime] = None
    requires_manual_assignment: bool = False
    response_time_seconds: Optional[int] = None
    timed_out_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize, dropping fields the action did not set."""
        data: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.intervention_id is not None:
            data["intervention_id"] = str(self.intervention_id)
        if self.technician_id is not None:
            data["technician_id"] = str(self.technician_id)
        if self.status is not None:
            data["status"] = self.status
        if self.round_number is not None:
            data["round_number"] = self.round_number
        if self.notified:
            data["notified"] = [candidate.to_dict() for candidate in self.notified]
            data["standby_count"] = self.standby_count
        if self.total_candidates is not None:
            data["total_candidates"] = self.total_candidates
        if self.timeout_at is not None:
            data["timeout_at"] = self.timeout_at.isoformat()
        if self.requires_manual_assignment:
            data["requires_manual_assignment"] = True
        if self.response_time_seconds is not None:
            data["response_time_seconds"] = self.response_time_seconds
        if self.timed_out_count is not None:
            data["timed_out_count"] = self.timed_out_count
        return data
