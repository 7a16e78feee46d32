"""
Dispatch attempt entity: one offer of an intervention to one technician.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional
from uuid import UUID, uuid4

from src.domain.value_objects.attempt_status import AttemptStatus
from src.domain.value_objects.timestamps import utc_now


@dataclass
class DispatchAttempt:
    """Dispatch attempt domain entity."""

    intervention_id: UUID
    technician_id: UUID
    round_number: int
    attempt_order: int
    id: UUID = field(default_factory=uuid4)
    score: float = 0.0
    score_breakdown: Dict[str, float] = field(default_factory=dict)
    distance_km: Optional[float] = None
    estimated_travel_minutes: Optional[int] = None
    status: AttemptStatus = AttemptStatus.PENDING
    notified_at: Optional[datetime] = None
    timeout_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        """Normalize status and timestamps."""
        self.status = AttemptStatus(self.status)
        if self.attempt_order < 1:
            raise ValueError("Attempt order starts at 1")
        if not self.created_at:
            self.created_at = utc_now()

    @property
    def is_notified(self) -> bool:
        return self.notified_at is not None

    @property
    def is_open_offer(self) -> bool:
        """Notified and still waiting for an answer."""
        return self.status == AttemptStatus.PENDING and self.is_notified

    @property
    def is_standby(self) -> bool:
        """Ranked but not yet offered."""
        return self.status == AttemptStatus.PENDING and not self.is_notified

    def has_expired(self, now: datetime) -> bool:
        """Check if the offer window elapsed without an answer."""
        return self.is_open_offer and self.timeout_at is not None and self.timeout_at < now

    def mark_notified(self, now: datetime, window: timedelta) -> None:
        """Open the offer window."""
        self.notified_at = now
        self.timeout_at = now + window
        self.status = AttemptStatus.PENDING

    def to_dict(self) -> dict:
        """Convert attempt to dictionary."""
        return {
            "id": str(self.id),
            "intervention_id": str(self.intervention_id),
            "technician_id": str(self.technician_id),
            "round_number": self.round_number,
            "attempt_order": self.attempt_order,
            "score": self.score,
            "score_breakdown": dict(self.score_breakdown),
            "distance_km": self.distance_km,
            "estimated_travel_minutes": self.estimated_travel_minutes,
            "status": self.status.value,
            "notified_at": self.notified_at.isoformat() if self.notified_at else None,
            "timeout_at": self.timeout_at.isoformat() if self.timeout_at else None,
            "responded_at": self.responded_at.isoformat() if self.responded_at else None,
        }
