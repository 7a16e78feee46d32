"""
Intervention domain entity.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from src.domain.value_objects.geo_point import GeoPoint
from src.domain.value_objects.intervention_status import InterventionStatus
from src.domain.value_objects.timestamps import utc_now


@dataclass
class Intervention:
    """A field-service job waiting for, or held by, a technician."""

    category: str
    id: UUID = field(default_factory=uuid4)
    priority: str = "normal"
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: InterventionStatus = InterventionStatus.NEW
    technician_id: Optional[UUID] = None
    requires_manual_assignment: bool = False
    accepted_at: Optional[datetime] = None
    response_time_seconds: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate intervention data."""
        if not self.category or not self.category.strip():
            raise ValueError("Intervention category is required")

        self.status = InterventionStatus(self.status)

        # A technician is attached exactly while the status says one holds it
        if self.status.holds_technician() and self.technician_id is None:
            raise ValueError(
                f"Intervention in status '{self.status.value}' requires a technician"
            )
        if not self.status.holds_technician() and self.technician_id is not None:
            raise ValueError(
                f"Intervention in status '{self.status.value}' cannot hold a technician"
            )

        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at

    @property
    def location(self) -> Optional[GeoPoint]:
        """Dispatch origin, once the booking flow geocoded the address."""
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(self.latitude, self.longitude)

    def is_assigned(self) -> bool:
        return self.technician_id is not None

    def is_held_by(self, technician_id: UUID) -> bool:
        return self.technician_id == technician_id

    def can_be_dispatched(self) -> bool:
        """Check if a new dispatch round may start."""
        return not self.is_assigned() and not self.status.is_final()

    def response_time_at(self, moment: datetime) -> int:
        """Seconds elapsed between creation and the given moment."""
        return round((moment - self.created_at).total_seconds())

    def to_dict(self) -> dict:
        """Convert intervention to dictionary."""
        return {
            "id": str(self.id),
            "category": self.category,
            "priority": self.priority,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "status": self.status.value,
            "technician_id": str(self.technician_id) if self.technician_id else None,
            "requires_manual_assignment": self.requires_manual_assignment,
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
            "response_time_seconds": self.response_time_seconds,
            "created_at": self.created_at.isoformat(),
        }
