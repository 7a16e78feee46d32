"""
Technician domain entities.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, Iterable, Optional
from uuid import UUID

from src.domain.value_objects.geo_point import GeoPoint


class Technician:
    """Technician entity as listed in the technician directory."""

    def __init__(
        self,
        id: UUID,
        name: str,
        skills: Optional[Iterable[str]] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        is_active: bool = True,
        application_status: str = "approved",
        is_available: bool = True,
        max_concurrent_interventions: int = 3,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.name = name
        self.skills = frozenset(skill.strip().lower() for skill in skills or [] if skill)
        self.latitude = latitude
        self.longitude = longitude
        self.is_active = is_active
        self.application_status = application_status
        self.is_available = is_available
        self.max_concurrent_interventions = max_concurrent_interventions
        self.email = email
        self.phone = phone
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)

    @property
    def location(self) -> Optional[GeoPoint]:
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(self.latitude, self.longitude)

    def is_dispatchable(self) -> bool:
        """Approved, active and geolocated."""
        return (
            self.is_active
            and self.application_status == "approved"
            and self.location is not None
        )

    def to_dict(self) -> dict:
        """Convert technician to dictionary."""
        return {
            "id": str(self.id),
            "name": self.name,
            "skills": sorted(self.skills),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "is_active": self.is_active,
            "application_status": self.application_status,
            "is_available": self.is_available,
            "max_concurrent_interventions": self.max_concurrent_interventions,
        }


@dataclass(frozen=True)
class CandidateView:
    """Technician joined with workload and rating at scoring time. Never persisted."""

    technician_id: UUID
    location: GeoPoint
    skills: FrozenSet[str] = field(default_factory=frozenset)
    active_job_count: int = 0
    max_concurrent_jobs: int = 3
    average_rating: Optional[float] = None

    @property
    def has_capacity(self) -> bool:
        return self.active_job_count < self.max_concurrent_jobs
