"""
Intervention SQLAlchemy model.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
)

from src.domain.value_objects.intervention_status import InterventionStatus

from . import BaseModel


class InterventionModel(BaseModel):
    """Intervention database model."""

    __tablename__ = "interventions"

    category = Column(String(100), nullable=False, index=True)
    priority = Column(String(20), nullable=False, default="normal")
    latitude = Column(Float)
    longitude = Column(Float)
    status = Column(
        String(50),
        default=InterventionStatus.NEW.value,
        nullable=False,
        index=True,
    )
    technician_id = Column(
        Uuid(as_uuid=True), ForeignKey("technicians.id"), nullable=True, index=True
    )
    requires_manual_assignment = Column(Boolean, nullable=False, default=False)
    accepted_at = Column(DateTime(timezone=True))
    response_time_seconds = Column(Integer)

    __table_args__ = (
        Index("idx_intervention_technician_status", "technician_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Intervention(id={self.id}, status={self.status})>"
