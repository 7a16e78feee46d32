"""
Dispatch attempt SQLAlchemy model.
"""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    text,
)

from src.domain.value_objects.attempt_status import AttemptStatus

from . import BaseModel


class DispatchAttemptModel(BaseModel):
    """Dispatch attempt database model."""

    __tablename__ = "dispatch_attempts"

    intervention_id = Column(
        Uuid(as_uuid=True), ForeignKey("interventions.id"), nullable=False, index=True
    )
    technician_id = Column(
        Uuid(as_uuid=True), ForeignKey("technicians.id"), nullable=False, index=True
    )
    round_number = Column(Integer, nullable=False, default=1)
    attempt_order = Column(Integer, nullable=False)
    score = Column(Float, nullable=False, default=0.0)
    score_breakdown = Column(JSON, nullable=False, default=dict)
    distance_km = Column(Float)
    estimated_travel_minutes = Column(Integer)
    status = Column(
        String(50),
        default=AttemptStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    notified_at = Column(DateTime(timezone=True))
    timeout_at = Column(DateTime(timezone=True), index=True)
    responded_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index(
            "idx_dispatch_attempt_intervention_round",
            "intervention_id",
            "round_number",
            "attempt_order",
        ),
        Index("idx_dispatch_attempt_status_timeout", "status", "timeout_at"),
        # At most one winner per round
        Index(
            "uq_dispatch_attempt_accepted_per_round",
            "intervention_id",
            "round_number",
            unique=True,
            postgresql_where=text("status = 'accepted'"),
            sqlite_where=text("status = 'accepted'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<DispatchAttempt(id={self.id}, intervention_id={self.intervention_id}, "
            f"technician_id={self.technician_id}, status={self.status})>"
        )
