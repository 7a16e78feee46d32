"""
Intervention exclusion SQLAlchemy model.
"""

from sqlalchemy import Column, ForeignKey, Index, String, Text, Uuid

from . import BaseModel


class InterventionExclusionModel(BaseModel):
    """Append-only ledger of declined and abandoned interventions."""

    __tablename__ = "intervention_exclusions"

    intervention_id = Column(
        Uuid(as_uuid=True), ForeignKey("interventions.id"), nullable=False, index=True
    )
    technician_id = Column(
        Uuid(as_uuid=True), ForeignKey("technicians.id"), nullable=False, index=True
    )
    kind = Column(String(20), nullable=False)
    reason = Column(Text, nullable=False)

    __table_args__ = (
        Index(
            "idx_intervention_exclusion_lookup", "intervention_id", "technician_id"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<InterventionExclusion(intervention_id={self.intervention_id}, "
            f"technician_id={self.technician_id}, kind={self.kind})>"
        )
