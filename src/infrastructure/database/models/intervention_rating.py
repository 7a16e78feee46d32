"""
Intervention rating SQLAlchemy model.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Uuid

from . import BaseModel


class InterventionRatingModel(BaseModel):
    """Customer rating of a completed intervention."""

    __tablename__ = "intervention_ratings"

    intervention_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("interventions.id"),
        nullable=False,
        unique=True,
    )
    technician_id = Column(
        Uuid(as_uuid=True), ForeignKey("technicians.id"), nullable=False, index=True
    )
    rating = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_intervention_rating_range"),
    )
