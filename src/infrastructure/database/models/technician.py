"""
Technician SQLAlchemy model.
"""

from sqlalchemy import JSON, Boolean, Column, Float, Index, Integer, String

from . import BaseModel


class TechnicianModel(BaseModel):
    """Technician directory database model."""

    __tablename__ = "technicians"

    name = Column(String(255), nullable=False)
    phone = Column(String(20))
    email = Column(String(255))
    skills = Column(JSON, nullable=False, default=list)
    latitude = Column(Float)
    longitude = Column(Float)
    is_active = Column(Boolean, nullable=False, default=True)
    application_status = Column(String(50), nullable=False, default="approved")
    is_available = Column(Boolean, nullable=False, default=True)
    max_concurrent_interventions = Column(Integer, nullable=False, default=3)

    __table_args__ = (
        Index("idx_technician_dispatchable", "is_active", "application_status"),
    )

    def __repr__(self) -> str:
        return f"<Technician(id={self.id}, name={self.name})>"
