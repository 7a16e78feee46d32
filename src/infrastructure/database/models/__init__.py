"""
Database models package.
"""

from .base import Base, BaseModel
from .dispatch_attempt import DispatchAttemptModel
from .intervention import InterventionModel
from .intervention_exclusion import InterventionExclusionModel
from .intervention_rating import InterventionRatingModel
from .technician import TechnicianModel

__all__ = [
    "Base",
    "BaseModel",
    "DispatchAttemptModel",
    "InterventionModel",
    "InterventionExclusionModel",
    "InterventionRatingModel",
    "TechnicianModel",
]
