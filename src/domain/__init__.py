"""
Domain package.
"""

from .entities import *
from .exceptions import *
from .value_objects import *

__all__ = [
    # Entities
    "CandidateView",
    "DispatchAttempt",
    "ExclusionRecord",
    "Intervention",
    "Technician",
    # Exceptions
    "DispatchError",
    "InterventionNotFoundError",
    "ValidationError",
    # Value Objects
    "AttemptStatus",
    "ExclusionKind",
    "GeoPoint",
    "InterventionStatus",
]
