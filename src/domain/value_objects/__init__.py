"""
Domain value objects package.
"""

from .attempt_status import AttemptStatus
from .exclusion_kind import ExclusionKind
from .geo_point import GeoPoint
from .intervention_status import InterventionStatus
from .timestamps import ensure_utc, utc_now

__all__ = [
    "AttemptStatus",
    "ExclusionKind",
    "GeoPoint",
    "InterventionStatus",
    "ensure_utc",
    "utc_now",
]
