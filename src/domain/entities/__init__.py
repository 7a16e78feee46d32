"""
Domain entities package.
"""

from .dispatch_attempt import DispatchAttempt
from .exclusion_record import ExclusionRecord
from .intervention import Intervention
from .technician import CandidateView, Technician

__all__ = [
    "CandidateView",
    "DispatchAttempt",
    "ExclusionRecord",
    "Intervention",
    "Technician",
]
