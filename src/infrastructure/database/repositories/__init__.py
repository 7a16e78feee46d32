"""
Database repositories package.
"""

from .dispatch_attempt_repository import DispatchAttemptRepository
from .exclusion_repository import ExclusionRepository
from .intervention_repository import InterventionRepository
from .technician_repository import (
    RatingRepository,
    TechnicianRepository,
    WorkloadRepository,
)
from .transaction_repository import TransactionService

__all__ = [
    "DispatchAttemptRepository",
    "ExclusionRepository",
    "InterventionRepository",
    "RatingRepository",
    "TechnicianRepository",
    "WorkloadRepository",
    "TransactionService",
]
