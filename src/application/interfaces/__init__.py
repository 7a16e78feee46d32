"""
Application interfaces package.
"""

from .notifications import NotificationSenderInterface
from .repositories import (
    DispatchAttemptRepositoryInterface,
    ExclusionRepositoryInterface,
    InterventionRepositoryInterface,
    RatingSourceInterface,
    TechnicianDirectoryInterface,
    WorkloadSourceInterface,
)
from .services import TransactionServiceInterface

__all__ = [
    "NotificationSenderInterface",
    "DispatchAttemptRepositoryInterface",
    "ExclusionRepositoryInterface",
    "InterventionRepositoryInterface",
    "RatingSourceInterface",
    "TechnicianDirectoryInterface",
    "WorkloadSourceInterface",
    "TransactionServiceInterface",
]
