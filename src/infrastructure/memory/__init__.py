"""
In-memory persistence package.
"""

from .repositories import (
    InMemoryDispatchAttemptRepository,
    InMemoryExclusionRepository,
    InMemoryInterventionRepository,
    InMemoryRatingSource,
    InMemoryTechnicianDirectory,
    InMemoryTransactionService,
    InMemoryWorkloadSource,
)
from .store import InMemoryStore

__all__ = [
    "InMemoryDispatchAttemptRepository",
    "InMemoryExclusionRepository",
    "InMemoryInterventionRepository",
    "InMemoryRatingSource",
    "InMemoryStore",
    "InMemoryTechnicianDirectory",
    "InMemoryTransactionService",
    "InMemoryWorkloadSource",
]
