"""
Dispatch attempt status value object.
"""

from enum import Enum


class AttemptStatus(str, Enum):
    """Dispatch attempt status enumeration."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"

    def is_final(self) -> bool:
        """Check if status is final (no more transitions)."""
        return self in [self.REJECTED, self.CANCELLED, self.TIMEOUT]

    def is_live(self) -> bool:
        """Check if the offer still binds the technician."""
        return self in [self.PENDING, self.ACCEPTED]
