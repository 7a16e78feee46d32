"""
Intervention status value object.
"""

from enum import Enum


class InterventionStatus(str, Enum):
    """Intervention lifecycle status enumeration."""

    NEW = "new"
    ASSIGNED = "assigned"
    ON_ROUTE = "on_route"
    ARRIVED = "arrived"
    IN_PROGRESS = "in_progress"
    TO_REASSIGN = "to_reassign"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def holds_technician(self) -> bool:
        """Check if a technician must be attached in this status."""
        return self in [
            self.ASSIGNED,
            self.ON_ROUTE,
            self.ARRIVED,
            self.IN_PROGRESS,
            self.COMPLETED,
        ]

    def is_active_assignment(self) -> bool:
        """Check if the holding technician can still abandon the job."""
        return self in [self.ASSIGNED, self.ON_ROUTE, self.ARRIVED, self.IN_PROGRESS]

    def is_claimable(self) -> bool:
        """Check if a pending offer can still be accepted."""
        return self in [self.NEW, self.ASSIGNED]

    def is_final(self) -> bool:
        """Check if status is final (no more dispatching)."""
        return self in [self.COMPLETED, self.CANCELLED]

    def counts_as_workload(self) -> bool:
        """Check if an intervention in this status occupies its technician."""
        return self in [self.ASSIGNED, self.ON_ROUTE, self.ARRIVED, self.IN_PROGRESS]

    def next_field_status(self) -> "InterventionStatus | None":
        """Next step of the on-site progression, if any."""
        return _FIELD_PROGRESSION.get(self)

    @classmethod
    def workload_statuses(cls) -> list["InterventionStatus"]:
        return [status for status in cls if status.counts_as_workload()]


_FIELD_PROGRESSION = {
    InterventionStatus.ON_ROUTE: InterventionStatus.ARRIVED,
    InterventionStatus.ARRIVED: InterventionStatus.IN_PROGRESS,
    InterventionStatus.IN_PROGRESS: InterventionStatus.COMPLETED,
}
