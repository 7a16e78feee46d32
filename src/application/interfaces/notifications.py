"""
Notification interfaces for dependency inversion.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List
from uuid import UUID

from src.domain.entities.intervention import Intervention


class NotificationSenderInterface(ABC):
    """Best-effort delivery of offers to technicians.

    Called only after the state change is committed. Implementations may
    raise; callers log and count the failure and carry on.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Sender name."""
        pass

    @abstractmethod
    async def send_offer(
        self,
        intervention: Intervention,
        technician_ids: List[UUID],
        timeout_at: datetime,
    ) -> None:
        """Offer an intervention to technicians until timeout_at."""
        pass

    @abstractmethod
    async def revoke_offer(
        self, intervention_id: UUID, technician_ids: List[UUID]
    ) -> None:
        """Tell technicians an offer is no longer available."""
        pass

    @abstractmethod
    async def notify_manual_assignment_required(
        self, intervention: Intervention
    ) -> None:
        """Alert operators that no technician could be found."""
        pass
