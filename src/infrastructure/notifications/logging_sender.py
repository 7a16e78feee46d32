"""
Notification sender that only records offers in the log.
"""

from datetime import datetime
from typing import List
from uuid import UUID

from src.application.interfaces.notifications import NotificationSenderInterface
from src.config.logging import get_logger
from src.domain.entities.intervention import Intervention

logger = get_logger(__name__)


class LoggingNotificationSender(NotificationSenderInterface):
    """Default sender for local runs and deployments without a push gateway."""

    @property
    def name(self) -> str:
        return "logging"

    async def send_offer(
        self,
        intervention: Intervention,
        technician_ids: List[UUID],
        timeout_at: datetime,
    ) -> None:
        logger.info(
            "Offer sent",
            intervention_id=str(intervention.id),
            category=intervention.category,
            technician_ids=[str(technician_id) for technician_id in technician_ids],
            timeout_at=timeout_at.isoformat(),
        )

    async def revoke_offer(
        self, intervention_id: UUID, technician_ids: List[UUID]
    ) -> None:
        logger.info(
            "Offer revoked",
            intervention_id=str(intervention_id),
            technician_ids=[str(technician_id) for technician_id in technician_ids],
        )

    async def notify_manual_assignment_required(
        self, intervention: Intervention
    ) -> None:
        logger.warning(
            "Manual assignment required",
            intervention_id=str(intervention.id),
            category=intervention.category,
        )
