"""
Fire-and-forget wrapper around the notification sender.
"""

from datetime import datetime
from typing import List
from uuid import UUID

from src.application.interfaces.notifications import NotificationSenderInterface
from src.config.logging import get_logger
from src.domain.entities.intervention import Intervention
from src.infrastructure.monitoring.metrics import record_notification_failure

logger = get_logger(__name__)


class OfferNotifier:
    """
    Sends notifications after a state change has been committed.

    Delivery failures are logged and counted, never raised: a committed
    assignment change is not undone because a push failed.
    """

    def __init__(self, sender: NotificationSenderInterface):
        self.sender = sender
        self.logger = logger

    async def offer(
        self,
        intervention: Intervention,
        technician_ids: List[UUID],
        timeout_at: datetime,
    ) -> bool:
        if not technician_ids:
            return True
        try:
            await self.sender.send_offer(intervention, technician_ids, timeout_at)
            return True
        except Exception as e:
            self._log_failure("offer", intervention.id, technician_ids, e)
            return False

    async def revoke(self, intervention_id: UUID, technician_ids: List[UUID]) -> bool:
        if not technician_ids:
            return True
        try:
            await self.sender.revoke_offer(intervention_id, technician_ids)
            return True
        except Exception as e:
            self._log_failure("revoke", intervention_id, technician_ids, e)
            return False

    async def manual_assignment_required(self, intervention: Intervention) -> bool:
        try:
            await self.sender.notify_manual_assignment_required(intervention)
            return True
        except Exception as e:
            self._log_failure("manual_assignment", intervention.id, [], e)
            return False

    def _log_failure(
        self,
        kind: str,
        intervention_id: UUID,
        technician_ids: List[UUID],
        error: Exception,
    ) -> None:
        self.logger.error(
            "Notification delivery failed",
            kind=kind,
            sender=self.sender.name,
            intervention_id=str(intervention_id),
            technician_ids=[str(technician_id) for technician_id in technician_ids],
            error=str(error),
            exc_info=True,
        )
        record_notification_failure(self.sender.name, kind)
