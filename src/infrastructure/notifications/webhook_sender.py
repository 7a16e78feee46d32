"""
Notification sender posting events to a push gateway webhook.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import httpx

from src.application.interfaces.notifications import NotificationSenderInterface
from src.config.logging import get_logger
from src.domain.entities.intervention import Intervention
from src.infrastructure.external.http_client import HTTPClient

logger = get_logger(__name__)


class WebhookNotificationSender(NotificationSenderInterface):
    """Posts one JSON event per notification to a configured URL."""

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.transport = transport

    @property
    def name(self) -> str:
        return "webhook"

    async def send_offer(
        self,
        intervention: Intervention,
        technician_ids: List[UUID],
        timeout_at: datetime,
    ) -> None:
        await self._post(
            {
                "event": "dispatch.offer",
                "intervention": intervention.to_dict(),
                "technician_ids": [str(technician_id) for technician_id in technician_ids],
                "timeout_at": timeout_at.isoformat(),
            }
        )

    async def revoke_offer(
        self, intervention_id: UUID, technician_ids: List[UUID]
    ) -> None:
        await self._post(
            {
                "event": "dispatch.offer_revoked",
                "intervention_id": str(intervention_id),
                "technician_ids": [str(technician_id) for technician_id in technician_ids],
            }
        )

    async def notify_manual_assignment_required(
        self, intervention: Intervention
    ) -> None:
        await self._post(
            {
                "event": "dispatch.manual_assignment_required",
                "intervention": intervention.to_dict(),
            }
        )

    async def _post(self, payload: Dict[str, Any]) -> None:
        async with HTTPClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.webhook_url, data=payload)
            response.raise_for_status()

        logger.debug("Notification delivered", notification_event=payload["event"])
