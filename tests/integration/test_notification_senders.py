"""
Integration tests for the notification senders.
"""

import json
from datetime import timedelta
from types import SimpleNamespace
from uuid import uuid4

import httpx
import pytest

from src.infrastructure.notifications.factory import create_notification_sender
from src.infrastructure.notifications.logging_sender import LoggingNotificationSender
from src.infrastructure.notifications.webhook_sender import WebhookNotificationSender

WEBHOOK_URL = "https://push.example.test/dispatch"


class RecordingTransport(httpx.MockTransport):
    """Mock transport keeping every request it served."""

    def __init__(self, status_code: int = 202):
        self.requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(status_code, json={"queued": True})

        super().__init__(handler)


class TestWebhookNotificationSender:
    """Test webhook delivery."""

    @pytest.mark.asyncio
    async def test_send_offer_posts_event(self, make_intervention, clock):
        transport = RecordingTransport()
        sender = WebhookNotificationSender(WEBHOOK_URL, transport=transport)
        intervention = make_intervention()
        technician_ids = [uuid4(), uuid4()]
        timeout_at = clock() + timedelta(minutes=5)

        await sender.send_offer(intervention, technician_ids, timeout_at)

        assert len(transport.requests) == 1
        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == WEBHOOK_URL
        payload = json.loads(request.content)
        assert payload["event"] == "dispatch.offer"
        assert payload["intervention"]["id"] == str(intervention.id)
        assert payload["technician_ids"] == [str(value) for value in technician_ids]
        assert payload["timeout_at"] == timeout_at.isoformat()

    @pytest.mark.asyncio
    async def test_revoke_offer(self):
        transport = RecordingTransport()
        sender = WebhookNotificationSender(WEBHOOK_URL, transport=transport)
        intervention_id = uuid4()

        await sender.revoke_offer(intervention_id, [uuid4()])

        payload = json.loads(transport.requests[0].content)
        assert payload["event"] == "dispatch.offer_revoked"
        assert payload["intervention_id"] == str(intervention_id)

    @pytest.mark.asyncio
    async def test_manual_assignment_alert(self, make_intervention):
        transport = RecordingTransport()
        sender = WebhookNotificationSender(WEBHOOK_URL, transport=transport)

        await sender.notify_manual_assignment_required(make_intervention())

        payload = json.loads(transport.requests[0].content)
        assert payload["event"] == "dispatch.manual_assignment_required"

    @pytest.mark.asyncio
    async def test_gateway_error_raises(self, make_intervention):
        sender = WebhookNotificationSender(
            WEBHOOK_URL, transport=RecordingTransport(status_code=503)
        )

        with pytest.raises(httpx.HTTPStatusError):
            await sender.notify_manual_assignment_required(make_intervention())


class TestNotificationSenderFactory:
    """Test sender selection from settings."""

    def test_webhook_when_url_configured(self):
        sender = create_notification_sender(
            SimpleNamespace(
                NOTIFICATION_WEBHOOK_URL=WEBHOOK_URL, NOTIFICATION_TIMEOUT_SECONDS=3.0
            )
        )

        assert isinstance(sender, WebhookNotificationSender)
        assert sender.name == "webhook"
        assert sender.timeout == 3.0

    def test_logging_by_default(self):
        sender = create_notification_sender(
            SimpleNamespace(NOTIFICATION_WEBHOOK_URL=None, NOTIFICATION_TIMEOUT_SECONDS=3.0)
        )

        assert isinstance(sender, LoggingNotificationSender)
        assert sender.name == "logging"
