"""
Unit tests for OfferNotifier.
"""

from datetime import datetime, timezone
from unittest.mock import patch
from uuid import uuid4

import pytest

from src.application.services.offer_notifier import OfferNotifier
from src.domain.entities.intervention import Intervention


@pytest.fixture
def notifier(mock_sender):
    return OfferNotifier(mock_sender)


class TestOfferNotifier:
    """Test best-effort delivery."""

    @pytest.mark.asyncio
    async def test_offer_delivers(self, notifier, mock_sender):
        intervention = Intervention(category="plumbing")
        timeout_at = datetime(2026, 1, 1, 12, 5, tzinfo=timezone.utc)
        technician_ids = [uuid4(), uuid4()]

        assert await notifier.offer(intervention, technician_ids, timeout_at) is True

        mock_sender.send_offer.assert_awaited_once_with(
            intervention, technician_ids, timeout_at
        )

    @pytest.mark.asyncio
    async def test_empty_recipient_list_is_skipped(self, notifier, mock_sender):
        assert await notifier.revoke(uuid4(), []) is True
        mock_sender.revoke_offer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_is_logged_and_counted(self, notifier, mock_sender):
        mock_sender.revoke_offer.side_effect = ConnectionError("refused")

        with patch(
            "src.application.services.offer_notifier.record_notification_failure"
        ) as record_failure:
            delivered = await notifier.revoke(uuid4(), [uuid4()])

        assert delivered is False
        record_failure.assert_called_once_with("mock", "revoke")

    @pytest.mark.asyncio
    async def test_manual_assignment_failure_does_not_raise(self, notifier, mock_sender):
        mock_sender.notify_manual_assignment_required.side_effect = RuntimeError("boom")

        assert await notifier.manual_assignment_required(
            Intervention(category="plumbing")
        ) is False
