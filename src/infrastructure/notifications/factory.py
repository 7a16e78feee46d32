"""
Factory for the configured notification sender.
"""

from src.application.interfaces.notifications import NotificationSenderInterface
from src.config.settings import settings
from src.infrastructure.notifications.logging_sender import LoggingNotificationSender
from src.infrastructure.notifications.webhook_sender import WebhookNotificationSender


def create_notification_sender(app_settings=None) -> NotificationSenderInterface:
    """Webhook sender when a URL is configured, logging sender otherwise."""
    app_settings = app_settings or settings
    if app_settings.NOTIFICATION_WEBHOOK_URL:
        return WebhookNotificationSender(
            webhook_url=app_settings.NOTIFICATION_WEBHOOK_URL,
            timeout=app_settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
    return LoggingNotificationSender()
