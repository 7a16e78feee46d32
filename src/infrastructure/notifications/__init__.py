"""
Notification senders package.
"""

from .factory import create_notification_sender
from .logging_sender import LoggingNotificationSender
from .webhook_sender import WebhookNotificationSender

__all__ = [
    "create_notification_sender",
    "LoggingNotificationSender",
    "WebhookNotificationSender",
]
