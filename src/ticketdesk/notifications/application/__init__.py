"""
Notifications Application Layer
================================

The dispatcher, the repository/sender interfaces it depends on, and DTOs.
"""

from ticketdesk.notifications.application.services import (
    NotificationDispatcher,
    INotificationRepository,
    INotificationSender,
)
from ticketdesk.notifications.application.dto import (
    NotificationResponse,
    NotificationListResponse,
)

__all__ = [
    "NotificationDispatcher",
    "INotificationRepository",
    "INotificationSender",
    "NotificationResponse",
    "NotificationListResponse",
]
