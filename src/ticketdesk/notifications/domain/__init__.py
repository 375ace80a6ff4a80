"""
Notifications Domain Layer
==========================

Notification message and delivery-state rules.
"""

from ticketdesk.notifications.domain.entities import (
    NotificationMessage,
    NOTIFICATION_TRANSITIONS,
    ensure_notification_transition,
)

__all__ = [
    "NotificationMessage",
    "NOTIFICATION_TRANSITIONS",
    "ensure_notification_transition",
]
