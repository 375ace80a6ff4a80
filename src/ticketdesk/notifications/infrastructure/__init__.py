"""
Notifications Infrastructure Layer
===================================

- Models: SQLAlchemy ORM model
- Repositories: Data access layer
- External: delivery transports (internal, webhook relay)
"""

from ticketdesk.notifications.infrastructure.models import NotificationModel
from ticketdesk.notifications.infrastructure.repositories import SQLAlchemyNotificationRepository
from ticketdesk.notifications.infrastructure.external import (
    CircuitBreaker,
    InternalNotificationSender,
    WebhookNotificationSender,
    ChannelRoutingSender,
)

__all__ = [
    "NotificationModel",
    "SQLAlchemyNotificationRepository",
    "CircuitBreaker",
    "InternalNotificationSender",
    "WebhookNotificationSender",
    "ChannelRoutingSender",
]
