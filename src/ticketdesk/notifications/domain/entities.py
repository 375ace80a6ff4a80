"""
Notification Domain Entities
=============================

A notification is recorded once per triggering event; its delivery status
moves pending -> sent | failed, and sent -> delivered.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ticketdesk.config import NotificationStatus
from ticketdesk.core.exceptions import DomainException

NOTIFICATION_TRANSITIONS = {
    NotificationStatus.PENDING: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.SENT: {NotificationStatus.DELIVERED},
    NotificationStatus.FAILED: set(),
    NotificationStatus.DELIVERED: set(),
}


def ensure_notification_transition(current: str, target: str) -> None:
    """Raise DomainException for a delivery-state move outside the table."""
    if target not in NOTIFICATION_TRANSITIONS.get(current, set()):
        raise DomainException(
            f"Notification cannot move from '{current}' to '{target}'",
            {"current_status": current, "target_status": target}
        )


@dataclass
class NotificationMessage:
    """What to tell whom, before it is recorded or sent."""

    ticket_id: str
    recipient_user_id: str
    channel: str
    type: str
    message: str
    subject: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
