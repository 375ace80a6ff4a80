"""
Notification Application Services
==================================

The dispatcher turns business events into persisted notification records
and hands them to a sender. Delivery is fire-and-forget: a send failure is
recorded as ``failed`` and never propagates to the operation that caused it.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ticketdesk.config import (
    NotificationChannel, NotificationType, NotificationStatus, SLAType
)
from ticketdesk.core.clock import Clock, utc_now
from ticketdesk.core.exceptions import NotificationDispatchException
from ticketdesk.notifications.domain import NotificationMessage, ensure_notification_transition
from ticketdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

STATUS_LABELS = {
    "new": "New",
    "in_progress": "In progress",
    "resolved": "Resolved",
    "closed": "Closed",
}


# ========== Interfaces ==========

class INotificationRepository(ABC):
    """Interface for notification data access."""

    @abstractmethod
    async def create(self, message: NotificationMessage) -> Any:
        """Record a pending notification."""

    @abstractmethod
    async def update_status(
        self,
        record: Any,
        status: str,
        at: Optional[datetime] = None,
        error_message: Optional[str] = None
    ) -> Any:
        """Persist a delivery-state change."""

    @abstractmethod
    async def get_by_id(self, notification_id: str) -> Optional[Any]:
        """Get notification by ID."""

    @abstractmethod
    async def list_for_user(self, user_id: str, limit: int = 50) -> List[Any]:
        """Newest notifications of a recipient."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str, type: Optional[str] = None) -> List[Any]:
        """Notifications about a ticket, optionally of one type."""


class INotificationSender(ABC):
    """Transport contract for pushing a notification out."""

    @abstractmethod
    async def send(
        self,
        recipient_user_id: str,
        channel: str,
        type: str,
        message: str,
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Hand the message to the channel's transport.

        Raises:
            NotificationDispatchException: when the transport refuses it
        """


# ========== Dispatcher ==========

class NotificationDispatcher:
    """
    Records notifications and pushes them through a sender.

    The ``notify_*`` helpers build the message for one business event and
    swallow-and-log any failure so callers never fail because of them.
    """

    def __init__(
        self,
        repository: INotificationRepository,
        sender: INotificationSender,
        breach_channels: Iterable[str] = (NotificationChannel.INTERNAL,),
        clock: Clock = utc_now
    ):
        self._repository = repository
        self._sender = sender
        self._breach_channels = list(breach_channels)
        self._clock = clock

    async def dispatch(self, message: NotificationMessage) -> Any:
        """
        Record the notification as pending, send it, then record the outcome.

        Returns:
            The persisted notification record (status sent or failed)
        """
        record = await self._repository.create(message)
        try:
            await self._sender.send(
                message.recipient_user_id,
                message.channel,
                message.type,
                message.message,
                message.subject,
                message.metadata,
            )
        except NotificationDispatchException as e:
            logger.warning(
                "Notification dispatch failed",
                extra={
                    "notification_id": record.id,
                    "channel": message.channel,
                    "type": message.type,
                    "error": e.message,
                }
            )
            return await self._repository.update_status(
                record, NotificationStatus.FAILED, error_message=e.message
            )

        return await self._repository.update_status(
            record, NotificationStatus.SENT, at=self._clock()
        )

    async def mark_delivered(self, notification_id: str) -> Any:
        """Record a delivery confirmation reported by a transport."""
        record = await self._repository.get_by_id(notification_id)
        if record is None:
            return None
        ensure_notification_transition(record.status, NotificationStatus.DELIVERED)
        return await self._repository.update_status(
            record, NotificationStatus.DELIVERED, at=self._clock()
        )

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[Any]:
        return await self._repository.list_for_user(user_id, limit=limit)

    async def list_for_ticket(self, ticket_id: str, type: Optional[str] = None) -> List[Any]:
        """Audit trail of one ticket, oldest first."""
        return await self._repository.list_for_ticket(ticket_id, type=type)

    async def _safe_dispatch(self, message: NotificationMessage) -> Optional[Any]:
        try:
            return await self.dispatch(message)
        except Exception:
            logger.exception(
                "Could not record notification",
                extra={"ticket_id": message.ticket_id, "type": message.type}
            )
            return None

    @staticmethod
    def _sla_recipient(ticket: Any) -> Optional[str]:
        return ticket.assigned_to or ticket.created_by

    # ========== Event helpers ==========

    async def notify_ticket_created(self, ticket: Any) -> None:
        message = f"New ticket #{ticket.ticket_number}: {ticket.title}"
        if ticket.created_by:
            await self._safe_dispatch(NotificationMessage(
                ticket_id=ticket.id,
                recipient_user_id=ticket.created_by,
                channel=NotificationChannel.INTERNAL,
                type=NotificationType.TICKET_CREATED,
                message=message,
                subject=f"Ticket #{ticket.ticket_number} created",
                metadata={"ticket_number": ticket.ticket_number},
            ))

        if ticket.assigned_to and ticket.assigned_to != ticket.created_by:
            await self.notify_assignment(ticket, ticket.assigned_to)

    async def notify_assignment(self, ticket: Any, assigned_to_user_id: str) -> None:
        await self._safe_dispatch(NotificationMessage(
            ticket_id=ticket.id,
            recipient_user_id=assigned_to_user_id,
            channel=NotificationChannel.INTERNAL,
            type=NotificationType.TICKET_ASSIGNED,
            message=f"Ticket #{ticket.ticket_number} has been assigned to you: {ticket.title}",
            subject=f"Ticket #{ticket.ticket_number} assigned",
            metadata={"ticket_number": ticket.ticket_number},
        ))

    async def notify_status_change(self, ticket: Any, old_status: str, new_status: str) -> None:
        message = (
            f"Ticket #{ticket.ticket_number} changed status: "
            f"{STATUS_LABELS.get(old_status, old_status)} -> {STATUS_LABELS.get(new_status, new_status)}"
        )
        recipients = [ticket.created_by]
        if ticket.assigned_to and ticket.assigned_to != ticket.created_by:
            recipients.append(ticket.assigned_to)

        for user_id in filter(None, recipients):
            await self._safe_dispatch(NotificationMessage(
                ticket_id=ticket.id,
                recipient_user_id=user_id,
                channel=NotificationChannel.INTERNAL,
                type=NotificationType.STATUS_CHANGED,
                message=message,
                subject=f"Status change - Ticket #{ticket.ticket_number}",
                metadata={
                    "ticket_number": ticket.ticket_number,
                    "old_status": old_status,
                    "new_status": new_status,
                },
            ))

    async def notify_new_comment(
        self,
        ticket: Any,
        author_id: str,
        author_name: str,
        is_internal: bool
    ) -> None:
        """Tell the other participants; internal notes never reach the requester."""
        recipients = [] if is_internal else [ticket.created_by]
        recipients.append(ticket.assigned_to)
        kind = "internal note" if is_internal else "comment"

        for user_id in dict.fromkeys(filter(None, recipients)):
            if user_id == author_id:
                continue
            await self._safe_dispatch(NotificationMessage(
                ticket_id=ticket.id,
                recipient_user_id=user_id,
                channel=NotificationChannel.INTERNAL,
                type=NotificationType.NEW_COMMENT,
                message=f"{author_name} added a {kind} to ticket #{ticket.ticket_number}",
                subject=f"New {kind} - Ticket #{ticket.ticket_number}",
                metadata={
                    "ticket_number": ticket.ticket_number,
                    "is_internal": is_internal,
                    "author_name": author_name,
                },
            ))

    async def notify_sla_breach(
        self,
        ticket: Any,
        sla_type: str,
        hours_since_created: Optional[float] = None
    ) -> None:
        recipient = self._sla_recipient(ticket)
        if recipient is None:
            logger.warning("SLA breach without recipient", extra={"ticket_id": ticket.id})
            return

        label = "first response" if sla_type == SLAType.RESPONSE else "resolution"
        for channel in self._breach_channels:
            await self._safe_dispatch(NotificationMessage(
                ticket_id=ticket.id,
                recipient_user_id=recipient,
                channel=channel,
                type=NotificationType.SLA_BREACH,
                message=f"ALERT: ticket #{ticket.ticket_number} has breached its {label} SLA",
                subject=f"SLA alert - Ticket #{ticket.ticket_number}",
                metadata={
                    "ticket_number": ticket.ticket_number,
                    "breach_type": sla_type,
                    "hours_since_created": hours_since_created,
                },
            ))

    async def notify_sla_warning(self, ticket: Any, sla_type: str, hours_remaining: float) -> None:
        recipient = self._sla_recipient(ticket)
        if recipient is None:
            return

        label = "first response" if sla_type == SLAType.RESPONSE else "resolution"
        await self._safe_dispatch(NotificationMessage(
            ticket_id=ticket.id,
            recipient_user_id=recipient,
            channel=NotificationChannel.INTERNAL,
            type=NotificationType.SLA_WARNING,
            message=(
                f"Ticket #{ticket.ticket_number} is close to breaching its {label} SLA. "
                f"{abs(hours_remaining):.1f} hours left."
            ),
            subject=f"SLA warning - Ticket #{ticket.ticket_number}",
            metadata={
                "ticket_number": ticket.ticket_number,
                "warning_type": sla_type,
                "hours_remaining": hours_remaining,
            },
        ))
