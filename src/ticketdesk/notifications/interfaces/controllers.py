"""
Notification Controllers (API Routes)
======================================

Read access to notifications per user or per ticket, and delivery
confirmations from transports.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ticketdesk.core.exceptions import ResourceNotFoundException
from ticketdesk.dependencies import get_dispatcher
from ticketdesk.notifications.application import (
    NotificationDispatcher,
    NotificationListResponse,
    NotificationResponse,
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List a user's notifications",
    description="Newest first."
)
async def list_notifications(
    user_id: str = Query(..., description="Recipient user ID"),
    limit: int = Query(50, ge=1, le=200),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    records = await dispatcher.list_for_user(user_id, limit=limit)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(record) for record in records],
        total=len(records)
    )


@router.get(
    "/tickets/{ticket_id}",
    response_model=NotificationListResponse,
    summary="List the notifications of a ticket",
    description="Every notification recorded for the ticket, oldest first, optionally of one type."
)
async def list_ticket_notifications(
    ticket_id: str,
    type: Optional[str] = Query(None, description="e.g. sla_breach, sla_warning"),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    records = await dispatcher.list_for_ticket(ticket_id, type=type)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(record) for record in records],
        total=len(records)
    )

@router.post(
    "/{notification_id}/delivered",
    response_model=NotificationResponse,
    summary="Confirm delivery of a notification",
    description="Only a `sent` notification can be marked delivered.",
    responses={404: {"description": "Notification not found"}, 409: {"description": "Not in sent state"}}
)
async def mark_delivered(
    notification_id: str,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    record = await dispatcher.mark_delivered(notification_id)
    if record is None:
        raise ResourceNotFoundException("Notification", notification_id)
    return NotificationResponse.model_validate(record)


notifications_router = router
