"""
Notification Infrastructure Repositories
=========================================

SQLAlchemy implementation of the notification repository.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.config import NotificationStatus
from ticketdesk.notifications.application.services import INotificationRepository
from ticketdesk.notifications.domain import NotificationMessage
from ticketdesk.notifications.infrastructure.models import NotificationModel


class SQLAlchemyNotificationRepository(INotificationRepository):
    """
    Notification persistence.

    Writes run inside a SAVEPOINT so a failed notification insert cannot
    roll back the ticket operation sharing the session.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, message: NotificationMessage) -> NotificationModel:
        model = NotificationModel(
            ticket_id=message.ticket_id,
            user_id=message.recipient_user_id,
            channel=message.channel,
            type=message.type,
            subject=message.subject,
            message=message.message,
            extra_data=dict(message.metadata),
            status=NotificationStatus.PENDING,
        )
        async with self._session.begin_nested():
            self._session.add(model)
        return model

    async def update_status(
        self,
        record: NotificationModel,
        status: str,
        at: Optional[datetime] = None,
        error_message: Optional[str] = None
    ) -> NotificationModel:
        async with self._session.begin_nested():
            record.status = status
            if status == NotificationStatus.SENT:
                record.sent_at = at
            elif status == NotificationStatus.DELIVERED:
                record.delivered_at = at
            elif status == NotificationStatus.FAILED:
                record.error_message = error_message
        return record

    async def get_by_id(self, notification_id: str) -> Optional[NotificationModel]:
        return await self._session.get(NotificationModel, notification_id)

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[NotificationModel]:
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_ticket(self, ticket_id: str, type: Optional[str] = None) -> List[NotificationModel]:
        stmt = select(NotificationModel).where(NotificationModel.ticket_id == ticket_id)
        if type is not None:
            stmt = stmt.where(NotificationModel.type == type)
        result = await self._session.execute(stmt.order_by(NotificationModel.created_at))
        return list(result.scalars().all())
