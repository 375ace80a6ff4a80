"""
Ticket Infrastructure Repositories
===================================

SQLAlchemy implementations of the ticket, comment and user repositories.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.config import OPEN_STATUSES, Priority, SLAType
from ticketdesk.core.clock import utc_now
from ticketdesk.tickets.domain import ITicketRepository, ICommentRepository, IUserRepository
from ticketdesk.tickets.infrastructure.models import TicketModel, CommentModel, UserModel

_BREACH_FLAGS = {
    SLAType.RESPONSE: "response_breach_notified",
    SLAType.RESOLUTION: "resolution_breach_notified",
}


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Guard fields (first response, breach flags) are written with conditional
    UPDATEs so concurrent writers cannot both win.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, ticket_id: str) -> Optional[TicketModel]:
        """Get ticket by ID, refreshed from the database."""
        stmt = (
            select(TicketModel)
            .where(TicketModel.id == ticket_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def next_ticket_number(self) -> int:
        stmt = select(func.coalesce(func.max(TicketModel.ticket_number), 0))
        result = await self._session.execute(stmt)
        return int(result.scalar_one()) + 1

    async def create(self, fields: Dict[str, Any]) -> TicketModel:
        ticket = TicketModel(**fields)
        self._session.add(ticket)
        await self._session.flush()
        return ticket

    async def save(self, ticket: TicketModel) -> TicketModel:
        ticket.updated_at = utc_now()
        await self._session.flush()
        return ticket

    async def list(
        self,
        filters: dict,
        limit: Optional[int] = 100,
        offset: int = 0
    ) -> List[TicketModel]:
        """List tickets with filters."""
        stmt = select(TicketModel)

        conditions = []
        if "status" in filters:
            status_list = filters["status"]
            if isinstance(status_list, (list, tuple, set, frozenset)):
                conditions.append(TicketModel.status.in_(list(status_list)))
            else:
                conditions.append(TicketModel.status == status_list)

        for key in ("assigned_to", "created_by", "category", "priority"):
            if key in filters:
                conditions.append(getattr(TicketModel, key) == filters[key])

        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(TicketModel.created_at.desc(), TicketModel.ticket_number.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        stmt = stmt.offset(offset)

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_created_between(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[TicketModel]:
        stmt = select(TicketModel)
        if start is not None:
            stmt = stmt.where(TicketModel.created_at >= start)
        if end is not None:
            stmt = stmt.where(TicketModel.created_at <= end)
        result = await self._session.execute(stmt.order_by(TicketModel.created_at))
        return list(result.scalars().all())

    async def count_open_by_assignee(self, user_ids: Iterable[str]) -> Dict[str, int]:
        ids = list(user_ids)
        counts = {user_id: 0 for user_id in ids}
        if not ids:
            return counts

        stmt = (
            select(TicketModel.assigned_to, func.count(TicketModel.id))
            .where(
                TicketModel.assigned_to.in_(ids),
                TicketModel.status.in_(OPEN_STATUSES),
            )
            .group_by(TicketModel.assigned_to)
        )
        result = await self._session.execute(stmt)
        for user_id, count in result.all():
            counts[user_id] = count
        return counts

    async def list_open_movable(self, assignee_id: str, limit: int) -> List[TicketModel]:
        stmt = (
            select(TicketModel)
            .where(
                TicketModel.assigned_to == assignee_id,
                TicketModel.status.in_(OPEN_STATUSES),
                TicketModel.priority != Priority.URGENT,
            )
            .order_by(TicketModel.created_at, TicketModel.ticket_number)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def reassign(self, ticket_ids: List[str], to_user_id: str) -> int:
        if not ticket_ids:
            return 0
        stmt = (
            update(TicketModel)
            .where(TicketModel.id.in_(ticket_ids))
            .values(assigned_to=to_user_id, updated_at=utc_now())
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def reassign_all_open(self, from_user_id: str, to_user_id: str) -> List[str]:
        stmt = select(TicketModel.id).where(
            TicketModel.assigned_to == from_user_id,
            TicketModel.status.in_(OPEN_STATUSES),
        )
        result = await self._session.execute(stmt)
        ticket_ids = list(result.scalars().all())
        await self.reassign(ticket_ids, to_user_id)
        return ticket_ids

    async def claim_breach_notification(self, ticket_id: str, sla_type: str) -> bool:
        flag = _BREACH_FLAGS[sla_type]
        stmt = (
            update(TicketModel)
            .where(
                TicketModel.id == ticket_id,
                getattr(TicketModel, flag).is_(False),
            )
            .values(**{flag: True, "sla_breach_notified": True})
            .returning(TicketModel.id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def set_first_response(
        self,
        ticket_id: str,
        responded_at: datetime,
        response_sla_met: Optional[bool],
        status: str
    ) -> bool:
        stmt = (
            update(TicketModel)
            .where(
                TicketModel.id == ticket_id,
                TicketModel.first_response_at.is_(None),
            )
            .values(
                first_response_at=responded_at,
                response_sla_met=response_sla_met,
                status=status,
                updated_at=responded_at,
            )
            .returning(TicketModel.id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None


class SQLAlchemyCommentRepository(ICommentRepository):
    """SQLAlchemy implementation of comment repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(
        self,
        ticket_id: str,
        user_id: str,
        content: str,
        is_internal: bool = False
    ) -> CommentModel:
        comment = CommentModel(
            ticket_id=ticket_id,
            user_id=user_id,
            content=content,
            is_internal=is_internal,
        )
        self._session.add(comment)
        await self._session.flush()
        return comment

    async def list_for_ticket(self, ticket_id: str) -> List[CommentModel]:
        stmt = (
            select(CommentModel)
            .where(CommentModel.ticket_id == ticket_id)
            .order_by(CommentModel.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class SQLAlchemyUserRepository(IUserRepository):
    """SQLAlchemy implementation of user repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, user_id: str) -> Optional[UserModel]:
        return await self._session.get(UserModel, user_id)

    async def list_active(self, roles: Iterable[str]) -> List[UserModel]:
        stmt = (
            select(UserModel)
            .where(UserModel.is_active.is_(True), UserModel.role.in_(list(roles)))
            .order_by(UserModel.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self._session.execute(select(UserModel).where(UserModel.email == email))
        return result.scalar_one_or_none()

    async def list(self, role: Optional[str] = None, include_inactive: bool = False) -> List[UserModel]:
        stmt = select(UserModel).order_by(UserModel.id)
        if role:
            stmt = stmt.where(UserModel.role == role)
        if not include_inactive:
            stmt = stmt.where(UserModel.is_active.is_(True))
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, fields: Dict[str, Any]) -> UserModel:
        user = UserModel(**fields)
        self._session.add(user)
        await self._session.flush()
        return user

    async def save(self, user: UserModel) -> UserModel:
        await self._session.flush()
        return user
