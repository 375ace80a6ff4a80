"""
Ticket Application Services
============================

Ticket operations that wire the SLA policy store, the assignment engine
and the notification dispatcher together.

Single-ticket operations raise typed exceptions; the request session rolls
back on them, so a failed create/comment/close leaves no partial state.
"""

from typing import Any, Dict, List, Optional, Tuple

from ticketdesk.assignment.application import AssignmentService, WorkloadBalancer
from ticketdesk.assignment.domain import AssignmentCandidate
from ticketdesk.config import TicketStatus, VALID_PRIORITIES, VALID_ROLES, VALID_STATUSES
from ticketdesk.core.clock import Clock, utc_now
from ticketdesk.core.exceptions import (
    DomainException,
    ResourceNotFoundException,
    ValidationException,
)
from ticketdesk.notifications.application import NotificationDispatcher
from ticketdesk.shared.infrastructure.logging import get_logger
from ticketdesk.sla.application.services import SLAPolicyService
from ticketdesk.sla.domain import DEFAULT_WARNING_RATIO, SLACalculator, SLAClock
from ticketdesk.tickets.domain import (
    ICommentRepository,
    ITicketRepository,
    IUserRepository,
    TicketLifecycle,
)

logger = get_logger(__name__)


class TicketService:
    """
    Service for the ticket lifecycle.

    Coordinates between domain rules, repositories and the other contexts.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        comment_repository: ICommentRepository,
        user_repository: IUserRepository,
        policy_service: SLAPolicyService,
        assignment_service: AssignmentService,
        dispatcher: NotificationDispatcher,
        warning_ratio: float = DEFAULT_WARNING_RATIO,
        clock: Clock = utc_now
    ):
        self._ticket_repo = ticket_repository
        self._comment_repo = comment_repository
        self._user_repo = user_repository
        self._policy_service = policy_service
        self._assignment = assignment_service
        self._dispatcher = dispatcher
        self._warning_ratio = warning_ratio
        self._clock = clock

    async def _get(self, ticket_id: str) -> Any:
        ticket = await self._ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def create_ticket(
        self,
        title: str,
        created_by: str,
        priority: str,
        category: Optional[str] = None,
        description: Optional[str] = None,
        contact_medium: Optional[str] = None,
        contact_value: Optional[str] = None
    ) -> Any:
        """
        Create a ticket with its SLA snapshot and initial assignee.

        A ticket without a matching policy is exempt; one without an
        eligible agent stays unassigned. Neither is an error.
        """
        if priority not in VALID_PRIORITIES:
            raise ValidationException(
                f"Invalid priority '{priority}'",
                {"allowed": VALID_PRIORITIES}
            )

        policy = await self._policy_service.lookup(category, priority)
        assigned_to = await self._assignment.assign(
            AssignmentCandidate(
                priority=priority,
                category=category,
                contact_medium=contact_medium,
                created_by=created_by,
            ),
            policy_role=policy.auto_assign_to_role if policy else None,
        )

        now = self._clock()
        ticket = await self._ticket_repo.create({
            "ticket_number": await self._ticket_repo.next_ticket_number(),
            "title": title,
            "description": description,
            "status": TicketStatus.NEW,
            "priority": priority,
            "category": category,
            "created_by": created_by,
            "assigned_to": assigned_to,
            "contact_medium": contact_medium,
            "contact_value": contact_value,
            "created_at": now,
            "updated_at": now,
            "sla_response_time_hours": policy.response_time_hours if policy else None,
            "sla_resolution_time_hours": policy.resolution_time_hours if policy else None,
        })

        logger.info(
            "Ticket created",
            extra={
                "ticket_id": ticket.id,
                "ticket_number": ticket.ticket_number,
                "priority": priority,
                "assigned_to": assigned_to,
                "sla_exempt": policy is None,
            }
        )
        await self._dispatcher.notify_ticket_created(ticket)
        return ticket

    async def get_ticket(self, ticket_id: str) -> Any:
        return await self._get(ticket_id)

    async def get_ticket_with_clock(self, ticket_id: str) -> Tuple[Any, SLAClock]:
        ticket = await self._get(ticket_id)
        return ticket, self.clock_for(ticket)

    def clock_for(self, ticket: Any) -> SLAClock:
        return SLACalculator.clock_for(ticket, self._clock(), self._warning_ratio)

    async def list_tickets(
        self,
        filters: Dict[str, Any],
        limit: int = 100,
        offset: int = 0
    ) -> List[Any]:
        status = filters.get("status")
        if status is not None:
            statuses = status if isinstance(status, (list, tuple)) else [status]
            unknown = [s for s in statuses if s not in VALID_STATUSES]
            if unknown:
                raise ValidationException(f"Invalid status filter {unknown}")
        return await self._ticket_repo.list(filters, limit=limit, offset=offset)

    async def list_comments(self, ticket_id: str, include_internal: bool = True) -> List[Any]:
        await self._get(ticket_id)
        comments = await self._comment_repo.list_for_ticket(ticket_id)
        if include_internal:
            return comments
        return [comment for comment in comments if not comment.is_internal]

    async def add_comment(
        self,
        ticket_id: str,
        user_id: str,
        content: str,
        is_internal: bool = False
    ) -> Any:
        """
        Add a comment; the first one by someone other than the creator
        records the ticket's first response.
        """
        ticket = await self._get(ticket_id)
        if not content or not content.strip():
            raise ValidationException("Comment content cannot be empty")

        comment = await self._comment_repo.create(ticket.id, user_id, content, is_internal)

        if user_id != ticket.created_by:
            await self.record_first_response(ticket.id, user_id)
            ticket = await self._get(ticket_id)

        author = await self._user_repo.get_by_id(user_id)
        author_name = (author.full_name or author.email) if author else "Someone"
        await self._dispatcher.notify_new_comment(ticket, user_id, author_name, is_internal)
        return comment

    async def record_first_response(self, ticket_id: str, responder_id: str) -> bool:
        """
        Stamp ``first_response_at`` unless it is already set.

        Moves a new ticket to in_progress and snapshots ``response_sla_met``.

        Returns:
            True when this call recorded the response, False if one existed
        """
        ticket = await self._get(ticket_id)
        if ticket.first_response_at is not None or responder_id == ticket.created_by:
            return False

        old_status = ticket.status
        new_status = old_status
        if old_status == TicketStatus.NEW:
            TicketLifecycle.ensure_transition(
                ticket.id, old_status, TicketStatus.IN_PROGRESS, via_first_response=True
            )
            new_status = TicketStatus.IN_PROGRESS

        responded_at = self._clock()
        response_sla_met = SLACalculator.sla_met(
            ticket.created_at, responded_at, ticket.sla_response_time_hours
        )
        recorded = await self._ticket_repo.set_first_response(
            ticket.id, responded_at, response_sla_met, new_status
        )
        if not recorded:
            return False

        logger.info(
            "First response recorded",
            extra={
                "ticket_id": ticket.id,
                "responder_id": responder_id,
                "response_sla_met": response_sla_met,
            }
        )
        if new_status != old_status:
            ticket = await self._get(ticket_id)
            await self._dispatcher.notify_status_change(ticket, old_status, new_status)
        return True

    async def update_status(self, ticket_id: str, new_status: str) -> Any:
        """
        Move a ticket forward in its lifecycle.

        Raises:
            ResourceNotFoundException: unknown ticket
            InvalidStatusTransitionException: move not allowed from the current status
        """
        if new_status not in VALID_STATUSES:
            raise ValidationException(
                f"Invalid status '{new_status}'",
                {"allowed": VALID_STATUSES}
            )

        ticket = await self._get(ticket_id)
        old_status = ticket.status
        TicketLifecycle.ensure_transition(ticket.id, old_status, new_status)

        now = self._clock()
        if new_status == TicketStatus.RESOLVED:
            ticket.resolved_at = now
            if ticket.resolution_sla_met is None:
                ticket.resolution_sla_met = SLACalculator.sla_met(
                    ticket.created_at, now, ticket.sla_resolution_time_hours
                )
        elif new_status == TicketStatus.CLOSED:
            ticket.closed_at = now

        ticket.status = new_status
        await self._ticket_repo.save(ticket)

        logger.info(
            "Ticket status changed",
            extra={"ticket_id": ticket.id, "old_status": old_status, "new_status": new_status}
        )
        await self._dispatcher.notify_status_change(ticket, old_status, new_status)
        return ticket

    async def close_ticket(
        self,
        ticket_id: str,
        user_id: str,
        comment: Optional[str] = None
    ) -> Any:
        """
        Close a ticket, resolving it first when it is still in progress.

        An optional closing comment is added before the status moves.
        """
        if comment:
            await self.add_comment(ticket_id, user_id, comment)

        ticket = await self._get(ticket_id)
        if ticket.status == TicketStatus.IN_PROGRESS:
            await self.update_status(ticket_id, TicketStatus.RESOLVED)
        return await self.update_status(ticket_id, TicketStatus.CLOSED)

    async def assign_ticket(self, ticket_id: str, user_id: str) -> Any:
        """Manual assignment to an active user."""
        ticket = await self._get(ticket_id)
        if TicketLifecycle.is_terminal(ticket.status):
            raise ValidationException(
                f"Ticket {ticket_id} is closed and cannot be reassigned",
                {"ticket_id": ticket_id}
            )

        user = await self._user_repo.get_by_id(user_id)
        if user is None:
            raise ResourceNotFoundException("User", user_id)
        if not user.is_active:
            raise ValidationException(f"User '{user_id}' is inactive", {"user_id": user_id})

        previous = ticket.assigned_to
        ticket.assigned_to = user_id
        await self._ticket_repo.save(ticket)

        logger.info(
            "Ticket assigned",
            extra={"ticket_id": ticket.id, "from_user_id": previous, "to_user_id": user_id}
        )
        if previous != user_id:
            await self._dispatcher.notify_assignment(ticket, user_id)
        return ticket


class UserService:
    """Requesters, agents and admins known to the desk."""

    def __init__(self, user_repository: IUserRepository, balancer: WorkloadBalancer):
        self._user_repo = user_repository
        self._balancer = balancer

    async def create_user(
        self,
        email: str,
        role: str,
        full_name: Optional[str] = None,
        phone: Optional[str] = None
    ) -> Any:
        if role not in VALID_ROLES:
            raise ValidationException(f"Unknown role '{role}'", {"allowed": VALID_ROLES})
        if await self._user_repo.get_by_email(email) is not None:
            raise DomainException(f"User with email '{email}' already exists", {"email": email})

        user = await self._user_repo.create({
            "email": email,
            "role": role,
            "full_name": full_name,
            "phone": phone,
            "is_active": True,
        })
        logger.info("User created", extra={"user_id": user.id, "role": role})
        return user

    async def get_user(self, user_id: str) -> Any:
        user = await self._user_repo.get_by_id(user_id)
        if user is None:
            raise ResourceNotFoundException("User", user_id)
        return user

    async def list_users(self, role: Optional[str] = None, include_inactive: bool = False) -> List[Any]:
        return await self._user_repo.list(role=role, include_inactive=include_inactive)

    async def deactivate_user(self, user_id: str, reassign_to: Optional[str] = None) -> Tuple[Any, int]:
        """
        Take a user out of the assignment pool.

        With ``reassign_to`` their open tickets move to that user first;
        otherwise the tickets keep their assignee until moved by hand.

        Returns:
            (user, number of tickets moved)
        """
        user = await self.get_user(user_id)
        moved = 0
        if reassign_to:
            moved = await self._balancer.reassign_user_tickets(user_id, reassign_to)

        user.is_active = False
        await self._user_repo.save(user)
        logger.info(
            "User deactivated",
            extra={"user_id": user_id, "reassigned_to": reassign_to, "moved": moved}
        )
        return user, moved
