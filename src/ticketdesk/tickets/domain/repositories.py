"""
Ticket Repository Interfaces
=============================

Storage contracts for tickets, comments and users. The SLA, assignment and
ticket services depend on these abstractions, not on SQLAlchemy.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional


class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Any]:
        """Get ticket by ID."""

    @abstractmethod
    async def next_ticket_number(self) -> int:
        """Next human-readable sequential ticket number."""

    @abstractmethod
    async def create(self, fields: Dict[str, Any]) -> Any:
        """Persist a new ticket built from column values."""

    @abstractmethod
    async def save(self, ticket: Any) -> Any:
        """Flush changes made to a loaded ticket."""

    @abstractmethod
    async def list(
        self,
        filters: dict,
        limit: Optional[int] = 100,
        offset: int = 0
    ) -> List[Any]:
        """List tickets filtered by status-set, assignee, creator, category, priority."""

    @abstractmethod
    async def list_created_between(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[Any]:
        """Tickets created inside an optional date range."""

    @abstractmethod
    async def count_open_by_assignee(self, user_ids: Iterable[str]) -> Dict[str, int]:
        """Open-ticket count per assignee (zero for users with none)."""

    @abstractmethod
    async def list_open_movable(self, assignee_id: str, limit: int) -> List[Any]:
        """Open, non-urgent tickets of one assignee, oldest first."""

    @abstractmethod
    async def reassign(self, ticket_ids: List[str], to_user_id: str) -> int:
        """Point the given tickets at a new assignee."""

    @abstractmethod
    async def reassign_all_open(self, from_user_id: str, to_user_id: str) -> List[str]:
        """Move every open ticket of one assignee to another; returns moved ids."""

    @abstractmethod
    async def claim_breach_notification(self, ticket_id: str, sla_type: str) -> bool:
        """Set the breach guard for one clock if unset; True when this call set it."""

    @abstractmethod
    async def set_first_response(
        self,
        ticket_id: str,
        responded_at: datetime,
        response_sla_met: Optional[bool],
        status: str
    ) -> bool:
        """Record the first response if none exists; True when this call set it."""


class ICommentRepository(ABC):
    """Interface for ticket comment data access."""

    @abstractmethod
    async def create(
        self,
        ticket_id: str,
        user_id: str,
        content: str,
        is_internal: bool = False
    ) -> Any:
        """Persist a new comment."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[Any]:
        """Comments of a ticket in chronological order."""


class IUserRepository(ABC):
    """Interface for user data access."""

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[Any]:
        """Get user by ID."""

    @abstractmethod
    async def list_active(self, roles: Iterable[str]) -> List[Any]:
        """Active users holding any of ``roles``, ordered by ID."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Any]:
        """Get user by email."""

    @abstractmethod
    async def list(self, role: Optional[str] = None, include_inactive: bool = False) -> List[Any]:
        """Users ordered by ID, optionally filtered by role."""

    @abstractmethod
    async def create(self, fields: Dict[str, Any]) -> Any:
        """Persist a new user."""

    @abstractmethod
    async def save(self, user: Any) -> Any:
        """Flush changes made to a loaded user."""
