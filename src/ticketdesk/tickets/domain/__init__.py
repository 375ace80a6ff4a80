"""
Tickets Domain Layer
====================

Ticket lifecycle rules and the storage interfaces other contexts depend on.
This layer has no dependencies on infrastructure.
"""

from ticketdesk.tickets.domain.lifecycle import TicketLifecycle
from ticketdesk.tickets.domain.repositories import (
    ITicketRepository,
    ICommentRepository,
    IUserRepository,
)

__all__ = [
    "TicketLifecycle",
    "ITicketRepository",
    "ICommentRepository",
    "IUserRepository",
]
