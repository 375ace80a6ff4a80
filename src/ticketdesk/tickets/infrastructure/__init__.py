"""
Tickets Infrastructure Layer
=============================

- Models: SQLAlchemy ORM models (tickets, comments, users)
- Repositories: Data access layer
"""

from ticketdesk.tickets.infrastructure.models import TicketModel, CommentModel, UserModel
from ticketdesk.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyCommentRepository,
    SQLAlchemyUserRepository,
)

__all__ = [
    "TicketModel",
    "CommentModel",
    "UserModel",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyCommentRepository",
    "SQLAlchemyUserRepository",
]
