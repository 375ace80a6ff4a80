"""
Tickets Application Layer
==========================

Ticket lifecycle and user services with their DTOs.
"""

from ticketdesk.tickets.application.services import TicketService, UserService
from ticketdesk.tickets.application.dto import (
    TicketCreateRequest,
    CommentCreateRequest,
    StatusUpdateRequest,
    CloseTicketRequest,
    AssignTicketRequest,
    TicketListQueryDTO,
    TicketResponse,
    TicketListResponse,
    CommentResponse,
    UserCreateRequest,
    UserDeactivateRequest,
    UserResponse,
    UserDeactivateResponse,
)

__all__ = [
    "TicketService",
    "TicketCreateRequest",
    "CommentCreateRequest",
    "StatusUpdateRequest",
    "CloseTicketRequest",
    "AssignTicketRequest",
    "TicketListQueryDTO",
    "TicketResponse",
    "TicketListResponse",
    "CommentResponse",
    "UserService",
    "UserCreateRequest",
    "UserDeactivateRequest",
    "UserResponse",
    "UserDeactivateResponse",
]
