"""
Ticket Controllers (API Routes)
================================

FastAPI routes for the ticket lifecycle.

Controllers are thin - they delegate to the ticket service. Typed
application errors are turned into JSON responses by the app's exception
handler.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from ticketdesk.dependencies import get_ticket_service
from ticketdesk.tickets.application import (
    AssignTicketRequest,
    CloseTicketRequest,
    CommentCreateRequest,
    CommentResponse,
    StatusUpdateRequest,
    TicketCreateRequest,
    TicketListQueryDTO,
    TicketListResponse,
    TicketResponse,
    TicketService,
)

router = APIRouter(prefix="/tickets", tags=["Tickets"])

TICKET_CREATE_EXAMPLE = {
    "title": "Cannot download my invoice",
    "description": "The invoice page returns an error since yesterday.",
    "priority": "high",
    "category": "billing",
    "created_by": "5f0c7a62-4d5b-4f7e-9a51-8e1c2f3b4a10",
    "contact_medium": "email",
    "contact_value": "customer@example.com"
}


@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ticket",
    description="""
    Open a ticket. The matching SLA policy (exact category first, then the
    category wildcard) is snapshotted onto the ticket and an assignee is
    chosen by the assignment rules or the workload balancer.

    A ticket with no matching policy is exempt from SLA tracking; one with
    no eligible agent stays unassigned.
    """,
    responses={201: {"content": {"application/json": {"example": TICKET_CREATE_EXAMPLE}}}}
)
async def create_ticket(
    request: TicketCreateRequest,
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.create_ticket(**request.model_dump())
    return TicketResponse.from_ticket(ticket, service.clock_for(ticket))


@router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets",
    description="List tickets, newest first, filtered by status, priority, category, assignee or creator."
)
async def list_tickets(
    query: TicketListQueryDTO = Depends(),
    service: TicketService = Depends(get_ticket_service)
):
    tickets = await service.list_tickets(query.filters(), limit=query.limit, offset=query.offset)
    return TicketListResponse(
        tickets=[TicketResponse.from_ticket(t, service.clock_for(t)) for t in tickets],
        total=len(tickets)
    )


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get a ticket with its SLA clock",
    responses={404: {"description": "Ticket not found"}}
)
async def get_ticket(
    ticket_id: str,
    service: TicketService = Depends(get_ticket_service)
):
    ticket, clock = await service.get_ticket_with_clock(ticket_id)
    return TicketResponse.from_ticket(ticket, clock)


@router.get(
    "/{ticket_id}/comments",
    response_model=List[CommentResponse],
    summary="List ticket comments"
)
async def list_comments(
    ticket_id: str,
    include_internal: bool = Query(True, description="Include internal notes"),
    service: TicketService = Depends(get_ticket_service)
):
    return await service.list_comments(ticket_id, include_internal=include_internal)


@router.post(
    "/{ticket_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment",
    description="""
    Add a comment or internal note. The first comment by anyone other than
    the ticket's creator records the first response and moves a new ticket
    to `in_progress`.
    """
)
async def add_comment(
    ticket_id: str,
    request: CommentCreateRequest,
    service: TicketService = Depends(get_ticket_service)
):
    return await service.add_comment(
        ticket_id, request.user_id, request.content, request.is_internal
    )


@router.patch(
    "/{ticket_id}/status",
    response_model=TicketResponse,
    summary="Change ticket status",
    description="""
    Move a ticket forward: `in_progress -> resolved -> closed`.
    `new -> in_progress` only happens through a first response; any other
    move is rejected with 409.
    """,
    responses={409: {"description": "Transition not allowed"}}
)
async def update_status(
    ticket_id: str,
    request: StatusUpdateRequest,
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.update_status(ticket_id, request.status)
    return TicketResponse.from_ticket(ticket, service.clock_for(ticket))


@router.post(
    "/{ticket_id}/close",
    response_model=TicketResponse,
    summary="Close a ticket",
    description="Add an optional closing comment, resolve the ticket if it is in progress, then close it."
)
async def close_ticket(
    ticket_id: str,
    request: CloseTicketRequest,
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.close_ticket(ticket_id, request.user_id, request.comment)
    return TicketResponse.from_ticket(ticket, service.clock_for(ticket))


@router.post(
    "/{ticket_id}/assign",
    response_model=TicketResponse,
    summary="Assign a ticket manually"
)
async def assign_ticket(
    ticket_id: str,
    request: AssignTicketRequest,
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.assign_ticket(ticket_id, request.user_id)
    return TicketResponse.from_ticket(ticket, service.clock_for(ticket))


tickets_router = router
