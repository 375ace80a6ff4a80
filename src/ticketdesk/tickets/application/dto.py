"""
Ticket Application DTOs
========================

Pydantic models for the ticket API.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ticketdesk.sla.application.dto import SLAClockResponse
from ticketdesk.sla.domain import SLAClock

# ========== Type Aliases for Literals ==========
PriorityStr = Literal["low", "medium", "high", "urgent"]
TicketStatusStr = Literal["new", "in_progress", "resolved", "closed"]
ContactMediumStr = Literal["whatsapp", "email", "phone"]
RoleStr = Literal["admin", "agent", "user"]


# ========== Request DTOs ==========

class TicketCreateRequest(BaseModel):
    """Request model for opening a ticket."""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    priority: PriorityStr = "medium"
    category: Optional[str] = Field(None, max_length=100)
    created_by: str = Field(..., min_length=1, description="Requesting user ID")
    contact_medium: Optional[ContactMediumStr] = None
    contact_value: Optional[str] = Field(None, max_length=255)


class CommentCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    is_internal: bool = False


class StatusUpdateRequest(BaseModel):
    status: TicketStatusStr


class CloseTicketRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    comment: Optional[str] = Field(None, description="Closing note added as a comment")


class AssignTicketRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class UserCreateRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    full_name: Optional[str] = Field(None, max_length=255)
    role: RoleStr = "user"
    phone: Optional[str] = Field(None, max_length=50)


class UserDeactivateRequest(BaseModel):
    reassign_to: Optional[str] = Field(None, description="User who takes over the open tickets")


class TicketListQueryDTO(BaseModel):
    """Query parameters for listing tickets."""
    status: Optional[TicketStatusStr] = None
    priority: Optional[PriorityStr] = None
    category: Optional[str] = None
    assigned_to: Optional[str] = None
    created_by: Optional[str] = None
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)

    def filters(self) -> dict:
        return self.model_dump(exclude_none=True, exclude={"limit", "offset"})


# ========== Response DTOs ==========

class TicketResponse(BaseModel):
    """Ticket with its derived SLA clock."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    ticket_number: int
    title: str
    description: Optional[str] = None
    status: TicketStatusStr
    priority: PriorityStr
    category: Optional[str] = None
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None
    contact_medium: Optional[str] = None
    contact_value: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    sla_response_time_hours: Optional[float] = None
    sla_resolution_time_hours: Optional[float] = None
    response_sla_met: Optional[bool] = None
    resolution_sla_met: Optional[bool] = None
    sla: Optional[SLAClockResponse] = None

    @classmethod
    def from_ticket(cls, ticket, clock: Optional[SLAClock] = None) -> "TicketResponse":
        response = cls.model_validate(ticket)
        if clock is not None:
            response.sla = SLAClockResponse.from_clock(clock)
        return response


class TicketListResponse(BaseModel):
    tickets: List[TicketResponse] = Field(default_factory=list)
    total: int = 0


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ticket_id: str
    user_id: str
    content: str
    is_internal: bool
    created_at: datetime


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: Optional[str] = None
    role: RoleStr
    is_active: bool
    phone: Optional[str] = None
    created_at: datetime


class UserDeactivateResponse(BaseModel):
    user: UserResponse
    reassigned_tickets: int = 0
