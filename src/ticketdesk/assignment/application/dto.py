"""
Assignment Application DTOs
============================

Pydantic models for the assignment API.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ticketdesk.assignment.domain import AssignmentCandidate

PriorityStr = Literal["low", "medium", "high", "urgent"]
RoleStr = Literal["admin", "agent", "user"]
ContactMediumStr = Literal["whatsapp", "email", "phone"]


# ========== Request DTOs ==========

class AssignmentRuleCreateRequest(BaseModel):
    """New assignment rule; set exactly one of the two targets."""
    name: str = Field(..., min_length=1, max_length=255)
    priority: int = Field(default=0, description="Higher is evaluated first")
    conditions: Dict[str, Any] = Field(
        default_factory=dict,
        description="Map of ticket field to a value or a list of accepted values",
        examples=[{"category": "billing", "priority": ["high", "urgent"]}]
    )
    assign_to_user_id: Optional[str] = None
    assign_to_role: Optional[RoleStr] = None


class AssignmentRuleUpdateRequest(BaseModel):
    """Partial update; omitted fields keep their value."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    priority: Optional[int] = None
    conditions: Optional[Dict[str, Any]] = None
    assign_to_user_id: Optional[str] = None
    assign_to_role: Optional[RoleStr] = None
    is_active: Optional[bool] = None


class AssignmentPreviewRequest(BaseModel):
    """Ticket fields to run through the rule engine without creating anything."""
    priority: PriorityStr = "medium"
    category: Optional[str] = None
    contact_medium: Optional[ContactMediumStr] = None
    created_by: Optional[str] = None

    def to_candidate(self) -> AssignmentCandidate:
        return AssignmentCandidate(**self.model_dump())


class ReassignRequest(BaseModel):
    """Move all open tickets of one user to another."""
    from_user_id: str = Field(..., min_length=1)
    to_user_id: str = Field(..., min_length=1)


# ========== Response DTOs ==========

class AssignmentRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    priority: int
    conditions: Dict[str, Any]
    assign_to_user_id: Optional[str] = None
    assign_to_role: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class AssignmentPreviewResponse(BaseModel):
    assigned_to: Optional[str] = Field(None, description="Null when no agent is eligible")
    source: str = Field(..., description="rule_user, rule_role, policy_role, workload or unassigned")
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None


class RebalanceResponse(BaseModel):
    moved: int
    moved_ticket_ids: List[str] = Field(default_factory=list)
    from_user_id: Optional[str] = None
    to_user_id: Optional[str] = None
    spread: int = 0


class ReassignResponse(BaseModel):
    moved: int
