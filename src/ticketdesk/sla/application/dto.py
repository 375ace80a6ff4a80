"""
SLA Application DTOs
=====================

Data Transfer Objects for SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ticketdesk.sla.domain import SLAClock, SLAMetrics, SLAPolicyConfig, TicketAlert


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["low", "medium", "high", "urgent"]
SLAStatusStr = Literal[
    "within_sla", "response_warning", "response_breached",
    "resolution_warning", "resolution_breached"
]
AlertTypeStr = Literal[
    "response_warning", "response_breached",
    "resolution_warning", "resolution_breached"
]


# ========== Request DTOs ==========

class SLAConfigurationUpsertRequest(BaseModel):
    """Create or replace the policy for a (category, priority) pair."""
    category: Optional[str] = Field(None, description="Ticket category; omit to match any category")
    priority: PriorityStr = Field(..., description="Ticket priority")
    response_time_hours: float = Field(..., gt=0, description="First-response budget in hours")
    resolution_time_hours: float = Field(..., gt=0, description="Resolution budget in hours")
    auto_assign_to_role: Optional[str] = Field(
        None, description="Role tried by the balancer when no assignment rule matches"
    )

    def to_config(self) -> SLAPolicyConfig:
        return SLAPolicyConfig(**self.model_dump())


# ========== Response DTOs ==========

class SLAConfigurationResponse(BaseModel):
    """Response model for a stored SLA policy."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    category: Optional[str]
    priority: PriorityStr
    response_time_hours: float
    resolution_time_hours: float
    auto_assign_to_role: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class SLAClockResponse(BaseModel):
    """Derived SLA clock of a ticket; remaining hours are clamped at zero."""
    sla_status: SLAStatusStr
    hours_since_created: float
    hours_until_response_breach: Optional[float] = None
    hours_until_resolution_breach: Optional[float] = None
    is_exempt: bool = False

    @classmethod
    def from_clock(cls, clock: SLAClock) -> "SLAClockResponse":
        return cls(
            sla_status=clock.sla_status,
            hours_since_created=round(clock.hours_since_created, 2),
            hours_until_response_breach=_round(clock.display_hours_until_response_breach),
            hours_until_resolution_breach=_round(clock.display_hours_until_resolution_breach),
            is_exempt=clock.is_exempt,
        )


class AlertResponse(BaseModel):
    """Response model for one ticket requiring attention."""
    ticket_id: str
    ticket_number: int
    alert_type: AlertTypeStr
    hours_remaining: float = Field(..., description="Signed; negative once the deadline passed")

    @classmethod
    def from_alert(cls, alert: TicketAlert) -> "AlertResponse":
        return cls(**alert.to_dict())


class AlertListResponse(BaseModel):
    """Alerts produced by the latest scan."""
    alerts: List[AlertResponse] = Field(default_factory=list)
    total: int = 0
    scanned_at: Optional[datetime] = Field(None, description="When the alerts were computed")


class SLAMetricsResponse(BaseModel):
    """Aggregate SLA compliance figures."""
    total_tickets: int
    response_sla_met: int
    response_sla_breached: int
    resolution_sla_met: int
    resolution_sla_breached: int
    avg_response_time_hours: float
    avg_resolution_time_hours: float
    tickets_at_risk: int
    skipped_tickets: List[str] = Field(default_factory=list)

    @classmethod
    def from_metrics(cls, metrics: SLAMetrics) -> "SLAMetricsResponse":
        return cls(
            total_tickets=metrics.total_tickets,
            response_sla_met=metrics.response_sla_met,
            response_sla_breached=metrics.response_sla_breached,
            resolution_sla_met=metrics.resolution_sla_met,
            resolution_sla_breached=metrics.resolution_sla_breached,
            avg_response_time_hours=metrics.avg_response_time_hours,
            avg_resolution_time_hours=metrics.avg_resolution_time_hours,
            tickets_at_risk=metrics.tickets_at_risk,
            skipped_tickets=list(metrics.skipped_tickets),
        )


def _round(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)
