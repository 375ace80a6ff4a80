"""
SLA Domain Entities
====================

Pure Python domain entities for SLA monitoring.

These entities contain business logic and are free of infrastructure
concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ticketdesk.config import SLAStatus, SLAType, BREACH_STATUSES


@dataclass(frozen=True)
class SLAClock:
    """
    Derived SLA state of one ticket at one instant.

    Remaining hours are signed: negative means the deadline passed that many
    hours ago. Use the ``display_*`` properties when showing them to people.
    """

    hours_since_created: float
    sla_status: str
    response_budget_hours: Optional[float] = None
    resolution_budget_hours: Optional[float] = None
    hours_until_response_breach: Optional[float] = None
    hours_until_resolution_breach: Optional[float] = None

    @property
    def is_exempt(self) -> bool:
        """True when no policy budget applied to the ticket."""
        return self.response_budget_hours is None and self.resolution_budget_hours is None

    @property
    def requires_alert(self) -> bool:
        return self.sla_status != SLAStatus.WITHIN_SLA

    @property
    def hours_remaining(self) -> Optional[float]:
        """Signed hours left on the clock that drives ``sla_status``."""
        if self.sla_status in (SLAStatus.RESPONSE_WARNING, SLAStatus.RESPONSE_BREACHED):
            return self.hours_until_response_breach
        if self.sla_status in (SLAStatus.RESOLUTION_WARNING, SLAStatus.RESOLUTION_BREACHED):
            return self.hours_until_resolution_breach
        return None

    @property
    def display_hours_until_response_breach(self) -> Optional[float]:
        if self.hours_until_response_breach is None:
            return None
        return max(0.0, self.hours_until_response_breach)

    @property
    def display_hours_until_resolution_breach(self) -> Optional[float]:
        if self.hours_until_resolution_breach is None:
            return None
        return max(0.0, self.hours_until_resolution_breach)


@dataclass
class TicketAlert:
    """A ticket whose SLA clock crossed the warning or breach threshold."""

    ticket_id: str
    ticket_number: int
    alert_type: str
    hours_remaining: float
    detected_at: Optional[datetime] = None

    @property
    def is_breach(self) -> bool:
        return self.alert_type in BREACH_STATUSES

    @property
    def sla_type(self) -> str:
        """Which clock the alert is about (response or resolution)."""
        if self.alert_type.startswith(SLAType.RESPONSE):
            return SLAType.RESPONSE
        return SLAType.RESOLUTION

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "ticket_id": self.ticket_id,
            "ticket_number": self.ticket_number,
            "alert_type": self.alert_type,
            "hours_remaining": round(self.hours_remaining, 2),
        }


@dataclass
class SLAMetrics:
    """Aggregate SLA compliance figures over a set of tickets."""

    total_tickets: int = 0
    response_sla_met: int = 0
    response_sla_breached: int = 0
    resolution_sla_met: int = 0
    resolution_sla_breached: int = 0
    avg_response_time_hours: float = 0.0
    avg_resolution_time_hours: float = 0.0
    tickets_at_risk: int = 0
    skipped_tickets: list[str] = field(default_factory=list)
