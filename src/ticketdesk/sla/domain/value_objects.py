"""
SLA Value Objects
==================

Immutable value objects and stateless calculations for the SLA domain.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field, field_validator

from ticketdesk.config import SLAStatus, TicketStatus, OPEN_STATUSES, VALID_PRIORITIES
from ticketdesk.core.clock import as_utc, hours_between
from ticketdesk.sla.domain.entities import SLAClock

DEFAULT_WARNING_RATIO = 0.8


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class; all SLA clock logic lives here.
    """

    @staticmethod
    def remaining_hours(budget_hours: Optional[float], elapsed_hours: float) -> Optional[float]:
        """Signed hours left in a budget, or None when there is no budget."""
        if budget_hours is None:
            return None
        return budget_hours - elapsed_hours

    @staticmethod
    def is_breached(remaining_hours: Optional[float]) -> bool:
        """Budget exceeded; landing exactly on the deadline still counts as met."""
        return remaining_hours is not None and remaining_hours < 0

    @staticmethod
    def is_warning(
        remaining_hours: Optional[float],
        budget_hours: Optional[float],
        warning_ratio: float = DEFAULT_WARNING_RATIO
    ) -> bool:
        """True once ``warning_ratio`` of the budget has been consumed."""
        if remaining_hours is None or budget_hours is None or budget_hours <= 0:
            return False
        return remaining_hours <= budget_hours * (1 - warning_ratio)

    @staticmethod
    def compute_clock(
        created_at: datetime,
        current_time: datetime,
        status: str,
        first_response_at: Optional[datetime] = None,
        response_hours: Optional[float] = None,
        resolution_hours: Optional[float] = None,
        warning_ratio: float = DEFAULT_WARNING_RATIO
    ) -> SLAClock:
        """
        Derive the SLA clock for a ticket.

        Status precedence: resolution breached, resolution warning,
        response breached, response warning, within SLA. Only new and
        in-progress tickets can be in a non-"within" state; the resolved and
        closed milestones stop both clocks.

        Args:
            created_at: When the ticket was created
            current_time: Instant to evaluate at
            status: Ticket status
            first_response_at: When the first response happened, if it did
            response_hours: Response budget snapshot (None = exempt)
            resolution_hours: Resolution budget snapshot (None = exempt)
            warning_ratio: Fraction of a budget that triggers a warning

        Returns:
            SLAClock with signed remaining hours and the discrete status
        """
        elapsed = max(0.0, hours_between(created_at, current_time))

        response_remaining = None
        if first_response_at is None:
            response_remaining = SLACalculator.remaining_hours(response_hours, elapsed)

        resolution_remaining = None
        if status != TicketStatus.CLOSED:
            resolution_remaining = SLACalculator.remaining_hours(resolution_hours, elapsed)

        sla_status = SLAStatus.WITHIN_SLA
        if status in OPEN_STATUSES:
            if SLACalculator.is_breached(resolution_remaining):
                sla_status = SLAStatus.RESOLUTION_BREACHED
            elif SLACalculator.is_warning(resolution_remaining, resolution_hours, warning_ratio):
                sla_status = SLAStatus.RESOLUTION_WARNING
            elif SLACalculator.is_breached(response_remaining):
                sla_status = SLAStatus.RESPONSE_BREACHED
            elif SLACalculator.is_warning(response_remaining, response_hours, warning_ratio):
                sla_status = SLAStatus.RESPONSE_WARNING

        return SLAClock(
            hours_since_created=elapsed,
            sla_status=sla_status,
            response_budget_hours=response_hours,
            resolution_budget_hours=resolution_hours,
            hours_until_response_breach=response_remaining,
            hours_until_resolution_breach=resolution_remaining,
        )

    @staticmethod
    def clock_for(
        ticket: Any,
        current_time: datetime,
        warning_ratio: float = DEFAULT_WARNING_RATIO
    ) -> SLAClock:
        """Derive the clock from any ticket-shaped object."""
        return SLACalculator.compute_clock(
            created_at=ticket.created_at,
            current_time=current_time,
            status=ticket.status,
            first_response_at=as_utc(getattr(ticket, "first_response_at", None)),
            response_hours=getattr(ticket, "sla_response_time_hours", None),
            resolution_hours=getattr(ticket, "sla_resolution_time_hours", None),
            warning_ratio=warning_ratio,
        )

    @staticmethod
    def sla_met(
        created_at: datetime,
        milestone_at: datetime,
        budget_hours: Optional[float]
    ) -> Optional[bool]:
        """
        Whether a milestone landed inside its budget.

        Returns None for exempt tickets so the snapshot stays unset.
        """
        if budget_hours is None:
            return None
        return hours_between(created_at, milestone_at) <= budget_hours

    @staticmethod
    def is_at_risk(
        ticket: Any,
        current_time: datetime,
        warning_ratio: float = DEFAULT_WARNING_RATIO
    ) -> bool:
        """Open ticket that has consumed ``warning_ratio`` of its resolution budget."""
        budget = getattr(ticket, "sla_resolution_time_hours", None)
        if ticket.status not in OPEN_STATUSES or budget is None:
            return False
        return hours_between(ticket.created_at, current_time) >= budget * warning_ratio


@dataclass(frozen=True)
class SLAPolicy:
    """
    Response/resolution budgets for a (category, priority) pair.

    ``category`` None is a wildcard that matches every category.
    """
    priority: str
    response_time_hours: float
    resolution_time_hours: float
    category: Optional[str] = None
    auto_assign_to_role: Optional[str] = None

    def matches(self, category: Optional[str], priority: str) -> bool:
        if self.priority != priority:
            return False
        return self.category is None or self.category == category

    @classmethod
    def from_record(cls, record: Any) -> "SLAPolicy":
        return cls(
            priority=record.priority,
            response_time_hours=record.response_time_hours,
            resolution_time_hours=record.resolution_time_hours,
            category=record.category,
            auto_assign_to_role=record.auto_assign_to_role,
        )

    @staticmethod
    def best_match(
        records: Iterable[Any],
        category: Optional[str],
        priority: str
    ) -> Optional[Any]:
        """
        Pick the most specific active record for a ticket.

        ``records`` must already be ordered by preference (most recently
        updated first); an exact category match beats the wildcard.
        """
        best = None
        for record in records:
            if not getattr(record, "is_active", True):
                continue
            if not SLAPolicy.from_record(record).matches(category, priority):
                continue
            if best is None or (best.category is None and record.category is not None):
                best = record
        return best


class SLAPolicyConfig(BaseModel):
    """A policy entry as written in the YAML seed file."""
    category: Optional[str] = None
    priority: str
    response_time_hours: float = Field(gt=0)
    resolution_time_hours: float = Field(gt=0)
    auto_assign_to_role: Optional[str] = None
    is_active: bool = True

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: str) -> str:
        if v not in VALID_PRIORITIES:
            raise ValueError(f"priority must be one of {VALID_PRIORITIES}")
        return v
