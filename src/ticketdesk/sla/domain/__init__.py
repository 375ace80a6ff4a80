"""
SLA Domain Layer
================

Domain layer for SLA monitoring.

Contains:
- Entities: SLAClock, TicketAlert, SLAMetrics
- Value Objects: SLAPolicy, SLAPolicyConfig
- Domain Services: SLACalculator (stateless clock and status logic)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from ticketdesk.sla.domain.entities import SLAClock, TicketAlert, SLAMetrics
from ticketdesk.sla.domain.value_objects import (
    SLACalculator,
    SLAPolicy,
    SLAPolicyConfig,
    DEFAULT_WARNING_RATIO,
)

__all__ = [
    # Entities
    "SLAClock",
    "TicketAlert",
    "SLAMetrics",
    # Value Objects & Services
    "SLACalculator",
    "SLAPolicy",
    "SLAPolicyConfig",
    "DEFAULT_WARNING_RATIO",
]
