"""
SLA Application Layer
======================

Contains:
- Services: policy store, alert scanner, compliance metrics
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from ticketdesk.sla.application.dto import (
    SLAConfigurationUpsertRequest,
    SLAConfigurationResponse,
    SLAClockResponse,
    AlertResponse,
    AlertListResponse,
    SLAMetricsResponse,
)
from ticketdesk.sla.application.services import (
    ISLAConfigurationRepository,
    SLAPolicyService,
    SLAAlertScanner,
    SLAMetricsService,
)

__all__ = [
    # DTOs
    "SLAConfigurationUpsertRequest",
    "SLAConfigurationResponse",
    "SLAClockResponse",
    "AlertResponse",
    "AlertListResponse",
    "SLAMetricsResponse",
    # Services
    "SLAPolicyService",
    "SLAAlertScanner",
    "SLAMetricsService",
    # Repository Interfaces
    "ISLAConfigurationRepository",
]
