"""
SLA Infrastructure Layer
=========================

- Models: SQLAlchemy ORM model for policies
- Repositories: Data access layer
- External: scheduler, monitor, policy file loader
"""

from ticketdesk.sla.infrastructure.models import SLAConfigurationModel
from ticketdesk.sla.infrastructure.repositories import SQLAlchemySLAConfigurationRepository
from ticketdesk.sla.infrastructure.external import (
    SLAScheduler,
    SLAMonitor,
    PolicyDocument,
    PolicyFileManager,
)

__all__ = [
    "SLAConfigurationModel",
    "SQLAlchemySLAConfigurationRepository",
    "SLAScheduler",
    "SLAMonitor",
    "PolicyDocument",
    "PolicyFileManager",
]
