"""
SLA Interfaces Layer
====================

Interface adapters (controllers) for the SLA module.
"""

from ticketdesk.sla.interfaces.controllers import sla_router

__all__ = ["sla_router"]
