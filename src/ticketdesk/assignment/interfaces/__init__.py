"""
Assignment Interfaces Layer
============================
"""

from ticketdesk.assignment.interfaces.controllers import assignment_router

__all__ = ["assignment_router"]
