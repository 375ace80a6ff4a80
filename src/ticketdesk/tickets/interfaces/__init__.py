"""
Tickets Interfaces Layer
========================

FastAPI route handlers for tickets and users.
"""

from ticketdesk.tickets.interfaces.controllers import tickets_router
from ticketdesk.tickets.interfaces.user_controllers import users_router

__all__ = ["tickets_router", "users_router"]
