"""
Notifications Interfaces Layer
==============================
"""

from ticketdesk.notifications.interfaces.controllers import notifications_router

__all__ = ["notifications_router"]
