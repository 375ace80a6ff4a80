"""
Ticket Lifecycle
================

Explicit status state machine for tickets.

    new -> in_progress -> resolved -> closed

``in_progress`` is only entered from ``new`` through a first response, and
``closed`` is terminal.
"""

from typing import Dict, FrozenSet

from ticketdesk.config import TicketStatus
from ticketdesk.core.exceptions import InvalidStatusTransitionException


class TicketLifecycle:
    """Allowed status transitions and the checks around them."""

    TRANSITIONS: Dict[str, FrozenSet[str]] = {
        TicketStatus.NEW: frozenset({TicketStatus.IN_PROGRESS}),
        TicketStatus.IN_PROGRESS: frozenset({TicketStatus.RESOLVED}),
        TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED}),
        TicketStatus.CLOSED: frozenset(),
    }

    # Reached only as a side effect of another operation
    IMPLICIT_TRANSITIONS = frozenset({(TicketStatus.NEW, TicketStatus.IN_PROGRESS)})

    @classmethod
    def can_transition(cls, current: str, target: str) -> bool:
        return target in cls.TRANSITIONS.get(current, frozenset())

    @classmethod
    def ensure_transition(
        cls,
        ticket_id: str,
        current: str,
        target: str,
        via_first_response: bool = False
    ) -> None:
        """
        Raise unless ``current -> target`` is allowed.

        Raises:
            InvalidStatusTransitionException: for any move outside the table,
                or for new -> in_progress requested without a first response
        """
        if not cls.can_transition(current, target):
            raise InvalidStatusTransitionException(ticket_id, current, target)
        if (current, target) in cls.IMPLICIT_TRANSITIONS and not via_first_response:
            raise InvalidStatusTransitionException(ticket_id, current, target)

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.TRANSITIONS.get(status)
