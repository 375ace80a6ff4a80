"""
Assignment Domain Layer
=======================

Rule predicates, rule definitions and the candidate ticket view.
"""

from ticketdesk.assignment.domain.rules import (
    TicketField,
    AssignmentCandidate,
    FieldEquals,
    FieldIn,
    Predicate,
    RuleDefinition,
    parse_conditions,
    matches_all,
)

__all__ = [
    "TicketField",
    "AssignmentCandidate",
    "FieldEquals",
    "FieldIn",
    "Predicate",
    "RuleDefinition",
    "parse_conditions",
    "matches_all",
]
