"""
Assignment Infrastructure Layer
================================
"""

from ticketdesk.assignment.infrastructure.models import AssignmentRuleModel
from ticketdesk.assignment.infrastructure.repositories import SQLAlchemyAssignmentRuleRepository

__all__ = ["AssignmentRuleModel", "SQLAlchemyAssignmentRuleRepository"]
