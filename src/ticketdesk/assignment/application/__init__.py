"""
Assignment Application Layer
=============================

Rule engine, workload balancer, rule administration and their DTOs.
"""

from ticketdesk.assignment.application.services import (
    IAssignmentRuleRepository,
    WorkloadBalancer,
    AssignmentService,
    AssignmentRuleService,
    AssignmentDecision,
    RebalanceResult,
    DEFAULT_ASSIGNEE_ROLES,
)
from ticketdesk.assignment.application.dto import (
    AssignmentRuleCreateRequest,
    AssignmentRuleUpdateRequest,
    AssignmentRuleResponse,
    AssignmentPreviewRequest,
    AssignmentPreviewResponse,
    RebalanceResponse,
    ReassignRequest,
    ReassignResponse,
)

__all__ = [
    # Services
    "WorkloadBalancer",
    "AssignmentService",
    "AssignmentRuleService",
    "AssignmentDecision",
    "RebalanceResult",
    "DEFAULT_ASSIGNEE_ROLES",
    # Repository Interfaces
    "IAssignmentRuleRepository",
    # DTOs
    "AssignmentRuleCreateRequest",
    "AssignmentRuleUpdateRequest",
    "AssignmentRuleResponse",
    "AssignmentPreviewRequest",
    "AssignmentPreviewResponse",
    "RebalanceResponse",
    "ReassignRequest",
    "ReassignResponse",
]
