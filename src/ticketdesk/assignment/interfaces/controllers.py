"""
Assignment Controllers (API Routes)
====================================

FastAPI routes for assignment rules and workload balancing.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from ticketdesk.assignment.application import (
    AssignmentPreviewRequest,
    AssignmentPreviewResponse,
    AssignmentRuleCreateRequest,
    AssignmentRuleResponse,
    AssignmentRuleService,
    AssignmentRuleUpdateRequest,
    AssignmentService,
    ReassignRequest,
    ReassignResponse,
    RebalanceResponse,
    WorkloadBalancer,
)
from ticketdesk.dependencies import (
    get_assignment_service,
    get_balancer,
    get_policy_service,
    get_rule_service,
)
from ticketdesk.sla.application import SLAPolicyService

router = APIRouter(prefix="/assignment", tags=["Assignment"])


RULE_CREATE_EXAMPLE = {
    "name": "billing-escalations",
    "priority": 10,
    "conditions": {"category": "billing", "priority": ["high", "urgent"]},
    "assign_to_role": "agent"
}


@router.get(
    "/rules",
    response_model=List[AssignmentRuleResponse],
    summary="List assignment rules",
    description="Rules in evaluation order: highest priority first, then oldest."
)
async def list_rules(
    include_inactive: bool = Query(False, description="Include deactivated rules"),
    service: AssignmentRuleService = Depends(get_rule_service)
):
    return await service.list_rules(include_inactive=include_inactive)


@router.post(
    "/rules",
    response_model=AssignmentRuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an assignment rule",
    description="""
    Conditions map a ticket field (`category`, `priority`, `contact_medium`,
    `created_by`) to a value or a list of accepted values; every condition
    must hold for the rule to match.

    Set exactly one of `assign_to_user_id` and `assign_to_role`. A role
    target is resolved by the workload balancer at assignment time.
    """,
    responses={201: {"content": {"application/json": {"example": RULE_CREATE_EXAMPLE}}}}
)
async def create_rule(
    request: AssignmentRuleCreateRequest,
    service: AssignmentRuleService = Depends(get_rule_service)
):
    return await service.create_rule(request.model_dump())


@router.patch(
    "/rules/{rule_id}",
    response_model=AssignmentRuleResponse,
    summary="Update an assignment rule",
    responses={404: {"description": "Rule not found"}}
)
async def update_rule(
    rule_id: str,
    request: AssignmentRuleUpdateRequest,
    service: AssignmentRuleService = Depends(get_rule_service)
):
    return await service.update_rule(rule_id, request.model_dump(exclude_unset=True))


@router.post(
    "/rules/{rule_id}/deactivate",
    response_model=AssignmentRuleResponse,
    summary="Deactivate an assignment rule",
    responses={404: {"description": "Rule not found"}}
)
async def deactivate_rule(
    rule_id: str,
    service: AssignmentRuleService = Depends(get_rule_service)
):
    return await service.deactivate_rule(rule_id)


@router.post(
    "/preview",
    response_model=AssignmentPreviewResponse,
    summary="Dry-run the assignment engine",
    description="Shows who would receive a ticket with these fields, and which step decided it."
)
async def preview_assignment(
    request: AssignmentPreviewRequest,
    service: AssignmentService = Depends(get_assignment_service),
    policy_service: SLAPolicyService = Depends(get_policy_service)
):
    policy = await policy_service.lookup(request.category, request.priority)
    decision = await service.decide(
        request.to_candidate(),
        policy_role=policy.auto_assign_to_role if policy else None
    )
    return AssignmentPreviewResponse(
        assigned_to=decision.user_id,
        source=decision.source,
        rule_id=decision.rule_id,
        rule_name=decision.rule_name
    )


@router.post(
    "/rebalance",
    response_model=RebalanceResponse,
    summary="Rebalance agent workload",
    description="""
    When the gap between the busiest and the idlest agent exceeds the
    configured threshold, half of the gap is moved: oldest open tickets
    first, urgent tickets never.
    """
)
async def rebalance(balancer: WorkloadBalancer = Depends(get_balancer)):
    result = await balancer.rebalance()
    return RebalanceResponse(
        moved=result.moved_count,
        moved_ticket_ids=result.moved_ticket_ids,
        from_user_id=result.from_user_id,
        to_user_id=result.to_user_id,
        spread=result.spread
    )


@router.post(
    "/reassign",
    response_model=ReassignResponse,
    summary="Move a user's open tickets to another user",
    responses={404: {"description": "Target user not found"}}
)
async def reassign_user_tickets(
    request: ReassignRequest,
    balancer: WorkloadBalancer = Depends(get_balancer)
):
    moved = await balancer.reassign_user_tickets(request.from_user_id, request.to_user_id)
    return ReassignResponse(moved=moved)


assignment_router = router
