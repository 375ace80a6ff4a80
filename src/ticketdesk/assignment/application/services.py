"""
Assignment Application Services
================================

- WorkloadBalancer: least-loaded pick, periodic rebalance, bulk reassignment
- AssignmentService: ordered rule evaluation with balancer fallback
- AssignmentRuleService: rule administration
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ticketdesk.assignment.domain import AssignmentCandidate, RuleDefinition
from ticketdesk.config import UserRole, VALID_ROLES
from ticketdesk.core.exceptions import (
    ResourceNotFoundException,
    ValidationException,
)
from ticketdesk.notifications.application import NotificationDispatcher
from ticketdesk.shared.infrastructure.logging import get_logger
from ticketdesk.tickets.domain import ITicketRepository, IUserRepository

logger = get_logger(__name__)

DEFAULT_ASSIGNEE_ROLES = (UserRole.AGENT, UserRole.ADMIN)


# ========== Repository Interfaces ==========

class IAssignmentRuleRepository(ABC):
    """Interface for assignment rule data access."""

    @abstractmethod
    async def list(self, include_inactive: bool = False) -> List[Any]:
        """Rules in evaluation order (priority descending)."""

    @abstractmethod
    async def get_by_id(self, rule_id: str) -> Optional[Any]:
        """Get rule by ID."""

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[Any]:
        """Get rule by its unique name."""

    @abstractmethod
    async def create(self, rule: RuleDefinition, is_active: bool = True) -> Any:
        """Persist a new rule."""

    @abstractmethod
    async def save(self, rule: Any) -> Any:
        """Flush changes made to a loaded rule."""


# ========== Results ==========

@dataclass
class RebalanceResult:
    """Outcome of one rebalance pass; empty when loads were already even."""
    moved_ticket_ids: List[str] = field(default_factory=list)
    from_user_id: Optional[str] = None
    to_user_id: Optional[str] = None
    spread: int = 0

    @property
    def moved_count(self) -> int:
        return len(self.moved_ticket_ids)


@dataclass(frozen=True)
class AssignmentDecision:
    """Who gets the ticket and which step decided it."""
    user_id: Optional[str]
    source: str
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None


# ========== Workload Balancer ==========

class WorkloadBalancer:
    """
    Spreads open tickets across active agents.

    Load is the number of assigned tickets in status new or in_progress.
    Ties go to the first user by ascending id, so picks are deterministic.
    """

    def __init__(
        self,
        user_repository: IUserRepository,
        ticket_repository: ITicketRepository,
        default_roles: Iterable[str] = DEFAULT_ASSIGNEE_ROLES,
        threshold: int = 5,
        dispatcher: Optional[NotificationDispatcher] = None
    ):
        self._user_repo = user_repository
        self._ticket_repo = ticket_repository
        self._default_roles = list(default_roles)
        self._threshold = threshold
        self._dispatcher = dispatcher

    async def loads(self, roles: Sequence[str]) -> List[Tuple[str, int]]:
        """(user_id, open ticket count) for active users, ordered by id."""
        users = await self._user_repo.list_active(roles)
        user_ids = [user.id for user in users]
        counts = await self._ticket_repo.count_open_by_assignee(user_ids)
        return [(user_id, counts.get(user_id, 0)) for user_id in user_ids]

    async def pick_least_loaded(
        self,
        role: Optional[str] = None,
        category: Optional[str] = None
    ) -> Optional[str]:
        """
        Active user with the fewest open tickets, or None if nobody qualifies.

        ``category`` is accepted for routing context but users carry no
        category skills, so it does not filter the pool.
        """
        roles = [role] if role else self._default_roles
        loads = await self.loads(roles)
        if not loads:
            logger.info(
                "No eligible agent for assignment",
                extra={"role": role, "category": category}
            )
            return None

        user_id, load = min(loads, key=lambda item: item[1])
        logger.debug(
            "Least loaded agent picked",
            extra={"user_id": user_id, "load": load, "role": role}
        )
        return user_id

    async def rebalance(self) -> RebalanceResult:
        """
        Move work from the busiest to the idlest agent when the spread is too big.

        Moves floor((max - min) / 2) open tickets, oldest first, and never
        moves urgent tickets.
        """
        loads = await self.loads(self._default_roles)
        if len(loads) < 2:
            return RebalanceResult()

        least_id, least_load = min(loads, key=lambda item: item[1])
        most_id, most_load = max(loads, key=lambda item: item[1])
        spread = most_load - least_load
        if spread <= self._threshold:
            return RebalanceResult(spread=spread)

        to_move = spread // 2
        tickets = await self._ticket_repo.list_open_movable(most_id, to_move)
        ticket_ids = [ticket.id for ticket in tickets]
        await self._ticket_repo.reassign(ticket_ids, least_id)

        logger.info(
            "Workload rebalanced",
            extra={
                "from_user_id": most_id,
                "to_user_id": least_id,
                "spread": spread,
                "moved": len(ticket_ids),
            }
        )

        if self._dispatcher is not None:
            for ticket in tickets:
                ticket.assigned_to = least_id
                await self._dispatcher.notify_assignment(ticket, least_id)

        return RebalanceResult(
            moved_ticket_ids=ticket_ids,
            from_user_id=most_id,
            to_user_id=least_id,
            spread=spread,
        )

    async def reassign_user_tickets(self, from_user_id: str, to_user_id: str) -> int:
        """Move every open ticket of one user to another active user."""
        if from_user_id == to_user_id:
            raise ValidationException("Cannot reassign tickets to the same user")

        target = await self._user_repo.get_by_id(to_user_id)
        if target is None:
            raise ResourceNotFoundException("User", to_user_id)
        if not target.is_active:
            raise ValidationException(
                f"User '{to_user_id}' is inactive",
                {"user_id": to_user_id}
            )

        moved = await self._ticket_repo.reassign_all_open(from_user_id, to_user_id)
        logger.info(
            "User tickets reassigned",
            extra={"from_user_id": from_user_id, "to_user_id": to_user_id, "moved": len(moved)}
        )
        return len(moved)


# ========== Rule Engine ==========

class AssignmentService:
    """
    Picks an assignee for a new ticket.

    Order: active rules by descending priority (first match with a concrete
    user wins; a role target asks the balancer and falls through when
    nobody is eligible), then the SLA policy's auto-assign role, then the
    balancer over the default roles.
    """

    def __init__(
        self,
        rule_repository: IAssignmentRuleRepository,
        balancer: WorkloadBalancer
    ):
        self._rule_repo = rule_repository
        self._balancer = balancer

    async def _active_rules(self) -> List[RuleDefinition]:
        rules = []
        for record in await self._rule_repo.list():
            try:
                rules.append(RuleDefinition.from_record(record))
            except ValidationException as e:
                logger.warning(
                    "Skipping invalid assignment rule",
                    extra={"rule_id": record.id, "error": e.message}
                )
        return rules

    async def decide(
        self,
        candidate: AssignmentCandidate,
        policy_role: Optional[str] = None
    ) -> AssignmentDecision:
        for rule in await self._active_rules():
            if not rule.matches(candidate):
                continue

            logger.info(
                "Assignment rule matched",
                extra={"rule_id": rule.id, "rule_name": rule.name}
            )
            if rule.assign_to_user_id:
                return AssignmentDecision(rule.assign_to_user_id, "rule_user", rule.id, rule.name)

            user_id = await self._balancer.pick_least_loaded(rule.assign_to_role, candidate.category)
            if user_id:
                return AssignmentDecision(user_id, "rule_role", rule.id, rule.name)

        if policy_role:
            user_id = await self._balancer.pick_least_loaded(policy_role, candidate.category)
            if user_id:
                return AssignmentDecision(user_id, "policy_role")

        user_id = await self._balancer.pick_least_loaded(None, candidate.category)
        if user_id:
            return AssignmentDecision(user_id, "workload")
        return AssignmentDecision(None, "unassigned")

    async def assign(
        self,
        candidate: AssignmentCandidate,
        policy_role: Optional[str] = None
    ) -> Optional[str]:
        """Assignee id, or None when nobody is eligible (ticket stays unassigned)."""
        return (await self.decide(candidate, policy_role)).user_id


# ========== Rule Administration ==========

class AssignmentRuleService:
    """Create, update, deactivate and list assignment rules."""

    def __init__(self, rule_repository: IAssignmentRuleRepository):
        self._rule_repo = rule_repository

    @staticmethod
    def _validate(definition: Dict[str, Any]) -> RuleDefinition:
        name = definition.get("name")
        if not name:
            raise ValidationException("Assignment rule name is required")
        rule = RuleDefinition(
            name=name,
            priority=definition.get("priority", 0),
            conditions=dict(definition.get("conditions") or {}),
            assign_to_user_id=definition.get("assign_to_user_id"),
            assign_to_role=definition.get("assign_to_role"),
        )
        if rule.assign_to_role and rule.assign_to_role not in VALID_ROLES:
            raise ValidationException(
                f"Unknown role '{rule.assign_to_role}'",
                {"allowed": VALID_ROLES}
            )
        return rule

    async def list_rules(self, include_inactive: bool = False) -> List[Any]:
        return await self._rule_repo.list(include_inactive=include_inactive)

    async def create_rule(self, definition: Dict[str, Any]) -> Any:
        rule = self._validate(definition)
        record = await self._rule_repo.create(rule, is_active=definition.get("is_active", True))
        logger.info("Assignment rule created", extra={"rule_id": record.id, "rule_name": rule.name})
        return record

    async def update_rule(self, rule_id: str, changes: Dict[str, Any]) -> Any:
        record = await self._rule_repo.get_by_id(rule_id)
        if record is None:
            raise ResourceNotFoundException("Assignment rule", rule_id)

        merged = {
            "name": record.name,
            "priority": record.priority,
            "conditions": record.conditions,
            "assign_to_user_id": record.assign_to_user_id,
            "assign_to_role": record.assign_to_role,
        }
        merged.update({k: v for k, v in changes.items() if k in merged})
        rule = self._validate(merged)

        record.name = rule.name
        record.priority = rule.priority
        record.conditions = rule.conditions
        record.assign_to_user_id = rule.assign_to_user_id
        record.assign_to_role = rule.assign_to_role
        if "is_active" in changes and changes["is_active"] is not None:
            record.is_active = changes["is_active"]

        await self._rule_repo.save(record)
        logger.info("Assignment rule updated", extra={"rule_id": rule_id})
        return record

    async def deactivate_rule(self, rule_id: str) -> Any:
        return await self.update_rule(rule_id, {"is_active": False})

    async def seed_rules(self, definitions: Iterable[Dict[str, Any]]) -> int:
        """Create rules whose name is not stored yet; returns how many were created."""
        created = 0
        for definition in definitions:
            if await self._rule_repo.get_by_name(definition.get("name", "")) is not None:
                continue
            await self.create_rule(definition)
            created += 1
        return created
