"""
Assignment Rule Domain
=======================

Typed predicates over a fixed set of ticket fields, and the rule
definition that binds a predicate set to an assignment target.

Stored rules keep their conditions as a JSON map of field -> scalar or
list; ``parse_conditions`` turns that map into predicates and rejects
fields the engine does not know about.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from ticketdesk.core.exceptions import ValidationException


class TicketField(str, Enum):
    """Ticket attributes a rule may test."""
    CATEGORY = "category"
    PRIORITY = "priority"
    CONTACT_MEDIUM = "contact_medium"
    CREATED_BY = "created_by"


@dataclass(frozen=True)
class AssignmentCandidate:
    """The fields of a ticket that assignment decisions look at."""
    priority: str
    category: Optional[str] = None
    contact_medium: Optional[str] = None
    created_by: Optional[str] = None

    def value_of(self, ticket_field: TicketField) -> Optional[str]:
        return getattr(self, ticket_field.value)


@dataclass(frozen=True)
class FieldEquals:
    field: TicketField
    value: Any

    def matches(self, candidate: AssignmentCandidate) -> bool:
        return candidate.value_of(self.field) == self.value


@dataclass(frozen=True)
class FieldIn:
    field: TicketField
    values: FrozenSet[Any]

    def matches(self, candidate: AssignmentCandidate) -> bool:
        return candidate.value_of(self.field) in self.values


Predicate = Union[FieldEquals, FieldIn]


def parse_conditions(conditions: Optional[Mapping[str, Any]]) -> List[Predicate]:
    """
    Build predicates from a stored condition map.

    A list value means "any of"; anything else is compared for equality.
    An empty map yields no predicates, so the rule matches every ticket.

    Raises:
        ValidationException: for an unknown field or a non-scalar value
    """
    predicates: List[Predicate] = []
    for key, value in (conditions or {}).items():
        try:
            ticket_field = TicketField(key)
        except ValueError:
            raise ValidationException(
                f"Unknown assignment condition field '{key}'",
                {"field": key, "allowed": [f.value for f in TicketField]}
            ) from None

        if isinstance(value, (list, tuple, set, frozenset)):
            predicates.append(FieldIn(ticket_field, frozenset(value)))
        elif isinstance(value, dict):
            raise ValidationException(
                f"Condition on '{key}' must be a value or a list of values",
                {"field": key}
            )
        else:
            predicates.append(FieldEquals(ticket_field, value))
    return predicates


def matches_all(predicates: List[Predicate], candidate: AssignmentCandidate) -> bool:
    return all(predicate.matches(candidate) for predicate in predicates)


@dataclass
class RuleDefinition:
    """
    A rule as the engine evaluates it.

    Exactly one of ``assign_to_user_id`` / ``assign_to_role`` is set.
    """
    name: str
    priority: int
    conditions: Dict[str, Any] = field(default_factory=dict)
    assign_to_user_id: Optional[str] = None
    assign_to_role: Optional[str] = None
    id: Optional[str] = None
    predicates: Tuple[Predicate, ...] = field(init=False, repr=False)

    def __post_init__(self):
        if bool(self.assign_to_user_id) == bool(self.assign_to_role):
            raise ValidationException(
                f"Assignment rule '{self.name}' needs exactly one of assign_to_user_id or assign_to_role",
                {"rule": self.name}
            )
        self.predicates = tuple(parse_conditions(self.conditions))

    @classmethod
    def from_record(cls, record: Any) -> "RuleDefinition":
        return cls(
            id=record.id,
            name=record.name,
            priority=record.priority,
            conditions=dict(record.conditions or {}),
            assign_to_user_id=record.assign_to_user_id,
            assign_to_role=record.assign_to_role,
        )

    def matches(self, candidate: AssignmentCandidate) -> bool:
        return matches_all(list(self.predicates), candidate)
