"""Rule predicates and rule definitions."""

import pytest

from ticketdesk.assignment.domain import (
    AssignmentCandidate,
    FieldEquals,
    FieldIn,
    RuleDefinition,
    TicketField,
    parse_conditions,
)
from ticketdesk.core.exceptions import ValidationException


def test_scalar_condition_is_equality():
    assert parse_conditions({"category": "billing"}) == [FieldEquals(TicketField.CATEGORY, "billing")]


def test_list_condition_is_membership():
    predicates = parse_conditions({"priority": ["high", "urgent"]})

    assert predicates == [FieldIn(TicketField.PRIORITY, frozenset({"high", "urgent"}))]
    assert predicates[0].matches(AssignmentCandidate(priority="urgent"))
    assert not predicates[0].matches(AssignmentCandidate(priority="low"))


def test_unknown_field_rejected():
    with pytest.raises(ValidationException) as exc_info:
        parse_conditions({"region": "emea"})

    assert exc_info.value.details["field"] == "region"


def test_nested_condition_rejected():
    with pytest.raises(ValidationException):
        parse_conditions({"category": {"in": ["billing"]}})


def test_rule_without_conditions_matches_everything():
    rule = RuleDefinition(name="catch-all", priority=0, assign_to_role="agent")

    assert rule.matches(AssignmentCandidate(priority="low"))
    assert rule.matches(AssignmentCandidate(priority="urgent", category="network"))


def test_all_conditions_must_hold():
    rule = RuleDefinition(
        name="billing-chat",
        priority=5,
        conditions={"category": "billing", "contact_medium": ["whatsapp", "phone"]},
        assign_to_user_id="agent-a",
    )

    assert rule.matches(AssignmentCandidate(priority="low", category="billing", contact_medium="phone"))
    assert not rule.matches(AssignmentCandidate(priority="low", category="billing", contact_medium="email"))
    assert not rule.matches(AssignmentCandidate(priority="low", category="network", contact_medium="phone"))


@pytest.mark.parametrize("targets", [
    {},
    {"assign_to_user_id": "agent-a", "assign_to_role": "agent"},
])
def test_rule_needs_exactly_one_target(targets):
    with pytest.raises(ValidationException):
        RuleDefinition(name="broken", priority=1, **targets)
