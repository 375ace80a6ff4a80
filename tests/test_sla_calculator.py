"""Unit tests for the SLA clock and policy matching."""

from datetime import timedelta
from types import SimpleNamespace

import pytest

from ticketdesk.sla.application import SLAClockResponse
from ticketdesk.sla.domain import SLACalculator, SLAPolicy, TicketAlert

from tests.conftest import NOW


def _clock(hours_elapsed, status="new", response=10.0, resolution=100.0, responded=False):
    created_at = NOW - timedelta(hours=hours_elapsed)
    return SLACalculator.compute_clock(
        created_at=created_at,
        current_time=NOW,
        status=status,
        first_response_at=created_at + timedelta(minutes=5) if responded else None,
        response_hours=response,
        resolution_hours=resolution,
    )


def test_resolution_breach_takes_precedence_over_response_breach():
    clock = _clock(11, response=10, resolution=10)

    assert clock.sla_status == "resolution_breached"
    assert clock.hours_until_response_breach == pytest.approx(-1)
    assert clock.hours_until_resolution_breach == pytest.approx(-1)
    assert clock.hours_remaining == pytest.approx(-1)


def test_response_warning_after_eighty_percent_of_budget():
    clock = _clock(8.5, response=10)

    assert clock.sla_status == "response_warning"
    assert clock.hours_remaining == pytest.approx(1.5)


def test_within_sla_below_warning_threshold():
    assert _clock(7, response=10).sla_status == "within_sla"


def test_response_breached_when_budget_used_up():
    clock = _clock(9, response=8, resolution=48)

    assert clock.sla_status == "response_breached"
    assert clock.hours_remaining == pytest.approx(-1)


def test_exact_deadline_is_not_a_breach():
    clock = _clock(8, response=8, resolution=48)

    assert clock.sla_status == "response_warning"
    assert clock.hours_remaining == pytest.approx(0)
    assert SLACalculator.sla_met(NOW - timedelta(hours=8), NOW, 8) is True


def test_first_response_stops_the_response_clock():
    clock = _clock(11, status="in_progress", response=10, resolution=48, responded=True)

    assert clock.sla_status == "within_sla"
    assert clock.hours_until_response_breach is None


def test_resolved_ticket_is_never_alerted():
    assert _clock(200, status="resolved", response=1, resolution=2).sla_status == "within_sla"


def test_closed_ticket_has_no_resolution_countdown():
    clock = _clock(3, status="closed", responded=True)

    assert clock.hours_until_resolution_breach is None
    assert clock.sla_status == "within_sla"


def test_exempt_ticket_has_no_countdowns():
    clock = _clock(500, response=None, resolution=None)

    assert clock.is_exempt
    assert clock.sla_status == "within_sla"
    assert clock.hours_until_response_breach is None
    assert clock.hours_until_resolution_breach is None


def test_clock_response_clamps_negative_remaining_hours():
    response = SLAClockResponse.from_clock(_clock(12, response=8, resolution=10))

    assert response.sla_status == "resolution_breached"
    assert response.hours_until_response_breach == 0.0
    assert response.hours_until_resolution_breach == 0.0
    assert response.hours_since_created == 12.0


def test_clock_for_reads_naive_datetimes_as_utc():
    ticket = SimpleNamespace(
        created_at=(NOW - timedelta(hours=9)).replace(tzinfo=None),
        status="new",
        first_response_at=None,
        sla_response_time_hours=8.0,
        sla_resolution_time_hours=48.0,
    )

    clock = SLACalculator.clock_for(ticket, NOW)

    assert clock.sla_status == "response_breached"
    assert clock.hours_since_created == pytest.approx(9)


def test_sla_met_snapshot():
    created_at = NOW - timedelta(hours=5)

    assert SLACalculator.sla_met(created_at, NOW, 8) is True
    assert SLACalculator.sla_met(created_at, NOW, 4) is False
    assert SLACalculator.sla_met(created_at, NOW, None) is None


def test_is_at_risk_only_for_open_tickets_with_resolution_budget():
    def ticket(status, budget):
        return SimpleNamespace(
            status=status, created_at=NOW - timedelta(hours=40), sla_resolution_time_hours=budget
        )

    assert SLACalculator.is_at_risk(ticket("in_progress", 48), NOW)
    assert not SLACalculator.is_at_risk(ticket("in_progress", 72), NOW)
    assert not SLACalculator.is_at_risk(ticket("resolved", 48), NOW)
    assert not SLACalculator.is_at_risk(ticket("new", None), NOW)


def test_alert_kind_helpers():
    breach = TicketAlert("t-1", 1, "resolution_breached", -2.0)
    warning = TicketAlert("t-2", 2, "response_warning", 0.5)

    assert breach.is_breach and breach.sla_type == "resolution"
    assert not warning.is_breach and warning.sla_type == "response"
    assert breach.to_dict() == {
        "ticket_id": "t-1",
        "ticket_number": 1,
        "alert_type": "resolution_breached",
        "hours_remaining": -2.0,
    }


class TestPolicyMatching:
    @staticmethod
    def _record(category, priority="high", is_active=True, response=4.0):
        return SimpleNamespace(
            category=category,
            priority=priority,
            response_time_hours=response,
            resolution_time_hours=24.0,
            auto_assign_to_role=None,
            is_active=is_active,
        )

    def test_exact_category_beats_wildcard(self):
        wildcard = self._record(None)
        billing = self._record("billing", response=2.0)

        assert SLAPolicy.best_match([wildcard, billing], "billing", "high") is billing

    def test_wildcard_used_for_other_categories(self):
        wildcard = self._record(None)
        billing = self._record("billing")

        assert SLAPolicy.best_match([billing, wildcard], "network", "high") is wildcard

    def test_first_record_wins_among_equals(self):
        newest = self._record(None, response=1.0)
        older = self._record(None, response=3.0)

        assert SLAPolicy.best_match([newest, older], None, "high") is newest

    def test_inactive_and_other_priorities_ignored(self):
        records = [self._record(None, is_active=False), self._record(None, priority="low")]

        assert SLAPolicy.best_match(records, None, "high") is None
