"""Ticket lifecycle through the service layer."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from ticketdesk.core.exceptions import (
    DomainException,
    InvalidStatusTransitionException,
    ResourceNotFoundException,
    ValidationException,
)
from ticketdesk.dependencies import build_balancer, build_dispatcher, build_ticket_service
from ticketdesk.notifications.infrastructure import NotificationModel
from ticketdesk.sla.application import SLAPolicyService
from ticketdesk.sla.domain import SLAPolicyConfig
from ticketdesk.sla.infrastructure import SQLAlchemySLAConfigurationRepository
from ticketdesk.tickets.application import UserService
from ticketdesk.tickets.infrastructure import SQLAlchemyUserRepository, TicketModel

from tests.conftest import FailingSender


@pytest.fixture
async def policies(session):
    service = SLAPolicyService(SQLAlchemySLAConfigurationRepository(session))
    await service.upsert(SLAPolicyConfig(priority="high", response_time_hours=4, resolution_time_hours=24))
    await service.upsert(SLAPolicyConfig(
        category="billing", priority="high", response_time_hours=2, resolution_time_hours=12,
        auto_assign_to_role="admin",
    ))
    return service


class TestCreateTicket:
    async def test_snapshots_matching_policy_and_assigns(self, users, policies, ticket_service, sender):
        ticket = await ticket_service.create_ticket(
            title="Invoice missing", created_by="user-1", priority="high", category="billing"
        )

        assert ticket.ticket_number == 1
        assert ticket.status == "new"
        assert ticket.sla_response_time_hours == 2
        assert ticket.sla_resolution_time_hours == 12
        assert ticket.assigned_to == "admin-1"
        assert [item["type"] for item in sender.sent] == ["ticket_created", "ticket_assigned"]
        assert sender.of_type("ticket_assigned")[0]["recipient_user_id"] == "admin-1"

    async def test_wildcard_policy_for_other_categories(self, users, policies, ticket_service):
        ticket = await ticket_service.create_ticket(
            title="VPN down", created_by="user-1", priority="high", category="network"
        )

        assert ticket.sla_response_time_hours == 4
        assert ticket.assigned_to == "admin-1"  # lowest id across agent and admin roles

    async def test_no_policy_means_exempt(self, users, ticket_service):
        ticket = await ticket_service.create_ticket(title="Question", created_by="user-1", priority="low")

        assert ticket.sla_response_time_hours is None
        assert ticket.sla_resolution_time_hours is None
        assert ticket_service.clock_for(ticket).is_exempt

    async def test_ticket_numbers_increase(self, users, ticket_service):
        first = await ticket_service.create_ticket(title="One", created_by="user-1", priority="low")
        second = await ticket_service.create_ticket(title="Two", created_by="user-1", priority="low")

        assert second.ticket_number == first.ticket_number + 1

    async def test_invalid_priority_rejected(self, users, ticket_service):
        with pytest.raises(ValidationException):
            await ticket_service.create_ticket(title="x", created_by="user-1", priority="critical")

    async def test_failed_notifications_do_not_fail_creation(self, users, session, app_settings, clock):
        dispatcher = build_dispatcher(session, FailingSender(), app_settings, clock)
        service = build_ticket_service(session, dispatcher, app_settings, clock)

        ticket = await service.create_ticket(title="Printer", created_by="user-1", priority="low")

        assert await session.get(TicketModel, ticket.id) is not None
        result = await session.execute(select(NotificationModel).where(NotificationModel.ticket_id == ticket.id))
        records = list(result.scalars().all())
        assert records
        assert {record.status for record in records} == {"failed"}
        assert all("relay unavailable" in record.error_message for record in records)


class TestFirstResponse:
    async def test_first_agent_comment_records_response_once(self, users, policies, ticket_service, clock):
        ticket = await ticket_service.create_ticket(
            title="VPN down", created_by="user-1", priority="high", category="network"
        )
        clock.advance(hours=1)
        await ticket_service.add_comment(ticket.id, "agent-a", "Looking into it")
        first = await ticket_service.get_ticket(ticket.id)
        responded_at = first.first_response_at

        clock.advance(hours=3)
        await ticket_service.add_comment(ticket.id, "agent-b", "Any update?")
        again = await ticket_service.record_first_response(ticket.id, "agent-b")
        ticket = await ticket_service.get_ticket(ticket.id)

        assert again is False
        assert ticket.status == "in_progress"
        assert ticket.first_response_at == responded_at
        assert ticket.response_sla_met is True

    async def test_late_response_is_recorded_as_missed(self, users, policies, ticket_service, clock):
        ticket = await ticket_service.create_ticket(
            title="VPN down", created_by="user-1", priority="high", category="network"
        )
        clock.advance(hours=5)

        assert await ticket_service.record_first_response(ticket.id, "agent-a") is True
        ticket = await ticket_service.get_ticket(ticket.id)
        assert ticket.response_sla_met is False

    async def test_creator_comment_is_not_a_response(self, users, ticket_service):
        ticket = await ticket_service.create_ticket(title="Help", created_by="user-1", priority="low")

        await ticket_service.add_comment(ticket.id, "user-1", "Adding details")
        ticket = await ticket_service.get_ticket(ticket.id)

        assert ticket.first_response_at is None
        assert ticket.status == "new"

    async def test_empty_comment_rejected(self, users, ticket_service):
        ticket = await ticket_service.create_ticket(title="Help", created_by="user-1", priority="low")

        with pytest.raises(ValidationException):
            await ticket_service.add_comment(ticket.id, "agent-a", "   ")

    async def test_internal_notes_hidden_from_public_listing(self, users, ticket_service):
        ticket = await ticket_service.create_ticket(title="Help", created_by="user-1", priority="low")
        await ticket_service.add_comment(ticket.id, "agent-a", "Customer is VIP", is_internal=True)
        await ticket_service.add_comment(ticket.id, "agent-a", "On it")

        public = await ticket_service.list_comments(ticket.id, include_internal=False)

        assert [c.content for c in public] == ["On it"]


class TestStatusChanges:
    async def test_new_ticket_cannot_skip_to_resolved(self, users, ticket_service):
        ticket = await ticket_service.create_ticket(title="Help", created_by="user-1", priority="low")

        with pytest.raises(InvalidStatusTransitionException):
            await ticket_service.update_status(ticket.id, "resolved")

    async def test_close_resolves_in_progress_ticket_first(self, users, policies, ticket_service, clock, sender):
        ticket = await ticket_service.create_ticket(
            title="VPN down", created_by="user-1", priority="high", category="network"
        )
        clock.advance(hours=1)
        await ticket_service.add_comment(ticket.id, "agent-a", "Restarted the gateway")
        clock.advance(hours=2)

        closed = await ticket_service.close_ticket(ticket.id, "agent-a", "Fixed")

        assert closed.status == "closed"
        assert closed.resolved_at is not None
        assert closed.closed_at is not None
        assert closed.resolution_sla_met is True
        changes = [item["metadata"]["new_status"] for item in sender.of_type("status_changed")]
        assert changes == ["in_progress", "in_progress", "resolved", "resolved", "closed", "closed"]

    async def test_closed_ticket_cannot_be_reassigned(self, users, ticket_factory, ticket_service):
        ticket = await ticket_factory(status="closed")

        with pytest.raises(ValidationException):
            await ticket_service.assign_ticket(ticket.id, "agent-a")

    async def test_manual_assignment(self, users, ticket_factory, ticket_service, sender):
        ticket = await ticket_factory(assigned_to="agent-a")

        ticket = await ticket_service.assign_ticket(ticket.id, "agent-b")

        assert ticket.assigned_to == "agent-b"
        assert sender.of_type("ticket_assigned")[0]["recipient_user_id"] == "agent-b"

    async def test_assignment_to_inactive_or_unknown_user(self, users, session, ticket_factory, ticket_service):
        ticket = await ticket_factory()
        users["agent_b"].is_active = False
        await session.flush()

        with pytest.raises(ValidationException):
            await ticket_service.assign_ticket(ticket.id, "agent-b")
        with pytest.raises(ResourceNotFoundException):
            await ticket_service.assign_ticket(ticket.id, "nobody")

    async def test_unknown_ticket(self, ticket_service):
        with pytest.raises(ResourceNotFoundException):
            await ticket_service.get_ticket("missing")

    async def test_status_filter_validated(self, ticket_service):
        with pytest.raises(ValidationException):
            await ticket_service.list_tickets({"status": "archived"})

    async def test_list_filters_by_assignee(self, users, ticket_factory, ticket_service):
        await ticket_factory(assigned_to="agent-a")
        await ticket_factory(assigned_to="agent-b")

        tickets = await ticket_service.list_tickets({"assigned_to": "agent-b"})

        assert [t.assigned_to for t in tickets] == ["agent-b"]


class TestUserService:
    @pytest.fixture
    def user_service(self, session, app_settings):
        return UserService(SQLAlchemyUserRepository(session), build_balancer(session, app_settings))

    async def test_create_and_duplicate_email(self, user_service):
        user = await user_service.create_user("dana@example.com", "agent", full_name="Dana")

        assert user.id
        assert user.is_active is True
        with pytest.raises(DomainException):
            await user_service.create_user("dana@example.com", "agent")

    async def test_unknown_role_rejected(self, user_service):
        with pytest.raises(ValidationException):
            await user_service.create_user("eve@example.com", "superuser")

    async def test_deactivated_agent_leaves_the_pool(self, users, session, user_service, ticket_factory, app_settings):
        ticket = await ticket_factory(assigned_to="agent-a", status="in_progress")

        user, moved = await user_service.deactivate_user("agent-a")

        assert user.is_active is False
        assert moved == 0
        assert ticket.assigned_to == "agent-a"
        assert await build_balancer(session, app_settings).pick_least_loaded("agent") == "agent-b"

    async def test_deactivate_with_handover(self, users, session, user_service, ticket_factory):
        await ticket_factory(assigned_to="agent-a")
        await ticket_factory(assigned_to="agent-a", status="closed")

        _, moved = await user_service.deactivate_user("agent-a", reassign_to="agent-b")

        assert moved == 1
        assert [u.id for u in await user_service.list_users(role="agent")] == ["agent-b"]
        assert len(await user_service.list_users(role="agent", include_inactive=True)) == 2
