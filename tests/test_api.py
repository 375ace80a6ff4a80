"""HTTP API, exercised in-process through httpx's ASGI transport."""

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from ticketdesk.dependencies import build_scanner, get_clock
from ticketdesk.main import create_app
from ticketdesk.sla.infrastructure import SLAMonitor

from tests.conftest import seed_users


@pytest.fixture
async def app(database, sender, app_settings, clock):
    async with database.session() as session:
        session.add_all(seed_users().values())

    application = create_app(app_settings)
    application.state.database = database
    application.state.notification_sender = sender
    application.state.sla_monitor = SLAMonitor(
        database,
        lambda session: build_scanner(session, sender, app_settings, clock),
        clock,
    )
    application.dependency_overrides[get_clock] = lambda: clock
    return application


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


async def _create_ticket(client, **overrides):
    payload = {"title": "Charged twice", "priority": "high", "category": "billing", "created_by": "user-1"}
    payload.update(overrides)
    response = await client.post("/tickets", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def test_policy_then_ticket_with_sla_clock(client):
    response = await client.put("/sla/configurations", json={
        "category": "billing", "priority": "high",
        "response_time_hours": 8, "resolution_time_hours": 48,
    })
    assert response.status_code == 200
    assert response.json()["is_active"] is True

    ticket = await _create_ticket(client)

    assert ticket["ticket_number"] == 1
    assert ticket["sla_response_time_hours"] == 8
    assert ticket["sla"]["sla_status"] == "within_sla"
    assert ticket["sla"]["hours_until_response_breach"] == 8
    assert ticket["sla"]["is_exempt"] is False


async def test_ticket_without_policy_is_exempt(client):
    ticket = await _create_ticket(client, priority="low", category=None)

    assert ticket["sla"]["is_exempt"] is True
    assert ticket["assigned_to"] == "admin-1"


async def test_invalid_payload_rejected(client):
    response = await client.post("/tickets", json={"title": "x", "priority": "critical", "created_by": "user-1"})

    assert response.status_code == 422


async def test_unknown_ticket_is_404(client):
    response = await client.get("/tickets/missing")

    assert response.status_code == 404
    body = response.json()
    assert body["error_type"] == "ResourceNotFoundException"
    assert "missing" in body["detail"]


async def test_comment_records_first_response(client):
    ticket = await _create_ticket(client)

    response = await client.post(
        f"/tickets/{ticket['id']}/comments",
        json={"user_id": "agent-a", "content": "Refund issued"},
    )
    assert response.status_code == 201

    ticket = (await client.get(f"/tickets/{ticket['id']}")).json()
    assert ticket["status"] == "in_progress"
    assert ticket["first_response_at"] is not None


async def test_illegal_status_change_is_409_and_rolled_back(client):
    ticket = await _create_ticket(client)

    response = await client.patch(f"/tickets/{ticket['id']}/status", json={"status": "closed"})

    assert response.status_code == 409
    assert response.json()["context"]["current_status"] == "new"
    assert (await client.get(f"/tickets/{ticket['id']}")).json()["status"] == "new"


async def test_close_ticket(client):
    ticket = await _create_ticket(client)
    await client.post(f"/tickets/{ticket['id']}/comments", json={"user_id": "agent-a", "content": "On it"})

    response = await client.post(f"/tickets/{ticket['id']}/close", json={"user_id": "agent-a"})

    assert response.status_code == 200
    assert response.json()["status"] == "closed"


async def test_list_tickets_filtered(client):
    await _create_ticket(client)
    await _create_ticket(client, priority="low")

    response = await client.get("/tickets", params={"priority": "low"})

    assert response.status_code == 200
    assert response.json()["total"] == 1


async def test_alerts_refresh_and_last_scan(client, clock):
    await client.put("/sla/configurations", json={
        "category": "billing", "priority": "high",
        "response_time_hours": 8, "resolution_time_hours": 48,
    })
    ticket = await _create_ticket(client)
    clock.advance(hours=9)

    refreshed = await client.post("/sla/alerts/refresh")
    latest = await client.get("/sla/alerts")

    assert refreshed.status_code == 200
    for body in (refreshed.json(), latest.json()):
        assert body["total"] == 1
        assert body["alerts"][0]["ticket_id"] == ticket["id"]
        assert body["alerts"][0]["alert_type"] == "response_breached"
        assert body["alerts"][0]["hours_remaining"] == -1.0


async def test_metrics(client):
    await _create_ticket(client)

    response = await client.get("/sla/metrics")

    assert response.status_code == 200
    assert response.json()["total_tickets"] == 1


async def test_metrics_rejects_inverted_range(client):
    response = await client.get(
        "/sla/metrics",
        params={"start_date": "2024-02-01T00:00:00Z", "end_date": "2024-01-01T00:00:00Z"},
    )

    assert response.status_code == 422


async def test_metrics_accepts_mixed_naive_and_aware_bounds(client):
    await _create_ticket(client)

    response = await client.get(
        "/sla/metrics",
        params={"start_date": "2024-01-01T00:00:00Z", "end_date": "2024-02-01T00:00:00"},
    )

    assert response.status_code == 200
    assert response.json()["total_tickets"] == 1

    inverted = await client.get(
        "/sla/metrics",
        params={"start_date": "2024-02-01T00:00:00", "end_date": "2024-01-01T00:00:00Z"},
    )
    assert inverted.status_code == 422


async def test_deactivate_unknown_policy(client):
    response = await client.post("/sla/configurations/missing/deactivate")

    assert response.status_code == 404


async def test_rules_and_preview(client):
    response = await client.post("/assignment/rules", json={
        "name": "billing-vip",
        "priority": 10,
        "conditions": {"category": "billing"},
        "assign_to_user_id": "agent-b",
    })
    assert response.status_code == 201
    rule = response.json()

    preview = await client.post("/assignment/preview", json={"priority": "high", "category": "billing"})
    assert preview.json() == {
        "assigned_to": "agent-b", "source": "rule_user",
        "rule_id": rule["id"], "rule_name": "billing-vip",
    }

    await client.post(f"/assignment/rules/{rule['id']}/deactivate")
    preview = await client.post("/assignment/preview", json={"priority": "high", "category": "billing"})
    assert preview.json()["source"] == "workload"


async def test_rule_with_two_targets_rejected(client):
    response = await client.post("/assignment/rules", json={
        "name": "broken", "assign_to_user_id": "agent-a", "assign_to_role": "agent",
    })

    assert response.status_code == 422


async def test_rebalance_with_even_load(client):
    response = await client.post("/assignment/rebalance")

    assert response.status_code == 200
    assert response.json()["moved"] == 0


async def test_notifications_listing_and_delivery(client):
    await _create_ticket(client)

    response = await client.get("/notifications", params={"user_id": "user-1"})
    assert response.status_code == 200
    notification = response.json()["notifications"][0]
    assert notification["type"] == "ticket_created"
    assert notification["status"] == "sent"

    delivered = await client.post(f"/notifications/{notification['id']}/delivered")
    assert delivered.status_code == 200
    assert delivered.json()["status"] == "delivered"

    again = await client.post(f"/notifications/{notification['id']}/delivered")
    assert again.status_code == 409


async def test_ticket_notification_trail(client):
    ticket = await _create_ticket(client)

    response = await client.get(f"/notifications/tickets/{ticket['id']}")
    created = await client.get(
        f"/notifications/tickets/{ticket['id']}", params={"type": "ticket_created"}
    )

    assert response.status_code == 200
    assert response.json()["total"] >= 1
    assert {n["ticket_id"] for n in response.json()["notifications"]} == {ticket["id"]}
    assert [n["type"] for n in created.json()["notifications"]] == ["ticket_created"]


async def test_health_and_root(client):
    health = await client.get("/health")
    root = await client.get("/")

    assert health.json()["checks"]["database"] == "connected"
    assert health.json()["status"] == "healthy"
    assert root.json()["modules"]["sla"] == "/sla"
    assert "X-Correlation-ID" in root.headers


async def test_user_seeding_and_duplicate_email(client):
    response = await client.post("/users", json={
        "email": "cora@example.com", "full_name": "Cora Agent", "role": "agent",
    })
    assert response.status_code == 201
    created = response.json()
    assert created["is_active"] is True

    agents = (await client.get("/users", params={"role": "agent"})).json()
    assert {user["id"] for user in agents} == {"agent-a", "agent-b", created["id"]}

    duplicate = await client.post("/users", json={"email": "cora@example.com", "role": "agent"})
    assert duplicate.status_code == 409


async def test_deactivate_user_hands_over_open_tickets(client):
    ticket = await _create_ticket(client, priority="low", category=None)
    assert ticket["assigned_to"] == "admin-1"

    response = await client.post("/users/admin-1/deactivate", json={"reassign_to": "agent-b"})

    assert response.status_code == 200
    assert response.json()["reassigned_tickets"] == 1
    assert response.json()["user"]["is_active"] is False
    assert (await client.get(f"/tickets/{ticket['id']}")).json()["assigned_to"] == "agent-b"

    active = (await client.get("/users")).json()
    assert "admin-1" not in {user["id"] for user in active}
    assert (await client.get("/users/admin-1")).json()["is_active"] is False


async def test_unknown_user_is_404(client):
    response = await client.get("/users/nobody")

    assert response.status_code == 404
