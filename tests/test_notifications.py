"""Notification recording, delivery state and transports."""

import httpx
import pytest

from ticketdesk.core.exceptions import DomainException, NotificationDispatchException
from ticketdesk.dependencies import build_dispatcher
from ticketdesk.notifications.domain import NotificationMessage
from ticketdesk.notifications.infrastructure import (
    ChannelRoutingSender,
    InternalNotificationSender,
    WebhookNotificationSender,
)

from tests.conftest import FailingSender


def _message(**overrides):
    values = {
        "ticket_id": "ticket-1",
        "recipient_user_id": "agent-a",
        "channel": "internal",
        "type": "ticket_assigned",
        "message": "Ticket #1 has been assigned to you",
    }
    values.update(overrides)
    return NotificationMessage(**values)


class TestDispatcher:
    async def test_successful_send_is_recorded_as_sent(self, dispatcher, sender):
        record = await dispatcher.dispatch(_message())

        assert record.status == "sent"
        assert record.sent_at is not None
        assert record.error_message is None
        assert len(sender.sent) == 1

    async def test_failed_send_is_recorded_not_raised(self, session, app_settings, clock):
        dispatcher = build_dispatcher(session, FailingSender(), app_settings, clock)

        record = await dispatcher.dispatch(_message())

        assert record.status == "failed"
        assert "relay unavailable" in record.error_message

    async def test_delivery_confirmation(self, dispatcher, clock):
        record = await dispatcher.dispatch(_message())
        clock.advance(minutes=1)

        delivered = await dispatcher.mark_delivered(record.id)

        assert delivered.status == "delivered"
        assert delivered.delivered_at == clock()

    async def test_failed_notification_cannot_be_delivered(self, session, app_settings, clock):
        dispatcher = build_dispatcher(session, FailingSender(), app_settings, clock)
        record = await dispatcher.dispatch(_message())

        with pytest.raises(DomainException):
            await dispatcher.mark_delivered(record.id)

    async def test_unknown_notification(self, dispatcher):
        assert await dispatcher.mark_delivered("missing") is None

    async def test_internal_notes_skip_the_requester(self, dispatcher, sender, ticket_factory):
        ticket = await ticket_factory(assigned_to="agent-a")

        await dispatcher.notify_new_comment(ticket, "agent-b", "Ben Agent", is_internal=True)
        await dispatcher.notify_new_comment(ticket, "agent-a", "Ana Agent", is_internal=False)

        recipients = [item["recipient_user_id"] for item in sender.of_type("new_comment")]
        assert recipients == ["agent-a", "user-1"]

    async def test_list_for_user(self, dispatcher):
        await dispatcher.dispatch(_message(message="first"))
        await dispatcher.dispatch(_message(message="second", recipient_user_id="agent-b"))

        records = await dispatcher.list_for_user("agent-a")

        assert [r.message for r in records] == ["first"]


    async def test_list_for_ticket_filters_by_type(self, dispatcher):
        await dispatcher.dispatch(_message(message="assigned"))
        await dispatcher.dispatch(_message(message="late", type="sla_breach"))
        await dispatcher.dispatch(_message(message="other ticket", ticket_id="ticket-2"))

        everything = await dispatcher.list_for_ticket("ticket-1")
        breaches = await dispatcher.list_for_ticket("ticket-1", type="sla_breach")

        assert sorted(r.message for r in everything) == ["assigned", "late"]
        assert [r.message for r in breaches] == ["late"]


class TestWebhookSender:
    @staticmethod
    def _sender(handler, **kwargs):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return WebhookNotificationSender(
            "https://relay.example.com/notify", http_client=client, backoff_seconds=0, **kwargs
        )

    async def test_posts_payload(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(202)

        sender = self._sender(handler)
        await sender.send("agent-a", "email", "sla_breach", "Ticket #1 breached", "SLA alert", {"ticket_number": 1})
        await sender.close()

        assert len(requests) == 1
        body = requests[0].content
        assert b'"channel":"email"' in body.replace(b" ", b"")
        assert b'"ticket_number":1' in body.replace(b" ", b"")

    async def test_retries_then_raises(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        sender = self._sender(handler, max_retries=3)

        with pytest.raises(NotificationDispatchException) as exc_info:
            await sender.send("agent-a", "whatsapp", "sla_breach", "Ticket #1 breached")

        assert len(calls) == 3
        assert "503" in exc_info.value.message

    async def test_transport_errors_are_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200)

        await self._sender(handler, max_retries=2).send("agent-a", "email", "sla_breach", "breach")

        assert len(attempts) == 2

    async def test_circuit_opens_after_repeated_failures(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        sender = self._sender(handler, max_retries=1)
        for _ in range(5):
            with pytest.raises(NotificationDispatchException):
                await sender.send("agent-a", "email", "sla_breach", "breach")

        with pytest.raises(NotificationDispatchException) as exc_info:
            await sender.send("agent-a", "email", "sla_breach", "breach")

        assert "circuit breaker open" in exc_info.value.message
        assert len(calls) == 5

    async def test_missing_url_fails_fast(self):
        with pytest.raises(NotificationDispatchException):
            await WebhookNotificationSender(None).send("agent-a", "email", "sla_breach", "breach")


class TestChannelRouting:
    async def test_routes_by_channel(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200)

        webhook = WebhookNotificationSender(
            "https://relay.example.com/notify",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        router = ChannelRoutingSender.default(webhook)

        await router.send("agent-a", "internal", "ticket_assigned", "assigned")
        await router.send("agent-a", "whatsapp", "sla_breach", "breach")

        assert len(requests) == 1

    async def test_unknown_channel(self):
        router = ChannelRoutingSender({"internal": InternalNotificationSender()})

        with pytest.raises(NotificationDispatchException):
            await router.send("agent-a", "sms", "sla_breach", "breach")
