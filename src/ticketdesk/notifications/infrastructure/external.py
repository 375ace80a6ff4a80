"""
Notification Transports
=======================

Senders behind the dispatcher's ``send`` contract:
- Internal (in-app) notifications, which only need the persisted record
- Webhook relay for email / WhatsApp, with retry and a circuit breaker
"""

import asyncio
import time
from typing import Any, Dict, Mapping, Optional

import httpx

from ticketdesk.config import NotificationChannel
from ticketdesk.core.exceptions import NotificationDispatchException
from ticketdesk.notifications.application.services import INotificationSender
from ticketdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._last_failure_time:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class InternalNotificationSender(INotificationSender):
    """In-app notifications: the persisted record is the delivery."""

    async def send(
        self,
        recipient_user_id: str,
        channel: str,
        type: str,
        message: str,
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        logger.debug(
            "Internal notification recorded",
            extra={"recipient": recipient_user_id, "type": type}
        )


class WebhookNotificationSender(INotificationSender):
    """
    Relays email / WhatsApp notifications to an HTTP webhook.

    The relay resolves the recipient's address from the user id.
    """

    def __init__(
        self,
        webhook_url: Optional[str],
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self._webhook_url = webhook_url
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds
        self._http_client = http_client
        self._circuit_breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout_seconds)
        return self._http_client

    async def send(
        self,
        recipient_user_id: str,
        channel: str,
        type: str,
        message: str,
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        if not self._webhook_url:
            raise NotificationDispatchException(channel, "webhook URL not configured")

        if not self._circuit_breaker.allow_request():
            raise NotificationDispatchException(channel, "circuit breaker open")

        payload = {
            "recipient_user_id": recipient_user_id,
            "channel": channel,
            "type": type,
            "subject": subject,
            "message": message,
            "metadata": metadata or {},
        }

        last_error = "no attempt made"
        for attempt in range(self._max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._webhook_url, json=payload)
                if response.status_code < 300:
                    self._circuit_breaker.record_success()
                    return
                last_error = f"webhook returned {response.status_code}"
                logger.warning(
                    "Notification webhook returned non-2xx",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                last_error = str(e) or type(e).__name__
                logger.warning(
                    "Notification webhook request failed",
                    extra={"error": last_error, "attempt": attempt + 1}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._backoff_seconds * 2 ** attempt)

        self._circuit_breaker.record_failure()
        raise NotificationDispatchException(channel, last_error)

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class ChannelRoutingSender(INotificationSender):
    """Picks the transport registered for the notification's channel."""

    def __init__(self, senders: Mapping[str, INotificationSender]):
        self._senders = dict(senders)

    @classmethod
    def default(cls, webhook: WebhookNotificationSender) -> "ChannelRoutingSender":
        return cls({
            NotificationChannel.INTERNAL: InternalNotificationSender(),
            NotificationChannel.EMAIL: webhook,
            NotificationChannel.WHATSAPP: webhook,
        })

    async def send(
        self,
        recipient_user_id: str,
        channel: str,
        type: str,
        message: str,
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        sender = self._senders.get(channel)
        if sender is None:
            raise NotificationDispatchException(channel, "no transport registered")
        await sender.send(recipient_user_id, channel, type, message, subject, metadata)
