"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

- SLAPolicyService: policy store lookup and administration
- SLAAlertScanner: periodic at-risk detection with breach deduplication
- SLAMetricsService: aggregate compliance figures
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional

from ticketdesk.config import NON_CLOSED_STATUSES
from ticketdesk.core.clock import Clock, utc_now, hours_between
from ticketdesk.core.exceptions import AlertFetchException, ResourceNotFoundException
from ticketdesk.notifications.application import NotificationDispatcher
from ticketdesk.shared.infrastructure.logging import get_logger, log_latency
from ticketdesk.sla.domain import (
    DEFAULT_WARNING_RATIO,
    SLACalculator,
    SLAMetrics,
    SLAPolicy,
    SLAPolicyConfig,
    TicketAlert,
)
from ticketdesk.tickets.domain import ITicketRepository

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISLAConfigurationRepository(ABC):
    """Interface for SLA policy data access."""

    @abstractmethod
    async def list(self, include_inactive: bool = False) -> List[Any]:
        """All policies, most recently updated first."""

    @abstractmethod
    async def list_for_priority(self, priority: str) -> List[Any]:
        """Active policies of one priority, most recently updated first."""

    @abstractmethod
    async def get_by_id(self, configuration_id: str) -> Optional[Any]:
        """Get policy by ID."""

    @abstractmethod
    async def get_by_key(self, category: Optional[str], priority: str) -> Optional[Any]:
        """Most recent policy for (category, priority), active or not."""

    @abstractmethod
    async def upsert(self, config: SLAPolicyConfig) -> Any:
        """Create or replace the policy keyed by (category, priority)."""

    @abstractmethod
    async def save(self, configuration: Any) -> Any:
        """Flush changes made to a loaded policy."""


# ========== Application Services ==========

class SLAPolicyService:
    """
    Policy store operations.

    A ticket with no matching policy is exempt from SLA tracking; lookup
    returns None rather than raising.
    """

    def __init__(self, configuration_repository: ISLAConfigurationRepository):
        self._repo = configuration_repository

    async def lookup(self, category: Optional[str], priority: str) -> Optional[SLAPolicy]:
        records = await self._repo.list_for_priority(priority)
        record = SLAPolicy.best_match(records, category, priority)
        if record is None:
            logger.info(
                "No SLA policy matches ticket",
                extra={"category": category, "priority": priority}
            )
            return None
        return SLAPolicy.from_record(record)

    async def list_configurations(self, include_inactive: bool = False) -> List[Any]:
        return await self._repo.list(include_inactive=include_inactive)

    async def upsert(self, config: SLAPolicyConfig) -> Any:
        record = await self._repo.upsert(config)
        logger.info(
            "SLA policy saved",
            extra={
                "configuration_id": record.id,
                "category": config.category,
                "priority": config.priority,
            }
        )
        return record

    async def seed(self, config: SLAPolicyConfig) -> Optional[Any]:
        """
        Insert a policy only when its (category, priority) key is unknown.

        Stored policies, including deactivated ones, belong to admins and
        are left untouched. Returns the new record or None.
        """
        if await self._repo.get_by_key(config.category, config.priority) is not None:
            logger.debug(
                "SLA policy already stored, seed skipped",
                extra={"category": config.category, "priority": config.priority}
            )
            return None
        return await self.upsert(config)

    async def deactivate(self, configuration_id: str) -> Any:
        """Policies are never deleted; inactive ones stop matching new tickets."""
        record = await self._repo.get_by_id(configuration_id)
        if record is None:
            raise ResourceNotFoundException("SLA configuration", configuration_id)
        record.is_active = False
        await self._repo.save(record)
        logger.info("SLA policy deactivated", extra={"configuration_id": configuration_id})
        return record


class SLAAlertScanner:
    """
    Finds tickets whose SLA clock is in a warning or breached state.

    Each pass re-fetches every alerted ticket. Breaches are notified at most
    once per clock through a conditional claim on the ticket row; warnings
    are notified on every pass while they last.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        dispatcher: NotificationDispatcher,
        warning_ratio: float = DEFAULT_WARNING_RATIO,
        clock: Clock = utc_now
    ):
        self._ticket_repo = ticket_repository
        self._dispatcher = dispatcher
        self._warning_ratio = warning_ratio
        self._clock = clock

    async def scan(self) -> List[TicketAlert]:
        """
        Evaluate every non-closed ticket and act on the alerts.

        Returns:
            Alerts ordered as the tickets were listed (newest first)
        """
        now = self._clock()
        with log_latency(logger, "sla_scan"):
            tickets = await self._ticket_repo.list({"status": NON_CLOSED_STATUSES}, limit=None)

            alerts = []
            for ticket in tickets:
                sla_clock = SLACalculator.clock_for(ticket, now, self._warning_ratio)
                if not sla_clock.requires_alert:
                    continue
                alerts.append(TicketAlert(
                    ticket_id=ticket.id,
                    ticket_number=ticket.ticket_number,
                    alert_type=sla_clock.sla_status,
                    hours_remaining=sla_clock.hours_remaining,
                    detected_at=now,
                ))

            for alert in alerts:
                try:
                    await self._handle_alert(alert, now)
                except AlertFetchException as e:
                    logger.warning(e.message, extra=e.details)
                except Exception:
                    logger.exception(
                        "SLA alert handling failed",
                        extra={"ticket_id": alert.ticket_id, "alert_type": alert.alert_type}
                    )

        if alerts:
            logger.info(
                "SLA alerts detected",
                extra={"tickets_scanned": len(tickets), "alerts": len(alerts)}
            )
        return alerts

    async def _fetch(self, ticket_id: str) -> Any:
        try:
            ticket = await self._ticket_repo.get_by_id(ticket_id)
        except Exception as e:
            raise AlertFetchException(ticket_id, str(e)) from e
        if ticket is None:
            raise AlertFetchException(ticket_id, "ticket no longer exists")
        return ticket

    async def _handle_alert(self, alert: TicketAlert, now: datetime) -> None:
        ticket = await self._fetch(alert.ticket_id)

        if not alert.is_breach:
            await self._dispatcher.notify_sla_warning(ticket, alert.sla_type, alert.hours_remaining)
            return

        claimed = await self._ticket_repo.claim_breach_notification(ticket.id, alert.sla_type)
        if not claimed:
            return

        logger.warning(
            "SLA breached",
            extra={
                "ticket_id": ticket.id,
                "ticket_number": ticket.ticket_number,
                "sla_type": alert.sla_type,
                "hours_overdue": round(-alert.hours_remaining, 2),
            }
        )
        await self._dispatcher.notify_sla_breach(
            ticket,
            alert.sla_type,
            round(hours_between(ticket.created_at, now), 2),
        )


class SLAMetricsService:
    """Compliance aggregates over tickets created in a date range."""

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        warning_ratio: float = DEFAULT_WARNING_RATIO,
        clock: Clock = utc_now
    ):
        self._ticket_repo = ticket_repository
        self._warning_ratio = warning_ratio
        self._clock = clock

    async def compute_metrics(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> SLAMetrics:
        """
        Count met/breached snapshots and average milestone times.

        A ticket whose data cannot be evaluated is skipped and reported in
        ``skipped_tickets``; the rest of the aggregation carries on.
        """
        now = self._clock()
        tickets = await self._ticket_repo.list_created_between(start_date, end_date)

        metrics = SLAMetrics(total_tickets=len(tickets))
        response_hours: List[float] = []
        resolution_hours: List[float] = []

        for ticket in tickets:
            try:
                response_time = None
                if ticket.first_response_at is not None:
                    response_time = hours_between(ticket.created_at, ticket.first_response_at)
                resolution_time = None
                if ticket.resolved_at is not None:
                    resolution_time = hours_between(ticket.created_at, ticket.resolved_at)
                at_risk = SLACalculator.is_at_risk(ticket, now, self._warning_ratio)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(
                    "Skipping ticket in SLA metrics",
                    extra={"ticket_id": getattr(ticket, "id", None), "error": str(e)}
                )
                metrics.skipped_tickets.append(str(getattr(ticket, "id", "")))
                continue

            if ticket.response_sla_met is True:
                metrics.response_sla_met += 1
            elif ticket.response_sla_met is False:
                metrics.response_sla_breached += 1

            if ticket.resolution_sla_met is True:
                metrics.resolution_sla_met += 1
            elif ticket.resolution_sla_met is False:
                metrics.resolution_sla_breached += 1

            if response_time is not None:
                response_hours.append(response_time)
            if resolution_time is not None:
                resolution_hours.append(resolution_time)
            if at_risk:
                metrics.tickets_at_risk += 1

        if response_hours:
            metrics.avg_response_time_hours = round(sum(response_hours) / len(response_hours), 2)
        if resolution_hours:
            metrics.avg_resolution_time_hours = round(sum(resolution_hours) / len(resolution_hours), 2)

        return metrics
