"""
Service Wiring
==============

Builds the application services for one database session. The FastAPI
dependencies below are used by every router; background jobs call the
``build_*`` functions directly with their own session.
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.assignment.application import (
    AssignmentRuleService,
    AssignmentService,
    WorkloadBalancer,
)
from ticketdesk.assignment.infrastructure import SQLAlchemyAssignmentRuleRepository
from ticketdesk.config import Settings, settings as default_settings
from ticketdesk.core.clock import Clock, utc_now
from ticketdesk.infrastructure.database import get_session
from ticketdesk.notifications.application import INotificationSender, NotificationDispatcher
from ticketdesk.notifications.infrastructure import SQLAlchemyNotificationRepository
from ticketdesk.sla.application import SLAAlertScanner, SLAMetricsService, SLAPolicyService
from ticketdesk.sla.infrastructure import SLAMonitor, SQLAlchemySLAConfigurationRepository
from ticketdesk.tickets.application import TicketService, UserService
from ticketdesk.tickets.infrastructure import (
    SQLAlchemyCommentRepository,
    SQLAlchemyTicketRepository,
    SQLAlchemyUserRepository,
)


# ========== Builders ==========

def build_dispatcher(
    session: AsyncSession,
    sender: INotificationSender,
    app_settings: Settings,
    clock: Clock = utc_now
) -> NotificationDispatcher:
    return NotificationDispatcher(
        SQLAlchemyNotificationRepository(session),
        sender,
        breach_channels=app_settings.sla_breach_channels,
        clock=clock,
    )


def build_balancer(
    session: AsyncSession,
    app_settings: Settings,
    dispatcher: Optional[NotificationDispatcher] = None
) -> WorkloadBalancer:
    return WorkloadBalancer(
        SQLAlchemyUserRepository(session),
        SQLAlchemyTicketRepository(session),
        default_roles=app_settings.default_assignee_roles,
        threshold=app_settings.rebalance_threshold,
        dispatcher=dispatcher,
    )


def build_ticket_service(
    session: AsyncSession,
    dispatcher: NotificationDispatcher,
    app_settings: Settings,
    clock: Clock = utc_now
) -> TicketService:
    balancer = build_balancer(session, app_settings)
    return TicketService(
        SQLAlchemyTicketRepository(session),
        SQLAlchemyCommentRepository(session),
        SQLAlchemyUserRepository(session),
        SLAPolicyService(SQLAlchemySLAConfigurationRepository(session)),
        AssignmentService(SQLAlchemyAssignmentRuleRepository(session), balancer),
        dispatcher,
        warning_ratio=app_settings.sla_warning_ratio,
        clock=clock,
    )


def build_scanner(
    session: AsyncSession,
    sender: INotificationSender,
    app_settings: Settings,
    clock: Clock = utc_now
) -> SLAAlertScanner:
    return SLAAlertScanner(
        SQLAlchemyTicketRepository(session),
        build_dispatcher(session, sender, app_settings, clock),
        warning_ratio=app_settings.sla_warning_ratio,
        clock=clock,
    )


# ========== FastAPI dependencies ==========

def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or default_settings


def get_clock() -> Clock:
    return utc_now


def get_notification_sender(request: Request) -> INotificationSender:
    sender = getattr(request.app.state, "notification_sender", None)
    if sender is None:
        raise RuntimeError("Notification sender not initialized")
    return sender


def get_sla_monitor(request: Request) -> SLAMonitor:
    monitor = getattr(request.app.state, "sla_monitor", None)
    if monitor is None:
        raise RuntimeError("SLA monitor not initialized")
    return monitor


async def get_dispatcher(
    session: AsyncSession = Depends(get_session),
    sender: INotificationSender = Depends(get_notification_sender),
    app_settings: Settings = Depends(get_app_settings),
    clock: Clock = Depends(get_clock)
) -> NotificationDispatcher:
    return build_dispatcher(session, sender, app_settings, clock)


async def get_ticket_service(
    session: AsyncSession = Depends(get_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    app_settings: Settings = Depends(get_app_settings),
    clock: Clock = Depends(get_clock)
) -> TicketService:
    return build_ticket_service(session, dispatcher, app_settings, clock)


async def get_policy_service(
    session: AsyncSession = Depends(get_session)
) -> SLAPolicyService:
    return SLAPolicyService(SQLAlchemySLAConfigurationRepository(session))


async def get_metrics_service(
    session: AsyncSession = Depends(get_session),
    app_settings: Settings = Depends(get_app_settings),
    clock: Clock = Depends(get_clock)
) -> SLAMetricsService:
    return SLAMetricsService(
        SQLAlchemyTicketRepository(session),
        warning_ratio=app_settings.sla_warning_ratio,
        clock=clock,
    )


async def get_balancer(
    session: AsyncSession = Depends(get_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    app_settings: Settings = Depends(get_app_settings)
) -> WorkloadBalancer:
    return build_balancer(session, app_settings, dispatcher)


async def get_assignment_service(
    session: AsyncSession = Depends(get_session),
    app_settings: Settings = Depends(get_app_settings)
) -> AssignmentService:
    return AssignmentService(
        SQLAlchemyAssignmentRuleRepository(session),
        build_balancer(session, app_settings),
    )


async def get_rule_service(
    session: AsyncSession = Depends(get_session)
) -> AssignmentRuleService:
    return AssignmentRuleService(SQLAlchemyAssignmentRuleRepository(session))


async def get_user_service(
    session: AsyncSession = Depends(get_session),
    app_settings: Settings = Depends(get_app_settings)
) -> UserService:
    return UserService(SQLAlchemyUserRepository(session), build_balancer(session, app_settings))
