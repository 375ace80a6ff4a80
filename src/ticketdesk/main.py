"""
TicketDesk - Main Application
=============================

Customer support ticketing with SLA tracking and rule-based assignment.

Modules:
- Tickets: lifecycle, comments, first response
- SLA Monitoring: policies, background alert scans, compliance metrics
- Assignment: ordered rules and workload balancing
- Notifications: recorded events relayed to delivery channels

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects, lifecycle rules
- Infrastructure: Database, scheduler, webhook transport
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from ticketdesk.assignment.application import AssignmentRuleService
from ticketdesk.assignment.infrastructure import SQLAlchemyAssignmentRuleRepository
from ticketdesk.assignment.interfaces import assignment_router
from ticketdesk.config import Settings, settings as default_settings
from ticketdesk.core.exceptions import ApplicationException, ConfigurationException
from ticketdesk.dependencies import build_balancer, build_dispatcher, build_scanner
from ticketdesk.infrastructure.database import Database
from ticketdesk.notifications.infrastructure import ChannelRoutingSender, WebhookNotificationSender
from ticketdesk.notifications.interfaces import notifications_router
from ticketdesk.shared.api import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from ticketdesk.shared.infrastructure.logging import get_logger, setup_logging
from ticketdesk.sla.application import SLAPolicyService
from ticketdesk.sla.infrastructure import (
    PolicyDocument,
    PolicyFileManager,
    SLAMonitor,
    SLAScheduler,
    SQLAlchemySLAConfigurationRepository,
)
from ticketdesk.sla.interfaces import sla_router
from ticketdesk.tickets.interfaces import tickets_router, users_router

logger = get_logger(__name__)


def _policy_sync(database: Database):
    async def sync(document: PolicyDocument) -> None:
        async with database.session() as session:
            policy_service = SLAPolicyService(SQLAlchemySLAConfigurationRepository(session))
            for policy in document.sla_policies:
                await policy_service.seed(policy)
            rule_service = AssignmentRuleService(SQLAlchemyAssignmentRuleRepository(session))
            await rule_service.seed_rules(document.assignment_rules)
    return sync


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load the SLA policy file and watch it for changes
    4. Build notification transports
    5. Start the SLA scan and rebalance jobs

    SHUTDOWN:
    1. Stop scheduler and cancel a running scan
    2. Stop the file watcher
    3. Close the webhook client and database connections
    """
    app_settings: Settings = app.state.settings

    # === STARTUP ===
    setup_logging(app_settings.log_level, app_settings.environment)
    logger.info("Starting TicketDesk", extra={
        "version": app_settings.app_version,
        "environment": app_settings.environment
    })

    logger.info("Initializing database")
    database = Database.from_settings(app_settings)
    app.state.database = database

    # Development convenience; production uses migrations
    try:
        await database.create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    policy_manager = PolicyFileManager(app_settings.sla_policy_path, _policy_sync(database))
    try:
        await policy_manager.load()
        policy_manager.start_watching()
    except ConfigurationException as e:
        logger.error("SLA policy file rejected, keeping stored policies", extra={"error": e.message})
    except Exception as e:
        logger.warning(f"SLA policies not synced: {e}")

    webhook_sender = WebhookNotificationSender(
        app_settings.notification_webhook_url,
        timeout_seconds=app_settings.notification_timeout_seconds
    )
    sender = ChannelRoutingSender.default(webhook_sender)
    app.state.notification_sender = sender

    monitor = SLAMonitor(
        database,
        lambda session: build_scanner(session, sender, app_settings)
    )
    app.state.sla_monitor = monitor

    async def rebalance_job():
        """Background workload rebalance."""
        try:
            async with database.session() as session:
                dispatcher = build_dispatcher(session, sender, app_settings)
                result = await build_balancer(session, app_settings, dispatcher).rebalance()
            if result.moved_count:
                logger.info("Scheduled rebalance finished", extra={"moved": result.moved_count})
        except Exception:
            logger.exception("Scheduled rebalance failed")

    scheduler = SLAScheduler()
    scheduler.add_interval_job(
        monitor.run_once,
        app_settings.sla_scan_interval_seconds,
        job_id="sla_scan",
        name="SLA alert scan"
    )
    scheduler.add_interval_job(
        rebalance_job,
        app_settings.rebalance_interval_seconds,
        job_id="workload_rebalance",
        name="Workload rebalance"
    )
    await scheduler.start()
    app.state.scheduler = scheduler
    app.state.policy_manager = policy_manager

    logger.info("TicketDesk started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down TicketDesk")

    await scheduler.stop()
    monitor.stop()
    policy_manager.stop_watching()
    await webhook_sender.close()
    await database.close()

    logger.info("TicketDesk shutdown complete")


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application; tests pass their own settings."""
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="TicketDesk API",
        description="""
    ## Customer Support Ticketing with SLA Tracking

    ### Tickets
    - `POST /tickets` - Open a ticket (SLA snapshot + automatic assignment)
    - `GET /tickets/{id}` - Ticket with its live SLA clock
    - `POST /tickets/{id}/comments` - Comment; the first agent reply is the first response
    - `PATCH /tickets/{id}/status`, `POST /tickets/{id}/close`, `POST /tickets/{id}/assign`

    ### Users
    - `POST /users`, `GET /users` - Seed requesters and agents
    - `POST /users/{id}/deactivate` - Leave the assignment pool, optionally handing over open tickets

    ### SLA Monitoring
    - `GET/PUT /sla/configurations` - Policies per (category, priority)
    - `GET /sla/alerts` - Tickets in warning or breach from the last background scan
    - `GET /sla/metrics` - Compliance figures over a date range

    ### Assignment
    - `GET/POST /assignment/rules` - Ordered rules matching ticket fields
    - `POST /assignment/preview` - Dry-run the engine
    - `POST /assignment/rebalance` - Even out agent workload

    ### Notifications
    - `GET /notifications?user_id=...` - A user's notifications
    """,
        version=app_settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = app_settings

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Last added runs first: the correlation id is set before request logging
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(tickets_router)
    app.include_router(users_router)
    app.include_router(sla_router)
    app.include_router(assignment_router)
    app.include_router(notifications_router)

    # === Health Check Endpoint ===

    @app.get("/health", tags=["Health"], responses={
        200: {
            "description": "Service is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "environment": "development",
                        "checks": {
                            "database": "connected",
                            "sla_scheduler": "running",
                            "last_sla_scan": "2024-01-15T10:00:00+00:00"
                        }
                    }
                }
            }
        }
    })
    async def health_check(request: Request):
        """
        Health check endpoint for load balancers and orchestrators.

        Reports database connectivity, scheduler state and the time of the
        last SLA scan. A failed database check marks the service degraded.
        """
        state = request.app.state
        checks = {"database": "not_initialized", "sla_scheduler": "stopped", "last_sla_scan": None}

        database = getattr(state, "database", None)
        if database is not None:
            try:
                async with database.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                checks["database"] = "connected"
            except Exception as e:
                checks["database"] = f"error: {str(e)}"

        scheduler = getattr(state, "scheduler", None)
        if scheduler is not None and scheduler.is_running:
            checks["sla_scheduler"] = "running"

        monitor = getattr(state, "sla_monitor", None)
        if monitor is not None and monitor.last_scan_at is not None:
            checks["last_sla_scan"] = monitor.last_scan_at.isoformat()

        return {
            "status": "healthy" if checks["database"] == "connected" else "degraded",
            "version": state.settings.app_version,
            "environment": state.settings.environment,
            "checks": checks
        }

    @app.get("/", tags=["Root"])
    async def root(request: Request):
        """Root endpoint with API information."""
        return {
            "service": "TicketDesk",
            "version": request.app.state.settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
            "modules": {
                "tickets": "/tickets",
                "users": "/users",
                "sla": "/sla",
                "assignment": "/assignment",
                "notifications": "/notifications"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ticketdesk.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
        log_level=default_settings.log_level.lower()
    )
