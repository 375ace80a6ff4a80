"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA policies, alerts and compliance metrics.

Controllers are thin - they delegate to application services.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ticketdesk.core.clock import as_utc
from ticketdesk.core.exceptions import ValidationException
from ticketdesk.dependencies import get_metrics_service, get_policy_service, get_sla_monitor
from ticketdesk.shared.infrastructure.logging import get_logger
from ticketdesk.sla.application import (
    AlertListResponse,
    AlertResponse,
    SLAConfigurationResponse,
    SLAConfigurationUpsertRequest,
    SLAMetricsResponse,
    SLAMetricsService,
    SLAPolicyService,
)
from ticketdesk.sla.infrastructure import SLAMonitor

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA Monitoring"])


# ========== Example payloads for Swagger ==========

ALERTS_RESPONSE_EXAMPLE = {
    "alerts": [
        {
            "ticket_id": "0d9a3c55-5a3e-4f0b-a7a4-3f2a9e1b7c21",
            "ticket_number": 42,
            "alert_type": "response_breached",
            "hours_remaining": -1.0
        }
    ],
    "total": 1,
    "scanned_at": "2024-01-15T10:00:00Z"
}

METRICS_RESPONSE_EXAMPLE = {
    "total_tickets": 10,
    "response_sla_met": 6,
    "response_sla_breached": 4,
    "resolution_sla_met": 5,
    "resolution_sla_breached": 2,
    "avg_response_time_hours": 3.25,
    "avg_resolution_time_hours": 20.5,
    "tickets_at_risk": 1,
    "skipped_tickets": []
}


def _alert_list(monitor: SLAMonitor, alerts) -> AlertListResponse:
    return AlertListResponse(
        alerts=[AlertResponse.from_alert(alert) for alert in alerts],
        total=len(alerts),
        scanned_at=monitor.last_scan_at
    )


# ========== Route Handlers ==========

@router.get(
    "/configurations",
    response_model=List[SLAConfigurationResponse],
    summary="List SLA policies"
)
async def list_configurations(
    include_inactive: bool = Query(False, description="Include deactivated policies"),
    service: SLAPolicyService = Depends(get_policy_service)
):
    return await service.list_configurations(include_inactive=include_inactive)


@router.put(
    "/configurations",
    response_model=SLAConfigurationResponse,
    summary="Create or replace an SLA policy",
    description="""
    Policies are keyed by (category, priority); omit `category` for a policy
    that applies to every category of that priority. An exact category
    match beats the wildcard when tickets are created.

    Budgets are copied onto tickets at creation, so changes only affect new
    tickets.
    """
)
async def upsert_configuration(
    request: SLAConfigurationUpsertRequest,
    service: SLAPolicyService = Depends(get_policy_service)
):
    return await service.upsert(request.to_config())


@router.post(
    "/configurations/{configuration_id}/deactivate",
    response_model=SLAConfigurationResponse,
    summary="Deactivate an SLA policy",
    responses={404: {"description": "Policy not found"}}
)
async def deactivate_configuration(
    configuration_id: str,
    service: SLAPolicyService = Depends(get_policy_service)
):
    return await service.deactivate(configuration_id)


@router.get(
    "/alerts",
    response_model=AlertListResponse,
    summary="Tickets requiring attention",
    description="""
    Alerts from the most recent background scan. `hours_remaining` is
    signed: negative values are hours past the deadline.
    """,
    responses={200: {"content": {"application/json": {"example": ALERTS_RESPONSE_EXAMPLE}}}}
)
async def get_alerts(monitor: SLAMonitor = Depends(get_sla_monitor)):
    return _alert_list(monitor, monitor.last_alerts)


@router.post(
    "/alerts/refresh",
    response_model=AlertListResponse,
    summary="Run an SLA scan now",
    description="Runs a scan immediately (waiting for a running one to finish) and returns its alerts."
)
async def refresh_alerts(monitor: SLAMonitor = Depends(get_sla_monitor)):
    alerts = await monitor.refresh()
    return _alert_list(monitor, alerts)


@router.get(
    "/metrics",
    response_model=SLAMetricsResponse,
    summary="SLA compliance metrics",
    description="Aggregates over tickets created in the optional date range (inclusive bounds).",
    responses={200: {"content": {"application/json": {"example": METRICS_RESPONSE_EXAMPLE}}}}
)
async def get_metrics(
    start_date: Optional[datetime] = Query(None, description="Created on or after"),
    end_date: Optional[datetime] = Query(None, description="Created on or before"),
    service: SLAMetricsService = Depends(get_metrics_service)
):
    start_date, end_date = as_utc(start_date), as_utc(end_date)
    if start_date and end_date and end_date < start_date:
        raise ValidationException("end_date cannot be before start_date")

    metrics = await service.compute_metrics(start_date, end_date)
    logger.info(
        "SLA metrics computed",
        extra={"total_tickets": metrics.total_tickets, "skipped": len(metrics.skipped_tickets)}
    )
    return SLAMetricsResponse.from_metrics(metrics)


sla_router = router
