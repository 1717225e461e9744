"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA monitoring endpoints.

Controllers are thin - they delegate to application services wired in the
application lifespan and kept on ``app.state``.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from sla_escalator.sla.application import (
    BatchResponse,
    CycleAggregator,
    CycleReportResponse,
    CycleRunner,
    EvaluateRequest,
    EvaluationResponse,
    NotificationTestResponse,
    PolicyResponse,
    SourceValidationResponse,
)
from sla_escalator.sla.domain import Clock
from sla_escalator.sla.domain.clock import as_utc
from sla_escalator.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA Monitoring"])


# ========== Example payloads for Swagger ==========

EVALUATE_REQUEST_EXAMPLE = {
    "tickets": [
        {
            "id": "TICKET-001",
            "priority": "high",
            "title": "CASB Salesforce sync not working",
            "customer": "Acme Corp",
            "assignee": "jdoe",
            "created_at": "2024-01-15T10:00:00Z"
        }
    ],
    "now": "2024-01-15T17:00:00Z"
}

CYCLE_REPORT_EXAMPLE = {
    "outcome": "completed",
    "started_at": "2024-01-15T17:00:00Z",
    "finished_at": "2024-01-15T17:00:01Z",
    "ticket_count": 3,
    "summary": {"violations": 1, "criticals": 0, "warnings": 1, "on_track": 1, "skipped": 0},
    "dispatched": ["violation", "warning"],
    "dispatch_failures": [],
    "skipped": [],
    "error": None
}


# ========== Dependencies ==========

def _from_state(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"SLA service not initialized: {name}"
        )
    return service


def get_runner(request: Request) -> CycleRunner:
    return _from_state(request, "cycle_runner")


def get_aggregator(request: Request) -> CycleAggregator:
    return _from_state(request, "aggregator")


def get_clock(request: Request) -> Clock:
    return _from_state(request, "clock")


# ========== Route Handlers ==========

@router.get(
    "/config",
    response_model=PolicyResponse,
    summary="Get the active SLA policy"
)
async def get_config(runner: CycleRunner = Depends(get_runner)):
    """Return SLA hours per priority, the default allotment and thresholds."""
    return PolicyResponse(**runner.policy.to_dict())


@router.post(
    "/evaluate",
    response_model=EvaluationResponse,
    summary="Evaluate tickets without notifying",
    description="""
    Evaluate and classify the posted tickets at `now` (or the service clock).

    Nothing is dispatched. Tickets whose `created_at` cannot be evaluated are
    listed under `skipped`.
    """,
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": EVALUATE_REQUEST_EXAMPLE}}}
    }
)
async def evaluate_tickets(
    request: EvaluateRequest,
    runner: CycleRunner = Depends(get_runner),
    aggregator: CycleAggregator = Depends(get_aggregator),
    clock: Clock = Depends(get_clock)
):
    now = as_utc(request.now) if request.now else clock.now()
    tickets = [record.to_ticket() for record in request.tickets]

    batch = aggregator.aggregate(tickets, runner.policy, now)

    logger.info(
        "Ad-hoc SLA evaluation",
        extra={"tickets": len(tickets), **batch.counts()}
    )

    return EvaluationResponse(
        evaluated_at=now,
        summary=batch.counts(),
        batch=BatchResponse.from_batch(batch)
    )


@router.post(
    "/cycles",
    response_model=CycleReportResponse,
    summary="Run an evaluation cycle now",
    description="""
    Trigger one fetch → evaluate → dispatch cycle.

    If a cycle is already running the trigger is dropped and the response
    outcome is `dropped`.
    """,
    responses={
        200: {
            "description": "Cycle finished, failed or was dropped",
            "content": {"application/json": {"example": CYCLE_REPORT_EXAMPLE}}
        }
    }
)
async def trigger_cycle(runner: CycleRunner = Depends(get_runner)):
    report = await runner.run_cycle()
    return CycleReportResponse(**report.to_dict())


@router.get(
    "/source",
    response_model=SourceValidationResponse,
    summary="Validate the configured ticket source"
)
async def validate_source(request: Request):
    source = _from_state(request, "ticket_source")
    validate = getattr(source, "validate", None)
    if validate is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ticket source does not support validation"
        )
    return await validate()


@router.post(
    "/notifications/test",
    response_model=NotificationTestResponse,
    summary="Send a test notification to every configured channel"
)
async def test_notifications(request: Request):
    dispatcher = _from_state(request, "dispatcher")
    delivered = await dispatcher.send_test_notification()
    return NotificationTestResponse(
        delivered=delivered,
        channels=dispatcher.channel_names
    )


# Export router with consistent naming
sla_router = router
