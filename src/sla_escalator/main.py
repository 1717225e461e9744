"""
SLA Tracker & Escalator - Main Application
==========================================

Monitors open support tickets against priority-based SLAs and escalates
tickets approaching or past their deadlines.

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: cycle aggregation, single-flight cycle runner, DTOs
- Domain: tickets, SLA policy, evaluation and classification rules
- Infrastructure: ticket export reader, Slack/email channels, scheduler
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# Configuration and Core
from sla_escalator.config import settings
from sla_escalator.core import (
    ApplicationException,
    ConfigurationException,
    ValidationException,
)

# SLA Module
from sla_escalator.sla.application import CycleAggregator, CycleRunner
from sla_escalator.sla.domain import SystemClock
from sla_escalator.sla.infrastructure import (
    FileTicketSource,
    SLAScheduler,
    build_dispatcher,
    load_policy,
)
from sla_escalator.sla.interfaces import sla_router

# Logging
from sla_escalator.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Build the SLA policy (an invalid policy aborts startup)
    3. Wire ticket source, notification channels and cycle runner
    4. Run an initial cycle
    5. Start the periodic scheduler

    SHUTDOWN:
    1. Stop the scheduler
    2. Close notification channels
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting SLA Tracker & Escalator", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    policy = load_policy(settings)

    clock = SystemClock()
    ticket_source = FileTicketSource(settings.data_source_path, settings.data_source_type)
    dispatcher = build_dispatcher(settings)
    aggregator = CycleAggregator(
        future_tolerance=timedelta(minutes=settings.future_tolerance_minutes)
    )
    runner = CycleRunner(ticket_source, policy, clock, dispatcher, aggregator)

    app.state.clock = clock
    app.state.ticket_source = ticket_source
    app.state.dispatcher = dispatcher
    app.state.aggregator = aggregator
    app.state.cycle_runner = runner

    async def sla_evaluation_job():
        """Background SLA evaluation job."""
        try:
            await runner.run_cycle()
        except Exception:
            logger.exception("Error during SLA check")

    if settings.run_on_startup:
        await sla_evaluation_job()

    scheduler = SLAScheduler(interval_minutes=settings.check_interval_minutes)
    await scheduler.start(sla_evaluation_job)
    app.state.scheduler = scheduler

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Stopping SLA Tracker")
    await scheduler.stop()
    await dispatcher.close()
    logger.info("SLA Tracker shutdown complete")


async def application_exception_handler(request: Request, exc: ApplicationException):
    """Render application exceptions as JSON errors."""
    if isinstance(exc, ValidationException):
        status_code = 422
    elif isinstance(exc, ConfigurationException):
        status_code = 500
    else:
        status_code = 502

    logger.error(
        "Request failed",
        extra={"path": request.url.path, "error": exc.message}
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.__class__.__name__,
            "message": exc.message,
            "details": exc.details
        }
    )


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title="SLA Tracker & Escalator API",
        description="""
    ## SLA Tracker & Escalator

    Evaluates open support tickets against priority-based SLAs every few
    minutes and sends one notification per escalation tier.

    **Escalation tiers:**
    - `violation` - the SLA deadline has passed
    - `critical` - at least 95% of the SLA time is used
    - `warning` - at least 80% of the SLA time is used

    **Default SLA hours:** critical 4, high 8, medium 24, low 72, other 24
    """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan if use_lifespan else None
    )

    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.include_router(sla_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Health check endpoint for load balancers and orchestrators.

        Reports the cycle runner state, scheduler state and configured
        notification channels.
        """
        state = request.app.state
        runner = getattr(state, "cycle_runner", None)
        scheduler = getattr(state, "scheduler", None)
        dispatcher = getattr(state, "dispatcher", None)

        return {
            "status": "healthy" if runner else "starting",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": {
                "cycle_runner": runner.state.value if runner else "not_initialized",
                "sla_scheduler": "running" if scheduler and scheduler.is_running else "stopped",
                "next_cycle_at": scheduler.next_trigger_at if scheduler else None,
                "notification_channels": dispatcher.channel_names if dispatcher else [],
            }
        }

    return app


app = create_app()


def run() -> None:
    """Development entry point."""
    import uvicorn

    uvicorn.run(
        "sla_escalator.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    run()
