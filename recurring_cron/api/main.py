"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from recurring_cron.api.middleware import RequestIDMiddleware, MetricsMiddleware
from recurring_cron.api.v1 import jobs
from recurring_cron.config import settings
from recurring_cron.domain.store import RuleStore
from recurring_cron.infrastructure.database.repositories import RecurringRuleRepository
from recurring_cron.infrastructure.database.session import SessionLocal
from recurring_cron.infrastructure.observability.logging import setup_logging
from recurring_cron.services.health_monitor import UNHEALTHY, HealthMonitor
from recurring_cron.services.job_tracker import job_tracker
from recurring_cron.services.scheduler import SweepScheduler
from recurring_cron.services.sweep import SweepRunner

# Setup structured logging
setup_logging(settings.log_level)


def create_app(rule_store: Optional[RuleStore] = None, enable_scheduler: Optional[bool] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    The sweep runner, health monitor and scheduler are built once per app so
    the scheduled and manual triggers share one overlap guard.
    """
    store = rule_store or RecurringRuleRepository(SessionLocal)
    runner = SweepRunner(store, job_tracker)
    health_monitor = HealthMonitor(store, job_tracker)
    scheduler = SweepScheduler(runner, health_monitor)
    start_scheduler = settings.scheduler_enabled if enable_scheduler is None else enable_scheduler

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_scheduler:
            scheduler.start()
        try:
            yield
        finally:
            scheduler.stop()

    app = FastAPI(
        title="Recurring Transactions Cron",
        description="Scheduled generation of ledger transactions from recurring rules",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.sweep_runner = runner
    app.state.health_monitor = health_monitor
    app.state.job_tracker = job_tracker
    app.state.scheduler = scheduler

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Quick health check endpoint (no store access)
    @app.get("/health")
    def health_check():
        return health_monitor.quick_health()

    # Detailed health check: 200 when healthy or degraded, 503 when unhealthy
    @app.get("/health/detailed")
    def detailed_health_check():
        health = health_monitor.perform_all_checks()
        status_code = 503 if health["overall"] == UNHEALTHY else 200
        return JSONResponse(content=health, status_code=status_code)

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(jobs.router, prefix="/v1", tags=["jobs"])

    return app


app = create_app()
